# crime_pipelines/ingestion/ingestion_master.py
import pandas as pd
from rich.console import Console

from crime_pipelines.exceptions import MissingInputError
from .crime_loader import load_crime_csv, generate_sample_data

console = Console()


def run_ingestion(config) -> pd.DataFrame:
    """Load the configured raw file, falling back to synthetic data when allowed."""
    console.print("\n[bold cyan]=== INGESTION START ===[/bold cyan]\n")

    path = config.input_path
    if path is not None and path.exists():
        df = load_crime_csv(path, sample_size=config.raw_sample_size, seed=config.seed)
        console.print(f"[green]Loaded {len(df):,} raw rows from {path}[/green]")
        return df

    if not config.use_synthetic:
        raise MissingInputError(
            f"No raw crime file at {path} and the synthetic generator is disabled."
        )

    console.print(f"[yellow]No raw file at {path}; using sample data for demonstration.[/yellow]")
    return generate_sample_data(n_records=config.synthetic_records, seed=config.seed)


__all__ = ["run_ingestion"]
