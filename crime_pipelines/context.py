# Run configuration and the per-run context threaded through pipeline stages

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from config import (
    RAW_CRIME_CSV,
    OUTPUTS_DIR,
    PROCESSED_SUBDIR,
    PLOTS_SUBDIR,
    MAPS_SUBDIR,
    MODELS_SUBDIR,
    RAW_SAMPLE_SIZE,
    SYNTHETIC_RECORDS,
    RANDOM_SEED,
    HOLIDAY_COUNTRY,
    GRID_SIZE_DEG,
    TOP_N_HOTSPOTS,
    FORECAST_HORIZON,
    SEASONAL_PERIOD,
    FORECAST_MODELS,
    SCHEMA_VERSION,
)
from crime_pipelines.utils.artifacts import ArtifactStore
from crime_pipelines.utils.logging import PipelineLog
from crime_pipelines.visualize.sampling import RandomSampler, SamplingStrategy


@dataclass(frozen=True)
class PipelineConfig:
    input_path: Optional[Path] = RAW_CRIME_CSV
    use_synthetic: bool = True
    synthetic_records: int = SYNTHETIC_RECORDS
    raw_sample_size: Optional[int] = RAW_SAMPLE_SIZE
    output_dir: Path = OUTPUTS_DIR
    grid_size: float = GRID_SIZE_DEG
    top_n: int = TOP_N_HOTSPOTS
    horizon: int = FORECAST_HORIZON
    seasonal_period: int = SEASONAL_PERIOD
    models: Tuple[str, ...] = FORECAST_MODELS
    fill_missing_months: bool = False
    holiday_country: str = HOLIDAY_COUNTRY
    resume: bool = False
    render_charts: bool = True
    render_maps: bool = True
    seed: int = RANDOM_SEED
    sampler: Optional[SamplingStrategy] = None
    schema_version: int = SCHEMA_VERSION

    def __post_init__(self):
        # default map and KDE sampling follows the run seed
        if self.sampler is None:
            object.__setattr__(self, "sampler", RandomSampler(self.seed))

    @property
    def processed_dir(self) -> Path:
        return Path(self.output_dir) / PROCESSED_SUBDIR

    @property
    def plots_dir(self) -> Path:
        return Path(self.output_dir) / PLOTS_SUBDIR

    @property
    def maps_dir(self) -> Path:
        return Path(self.output_dir) / MAPS_SUBDIR

    @property
    def models_dir(self) -> Path:
        return Path(self.output_dir) / MODELS_SUBDIR


@dataclass(eq=False)
class PipelineContext:
    """Everything one run produces, stage by stage."""

    config: PipelineConfig
    log: PipelineLog = field(default_factory=PipelineLog)
    forecasters: Optional[List[Any]] = None

    raw: Optional[pd.DataFrame] = None
    incidents: Optional[pd.DataFrame] = None
    aggregates: Any = None
    series: Optional[pd.Series] = None
    hotspots: Any = None
    forecast_run: Any = None
    charts: Dict[str, Path] = field(default_factory=dict)
    maps: Dict[str, Path] = field(default_factory=dict)
    render_failures: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.store = ArtifactStore(self.config.processed_dir, schema_version=self.config.schema_version)
        self.model_store = ArtifactStore(self.config.models_dir, schema_version=self.config.schema_version)


__all__ = ["PipelineConfig", "PipelineContext"]
