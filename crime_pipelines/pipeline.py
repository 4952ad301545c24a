#!/usr/bin/env python
# To quick run: python -m crime_pipelines.pipeline
# Staged crime analytics run with Rich console output

import argparse
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

from config import RAW_CRIME_CSV
from crime_pipelines.context import PipelineConfig, PipelineContext
from crime_pipelines.exceptions import FATAL_ERRORS
from crime_pipelines.ingestion import run_ingestion
from crime_pipelines.models.forecast_master import ForecastRun, run_forecasts
from crime_pipelines.models.forecasting import build_forecasters
from crime_pipelines.models.reconcile import FORECAST_COLUMNS, reconcile_forecasts
from crime_pipelines.transform.aggregation import build_temporal_aggregates, monthly_series
from crime_pipelines.transform.cleaning import clean_crime_data
from crime_pipelines.transform.hotspots import compute_hotspots, hotspot_summary, hotspots_to_geodataframe
from crime_pipelines.transform.schema import coerce_canonical
from crime_pipelines.transform.temporal import add_temporal_features
from crime_pipelines.validate import require_artifact, require_rows, run_validations
from crime_pipelines.visualize.charts import render_charts
from crime_pipelines.visualize.maps import render_maps
from crime_pipelines.visualize.sampling import NoSampler, RandomSampler

console = Console()

CLEAN_ARTIFACT = "crime_data_clean"
OK_STATUSES = ("success", "partial")

StageResult = Tuple[str, str]


def create_header() -> Panel:
    header = """
    ╔═══════════════════════════════════════════════════════════════╗
    ║              CRIME ANALYTICS & FORECASTING PIPELINE           ║
    ║   Ingest → Clean → Aggregate → Hotspots → Forecast → Render   ║
    ╚═══════════════════════════════════════════════════════════════╝
    """
    return Panel(header, style="bold cyan", border_style="bright_cyan", expand=False)


def create_results_table(ctx: PipelineContext) -> Table:
    table = Table(title="Pipeline Results", box=box.ROUNDED, show_header=True, header_style="bold magenta", border_style="bright_magenta")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_row("Output Directory", str(ctx.config.output_dir))
    if ctx.incidents is not None:
        table.add_row("Cleaned Incidents", f"{len(ctx.incidents):,}")
        ts = ctx.incidents["timestamp"]
        table.add_row("Date Range", f"{ts.min():%Y-%m-%d} → {ts.max():%Y-%m-%d}")
    if ctx.hotspots is not None:
        table.add_row("Grid Cells", f"{len(ctx.hotspots.cells):,}")
    if ctx.forecast_run is not None:
        table.add_row("Forecast Models", ", ".join(ctx.forecast_run.forecasts) or "none")
        if ctx.forecast_run.comparison is not None:
            table.add_row("Forecast Difference", f"{ctx.forecast_run.comparison.difference:,.0f} crimes")
    table.add_row("Charts", str(len(ctx.charts)))
    table.add_row("Maps", str(len(ctx.maps)))
    return table


# ----------------------------------------------------------------------
# Stages
# ----------------------------------------------------------------------

def stage_ingestion(ctx: PipelineContext) -> StageResult:
    if ctx.config.resume and ctx.store.exists(CLEAN_ARTIFACT):
        return "skipped", "cleaned dataset available for resume"
    ctx.raw = run_ingestion(ctx.config)
    ctx.log.log_step("Raw records", ctx.raw)
    return "success", f"{len(ctx.raw):,} raw rows"


def stage_cleaning(ctx: PipelineContext) -> StageResult:
    resumed = ctx.config.resume and ctx.store.exists(CLEAN_ARTIFACT)
    if resumed:
        incidents = coerce_canonical(ctx.store.load_table(CLEAN_ARTIFACT))
        ctx.log.log_step("Cleaned incidents (resumed)", incidents)
        detail = "loaded from artifact store"
    else:
        raw = require_artifact(ctx.raw, "raw records", "cleaning")
        incidents = clean_crime_data(raw, log=ctx.log)
        detail = f"{len(incidents):,} of {len(raw):,} rows kept"

    require_rows(incidents, "cleaning")
    run_validations(incidents)
    if not resumed:
        ctx.store.save_table(CLEAN_ARTIFACT, incidents, formats=("csv", "parquet"))

    ctx.incidents = add_temporal_features(incidents, ctx.config.holiday_country)
    return "success", detail


def stage_aggregation(ctx: PipelineContext) -> StageResult:
    incidents = require_rows(ctx.incidents, "temporal aggregation")
    ctx.aggregates = build_temporal_aggregates(incidents, fill_missing_months=ctx.config.fill_missing_months)
    ctx.series = monthly_series(ctx.aggregates.monthly)

    for name, table in ctx.aggregates.tables().items():
        ctx.store.save_table(name, table)
    ctx.log.log_step("Monthly buckets", ctx.aggregates.monthly)
    return "success", f"{len(ctx.aggregates.monthly)} months"


def stage_hotspots(ctx: PipelineContext) -> StageResult:
    incidents = require_rows(ctx.incidents, "hotspot aggregation")
    ctx.hotspots = compute_hotspots(incidents, resolution=ctx.config.grid_size, top_n=ctx.config.top_n)
    ctx.log.log_step("Hotspot cells", ctx.hotspots.cells)

    ctx.store.save_table("crime_hotspots", ctx.hotspots.cells)
    ctx.store.save_table("top_hotspots", ctx.hotspots.top)
    if len(ctx.hotspots.cells):
        ctx.store.save_geojson("crime_hotspot_cells", hotspots_to_geodataframe(ctx.hotspots.cells, ctx.config.grid_size))

    summary = hotspot_summary(ctx.hotspots, incidents)
    return "success", f"{summary['grid_cells']:,} cells, max {summary['top_hotspot_count']:,}"


def forecast_artifact(model_name: str) -> str:
    return f"{model_name.lower()}_forecast"


def _resume_forecasts(ctx: PipelineContext) -> Optional[ForecastRun]:
    names = list(ctx.config.models) if ctx.forecasters is None else [f.name for f in ctx.forecasters]
    if not names or not all(ctx.store.exists(forecast_artifact(n)) for n in names):
        return None

    run = ForecastRun()
    for name in names:
        frame = ctx.store.load_table(forecast_artifact(name), parse_dates=["date"])
        if len(frame) != ctx.config.horizon:
            return None
        run.forecasts[name] = frame[FORECAST_COLUMNS]
    if len(run.forecasts) >= 2:
        run.comparison = reconcile_forecasts(list(run.forecasts.values()))
    console.print("[cyan]Forecasts loaded from artifact store.[/cyan]")
    return run


def stage_forecasting(ctx: PipelineContext) -> StageResult:
    series = require_artifact(ctx.series, "monthly series", "forecasting")

    run = _resume_forecasts(ctx) if ctx.config.resume else None
    resumed = run is not None
    if run is None:
        forecasters = ctx.forecasters
        if forecasters is None:
            forecasters = build_forecasters(ctx.config.models, ctx.config.seasonal_period)
        run = run_forecasts(series, forecasters, ctx.config.horizon, log=ctx.log)
    ctx.forecast_run = run

    if not resumed:
        for name, frame in run.forecasts.items():
            ctx.store.save_table(forecast_artifact(name), frame)
        if run.comparison is not None:
            ctx.store.save_table("forecast_comparison", run.comparison.table)
            ctx.store.save_table("forecast_totals", run.comparison.totals_frame())
        if run.raw:
            ctx.store.save_table("forecast_diagnostics", run.diagnostics())
            fitted = {n: r.fitted_model for n, r in run.raw.items() if r.fitted_model is not None}
            if fitted:
                ctx.model_store.save_object("forecast_models", fitted)

    if not run.forecasts:
        return "failed", "; ".join(run.unavailable.values()) or "no forecasts produced"
    if run.unavailable:
        return "partial", run.skipped_reason or ""
    detail = f"models: {', '.join(run.forecasts)}"
    if run.comparison is not None:
        detail += f"; difference {run.comparison.difference:,.0f}"
    return "success", detail + (" (resumed)" if resumed else "")


def stage_charts(ctx: PipelineContext) -> StageResult:
    if not ctx.config.render_charts:
        return "skipped", "disabled"
    written, failed = render_charts(
        ctx.config.plots_dir,
        aggregates=ctx.aggregates,
        series=ctx.series,
        forecast_run=ctx.forecast_run,
        hotspots=ctx.hotspots,
        incidents=ctx.incidents,
        sampler=ctx.config.sampler,
    )
    ctx.charts.update(written)
    ctx.render_failures.update(failed)
    if failed:
        return "partial", f"{len(written)} written, failed: {', '.join(sorted(failed))}"
    return "success", f"{len(written)} charts"


def stage_maps(ctx: PipelineContext) -> StageResult:
    if not ctx.config.render_maps:
        return "skipped", "disabled"
    written, failed = render_maps(
        ctx.config.maps_dir,
        incidents=ctx.incidents,
        hotspots=ctx.hotspots,
        sampler=ctx.config.sampler,
    )
    ctx.maps.update(written)
    ctx.render_failures.update(failed)
    if failed:
        return "partial", f"{len(written)} written, failed: {', '.join(sorted(failed))}"
    return "success", f"{len(written)} maps"


STAGES = [
    ("ingestion", stage_ingestion, ()),
    ("cleaning", stage_cleaning, ()),
    ("temporal aggregation", stage_aggregation, ("cleaning",)),
    ("hotspot aggregation", stage_hotspots, ("cleaning",)),
    ("forecasting", stage_forecasting, ("temporal aggregation",)),
    ("charts", stage_charts, ("temporal aggregation",)),
    ("maps", stage_maps, ("cleaning",)),
]


def run_stage(ctx: PipelineContext, name: str, func: Callable[[PipelineContext], StageResult], requires: Sequence[str] = ()) -> None:
    """
    Run one stage and record its outcome.

    Stages whose upstream did not succeed are skipped. Fatal errors are
    recorded and re-raised; anything else marks only this stage failed.
    """
    missing = [r for r in requires if ctx.log.stage_status(r) not in OK_STATUSES]
    if missing:
        ctx.log.record_stage(name, "skipped", f"upstream unavailable: {', '.join(missing)}")
        return

    console.print(f"\n[bold yellow]▶ {name}[/bold yellow]")
    try:
        status, detail = func(ctx)
    except FATAL_ERRORS as e:
        ctx.log.record_stage(name, "failed", str(e))
        raise
    except (ValueError, RuntimeError, OSError, KeyError) as e:
        ctx.log.record_stage(name, "failed", f"{type(e).__name__}: {e}")
        return
    ctx.log.record_stage(name, status, detail)


def run_pipeline(config: Optional[PipelineConfig] = None, forecasters=None) -> PipelineContext:
    """
    Run every stage in order. The run summary is always printed; a fatal
    error (missing input, unresolvable schema, empty dataset) is re-raised
    after it.
    """
    config = config or PipelineConfig()
    ctx = PipelineContext(config=config, forecasters=forecasters)

    console.print()
    console.print(create_header())

    try:
        for name, func, requires in STAGES:
            run_stage(ctx, name, func, requires)
    except FATAL_ERRORS as e:
        console.print(Panel(f"[bold red] PIPELINE FAILED [/bold red]\n\n[red]Error:[/red] {e}", border_style="bright_red", title="[bold red]Error[/bold red]", expand=False))
        ctx.log.show_run_summary()
        raise

    console.print()
    console.print(create_results_table(ctx))
    ctx.log.show_pipeline_table()
    ctx.log.show_run_summary()

    if ctx.log.failed_stages:
        console.print(f"[bold yellow]Completed with failed stages: {', '.join(ctx.log.failed_stages)}[/bold yellow]")
    else:
        console.print(Panel("[bold green] PIPELINE COMPLETED [/bold green]", border_style="bright_green", expand=False))
    return ctx


# ----------------------------------------------------------------------
# CLI
# ----------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    defaults = PipelineConfig()
    parser = argparse.ArgumentParser(description="Crime analytics and forecasting pipeline")
    parser.add_argument("--input", type=Path, default=RAW_CRIME_CSV, help="Delimited crime export to analyse")
    parser.add_argument("--no-synthetic", action="store_true", help="Fail instead of generating sample data when the input is missing")
    parser.add_argument("--sample-size", type=int, default=defaults.raw_sample_size, help="Downsample raw files larger than this (0 keeps all rows)")
    parser.add_argument("--output-dir", type=Path, default=defaults.output_dir)
    parser.add_argument("--grid-size", type=float, default=defaults.grid_size, help="Hotspot cell size in degrees")
    parser.add_argument("--top-n", type=int, default=defaults.top_n)
    parser.add_argument("--horizon", type=int, default=defaults.horizon, help="Months to forecast")
    parser.add_argument("--fill-missing-months", action="store_true", help="Add zero rows for months without incidents")
    parser.add_argument("--resume", action="store_true", help="Reuse stored artifacts written with the current schema version")
    parser.add_argument("--no-charts", action="store_true")
    parser.add_argument("--no-maps", action="store_true")
    parser.add_argument("--no-sampling", action="store_true", help="Render every incident on maps")
    parser.add_argument("--seed", type=int, default=defaults.seed)
    parser.add_argument("--models", nargs="+", default=list(defaults.models), help="Forecasting models (ARIMA, Prophet, Naive)")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    return PipelineConfig(
        input_path=args.input,
        use_synthetic=not args.no_synthetic,
        raw_sample_size=args.sample_size or None,
        output_dir=args.output_dir,
        grid_size=args.grid_size,
        top_n=args.top_n,
        horizon=args.horizon,
        models=tuple(args.models),
        fill_missing_months=args.fill_missing_months,
        resume=args.resume,
        render_charts=not args.no_charts,
        render_maps=not args.no_maps,
        seed=args.seed,
        sampler=NoSampler() if args.no_sampling else RandomSampler(args.seed),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    run_pipeline(config_from_args(args))
    return 0


if __name__ == "__main__":
    main()
