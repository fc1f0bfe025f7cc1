"""Command-line interface for the baseball ETL pipeline."""

import logging
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Generator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .analytics.win_expectancy import DEFAULT_MIN_SAMPLE_SIZE, NAMED_ERAS, parse_era
from .database.config import DatabaseConfig
from .errors import ETLError
from .ingestion.config import EtlConfig, load_etl_config
from .pipeline.orchestrator import ConstantsKind, ETLPipeline
from .schema.registry import get_schema, list_schemas
from .storage.postgres import PostgresStorageBackend

app = typer.Typer(
    name="baseball-etl",
    help="Historical baseball data ETL CLI",
    add_completion=False,
)
load_app = typer.Typer(help="Load source datasets into PostgreSQL", add_completion=False)
build_app = typer.Typer(help="Build derived tables", add_completion=False)
lookup_app = typer.Typer(help="Query derived tables", add_completion=False)
app.add_typer(load_app, name="load")
app.add_typer(build_app, name="build")
app.add_typer(lookup_app, name="lookup")

console = Console()

FIRST_RETROSHEET_YEAR = 1910


def parse_years(value: str) -> list[int]:
    """Parse ``"2023,2024"``, ``"2016-2020"`` or ``"all"`` into sorted years.

    Raises:
        typer.BadParameter: If a token is not a year or a valid range
    """
    years: set[int] = set()
    for token in value.split(","):
        token = token.strip()
        if not token:
            continue
        if token == "all":
            years.update(range(FIRST_RETROSHEET_YEAR, date.today().year + 1))
            continue
        try:
            if "-" in token:
                start, end = (int(part) for part in token.split("-", 1))
                if end < start:
                    raise typer.BadParameter(f"invalid range {token}: end before start")
                years.update(range(start, end + 1))
            else:
                years.add(int(token))
        except ValueError:
            raise typer.BadParameter(f"invalid year: {token}")
    if not years:
        raise typer.BadParameter("no years given")
    return sorted(years)


def _config(ctx: typer.Context) -> EtlConfig:
    return ctx.obj if isinstance(ctx.obj, EtlConfig) else EtlConfig()


@contextmanager
def _open_pipeline(ctx: typer.Context) -> Generator[ETLPipeline, None, None]:
    """Connect to PostgreSQL and build the pipeline, reporting failures."""
    try:
        backend = PostgresStorageBackend(DatabaseConfig.from_env())
    except Exception as e:
        console.print(f"[red]Error: cannot connect to database: {e}[/red]")
        raise typer.Exit(1)

    with backend:
        console.print("[green]✓ Connected to database[/green]")
        try:
            yield ETLPipeline(backend, _config(ctx))
        except ETLError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)
        except (FileNotFoundError, ValueError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to ETL config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Load Retrosheet, Negro Leagues and FanGraphs data into PostgreSQL."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    try:
        ctx.obj = load_etl_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def migrate(ctx: typer.Context):
    """Apply pending schema migrations."""
    with _open_pipeline(ctx) as pipeline:
        applied = pipeline.migrate()

    if applied:
        for name in applied:
            console.print(f"  [green]✓[/green] {name}")
        console.print(f"[green]✓ Applied {len(applied)} migration(s)[/green]")
    else:
        console.print("[green]✓ Database schema is up to date[/green]")


# =============================================================================
# LOAD
# =============================================================================


@load_app.command("gamelogs")
def load_gamelogs(
    ctx: typer.Context,
    years: str = typer.Option(..., "--years", "-y", help="Years: 2023,2024 or 2016-2020 or all"),
    game_type: Optional[str] = typer.Option(None, "--game-type", "-t", help="Tag for every game (default from config)"),
    force: bool = typer.Option(False, "--force", help="Reload years already in the refresh ledger"),
):
    """Load Retrosheet game logs for one or more seasons."""
    config = _config(ctx)
    year_list = parse_years(years)

    with _open_pipeline(ctx) as pipeline:
        refreshes = pipeline.list_refreshes()
        total = 0
        for year in year_list:
            dataset = f"retrosheet_games_{year}"
            archive = config.gamelog_archive(year)
            if not force and dataset in refreshes:
                console.print(f"  [dim]Skipping {year} (already loaded)[/dim]")
                continue
            if not archive.exists():
                console.print(f"  [yellow]Skipping {year} (file not found: {archive})[/yellow]")
                continue

            console.print(f"  Loading {year} game logs...")
            rows = pipeline.load_game_log(archive, game_type)
            pipeline.record_refresh(dataset, rows)
            total += rows
            console.print(f"  [green]✓[/green] Loaded {year} ([yellow]{rows}[/yellow] rows)")

    console.print(f"[green]✓ Game logs complete[/green] ({total} rows)")


@load_app.command("plays")
def load_plays(
    ctx: typer.Context,
    years: str = typer.Option(..., "--years", "-y", help="Years: 2023,2024 or 2016-2020 or all"),
    force: bool = typer.Option(False, "--force", help="Reload years already in the refresh ledger"),
):
    """Load Retrosheet play-by-play for one or more seasons."""
    config = _config(ctx)
    year_list = parse_years(years)

    with _open_pipeline(ctx) as pipeline:
        refreshes = pipeline.list_refreshes()
        total = 0
        for year in year_list:
            dataset = f"retrosheet_plays_{year}"
            archive = config.plays_archive(year)
            if not force and dataset in refreshes:
                console.print(f"  [dim]Skipping {year} (already loaded)[/dim]")
                continue
            if not archive.exists():
                console.print(f"  [yellow]Skipping {year} (file not found: {archive})[/yellow]")
                continue

            console.print(f"  Loading {year} plays...")
            rows = pipeline.load_plays(archive)
            pipeline.record_refresh(dataset, rows)
            total += rows
            if rows == 0:
                console.print(f"  [yellow]No new plays for {year}[/yellow]")
            else:
                console.print(f"  [green]✓[/green] Loaded {year} ([yellow]{rows}[/yellow] rows)")

    console.print(f"[green]✓ Play-by-play complete[/green] ({total} rows)")


@load_app.command("ejections")
def load_ejections(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Reload even if already in the refresh ledger"),
):
    """Load the Retrosheet ejections archive."""
    config = _config(ctx)
    archive = config.ejections_archive

    with _open_pipeline(ctx) as pipeline:
        if not force and "retrosheet_ejections" in pipeline.list_refreshes():
            console.print("[dim]Skipping ejections (already loaded)[/dim]")
            return
        if not archive.exists():
            console.print(f"[yellow]Skipping ejections (file not found: {archive})[/yellow]")
            return

        rows = pipeline.load_ejections(archive)
        pipeline.record_refresh("retrosheet_ejections", rows)

    console.print(f"[green]✓ Loaded ejections[/green] ({rows} rows)")


@load_app.command("negro-leagues")
def load_negro_leagues(
    ctx: typer.Context,
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Directory with gameinfo.csv and plays.csv"),
):
    """Load Negro Leagues game info and plays."""
    with _open_pipeline(ctx) as pipeline:
        result = pipeline.load_negro_leagues(data_dir)

        if result.game_rows:
            pipeline.record_refresh("negroleagues_games", result.game_rows)
        if result.play_rows:
            pipeline.record_refresh("negroleagues_plays", result.play_rows)

    if result.total_rows == 0:
        console.print("[yellow]No Negro Leagues rows loaded (expected gameinfo.csv and plays.csv)[/yellow]")
        return

    console.print(f"  Games: [yellow]{result.game_rows}[/yellow] rows")
    console.print(f"  Plays: [yellow]{result.play_rows}[/yellow] rows")
    console.print("[green]✓ Negro Leagues data loaded[/green]")


@load_app.command("fangraphs")
def load_fangraphs(
    ctx: typer.Context,
    woba_file: Optional[Path] = typer.Option(None, "--woba-file", help="FanGraphs Guts CSV"),
    park_factors_dir: Optional[Path] = typer.Option(None, "--park-factors-dir", help="Directory of park factor CSVs"),
):
    """Load FanGraphs wOBA constants and park factors."""
    config = _config(ctx)
    woba_file = woba_file or config.woba_file
    park_factors_dir = park_factors_dir or config.park_factors_dir

    if not woba_file.exists():
        console.print(f"[red]Error: wOBA constants file not found: {woba_file}[/red]")
        raise typer.Exit(1)

    with _open_pipeline(ctx) as pipeline:
        woba_rows = pipeline.load_external_constants(woba_file, ConstantsKind.WOBA)
        pipeline.record_refresh("fangraphs_woba", woba_rows)
        console.print(f"  [green]✓[/green] wOBA constants ([yellow]{woba_rows}[/yellow] rows)")

        files = sorted(park_factors_dir.glob("*.csv")) if park_factors_dir.is_dir() else []
        if not files:
            console.print("  [yellow]No park factor files found[/yellow]")

        park_rows = 0
        for path in files:
            rows = pipeline.load_external_constants(path, ConstantsKind.PARK_FACTORS)
            park_rows += rows
            console.print(f"  [green]✓[/green] {path.name} ([yellow]{rows}[/yellow] rows)")
        if files:
            pipeline.record_refresh("fangraphs_park_factors", park_rows)

    console.print("[green]✓ FanGraphs data loaded[/green]")


# =============================================================================
# BUILD
# =============================================================================


@build_app.command("win-expectancy")
def build_win_expectancy(
    ctx: typer.Context,
    min_sample_size: Optional[int] = typer.Option(None, "--min-sample-size", "-m", help=f"Minimum plays per state (default {DEFAULT_MIN_SAMPLE_SIZE})"),
    era: Optional[list[str]] = typer.Option(None, "--era", "-e", help=f"Year range or era name aggregated separately, e.g. 1901-1960 or {', '.join(NAMED_ERAS)} (repeatable)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Statement deadline in seconds"),
):
    """Rebuild the historical win expectancy table."""
    settings = _config(ctx).win_expectancy
    try:
        eras = [parse_era(value) for value in era] if era else settings.eras
    except ValueError as e:
        raise typer.BadParameter(str(e))

    with _open_pipeline(ctx) as pipeline:
        rows = pipeline.build_win_expectancy(
            min_sample_size=min_sample_size or settings.min_sample_size,
            eras=eras,
            timeout=timeout or settings.timeout,
        )
        pipeline.record_refresh("win_expectancy", rows)

    console.print(f"[green]✓ Win expectancy built[/green] ({rows} states)")


@lookup_app.command("win-expectancy")
def lookup_win_expectancy(
    ctx: typer.Context,
    inning: int = typer.Option(..., "--inning", "-i", help="Inning (extra innings use the 9th)"),
    bottom: bool = typer.Option(False, "--bottom/--top", help="Half inning"),
    outs: int = typer.Option(0, "--outs", "-o", help="Outs before the play (0-2)"),
    runners: str = typer.Option("___", "--runners", "-r", help="Base occupancy, e.g. ___, 1__, 1_3, 123"),
    score_diff: int = typer.Option(0, "--score-diff", "-s", help="Home minus visitor runs"),
):
    """Show the historical home win probability for one game state."""
    with _open_pipeline(ctx) as pipeline:
        entry = pipeline.win_expectancy(inning, bottom, outs, runners, score_diff)

    if entry is None:
        console.print(
            f"[yellow]No win expectancy data for inning {inning} "
            f"{'bottom' if bottom else 'top'}, {outs} out, runners {runners}, "
            f"diff {score_diff:+d}[/yellow]"
        )
        raise typer.Exit(1)

    table = Table(title="Win Expectancy")
    table.add_column("State", style="cyan")
    table.add_column("Home Win %", justify="right", style="green")
    table.add_column("Sample", justify="right", style="yellow")
    table.add_column("Years")
    table.add_row(
        f"{'B' if entry.is_bottom else 'T'}{entry.inning} {entry.outs} out "
        f"{entry.runners_state} {entry.score_diff:+d}",
        f"{float(entry.win_probability):.1%}",
        f"{entry.sample_size:,}",
        f"{entry.start_year}-{entry.end_year}",
    )
    console.print(table)


# =============================================================================
# STATUS
# =============================================================================


@app.command()
def status(ctx: typer.Context):
    """Show the dataset refresh ledger."""
    with _open_pipeline(ctx) as pipeline:
        refreshes = pipeline.list_refreshes()

    if not refreshes:
        console.print("[yellow]No datasets loaded yet[/yellow]")
        return

    table = Table(title="Dataset Refreshes")
    table.add_column("Dataset", style="cyan")
    table.add_column("Last Loaded", style="green")
    table.add_column("Rows", justify="right", style="yellow")
    table.add_column("Notes")

    for name in sorted(refreshes):
        refresh = refreshes[name]
        table.add_row(
            name,
            refresh.last_loaded_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip(),
            f"{refresh.row_count:,}",
            refresh.notes or "",
        )

    console.print(table)


@app.command()
def schema(
    table_name: Optional[str] = typer.Argument(None, help="Table to show (omit to list all)"),
):
    """Show destination table descriptors."""
    if table_name is None:
        table = Table(title="Destination Tables")
        table.add_column("Table", style="cyan")
        table.add_column("Identity", style="magenta")
        table.add_column("Fields", justify="right")
        for name in list_schemas():
            descriptor = get_schema(name)
            table.add_row(
                name,
                ", ".join(descriptor.conflict_keys),
                str(len(descriptor.fields)) if descriptor.fields else "from header",
            )
        console.print(table)
        return

    descriptor = get_schema(table_name)
    if descriptor is None:
        console.print(f"[red]Unknown table: {table_name}[/red]")
        raise typer.Exit(1)

    fields_table = Table(title=f"{descriptor.name}: {descriptor.description or ''}".rstrip(": "))
    fields_table.add_column("Name", style="cyan")
    fields_table.add_column("Type", style="green")
    fields_table.add_column("Nullable", justify="center")
    fields_table.add_column("Identity", justify="center")
    fields_table.add_column("PK", justify="center")
    for field in descriptor.fields:
        fields_table.add_row(
            field.name,
            field.type or "",
            "✓" if field.nullable else "✗",
            "✓" if field.name in descriptor.conflict_keys else "",
            "✓" if field.is_primary_key else "",
        )
    console.print(fields_table)


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"[bold]baseball-etl[/bold] version: [green]{__version__}[/green]")


if __name__ == "__main__":
    app()
