"""gwas-atlas: significance-filtered queries over tabix-indexed GWAS results."""

import asyncio
import contextlib
import logging
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import AtlasConfig, ConfigValidationError, load_config
from .context import AtlasContext
from .errors import InvalidArgumentError, NoDataError, SourceNotFoundError


def version_callback(value: bool) -> None:
    if value:
        print(__version__)
        raise typer.Exit()


app = typer.Typer(
    name="gwas-atlas", help="Serve and query tabix-indexed GWAS summary statistics"
)
console = Console()
err_console = Console(stderr=True)


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", callback=version_callback, is_eager=True, help="Show version and exit"
        ),
    ] = None,
) -> None:
    pass


def setup_logging(verbose: bool, quiet: bool, log_file: Path | None = None) -> None:
    """Configure logging based on verbosity flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger("gwas_atlas").setLevel(level)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logging.getLogger("gwas_atlas").addHandler(file_handler)


def _load_config(config_file: Path | None, **overrides: Any) -> AtlasConfig:
    try:
        return load_config(config_file, overrides)
    except (FileNotFoundError, ConfigValidationError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None


def _build_context(config: AtlasConfig) -> AtlasContext:
    try:
        return AtlasContext.from_config(config)
    except (ImportError, ValueError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None


ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="TOML configuration file")
]
GwasDirOption = Annotated[
    Path | None, typer.Option("--gwas-dir", "-d", help="Directory holding the GWAS files")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging")]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress non-error output")]
LogOption = Annotated[Path | None, typer.Option("--log", help="Write log to file")]


@app.command()
def serve(
    config_file: ConfigOption = None,
    gwas_dir: GwasDirOption = None,
    annotation_db: Annotated[
        Path | None, typer.Option("--annotation-db", help="SQLite annotation store")
    ] = None,
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Bind port")] = None,
    reader: Annotated[
        str | None, typer.Option("--reader", help="Range reader: tabix or pysam")
    ] = None,
    log_file: LogOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from .api import create_app

    config = _load_config(
        config_file,
        gwas_files_path=gwas_dir,
        annotation_db=annotation_db,
        host=host,
        port=port,
        reader=reader,
    )
    setup_logging(verbose, quiet, log_file)
    if not (verbose or quiet):
        logging.getLogger("gwas_atlas").setLevel(config.log_level)

    context = _build_context(config)
    if not quiet:
        console.print(
            f"Serving [bold]{config.gwas_files_path}[/bold] on http://{config.host}:{config.port}"
        )
    uvicorn.run(
        create_app(context),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


async def _write_stream(context: AtlasContext, out, **params: Any):
    stream = await context.orchestrator.open_stream(**params)
    async with contextlib.aclosing(stream.chunks()) as chunks:
        async for chunk in chunks:
            out.write(chunk)
    out.write("\n")
    return stream


@app.command()
def query(
    phenotype_id: Annotated[str, typer.Argument(help="Phenotype identifier")],
    cohort_id: Annotated[str, typer.Argument(help="Cohort identifier, e.g. EUR")],
    study: Annotated[str, typer.Argument(help="Study type: gwama or mrmega")],
    min_p: Annotated[float | None, typer.Option("--min-p", help="Lower p-value bound")] = None,
    max_p: Annotated[float | None, typer.Option("--max-p", help="Upper p-value bound")] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write JSON to file instead of stdout")
    ] = None,
    config_file: ConfigOption = None,
    gwas_dir: GwasDirOption = None,
    log_file: LogOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Run a range query and write the JSON result.

    Without --min-p/--max-p the window is derived from a sample of the file.
    """
    setup_logging(verbose, quiet, log_file)
    config = _load_config(config_file, gwas_files_path=gwas_dir)
    context = _build_context(config)

    params = dict(
        phenotype_id=phenotype_id,
        cohort_id=cohort_id,
        study=study,
        min_p_value=min_p,
        max_p_value=max_p,
    )
    try:
        if output:
            with open(output, "w") as f:
                stream = asyncio.run(_write_stream(context, f, **params))
        else:
            stream = asyncio.run(_write_stream(context, sys.stdout, **params))
    except (InvalidArgumentError, SourceNotFoundError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None
    except NoDataError as e:
        window = e.window
        err_console.print(
            f"[yellow]{e} ({window.min_p_value:g} to {window.max_p_value:g})[/yellow]"
        )
        raise typer.Exit(1) from None

    if output and not quiet:
        console.print(
            f"[green]✓[/green] Wrote {stream.records_emitted:,} records across "
            f"{len(stream.chromosomes_emitted)} chromosomes to {output}"
        )
        console.print(
            f"  p-value range: {stream.window.min_p_value:g} to {stream.window.max_p_value:g}"
        )


@app.command()
def nearest(
    chromosome: Annotated[str, typer.Argument(help="Chromosome, e.g. 1 or chr1")],
    position: Annotated[int, typer.Argument(help="1-based position")],
    annotation_db: Annotated[
        Path | None, typer.Option("--annotation-db", help="SQLite annotation store")
    ] = None,
    radius: Annotated[int | None, typer.Option("--radius", help="Search radius in bp")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Find the annotated variant nearest to a position."""
    setup_logging(verbose, quiet)
    config = _load_config(config_file, annotation_db=annotation_db, search_radius=radius)

    if config.annotation_db is None:
        err_console.print(
            "[red]Error: --annotation-db or annotation_db in config is required[/red]"
        )
        raise typer.Exit(1)
    if not config.annotation_db.exists():
        err_console.print(
            f"[red]Error: Annotation database not found: {config.annotation_db}[/red]"
        )
        raise typer.Exit(1)

    context = _build_context(config)
    try:
        annotation = asyncio.run(context.annotations.nearest(chromosome, position))
    except InvalidArgumentError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    if annotation is None:
        console.print("[yellow]SNP not found[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Nearest to {chromosome}:{position}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in annotation.to_dict().items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@app.command()
def findfiles(
    phenotype_id: Annotated[str, typer.Argument(help="Phenotype identifier")],
    config_file: ConfigOption = None,
    gwas_dir: GwasDirOption = None,
) -> None:
    """Show which study files exist for a phenotype."""
    config = _load_config(config_file, gwas_files_path=gwas_dir)
    context = _build_context(config)

    try:
        availability = context.orchestrator.availability(phenotype_id)
    except InvalidArgumentError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    def mark(flag: bool) -> str:
        return "[green]✓[/green]" if flag else "[red]✗[/red]"

    console.print(f"\n[bold]{phenotype_id}[/bold]")
    console.print(f"{mark(availability.gwama_available)} GWAMA", end="")
    if availability.gwama_cohorts:
        console.print(f" ({', '.join(availability.gwama_cohorts)})")
    else:
        console.print()
    console.print(f"{mark(availability.mrmega_available)} MR-MEGA")


@app.command()
def doctor(config_file: ConfigOption = None) -> None:
    """Check system dependencies and configuration.

    Verifies that the tabix binary, SQLite R-tree support and the
    configured data paths are available.
    """
    from .doctor import DependencyChecker

    config = _load_config(config_file)

    console.print("\n[bold]gwas-atlas System Check[/bold]")
    console.print("─" * 30)

    checker = DependencyChecker(config)
    results = checker.check_all()

    all_passed = True
    for result in results:
        if result.passed:
            version_str = f" ({result.version})" if result.version else ""
            console.print(f"[green]✓[/green] {result.name}{version_str}")
        else:
            all_passed = False
            console.print(f"[red]✗[/red] {result.name}")
            if result.message:
                console.print(f"    {result.message}")

    console.print()

    if all_passed:
        console.print("[green]All systems ready![/green]")
    else:
        console.print("[yellow]Some checks failed.[/yellow]")
        console.print("\nNote: the pysam reader is optional; tabix is the default.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
