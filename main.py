#!/usr/bin/env python3
"""
Architecture Benchmark - CLI Entry Point

Usage:
    python main.py run --architecture command --times 10
    python main.py run -a command -a http --format xlsx --template template.xlsx
    python main.py validate output/query/CommandArchitecture_query1_0.txt
    python main.py list-architectures
"""

import sys
import logging
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from archbench import __version__
from archbench.config import Config
from archbench.architectures import ARCHITECTURES, get_architecture, list_architectures
from archbench.architectures.base import ArchitectureError
from archbench.benchmark.artifact import ArtifactParser
from archbench.benchmark.diagnostics import (
    NullDiagnostics,
    ResourceDiagnostics,
    UnsupportedRuntime,
    check_data_source,
)
from archbench.benchmark.reporter import Reporter
from archbench.benchmark.runner import BenchmarkConfig, BenchmarkRunner, MultiArchitectureRunner
from archbench.errors import ArtifactError, EvaluationError

logger = logging.getLogger(__name__)

console = Console()

# Exit codes
EXIT_ERROR = 1
EXIT_DATA_SOURCE_NOT_FOUND = 2
EXIT_UNSUPPORTED_RUNTIME = 3


def setup_logging(verbose: bool = False, debug: bool = False):
    """Configure logging level."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    # Configure root logger
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        force=True
    )

    logging.getLogger('archbench').setLevel(level)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output (INFO level)')
@click.option('--debug', is_flag=True, help='Enable debug output (DEBUG level, shows per-run detail)')
@click.pass_context
def cli(ctx, verbose, debug):
    """
    Architecture Benchmark Tool

    Runs architectures under test repeatedly after a warm-up run and reports
    the median execution time and the median delay of every query.

    Use -v for verbose output, --debug for per-run detail.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['debug'] = debug
    setup_logging(verbose, debug)


@cli.command()
@click.option('--architecture', '-a', 'architecture_names', multiple=True,
              help='Architecture to evaluate (repeatable, default: all)')
@click.option('--times', '-n', default=None, type=int, help='Timed runs per architecture (default: NUM_TIMES)')
@click.option('--host', default=None, help='Data source host (default: DATA_HOST)')
@click.option('--port', default=None, type=int, help='Data source port (default: DATA_PORT)')
@click.option('--timeout', default=None, type=float, help='Abort a run after this many seconds')
@click.option('--no-warmup', is_flag=True, help='Skip the warm-up run')
@click.option('--keep-artifacts', is_flag=True, help='Archive run artifacts instead of deleting them')
@click.option('--diagnostics', is_flag=True, help='Record CPU time and peak memory per run')
@click.option('--skip-check', is_flag=True, help='Do not check that the data source is reachable')
@click.option('--continue-on-error', is_flag=True, help='Go on with the next architecture after a failure')
@click.option('--format', '-f', 'report_format', type=click.Choice(['md', 'json', 'xlsx', 'all']),
              default='all', help='Report format')
@click.option('--template', default=None, help='Excel template to fill (default: REPORT_TEMPLATE)')
def run(architecture_names, times, host, port, timeout, no_warmup, keep_artifacts,
        diagnostics, skip_check, continue_on_error, report_format, template):
    """
    Evaluate one or more architectures.

    Example:
        python main.py run -a command -n 10
    """
    names = list(architecture_names) or list_architectures()
    num_times = times if times is not None else Config.NUM_TIMES
    run_timeout = timeout if timeout is not None else (Config.RUN_TIMEOUT or None)

    data_source = Config.get_data_source_config()
    host = host or data_source['host']
    port = port or data_source['port']

    console.print(f"\n[bold blue]Architecture Benchmark[/bold blue]")
    console.print(f"Architectures: [cyan]{', '.join(names)}[/cyan]")
    console.print(f"Runs: [cyan]{num_times}[/cyan]")
    console.print(f"Data source: [cyan]{host}:{port}[/cyan]")
    console.print("")

    if num_times < 1:
        console.print("[red]Error: --times must be at least 1[/red]")
        sys.exit(EXIT_ERROR)

    # The architectures consume the data source, so it must be up
    if not skip_check and not check_data_source(host, port):
        console.print(f"[red]Error: data source not reachable at {host}:{port}[/red]")
        console.print("Start the data source first or pass --skip-check.")
        sys.exit(EXIT_DATA_SOURCE_NOT_FOUND)

    if diagnostics:
        try:
            run_diagnostics = ResourceDiagnostics()
        except UnsupportedRuntime as e:
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(EXIT_UNSUPPORTED_RUNTIME)
    else:
        run_diagnostics = NullDiagnostics()

    Config.ensure_directories()
    runner = BenchmarkRunner(
        BenchmarkConfig(
            num_times=num_times,
            warmup=not no_warmup,
            run_timeout=run_timeout,
            keep_artifacts=keep_artifacts,
        ),
        diagnostics=run_diagnostics,
    )
    multi_runner = MultiArchitectureRunner(runner)

    for name in names:
        try:
            architecture = get_architecture(name, host=host, port=port)
            multi_runner.add_architecture(architecture)
            console.print(f"✅ Architecture initialized: {architecture.display_name}")
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(EXIT_ERROR)
        except ArchitectureError as e:
            console.print(f"[red]Error initializing {name}: {e}[/red]")
            console.print("Make sure your .env file is configured correctly.")
            sys.exit(EXIT_ERROR)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Warming up...", total=None)
        runner.on_progress(
            lambda completed, total: progress.update(task, description=f"Run {completed}/{total} done")
        )

        try:
            measurements = multi_runner.run_comparison(continue_on_error=continue_on_error)
        except EvaluationError as e:
            progress.stop()
            console.print(f"\n[red]Evaluation failed: {e}[/red]")
            sys.exit(EXIT_ERROR)

        progress.update(task, description="All runs done")

    for name, error in multi_runner.failures.items():
        console.print(f"[yellow]⚠️  {name}: {error}[/yellow]")

    if not measurements:
        console.print("[red]No architecture completed its evaluation.[/red]")
        sys.exit(EXIT_ERROR)

    results = list(measurements.values())
    reporter = Reporter(console=console)

    if report_format in ['md', 'all']:
        md_path = reporter.generate_markdown(results)
        console.print(f"📄 Markdown report: [green]{md_path}[/green]")

    if report_format in ['json', 'all']:
        json_path = reporter.generate_json(results)
        console.print(f"📊 JSON results: [green]{json_path}[/green]")

    if report_format in ['xlsx', 'all']:
        xlsx_path = reporter.generate_excel(results, template=template or Config.REPORT_TEMPLATE or None)
        console.print(f"📗 Excel report: [green]{xlsx_path}[/green]")

    for measurement in results:
        reporter.print_summary(measurement)

    if len(results) > 1:
        _print_comparison_table(multi_runner.get_comparison_summary())


def _print_comparison_table(summary):
    """Print comparison results as a table."""
    console.print("\n[bold]Comparison Summary[/bold]\n")

    table = Table(title="Architectures (fastest first)")
    table.add_column("Architecture", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Median Execution", justify="right")
    table.add_column("Median Delay", justify="right")

    for entry in summary["architectures"]:
        delays = ", ".join(
            f"{metric}: {delay:.1f}ms" for metric, delay in entry["median_delay_per_metric"].items()
        )
        table.add_row(
            entry["name"],
            str(entry["runs"]),
            f"{entry['median_execution_time_ms']}ms",
            delays,
        )

    console.print(table)


@cli.command()
@click.argument('paths', nargs=-1, required=True, type=click.Path())
def validate(paths):
    """
    Check output artifacts and summarize their trailing field.

    Example:
        python main.py validate output/query/*.txt
    """
    parser = ArtifactParser()
    failed = False

    table = Table(title="Artifacts")
    table.add_column("Artifact", style="cyan")
    table.add_column("Records", justify="right")
    table.add_column("Average", justify="right")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")

    for path in paths:
        try:
            count = parser.validate(path)
            summary = parser.summarize(path)
        except ArtifactError as e:
            failed = True
            table.add_row(path, "[red]invalid[/red]", "", "", "")
            console.print(f"[red]{e}[/red]")
            continue

        table.add_row(path, str(count), f"{summary.average:.3f}", str(summary.min), str(summary.max))

    console.print(table)

    if failed:
        sys.exit(EXIT_ERROR)


@cli.command('list-architectures')
def list_architectures_cmd():
    """List available architectures."""
    console.print("\n[bold]Available Architectures:[/bold]\n")

    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("Display Name")
    table.add_column("Metrics")
    table.add_column("Status")

    for name, architecture_class in ARCHITECTURES.items():
        try:
            architecture_class()
            status = "[green]✅ Configured[/green]"
        except ArchitectureError:
            status = "[red]❌ Not configured[/red]"

        table.add_row(
            name,
            architecture_class.display_name,
            ", ".join(architecture_class.metrics),
            status,
        )

    console.print(table)
    console.print("\nTo configure an architecture, set the required environment variables in .env")


@cli.command('init')
def init():
    """Initialize the output directories."""
    console.print("\n[bold blue]Initializing Benchmark Workspace[/bold blue]\n")

    Config.ensure_directories()
    console.print(f"✅ Created output directory: {Config.OUTPUT_DIR}")
    console.print(f"✅ Created query output directory: {Config.QUERY_OUTPUT_DIR}")
    console.print(f"✅ Created reports directory: {Config.REPORT_DIR}")

    env_file = Path(".env")
    if not env_file.exists():
        console.print("\n[yellow]⚠️  No .env file found.[/yellow]")
        console.print("Copy .env.example to .env and configure the architectures:")
        console.print("  cp .env.example .env")
    else:
        console.print("✅ .env file exists")

    console.print("\n[bold]Next steps:[/bold]")
    console.print("1. Set ARCHITECTURE_COMMAND or ARCHITECTURE_URL in .env")
    console.print("2. Start the data source")
    console.print("3. Run: python main.py run -a command")


if __name__ == "__main__":
    cli()
