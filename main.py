#!/usr/bin/env python3
"""
Metastore Benchmark - CLI Entry Point

Usage:
    python main.py run -d bench -N 100 -L 100 -W 15
    python main.py --backend memory run -d bench -S list,get --csv
    python main.py list -S partition
    python main.py db list -d 'bench*'
    python main.py table list -d bench
"""

import io
import sys
import logging
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from metabench import __version__
from metabench.config import Config, SuiteConfiguration, server_url
from metabench.catalog import CatalogError, get_client_factory, list_backends
from metabench.benchmark.errors import ConfigurationError, ReportIOError
from metabench.benchmark.statistics import TimeScale
from metabench.benchmark.reporter import DEFAULT_SEPARATOR
from metabench.benchmark.utils import get_report_name, split_patterns
from metabench.benchmark.catalog_benchmarks import BenchData, TEST_TABLE, build_suite, prepare_database

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

console = Console()

SCALES = [s.suffix for s in TimeScale]


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

    logging.getLogger('metabench').setLevel(level)


def _client_factory(ctx):
    """Connection factory for the backend selected on the command line."""
    obj = ctx.obj
    url = server_url(obj['host'], obj['port']) if obj['backend'] == 'http' else None
    return get_client_factory(obj['backend'], url)


def _run_with_spinner(suite, patterns):
    """Run the suite, showing a spinner only on an interactive terminal."""
    # Piped output must contain nothing but the report
    if not console.is_terminal:
        return suite.run_matching(patterns)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Running benchmarks...", total=None)
        result = suite.run_matching(patterns)
        progress.update(task, completed=True)
    return result


def _fail(message: str):
    console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output (INFO level)')
@click.option('--debug', is_flag=True, help='Enable debug output (DEBUG level, shows requests)')
@click.option('--host', '-H', default=None, metavar='URI', help='Catalog server host (default: $HMS_HOST or localhost)')
@click.option('--port', '-P', default=None, type=int, help='Catalog server port (default: $HMS_PORT or 9083)')
@click.option('--backend', type=click.Choice(list_backends()), default=Config.CATALOG_BACKEND,
              show_default=True, help='Catalog client backend')
@click.pass_context
def cli(ctx, verbose, debug, host, port, backend):
    """
    Metastore Benchmark Tool

    Measures latency and throughput of catalog operations (databases,
    tables, partitions) against a metadata service.

    Use -v for verbose output, --debug for detailed request logs.
    """
    ctx.ensure_object(dict)
    ctx.obj['host'] = host
    ctx.obj['port'] = port
    ctx.obj['backend'] = backend
    setup_logging(verbose, debug)


def _suite_options(func):
    """Options shared by commands that build the benchmark suite."""
    options = [
        click.option('--number', '-N', 'instances', default=None, type=int, help='Number of object instances'),
        click.option('--threads', '-T', default=None, type=int, help='Number of concurrent threads'),
        click.option('--pattern', '-S', default=None, help='Comma-separated benchmark name patterns'),
        click.argument('patterns', nargs=-1),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@click.option('--db', '-d', 'db_name', required=True, help='Database name')
@click.option('--table', '-t', 'table_name', default=TEST_TABLE, show_default=True, help='Table name')
@_suite_options
@click.option('--spin', '-L', default=None, type=int, help='Measured iterations per benchmark')
@click.option('--warmup', '-W', default=None, type=int, help='Warmup iterations per benchmark')
@click.option('--list', '-l', 'do_list', is_flag=True, help='List matching benchmarks and exit')
@click.option('--output', '-o', default=None, help='Write the report to this file')
@click.option('--sanitize', is_flag=True, help='Sanitize results (remove outliers)')
@click.option('--csv', '-C', 'do_csv', is_flag=True, help='Produce CSV output')
@click.option('--separator', default=DEFAULT_SEPARATOR, help='CSV field separator (default: tab)')
@click.option('--params', 'parameters', default=0, type=int, help='Number of table/partition parameters')
@click.option('--savedata', default=None, help='Save raw data in the specified directory')
@click.option('--scale', type=click.Choice(SCALES), default='ms', show_default=True, help='Display time unit')
@click.option('--json', 'save_json', is_flag=True, help='Also write a JSON summary to the reports directory')
@click.pass_context
def run(ctx, db_name, table_name, instances, threads, pattern, patterns, spin, warmup, do_list,
        output, sanitize, do_csv, separator, parameters, savedata, scale, save_json):
    """
    Run catalog benchmarks.

    Positional arguments are additional name patterns.

    Example:
        python main.py run -d bench -N 10 -L 50 -S Partition
    """
    try:
        config = SuiteConfiguration.from_env(
            scale=TimeScale.parse(scale),
            sanitize=sanitize,
            warmup=warmup,
            spin=spin,
            threads=threads,
            instances=instances,
            parameters=parameters,
            separator=separator,
        )
    except ConfigurationError as e:
        _fail(str(e))

    selected = split_patterns(pattern, patterns)
    data = BenchData(db_name=db_name, table_name=table_name)
    suite = build_suite(config, data)

    if do_list:
        for name in suite.list_matching(selected):
            click.echo(name)
        return

    logger.info(
        f"Using {config.instances} object instances warmup {config.warmup} spin {config.spin} "
        f"nparams {config.parameters} threads {config.threads}"
    )
    logger.info(f"Using table '{db_name}.{table_name}'")

    try:
        factory = _client_factory(ctx)
        with factory() as client:
            data.client = client
            data.client_factory = factory
            prepare_database(data)
            result = _run_with_spinner(suite, selected)
    except (CatalogError, ConfigurationError, ValueError) as e:
        _fail(str(e))

    buffer = io.StringIO()
    if do_csv:
        suite.display_csv(buffer, config.separator)
    else:
        suite.display(buffer)

    try:
        if output:
            suite.reporter().write_report(buffer.getvalue(), output)
            # Print results to stdout as well
            suite.display(sys.stdout)
            console.print(f"📄 Report: [green]{output}[/green]")
        else:
            click.echo(buffer.getvalue(), nl=False)

        if savedata:
            written = suite.reporter().save_data(result, savedata, config.scale)
            console.print(f"📊 Raw data: [green]{len(written)} files in {savedata}[/green]")

        if save_json:
            Config.ensure_directories()
            json_path = Config.REPORT_DIR / f"{get_report_name('metabench')}.json"
            suite.reporter().save_json(result, json_path)
            console.print(f"📊 JSON results: [green]{json_path}[/green]")
    except ReportIOError as e:
        _fail(str(e))

    if suite.failures:
        console.print(f"[yellow]⚠️  Failed benchmarks: {', '.join(suite.failures)}[/yellow]")


@cli.command('list')
@_suite_options
def list_cmd(instances, threads, pattern, patterns):
    """List benchmark names matching the patterns."""
    try:
        config = SuiteConfiguration.from_env(instances=instances, threads=threads)
    except ConfigurationError as e:
        _fail(str(e))

    suite = build_suite(config, BenchData(db_name="default"))
    for name in suite.list_matching(split_patterns(pattern, patterns)):
        click.echo(name)


@cli.group()
def db():
    """Catalog database operations."""


@db.command('list')
@click.option('--db', '-d', 'db_pattern', default=None, help='Database name pattern')
@click.pass_context
def db_list(ctx, db_pattern):
    """List all databases, optionally matching pattern."""
    try:
        with _client_factory(ctx)() as client:
            for name in client.get_all_databases(db_pattern):
                click.echo(name)
    except (CatalogError, ConfigurationError) as e:
        _fail(str(e))


@cli.group()
def table():
    """Catalog table operations."""


@table.command('list')
@click.option('--db', '-d', 'db_pattern', default=None, help='Database name pattern')
@click.option('--table', '-t', 'table_pattern', default=None, help='Table name pattern')
@click.pass_context
def table_list(ctx, db_pattern, table_pattern):
    """List all tables as db.table."""
    try:
        with _client_factory(ctx)() as client:
            for database in client.get_all_databases(db_pattern):
                for name in sorted(client.get_all_tables(database, table_pattern)):
                    click.echo(f"{database}.{name}")
    except (CatalogError, ConfigurationError) as e:
        _fail(str(e))


if __name__ == "__main__":
    cli()
