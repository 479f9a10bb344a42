"""Command-line interface for Memoria."""

import sys
from pathlib import Path

import click

from .analysis.features import extract_memory_features
from .analysis.pipeline import create_standard_pipeline
from .analysis.results import summarize_r2
from .core.lags import lag_time_series
from .data.generators import SyntheticMemoryGenerator
from .data.loaders import load_time_series, save_time_series
from .exceptions import MemoriaError
from .utils.config import Config, load_default_config, merge_configs
from .utils.io import load_results, save_experiment_config, save_results
from .utils.logging import configure_logging_from_config, set_log_level

SUMMARY_EXTENSIONS = {'hdf5': 'h5', 'pickle': 'pkl', 'json': 'json'}


def _parse_lags(ctx, param, value):
    if value is None:
        return None
    try:
        return [float(v) for v in value.split(',') if v.strip()]
    except ValueError:
        raise click.BadParameter("lags must be comma-separated numbers, e.g. '0,1,2,3'")


def _fail(ctx, message):
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True), help='Configuration file (YAML or JSON)')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, config, verbose):
    """Memoria: ecological memory analysis of time series."""
    user_config = Config.from_file(config) if config else None
    ctx.obj = merge_configs(load_default_config(), user_config, Config.from_env())

    configure_logging_from_config(ctx.obj.to_dict())
    if verbose:
        set_log_level('DEBUG')


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='synthetic.csv',
              help='Output file (.csv, .tsv or .json)')
@click.option('--n', 'n', type=int, default=500, help='Number of rows')
@click.option('--driver-lag', type=float, default=2.0, help='Lag of the driver effect (time units)')
@click.option('--endogenous-weight', type=float, default=0.0, help='Weight of the previous response')
@click.option('--exogenous-weight', type=float, default=1.0, help='Weight of the lagged driver')
@click.option('--noise', type=float, default=0.0, help='Response noise standard deviation')
@click.option('--step', type=float, default=1.0, help='Time resolution')
@click.option('--oldest-sample', type=click.Choice(['first', 'last']), default='first',
              help='Row holding the oldest sample')
@click.option('--driver-smoothing', type=float, default=0.0, help='Driver smoothing (rows)')
@click.option('--seed', type=int, default=42, help='Random seed')
@click.pass_context
def generate(ctx, output, n, driver_lag, endogenous_weight, exogenous_weight, noise, step,
             oldest_sample, driver_smoothing, seed):
    """Generate a synthetic driver/response series with known memory."""
    generator = SyntheticMemoryGenerator(seed=seed)
    try:
        data = generator.generate(
            n=n,
            driver_lag=driver_lag,
            endogenous_weight=endogenous_weight,
            exogenous_weight=exogenous_weight,
            noise=noise,
            step=step,
            oldest_sample=oldest_sample,
            driver_smoothing=driver_smoothing,
        )
        save_time_series(data, output)
    except MemoriaError as e:
        _fail(ctx, e)

    click.echo(f"Saved {len(data)} rows to {output}")


@cli.command()
@click.argument('data_path', type=click.Path(exists=True))
@click.option('--response', '-r', type=str, default=None, help='Response column')
@click.option('--driver', '-d', 'drivers', multiple=True, help='Driver column (repeatable)')
@click.option('--time', '-t', 'time_column', type=str, default=None, help='Time column')
@click.option('--lags', '-l', callback=_parse_lags, default=None, help="Lags, e.g. '0,1,2,3'")
@click.option('--oldest-sample', type=click.Choice(['first', 'last']), default=None,
              help='Row holding the oldest sample')
@click.option('--scale', is_flag=True, default=None, help='Standardize lagged columns')
@click.option('--output', '-o', type=click.Path(), default='lagged.csv', help='Output file')
@click.pass_context
def lag(ctx, data_path, response, drivers, time_column, lags, oldest_sample, scale, output):
    """Write the lagged table of a time series."""
    config = ctx.obj
    try:
        data = load_time_series(data_path)
        lagged = lag_time_series(
            data,
            response=response or config.get('lags.response'),
            drivers=list(drivers) or config.get('lags.drivers'),
            time=time_column or config.get('lags.time', 'time'),
            lags=lags if lags is not None else config.get('lags.lags'),
            oldest_sample=oldest_sample or config.get('lags.oldest_sample', 'first'),
            time_window=config.get('lags.time_window'),
            scale=scale if scale is not None else config.get('lags.scale', False),
        )
        save_time_series(lagged.data, output)
    except (MemoriaError, FileNotFoundError) as e:
        _fail(ctx, e)

    click.echo(f"Saved lagged table ({lagged.n_rows} rows, {len(lagged.columns)} lagged columns) to {output}")


@cli.command()
@click.argument('data_path', type=click.Path(exists=True))
@click.option('--response', '-r', type=str, default=None, help='Response column')
@click.option('--driver', '-d', 'drivers', multiple=True, help='Driver column (repeatable)')
@click.option('--lags', '-l', callback=_parse_lags, default=None, help="Lags, e.g. '0,1,2,3'")
@click.option('--oldest-sample', type=click.Choice(['first', 'last']), default=None,
              help='Row holding the oldest sample')
@click.option('--repetitions', type=int, default=None, help='Number of model fits')
@click.option('--random-mode', type=click.Choice(['autocorrelated', 'white_noise', 'none']),
              default=None, help='Random benchmark')
@click.option('--subset-response', type=click.Choice(['none', 'up', 'down']), default=None,
              help='Model only rows where the response rises or falls next')
@click.option('--n-estimators', type=int, default=None, help='Trees per forest')
@click.option('--workers', type=int, default=None, help='Processes running repetitions')
@click.option('--vif', is_flag=True, default=False, help='Also compute variance inflation factors')
@click.option('--output', '-o', type=click.Path(), default='results', help='Output directory')
@click.option('--format', '-f', type=click.Choice(['hdf5', 'pickle', 'json']),
              default='hdf5', help='Summary format')
@click.pass_context
def analyze(ctx, data_path, response, drivers, lags, oldest_sample, repetitions, random_mode,
            subset_response, n_estimators, workers, vif, output, format):
    """Quantify ecological memory of a time series."""
    overrides = Config()
    for key, value in [
        ('lags.response', response),
        ('lags.drivers', list(drivers) or None),
        ('lags.lags', lags),
        ('lags.oldest_sample', oldest_sample),
        ('memory.repetitions', repetitions),
        ('memory.random_mode', random_mode),
        ('memory.subset_response', subset_response),
        ('memory.n_estimators', n_estimators),
        ('memory.n_workers', workers),
    ]:
        if value is not None:
            overrides.set(key, value)
    if vif:
        overrides.set('diagnostics.vif', True)

    config = merge_configs(ctx.obj, overrides)

    try:
        data = load_time_series(data_path)
        pipe = create_standard_pipeline(config)
    except (MemoriaError, FileNotFoundError) as e:
        _fail(ctx, e)

    click.echo(f"Analyzing {data_path} ({len(data)} rows)...")
    result = pipe.run(data)

    if not result.success:
        click.echo("Analysis failed!", err=True)
        for error in result.errors or []:
            click.echo(f"Error: {error}", err=True)
        ctx.exit(1)

    output_dir = Path(output)
    output_dir.mkdir(parents=True, exist_ok=True)

    summary_file = output_dir / f"summary.{SUMMARY_EXTENSIONS[format]}"
    save_results(result.summary, summary_file, format=format)
    save_results(result.summary, output_dir / 'memory.csv', format='csv')
    if result.features is not None:
        save_results(result.features, output_dir / 'features.csv', format='csv')
    if result.vif is not None:
        save_results(result.vif, output_dir / 'vif.csv', format='csv')
    save_experiment_config(config.to_dict(), output_dir)

    r2 = summarize_r2(result.summary)
    click.echo(f"Pseudo R2: {r2['mean']:.3f} (sd {r2['sd']:.3f})")
    if result.features is not None:
        for key, value in result.features.to_dict().items():
            if key != 'label':
                click.echo(f"  {key}: {value:.3f}")
    click.echo(f"Results saved to {output_dir}")
    click.echo(f"Execution time: {result.execution_time:.2f}s")


@cli.command()
@click.argument('summary_path', type=click.Path(exists=True))
@click.option('--endogenous', '-e', type=str, default=None, help='Endogenous variable')
@click.option('--exogenous', '-x', multiple=True, help='Exogenous variable (repeatable)')
@click.option('--label', type=str, default=None, help='Label of the analyzed unit')
@click.option('--output', '-o', type=click.Path(), default=None, help='Write features to CSV')
@click.pass_context
def features(ctx, summary_path, endogenous, exogenous, label, output):
    """Extract memory features from a saved summary or memory table."""
    try:
        summary = load_results(summary_path)
        extracted = extract_memory_features(
            summary,
            endogenous=endogenous,
            exogenous=list(exogenous) or None,
            label=label,
        )
    except (MemoriaError, ValueError) as e:
        _fail(ctx, e)

    for key, value in extracted.to_dict().items():
        click.echo(f"{key}: {value}" if key == 'label' else f"{key}: {value:.4f}")

    if output is not None:
        save_results(extracted, output, format='csv')
        click.echo(f"Saved to {output}")


@cli.command()
def info():
    """Show system information."""
    import platform

    click.echo("Memoria System Information")
    click.echo("==========================")
    click.echo(f"Python version: {sys.version.split()[0]}")
    click.echo(f"Platform: {platform.platform()}")

    click.echo("\nDependencies:")
    for module_name in ['numpy', 'scipy', 'sklearn', 'pandas', 'h5py', 'pydantic', 'yaml', 'click']:
        try:
            module = __import__(module_name)
            click.echo(f"  - {module_name}: {getattr(module, '__version__', 'unknown')}")
        except ImportError:
            click.echo(f"  - {module_name}: not installed")


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
