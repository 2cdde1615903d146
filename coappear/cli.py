"""
Command-line interface for coappear.

Provides commands for:
- Detecting noisy values in a dataset
- Writing a sample configuration file
"""

import sys
from pathlib import Path

import click

from coappear import __version__
from coappear.core.config import DetectionConfig
from coappear.core.constants import BINNING_STRATEGIES
from coappear.core.exceptions import CoappearException, ConfigError, DetectionStageError
from coappear.core.logging_config import setup_logging, get_logger
from coappear.core.observers import CLIProgressObserver, LoggingObserver
from coappear.core.pretty_output import PrettyOutput as po
from coappear.detection.column_kinds import ColumnKind
from coappear.detection.detector import NoiseDetector
from coappear.loaders.dataset_io import load_dataset, write_dataset

logger = get_logger(__name__)


SAMPLE_CONFIG = """\
# coappear noise detection configuration
detection:
  # tau: scales the expected co-appearance of two values, (0, 1]
  coappearance_threshold: 0.8
  # lambda: normalized score above which a value is noisy, (0, 1]
  coappearance_score_threshold: 0.3
  # true: replace noisy values with missing values
  # false: keep values and prepend a Noisy indicator column
  make_noisy_missing: true
  binning_strategy: equal_width      # or equal_frequency
  degenerate_columns: single_bin     # or reject
  column_kinds: {}                   # e.g. {signup_date: temporal, zip: categorical}
  max_cam_cells: 50000000

input:
  path: data.csv
  format: csv
  delimiter: null                    # auto-detect

output:
  path: data_cleaned.csv
  noisy_matrix: null                 # optional CSV export of the noisy-cell matrix
  json_summary: null                 # optional JSON summary
"""


def parse_kind_overrides(values):
    """Parse ``COLUMN=KIND`` pairs from the command line."""
    kinds = {}
    for value in values:
        if '=' not in value:
            raise click.BadParameter(f"Expected COLUMN=KIND, got {value!r}", param_hint='--kind')
        column, kind = value.rsplit('=', 1)
        try:
            kinds[column.strip()] = ColumnKind.parse(kind)
        except ValueError:
            raise click.BadParameter(
                f"Unknown kind {kind!r}; use one of {', '.join(k.value for k in ColumnKind)}",
                param_hint='--kind'
            )
    return kinds


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    coappear - detect noisy values through co-appearance analysis.

    Values that appear together with the rest of their record far less
    often than their frequencies predict are flagged as noisy.
    """
    pass


@cli.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Path for the assembled dataset (CSV or Parquet)')
@click.option('--config', '-c', 'config_file', type=click.Path(exists=True, dir_okay=False), help='YAML configuration file')
@click.option('--coappearance-threshold', '-T', type=float, default=None, help='Coappearance threshold (tau), in (0, 1]')
@click.option('--score-threshold', '-L', type=float, default=None, help='Coappearance score threshold (lambda), in (0, 1]')
@click.option('--make-noisy-missing/--indicator', '-M/-I', default=None,
              help='Replace noisy values with missing values, or prepend a Noisy indicator column')
@click.option('--binning', type=click.Choice(BINNING_STRATEGIES), default=None, help='Binning strategy for numeric and temporal columns')
@click.option('--kind', 'kinds', multiple=True, metavar='COLUMN=KIND', help='Override the kind of a column (repeatable)')
@click.option('--noisy-matrix', type=click.Path(dir_okay=False), help='Write the noisy-cell matrix to this CSV file')
@click.option('--json-output', '-j', type=click.Path(dir_okay=False), help='Write a JSON summary to this file')
@click.option('--delimiter', '-d', default=None, help='Column delimiter for CSV input. Use "\\t" for tab.')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default='WARNING', help='Logging level')
@click.option('--log-file', type=click.Path(), help='Optional log file path')
@click.option('--verbose/--quiet', '-v/-q', default=True, help='Verbose output')
def detect(input_file, output, config_file, coappearance_threshold, score_threshold, make_noisy_missing,
           binning, kinds, noisy_matrix, json_output, delimiter, log_level, log_file, verbose):
    """
    Detect noisy values in a dataset.

    INPUT_FILE: CSV or Parquet dataset

    Examples:

    \b
    # Replace noisy values with missing values
    coappear detect data.csv -o cleaned.csv

    \b
    # Flag noisy records instead, with custom thresholds
    coappear detect data.csv -o flagged.csv --indicator -T 0.9 -L 0.4

    \b
    # Parse a text column as dates and export the noisy-cell matrix
    coappear detect data.csv --kind signup=temporal --noisy-matrix q.csv
    """
    setup_logging(level=log_level, log_file=log_file)
    logger.info(f"Starting detection: {input_file}")
    kind_overrides = {name: kind.value for name, kind in parse_kind_overrides(kinds).items()}

    try:
        base = DetectionConfig.from_yaml(config_file) if config_file else None
        config = DetectionConfig.from_options(
            base,
            coappearance_threshold=coappearance_threshold,
            coappearance_score_threshold=score_threshold,
            make_noisy_missing=make_noisy_missing,
            binning_strategy=binning,
            column_kinds=kind_overrides or None,
        )

        if delimiter:
            delimiter = delimiter.encode().decode('unicode_escape')
        df = load_dataset(
            input_file,
            file_format=config.input_format,
            delimiter=delimiter or config.delimiter,
            encoding=config.encoding,
        )

        observers = [CLIProgressObserver(verbose=verbose), LoggingObserver()]
        detector = NoiseDetector(config, observers=observers)
        result = detector.detect(df)

        output = output or config.output_path
        if output:
            write_dataset(result.output, output)
            if verbose:
                po.output_file("Dataset", output)

        noisy_matrix = noisy_matrix or config.noisy_matrix_path
        if noisy_matrix:
            write_dataset(result.noisy_matrix_frame(), noisy_matrix, file_format='csv')
            if verbose:
                po.output_file("Noisy-cell matrix", noisy_matrix)

        json_output = json_output or config.json_summary_path
        if json_output:
            result.to_json(json_output)
            if verbose:
                po.output_file("JSON summary", json_output)

        if not output and verbose:
            po.info("No output path given; the assembled dataset was not written")

        sys.exit(0)

    except ConfigError as e:
        po.error(f"Configuration error: {e.message}")
        sys.exit(1)

    except DetectionStageError as e:
        po.error(f"Detection failed during {e.stage}: {e.message}")
        sys.exit(1)

    except CoappearException as e:
        po.error(f"Error: {e.message}")
        sys.exit(1)

    except Exception as e:
        po.error(f"Unexpected error: {str(e)}")
        if verbose:
            import traceback
            po.blank_line()
            traceback.print_exc()
        sys.exit(1)


@cli.command()
@click.argument('output_path', type=click.Path(dir_okay=False))
def init_config(output_path):
    """
    Write a sample configuration file.

    OUTPUT_PATH: Where to write the YAML file
    """
    path = Path(output_path)
    if path.exists():
        po.error(f"File already exists: {output_path}")
        sys.exit(1)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(SAMPLE_CONFIG, encoding='utf-8')
    except OSError as e:
        po.error(f"Error creating config file: {e}")
        sys.exit(1)
    po.success(f"Sample configuration written to: {output_path}")
    click.echo(f"\nEdit the file, then run:\n  coappear detect data.csv -c {output_path}")


@cli.command()
def version():
    """Show version information."""
    click.echo(f"coappear v{__version__}")
    click.echo("Co-appearance based noisy value detection")


if __name__ == '__main__':
    cli()
