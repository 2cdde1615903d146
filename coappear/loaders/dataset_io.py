"""Dataset reading and writing (CSV and Parquet)."""

import csv
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from coappear.core.exceptions import DataLoadError, UnsupportedFormatError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ('csv', 'parquet')

_EXTENSION_FORMATS = {
    '.csv': 'csv',
    '.tsv': 'csv',
    '.txt': 'csv',
    '.parquet': 'parquet',
    '.pq': 'parquet',
}


def detect_delimiter(file_path: str, sample_size: int = 8192) -> str:
    """
    Auto-detect the delimiter used in a CSV file.

    Args:
        file_path: Path to the CSV file
        sample_size: Number of bytes to sample for detection

    Returns:
        Detected delimiter character, defaults to ',' if detection fails
    """
    encodings = ['utf-8', 'utf-8-sig', 'cp1252', 'latin-1']

    for encoding in encodings:
        try:
            with open(file_path, 'r', newline='', encoding=encoding) as f:
                sample = f.read(sample_size)

            sniffer = csv.Sniffer()
            dialect = sniffer.sniff(sample, delimiters=',\t|;:')
            return dialect.delimiter
        except (UnicodeDecodeError, csv.Error):
            continue
        except OSError:
            break

    return ','


def detect_encoding(file_path: str) -> str:
    """
    Detect the encoding of a file by trying common encodings.

    Returns:
        Detected encoding name, defaults to 'utf-8'
    """
    encodings = ['utf-8', 'utf-8-sig', 'cp1252', 'latin-1']

    for encoding in encodings:
        try:
            with open(file_path, 'r', encoding=encoding) as f:
                f.read(8192)
            return encoding
        except UnicodeDecodeError:
            continue

    return 'utf-8'


def resolve_format(file_path: str, file_format: Optional[str] = None) -> str:
    """
    Determine the dataset format from an explicit value or the file extension.

    Raises:
        UnsupportedFormatError: If the format is neither CSV nor Parquet
    """
    if file_format:
        fmt = file_format.lower()
    else:
        fmt = _EXTENSION_FORMATS.get(Path(file_path).suffix.lower(), '')
    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported dataset format for {file_path}: {file_format or Path(file_path).suffix or 'none'}",
            file_path=str(file_path),
            file_format=file_format
        )
    return fmt


def load_dataset(
    file_path: str,
    file_format: Optional[str] = None,
    delimiter: Optional[str] = None,
    encoding: Optional[str] = None
) -> pd.DataFrame:
    """
    Load a complete dataset into memory.

    Detection needs every record before scoring starts, so the file is read
    in one piece rather than in chunks.

    Args:
        file_path: Path to the dataset
        file_format: ``csv`` or ``parquet`` (default: from extension)
        delimiter: CSV delimiter (default: auto-detect)
        encoding: CSV encoding (default: auto-detect)

    Returns:
        DataFrame with the dataset

    Raises:
        DataLoadError: If the file is missing or cannot be parsed
    """
    path = Path(file_path)
    if not path.exists():
        raise DataLoadError(f"Dataset not found: {file_path}", file_path=str(file_path))

    fmt = resolve_format(str(path), file_format)

    if fmt == 'parquet':
        try:
            return pd.read_parquet(path)
        except (OSError, ValueError) as e:
            raise DataLoadError(f"Error loading Parquet file {file_path}: {e}",
                                file_path=str(file_path), original_exception=e)

    if delimiter is None:
        delimiter = detect_delimiter(str(path))
        if delimiter != ',':
            logger.info(f"Auto-detected delimiter: {repr(delimiter)}")
    if encoding is None:
        encoding = detect_encoding(str(path))
        if encoding != 'utf-8':
            logger.info(f"Auto-detected encoding: {encoding}")

    try:
        return pd.read_csv(path, delimiter=delimiter, encoding=encoding, low_memory=False)
    except pd.errors.EmptyDataError as e:
        raise DataLoadError(f"Empty CSV file: {file_path}", file_path=str(file_path), original_exception=e)
    except pd.errors.ParserError as e:
        raise DataLoadError(
            f"CSV parsing error in {file_path}: {e}. "
            f"Check the delimiter (current: {repr(delimiter)}) or quoting.",
            file_path=str(file_path),
            original_exception=e
        )
    except UnicodeDecodeError as e:
        raise DataLoadError(
            f"Encoding error in {file_path}: cannot decode with {encoding}",
            file_path=str(file_path),
            original_exception=e
        )


def write_dataset(df: pd.DataFrame, file_path: str, file_format: Optional[str] = None,
                  delimiter: str = ',') -> None:
    """
    Write a dataset to CSV or Parquet.

    Missing values are written as empty CSV fields.

    Raises:
        DataLoadError: If the file cannot be written
    """
    path = Path(file_path)
    fmt = resolve_format(str(path), file_format)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        if fmt == 'parquet':
            df.to_parquet(path, index=False)
        else:
            df.to_csv(path, sep=delimiter, index=False)
    except (OSError, ValueError) as e:
        raise DataLoadError(f"Error writing dataset {file_path}: {e}",
                            file_path=str(file_path), original_exception=e)
    logger.info(f"Wrote {len(df):,} records to {file_path}")
