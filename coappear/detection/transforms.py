"""
Column transforms used by the generalizer.

These are the discretization and string-to-categorical steps. Each returns a
tuple of ``(codes, domain_size)`` where ``codes`` is an int64 array with
values in ``0..domain_size-1`` and ``MISSING_CODE`` for missing cells.
Transforms are deterministic for identical input and configuration.
"""

import math
from typing import Tuple

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from coappear.core.constants import (
    BINNING_EQUAL_WIDTH,
    BINNING_EQUAL_FREQUENCY,
    MISSING_CODE,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def bin_count(spread: float) -> int:
    """Number of bins for a column: ``round(sqrt(spread))``."""
    if spread < 0 or not math.isfinite(spread):
        raise ValueError(f"Cannot derive a bin count from spread {spread!r}")
    return round_half_up(math.sqrt(spread))


def _scatter(mask: np.ndarray, valid_codes: np.ndarray) -> np.ndarray:
    codes = np.full(mask.shape[0], MISSING_CODE, dtype=np.int64)
    codes[mask] = valid_codes
    return codes


def temporal_to_numeric(series: pd.Series) -> pd.Series:
    """Integer timestamps (epoch units of the dtype) for the non-missing cells."""
    values = series[series.notna()]
    if getattr(values.dt, 'tz', None) is not None:
        values = values.dt.tz_convert('UTC').dt.tz_localize(None)
    return values.astype('int64')


def bin_column(series: pd.Series, n_bins: int, strategy: str = BINNING_EQUAL_WIDTH) -> Tuple[np.ndarray, int]:
    """
    Discretize a numeric or temporal column into ``n_bins`` bins.

    Args:
        series: Column to bin
        n_bins: Target number of bins (>= 1)
        strategy: ``equal_width`` or ``equal_frequency``

    Returns:
        Tuple of (codes, domain_size). Under ``equal_frequency`` duplicate
        quantile edges are dropped, so the domain may be smaller than
        ``n_bins``.

    Raises:
        ValueError: If the bin count or strategy is invalid
    """
    if n_bins < 1:
        raise ValueError(f"Bin count must be at least 1, got {n_bins}")

    mask = series.notna().to_numpy()
    if not mask.any():
        return _scatter(mask, np.empty(0, dtype=np.int64)), n_bins

    if ptypes.is_datetime64_any_dtype(series.dtype):
        values = temporal_to_numeric(series).to_numpy(dtype=np.float64)
    else:
        values = series[mask].to_numpy(dtype=np.float64)

    if n_bins == 1:
        return _scatter(mask, np.zeros(values.shape[0], dtype=np.int64)), 1

    if strategy == BINNING_EQUAL_WIDTH:
        binned = pd.cut(values, bins=n_bins, labels=False)
        return _scatter(mask, np.asarray(binned, dtype=np.int64)), n_bins

    if strategy == BINNING_EQUAL_FREQUENCY:
        if np.unique(values).shape[0] == 1:
            return _scatter(mask, np.zeros(values.shape[0], dtype=np.int64)), 1
        binned, edges = pd.qcut(values, q=n_bins, labels=False, retbins=True, duplicates='drop')
        domain_size = max(len(edges) - 1, 1)
        binned = np.nan_to_num(np.asarray(binned, dtype=np.float64), nan=0.0)
        return _scatter(mask, binned.astype(np.int64)), domain_size

    raise ValueError(f"Unknown binning strategy: {strategy!r}")


def text_to_categorical(series: pd.Series) -> Tuple[np.ndarray, int]:
    """
    Convert a string column into categorical codes.

    The domain is the set of distinct observed values, numbered in order of
    first appearance.
    """
    codes, uniques = pd.factorize(series, sort=False, use_na_sentinel=True)
    return codes.astype(np.int64), len(uniques)


def categorical_codes(series: pd.Series) -> Tuple[np.ndarray, int]:
    """
    Codes for an already-categorical column.

    Pandas categoricals keep their declared categories (unused categories
    still count towards the domain). Booleans use the domain {False, True}.
    Any other dtype declared categorical is numbered by sorted distinct value.
    """
    if isinstance(series.dtype, pd.CategoricalDtype):
        return series.cat.codes.to_numpy(dtype=np.int64), len(series.cat.categories)

    if ptypes.is_bool_dtype(series.dtype):
        mask = series.notna().to_numpy()
        valid = series[mask].to_numpy(dtype=bool).astype(np.int64)
        return _scatter(mask, valid), 2

    codes, uniques = pd.factorize(series, sort=True, use_na_sentinel=True)
    return codes.astype(np.int64), len(uniques)
