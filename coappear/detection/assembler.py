"""
Result assembly.

Builds the final dataset from the *original* (non-generalized) data:

- missing-value mode: every cell flagged in Q becomes a missing value
- indicator mode: values are untouched and a categorical ``Noisy`` column
  ({False, True}) is prepended

The input frame is never modified; a new frame is returned.
"""

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from coappear.core.constants import (
    DEFAULT_MAKE_NOISY_MISSING,
    NOISY_COLUMN_NAME,
    NOISY_FALSE_LABEL,
    NOISY_TRUE_LABEL,
    STAGE_ASSEMBLY,
)
from coappear.core.exceptions import AssemblyError, DimensionMismatchError
from coappear.core.logging_config import get_logger

logger = get_logger(__name__)


def _nullable(series: pd.Series) -> pd.Series:
    """Switch numpy integer/bool columns to pandas nullable dtypes."""
    dtype = series.dtype
    if isinstance(dtype, np.dtype):
        if ptypes.is_bool_dtype(dtype):
            return series.astype('boolean')
        if ptypes.is_unsigned_integer_dtype(dtype):
            return series.astype(f"UInt{dtype.itemsize * 8}")
        if ptypes.is_signed_integer_dtype(dtype):
            return series.astype(f"Int{dtype.itemsize * 8}")
    return series


class ResultAssembler:
    """Packages NVI output into the final dataset."""

    def __init__(self, make_noisy_missing: bool = DEFAULT_MAKE_NOISY_MISSING):
        self.make_noisy_missing = make_noisy_missing

    def assemble(self, original: pd.DataFrame, noisy_matrix: np.ndarray, record_noisy: np.ndarray) -> pd.DataFrame:
        """
        Produce the output dataset.

        Args:
            original: Original dataset, as loaded
            noisy_matrix: Q, records x attributes 0/1 flags
            record_noisy: Per-record noisy flag

        Returns:
            New DataFrame in the configured mode

        Raises:
            DimensionMismatchError: If Q or the record flags do not match
                the original dataset
            AssemblyError: If the indicator column cannot be added
        """
        if noisy_matrix.shape != original.shape:
            raise DimensionMismatchError(
                "Noisy-cell matrix does not match the original dataset",
                stage=STAGE_ASSEMBLY,
                expected=original.shape,
                actual=noisy_matrix.shape
            )
        if len(record_noisy) != len(original):
            raise DimensionMismatchError(
                "Record noisy flags do not match the original dataset",
                stage=STAGE_ASSEMBLY,
                expected=len(original),
                actual=len(record_noisy)
            )

        if self.make_noisy_missing:
            return self.null_noisy_cells(original, noisy_matrix)
        return self.prepend_indicator(original, record_noisy)

    def null_noisy_cells(self, original: pd.DataFrame, noisy_matrix: np.ndarray) -> pd.DataFrame:
        """Replace every flagged cell with a missing value."""
        output = original.copy()
        flags = np.asarray(noisy_matrix).astype(bool)
        for idx in range(output.shape[1]):
            mask = flags[:, idx]
            if not mask.any():
                continue
            column = _nullable(output.iloc[:, idx])
            output.isetitem(idx, column.mask(mask))
        logger.debug(f"Replaced {int(flags.sum()):,} noisy cells with missing values")
        return output

    def prepend_indicator(self, original: pd.DataFrame, record_noisy: np.ndarray) -> pd.DataFrame:
        """Prepend the categorical ``Noisy`` indicator column."""
        if NOISY_COLUMN_NAME in original.columns:
            raise AssemblyError(
                f"Dataset already has a '{NOISY_COLUMN_NAME}' column; cannot add the indicator"
            )
        output = original.copy()
        indicator = pd.Categorical.from_codes(
            np.asarray(record_noisy).astype(np.int8),
            categories=[NOISY_FALSE_LABEL, NOISY_TRUE_LABEL]
        )
        output.insert(0, NOISY_COLUMN_NAME, indicator)
        return output
