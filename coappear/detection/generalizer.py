"""
Domain generalization.

Reduces every column of a dataset to small-integer categorical codes and
records the resulting domain size of each attribute:

- TEMPORAL: ``round(sqrt(distinct count))`` bins
- NUMERIC: ``round(sqrt(max - min))`` bins
- FREE_TEXT: one code per distinct observed string
- CATEGORICAL: existing categories

The generalized dataset is only used for analysis; the original dataset is
never modified.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from coappear.core.constants import (
    DEFAULT_BINNING_STRATEGY,
    DEFAULT_DEGENERATE_POLICY,
    DEGENERATE_REJECT,
)
from coappear.core.exceptions import GeneralizationError
from coappear.core.logging_config import get_logger
from coappear.detection.column_kinds import ColumnKind, infer_column_kind
from coappear.detection.transforms import (
    bin_column,
    bin_count,
    categorical_codes,
    text_to_categorical,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class GeneralizedDataset:
    """
    Dataset reduced to categorical codes.

    Attributes:
        codes: Read-only int64 array of shape (records, attributes); missing
            cells hold ``MISSING_CODE``
        domain_sizes: Number of codes each attribute can take
        column_kinds: Resolved kind of each attribute
        columns: Attribute names, in dataset order
    """
    codes: np.ndarray
    domain_sizes: Tuple[int, ...]
    column_kinds: Tuple[ColumnKind, ...]
    columns: Tuple[str, ...]

    @property
    def n_records(self) -> int:
        return self.codes.shape[0]

    @property
    def n_attributes(self) -> int:
        return self.codes.shape[1]

    def record(self, index: int) -> np.ndarray:
        """Codes of one record."""
        return self.codes[index]


class DomainGeneralizer:
    """
    Converts each column into a bounded discrete domain.

    Example:
        >>> generalizer = DomainGeneralizer()
        >>> generalized = generalizer.generalize(df)
        >>> generalized.domain_sizes
        (3, 2, 5)
    """

    def __init__(
        self,
        binning_strategy: str = DEFAULT_BINNING_STRATEGY,
        degenerate_columns: str = DEFAULT_DEGENERATE_POLICY,
        column_kinds: Optional[Dict[str, ColumnKind]] = None
    ):
        """
        Args:
            binning_strategy: ``equal_width`` or ``equal_frequency``
            degenerate_columns: ``single_bin`` or ``reject`` for columns whose
                bin rule yields zero bins
            column_kinds: Per-column kind overrides
        """
        self.binning_strategy = binning_strategy
        self.degenerate_columns = degenerate_columns
        self.column_kinds = dict(column_kinds or {})

    def resolve_kinds(self, df: pd.DataFrame) -> List[ColumnKind]:
        """Resolve every column's kind once, before any generalization."""
        unknown = set(self.column_kinds) - {str(c) for c in df.columns}
        if unknown:
            raise GeneralizationError(
                f"Column kind overrides name unknown columns: {', '.join(sorted(unknown))}"
            )
        return [
            infer_column_kind(df.iloc[:, idx], self.column_kinds.get(str(name)))
            for idx, name in enumerate(df.columns)
        ]

    def generalize(self, df: pd.DataFrame) -> GeneralizedDataset:
        """
        Generalize every column of ``df``.

        Args:
            df: Original dataset

        Returns:
            GeneralizedDataset with codes and domain sizes

        Raises:
            GeneralizationError: If any column cannot be generalized; no
                partial output is produced
        """
        kinds = self.resolve_kinds(df)
        n_records, n_attributes = df.shape
        codes = np.empty((n_records, n_attributes), dtype=np.int64)
        domain_sizes = []

        for idx, (name, kind) in enumerate(zip(df.columns, kinds)):
            column_codes, domain_size = self._generalize_column(df.iloc[:, idx], str(name), kind)
            codes[:, idx] = column_codes
            domain_sizes.append(domain_size)
            logger.debug(f"Generalized column '{name}' ({kind.value}) to {domain_size} codes")

        codes.setflags(write=False)
        logger.info(f"Generalized {n_attributes} attributes over {n_records:,} records")

        return GeneralizedDataset(
            codes=codes,
            domain_sizes=tuple(domain_sizes),
            column_kinds=tuple(kinds),
            columns=tuple(str(c) for c in df.columns),
        )

    def _generalize_column(self, series: pd.Series, name: str, kind: ColumnKind) -> Tuple[np.ndarray, int]:
        try:
            if kind is ColumnKind.TEMPORAL:
                return self._generalize_temporal(series, name)
            if kind is ColumnKind.NUMERIC:
                return self._generalize_numeric(series, name)
            if kind is ColumnKind.FREE_TEXT:
                return text_to_categorical(series)
            return categorical_codes(series)
        except GeneralizationError:
            raise
        except (ValueError, TypeError, OverflowError) as e:
            raise GeneralizationError(
                f"Column '{name}' could not be generalized as {kind.value}: {e}",
                column=name,
                original_exception=e
            )

    def _generalize_temporal(self, series: pd.Series, name: str) -> Tuple[np.ndarray, int]:
        if not ptypes.is_datetime64_any_dtype(series.dtype):
            series = pd.to_datetime(series, errors='raise')
        n_bins = self._check_bins(bin_count(series.nunique(dropna=True)), name)
        return bin_column(series, n_bins, self.binning_strategy)

    def _generalize_numeric(self, series: pd.Series, name: str) -> Tuple[np.ndarray, int]:
        if ptypes.is_bool_dtype(series.dtype) or not ptypes.is_numeric_dtype(series.dtype):
            series = pd.to_numeric(series, errors='raise')
        valid = series.dropna()
        if valid.empty:
            spread = 0.0
        else:
            low, high = float(valid.min()), float(valid.max())
            if not (np.isfinite(low) and np.isfinite(high)):
                raise GeneralizationError(
                    f"Column '{name}' contains infinite values and cannot be binned",
                    column=name
                )
            spread = high - low
        n_bins = self._check_bins(bin_count(spread), name)
        return bin_column(series, n_bins, self.binning_strategy)

    def _check_bins(self, n_bins: int, name: str) -> int:
        if n_bins >= 1:
            return n_bins
        if self.degenerate_columns == DEGENERATE_REJECT:
            raise GeneralizationError(
                f"Column '{name}' yields zero bins (range too small to discretize)",
                column=name
            )
        logger.info(f"Column '{name}' yields zero bins; treating it as a single-bin column")
        return 1
