"""
Column kind model.

Every column is resolved once, at the start of a run, to exactly one
``ColumnKind``. Each kind has its own generalization rule in
``coappear.detection.generalizer``.
"""

from enum import Enum
from typing import Optional, Union

import pandas as pd
from pandas.api import types as ptypes


class ColumnKind(Enum):
    """
    Closed set of column kinds understood by the generalizer.

    NUMERIC: Continuous numbers, binned by value range
    TEMPORAL: Dates and timestamps, binned by distinct count
    FREE_TEXT: Strings, converted to categories of observed values
    CATEGORICAL: Already discrete, used as-is
    """
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    FREE_TEXT = "free_text"
    CATEGORICAL = "categorical"

    @classmethod
    def parse(cls, value: Union[str, "ColumnKind"]) -> "ColumnKind":
        """
        Parse a kind from its name, accepting a few common aliases.

        Raises:
            ValueError: If the value names no kind
        """
        if isinstance(value, ColumnKind):
            return value
        aliases = {
            'date': cls.TEMPORAL,
            'datetime': cls.TEMPORAL,
            'string': cls.FREE_TEXT,
            'text': cls.FREE_TEXT,
            'nominal': cls.CATEGORICAL,
            'category': cls.CATEGORICAL,
        }
        key = str(value).strip().lower()
        if key in aliases:
            return aliases[key]
        return cls(key)


def infer_column_kind(series: pd.Series, override: Optional[ColumnKind] = None) -> ColumnKind:
    """
    Resolve the kind of a column from its pandas dtype.

    Args:
        series: Column to inspect
        override: Explicit kind from configuration, wins over inference

    Returns:
        The column's kind
    """
    if override is not None:
        return override

    dtype = series.dtype
    if ptypes.is_datetime64_any_dtype(dtype):
        return ColumnKind.TEMPORAL
    if isinstance(dtype, pd.CategoricalDtype) or ptypes.is_bool_dtype(dtype):
        return ColumnKind.CATEGORICAL
    if ptypes.is_numeric_dtype(dtype):
        return ColumnKind.NUMERIC
    return ColumnKind.FREE_TEXT
