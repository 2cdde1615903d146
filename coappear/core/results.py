"""
Detection Result Classes.

``DetectionResult`` bundles everything a run produces: the assembled
dataset, the noisy-cell matrix Q, per-record flags and scores, plus the
configuration and timings needed to audit the run.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

import numpy as np
import pandas as pd


@dataclass
class StageTiming:
    """Wall-clock duration of one pipeline stage."""
    stage: str
    duration_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return {'stage': self.stage, 'duration_seconds': round(self.duration_seconds, 6)}


@dataclass
class DetectionResult:
    """
    Complete outcome of a noise detection run.

    Attributes:
        output: Assembled dataset (noisy cells nulled, or with a prepended
            ``Noisy`` column)
        noisy_matrix: Q, read-only int8 array (records x attributes)
        record_noisy: Read-only boolean array, one flag per record
        normalized_scores: Per-(record, attribute) normalized score
        columns: Original attribute names
        domain_sizes: Generalized domain size of each attribute
        column_kinds: Resolved kind name of each attribute
        config: Detection settings used for the run
        stage_timings: Duration of each stage
        start_time: When the run started
        end_time: When the run finished
    """
    output: pd.DataFrame
    noisy_matrix: np.ndarray
    record_noisy: np.ndarray
    normalized_scores: np.ndarray
    columns: Tuple[str, ...]
    domain_sizes: Tuple[int, ...]
    column_kinds: Tuple[str, ...]
    config: Dict[str, Any] = field(default_factory=dict)
    stage_timings: List[StageTiming] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: datetime = field(default_factory=datetime.now)

    @property
    def n_records(self) -> int:
        return self.noisy_matrix.shape[0]

    @property
    def n_attributes(self) -> int:
        return self.noisy_matrix.shape[1]

    @property
    def noisy_record_count(self) -> int:
        """Number of records with at least one noisy value."""
        return int(self.record_noisy.sum())

    @property
    def noisy_cell_count(self) -> int:
        """Number of (record, attribute) cells flagged noisy."""
        return int(self.noisy_matrix.sum())

    @property
    def noisy_counts_by_attribute(self) -> Dict[str, int]:
        """Flagged cells per attribute."""
        counts = self.noisy_matrix.sum(axis=0) if self.n_records else np.zeros(self.n_attributes)
        return {name: int(count) for name, count in zip(self.columns, counts)}

    @property
    def noisy_record_indices(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(self.record_noisy)]

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    def noisy_matrix_frame(self) -> pd.DataFrame:
        """Q as a DataFrame labelled with the original column names."""
        return pd.DataFrame(np.asarray(self.noisy_matrix), columns=list(self.columns))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert result to a JSON-serializable summary.

        The full Q matrix is not included; use ``noisy_matrix_frame`` to
        export it.
        """
        return {
            'records': self.n_records,
            'attributes': self.n_attributes,
            'noisy_records': self.noisy_record_count,
            'noisy_cells': self.noisy_cell_count,
            'noisy_record_indices': self.noisy_record_indices,
            'noisy_cells_by_attribute': self.noisy_counts_by_attribute,
            'attributes_detail': [
                {'name': name, 'kind': kind, 'domain_size': size}
                for name, kind, size in zip(self.columns, self.column_kinds, self.domain_sizes)
            ],
            'config': self.config,
            'stage_timings': [timing.to_dict() for timing in self.stage_timings],
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'duration_seconds': self.duration_seconds,
        }

    def to_json(self, path: str) -> None:
        """Write the summary to a JSON file."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)
