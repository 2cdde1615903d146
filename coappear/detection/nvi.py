"""
Noisy value identification (NVI).

Scores every record against the co-appearance matrix. For each pair of
attributes (j, k) with j < k, the record's values x and y are compared with
their expected co-appearance:

    Exy = (freq(j, x) / A_k) * tau
    Eyx = (freq(k, y) / A_j) * tau

and the actual count Cxy = CAM(j, x, k, y):

    Cxy < Exy and Cxy < Eyx   ->  +2 to both attributes
    Cxy > Exy and Cxy > Eyx   ->  +0
    otherwise (including ties) ->  +1

An attribute whose total, divided by (attributes - 1) * 2, exceeds lambda is
noisy for that record, and so is the record.
"""

from dataclasses import dataclass

import numpy as np

from coappear.core.constants import (
    DEFAULT_COAPPEARANCE_THRESHOLD,
    DEFAULT_COAPPEARANCE_SCORE_THRESHOLD,
    MISSING_CODE,
    STAGE_SCORING,
    THRESHOLD_LOWER_EXCLUSIVE,
    THRESHOLD_UPPER_INCLUSIVE,
)
from coappear.core.exceptions import ConfigValidationError, DimensionMismatchError
from coappear.core.logging_config import get_logger
from coappear.detection.coappearance import CoappearanceMatrix
from coappear.detection.generalizer import GeneralizedDataset

logger = get_logger(__name__)

STRONG_EVIDENCE_POINTS = 2
AMBIGUOUS_EVIDENCE_POINTS = 1
NO_EVIDENCE_POINTS = 0


@dataclass(frozen=True)
class NviResult:
    """
    Outcome of scoring a whole dataset.

    Attributes:
        noisy_matrix: Q, int8 array (records x attributes) of 0/1 flags
        record_noisy: Boolean per record, OR over the record's row of Q
        total_scores: Accumulated integer score per (record, attribute)
        normalized_scores: ``total_scores / ((attributes - 1) * 2)``
    """
    noisy_matrix: np.ndarray
    record_noisy: np.ndarray
    total_scores: np.ndarray
    normalized_scores: np.ndarray

    @property
    def noisy_record_count(self) -> int:
        return int(self.record_noisy.sum())


def pair_points(actual, expected_xy, expected_yx):
    """Points both attributes of a pair accrue (works on scalars and arrays)."""
    strong = (actual < expected_xy) & (actual < expected_yx)
    clear = (actual > expected_xy) & (actual > expected_yx)
    return np.where(strong, STRONG_EVIDENCE_POINTS,
                    np.where(clear, NO_EVIDENCE_POINTS, AMBIGUOUS_EVIDENCE_POINTS))


class NoisyValueIdentifier:
    """
    Decides which cells and records are noisy.

    Example:
        >>> nvi = NoisyValueIdentifier(cam, coappearance_threshold=0.8,
        ...                            coappearance_score_threshold=0.3)
        >>> result = nvi.identify(generalized)
        >>> result.noisy_record_count
        2
    """

    def __init__(
        self,
        cam: CoappearanceMatrix,
        coappearance_threshold: float = DEFAULT_COAPPEARANCE_THRESHOLD,
        coappearance_score_threshold: float = DEFAULT_COAPPEARANCE_SCORE_THRESHOLD
    ):
        """
        Args:
            cam: Finalized co-appearance matrix
            coappearance_threshold: tau, in (0, 1]
            coappearance_score_threshold: lambda, in (0, 1]

        Raises:
            ConfigValidationError: If either threshold is outside (0, 1]
        """
        for field, value in (('coappearance_threshold', coappearance_threshold),
                             ('coappearance_score_threshold', coappearance_score_threshold)):
            if not (THRESHOLD_LOWER_EXCLUSIVE < value <= THRESHOLD_UPPER_INCLUSIVE):
                raise ConfigValidationError(
                    f"{field} must be > 0 and <= 1",
                    field=field,
                    expected='(0, 1]',
                    actual=value
                )
        self.cam = cam
        self.tau = float(coappearance_threshold)
        self.lam = float(coappearance_score_threshold)

    @property
    def max_score(self) -> float:
        """Largest total one attribute can accrue across all its pairings."""
        return (self.cam.n_attributes - 1) * 2.0

    def score_record(self, record: np.ndarray) -> np.ndarray:
        """
        Accumulated score of each attribute for a single record.

        Args:
            record: Value codes of one generalized record

        Returns:
            int64 array with one total per attribute
        """
        n_attributes = self._check_width(len(record))
        domain_sizes = self.cam.domain_sizes
        totals = np.zeros(n_attributes, dtype=np.int64)

        for j in range(n_attributes - 1):
            for k in range(j + 1, n_attributes):
                x = int(record[j])
                y = int(record[k])
                size_j = domain_sizes[j]
                size_k = domain_sizes[k]
                if x == MISSING_CODE or y == MISSING_CODE or size_j == 0 or size_k == 0:
                    continue

                xf = float(self.cam.value_appearance(j, x))
                yf = float(self.cam.value_appearance(k, y))
                expected_xy = (xf / size_k) * self.tau
                expected_yx = (yf / size_j) * self.tau
                actual = self.cam.count(j, x, k, y)

                points = int(pair_points(actual, expected_xy, expected_yx))
                totals[j] += points
                totals[k] += points

        return totals

    def identify_record(self, record: np.ndarray) -> np.ndarray:
        """
        Noisy flags for each attribute of one record.

        Returns:
            int8 array of 0/1 flags (one row of Q)
        """
        totals = self.score_record(record)
        return (self._normalize(totals) > self.lam).astype(np.int8)

    def identify(self, generalized: GeneralizedDataset) -> NviResult:
        """
        Score every record of the generalized dataset.

        Each record's result depends only on the finalized CAM, so records
        are scored together pair by pair; the outcome equals calling
        ``identify_record`` on each record in turn.
        """
        codes = generalized.codes
        n_records, n_attributes = codes.shape
        self._check_width(n_attributes)
        domain_sizes = self.cam.domain_sizes
        totals = np.zeros((n_records, n_attributes), dtype=np.int64)

        for j in range(n_attributes - 1):
            for k in range(j + 1, n_attributes):
                size_j = domain_sizes[j]
                size_k = domain_sizes[k]
                if size_j == 0 or size_k == 0:
                    continue
                both = (codes[:, j] != MISSING_CODE) & (codes[:, k] != MISSING_CODE)
                if not both.any():
                    continue
                x = codes[both, j]
                y = codes[both, k]

                xf = self.cam.value_appearances[j][x].astype(np.float64)
                yf = self.cam.value_appearances[k][y].astype(np.float64)
                expected_xy = (xf / size_k) * self.tau
                expected_yx = (yf / size_j) * self.tau
                actual = self.cam.pair_counts(j, k, x, y)

                points = pair_points(actual, expected_xy, expected_yx).astype(np.int64)
                totals[both, j] += points
                totals[both, k] += points

        normalized = self._normalize(totals)
        noisy_matrix = (normalized > self.lam).astype(np.int8)
        record_noisy = noisy_matrix.any(axis=1) if n_attributes else np.zeros(n_records, dtype=bool)

        for array in (noisy_matrix, record_noisy, totals, normalized):
            array.setflags(write=False)

        logger.info(f"Flagged {int(record_noisy.sum()):,} of {n_records:,} records "
                    f"({int(noisy_matrix.sum()):,} noisy cells)")

        return NviResult(
            noisy_matrix=noisy_matrix,
            record_noisy=record_noisy,
            total_scores=totals,
            normalized_scores=normalized,
        )

    def _normalize(self, totals: np.ndarray) -> np.ndarray:
        # A single attribute has no pairs and therefore no evidence
        if self.cam.n_attributes < 2:
            return np.zeros(totals.shape, dtype=np.float64)
        return totals / self.max_score

    def _check_width(self, width: int) -> int:
        if width != self.cam.n_attributes:
            raise DimensionMismatchError(
                "Record width does not match the co-appearance matrix",
                stage=STAGE_SCORING,
                expected=self.cam.n_attributes,
                actual=width
            )
        return width
