"""
Unit tests for noisy value identification.

Worked example used throughout: 20 records over two binary attributes,
10 x (0, 0), 9 x (1, 1) and a single (0, 1). With tau = 0.8 the lone record
has Exy = (11 / 2) * 0.8 = 4.4, Eyx = (10 / 2) * 0.8 = 4.0 and an actual
co-appearance of 1, so both of its values score 2 of a possible 2.
"""

import numpy as np
import pytest

from coappear.core.constants import MISSING_CODE
from coappear.core.exceptions import ConfigValidationError, DimensionMismatchError
from coappear.detection.coappearance import CoappearanceMatrixBuilder
from coappear.detection.column_kinds import ColumnKind
from coappear.detection.generalizer import GeneralizedDataset
from coappear.detection.nvi import NoisyValueIdentifier, pair_points


def make_generalized(rows, domain_sizes):
    codes = np.asarray(rows, dtype=np.int64)
    codes.setflags(write=False)
    n_attributes = codes.shape[1]
    return GeneralizedDataset(
        codes=codes,
        domain_sizes=tuple(domain_sizes),
        column_kinds=(ColumnKind.CATEGORICAL,) * n_attributes,
        columns=tuple(f"a{i}" for i in range(n_attributes)),
    )


def make_identifier(dataset, tau=0.8, lam=0.3):
    cam = CoappearanceMatrixBuilder().build(dataset)
    return NoisyValueIdentifier(cam, coappearance_threshold=tau, coappearance_score_threshold=lam)


@pytest.fixture
def outlier_dataset():
    """10 x (0,0), 9 x (1,1), then one (0,1) at index 19."""
    return make_generalized([[0, 0]] * 10 + [[1, 1]] * 9 + [[0, 1]], (2, 2))


@pytest.fixture
def tie_dataset():
    """With tau = 1 record (0,0) has Cxy == Exy == 2."""
    return make_generalized([[0, 0], [0, 0], [0, 1], [0, 1]], (2, 2))


@pytest.mark.unit
class TestPairPoints:
    """Test the three-way scoring rule."""

    def test_below_both(self):
        assert int(pair_points(1, 4.4, 4.0)) == 2

    def test_above_both(self):
        assert int(pair_points(10, 4.4, 4.0)) == 0

    def test_between(self):
        assert int(pair_points(3, 2.0, 4.0)) == 1

    def test_ties_are_ambiguous(self):
        assert int(pair_points(2, 2.0, 1.0)) == 1
        assert int(pair_points(2, 2.0, 2.0)) == 1
        assert int(pair_points(2, 3.0, 2.0)) == 1

    def test_vectorized(self):
        points = pair_points(np.array([1, 10, 3]), np.array([4.4, 4.4, 2.0]), np.array([4.0, 4.0, 4.0]))

        assert points.tolist() == [2, 0, 1]


@pytest.mark.unit
class TestWorkedExample:
    """Test the 20-record example end to end."""

    def test_outlier_record_scores(self, outlier_dataset):
        nvi = make_identifier(outlier_dataset)

        assert nvi.score_record(outlier_dataset.record(19)).tolist() == [2, 2]
        assert nvi.identify_record(outlier_dataset.record(19)).tolist() == [1, 1]

    def test_typical_records_score_zero(self, outlier_dataset):
        nvi = make_identifier(outlier_dataset)

        assert nvi.score_record(outlier_dataset.record(0)).tolist() == [0, 0]
        assert nvi.score_record(outlier_dataset.record(10)).tolist() == [0, 0]

    def test_identify(self, outlier_dataset):
        result = make_identifier(outlier_dataset).identify(outlier_dataset)

        expected = np.zeros((20, 2), dtype=np.int8)
        expected[19] = 1
        np.testing.assert_array_equal(result.noisy_matrix, expected)
        assert np.flatnonzero(result.record_noisy).tolist() == [19]
        assert result.noisy_record_count == 1
        assert result.normalized_scores[19].tolist() == [1.0, 1.0]
        assert result.noisy_matrix.dtype == np.int8

    def test_outputs_are_read_only(self, outlier_dataset):
        result = make_identifier(outlier_dataset).identify(outlier_dataset)

        assert not result.noisy_matrix.flags.writeable
        assert not result.record_noisy.flags.writeable

    def test_unique_pair_with_own_count_not_flagged(self):
        # The lone (1,1) still co-appears with itself once, above Exy = 0.4
        dataset = make_generalized([[0, 0]] * 9 + [[1, 1]], (2, 2))

        result = make_identifier(dataset, tau=0.8, lam=0.3).identify(dataset)

        assert result.noisy_record_count == 0

    def test_unique_pair_tau_one_not_flagged(self):
        dataset = make_generalized([[0, 0]] * 9 + [[1, 1]], (2, 2))

        result = make_identifier(dataset, tau=1.0, lam=0.3).identify(dataset)

        assert result.noisy_matrix.sum() == 0


@pytest.mark.unit
class TestThresholdBoundaries:
    """Test tie handling and the strict lambda comparison."""

    def test_tie_scores_one_point(self, tie_dataset):
        nvi = make_identifier(tie_dataset, tau=1.0, lam=0.3)

        assert nvi.score_record(tie_dataset.record(0)).tolist() == [1, 1]

    def test_tie_flagged_below_half(self, tie_dataset):
        result = make_identifier(tie_dataset, tau=1.0, lam=0.3).identify(tie_dataset)

        assert result.normalized_scores[0].tolist() == [0.5, 0.5]
        assert bool(result.record_noisy[0]) is True

    def test_score_equal_to_lambda_not_flagged(self, tie_dataset):
        result = make_identifier(tie_dataset, tau=1.0, lam=0.5).identify(tie_dataset)

        assert result.noisy_record_count == 0

    def test_maximum_score_not_flagged_at_lambda_one(self, outlier_dataset):
        result = make_identifier(outlier_dataset, lam=1.0).identify(outlier_dataset)

        assert result.noisy_record_count == 0


@pytest.mark.unit
class TestProperties:
    """Structural properties that hold for any input."""

    @pytest.fixture
    def random_dataset(self):
        rng = np.random.default_rng(11)
        domain_sizes = (3, 4, 2, 5)
        rows = np.column_stack([rng.integers(0, size, 150) for size in domain_sizes])
        return make_generalized(rows, domain_sizes)

    def test_batch_matches_single_records(self, random_dataset):
        nvi = make_identifier(random_dataset, tau=0.7, lam=0.4)
        result = nvi.identify(random_dataset)

        for index in range(random_dataset.n_records):
            record = random_dataset.record(index)
            assert result.total_scores[index].tolist() == nvi.score_record(record).tolist()
            assert result.noisy_matrix[index].tolist() == nvi.identify_record(record).tolist()

    def test_record_flag_is_row_or(self, random_dataset):
        result = make_identifier(random_dataset).identify(random_dataset)

        np.testing.assert_array_equal(result.record_noisy, result.noisy_matrix.any(axis=1))

    def test_scores_bounded(self, random_dataset):
        result = make_identifier(random_dataset).identify(random_dataset)

        assert result.normalized_scores.min() >= 0.0
        assert result.normalized_scores.max() <= 1.0

    def test_higher_lambda_flags_subset(self, random_dataset):
        cam = CoappearanceMatrixBuilder().build(random_dataset)
        loose = NoisyValueIdentifier(cam, 0.8, 0.2).identify(random_dataset)
        strict = NoisyValueIdentifier(cam, 0.8, 0.6).identify(random_dataset)

        assert np.all(strict.noisy_matrix <= loose.noisy_matrix)

    def test_max_score(self, random_dataset):
        assert make_identifier(random_dataset).max_score == 6.0


@pytest.mark.unit
class TestEdgeCases:
    """Degenerate inputs."""

    def test_single_attribute_never_flagged(self):
        dataset = make_generalized([[0], [0], [1]], (2,))

        result = make_identifier(dataset).identify(dataset)

        assert result.noisy_record_count == 0
        assert result.normalized_scores.tolist() == [[0.0], [0.0], [0.0]]

    def test_missing_cells_never_flagged(self):
        dataset = make_generalized(
            [[0, 0]] * 10 + [[1, 1]] * 9 + [[0, MISSING_CODE]],
            (2, 2)
        )

        result = make_identifier(dataset).identify(dataset)

        assert result.noisy_matrix[19].tolist() == [0, 0]
        assert result.total_scores[19].tolist() == [0, 0]

    def test_empty_domain_pair_skipped(self):
        dataset = make_generalized([[0, MISSING_CODE], [1, MISSING_CODE]], (2, 0))

        nvi = make_identifier(dataset)

        assert nvi.identify(dataset).total_scores.sum() == 0
        assert nvi.score_record(dataset.record(0)).tolist() == [0, 0]

    def test_width_mismatch(self, outlier_dataset):
        nvi = make_identifier(outlier_dataset)

        with pytest.raises(DimensionMismatchError) as exc_info:
            nvi.score_record(np.array([0, 0, 0]))

        assert exc_info.value.stage == 'scoring'

    def test_dataset_width_mismatch(self, outlier_dataset):
        nvi = make_identifier(outlier_dataset)
        wider = make_generalized([[0, 0, 0]], (2, 2, 2))

        with pytest.raises(DimensionMismatchError):
            nvi.identify(wider)

    @pytest.mark.parametrize("tau,lam", [(0, 0.3), (1.2, 0.3), (0.8, 0), (0.8, -0.5), (0.8, 1.01)])
    def test_invalid_thresholds(self, outlier_dataset, tau, lam):
        cam = CoappearanceMatrixBuilder().build(outlier_dataset)

        with pytest.raises(ConfigValidationError):
            NoisyValueIdentifier(cam, coappearance_threshold=tau, coappearance_score_threshold=lam)
