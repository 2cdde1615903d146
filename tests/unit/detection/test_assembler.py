"""
Unit tests for ResultAssembler.
"""

import numpy as np
import pandas as pd
import pytest

from coappear.core.exceptions import AssemblyError, DimensionMismatchError
from coappear.detection.assembler import ResultAssembler


@pytest.fixture
def original():
    return pd.DataFrame({
        'id': [1, 2, 3, 4],
        'name': ['ann', 'bob', 'cat', 'dan'],
        'score': [1.5, 2.5, 3.5, 4.5],
        'joined': pd.to_datetime(['2024-01-01', '2024-02-01', '2024-03-01', '2024-04-01']),
    })


@pytest.mark.unit
class TestMissingValueMode:
    """Flagged cells become missing values."""

    def test_only_flagged_cells_nulled(self, original):
        q = np.zeros((4, 4), dtype=np.int8)
        q[3, 1] = 1

        output = ResultAssembler(make_noisy_missing=True).assemble(original, q, q.any(axis=1))

        assert output.shape == original.shape
        assert pd.isna(output.iloc[3, 1])
        assert output.iloc[:3, 1].tolist() == ['ann', 'bob', 'cat']
        assert output['id'].tolist() == [1, 2, 3, 4]

    def test_integer_column_becomes_nullable(self, original):
        q = np.zeros((4, 4), dtype=np.int8)
        q[0, 0] = 1

        output = ResultAssembler().assemble(original, q, q.any(axis=1))

        assert str(output['id'].dtype) == 'Int64'
        assert output['id'].isna().tolist() == [True, False, False, False]
        assert output['id'].iloc[1] == 2

    def test_datetime_and_float_cells(self, original):
        q = np.zeros((4, 4), dtype=np.int8)
        q[2, 2] = 1
        q[2, 3] = 1

        output = ResultAssembler().assemble(original, q, q.any(axis=1))

        assert np.isnan(output['score'].iloc[2])
        assert output['joined'].iloc[2] is pd.NaT
        assert output['joined'].dtype == original['joined'].dtype

    def test_original_not_modified(self, original):
        before = original.copy()
        q = np.ones((4, 4), dtype=np.int8)

        output = ResultAssembler().assemble(original, q, q.any(axis=1))

        pd.testing.assert_frame_equal(original, before)
        assert output.isna().all().all()

    def test_no_flags_returns_equal_copy(self, original):
        q = np.zeros((4, 4), dtype=np.int8)

        output = ResultAssembler().assemble(original, q, q.any(axis=1))

        pd.testing.assert_frame_equal(output, original)
        assert output is not original


@pytest.mark.unit
class TestIndicatorMode:
    """A Noisy column is prepended and values are kept."""

    def test_indicator_column(self):
        df = pd.DataFrame({'a': range(10), 'b': list('abcdefghij')})
        q = np.zeros((10, 2), dtype=np.int8)
        q[2, 0] = 1
        q[7, 1] = 1

        output = ResultAssembler(make_noisy_missing=False).assemble(df, q, q.any(axis=1))

        assert list(output.columns) == ['Noisy', 'a', 'b']
        assert output.shape == (10, 3)
        assert isinstance(output['Noisy'].dtype, pd.CategoricalDtype)
        assert list(output['Noisy'].cat.categories) == ['False', 'True']
        assert output.index[output['Noisy'] == 'True'].tolist() == [2, 7]
        pd.testing.assert_frame_equal(output[['a', 'b']], df)

    def test_existing_noisy_column(self):
        df = pd.DataFrame({'Noisy': [1, 2], 'b': [3, 4]})
        q = np.zeros((2, 2), dtype=np.int8)

        with pytest.raises(AssemblyError):
            ResultAssembler(make_noisy_missing=False).assemble(df, q, q.any(axis=1))


@pytest.mark.unit
class TestShapeChecks:
    """Q and record flags must match the original."""

    def test_matrix_shape_mismatch(self, original):
        q = np.zeros((3, 4), dtype=np.int8)

        with pytest.raises(DimensionMismatchError) as exc_info:
            ResultAssembler().assemble(original, q, np.zeros(4, dtype=bool))

        assert exc_info.value.stage == 'assembly'

    def test_record_flag_length_mismatch(self, original):
        q = np.zeros((4, 4), dtype=np.int8)

        with pytest.raises(DimensionMismatchError):
            ResultAssembler(make_noisy_missing=False).assemble(original, q, np.zeros(5, dtype=bool))
