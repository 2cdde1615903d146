"""
Integration tests for the full detection pipeline.

Runs NoiseDetector end to end on small frames whose outcome can be worked
out by hand.
"""

import json

import numpy as np
import pandas as pd
import pytest

from coappear import DetectionConfig, NoiseDetector, detect_noise
from coappear.core.exceptions import (
    ConfigValidationError,
    DetectionStageError,
    GeneralizationError,
    ResourceLimitError,
)
from coappear.core.observers import DetectionObserver, QuietObserver
from coappear.detection.generalizer import DomainGeneralizer


@pytest.fixture
def survey_df():
    """20 records; record 19 pairs 'north' with 'tea', which nobody else does."""
    return pd.DataFrame({
        'region': ['north'] * 10 + ['south'] * 9 + ['north'],
        'drink': ['coffee'] * 10 + ['tea'] * 9 + ['tea'],
    })


class RecordingObserver(DetectionObserver):
    """Keeps every event in order."""

    def __init__(self):
        self.events = []

    def on_run_start(self, n_records, n_attributes):
        self.events.append(('run_start', n_records, n_attributes))

    def on_stage_start(self, stage):
        self.events.append(('stage_start', stage))

    def on_stage_complete(self, stage, duration_seconds):
        self.events.append(('stage_complete', stage))

    def on_run_complete(self, result):
        self.events.append(('run_complete', result.noisy_record_count))

    def on_error(self, error, context):
        self.events.append(('error', context['stage']))


class ExplodingObserver(QuietObserver):
    def on_stage_start(self, stage):
        raise RuntimeError("observer failure")


@pytest.mark.integration
class TestMissingValueMode:
    """Default mode: noisy cells become missing."""

    def test_outlier_values_nulled(self, survey_df):
        result = NoiseDetector().detect(survey_df)

        assert result.noisy_record_indices == [19]
        assert result.output.shape == survey_df.shape
        assert result.output.iloc[19].isna().all()
        assert result.output.iloc[:19].notna().all().all()

    def test_result_metadata(self, survey_df):
        result = NoiseDetector().detect(survey_df)

        assert result.n_records == 20
        assert result.n_attributes == 2
        assert result.noisy_cell_count == 2
        assert result.noisy_counts_by_attribute == {'region': 1, 'drink': 1}
        assert result.domain_sizes == (2, 2)
        assert result.column_kinds == ('free_text', 'free_text')
        assert [t.stage for t in result.stage_timings] == [
            'generalization', 'coappearance', 'scoring', 'assembly'
        ]
        assert result.duration_seconds >= 0

    def test_input_not_modified(self, survey_df):
        before = survey_df.copy()

        NoiseDetector().detect(survey_df)

        pd.testing.assert_frame_equal(survey_df, before)

    def test_deterministic(self, survey_df):
        first = NoiseDetector().detect(survey_df)
        second = NoiseDetector().detect(survey_df)

        np.testing.assert_array_equal(first.noisy_matrix, second.noisy_matrix)
        pd.testing.assert_frame_equal(first.output, second.output)


@pytest.mark.integration
class TestIndicatorMode:
    """Indicator mode keeps values and prepends Noisy."""

    def test_indicator(self, survey_df):
        config = DetectionConfig.from_options(make_noisy_missing=False)

        result = NoiseDetector(config).detect(survey_df)

        assert list(result.output.columns) == ['Noisy', 'region', 'drink']
        assert result.output.shape == (20, 3)
        assert result.output['Noisy'].tolist() == ['False'] * 19 + ['True']
        pd.testing.assert_frame_equal(result.output[['region', 'drink']], survey_df)

    def test_detect_noise_options(self, survey_df):
        result = detect_noise(survey_df, make_noisy_missing=False, coappearance_score_threshold=0.9)

        assert result.output['Noisy'].tolist()[-1] == 'True'

    def test_lambda_one_flags_nothing(self, survey_df):
        result = detect_noise(survey_df, coappearance_score_threshold=1.0)

        assert result.noisy_record_count == 0
        pd.testing.assert_frame_equal(result.output, survey_df)


@pytest.mark.integration
class TestMonotonicity:
    """Raising lambda never adds flags."""

    def test_lambda_monotonic(self):
        rng = np.random.default_rng(3)
        df = pd.DataFrame({
            'amount': rng.normal(100, 25, 300).round(2),
            'channel': rng.choice(['web', 'store', 'phone'], 300),
            'day': pd.to_datetime('2024-01-01') + pd.to_timedelta(rng.integers(0, 60, 300), unit='D'),
        })

        previous = None
        for lam in (0.1, 0.3, 0.5, 0.7, 0.9):
            q = detect_noise(df, coappearance_score_threshold=lam).noisy_matrix
            if previous is not None:
                assert np.all(q <= previous)
            previous = q


@pytest.mark.integration
class TestStageFailures:
    """Failures abort the run and name their stage."""

    def test_reject_degenerate_column(self, survey_df):
        df = survey_df.assign(constant=7)
        config = DetectionConfig.from_options(degenerate_columns='reject')

        with pytest.raises(GeneralizationError) as exc_info:
            NoiseDetector(config).detect(df)

        assert exc_info.value.stage == 'generalization'
        assert exc_info.value.column == 'constant'

    def test_resource_limit(self, survey_df):
        config = DetectionConfig.from_options(max_cam_cells=3)

        with pytest.raises(ResourceLimitError) as exc_info:
            NoiseDetector(config).detect(survey_df)

        assert exc_info.value.stage == 'coappearance'

    def test_unexpected_error_wrapped(self, survey_df, monkeypatch):
        def broken(self, df):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(DomainGeneralizer, 'generalize', broken)

        with pytest.raises(DetectionStageError) as exc_info:
            NoiseDetector().detect(survey_df)

        assert exc_info.value.stage == 'generalization'
        assert isinstance(exc_info.value.original_exception, RuntimeError)
        assert str(exc_info.value).startswith('[generalization]')

    def test_invalid_threshold_option(self, survey_df):
        with pytest.raises(ConfigValidationError):
            detect_noise(survey_df, coappearance_threshold=0)


@pytest.mark.integration
class TestObservers:
    """Observers see every stage in order."""

    def test_event_order(self, survey_df):
        observer = RecordingObserver()

        NoiseDetector(observers=[observer]).detect(survey_df)

        assert observer.events == [
            ('run_start', 20, 2),
            ('stage_start', 'generalization'), ('stage_complete', 'generalization'),
            ('stage_start', 'coappearance'), ('stage_complete', 'coappearance'),
            ('stage_start', 'scoring'), ('stage_complete', 'scoring'),
            ('stage_start', 'assembly'), ('stage_complete', 'assembly'),
            ('run_complete', 1),
        ]

    def test_error_event(self, survey_df):
        observer = RecordingObserver()
        config = DetectionConfig.from_options(max_cam_cells=3)

        with pytest.raises(ResourceLimitError):
            NoiseDetector(config, observers=[observer]).detect(survey_df)

        assert observer.events[-1] == ('error', 'coappearance')
        assert ('stage_start', 'scoring') not in observer.events

    def test_failing_observer_does_not_abort(self, survey_df):
        result = NoiseDetector(observers=[ExplodingObserver()]).detect(survey_df)

        assert result.noisy_record_count == 1


@pytest.mark.integration
class TestResultExport:
    """Test result serialization."""

    def test_to_dict(self, survey_df):
        summary = NoiseDetector().detect(survey_df).to_dict()

        assert summary['records'] == 20
        assert summary['noisy_records'] == 1
        assert summary['noisy_record_indices'] == [19]
        assert summary['attributes_detail'][0] == {'name': 'region', 'kind': 'free_text', 'domain_size': 2}
        assert summary['config']['coappearance_threshold'] == 0.8
        json.dumps(summary)

    def test_to_json(self, survey_df, tmp_path):
        path = tmp_path / "out" / "summary.json"

        NoiseDetector().detect(survey_df).to_json(str(path))

        data = json.loads(path.read_text(encoding='utf-8'))
        assert data['noisy_cells'] == 2

    def test_noisy_matrix_frame(self, survey_df):
        frame = NoiseDetector().detect(survey_df).noisy_matrix_frame()

        assert list(frame.columns) == ['region', 'drink']
        assert frame.iloc[19].tolist() == [1, 1]
        assert frame.to_numpy().sum() == 2
