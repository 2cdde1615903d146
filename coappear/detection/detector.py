"""
Noise detector - orchestrates the detection pipeline.

The detector runs four stages, each consuming what the previous one returned:

1. Generalization: original dataset -> generalized codes + domain sizes
2. Co-appearance: generalized dataset -> CAM + value appearances
3. Scoring: CAM + generalized dataset -> Q + record flags
4. Assembly: original dataset + Q -> output dataset

Any failure aborts the whole run with a ``DetectionStageError`` naming the
stage. Nothing partial is returned.
"""

import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from coappear.core.config import DetectionConfig
from coappear.core.constants import (
    STAGE_ASSEMBLY,
    STAGE_COAPPEARANCE,
    STAGE_GENERALIZATION,
    STAGE_SCORING,
)
from coappear.core.exceptions import ConfigError, DetectionStageError
from coappear.core.logging_config import get_logger
from coappear.core.observers import DetectionObserver
from coappear.core.results import DetectionResult, StageTiming
from coappear.detection.assembler import ResultAssembler
from coappear.detection.coappearance import CoappearanceMatrixBuilder
from coappear.detection.generalizer import DomainGeneralizer
from coappear.detection.nvi import NoisyValueIdentifier

logger = get_logger(__name__)


class NoiseDetector:
    """
    Detects noisy values through co-appearance analysis.

    Example usage:
        # From config file
        detector = NoiseDetector.from_config('detection.yaml')
        result = detector.detect(df)

        # Inspect Q
        result.noisy_matrix_frame()
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        observers: Optional[List[DetectionObserver]] = None
    ) -> None:
        """
        Initialize the detector.

        Args:
            config: Detection configuration (defaults apply when omitted)
            observers: Optional list of observers to receive pipeline events
        """
        self.config: DetectionConfig = config or DetectionConfig()
        self.observers: List[DetectionObserver] = observers if observers is not None else []

    @classmethod
    def from_config(cls, config_path: str, observers: Optional[List[DetectionObserver]] = None) -> "NoiseDetector":
        """
        Create detector from YAML configuration file.

        Raises:
            ConfigError: If configuration is invalid
        """
        return cls(DetectionConfig.from_yaml(config_path), observers=observers)

    def _notify(self, event: str, *args: Any) -> None:
        for observer in self.observers:
            try:
                getattr(observer, event)(*args)
            except Exception as e:
                logger.warning(f"Observer {observer.__class__.__name__} failed {event}: {e}")

    def _run_stage(self, stage: str, timings: List[StageTiming], func: Callable, *args: Any) -> Any:
        self._notify('on_stage_start', stage)
        started = time.perf_counter()
        try:
            value = func(*args)
        except (DetectionStageError, ConfigError) as e:
            self._notify('on_error', e, {'stage': stage})
            raise
        except Exception as e:
            wrapped = DetectionStageError(
                f"Unexpected failure: {e}",
                stage=stage,
                original_exception=e
            )
            self._notify('on_error', wrapped, {'stage': stage})
            raise wrapped from e
        duration = time.perf_counter() - started
        timings.append(StageTiming(stage=stage, duration_seconds=duration))
        logger.debug(f"Stage {stage} finished in {duration:.3f}s")
        self._notify('on_stage_complete', stage, duration)
        return value

    def detect(self, df: pd.DataFrame) -> DetectionResult:
        """
        Run the full pipeline on a dataset.

        Args:
            df: Original dataset; it is not modified

        Returns:
            DetectionResult with the assembled output and Q

        Raises:
            DetectionStageError: If any stage fails
        """
        config = self.config
        start_time = datetime.now()
        timings: List[StageTiming] = []
        logger.info(f"Starting noise detection on {df.shape[0]:,} records x {df.shape[1]} attributes "
                    f"(tau={config.coappearance_threshold}, lambda={config.coappearance_score_threshold})")
        self._notify('on_run_start', df.shape[0], df.shape[1])

        generalizer = DomainGeneralizer(
            binning_strategy=config.binning_strategy,
            degenerate_columns=config.degenerate_columns,
            column_kinds=config.column_kinds,
        )
        generalized = self._run_stage(STAGE_GENERALIZATION, timings, generalizer.generalize, df)

        builder = CoappearanceMatrixBuilder(
            max_cam_cells=config.max_cam_cells,
            dense_block_limit=config.dense_block_limit,
        )
        cam = self._run_stage(STAGE_COAPPEARANCE, timings, builder.build, generalized)

        def score():
            nvi = NoisyValueIdentifier(
                cam,
                coappearance_threshold=config.coappearance_threshold,
                coappearance_score_threshold=config.coappearance_score_threshold,
            )
            return nvi.identify(generalized)

        nvi_result = self._run_stage(STAGE_SCORING, timings, score)

        assembler = ResultAssembler(make_noisy_missing=config.make_noisy_missing)
        output = self._run_stage(
            STAGE_ASSEMBLY, timings, assembler.assemble,
            df, nvi_result.noisy_matrix, nvi_result.record_noisy
        )

        result = DetectionResult(
            output=output,
            noisy_matrix=nvi_result.noisy_matrix,
            record_noisy=nvi_result.record_noisy,
            normalized_scores=nvi_result.normalized_scores,
            columns=generalized.columns,
            domain_sizes=generalized.domain_sizes,
            column_kinds=tuple(kind.value for kind in generalized.column_kinds),
            config=config.to_dict(),
            stage_timings=timings,
            start_time=start_time,
            end_time=datetime.now(),
        )
        self._notify('on_run_complete', result)
        return result


def detect_noise(df: pd.DataFrame, **options: Any) -> DetectionResult:
    """
    Run noise detection with keyword options.

    Args:
        df: Dataset to analyze
        **options: Keys of the ``detection`` configuration section, e.g.
            ``coappearance_threshold=0.9, make_noisy_missing=False``

    Returns:
        DetectionResult

    Raises:
        ConfigError: If an option is invalid
        DetectionStageError: If a pipeline stage fails
    """
    config = DetectionConfig.from_options(**options)
    return NoiseDetector(config).detect(df)
