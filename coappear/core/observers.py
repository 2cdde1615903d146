"""
Observer Pattern for Detector Event Notifications.

Decouples the noise detector from output formatting and progress reporting.
The detector only announces lifecycle events; observers decide whether to
print, log, or stay silent.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any

from coappear.core.constants import PIPELINE_STAGES
from coappear.core.results import DetectionResult


class DetectionObserver(ABC):
    """
    Abstract base class for detector event observers.

    All methods are called synchronously by the detector.

    Example:
        >>> class StageTimer(DetectionObserver):
        ...     def on_stage_complete(self, stage, duration_seconds):
        ...         print(f"{stage}: {duration_seconds:.2f}s")
        ...     # remaining hooks omitted
    """

    @abstractmethod
    def on_run_start(self, n_records: int, n_attributes: int) -> None:
        """
        Called before generalization begins.

        Args:
            n_records: Records in the dataset
            n_attributes: Attributes in the dataset
        """
        pass

    @abstractmethod
    def on_stage_start(self, stage: str) -> None:
        """Called when a pipeline stage starts."""
        pass

    @abstractmethod
    def on_stage_complete(self, stage: str, duration_seconds: float) -> None:
        """Called when a pipeline stage finishes."""
        pass

    @abstractmethod
    def on_run_complete(self, result: DetectionResult) -> None:
        """Called with the final result."""
        pass

    @abstractmethod
    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        """
        Called when a stage fails, before the error propagates.

        Args:
            error: The exception raised
            context: At least ``{'stage': name}``
        """
        pass


class CLIProgressObserver(DetectionObserver):
    """
    Observer for CLI pretty output and progress reporting.

    Attributes:
        verbose (bool): Whether to show progress
        po (PrettyOutput): Pretty output utility class
    """

    STAGE_LABELS = {
        'generalization': 'Generalizing attribute domains',
        'coappearance': 'Building co-appearance matrix',
        'scoring': 'Scoring records',
        'assembly': 'Assembling output',
    }

    def __init__(self, verbose: bool = True):
        self.verbose = verbose

        # Import here to avoid circular dependency
        from coappear.core.pretty_output import PrettyOutput
        self.po = PrettyOutput

    def on_run_start(self, n_records: int, n_attributes: int) -> None:
        if self.verbose:
            self.po.header("NOISE DETECTION")
            self.po.key_value("Records", f"{n_records:,}", indent=2)
            self.po.key_value("Attributes", n_attributes, indent=2)

    def on_stage_start(self, stage: str) -> None:
        if self.verbose:
            label = self.STAGE_LABELS.get(stage, stage)
            if stage in PIPELINE_STAGES:
                label = f"[{PIPELINE_STAGES.index(stage) + 1}/{len(PIPELINE_STAGES)}] {label}"
            self.po.task_start(label)

    def on_stage_complete(self, stage: str, duration_seconds: float) -> None:
        if self.verbose:
            self.po.task_complete(f"{stage} done", duration=duration_seconds)

    def on_run_complete(self, result: DetectionResult) -> None:
        if self.verbose:
            self.po.detection_summary(result)

    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        if self.verbose:
            self.po.error(f"Stage '{context.get('stage', 'unknown')}' failed: {error}")


class LoggingObserver(DetectionObserver):
    """
    Observer for structured logging of detection events.

    Attributes:
        logger (logging.Logger): Logger instance
    """

    def __init__(self):
        self.logger = logging.getLogger('coappear.detector')

    def on_run_start(self, n_records: int, n_attributes: int) -> None:
        self.logger.info(
            "Noise detection started",
            extra={'n_records': n_records, 'n_attributes': n_attributes}
        )

    def on_stage_start(self, stage: str) -> None:
        self.logger.debug(f"Stage started: {stage}", extra={'stage': stage})

    def on_stage_complete(self, stage: str, duration_seconds: float) -> None:
        self.logger.info(
            f"Stage completed: {stage} in {duration_seconds:.3f}s",
            extra={'stage': stage, 'duration_seconds': duration_seconds}
        )

    def on_run_complete(self, result: DetectionResult) -> None:
        self.logger.info(
            f"Noise detection completed - {result.noisy_record_count} noisy records",
            extra={
                'noisy_records': result.noisy_record_count,
                'noisy_cells': result.noisy_cell_count,
                'duration_seconds': result.duration_seconds,
            }
        )

    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        self.logger.error(
            f"Noise detection failed: {error}",
            extra=context,
            exc_info=True
        )


class QuietObserver(DetectionObserver):
    """Minimal observer that produces no output."""

    def on_run_start(self, n_records: int, n_attributes: int) -> None:
        pass

    def on_stage_start(self, stage: str) -> None:
        pass

    def on_stage_complete(self, stage: str, duration_seconds: float) -> None:
        pass

    def on_run_complete(self, result: DetectionResult) -> None:
        pass

    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        pass
