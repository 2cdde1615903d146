"""
coappear - co-appearance based detection of noisy values in tabular data.

Values that rarely appear together with the other values of their record,
compared with what their frequencies would predict, are flagged as noisy.
Flagged cells can be replaced with missing values, or each record can be
marked with a ``Noisy`` indicator column.
"""

from coappear.core.config import DetectionConfig
from coappear.core.results import DetectionResult
from coappear.detection.column_kinds import ColumnKind
from coappear.detection.detector import NoiseDetector, detect_noise

__version__ = "0.1.0"

__all__ = [
    'ColumnKind',
    'DetectionConfig',
    'DetectionResult',
    'NoiseDetector',
    'detect_noise',
    '__version__',
]
