"""Configuration parsing and validation."""

import yaml
import os
from typing import Dict, Any, Optional
from pathlib import Path

from coappear.core.exceptions import ConfigError, ConfigValidationError
from coappear.core.constants import (
    DEFAULT_COAPPEARANCE_THRESHOLD,
    DEFAULT_COAPPEARANCE_SCORE_THRESHOLD,
    DEFAULT_MAKE_NOISY_MISSING,
    DEFAULT_BINNING_STRATEGY,
    DEFAULT_DEGENERATE_POLICY,
    DEFAULT_MAX_CAM_CELLS,
    DEFAULT_DENSE_BLOCK_LIMIT,
    BINNING_STRATEGIES,
    DEGENERATE_POLICIES,
    THRESHOLD_LOWER_EXCLUSIVE,
    THRESHOLD_UPPER_INCLUSIVE,
    MAX_YAML_FILE_SIZE,
)
from coappear.detection.column_kinds import ColumnKind


class DetectionConfig:
    """
    Configuration for a noise detection run.

    All values are validated eagerly in the constructor, so an invalid
    threshold is rejected before any data is read.

    Example:
        >>> config = DetectionConfig({'detection': {'coappearance_threshold': 0.9}})
        >>> config.coappearance_threshold
        0.9
    """

    MAX_YAML_FILE_SIZE = MAX_YAML_FILE_SIZE

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize from configuration dictionary.

        Args:
            config_dict: Configuration dictionary (``detection``, ``input`` and
                ``output`` sections, all optional)
        """
        self.raw_config = config_dict or {}
        self._parse_config()

    @classmethod
    def from_yaml(cls, config_path: str) -> "DetectionConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            DetectionConfig instance

        Raises:
            ConfigError: If file not found, too large or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        file_size = os.path.getsize(config_file)
        if file_size > cls.MAX_YAML_FILE_SIZE:
            raise ConfigError(
                f"Configuration file too large: {file_size:,} bytes. "
                f"Maximum allowed: {cls.MAX_YAML_FILE_SIZE:,} bytes"
            )

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML file: {str(e)}")
        except UnicodeDecodeError as e:
            raise ConfigError(f"Invalid file encoding (expected UTF-8): {str(e)}")

        if config_dict is not None and not isinstance(config_dict, dict):
            raise ConfigError("Configuration root must be a mapping")

        return cls(config_dict)

    @classmethod
    def from_options(cls, base: Optional["DetectionConfig"] = None, **overrides: Any) -> "DetectionConfig":
        """
        Build a configuration from an optional base plus detection overrides.

        ``None`` overrides are ignored so CLI options that were not given
        keep the value from the YAML file.

        Args:
            base: Existing configuration to start from
            **overrides: Keys of the ``detection`` section

        Returns:
            New DetectionConfig instance
        """
        raw = dict(base.raw_config) if base else {}
        detection = dict(raw.get('detection') or {})
        for key, value in overrides.items():
            if value is None:
                continue
            if key == 'column_kinds':
                merged = dict(detection.get('column_kinds') or {})
                merged.update(value)
                value = merged
            detection[key] = value
        raw['detection'] = detection
        return cls(raw)

    def _parse_config(self) -> None:
        """Parse and validate configuration structure."""
        if not isinstance(self.raw_config, dict):
            raise ConfigError("Configuration root must be a mapping")

        detection = self._section('detection')

        self.coappearance_threshold = self._parse_threshold(
            detection.get('coappearance_threshold', DEFAULT_COAPPEARANCE_THRESHOLD),
            'detection.coappearance_threshold',
            'Coappearance threshold'
        )
        self.coappearance_score_threshold = self._parse_threshold(
            detection.get('coappearance_score_threshold', DEFAULT_COAPPEARANCE_SCORE_THRESHOLD),
            'detection.coappearance_score_threshold',
            'Coappearance score threshold'
        )

        make_missing = detection.get('make_noisy_missing', DEFAULT_MAKE_NOISY_MISSING)
        if not isinstance(make_missing, bool):
            raise ConfigValidationError(
                "make_noisy_missing must be true or false",
                field='detection.make_noisy_missing',
                expected='bool',
                actual=make_missing
            )
        self.make_noisy_missing = make_missing

        self.binning_strategy = self._parse_choice(
            detection.get('binning_strategy', DEFAULT_BINNING_STRATEGY),
            BINNING_STRATEGIES,
            'detection.binning_strategy'
        )
        self.degenerate_columns = self._parse_choice(
            detection.get('degenerate_columns', DEFAULT_DEGENERATE_POLICY),
            DEGENERATE_POLICIES,
            'detection.degenerate_columns'
        )

        self.column_kinds = self._parse_column_kinds(detection.get('column_kinds') or {})

        self.max_cam_cells = self._parse_positive_int(
            detection.get('max_cam_cells', DEFAULT_MAX_CAM_CELLS),
            'detection.max_cam_cells'
        )
        self.dense_block_limit = self._parse_positive_int(
            detection.get('dense_block_limit', DEFAULT_DENSE_BLOCK_LIMIT),
            'detection.dense_block_limit'
        )

        input_config = self._section('input')
        self.input_path: Optional[str] = input_config.get('path')
        self.input_format: Optional[str] = input_config.get('format')
        self.delimiter: Optional[str] = input_config.get('delimiter')
        self.encoding: Optional[str] = input_config.get('encoding')

        output_config = self._section('output')
        self.output_path: Optional[str] = output_config.get('path')
        self.noisy_matrix_path: Optional[str] = output_config.get('noisy_matrix')
        self.json_summary_path: Optional[str] = output_config.get('json_summary')

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.raw_config.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigValidationError(
                f"'{name}' section must be a mapping",
                field=name,
                expected='mapping',
                actual=type(section).__name__
            )
        return section

    @staticmethod
    def _parse_threshold(value: Any, field: str, label: str) -> float:
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigValidationError(
                f"{label} must be a number",
                field=field,
                expected='float in (0, 1]',
                actual=value
            )
        value = float(value)
        if not (THRESHOLD_LOWER_EXCLUSIVE < value <= THRESHOLD_UPPER_INCLUSIVE):
            raise ConfigValidationError(
                f"{label} must be > 0 and <= 1",
                field=field,
                expected='(0, 1]',
                actual=value
            )
        return value

    @staticmethod
    def _parse_choice(value: Any, choices, field: str) -> str:
        if value not in choices:
            raise ConfigValidationError(
                f"Invalid value for {field}: {value!r}",
                field=field,
                expected=', '.join(choices),
                actual=value
            )
        return value

    @staticmethod
    def _parse_positive_int(value: Any, field: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigValidationError(
                f"{field} must be a positive integer",
                field=field,
                expected='int > 0',
                actual=value
            )
        return value

    @staticmethod
    def _parse_column_kinds(mapping: Any) -> Dict[str, ColumnKind]:
        if not isinstance(mapping, dict):
            raise ConfigValidationError(
                "column_kinds must map column names to kinds",
                field='detection.column_kinds',
                expected='mapping',
                actual=type(mapping).__name__
            )
        kinds = {}
        for column, kind in mapping.items():
            try:
                kinds[str(column)] = ColumnKind.parse(kind)
            except ValueError:
                raise ConfigValidationError(
                    f"Unknown column kind {kind!r} for column '{column}'",
                    field=f'detection.column_kinds.{column}',
                    expected=', '.join(k.value for k in ColumnKind),
                    actual=kind
                )
        return kinds

    def to_dict(self) -> Dict[str, Any]:
        """Detection settings as a plain dictionary (for reports)."""
        return {
            'coappearance_threshold': self.coappearance_threshold,
            'coappearance_score_threshold': self.coappearance_score_threshold,
            'make_noisy_missing': self.make_noisy_missing,
            'binning_strategy': self.binning_strategy,
            'degenerate_columns': self.degenerate_columns,
            'column_kinds': {name: kind.value for name, kind in self.column_kinds.items()},
            'max_cam_cells': self.max_cam_cells,
            'dense_block_limit': self.dense_block_limit,
        }

    def __repr__(self) -> str:
        return (
            f"DetectionConfig(tau={self.coappearance_threshold}, "
            f"lambda={self.coappearance_score_threshold}, "
            f"make_noisy_missing={self.make_noisy_missing})"
        )
