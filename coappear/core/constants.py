"""
Coappear Constants.

This module defines the defaults and limits used throughout the noise
detector. Centralizing these values documents their purpose in one place.
"""

# ============================================================================
# Detection Defaults
# ============================================================================

# Coappearance threshold (tau). Scales the expected co-appearance count.
DEFAULT_COAPPEARANCE_THRESHOLD: float = 0.8

# Coappearance score threshold (lambda). Normalized-score cutoff for noise.
DEFAULT_COAPPEARANCE_SCORE_THRESHOLD: float = 0.3

# Replace noisy cells with missing values (True) or prepend an indicator column
DEFAULT_MAKE_NOISY_MISSING: bool = True

# Both thresholds live in the half-open interval (0, 1]
THRESHOLD_LOWER_EXCLUSIVE: float = 0.0
THRESHOLD_UPPER_INCLUSIVE: float = 1.0


# ============================================================================
# Generalization
# ============================================================================

BINNING_EQUAL_WIDTH: str = "equal_width"
BINNING_EQUAL_FREQUENCY: str = "equal_frequency"
BINNING_STRATEGIES = (BINNING_EQUAL_WIDTH, BINNING_EQUAL_FREQUENCY)
DEFAULT_BINNING_STRATEGY: str = BINNING_EQUAL_WIDTH

# Handling of numeric/temporal columns whose bin rule yields zero bins
DEGENERATE_SINGLE_BIN: str = "single_bin"
DEGENERATE_REJECT: str = "reject"
DEGENERATE_POLICIES = (DEGENERATE_SINGLE_BIN, DEGENERATE_REJECT)
DEFAULT_DEGENERATE_POLICY: str = DEGENERATE_SINGLE_BIN

# Code assigned to missing cells in the generalized dataset
MISSING_CODE: int = -1


# ============================================================================
# Co-appearance Matrix Limits
# ============================================================================

# Upper bound on the estimated number of CAM cells (~400MB of int64 counts)
DEFAULT_MAX_CAM_CELLS: int = 50_000_000

# Attribute pairs with A_i * A_j above this are stored sparsely
DEFAULT_DENSE_BLOCK_LIMIT: int = 1_000_000


# ============================================================================
# Result Assembly
# ============================================================================

NOISY_COLUMN_NAME: str = "Noisy"
NOISY_FALSE_LABEL: str = "False"
NOISY_TRUE_LABEL: str = "True"


# ============================================================================
# Configuration Security Limits
# ============================================================================

# Maximum YAML configuration file size (1MB)
MAX_YAML_FILE_SIZE: int = 1 * 1024 * 1024


# ============================================================================
# Pipeline Stage Names
# ============================================================================

STAGE_GENERALIZATION: str = "generalization"
STAGE_COAPPEARANCE: str = "coappearance"
STAGE_SCORING: str = "scoring"
STAGE_ASSEMBLY: str = "assembly"
PIPELINE_STAGES = (STAGE_GENERALIZATION, STAGE_COAPPEARANCE, STAGE_SCORING, STAGE_ASSEMBLY)
