"""
Centralized constants for PGA-Anim.

This module defines the default thresholds and numeric constants used by the
motor kernel and the scene pipeline. Using these constants keeps the
degenerate-case handling consistent across modules.

Usage:
    from pga_anim.core.constants import DEFAULT_LOG_IDENTITY_EPS

    def my_function(eps: float = DEFAULT_LOG_IDENTITY_EPS):
        ...
"""

import torch

# =============================================================================
# Numeric Constants
# =============================================================================

# Small epsilon for division stability (general use)
DEFAULT_EPS: float = 1e-8

# Epsilon for normalization operations
DEFAULT_EPS_NORM: float = 1e-12

# log_motor treats |s - 1| below this as the identity rotation
DEFAULT_LOG_IDENTITY_EPS: float = 1e-6

# exp_bivector switches to the series expansion below this squared angle
DEFAULT_EXP_SERIES_THRESHOLD: float = 1e-2

# from_matrix3x3 rescales rows whose norm deviates from 1 by more than this
DEFAULT_MATRIX_SCALE_TOLERANCE: float = 1e-4

# Tolerance used by is_normalized / assert_normalized
DEFAULT_NORMALIZED_ATOL: float = 1e-4

# Default storage type (matches the float32 uniform buffers of the renderer)
DEFAULT_DTYPE: torch.dtype = torch.float32


# =============================================================================
# Layout Constants
# =============================================================================

# Number of components per object
MOTOR_DIM: int = 8
LINE_DIM: int = 6
POINT_DIM: int = 3

# Identity motor [s, e23, e31, e12, e01, e02, e03, e0123]
IDENTITY_COMPONENTS = (1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


# =============================================================================
# Skinning Defaults
# =============================================================================

# Joint influences per vertex consumed by the vertex program
DEFAULT_MAX_INFLUENCES: int = 4


# =============================================================================
# Animation Channel Paths
# =============================================================================

PATH_TRANSLATION: str = "translation"
PATH_ROTATION: str = "rotation"
PATH_SCALE: str = "scale"
PATH_WEIGHTS: str = "weights"

# Paths the sampler evaluates; the rest are carried but skipped
SAMPLED_PATHS = (PATH_TRANSLATION, PATH_ROTATION)
KNOWN_PATHS = (PATH_TRANSLATION, PATH_ROTATION, PATH_SCALE, PATH_WEIGHTS)

# Component count per channel path
PATH_WIDTHS = {
    PATH_TRANSLATION: 3,
    PATH_ROTATION: 4,
    PATH_SCALE: 3,
}
