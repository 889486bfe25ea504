"""
Core module for PGA-Anim.

Contains:
- Constants: Centralized default thresholds and layout constants
- Types: Type aliases and shape validation for motors, lines and points
"""

from .constants import (
    # Numeric constants
    DEFAULT_EPS,
    DEFAULT_EPS_NORM,
    DEFAULT_LOG_IDENTITY_EPS,
    DEFAULT_EXP_SERIES_THRESHOLD,
    DEFAULT_MATRIX_SCALE_TOLERANCE,
    DEFAULT_NORMALIZED_ATOL,
    DEFAULT_DTYPE,
    # Layout
    MOTOR_DIM,
    LINE_DIM,
    POINT_DIM,
    IDENTITY_COMPONENTS,
    DEFAULT_MAX_INFLUENCES,
    # Channel paths
    PATH_TRANSLATION,
    PATH_ROTATION,
    PATH_SCALE,
    PATH_WEIGHTS,
)

from .types import (
    MotorTensor,
    LineTensor,
    PointTensor,
    DirectionTensor,
    VectorLike,
    validate_motor_shape,
    validate_line_shape,
    validate_point_shape,
)

__all__ = [
    # Constants
    "DEFAULT_EPS",
    "DEFAULT_EPS_NORM",
    "DEFAULT_LOG_IDENTITY_EPS",
    "DEFAULT_EXP_SERIES_THRESHOLD",
    "DEFAULT_MATRIX_SCALE_TOLERANCE",
    "DEFAULT_NORMALIZED_ATOL",
    "DEFAULT_DTYPE",
    "MOTOR_DIM",
    "LINE_DIM",
    "POINT_DIM",
    "IDENTITY_COMPONENTS",
    "DEFAULT_MAX_INFLUENCES",
    "PATH_TRANSLATION",
    "PATH_ROTATION",
    "PATH_SCALE",
    "PATH_WEIGHTS",
    # Types
    "MotorTensor",
    "LineTensor",
    "PointTensor",
    "DirectionTensor",
    "VectorLike",
    "validate_motor_shape",
    "validate_line_shape",
    "validate_point_shape",
]
