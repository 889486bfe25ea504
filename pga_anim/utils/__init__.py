"""
Utility functions for PGA-Anim.

Includes glTF quaternion helpers and configuration management.
"""

from .quaternion import (
    normalize_quaternion,
    xyzw_to_wxyz,
    wxyz_to_xyzw,
    identity_quaternion,
    quaternion_from_axis_angle,
    quaternion_to_matrix,
    quaternion_angle_distance,
)
from .config import Config, load_config, save_config

__all__ = [
    # Quaternion operations
    "normalize_quaternion",
    "xyzw_to_wxyz",
    "wxyz_to_xyzw",
    "identity_quaternion",
    "quaternion_from_axis_angle",
    "quaternion_to_matrix",
    "quaternion_angle_distance",
    # Config
    "Config",
    "load_config",
    "save_config",
]
