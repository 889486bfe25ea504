"""
Type aliases and layout conventions for PGA-Anim.

This module defines type aliases for the tensor layouts used throughout the
library and documents the component ordering of each geometric object.

Layout Conventions:
===================

All objects store their components in the LAST tensor dimension, so every
operation broadcasts over arbitrary leading batch dimensions:

    motor     : (..., 8)  [s, e23, e31, e12, e01, e02, e03, e0123]
    line      : (..., 6)  [e23, e31, e12, e01, e02, e03]
    point     : (..., 3)  [e032, e013, e021] with an implied 1 e123
    direction : (..., 3)  [e032, e013, e021] with an implied 0 e123

A rotation motor has zero ideal part (e01, e02, e03, e0123); a translation
motor is [1, 0, 0, 0, e01, e02, e03, 0].

Example:
    joint_motors: Tensor[J, 8]     # one motor per joint
    weights:      Tensor[V, 4]     # four skinning weights per vertex
    positions:    Tensor[V, 3]     # rest pose positions
"""

from typing import Sequence, Union
import torch

from .constants import MOTOR_DIM, LINE_DIM, POINT_DIM


# =============================================================================
# Basic Type Aliases
# =============================================================================

# Motor tensor: (..., 8)
MotorTensor = torch.Tensor

# Line / bivector tensor: (..., 6)
LineTensor = torch.Tensor

# Euclidean point tensor: (..., 3)
PointTensor = torch.Tensor

# Ideal point (direction) tensor: (..., 3)
DirectionTensor = torch.Tensor

# Anything torch.as_tensor accepts for a small vector
VectorLike = Union[torch.Tensor, Sequence[float]]


def _validate_last_dim(tensor: torch.Tensor, expected: int, kind: str, name: str) -> None:
    if not isinstance(tensor, torch.Tensor):
        raise ValueError(f"{name} should be a torch.Tensor, got {type(tensor).__name__}")
    if tensor.ndim == 0 or tensor.shape[-1] != expected:
        raise ValueError(
            f"{name} should be a {kind} with {expected} components in the last "
            f"dimension, got shape {tuple(tensor.shape)}"
        )


def validate_motor_shape(tensor: torch.Tensor, name: str = "motor") -> None:
    """
    Validate that a tensor follows the motor layout (..., 8).

    Raises:
        ValueError: If the last dimension is not 8
    """
    _validate_last_dim(tensor, MOTOR_DIM, "motor", name)


def validate_line_shape(tensor: torch.Tensor, name: str = "line") -> None:
    """Validate that a tensor follows the line layout (..., 6)."""
    _validate_last_dim(tensor, LINE_DIM, "line", name)


def validate_point_shape(tensor: torch.Tensor, name: str = "point") -> None:
    """Validate that a tensor follows the point/direction layout (..., 3)."""
    _validate_last_dim(tensor, POINT_DIM, "point", name)
