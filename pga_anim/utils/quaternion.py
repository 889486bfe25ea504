"""
Quaternion helpers for glTF rotation data.

glTF stores quaternions as (x, y, z, w) with the scalar LAST. Everything in
this module uses that order unless the function name says otherwise
(``xyzw_to_wxyz`` / ``wxyz_to_xyzw`` convert for libraries that put the
scalar first).

The rotor of a glTF quaternion is [w, -x, -y, -z] (see
``pga_anim.pga.motors.rotor_from_quaternion``).

All operations support batched inputs with shape (..., 4).
"""

from typing import Union
import torch
import torch.nn.functional as F

from ..core.constants import DEFAULT_EPS_NORM


def normalize_quaternion(q: torch.Tensor, eps: float = DEFAULT_EPS_NORM) -> torch.Tensor:
    """
    Normalize quaternion to unit length.

    Args:
        q: Quaternion tensor of shape (..., 4)
        eps: Small constant for numerical stability

    Returns:
        Normalized quaternion of shape (..., 4)
    """
    return F.normalize(q, p=2, dim=-1, eps=eps)


def xyzw_to_wxyz(q: torch.Tensor) -> torch.Tensor:
    """Reorder (x, y, z, w) -> (w, x, y, z)."""
    return torch.cat([q[..., 3:], q[..., :3]], dim=-1)


def wxyz_to_xyzw(q: torch.Tensor) -> torch.Tensor:
    """Reorder (w, x, y, z) -> (x, y, z, w)."""
    return torch.cat([q[..., 1:], q[..., :1]], dim=-1)


def identity_quaternion(
    batch_shape=(),
    device: torch.device = None,
    dtype: torch.dtype = None
) -> torch.Tensor:
    """Identity rotation (0, 0, 0, 1) of shape (*batch_shape, 4)."""
    q = torch.zeros(*batch_shape, 4, device=device, dtype=dtype)
    q[..., 3] = 1.0
    return q


def quaternion_from_axis_angle(
    axis: torch.Tensor,
    angle: Union[float, torch.Tensor]
) -> torch.Tensor:
    """
    Create a glTF quaternion from axis-angle.

    q = (sin(θ/2) * axis, cos(θ/2))

    Args:
        axis: Rotation axis of shape (..., 3), will be normalized
        angle: Rotation angle in radians of shape (...)

    Returns:
        Unit quaternion of shape (..., 4) as [x, y, z, w]
    """
    axis = F.normalize(axis, p=2, dim=-1)
    angle = torch.as_tensor(angle, device=axis.device, dtype=axis.dtype)

    half_angle = (angle / 2).unsqueeze(-1)
    xyz = axis * torch.sin(half_angle)
    w = torch.cos(half_angle).expand_as(xyz[..., :1])
    return torch.cat([xyz, w], dim=-1)


def quaternion_to_matrix(q: torch.Tensor) -> torch.Tensor:
    """
    Convert a glTF quaternion to a 3x3 rotation matrix.

    Args:
        q: Quaternion of shape (..., 4) as [x, y, z, w]

    Returns:
        Rotation matrix of shape (..., 3, 3), acting on column vectors
    """
    q = normalize_quaternion(q)
    x, y, z, w = q.unbind(dim=-1)

    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z

    return torch.stack([
        torch.stack([1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy)], dim=-1),
        torch.stack([2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx)], dim=-1),
        torch.stack([2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy)], dim=-1),
    ], dim=-2)


def quaternion_angle_distance(q1: torch.Tensor, q2: torch.Tensor) -> torch.Tensor:
    """
    Angle of the rotation taking q1 to q2, in radians, of shape (...).

    q and -q are the same rotation, so the result is always the minor arc
    in [0, π].
    """
    q1 = normalize_quaternion(q1)
    q2 = normalize_quaternion(q2)
    dot = torch.abs((q1 * q2).sum(dim=-1)).clamp(max=1.0)
    return 2 * torch.acos(dot)
