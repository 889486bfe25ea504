"""
Conversions between motors and matrix / TRS representations.

Matrices here are row-major torch tensors acting on column vectors
(``p' = M @ p``). glTF's column-major float arrays must be transposed
before they are passed in (see ``pga_anim.scene.builder``).
"""

from __future__ import annotations
from typing import Optional
import warnings
import torch

from .algebra import _pack, compose_tm, compose_tr, apply_to_origin
from .motors import identity_motor, normalize, rotor_from_quaternion, translator
from ..core.constants import DEFAULT_MATRIX_SCALE_TOLERANCE, DEFAULT_DTYPE
from ..core.types import VectorLike
from ..utils.quaternion import quaternion_to_matrix


def from_matrix3x3(
    M: torch.Tensor,
    tolerance: float = DEFAULT_MATRIX_SCALE_TOLERANCE,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Convert a rotation matrix to a rotation motor.

    Uses the largest-diagonal-term branch selection (trace, then R00, R11,
    R22 dominant) for numerical stability.

    A scaled matrix (column norms deviating from 1 by more than
    ``tolerance``) is rescaled before conversion. Non-uniform scale is only
    approximately supported and emits a ``UserWarning``.

    Args:
        M: Matrix of shape (..., 3, 3); larger matrices use their upper-left block
        tolerance: Allowed deviation of the column norms from 1

    Returns:
        Normalized rotation motor of shape (..., 8)
    """
    R = M[..., :3, :3]
    scale = R.norm(dim=-2)

    rescale = ((scale - 1).abs() > tolerance).any(dim=-1)
    if bool(rescale.any()):
        s0, s1, s2 = scale.unbind(dim=-1)
        non_uniform = ((s0 / s1 - 1).abs() > tolerance) | ((s1 / s2 - 1).abs() > tolerance)
        if bool(non_uniform.any()):
            warnings.warn(
                f"from_matrix3x3: non-uniform scale {scale[non_uniform].tolist()} "
                "cannot be represented by a motor; rotation is approximate",
                UserWarning,
            )
        R = torch.where(rescale[..., None, None], R / scale.unsqueeze(-2), R)

    r00, r01, r02 = R[..., 0, 0], R[..., 0, 1], R[..., 0, 2]
    r10, r11, r12 = R[..., 1, 0], R[..., 1, 1], R[..., 1, 2]
    r20, r21, r22 = R[..., 2, 0], R[..., 2, 1], R[..., 2, 2]
    trace = r00 + r11 + r22

    q_trace = torch.stack([trace + 1, r12 - r21, r20 - r02, r01 - r10], dim=-1)
    q_x = torch.stack([r12 - r21, 1 + r00 - r11 - r22, r01 + r10, r02 + r20], dim=-1)
    q_y = torch.stack([r20 - r02, r01 + r10, 1 + r11 - r00 - r22, r12 + r21], dim=-1)
    q_z = torch.stack([r01 - r10, r02 + r20, r12 + r21, 1 + r22 - r00 - r11], dim=-1)

    use_trace = (trace > 0).unsqueeze(-1)
    use_x = ((r00 > r11) & (r00 > r22)).unsqueeze(-1)
    use_y = (r11 > r22).unsqueeze(-1)
    q = torch.where(use_trace, q_trace, torch.where(use_x, q_x, torch.where(use_y, q_y, q_z)))

    zero = torch.zeros_like(trace)
    return normalize(_pack([q[..., 0], q[..., 1], q[..., 2], q[..., 3], zero, zero, zero, zero]), out)


def from_matrix(
    M: torch.Tensor,
    tolerance: float = DEFAULT_MATRIX_SCALE_TOLERANCE,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Convert a 4x4 homogeneous matrix to a motor.

    M = T(M[:3, 3]) * R(M[:3, :3]); rotation first, then translation.

    Args:
        M: Matrix of shape (..., 4, 4)

    Returns:
        Normalized motor of shape (..., 8)
    """
    rotation = from_matrix3x3(M[..., :3, :3], tolerance=tolerance)
    return compose_tr(translator(M[..., :3, 3]), rotation, out)


def to_matrix(motor: torch.Tensor) -> torch.Tensor:
    """
    Convert a normalized motor to a 4x4 homogeneous matrix.

    Args:
        motor: Normalized motor of shape (..., 8)

    Returns:
        Matrix of shape (..., 4, 4)
    """
    # rotor [w, -x, -y, -z] -> glTF quaternion [x, y, z, w]
    q = torch.stack([-motor[..., 1], -motor[..., 2], -motor[..., 3], motor[..., 0]], dim=-1)
    R = quaternion_to_matrix(q)
    t = apply_to_origin(motor)

    batch_shape = motor.shape[:-1]
    M = torch.eye(4, device=motor.device, dtype=motor.dtype)
    M = M.expand(*batch_shape, 4, 4).clone()
    M[..., :3, :3] = R
    M[..., :3, 3] = t
    return M


def motor_from_trs(
    rotation: Optional[VectorLike] = None,
    translation: Optional[VectorLike] = None,
    matrix: Optional[torch.Tensor] = None,
    dtype: Optional[torch.dtype] = None,
    device: Optional[torch.device] = None
) -> torch.Tensor:
    """
    Build a node's local motor from its glTF transform fields.

    ``rotation`` and ``translation`` override the matching part of
    ``matrix``. The rotation is applied first, then the translation. With
    nothing given the result is the identity.

    Args:
        rotation: glTF quaternion [x, y, z, w]
        translation: Translation [x, y, z]
        matrix: Row-major matrix of shape (4, 4)

    Returns:
        Motor of shape (8,)
    """
    dtype = dtype or DEFAULT_DTYPE
    rotor = identity_motor(device=device, dtype=dtype)
    t = None
    if matrix is not None:
        matrix = torch.as_tensor(matrix, dtype=dtype, device=device)
        rotor = from_matrix3x3(matrix[..., :3, :3])
        t = matrix[..., :3, 3]
    if rotation is not None:
        rotor = rotor_from_quaternion(torch.as_tensor(rotation, dtype=dtype, device=device))
    if translation is not None:
        t = torch.as_tensor(translation, dtype=dtype, device=device)
    if t is None:
        return rotor
    return compose_tm(translator(t), rotor)


def scale_translation(
    motor: torch.Tensor,
    scale: VectorLike,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Multiply the ideal part of a motor by a parent scale.

    e01, e02, e03 are scaled component-wise by (sx, sy, sz) and e0123 by sz.
    Exact for uniform scale; non-uniform scale is an approximation.

    Args:
        motor: Motor of shape (..., 8)
        scale: Scale of shape (..., 3)

    Returns:
        Motor of shape (..., 8)
    """
    scale = torch.as_tensor(scale, dtype=motor.dtype, device=motor.device)
    one = torch.ones_like(scale[..., :1])
    factors = torch.cat([one, one, one, one, scale, scale[..., 2:3]], dim=-1)
    result = motor * factors
    if out is None:
        return result
    out.copy_(result)
    return out
