"""
Motor construction and the exponential / logarithm maps.

A motor M = T * R combines a rotor R (rotation about a line through the
origin) and a translator T. Motors are normalized when

    s² + e23² + e31² + e12² = 1
    s·e0123 = e23·e01 + e31·e02 + e12·e03

Weighted sums of motors (skinning, blending) break both conditions and must
go through ``normalize`` before they are applied to points.

The exponential of a line (bivector) B = [e23, e31, e12, e01, e02, e03]
yields the screw motion along that line:

    exp(B) = cos|B| + sin|B|/|B| * B + ...

with a series expansion near zero rotation so that pure translation
generators never divide by zero.
"""

from __future__ import annotations
from typing import Optional, Sequence, Tuple, Union
import torch

from .algebra import (
    _pack,
    compose,
    reverse,
    apply_to_point,
    apply_to_direction,
    apply_to_origin,
    assert_normalized,
)
from ..core.constants import (
    DEFAULT_EPS,
    DEFAULT_LOG_IDENTITY_EPS,
    DEFAULT_EXP_SERIES_THRESHOLD,
    DEFAULT_DTYPE,
    IDENTITY_COMPONENTS,
)
from ..core.types import VectorLike, validate_line_shape


# Basis lines [e23, e31, e12, e01, e02, e03]
E23 = torch.tensor([1., 0., 0., 0., 0., 0.])
E31 = torch.tensor([0., 1., 0., 0., 0., 0.])
E12 = torch.tensor([0., 0., 1., 0., 0., 0.])
E01 = torch.tensor([0., 0., 0., 1., 0., 0.])
E02 = torch.tensor([0., 0., 0., 0., 1., 0.])
E03 = torch.tensor([0., 0., 0., 0., 0., 1.])

IDENTITY = torch.tensor(IDENTITY_COMPONENTS)


# =============================================================================
# Constructors
# =============================================================================

def identity_motor(
    batch_shape: Tuple[int, ...] = (),
    device: Optional[torch.device] = None,
    dtype: Optional[torch.dtype] = None
) -> torch.Tensor:
    """Identity motor [1, 0, 0, 0, 0, 0, 0, 0] of shape (*batch_shape, 8)."""
    m = torch.zeros(*batch_shape, 8, device=device, dtype=dtype or DEFAULT_DTYPE)
    m[..., 0] = 1.0
    return m


def translator(t: VectorLike, out: Optional[torch.Tensor] = None) -> torch.Tensor:
    """
    Motor translating by the vector ``t``.

    T = [1, 0, 0, 0, -tx/2, -ty/2, -tz/2, 0]

    Args:
        t: Translation of shape (..., 3)

    Returns:
        Translation motor of shape (..., 8)
    """
    t = torch.as_tensor(t, dtype=t.dtype if isinstance(t, torch.Tensor) else DEFAULT_DTYPE)
    tx, ty, tz = t.unbind(dim=-1)
    one = torch.ones_like(tx)
    zero = torch.zeros_like(tx)
    return _pack([one, zero, zero, zero, -0.5 * tx, -0.5 * ty, -0.5 * tz, zero], out)


def rotor_from_quaternion(
    q: VectorLike,
    normalize_input: bool = True,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Rotation motor from a glTF quaternion.

    glTF stores rotations as [x, y, z, w]. The matching rotor is
    [w, -x, -y, -z, 0, 0, 0, 0].

    Args:
        q: Quaternion of shape (..., 4) as [x, y, z, w]
        normalize_input: Rescale ``q`` to unit length first

    Returns:
        Rotation motor of shape (..., 8)
    """
    q = torch.as_tensor(q, dtype=q.dtype if isinstance(q, torch.Tensor) else DEFAULT_DTYPE)
    if normalize_input:
        q = q / q.norm(dim=-1, keepdim=True).clamp(min=DEFAULT_EPS)
    x, y, z, w = q.unbind(dim=-1)
    zero = torch.zeros_like(w)
    return _pack([w, -x, -y, -z, zero, zero, zero, zero], out)


def rotor_from_axis_angle(
    axis: torch.Tensor,
    angle: Union[float, torch.Tensor]
) -> torch.Tensor:
    """
    Rotation motor turning counter-clockwise by ``angle`` about ``axis``.

    Args:
        axis: Rotation axis of shape (..., 3), will be normalized
        angle: Rotation angle in radians of shape (...)

    Returns:
        Rotation motor of shape (..., 8)
    """
    axis = axis / axis.norm(dim=-1, keepdim=True).clamp(min=DEFAULT_EPS)
    angle = torch.as_tensor(angle, dtype=axis.dtype, device=axis.device)
    half = angle / 2
    c, s = torch.cos(half), torch.sin(half)
    zero = torch.zeros_like(c * axis[..., 0])
    return _pack([
        c + zero,
        -s * axis[..., 0],
        -s * axis[..., 1],
        -s * axis[..., 2],
        zero, zero, zero, zero,
    ])


# =============================================================================
# Exponential and logarithm
# =============================================================================

def exp_rotation(
    angle: Union[float, torch.Tensor],
    line: torch.Tensor,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Exponential of ``angle`` times a normalized Euclidean line.

    The line must pass through the origin and have unit rotational part;
    its ideal components are ignored. 3 muls.

    Returns:
        Rotation motor [cos, e23 sin, e31 sin, e12 sin, 0, 0, 0, 0]
    """
    angle = torch.as_tensor(angle, dtype=line.dtype, device=line.device)
    c, s = torch.cos(angle), torch.sin(angle)
    zero = torch.zeros_like(c * line[..., 0])
    return _pack([
        c + zero,
        line[..., 0] * s,
        line[..., 1] * s,
        line[..., 2] * s,
        zero, zero, zero, zero,
    ], out)


def exp_translation(
    distance: Union[float, torch.Tensor],
    line: torch.Tensor,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Exponential of ``distance`` times an ideal line.

    Only the e01, e02, e03 components of ``line`` are used. 3 muls.

    Returns:
        Translation motor [1, 0, 0, 0, e01 d, e02 d, e03 d, 0]
    """
    distance = torch.as_tensor(distance, dtype=line.dtype, device=line.device)
    zero = torch.zeros_like(distance * line[..., 3])
    return _pack([
        zero + 1,
        zero, zero, zero,
        line[..., 3] * distance,
        line[..., 4] * distance,
        line[..., 5] * distance,
        zero,
    ], out)


def exp_bivector(
    B: torch.Tensor,
    threshold: float = DEFAULT_EXP_SERIES_THRESHOLD,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Exponential map from a line (bivector) to a normalized motor.

    With l = e23² + e31² + e12², a = sqrt(l) and m = e23·e01 + e31·e02 + e12·e03:

        c = cos a,  s = sin a / a,  t = m / l * (c - s)
        exp(B) = [c, B0 s, B1 s, B2 s, B3 s + B0 t, B4 s + B1 t, B5 s + B2 t, m s]

    Below ``threshold`` (a squared angle) the Taylor series of c, s and
    (c - s) / l are used instead. At l == 0 this reduces exactly to the
    pure translation [1, 0, 0, 0, B3, B4, B5, 0], so translation generators
    never produce NaN.

    Args:
        B: Line of shape (..., 6)
        threshold: Squared rotation angle below which the series is used

    Returns:
        Motor of shape (..., 8)

    Example:
        >>> M = exp_bivector(torch.tensor([0., 0., -math.pi / 4, 0., 0., 0.]))
        >>> apply_to_point(M, torch.tensor([1., 0., 0.]))
        tensor([0., 1., 0.])
    """
    B0, B1, B2, B3, B4, B5 = B.unbind(dim=-1)
    l = B0*B0 + B1*B1 + B2*B2
    m = B0*B3 + B1*B4 + B2*B5

    small = l < threshold

    # Closed form, evaluated on a safe argument where the series applies
    l_safe = torch.where(small, torch.ones_like(l), l)
    a = torch.sqrt(l_safe)
    c_full = torch.cos(a)
    s_full = torch.sin(a) / a
    t_full = m / l_safe * (c_full - s_full)

    # cos(a), sin(a)/a and (cos(a) - sin(a)/a)/l around l = 0
    l2 = l * l
    c_series = 1 - l / 2 + l2 / 24 - l2 * l / 720
    s_series = 1 - l / 6 + l2 / 120 - l2 * l / 5040
    t_series = m * (-1.0 / 3 + l / 30 - l2 / 840)

    c = torch.where(small, c_series, c_full)
    s = torch.where(small, s_series, s_full)
    t = torch.where(small, t_series, t_full)

    return _pack([
        c,
        B0 * s,
        B1 * s,
        B2 * s,
        B3 * s + B0 * t,
        B4 * s + B1 * t,
        B5 * s + B2 * t,
        m * s,
    ], out)


def log_motor(
    M: torch.Tensor,
    eps: float = DEFAULT_LOG_IDENTITY_EPS,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Logarithm map from a normalized motor to its line (bivector).

    Inverse of ``exp_bivector``. When |s - 1| < ``eps`` the rotation angle is
    zero and the result is the pure translation generator [0, 0, 0, e01, e02, e03];
    the closed form divides by 1 - s² and is unstable there.

    A 360° rotation (s == -1) has no unique logarithm and is routed through
    the same branch.

    Args:
        M: Normalized motor of shape (..., 8)
        eps: Distance of s from 1 treated as zero rotation

    Returns:
        Line of shape (..., 6)
    """
    M0, M1, M2, M3, M4, M5, M6, M7 = M.unbind(dim=-1)

    denom = 1 - M0 * M0
    near_identity = ((M0 - 1).abs() < eps) | (denom <= 0)
    denom_safe = torch.where(near_identity, torch.ones_like(denom), denom)

    a = 1 / denom_safe
    b = torch.acos(M0.clamp(-1.0, 1.0)) * torch.sqrt(a)
    c = a * M7 * (1 - M0 * b)

    zero = torch.zeros_like(M0)
    return _pack([
        torch.where(near_identity, zero, M1 * b),
        torch.where(near_identity, zero, M2 * b),
        torch.where(near_identity, zero, M3 * b),
        torch.where(near_identity, M4, M4 * b + M1 * c),
        torch.where(near_identity, M5, M5 * b + M2 * c),
        torch.where(near_identity, M6, M6 * b + M3 * c),
    ], out)


# =============================================================================
# Normalization
# =============================================================================

def normalize(a: torch.Tensor, out: Optional[torch.Tensor] = None) -> torch.Tensor:
    """
    Normalize a motor.

    The rotational part is rescaled to unit length and the ideal part is
    corrected so that s·e0123 = e23·e01 + e31·e02 + e12·e03 holds again.
    Idempotent on normalized motors. The rotational part must not be zero.

    Args:
        a: Motor of shape (..., 8)

    Returns:
        Normalized motor of shape (..., 8)

    23 muls, 7 adds, 1 rsqrt
    """
    a0, a1, a2, a3, a4, a5, a6, a7 = a.unbind(dim=-1)
    s = torch.rsqrt(a0*a0 + a1*a1 + a2*a2 + a3*a3)
    d = (a7*a0 - (a4*a1 + a5*a2 + a6*a3)) * s * s
    return _pack([
        a0 * s,
        a1 * s,
        a2 * s,
        a3 * s,
        a4 * s + a1 * s * d,
        a5 * s + a2 * s * d,
        a6 * s + a3 * s * d,
        a7 * s - a0 * s * d,
    ], out)


def sqrt_motor(
    a: torch.Tensor,
    eps: float = DEFAULT_EPS,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Square root of a normalized motor: the half motion, sqrt(a) * sqrt(a) == a.

    sqrt(a) = normalize(1 + a)

    For a 360° rotation (s == -1) the rotational part of 1 + a vanishes. In
    that case the root of -a is returned instead; -a is the same rigid
    motion, so the result still squares to ±a and acts on points exactly
    like ``a``.

    Args:
        a: Normalized motor of shape (..., 8)
        eps: Squared norm of the rotational part of 1 + a treated as zero

    Returns:
        Normalized motor of shape (..., 8)
    """
    plus = a.clone()
    plus[..., 0] = plus[..., 0] + 1
    degenerate = (plus[..., :4] * plus[..., :4]).sum(dim=-1, keepdim=True) < eps
    minus = -a
    minus[..., 0] = minus[..., 0] + 1
    return normalize(torch.where(degenerate, minus, plus), out)


# =============================================================================
# Object wrapper
# =============================================================================

class Motor:
    """
    A rigid motion stored as a motor tensor of shape (..., 8).

    Thin object API over the functional kernel for callers that prefer
    method chaining. The underlying tensor is available as ``data``.

    Can be constructed from:
    - Raw components of shape (..., 8)
    - glTF translation + rotation (``from_trs``)
    - A 4x4 homogeneous matrix (``from_matrix``)
    - A line via the exponential map (``from_bivector``)
    """

    def __init__(self, data: Optional[torch.Tensor] = None):
        """
        Args:
            data: Motor components of shape (..., 8). Identity when omitted.
        """
        if data is None:
            data = identity_motor()
        if data.shape[-1] != 8:
            raise ValueError(f"Motor data should have 8 components, got shape {tuple(data.shape)}")
        self.data = data

    @classmethod
    def identity(
        cls,
        batch_shape: Tuple[int, ...] = (),
        device: Optional[torch.device] = None,
        dtype: Optional[torch.dtype] = None
    ) -> 'Motor':
        """Create identity motor (no transformation)."""
        return cls(identity_motor(batch_shape, device=device, dtype=dtype))

    @classmethod
    def from_trs(
        cls,
        translation: Optional[VectorLike] = None,
        rotation: Optional[VectorLike] = None
    ) -> 'Motor':
        """
        Create a motor from glTF translation [x, y, z] and rotation [x, y, z, w].

        The rotation is applied first, then the translation.
        """
        from .transforms import motor_from_trs
        return cls(motor_from_trs(rotation=rotation, translation=translation))

    @classmethod
    def from_matrix(cls, matrix: torch.Tensor) -> 'Motor':
        """Create a motor from a 4x4 homogeneous matrix of shape (..., 4, 4)."""
        from .transforms import from_matrix
        return cls(from_matrix(matrix))

    @classmethod
    def from_bivector(cls, B: torch.Tensor) -> 'Motor':
        """Create a motor as the exponential of a line of shape (..., 6)."""
        validate_line_shape(B, "B")
        return cls(exp_bivector(B))

    @property
    def device(self) -> torch.device:
        return self.data.device

    @property
    def dtype(self) -> torch.dtype:
        return self.data.dtype

    @property
    def shape(self) -> torch.Size:
        """Batch shape."""
        return self.data.shape[:-1]

    def to(self, device: torch.device) -> 'Motor':
        """Move to device."""
        return Motor(self.data.to(device))

    def compose(self, other: 'Motor') -> 'Motor':
        """
        Compose two motors: self * other.

        This represents applying ``other`` first, then ``self``.
        """
        return Motor(compose(self.data, other.data))

    def __mul__(self, other: 'Motor') -> 'Motor':
        """Motor composition."""
        return self.compose(other)

    def reverse(self) -> 'Motor':
        return Motor(reverse(self.data))

    def inverse(self) -> 'Motor':
        """Inverse motion. For normalized motors the inverse is the reverse."""
        return self.reverse()

    def normalize(self) -> 'Motor':
        return Motor(normalize(self.data))

    def sqrt(self) -> 'Motor':
        """Half motion."""
        return Motor(sqrt_motor(self.data))

    def log(self) -> torch.Tensor:
        """Line (bivector) of shape (..., 6) whose exponential is this motor."""
        return log_motor(self.data)

    def apply(self, points: torch.Tensor, check: bool = False) -> torch.Tensor:
        """
        Apply the motor to points of shape (..., 3).

        Batch dimensions of the motor and the points broadcast.
        """
        return apply_to_point(self.data, points, check=check)

    def apply_direction(self, directions: torch.Tensor, check: bool = False) -> torch.Tensor:
        """Apply the rotational part to directions of shape (..., 3)."""
        return apply_to_direction(self.data, directions, check=check)

    def translation(self) -> torch.Tensor:
        """Image of the origin, of shape (..., 3)."""
        return apply_to_origin(self.data)

    def to_matrix(self) -> torch.Tensor:
        """
        Convert to a 4x4 homogeneous transformation matrix.

        Returns:
            Matrix of shape (..., 4, 4)
        """
        from .transforms import to_matrix
        return to_matrix(self.data)

    def assert_normalized(self) -> None:
        assert_normalized(self.data)

    def __repr__(self) -> str:
        return f"Motor(shape={tuple(self.shape)}, device={self.device})"
