"""
PGA (Projective Geometric Algebra) motor kernel.

Implements the even subalgebra of G(3,0,1): 8-component motors, their
products with motors, points and directions, the exponential and logarithm
maps, normalization, and conversions from matrices and glTF TRS data.
"""

from .algebra import (
    IDX_S, IDX_E23, IDX_E31, IDX_E12,
    IDX_E01, IDX_E02, IDX_E03, IDX_E0123,
    LINE_E23, LINE_E31, LINE_E12,
    LINE_E01, LINE_E02, LINE_E03,
    compose,
    compose_rr,
    compose_tt,
    compose_rt,
    compose_tr,
    compose_rm,
    compose_mr,
    compose_tm,
    compose_mt,
    compose_all,
    reverse,
    rotation_part,
    rotation_dot,
    shortest_path,
    is_normalized,
    assert_normalized,
    apply_to_point,
    apply_to_direction,
    apply_to_origin,
)

from .motors import (
    E23, E31, E12, E01, E02, E03,
    IDENTITY,
    Motor,
    identity_motor,
    translator,
    rotor_from_quaternion,
    rotor_from_axis_angle,
    exp_rotation,
    exp_translation,
    exp_bivector,
    log_motor,
    normalize,
    sqrt_motor,
)

from .transforms import (
    from_matrix3x3,
    from_matrix,
    to_matrix,
    motor_from_trs,
    scale_translation,
)

__all__ = [
    # Indices
    "IDX_S", "IDX_E23", "IDX_E31", "IDX_E12",
    "IDX_E01", "IDX_E02", "IDX_E03", "IDX_E0123",
    "LINE_E23", "LINE_E31", "LINE_E12",
    "LINE_E01", "LINE_E02", "LINE_E03",
    # Products
    "compose",
    "compose_rr",
    "compose_tt",
    "compose_rt",
    "compose_tr",
    "compose_rm",
    "compose_mr",
    "compose_tm",
    "compose_mt",
    "compose_all",
    "reverse",
    "rotation_part",
    "rotation_dot",
    "shortest_path",
    "is_normalized",
    "assert_normalized",
    # Sandwich products
    "apply_to_point",
    "apply_to_direction",
    "apply_to_origin",
    # Motors
    "E23", "E31", "E12", "E01", "E02", "E03",
    "IDENTITY",
    "Motor",
    "identity_motor",
    "translator",
    "rotor_from_quaternion",
    "rotor_from_axis_angle",
    "exp_rotation",
    "exp_translation",
    "exp_bivector",
    "log_motor",
    "normalize",
    "sqrt_motor",
    # Transforms
    "from_matrix3x3",
    "from_matrix",
    "to_matrix",
    "motor_from_trs",
    "scale_translation",
]
