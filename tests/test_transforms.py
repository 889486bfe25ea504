"""
Tests for matrix and TRS conversions.
"""

import math
import warnings

import pytest
import torch

from pga_anim.pga.algebra import apply_to_point, is_normalized
from pga_anim.pga.motors import rotor_from_axis_angle, translator
from pga_anim.pga.transforms import (
    from_matrix3x3,
    from_matrix,
    to_matrix,
    motor_from_trs,
    scale_translation,
)
from pga_anim.utils.quaternion import quaternion_from_axis_angle, quaternion_to_matrix


def _rotation_matrix(axis, angle):
    axis = torch.tensor(axis, dtype=torch.float64)
    return quaternion_to_matrix(quaternion_from_axis_angle(axis, angle))


class TestFromMatrix3x3:
    """Test rotation matrix to rotor conversion."""

    @pytest.mark.parametrize("axis,angle", [
        ([1.0, 2.0, 3.0], 0.5),             # trace dominant
        ([1.0, 0.0, 0.0], math.pi),         # R00 dominant
        ([1.0, 0.1, 0.0], math.radians(170)),
        ([0.1, 1.0, 0.0], math.radians(170)),   # R11 dominant
        ([0.0, 0.1, 1.0], math.radians(170)),   # R22 dominant
    ])
    def test_matches_matrix(self, axis, angle, random_points):
        """The rotor moves points exactly like the matrix."""
        R = _rotation_matrix(axis, angle)
        r = from_matrix3x3(R)
        expected = random_points @ R.T
        assert torch.allclose(apply_to_point(r, random_points), expected, atol=1e-10)
        assert bool(is_normalized(r, atol=1e-12))

    def test_identity(self):
        r = from_matrix3x3(torch.eye(3))
        assert torch.allclose(r, torch.tensor([1., 0., 0., 0., 0., 0., 0., 0.]))

    def test_half_turn_about_x(self):
        """180 degrees about x matches the axis-angle rotor up to sign."""
        R = torch.diag(torch.tensor([1., -1., -1.], dtype=torch.float64))
        r = from_matrix3x3(R)
        expected = rotor_from_axis_angle(torch.tensor([1., 0., 0.], dtype=torch.float64), math.pi)
        assert torch.allclose(r, expected, atol=1e-12) or torch.allclose(r, -expected, atol=1e-12)

    def test_batched(self, generator):
        axis = torch.randn(10, 3, generator=generator, dtype=torch.float64)
        angle = torch.rand(10, generator=generator, dtype=torch.float64) * 2 * math.pi
        R = quaternion_to_matrix(quaternion_from_axis_angle(axis, angle))
        r = from_matrix3x3(R)
        assert r.shape == (10, 8)
        p = torch.tensor([0.3, -0.2, 0.9], dtype=torch.float64)
        assert torch.allclose(apply_to_point(r, p), R @ p, atol=1e-10)

    def test_uniform_scale_is_removed(self):
        R = _rotation_matrix([0.0, 0.0, 1.0], 0.8)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            r = from_matrix3x3(2.5 * R)
        assert torch.allclose(r, from_matrix3x3(R), atol=1e-12)

    def test_non_uniform_scale_warns(self):
        R = _rotation_matrix([0.0, 1.0, 0.0], 0.3)
        scaled = R @ torch.diag(torch.tensor([1.0, 2.0, 3.0], dtype=torch.float64))
        with pytest.warns(UserWarning, match="non-uniform scale"):
            r = from_matrix3x3(scaled)
        # Column scale is divided out, so the rotation survives
        assert torch.allclose(r, from_matrix3x3(R), atol=1e-10)


class TestMatrixConversions:
    """Test 4x4 matrix conversions."""

    def test_from_matrix_rotates_then_translates(self):
        M = torch.eye(4, dtype=torch.float64)
        M[:3, :3] = _rotation_matrix([0.0, 0.0, 1.0], math.pi / 2)
        M[:3, 3] = torch.tensor([1.0, 2.0, 3.0], dtype=torch.float64)
        m = from_matrix(M)
        p = apply_to_point(m, torch.tensor([1., 0., 0.], dtype=torch.float64))
        assert torch.allclose(p, torch.tensor([1., 3., 3.], dtype=torch.float64), atol=1e-12)

    def test_to_matrix_matches_sandwich(self, random_motors, random_points):
        M = to_matrix(random_motors)
        assert M.shape == (random_motors.shape[0], 4, 4)
        moved = (M[:, :3, :3] @ random_points.unsqueeze(-1)).squeeze(-1) + M[:, :3, 3]
        assert torch.allclose(moved, apply_to_point(random_motors, random_points), atol=1e-10)
        assert torch.allclose(M[:, 3], torch.tensor([0., 0., 0., 1.], dtype=torch.float64))

    def test_round_trip(self, random_motors, random_points):
        """from_matrix(to_matrix(M)) is the same rigid motion."""
        again = from_matrix(to_matrix(random_motors))
        assert torch.allclose(
            apply_to_point(again, random_points),
            apply_to_point(random_motors, random_points),
            atol=1e-9,
        )


class TestMotorFromTRS:
    """Test node transform assembly."""

    def test_identity(self):
        assert torch.equal(motor_from_trs(), torch.tensor([1., 0., 0., 0., 0., 0., 0., 0.]))

    def test_rotation_then_translation(self):
        s = math.sqrt(0.5)
        m = motor_from_trs(rotation=[0.0, 0.0, s, s], translation=[1.0, 2.0, 3.0], dtype=torch.float64)
        p = apply_to_point(m, torch.tensor([1., 0., 0.], dtype=torch.float64))
        assert torch.allclose(p, torch.tensor([1., 3., 3.], dtype=torch.float64), atol=1e-12)

    def test_translation_only(self):
        m = motor_from_trs(translation=[0.0, 1.0, 0.0])
        assert torch.equal(m, translator([0.0, 1.0, 0.0]))

    def test_matrix(self):
        M = torch.eye(4)
        M[:3, 3] = torch.tensor([4., 5., 6.])
        m = motor_from_trs(matrix=M)
        assert torch.allclose(apply_to_point(m, torch.zeros(3)), torch.tensor([4., 5., 6.]))

    def test_rotation_overrides_matrix_rotation(self):
        """A rotation replaces the matrix rotation but keeps its translation."""
        M = torch.eye(4, dtype=torch.float64)
        M[:3, :3] = _rotation_matrix([1.0, 0.0, 0.0], 1.0)
        M[:3, 3] = torch.tensor([0., 0., 2.], dtype=torch.float64)
        m = motor_from_trs(rotation=[0.0, 0.0, 0.0, 1.0], matrix=M, dtype=torch.float64)
        assert torch.allclose(m, translator(torch.tensor([0., 0., 2.], dtype=torch.float64)), atol=1e-12)


class TestScaleTranslation:
    """Test the translation scale patch."""

    def test_factors(self):
        m = torch.arange(1., 9.)
        result = scale_translation(m, [2.0, 3.0, 4.0])
        assert torch.equal(result, torch.tensor([1., 2., 3., 4., 10., 18., 28., 32.]))

    def test_uniform_scale_scales_translation(self):
        t = translator([1.0, -2.0, 0.5])
        scaled = scale_translation(t, [2.0, 2.0, 2.0])
        assert torch.allclose(apply_to_point(scaled, torch.zeros(3)), torch.tensor([2., -4., 1.]))

    def test_uniform_scale_keeps_normalized(self, random_motors):
        scaled = scale_translation(random_motors, torch.full((3,), 3.0, dtype=torch.float64))
        assert bool(is_normalized(scaled).all())

    def test_batched_scales(self):
        t = translator(torch.tensor([[1., 1., 1.], [1., 1., 1.]]))
        scales = torch.tensor([[1., 1., 1.], [2., 3., 4.]])
        result = scale_translation(t, scales)
        assert torch.allclose(apply_to_point(result, torch.zeros(3)), scales)

    def test_out_buffer(self):
        out = torch.empty(8)
        assert scale_translation(translator([1., 0., 0.]), [5., 1., 1.], out=out) is out
        assert torch.allclose(apply_to_point(out, torch.zeros(3)), torch.tensor([5., 0., 0.]))
