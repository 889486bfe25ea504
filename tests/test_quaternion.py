"""
Tests for glTF quaternion helpers.
"""

import math

import torch

from pga_anim.utils.quaternion import (
    normalize_quaternion,
    xyzw_to_wxyz,
    wxyz_to_xyzw,
    identity_quaternion,
    quaternion_from_axis_angle,
    quaternion_to_matrix,
    quaternion_angle_distance,
)


class TestQuaternionBasics:
    """Test basic quaternion operations."""

    def test_identity(self):
        q = identity_quaternion((3,))
        assert q.shape == (3, 4)
        assert torch.equal(q[0], torch.tensor([0., 0., 0., 1.]))

    def test_normalize(self):
        q = torch.tensor([0., 3., 0., 4.])
        assert torch.allclose(normalize_quaternion(q), torch.tensor([0., 0.6, 0., 0.8]))

    def test_reorder(self):
        q = torch.tensor([1., 2., 3., 4.])
        assert torch.equal(xyzw_to_wxyz(q), torch.tensor([4., 1., 2., 3.]))
        assert torch.equal(wxyz_to_xyzw(xyzw_to_wxyz(q)), q)

    def test_axis_angle(self):
        q = quaternion_from_axis_angle(torch.tensor([0., 0., 2.]), math.pi / 2)
        s = math.sqrt(0.5)
        assert torch.allclose(q, torch.tensor([0., 0., s, s]))


class TestQuaternionMatrix:
    """Test quaternion to matrix conversion."""

    def test_identity(self):
        assert torch.allclose(quaternion_to_matrix(identity_quaternion()), torch.eye(3))

    def test_quarter_turn_about_z(self):
        q = quaternion_from_axis_angle(torch.tensor([0., 0., 1.]), math.pi / 2)
        R = quaternion_to_matrix(q)
        assert torch.allclose(R @ torch.tensor([1., 0., 0.]), torch.tensor([0., 1., 0.]), atol=1e-6)

    def test_orthonormal(self, generator):
        q = torch.randn(20, 4, generator=generator, dtype=torch.float64)
        R = quaternion_to_matrix(q)
        eye = torch.eye(3, dtype=torch.float64).expand(20, 3, 3)
        assert torch.allclose(R @ R.transpose(-1, -2), eye, atol=1e-12)
        assert torch.allclose(torch.linalg.det(R), torch.ones(20, dtype=torch.float64), atol=1e-12)

    def test_sign_invariant(self, generator):
        """q and -q describe the same rotation."""
        q = torch.randn(8, 4, generator=generator, dtype=torch.float64)
        assert torch.allclose(quaternion_to_matrix(q), quaternion_to_matrix(-q), atol=1e-12)


class TestAngleDistance:
    """Test the minor arc angle between rotations."""

    def test_same_rotation(self):
        q = quaternion_from_axis_angle(torch.tensor([1., 1., 0.], dtype=torch.float64), 0.7)
        assert torch.allclose(quaternion_angle_distance(q, q), torch.zeros((), dtype=torch.float64), atol=1e-6)

    def test_antipodal_is_same_rotation(self):
        q = quaternion_from_axis_angle(torch.tensor([0., 1., 0.], dtype=torch.float64), 1.2)
        assert torch.allclose(quaternion_angle_distance(q, -q), torch.zeros((), dtype=torch.float64), atol=1e-6)

    def test_minor_arc(self):
        """+170 and -170 degrees about z are 20 degrees apart."""
        axis = torch.tensor([0., 0., 1.], dtype=torch.float64)
        a = quaternion_from_axis_angle(axis, math.radians(170))
        b = quaternion_from_axis_angle(axis, math.radians(-170))
        expected = torch.tensor(math.radians(20), dtype=torch.float64)
        assert torch.allclose(quaternion_angle_distance(a, b), expected, atol=1e-12)
