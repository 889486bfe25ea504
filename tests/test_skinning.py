"""
Tests for motor blending and the skinning resolver.
"""

import math

import pytest
import torch

from pga_anim.pga.algebra import apply_to_origin, apply_to_point, is_normalized
from pga_anim.pga.motors import identity_motor, rotor_from_axis_angle, translator
from pga_anim.scene.node import Node, Skin
from pga_anim.scene.resolver import NodeTransformResolver
from pga_anim.scene.skinning import SkinningResolver, blend_motors, skin_points
from pga_anim.utils.quaternion import quaternion_angle_distance


def _rotor_z(degrees):
    return rotor_from_axis_angle(torch.tensor([0., 0., 1.], dtype=torch.float64), math.radians(degrees))


def _to_quaternion(motor):
    return torch.stack([-motor[..., 1], -motor[..., 2], -motor[..., 3], motor[..., 0]], dim=-1)


def _arm():
    """root -> upper -> lower with bind-pose inverse bind motors."""
    root = Node("root")
    upper = root.add_child(Node("upper", translation=[0.0, 1.0, 0.0]))
    lower = upper.add_child(Node("lower", translation=[0.0, 1.0, 0.0]))
    ibm = translator(torch.tensor([[0.0, -1.0, 0.0], [0.0, -2.0, 0.0]]))
    return root, upper, lower, Skin([upper, lower], ibm, skeleton=root, name="arm")


class TestBlendMotors:
    """Test short-path motor blending."""

    def test_opposite_rotations_take_short_path(self):
        """+170 and -170 degrees about z blend to 180 degrees, not the identity."""
        motors = torch.stack([_rotor_z(170), _rotor_z(-170)])
        weights = torch.tensor([0.5, 0.5], dtype=torch.float64)
        blended = blend_motors(motors, weights)

        p = apply_to_point(blended, torch.tensor([1., 0., 0.], dtype=torch.float64))
        assert torch.allclose(p, torch.tensor([-1., 0., 0.], dtype=torch.float64), atol=1e-12)

    def test_blend_lies_on_minor_arc(self):
        motors = torch.stack([_rotor_z(170), _rotor_z(-170)])
        blended = blend_motors(motors, torch.tensor([0.5, 0.5], dtype=torch.float64))
        angle = quaternion_angle_distance(_to_quaternion(blended), _to_quaternion(motors[0]))
        assert torch.allclose(angle, torch.tensor(math.radians(10), dtype=torch.float64), atol=1e-12)

    def test_naive_sum_collapses(self):
        """Without the flip the weighted sum is the identity rotation."""
        naive = 0.5 * (_rotor_z(170) + _rotor_z(-170))
        naive = naive / naive[:4].norm()
        p = apply_to_point(naive, torch.tensor([1., 0., 0.], dtype=torch.float64))
        assert torch.allclose(p, torch.tensor([1., 0., 0.], dtype=torch.float64), atol=1e-12)

    def test_single_influence(self, random_motors):
        blended = blend_motors(random_motors.unsqueeze(-2), torch.ones(random_motors.shape[0], 1, dtype=torch.float64))
        assert torch.allclose(blended, random_motors, atol=1e-12)

    def test_sign_of_input_is_irrelevant(self, random_motors):
        a, b = random_motors[:8], random_motors[8:]
        weights = torch.full((8, 2), 0.5, dtype=torch.float64)
        first = blend_motors(torch.stack([a, b], dim=-2), weights)
        second = blend_motors(torch.stack([a, -b], dim=-2), weights)
        assert torch.allclose(first, second, atol=1e-12)

    def test_result_is_normalized(self, random_motors):
        motors = random_motors.view(4, 4, 8)
        weights = torch.full((4, 4), 0.25, dtype=torch.float64)
        assert bool(is_normalized(blend_motors(motors, weights), atol=1e-8).all())


class TestSkinPoints:
    """Test applying blended skin motors to points."""

    def test_single_joint(self):
        joint_motors = torch.stack([identity_motor(), translator([1.0, 0.0, 0.0])])
        points = torch.tensor([[0., 0., 0.], [0., 1., 0.]])
        joints = torch.tensor([[1], [0]])
        weights = torch.ones(2, 1)
        result = skin_points(points, joints, weights, joint_motors)
        assert torch.allclose(result, torch.tensor([[1., 0., 0.], [0., 1., 0.]]))

    def test_packed_buffer(self):
        packed = translator(torch.tensor([[0., 1., 0.], [0., 2., 0.]])).reshape(-1)
        result = skin_points(torch.zeros(1, 3), torch.tensor([[1, 0]]), torch.tensor([[1.0, 0.0]]), packed)
        assert torch.allclose(result, torch.tensor([[0., 2., 0.]]))

    def test_index_out_of_range(self):
        with pytest.raises(IndexError):
            skin_points(torch.zeros(1, 3), torch.tensor([[2]]), torch.ones(1, 1), identity_motor((2,)))

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            skin_points(torch.zeros(1, 3), torch.tensor([[0, 1]]), torch.ones(1, 1), identity_motor((2,)))
        with pytest.raises(ValueError, match="points"):
            skin_points(torch.zeros(1, 4), torch.tensor([[0]]), torch.ones(1, 1), identity_motor((2,)))


class TestSkinningResolver:
    """Test packing skin motors."""

    def test_bind_pose_is_identity(self):
        root, upper, lower, skin = _arm()
        resolver = SkinningResolver()
        assert resolver.update(skin)
        assert skin.computed
        expected = identity_motor((2,))
        assert torch.allclose(skin.joint_motor_view(), expected, atol=1e-6)

    def test_unchanged_joints_skip_repack(self):
        root, upper, lower, skin = _arm()
        resolver = SkinningResolver()
        resolver.update(skin)
        assert not resolver.update(skin)
        assert resolver.update(skin, force=True)

    def test_joint_change_repacks(self):
        root, upper, lower, skin = _arm()
        resolver = SkinningResolver()
        resolver.update(skin)

        lower.rotation = torch.tensor([0.0, 0.0, math.sqrt(0.5), math.sqrt(0.5)])
        lower.rebuild_transform()
        assert resolver.update(skin)

        # A point at the tip of the lower bone swings around the elbow
        motors = skin.joint_motor_view()
        tip = apply_to_point(motors[1], torch.tensor([0., 3., 0.]))
        assert torch.allclose(tip, torch.tensor([-1., 2., 0.]), atol=1e-6)
        assert torch.allclose(apply_to_point(motors[0], torch.tensor([0., 3., 0.])), torch.tensor([0., 3., 0.]), atol=1e-6)

    def test_touched_set_triggers_repack(self):
        root, upper, lower, skin = _arm()
        resolver = SkinningResolver()
        resolver.update(skin)

        upper.transform = translator([0.0, 2.0, 0.0])
        upper.mark_dirty()
        touched = NodeTransformResolver().resolve(root)
        assert resolver.update(skin, touched=touched)
        assert torch.allclose(apply_to_origin(skin.joint_motor_view()[1]), torch.tensor([0., 1., 0.]), atol=1e-6)

    def test_unresolved_joints_are_resolved(self):
        """Joints in a hierarchy nobody resolved still get current world motors."""
        root, upper, lower, skin = _arm()
        upper.transform = translator([1.0, 1.0, 0.0])
        resolver = SkinningResolver()
        resolver.update(skin)
        assert not lower.is_dirty
        assert torch.allclose(apply_to_origin(lower.world_transform), torch.tensor([1., 2., 0.]))

    def test_motors_are_world_space(self):
        root, upper, lower, skin = _arm()
        resolver = SkinningResolver()
        resolver.update(skin, root_motor=translator([0.0, 0.0, 5.0]))
        assert torch.allclose(apply_to_origin(skin.joint_motor_view()[0]), torch.tensor([0., 0., 5.]), atol=1e-6)

    def test_max_influences(self):
        root, upper, lower, skin = _arm()
        resolver = SkinningResolver(max_influences=1)
        resolver.update(skin)
        with pytest.raises(ValueError, match="influences"):
            resolver.skin_points(skin, torch.zeros(1, 3), torch.tensor([[0, 1]]), torch.tensor([[0.5, 0.5]]))

        result = resolver.skin_points(skin, torch.zeros(1, 3), torch.tensor([[1]]), torch.ones(1, 1))
        assert torch.allclose(result, torch.zeros(1, 3), atol=1e-6)
