"""
Skinning resolver and motor blending.

For every skin with a recomputed joint, the per-joint skinning motors

    skin_motor[i] = compose(joint_world[i], inverse_bind[i])

are packed into the skin's flat (J * 8,) buffer. Skin motors live in world
space: they include the placement motor and every ancestor of the joints.

Per vertex, up to ``max_influences`` skin motors are blended with
short-path disambiguation and renormalized before being applied.
"""

from typing import Optional, Set
import torch

from ..core.constants import DEFAULT_MAX_INFLUENCES
from ..core.types import validate_point_shape
from ..pga.algebra import compose, shortest_path, apply_to_point
from ..pga.motors import identity_motor, normalize
from .node import Node, Skin
from .resolver import NodeTransformResolver


def blend_motors(
    motors: torch.Tensor,
    weights: torch.Tensor,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Weighted blend of motors along the minor arc.

    Each motor is negated in full when its rotational part has a
    non-positive dot product with the running sum, then accumulated. The sum
    is renormalized.

    Args:
        motors: Motors of shape (..., K, 8)
        weights: Weights of shape (..., K)

    Returns:
        Normalized motor of shape (..., 8)
    """
    result = weights[..., 0:1] * motors[..., 0, :]
    for k in range(1, motors.shape[-2]):
        candidate = shortest_path(result, motors[..., k, :], inclusive=True)
        result = result + weights[..., k:k + 1] * candidate
    return normalize(result, out)


def skin_points(
    points: torch.Tensor,
    joints: torch.Tensor,
    weights: torch.Tensor,
    joint_motors: torch.Tensor,
    check: bool = False
) -> torch.Tensor:
    """
    Skin rest-pose points with blended joint motors.

    This is the computation the vertex program performs per vertex.

    Args:
        points: Rest-pose positions of shape (V, 3)
        joints: Joint indices of shape (V, K)
        weights: Joint weights of shape (V, K)
        joint_motors: Skin motors of shape (J, 8) or a packed (J * 8,) buffer
        check: Assert that the blended motors are normalized

    Returns:
        Skinned positions of shape (V, 3)

    Raises:
        IndexError: If a joint index is outside [0, J)
        ValueError: If joints and weights disagree in shape
    """
    validate_point_shape(points, "points")
    joint_motors = joint_motors.reshape(-1, 8)
    joints = torch.as_tensor(joints, dtype=torch.long, device=joint_motors.device)
    weights = torch.as_tensor(weights, dtype=joint_motors.dtype, device=joint_motors.device)
    if joints.shape != weights.shape:
        raise ValueError(
            f"joints and weights should have the same shape, got {tuple(joints.shape)} "
            f"and {tuple(weights.shape)}"
        )
    num_joints = joint_motors.shape[0]
    if joints.numel() > 0 and (int(joints.min()) < 0 or int(joints.max()) >= num_joints):
        raise IndexError(
            f"Joint indices must lie in [0, {num_joints}), got range "
            f"[{int(joints.min())}, {int(joints.max())}]"
        )

    blended = blend_motors(joint_motors[joints], weights)
    return apply_to_point(blended, points, check=check)


class SkinningResolver:
    """
    Keep each skin's packed joint motors in sync with its joints.

    Before packing, the hierarchy above every joint (and the skeleton root)
    is resolved, so joints outside the part of the graph the caller resolved
    still have current world motors.
    """

    def __init__(
        self,
        node_resolver: Optional[NodeTransformResolver] = None,
        max_influences: int = DEFAULT_MAX_INFLUENCES
    ):
        self.node_resolver = node_resolver or NodeTransformResolver()
        self.max_influences = max_influences

    @staticmethod
    def anchors(skin: Skin) -> Set[Node]:
        """Top-level ancestors of the skin's joints and skeleton root."""
        anchors = {joint.top() for joint in skin.joints}
        if skin.skeleton is not None:
            anchors.add(skin.skeleton.top())
        return anchors

    def update(
        self,
        skin: Skin,
        root_motor: Optional[torch.Tensor] = None,
        touched: Optional[Set[Node]] = None,
        force: bool = False,
        root_changed: bool = False,
        resolved: Optional[Set[Node]] = None
    ) -> bool:
        """
        Repack ``skin.joint_motors`` if any of its joints changed.

        Args:
            skin: Skin to update
            root_motor: Placement motor of the scene roots
            touched: Nodes already recomputed this frame
            force: Repack even if no joint changed
            root_changed: The placement motor changed this frame
            resolved: Top-level nodes already resolved this frame; their
                hierarchies are not walked again

        Returns:
            True if the buffer was rewritten
        """
        first = skin.joint(0)
        if root_motor is None:
            root_motor = identity_motor(device=first.device, dtype=first.dtype)

        changed: Set[Node] = set(touched) if touched is not None else set()
        for anchor in self.anchors(skin):
            if resolved is not None and anchor in resolved:
                continue
            changed |= self.node_resolver.resolve(anchor, root_motor, parent_changed=root_changed)

        joints = skin.joints
        if not (force or not skin.computed or any(joint in changed for joint in joints)):
            return False

        world = torch.stack([joint.world_transform for joint in joints])
        compose(world, skin.inverse_bind_motors, out=skin.joint_motor_view())
        skin.computed = True
        return True

    def skin_points(
        self,
        skin: Skin,
        points: torch.Tensor,
        joints: torch.Tensor,
        weights: torch.Tensor,
        check: bool = False
    ) -> torch.Tensor:
        """
        Skin points with the current buffer of ``skin``.

        Raises:
            ValueError: If more than ``max_influences`` joints are given per vertex
        """
        if joints.shape[-1] > self.max_influences:
            raise ValueError(
                f"At most {self.max_influences} joint influences per vertex are supported, "
                f"got {joints.shape[-1]}"
            )
        return skin_points(points, joints, weights, skin.joint_motors, check=check)
