"""
Scene graph nodes and skins.

Each node owns its children; the ``parent`` link is a weak back-reference
used for scale lookups and dirty propagation only. Skins reference their
joint nodes weakly and own their inverse bind motors.

Per frame only ``transform``, ``world_transform``, ``rotation``,
``translation``, ``state`` and the skin output buffers change.
"""

from __future__ import annotations
from enum import Enum
from typing import Iterator, List, Optional, Sequence
import weakref

import torch

from ..core.constants import DEFAULT_DTYPE
from ..core.types import validate_motor_shape
from ..pga.motors import identity_motor
from ..pga.transforms import from_matrix3x3, motor_from_trs, scale_translation


class NodeState(Enum):
    """Dirty tracking state of a node's world motor."""
    CLEAN = "clean"
    DIRTY = "dirty"


class Node:
    """
    A scene graph node with a local motor and a cached world motor.

    The local motor is built from ``matrix``, then ``rotation`` (glTF
    [x, y, z, w]) and ``translation``; scale never enters a motor and is
    tracked separately in ``own_scale`` / ``world_scale``.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        rotation: Optional[torch.Tensor] = None,
        translation: Optional[torch.Tensor] = None,
        scale: Optional[torch.Tensor] = None,
        matrix: Optional[torch.Tensor] = None,
        dtype: Optional[torch.dtype] = None,
        device: Optional[torch.device] = None
    ):
        """
        Args:
            name: Node name
            rotation: Local rotation quaternion [x, y, z, w] (4,)
            translation: Local translation (3,)
            scale: Local scale (3,)
            matrix: Local row-major transform (4, 4); used when no TRS is given
            dtype: Storage dtype of the motors
            device: Storage device of the motors
        """
        self.name = name
        self.dtype = dtype or DEFAULT_DTYPE
        self.device = device

        self.rotation = self._as_tensor(rotation)
        self.translation = self._as_tensor(translation)
        self.scale = self._as_tensor(scale)
        self.matrix = self._as_tensor(matrix)

        self.transform = motor_from_trs(
            rotation=self.rotation,
            translation=self.translation,
            matrix=self.matrix,
            dtype=self.dtype,
            device=self.device,
        )
        self.world_transform = identity_motor(device=self.device, dtype=self.dtype)

        self.own_scale = torch.ones(3, dtype=self.dtype, device=self.device)
        self.world_scale = torch.ones(3, dtype=self.dtype, device=self.device)

        self.children: List['Node'] = []
        self._parent: Optional[weakref.ref] = None
        self.skin: Optional['Skin'] = None

        self.state = NodeState.DIRTY

    def _as_tensor(self, value) -> Optional[torch.Tensor]:
        if value is None:
            return None
        return torch.as_tensor(value, dtype=self.dtype, device=self.device)

    @property
    def parent(self) -> Optional['Node']:
        return self._parent() if self._parent is not None else None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_dirty(self) -> bool:
        return self.state is NodeState.DIRTY

    def add_child(self, child: 'Node') -> 'Node':
        """
        Attach ``child`` below this node.

        Raises:
            ValueError: If ``child`` already has a parent or is this node
        """
        if child is self:
            raise ValueError(f"Node {self.name!r} cannot be its own child")
        if child.parent is not None:
            raise ValueError(
                f"Node {child.name!r} already has parent {child.parent.name!r}"
            )
        child._parent = weakref.ref(self)
        self.children.append(child)
        return child

    def mark_dirty(self) -> None:
        self.state = NodeState.DIRTY

    def top(self) -> 'Node':
        """Topmost ancestor (the node itself for a root)."""
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def iter_subtree(self) -> Iterator['Node']:
        """Yield this node and all descendants, parents before children."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def current_rotation(self) -> torch.Tensor:
        """Rotation [x, y, z, w] the local motor was built from."""
        if self.rotation is not None:
            return self.rotation
        if self.matrix is not None:
            r = from_matrix3x3(self.matrix)
            return torch.stack([-r[1], -r[2], -r[3], r[0]])
        return torch.tensor([0., 0., 0., 1.], dtype=self.dtype, device=self.device)

    def current_translation(self) -> torch.Tensor:
        """Translation the local motor was built from."""
        if self.translation is not None:
            return self.translation
        if self.matrix is not None:
            return self.matrix[:3, 3].clone()
        return torch.zeros(3, dtype=self.dtype, device=self.device)

    def rebuild_transform(self) -> torch.Tensor:
        """
        Rebuild the local motor from the raw transform fields.

        Rotation is applied first, then translation; the translation part is
        scaled by the parent's world scale, and the node is marked dirty.
        """
        motor = motor_from_trs(
            rotation=self.rotation,
            translation=self.translation,
            matrix=self.matrix,
            dtype=self.dtype,
            device=self.device,
        )
        parent = self.parent
        if parent is not None:
            motor = scale_translation(motor, parent.world_scale)
        self.transform = motor
        self.mark_dirty()
        return motor

    def __repr__(self) -> str:
        return f"Node(name={self.name!r}, children={len(self.children)}, state={self.state.value})"


class Skin:
    """
    A set of joints and their inverse bind motors.

    The per-joint skinning motors ``compose(joint.world_transform,
    inverse_bind_motors[i])`` are packed into ``joint_motors``, a flat
    (J * 8,) buffer in joint order.
    """

    def __init__(
        self,
        joints: Sequence[Node],
        inverse_bind_motors: Optional[torch.Tensor] = None,
        skeleton: Optional[Node] = None,
        name: Optional[str] = None
    ):
        """
        Args:
            joints: Joint nodes, in joint index order
            inverse_bind_motors: Motors of shape (J, 8); identity when omitted
            skeleton: Optional skeleton root node
            name: Skin name

        Raises:
            ValueError: If there are no joints or the motors do not match them
        """
        if len(joints) == 0:
            raise ValueError("Skin needs at least one joint")
        self.name = name
        self._joints = [weakref.ref(j) for j in joints]
        self._skeleton = weakref.ref(skeleton) if skeleton is not None else None

        first = joints[0]
        if inverse_bind_motors is None:
            inverse_bind_motors = identity_motor((len(joints),), device=first.device, dtype=first.dtype)
        validate_motor_shape(inverse_bind_motors, "inverse_bind_motors")
        if inverse_bind_motors.shape != (len(joints), 8):
            raise ValueError(
                f"inverse_bind_motors should have shape ({len(joints)}, 8), "
                f"got {tuple(inverse_bind_motors.shape)}"
            )
        self.inverse_bind_motors = inverse_bind_motors

        self.joint_motors = torch.zeros(
            len(joints) * 8, dtype=inverse_bind_motors.dtype, device=inverse_bind_motors.device
        )
        self.computed = False

    @property
    def num_joints(self) -> int:
        return len(self._joints)

    @property
    def joints(self) -> List[Node]:
        return [self.joint(i) for i in range(len(self._joints))]

    @property
    def skeleton(self) -> Optional[Node]:
        return self._skeleton() if self._skeleton is not None else None

    def joint(self, index: int) -> Node:
        """
        Raises:
            IndexError: If ``index`` is out of range
            ReferenceError: If the joint node no longer exists
        """
        if not 0 <= index < len(self._joints):
            raise IndexError(f"Joint index {index} out of range for skin with {len(self._joints)} joints")
        node = self._joints[index]()
        if node is None:
            raise ReferenceError(f"Joint {index} of skin {self.name!r} was released")
        return node

    def joint_motor_view(self) -> torch.Tensor:
        """The output buffer viewed as (J, 8)."""
        return self.joint_motors.view(-1, 8)

    def __repr__(self) -> str:
        return f"Skin(name={self.name!r}, joints={self.num_joints})"
