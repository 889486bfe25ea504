"""
Scene: nodes, skins and animations driven one frame at a time.

Per frame the stages run in a fixed order, each consuming the dirty flags
of the previous one:

    1. AnimationSampler       poses nodes, rebuilds their local motors
    2. NodeTransformResolver  recomputes world motors top-down
    3. SkinningResolver       repacks skins with a recomputed joint

The renderer reads ``world_motor(node)`` and ``skin_buffer(skin)``.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Union

import torch

from ..pga.algebra import assert_normalized
from ..pga.motors import identity_motor
from ..utils.config import Config
from ..animation.sampler import Animation, AnimationSampler
from .node import Node, Skin
from .resolver import NodeTransformResolver
from .skinning import SkinningResolver

logger = logging.getLogger(__name__)


class Scene:
    """
    A scene graph with its evaluation pipeline.

    Example:
        >>> scene = build_scene(description)
        >>> scene.evaluate(time=0.4, anim=0, root_motor=placement)
        >>> scene.world_motor("hand")
        >>> scene.skin_buffer(0)
    """

    def __init__(
        self,
        roots: Sequence[Node],
        nodes: Optional[Sequence[Node]] = None,
        skins: Sequence[Skin] = (),
        animations: Sequence[Animation] = (),
        config: Optional[Config] = None
    ):
        """
        Args:
            roots: Root nodes of the scene
            nodes: All nodes; collected from ``roots`` when omitted. Nodes
                outside the root hierarchies are kept alive here as well.
            skins: Skins referencing the nodes
            animations: Animations targeting the nodes
            config: Evaluation config
        """
        self.config = config or Config()
        self.roots: List[Node] = list(roots)
        if nodes is None:
            nodes = [node for root in self.roots for node in root.iter_subtree()]
        self.nodes: List[Node] = list(nodes)
        self.skins: List[Skin] = list(skins)
        self.animations: List[Animation] = list(animations)

        self.node_resolver = NodeTransformResolver()
        self.skinning_resolver = SkinningResolver(self.node_resolver, self.config.max_influences)
        self.sampler = AnimationSampler(self.animations)

        self._root_motor = identity_motor(device=self.config.torch_device, dtype=self.config.torch_dtype)
        self._by_name: Dict[str, Node] = {}
        for node in self.nodes:
            if node.name is not None:
                self._by_name.setdefault(node.name, node)

    @property
    def root_motor(self) -> torch.Tensor:
        return self._root_motor

    def node(self, key: Union[int, str, Node]) -> Node:
        """
        Look up a node by index or name.

        Raises:
            IndexError: If an index is out of range
            KeyError: If no node has the given name
        """
        if isinstance(key, Node):
            return key
        if isinstance(key, str):
            if key not in self._by_name:
                raise KeyError(f"No node named {key!r}")
            return self._by_name[key]
        if not 0 <= key < len(self.nodes):
            raise IndexError(f"Node index {key} out of range for {len(self.nodes)} nodes")
        return self.nodes[key]

    def skin(self, key: Union[int, Skin]) -> Skin:
        if isinstance(key, Skin):
            return key
        if not 0 <= key < len(self.skins):
            raise IndexError(f"Skin index {key} out of range for {len(self.skins)} skins")
        return self.skins[key]

    def set_time(
        self,
        time: float = 0.0,
        anim: int = 0,
        time2: Optional[float] = None,
        anim2: Optional[int] = None,
        blend: Optional[float] = None
    ) -> Set[Node]:
        """Sample animations (stage 1). See ``AnimationSampler.set_time``."""
        return self.sampler.set_time(time, anim, time2=time2, anim2=anim2, blend=blend)

    def update(self, root_motor: Optional[torch.Tensor] = None) -> Set[Node]:
        """
        Propagate world motors and repack skins (stages 2 and 3).

        Args:
            root_motor: Placement motor of the scene roots. A new value marks
                every root dirty; omitted keeps the previous one.

        Returns:
            Nodes whose world motor was recomputed
        """
        root_changed = False
        if root_motor is not None:
            root_motor = torch.as_tensor(root_motor, dtype=self._root_motor.dtype, device=self._root_motor.device)
            if self.config.validate_motors:
                assert_normalized(root_motor, self.config.normalized_atol, "root_motor")
            if not torch.equal(root_motor, self._root_motor):
                self._root_motor = root_motor.clone()
                root_changed = True

        touched = self.node_resolver.resolve_all(self.roots, self._root_motor, root_changed)

        # Skeletons hanging outside the scene roots share the placement motor.
        resolved: Set[Node] = set(self.roots)
        extra = set().union(*(self.skinning_resolver.anchors(skin) for skin in self.skins)) - resolved
        for anchor in extra:
            touched |= self.node_resolver.resolve(anchor, self._root_motor, root_changed)
        resolved |= extra

        repacked = 0
        for skin in self.skins:
            if self.skinning_resolver.update(
                skin, self._root_motor, touched, root_changed=root_changed, resolved=resolved
            ):
                repacked += 1
        logger.debug(f"Resolved {len(touched)} nodes, repacked {repacked} skins")
        return touched

    def evaluate(
        self,
        time: float = 0.0,
        anim: int = 0,
        time2: Optional[float] = None,
        anim2: Optional[int] = None,
        blend: Optional[float] = None,
        root_motor: Optional[torch.Tensor] = None
    ) -> Set[Node]:
        """Run one full frame: sample, resolve, skin."""
        self.set_time(time, anim, time2=time2, anim2=anim2, blend=blend)
        return self.update(root_motor)

    def world_motor(self, key: Union[int, str, Node]) -> torch.Tensor:
        """Current world motor of a node, shape (8,)."""
        return self.node(key).world_transform

    def skin_buffer(self, key: Union[int, Skin]) -> torch.Tensor:
        """Packed skinning motors of a skin, shape (J * 8,)."""
        return self.skin(key).joint_motors

    def __repr__(self) -> str:
        return (
            f"Scene(nodes={len(self.nodes)}, roots={len(self.roots)}, "
            f"skins={len(self.skins)}, animations={len(self.animations)})"
        )
