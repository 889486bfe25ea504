"""
Node transform resolver.

Walks the scene graph top-down and recomputes the world motor of every
dirty node as compose(parent_world, local). A recomputed node marks its
children dirty, so an ancestor change always reaches all descendants.
Clean nodes keep their cached world motor and are still descended into,
since a dirty node may sit below a clean one.
"""

from typing import Iterable, Optional, Set
import torch

from ..pga.algebra import compose
from .node import Node, NodeState


class NodeTransformResolver:
    """
    Recompute world motors of dirty nodes, parents before children.

    The world motor of each node is written in place into
    ``node.world_transform``; the set of recomputed nodes is returned so
    that skins can decide whether they need repacking.
    """

    def resolve(
        self,
        root: Node,
        parent_world: Optional[torch.Tensor] = None,
        parent_changed: bool = False
    ) -> Set[Node]:
        """
        Resolve ``root`` and its subtree.

        Args:
            root: Node to start from
            parent_world: World motor of the root's parent, or the external
                placement motor for a scene root. Defaults to the root's
                parent world motor, or identity without a parent.
            parent_changed: Treat the parent world motor as changed

        Returns:
            Nodes whose world motor was recomputed
        """
        if parent_world is None:
            parent = root.parent
            if parent is not None:
                parent_world = parent.world_transform
            else:
                parent_world = torch.zeros_like(root.transform)
                parent_world[0] = 1.0

        touched: Set[Node] = set()
        stack = [(root, parent_world, parent_changed)]
        while stack:
            node, world, changed = stack.pop()
            if changed:
                node.mark_dirty()
            if node.state is NodeState.DIRTY:
                compose(world, node.transform, out=node.world_transform)
                node.state = NodeState.CLEAN
                touched.add(node)
                changed = True
            for child in node.children:
                stack.append((child, node.world_transform, changed))
        return touched

    def resolve_all(
        self,
        roots: Iterable[Node],
        root_motor: torch.Tensor,
        root_changed: bool = False
    ) -> Set[Node]:
        """Resolve several scene roots under a shared placement motor."""
        touched: Set[Node] = set()
        for root in roots:
            touched |= self.resolve(root, root_motor, root_changed)
        return touched
