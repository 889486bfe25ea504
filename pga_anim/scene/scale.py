"""
Scale compensation.

Motors cannot hold scale. Vertex data is pre-scaled by the cumulative world
scale of its node, so the translation parts of every local motor and every
inverse bind motor are multiplied by the world scale of the owning node's
PARENT. Composing the patched motors then reproduces the world positions of
a scale-aware matrix pipeline.

    world_scale(node) = world_scale(parent) * own_scale(node)

The patch is exact for uniform scale. Non-uniform scale is approximate.
"""

from typing import Iterable
import torch

from ..pga.transforms import scale_translation
from .node import Node, Skin


def own_scale_of(node: Node) -> torch.Tensor:
    """
    Scale of a node on its own: ``scale`` if given, else the column norms of
    ``matrix``, else [1, 1, 1].
    """
    if node.scale is not None:
        return node.scale.clone()
    if node.matrix is not None:
        return node.matrix[:3, :3].norm(dim=-2)
    return torch.ones(3, dtype=node.dtype, device=node.device)


def compute_world_scale(roots: Iterable[Node]) -> None:
    """Fill ``own_scale`` and ``world_scale`` of every node below ``roots``, top-down."""
    for root in roots:
        for node in root.iter_subtree():
            node.own_scale = own_scale_of(node)
            parent = node.parent
            if parent is None:
                node.world_scale = node.own_scale.clone()
            else:
                node.world_scale = parent.world_scale * node.own_scale


def parent_world_scale(node: Node) -> torch.Tensor:
    parent = node.parent
    if parent is None:
        return torch.ones(3, dtype=node.dtype, device=node.device)
    return parent.world_scale


def apply_scale_compensation(nodes: Iterable[Node], skins: Iterable[Skin] = ()) -> None:
    """
    Patch local motors and inverse bind motors with the parent world scale.

    Applied once at load time, after ``compute_world_scale``. Rebuilt local
    motors reapply the same patch (``Node.rebuild_transform``).
    """
    for node in nodes:
        node.transform = scale_translation(node.transform, parent_world_scale(node))
        node.mark_dirty()

    for skin in skins:
        scales = torch.stack([parent_world_scale(joint) for joint in skin.joints])
        skin.inverse_bind_motors = scale_translation(skin.inverse_bind_motors, scales)
        skin.computed = False
