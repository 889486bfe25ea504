"""
Scene graph evaluation.

Contains:
- Node / Skin: the scene graph data model with weak back-references
- NodeTransformResolver: top-down world motor propagation with dirty tracking
- SkinningResolver: per-joint skinning motors packed into flat buffers
- Scale compensation: world scale and the parent-scale translation patch
- Scene / build_scene: the per-frame pipeline and its load-time assembly
"""

from .node import NodeState, Node, Skin
from .resolver import NodeTransformResolver
from .skinning import SkinningResolver, blend_motors, skin_points
from .scale import own_scale_of, compute_world_scale, apply_scale_compensation
from .scene import Scene
from .builder import build_scene, column_major_to_matrix

__all__ = [
    # Data model
    "NodeState",
    "Node",
    "Skin",
    # Resolvers
    "NodeTransformResolver",
    "SkinningResolver",
    "blend_motors",
    "skin_points",
    # Scale compensation
    "own_scale_of",
    "compute_world_scale",
    "apply_scale_compensation",
    # Scene
    "Scene",
    "build_scene",
    "column_major_to_matrix",
]
