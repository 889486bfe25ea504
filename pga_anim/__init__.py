"""
PGA-Anim: Matrix-free scene animation with Projective Geometric Algebra

A PyTorch library that evaluates animated, skinned scene graphs using
8-component PGA motors instead of 4x4 matrices.

Key Features:
- Motor kernel: composition, sandwich products, exp/log, normalization, sqrt
- Conversions from matrices and glTF translation/rotation data
- Top-down world motor propagation with dirty tracking
- Skinning buffers and short-path motor blending
- Keyframe sampling with cross-fading between two animations
- Load-time scale compensation for scaled hierarchies

Example:
    >>> import pga_anim
    >>> scene = pga_anim.scene.build_scene(gltf_description)
    >>> scene.evaluate(time=0.5, anim=0, time2=0.2, anim2=1, blend=0.25)
    >>> buffer = scene.skin_buffer(0)  # (J * 8,) joint motors
"""

__version__ = "0.1.0"
__author__ = "PGA-Anim Contributors"

from . import core
from . import pga
from . import utils
from . import scene
from . import animation

__all__ = [
    "core",
    "pga",
    "utils",
    "scene",
    "animation",
]
