"""
Keyframe animation sampling and cross-fading.
"""

from .sampler import (
    KeyframeSampler,
    AnimationChannel,
    Animation,
    AnimationSampler,
    complete_animations,
)

__all__ = [
    "KeyframeSampler",
    "AnimationChannel",
    "Animation",
    "AnimationSampler",
    "complete_animations",
]
