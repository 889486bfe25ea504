"""
Keyframe animation sampling.

Evaluates one animation, or cross-fades two, at given times and writes the
result into the ``translation`` / ``rotation`` fields of the target nodes.
Nodes that received a value are marked dirty and get their local motor
rebuilt (rotation first, then translation, then the parent-scale patch).

Keyframe search keeps a cursor per sampler. Time moving forward continues
from the cursor; time moving backward (scrubbing, looping) restarts the
search.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

import torch

from ..core.constants import (
    PATH_TRANSLATION,
    PATH_ROTATION,
    PATH_SCALE,
    SAMPLED_PATHS,
    KNOWN_PATHS,
    PATH_WIDTHS,
)
from ..pga.algebra import shortest_path
from ..scene.node import Node

logger = logging.getLogger(__name__)


class KeyframeSampler:
    """
    Paired keyframe times and values with an incremental search cursor.

    Attributes:
        times: Keyframe times of shape (N,), non-decreasing
        values: Keyframe values of shape (N, W)
        cur_frame: Frame found by the last search
        cur_time: Time of the last search
    """

    def __init__(self, times: torch.Tensor, values: torch.Tensor):
        """
        Raises:
            ValueError: If there are no keys, the counts differ, or times decrease
        """
        times = torch.as_tensor(times)
        values = torch.as_tensor(values)
        if times.ndim != 1 or times.numel() == 0:
            raise ValueError(f"times should be a non-empty 1D tensor, got shape {tuple(times.shape)}")
        if values.ndim == 1:
            values = values.unsqueeze(-1)
        if values.shape[0] != times.shape[0]:
            raise ValueError(
                f"Keyframe count mismatch: {times.shape[0]} times but {values.shape[0]} values"
            )
        if times.numel() > 1 and bool((times[1:] < times[:-1]).any()):
            raise ValueError("Keyframe times must be non-decreasing")

        self.times = times
        self.values = values
        self._times = times.tolist()

        self.cur_frame = 0
        self.cur_time = 0.0

    @property
    def count(self) -> int:
        return len(self._times)

    @property
    def min_time(self) -> float:
        return self._times[0]

    @property
    def max_time(self) -> float:
        return self._times[-1]

    def find_frame(self, t: float) -> int:
        """
        Smallest frame f with times[f] >= t, capped at the last frame.

        Continues from ``cur_frame`` when ``t >= cur_time``, otherwise
        searches the whole track. Updates the cursor.
        """
        last = self.count - 1
        if t >= self.cur_time:
            frame = self.cur_frame
            while frame < last and self._times[frame] < t:
                frame += 1
        else:
            key = torch.tensor([t], dtype=self.times.dtype, device=self.times.device)
            frame = min(int(torch.searchsorted(self.times, key, side='left')), last)

        self.cur_frame = frame
        self.cur_time = t
        return frame

    def locate(self, t: float) -> Tuple[int, float]:
        """
        Bracketing frame and interpolation fraction.

        Returns:
            (frame, u) with u in [0, 1] measured from frame - 1 to frame.
            Before the first key the fraction is 1 (hold the first value).
        """
        frame = self.find_frame(t)
        if frame == 0:
            return frame, 1.0
        t0, t1 = self._times[frame - 1], self._times[frame]
        if t1 <= t0:
            return frame, 1.0
        u = (t - t0) / (t1 - t0)
        return frame, min(1.0, max(0.0, u))

    def reset(self) -> None:
        self.cur_frame = 0
        self.cur_time = 0.0


class AnimationChannel:
    """One animated property (``path``) of one target node."""

    def __init__(self, node: Node, path: str, sampler: KeyframeSampler):
        """
        Raises:
            ValueError: If ``path`` is unknown or the value width does not match it
        """
        if path not in KNOWN_PATHS:
            raise ValueError(f"Unknown channel path '{path}', expected one of {KNOWN_PATHS}")
        width = PATH_WIDTHS.get(path)
        if width is not None and sampler.values.shape[-1] != width:
            raise ValueError(
                f"Channel '{path}' needs {width} components per key, got {sampler.values.shape[-1]}"
            )
        self.node = node
        self.path = path
        self.sampler = sampler

    @property
    def is_sampled(self) -> bool:
        return self.path in SAMPLED_PATHS

    def sample(self, t: float) -> torch.Tensor:
        """
        Value of the channel at time ``t``.

        Exact key values are returned at u == 0 and u == 1. Translations are
        lerped; rotations take the minor arc, are lerped, and renormalized.
        """
        frame, u = self.sampler.locate(t)
        values = self.sampler.values
        if u == 1.0:
            return values[frame].clone()
        if u == 0.0:
            return values[frame - 1].clone()

        a, b = values[frame - 1], values[frame]
        if self.path == PATH_ROTATION:
            b = shortest_path(a, b, inclusive=False)
            q = a * (1 - u) + b * u
            return q / q.norm()
        return a * (1 - u) + b * u

    def __repr__(self) -> str:
        return f"AnimationChannel(node={self.node.name!r}, path={self.path!r}, keys={self.sampler.count})"


class Animation:
    """
    A named set of channels.

    ``duration`` is the latest keyframe time across all channels.
    """

    def __init__(self, channels: Sequence[AnimationChannel], name: Optional[str] = None):
        self.name = name
        self.channels: List[AnimationChannel] = list(channels)

    @property
    def duration(self) -> float:
        if not self.channels:
            return 0.0
        return max(channel.sampler.max_time for channel in self.channels)

    def targets(self) -> Set[Tuple[Node, str]]:
        return {(channel.node, channel.path) for channel in self.channels}

    def __repr__(self) -> str:
        return f"Animation(name={self.name!r}, channels={len(self.channels)}, duration={self.duration:.3f})"


def _current_value(node: Node, path: str) -> Optional[torch.Tensor]:
    if path == PATH_TRANSLATION:
        return node.current_translation().clone()
    if path == PATH_ROTATION:
        return node.current_rotation().clone()
    if path == PATH_SCALE:
        if node.scale is not None:
            return node.scale.clone()
        return torch.ones(3, dtype=node.dtype, device=node.device)
    return None


def complete_animations(animations: Sequence[Animation]) -> int:
    """
    Add "hold current value" channels so every animation covers every
    (node, path) pair that any animation animates.

    Switching animations then never leaves a property in the pose of the
    previous one. The added channels have a single key at time 0 holding
    the node's value at load time. Morph ``weights`` have no node-side value
    and are not completed.

    Returns:
        Number of channels added
    """
    animated: Dict[Tuple[Node, str], None] = {}
    for animation in animations:
        for channel in animation.channels:
            animated.setdefault((channel.node, channel.path), None)

    added = 0
    for animation in animations:
        present = animation.targets()
        for node, path in animated:
            if (node, path) in present:
                continue
            value = _current_value(node, path)
            if value is None:
                logger.debug(f"Not completing '{path}' of node {node.name!r} in {animation.name!r}")
                continue
            times = torch.zeros(1, dtype=value.dtype, device=value.device)
            sampler = KeyframeSampler(times, value.unsqueeze(0))
            animation.channels.append(AnimationChannel(node, path, sampler))
            added += 1
    return added


def _mix(a: torch.Tensor, b: torch.Tensor, blend: float) -> torch.Tensor:
    return a * (1 - blend) + b * blend


class AnimationSampler:
    """
    Drive node poses from a list of animations.

    Example:
        >>> sampler = AnimationSampler(animations)
        >>> changed = sampler.set_time(0.5, 0, time2=0.25, anim2=1, blend=0.3)
    """

    def __init__(self, animations: Sequence[Animation]):
        self.animations: List[Animation] = list(animations)

    def _clamp_index(self, anim: int) -> int:
        return min(max(int(anim), 0), len(self.animations) - 1)

    def _sample_track(
        self,
        animation: Animation,
        time: float,
        changed: Set[Node],
        blend: Optional[float] = None
    ) -> None:
        for channel in animation.channels:
            if not channel.is_sampled:
                logger.debug(
                    f"Skipping '{channel.path}' channel of node {channel.node.name!r}: "
                    "motors cannot represent it"
                )
                continue

            node = channel.node
            value = channel.sample(time).to(dtype=node.dtype)

            if channel.path == PATH_TRANSLATION:
                if blend is None:
                    node.translation = value
                else:
                    node.translation = _mix(node.current_translation(), value, blend)
            else:
                if blend is None:
                    node.rotation = value
                else:
                    current = node.current_rotation()
                    value = shortest_path(current, value, inclusive=False)
                    node.rotation = _mix(current, value, blend)

            node.mark_dirty()
            changed.add(node)

    def set_time(
        self,
        time: float = 0.0,
        anim: int = 0,
        time2: Optional[float] = None,
        anim2: Optional[int] = None,
        blend: Optional[float] = None
    ) -> Set[Node]:
        """
        Pose all animated nodes at ``time`` of animation ``anim``.

        With ``time2`` and ``blend`` given, animation ``anim2`` (default
        ``anim``) is sampled at ``time2`` as well and mixed in with factor
        ``blend``: 0 keeps the first track, 1 gives the second.

        Animation indices are clamped to the available range; without any
        animations this is a no-op.

        Returns:
            Nodes whose local motor was rebuilt
        """
        changed: Set[Node] = set()
        if not self.animations:
            return changed

        first = self.animations[self._clamp_index(anim)]
        self._sample_track(first, float(time), changed)

        if time2 is not None and blend is not None:
            second = self.animations[self._clamp_index(anim if anim2 is None else anim2)]
            self._sample_track(second, float(time2), changed, blend=float(blend))

        for node in changed:
            node.rebuild_transform()
        return changed
