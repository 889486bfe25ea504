"""
Scene assembly from a decoded glTF-style description.

``build_scene`` takes the JSON structure of a glTF asset with accessor data
already inlined as lists, and performs the load-time work the per-frame
pipeline relies on:

    - create nodes and link children / parents
    - convert inverse bind matrices (column-major, 16 floats) to motors
    - link skins and animation channels to their nodes
    - add "hold current value" channels (``complete_animations``)
    - compute world scale and apply scale compensation

Description layout (all keys optional except where noted):

    {
        "nodes": [{"name": str, "children": [int], "rotation": [x, y, z, w],
                   "translation": [3], "scale": [3], "matrix": [16],
                   "skin": int}],
        "skins": [{"joints": [int], "inverseBindMatrices": [[16]] or [16 * J],
                   "skeleton": int, "name": str}],
        "animations": [{"name": str,
                        "channels": [{"sampler": int,
                                      "target": {"node": int, "path": str}}],
                        "samplers": [{"input": [times], "output": [values],
                                      "interpolation": "LINEAR"}]}],
        "scenes": [{"nodes": [int]}],
        "scene": int
    }

Invalid references fail fast with ``IndexError``; malformed data raises
``ValueError``.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import torch

from ..core.constants import KNOWN_PATHS, PATH_WIDTHS
from ..pga.transforms import from_matrix
from ..utils.config import Config
from ..animation.sampler import Animation, AnimationChannel, KeyframeSampler, complete_animations
from .node import Node, Skin
from .scale import compute_world_scale, apply_scale_compensation
from .scene import Scene

logger = logging.getLogger(__name__)


def _index(value: Any, items: Sequence, kind: str) -> int:
    index = int(value)
    if not 0 <= index < len(items):
        raise IndexError(f"{kind} index {index} out of range ({len(items)} {kind}s)")
    return index


def _vector(spec: Dict[str, Any], key: str, size: int, owner: str) -> Optional[np.ndarray]:
    if key not in spec or spec[key] is None:
        return None
    value = np.asarray(spec[key], dtype=np.float64).reshape(-1)
    if value.shape[0] != size:
        raise ValueError(f"{owner}: '{key}' should have {size} components, got {value.shape[0]}")
    return value


def column_major_to_matrix(values: Any) -> np.ndarray:
    """
    Convert glTF column-major matrices to row-major arrays.

    Args:
        values: 16 floats, or 16 * N floats / (N, 16) nested lists

    Returns:
        Array of shape (4, 4) for a single matrix, else (N, 4, 4)

    Raises:
        ValueError: If the number of floats is not a multiple of 16
    """
    flat = np.asarray(values, dtype=np.float64).reshape(-1)
    if flat.shape[0] % 16 != 0 or flat.shape[0] == 0:
        raise ValueError(f"Matrix data should hold a multiple of 16 floats, got {flat.shape[0]}")
    matrices = flat.reshape(-1, 4, 4).transpose(0, 2, 1)
    if matrices.shape[0] == 1 and np.ndim(values) == 1:
        return matrices[0]
    return matrices


def _build_nodes(specs: List[Dict[str, Any]], dtype: torch.dtype, device: torch.device) -> List[Node]:
    nodes = []
    for i, spec in enumerate(specs):
        owner = f"node {i}"
        matrix = column_major_to_matrix(spec["matrix"]) if spec.get("matrix") is not None else None
        if matrix is not None and matrix.ndim != 2:
            raise ValueError(f"{owner}: 'matrix' should hold exactly 16 floats")
        nodes.append(Node(
            name=spec.get("name", f"node_{i}"),
            rotation=_vector(spec, "rotation", 4, owner),
            translation=_vector(spec, "translation", 3, owner),
            scale=_vector(spec, "scale", 3, owner),
            matrix=matrix,
            dtype=dtype,
            device=device,
        ))

    for i, spec in enumerate(specs):
        for child in spec.get("children", []):
            nodes[i].add_child(nodes[_index(child, nodes, "node")])
    return nodes


def _build_skins(
    specs: List[Dict[str, Any]],
    nodes: List[Node],
    dtype: torch.dtype,
    device: torch.device,
    tolerance: float
) -> List[Skin]:
    skins = []
    for i, spec in enumerate(specs):
        if "joints" not in spec:
            raise ValueError(f"skin {i}: missing 'joints'")
        joints = [nodes[_index(j, nodes, "node")] for j in spec["joints"]]

        inverse_bind_motors = None
        if spec.get("inverseBindMatrices") is not None:
            matrices = column_major_to_matrix(spec["inverseBindMatrices"])
            matrices = matrices.reshape(-1, 4, 4)
            if matrices.shape[0] != len(joints):
                raise ValueError(
                    f"skin {i}: {matrices.shape[0]} inverse bind matrices for {len(joints)} joints"
                )
            inverse_bind_motors = from_matrix(
                torch.as_tensor(matrices, dtype=dtype, device=device), tolerance=tolerance
            )

        skeleton = None
        if spec.get("skeleton") is not None:
            skeleton = nodes[_index(spec["skeleton"], nodes, "node")]

        skins.append(Skin(joints, inverse_bind_motors, skeleton=skeleton, name=spec.get("name", f"skin_{i}")))
    return skins


def _sampler_values(spec: Dict[str, Any], count: int, path: str, owner: str) -> np.ndarray:
    values = np.asarray(spec["output"], dtype=np.float64).reshape(-1)
    width = PATH_WIDTHS.get(path)
    interpolation = spec.get("interpolation", "LINEAR")

    if interpolation == "CUBICSPLINE":
        # [in-tangent, value, out-tangent] per key; keep the values
        logger.warning(f"{owner}: CUBICSPLINE keys are sampled linearly")
        values = values.reshape(count, 3, -1)[:, 1].reshape(-1)
    elif interpolation not in ("LINEAR", "STEP"):
        raise ValueError(f"{owner}: unsupported interpolation '{interpolation}'")

    if width is None:
        if values.shape[0] % count != 0:
            raise ValueError(f"{owner}: {values.shape[0]} values do not split into {count} keys")
        width = values.shape[0] // count
    if values.shape[0] != count * width:
        raise ValueError(f"{owner}: expected {count} keys of {width} values, got {values.shape[0]} values")
    return values.reshape(count, width)


def _build_animations(
    specs: List[Dict[str, Any]],
    nodes: List[Node],
    dtype: torch.dtype,
    device: torch.device
) -> List[Animation]:
    animations = []
    for a, spec in enumerate(specs):
        name = spec.get("name", f"animation_{a}")
        samplers = spec.get("samplers", [])
        channels = []
        for c, channel_spec in enumerate(spec.get("channels", [])):
            owner = f"animation {name!r} channel {c}"
            target = channel_spec.get("target", {})
            path = target.get("path")
            if path not in KNOWN_PATHS:
                raise ValueError(f"{owner}: unknown path {path!r}")
            if target.get("node") is None:
                logger.debug(f"{owner}: no target node, skipped")
                continue
            node = nodes[_index(target["node"], nodes, "node")]
            sampler_spec = samplers[_index(channel_spec.get("sampler", 0), samplers, "sampler")]

            times = np.asarray(sampler_spec["input"], dtype=np.float64).reshape(-1)
            if times.shape[0] == 0:
                raise ValueError(f"{owner}: sampler has no keyframes")
            values = _sampler_values(sampler_spec, times.shape[0], path, owner)

            sampler = KeyframeSampler(
                torch.as_tensor(times, dtype=dtype, device=device),
                torch.as_tensor(values, dtype=dtype, device=device),
            )
            channels.append(AnimationChannel(node, path, sampler))
        animations.append(Animation(channels, name=name))
    return animations


def build_scene(description: Dict[str, Any], config: Optional[Config] = None) -> Scene:
    """
    Assemble a ``Scene`` from a glTF-style description.

    Args:
        description: Decoded glTF JSON with inline accessor data
        config: Evaluation config (dtype, device, tolerances)

    Returns:
        Scene ready for ``evaluate``

    Raises:
        IndexError: On node, skin, sampler or scene indices out of range
        ValueError: On malformed vectors, matrices or keyframe data
    """
    config = config or Config()
    dtype, device = config.torch_dtype, config.torch_device

    node_specs = description.get("nodes", [])
    nodes = _build_nodes(node_specs, dtype, device)
    skins = _build_skins(
        description.get("skins", []), nodes, dtype, device, config.matrix_scale_tolerance
    )
    for i, spec in enumerate(node_specs):
        if spec.get("skin") is not None:
            nodes[i].skin = skins[_index(spec["skin"], skins, "skin")]

    animations = _build_animations(description.get("animations", []), nodes, dtype, device)
    added = complete_animations(animations)

    scenes = description.get("scenes")
    if scenes:
        scene_index = _index(description.get("scene", 0), scenes, "scene")
        roots = [nodes[_index(n, nodes, "node")] for n in scenes[scene_index].get("nodes", [])]
    else:
        roots = [node for node in nodes if node.parent is None]

    compute_world_scale([node for node in nodes if node.parent is None])
    apply_scale_compensation(nodes, skins)

    logger.info(
        f"Built scene: {len(nodes)} nodes, {len(roots)} roots, {len(skins)} skins, "
        f"{len(animations)} animations ({added} hold channels added)"
    )
    return Scene(roots, nodes=nodes, skins=skins, animations=animations, config=config)
