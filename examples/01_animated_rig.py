"""
Example 01: Animated Skinned Rig

Demonstrates the per-frame motor pipeline on a small procedural character:
1. Describing a three-bone arm in glTF layout (nodes, skin, animations)
2. Building the scene (inverse bind motors, hold channels, scale compensation)
3. Playing an animation and skinning a cylinder of vertices on the CPU
4. Cross-fading two animations
5. Checking the motor results against a 4x4 matrix pipeline

Run:
    python examples/01_animated_rig.py [--frames N]
"""

import math
import sys
from pathlib import Path

import numpy as np
import torch

from pga_anim.pga import to_matrix, apply_to_origin
from pga_anim.scene import build_scene
from pga_anim.utils import Config, save_config


# =============================================================================
# 1. Configuration
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
OUTPUT_DIR = PROJECT_ROOT / "output"

BONE_LENGTH = 1.0
NUM_BONES = 3
RING_SEGMENTS = 12
RINGS_PER_BONE = 4


def translation_matrix(x, y, z):
    """Column-major 4x4 translation, glTF layout."""
    return [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, x, y, z, 1]


def axis_quaternion(axis, degrees):
    """glTF [x, y, z, w] rotation about a unit axis."""
    half = math.radians(degrees) / 2
    s = math.sin(half)
    return [axis[0] * s, axis[1] * s, axis[2] * s, math.cos(half)]


# =============================================================================
# 2. Rig Description
# =============================================================================

def make_description():
    """An arm of NUM_BONES bones along +y, with a wave and a twist animation."""
    nodes = [{"name": "root", "children": [1, NUM_BONES + 1], "scale": [0.5, 0.5, 0.5]}]
    for i in range(NUM_BONES):
        node = {
            "name": f"bone_{i}",
            "translation": [0.0, BONE_LENGTH if i > 0 else 0.0, 0.0],
        }
        if i + 1 < NUM_BONES:
            node["children"] = [i + 2]
        nodes.append(node)
    nodes.append({"name": "arm_mesh", "skin": 0})

    joints = list(range(1, NUM_BONES + 1))
    inverse_binds = [translation_matrix(0.0, -BONE_LENGTH * i, 0.0) for i in range(NUM_BONES)]

    times = [0.0, 0.5, 1.0, 1.5, 2.0]
    wave_angles = [0.0, 35.0, 0.0, -35.0, 0.0]
    wave = {
        "name": "wave",
        "channels": [],
        "samplers": [],
    }
    for i, joint in enumerate(joints):
        wave["samplers"].append({
            "input": times,
            "output": [axis_quaternion((0.0, 0.0, 1.0), a) for a in wave_angles],
            "interpolation": "LINEAR",
        })
        wave["channels"].append({"sampler": i, "target": {"node": joint, "path": "rotation"}})

    twist = {
        "name": "twist",
        "channels": [
            {"sampler": 0, "target": {"node": 1, "path": "rotation"}},
            {"sampler": 1, "target": {"node": 1, "path": "translation"}},
        ],
        "samplers": [
            {
                "input": [0.0, 1.0, 2.0],
                "output": [axis_quaternion((0.0, 1.0, 0.0), a) for a in (0.0, 170.0, 340.0)],
            },
            {
                "input": [0.0, 2.0],
                "output": [[0.0, 0.0, 0.0], [0.5, 0.0, 0.0]],
            },
        ],
    }

    return {
        "nodes": nodes,
        "skins": [{"name": "arm", "joints": joints, "skeleton": 0, "inverseBindMatrices": inverse_binds}],
        "animations": [wave, twist],
        "scenes": [{"nodes": [0]}],
        "scene": 0,
    }


def make_cylinder(scale):
    """
    Rest-pose vertices of a cylinder around the arm, with two joint
    influences per vertex blended along each bone.
    """
    length = BONE_LENGTH * NUM_BONES
    heights = np.linspace(0.0, length, NUM_BONES * RINGS_PER_BONE + 1)
    angles = np.linspace(0.0, 2 * np.pi, RING_SEGMENTS, endpoint=False)

    y, a = np.meshgrid(heights, angles, indexing="ij")
    points = np.stack([0.1 * np.cos(a), y, 0.1 * np.sin(a)], axis=-1).reshape(-1, 3)

    bone = np.clip(points[:, 1] / BONE_LENGTH, 0.0, NUM_BONES - 1e-6)
    lower = np.floor(bone).astype(np.int64)
    upper = np.minimum(lower + 1, NUM_BONES - 1)
    w_upper = bone - lower
    joints = np.stack([lower, upper], axis=-1)
    weights = np.stack([1.0 - w_upper, w_upper], axis=-1)

    # Vertex data is pre-scaled by the world scale of the mesh node
    return (
        torch.as_tensor(points * scale, dtype=torch.float32),
        torch.as_tensor(joints),
        torch.as_tensor(weights, dtype=torch.float32),
    )


# =============================================================================
# 3. Playback
# =============================================================================

def play(scene, points, joints, weights, num_frames):
    """Play the wave animation and report the tip of the arm."""
    print("\n" + "=" * 60)
    print("Playing 'wave'")
    print("=" * 60)

    skin = scene.skins[0]
    duration = scene.animations[0].duration
    tip = points[:, 1].argmax()
    for frame in range(num_frames):
        t = duration * frame / max(num_frames - 1, 1)
        touched = scene.evaluate(time=t, anim=0)
        skinned = scene.skinning_resolver.skin_points(skin, points, joints, weights)
        x, y, z = skinned[tip].tolist()
        print(f"  t={t:.2f}s  nodes updated: {len(touched):2d}  tip: ({x:+.3f}, {y:+.3f}, {z:+.3f})")


def cross_fade(scene, points, joints, weights):
    """Blend from 'wave' into 'twist' over five steps."""
    print("\n" + "=" * 60)
    print("Cross-fading 'wave' -> 'twist'")
    print("=" * 60)

    skin = scene.skins[0]
    tip = points[:, 1].argmax()
    for step in range(5):
        blend = step / 4
        scene.evaluate(time=0.5, anim=0, time2=1.0, anim2=1, blend=blend)
        skinned = scene.skinning_resolver.skin_points(skin, points, joints, weights)
        x, y, z = skinned[tip].tolist()
        print(f"  blend={blend:.2f}  tip: ({x:+.3f}, {y:+.3f}, {z:+.3f})")


def compare_with_matrices(scene):
    """World positions from motors vs. products of 4x4 matrices."""
    print("\n" + "=" * 60)
    print("Motors vs. matrices")
    print("=" * 60)

    scene.evaluate(time=0.7, anim=1)
    worst = 0.0
    for node in scene.nodes:
        chain = []
        current = node
        while current is not None:
            chain.append(to_matrix(current.transform))
            current = current.parent
        matrix = to_matrix(scene.root_motor)
        for local in reversed(chain):
            matrix = matrix @ local
        error = (matrix[:3, 3] - apply_to_origin(node.world_transform)).abs().max().item()
        worst = max(worst, error)
        print(f"  {node.name:>10}: max deviation {error:.2e}")
    print(f"  Worst deviation: {worst:.2e}")


def main():
    num_frames = 9
    if "--frames" in sys.argv:
        num_frames = int(sys.argv[sys.argv.index("--frames") + 1])

    config = Config()
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    save_config(config, OUTPUT_DIR / "01_config.json")

    print("=" * 60)
    print("Building scene")
    print("=" * 60)
    scene = build_scene(make_description(), config)
    print(f"  {scene}")
    for animation in scene.animations:
        print(f"  {animation}")

    mesh = scene.node("arm_mesh")
    points, joints, weights = make_cylinder(mesh.world_scale.numpy())
    print(f"  Vertices: {points.shape[0]}, influences per vertex: {joints.shape[1]}")

    play(scene, points, joints, weights, num_frames)
    cross_fade(scene, points, joints, weights)
    compare_with_matrices(scene)

    print("\n" + "=" * 60)
    print("Done!")
    print("=" * 60)


if __name__ == "__main__":
    main()
