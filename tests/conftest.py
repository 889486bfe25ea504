"""
Pytest configuration and fixtures for PGA-Anim tests.
"""

import math

import pytest
import torch


@pytest.fixture
def cpu_device():
    """Force CPU device for consistent testing."""
    return torch.device('cpu')


@pytest.fixture
def batch_size():
    """Default batch size for tests."""
    return 16


@pytest.fixture
def generator():
    """Seeded random generator."""
    return torch.Generator().manual_seed(1234)


@pytest.fixture
def random_motors(batch_size, generator):
    """Random normalized float64 motors of shape (batch_size, 8)."""
    from pga_anim.pga.motors import normalize

    raw = torch.randn(batch_size, 8, generator=generator, dtype=torch.float64)
    return normalize(raw)


@pytest.fixture
def random_lines(batch_size, generator):
    """Random float64 lines with rotation angle below pi, shape (batch_size, 6)."""
    lines = torch.randn(batch_size, 6, generator=generator, dtype=torch.float64)
    rot_norm = lines[:, :3].norm(dim=-1, keepdim=True)
    target = torch.rand(batch_size, 1, generator=generator, dtype=torch.float64) * 1.4 + 0.05
    lines[:, :3] = lines[:, :3] / rot_norm * target
    return lines


@pytest.fixture
def random_points(batch_size, generator):
    """Random float64 points in [-1, 1]^3."""
    return torch.rand(batch_size, 3, generator=generator, dtype=torch.float64) * 2 - 1


def _translation_matrix(x, y, z):
    """Column-major 4x4 translation, glTF layout."""
    return [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, x, y, z, 1]


@pytest.fixture
def rig_description():
    """
    Two-bone rig: root -> upper -> lower, plus a skinned mesh node.

    Animation 0 ("bend") rotates the lower bone 90 degrees about z at t = 1
    and back at t = 2. Animation 1 ("slide") moves the upper bone from
    y = 1 to y = 2 over one second.
    """
    s = math.sqrt(0.5)
    return {
        "nodes": [
            {"name": "root", "children": [1, 3]},
            {"name": "upper", "children": [2], "translation": [0.0, 1.0, 0.0]},
            {"name": "lower", "translation": [0.0, 1.0, 0.0]},
            {"name": "mesh", "skin": 0},
        ],
        "skins": [
            {
                "name": "arm",
                "joints": [1, 2],
                "skeleton": 0,
                "inverseBindMatrices": [
                    _translation_matrix(0.0, -1.0, 0.0),
                    _translation_matrix(0.0, -2.0, 0.0),
                ],
            }
        ],
        "animations": [
            {
                "name": "bend",
                "channels": [{"sampler": 0, "target": {"node": 2, "path": "rotation"}}],
                "samplers": [{
                    "input": [0.0, 1.0, 2.0],
                    "output": [[0, 0, 0, 1], [0, 0, s, s], [0, 0, 0, 1]],
                    "interpolation": "LINEAR",
                }],
            },
            {
                "name": "slide",
                "channels": [{"sampler": 0, "target": {"node": 1, "path": "translation"}}],
                "samplers": [{
                    "input": [0.0, 1.0],
                    "output": [0.0, 1.0, 0.0, 0.0, 2.0, 0.0],
                }],
            },
        ],
        "scenes": [{"nodes": [0]}],
        "scene": 0,
    }


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
