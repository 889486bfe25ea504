"""
Configuration management for PGA-Anim.

Numeric tolerances and storage options shared by scene assembly and the
per-frame pipeline. The defaults mirror ``pga_anim.core.constants``.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Dict, Any
from pathlib import Path

import torch

from ..core.constants import (
    DEFAULT_MATRIX_SCALE_TOLERANCE,
    DEFAULT_NORMALIZED_ATOL,
    DEFAULT_MAX_INFLUENCES,
)

_DTYPES = {
    'float32': torch.float32,
    'float64': torch.float64,
}


@dataclass
class Config:
    """
    Configuration for scene evaluation.

    Attributes:
        # Storage
        dtype: Tensor dtype name ('float32' or 'float64')
        device: Device for all scene tensors ('cpu', 'cuda', ...)

        # Numerics
        matrix_scale_tolerance: Column-norm deviation that triggers rescaling when
            inverse bind matrices are converted to motors
        normalized_atol: Tolerance of the normalized-motor check

        # Debug
        validate_motors: Check that motors are normalized before they are applied

        # Skinning
        max_influences: Joint influences per vertex
    """

    # Storage
    dtype: str = 'float32'
    device: str = 'cpu'

    # Numerics
    matrix_scale_tolerance: float = DEFAULT_MATRIX_SCALE_TOLERANCE
    normalized_atol: float = DEFAULT_NORMALIZED_ATOL

    # Debug
    validate_motors: bool = False

    # Skinning
    max_influences: int = DEFAULT_MAX_INFLUENCES

    # Additional fields
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.dtype not in _DTYPES:
            raise ValueError(f"Unsupported dtype '{self.dtype}', expected one of {sorted(_DTYPES)}")
        if self.max_influences < 1:
            raise ValueError(f"max_influences should be >= 1, got {self.max_influences}")

    @property
    def torch_dtype(self) -> torch.dtype:
        return _DTYPES[self.dtype]

    @property
    def torch_device(self) -> torch.device:
        return torch.device(self.device)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'Config':
        """Create config from dictionary. Unknown keys are kept in ``extra``."""
        known_fields = {f.name for f in cls.__dataclass_fields__.values()} - {'extra'}
        known_kwargs = {k: v for k, v in config_dict.items() if k in known_fields}
        extra_kwargs = dict(config_dict.get('extra', {}))
        extra_kwargs.update({k: v for k, v in config_dict.items() if k not in known_fields and k != 'extra'})

        config = cls(**known_kwargs)
        config.extra = extra_kwargs
        return config

    def update(self, **kwargs) -> 'Config':
        """Return a new config with updated values."""
        config_dict = self.to_dict()
        config_dict.update(kwargs)
        return Config.from_dict(config_dict)


def load_config(filepath: str) -> Config:
    """
    Load configuration from JSON file.

    Args:
        filepath: Path to JSON config file

    Returns:
        Config object
    """
    filepath = Path(filepath)
    with open(filepath, 'r') as f:
        config_dict = json.load(f)
    return Config.from_dict(config_dict)


def save_config(config: Config, filepath: str) -> None:
    """Save configuration to a JSON file, creating parent directories."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)
