"""
Tests for configuration management.
"""

import json

import pytest
import torch

from pga_anim.utils.config import Config, load_config, save_config


class TestConfig:
    """Test the Config dataclass."""

    def test_defaults(self):
        config = Config()
        assert config.torch_dtype == torch.float32
        assert config.torch_device == torch.device('cpu')
        assert config.max_influences == 4
        assert not config.validate_motors

    def test_invalid_dtype(self):
        with pytest.raises(ValueError, match="dtype"):
            Config(dtype='float16')

    def test_invalid_max_influences(self):
        with pytest.raises(ValueError, match="max_influences"):
            Config(max_influences=0)

    def test_from_dict_keeps_unknown_keys(self):
        config = Config.from_dict({'dtype': 'float64', 'renderer': 'webgl', 'extra': {'a': 1}})
        assert config.torch_dtype == torch.float64
        assert config.extra == {'a': 1, 'renderer': 'webgl'}

    def test_update_returns_new_config(self):
        config = Config()
        updated = config.update(normalized_atol=1e-6, validate_motors=True)
        assert updated.normalized_atol == 1e-6
        assert updated.validate_motors
        assert config.normalized_atol != 1e-6

    def test_dict_round_trip(self):
        config = Config(dtype='float64', max_influences=8)
        assert Config.from_dict(config.to_dict()) == config


class TestConfigFiles:
    """Test JSON persistence."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        save_config(Config(validate_motors=True, matrix_scale_tolerance=1e-3), str(path))
        assert path.exists()

        loaded = load_config(str(path))
        assert loaded.validate_motors
        assert loaded.matrix_scale_tolerance == 1e-3

    def test_load_hand_written(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'device': 'cpu', 'max_influences': 2}))
        assert load_config(str(path)).max_influences == 2
