"""
Test YAML configuration loading
"""

import pytest

from cropaug.core import ConfigError, Rectangle
from cropaug.core.config import AugmentConfig, load_config, parse_anchor, parse_config, parse_pair


class TestParsing:
    """Test value parsers"""

    @pytest.mark.parametrize(
        "value",
        ["10,10,100,50", [10, 10, 100, 50], {"x": 10, "y": 10, "width": 100, "height": 50}],
    )
    def test_anchor_formats(self, value):
        assert parse_anchor(value) == Rectangle(10, 10, 100, 50)

    def test_invalid_anchor(self):
        with pytest.raises(ConfigError):
            parse_anchor("10,10")

    def test_pair_formats(self):
        assert parse_pair("-20,30", "expansion") == (-20.0, 30.0)
        assert parse_pair([0.5, 2], "aspect_jitter") == (0.5, 2.0)
        assert parse_pair(25, "expansion") == (25.0, 25.0)
        assert parse_pair(None, "expansion") is None

    def test_invalid_pair(self):
        with pytest.raises(ConfigError):
            parse_pair("1,2,3", "expansion")


class TestConfigFile:
    """Test loading configuration files"""

    def test_load_full_config(self, temp_dir):
        path = temp_dir / "augment.yaml"
        path.write_text(
            """
generation:
  anchor: [10, 10, 100, 50]
  count: 20
  expansion: [0, 50]
  aspect_jitter: [0.5, 2.0]
  allow_out_of_bounds: false
  seed: 42
  workers: 2
processing:
  brightness: 10
  flip_horizontal: true
"""
        )
        config = load_config(path)

        assert config.anchor == Rectangle(10, 10, 100, 50)
        assert config.count == 20
        assert config.expansion == (0.0, 50.0)
        assert config.aspect_jitter == (0.5, 2.0)
        assert config.allow_out_of_bounds is False
        assert config.seed == 42
        assert config.workers == 2
        assert config.processing.brightness == 10
        assert config.processing.flip_horizontal

        request = config.build_request()
        assert request.count == 20
        assert request.aspect_ratio_jitter == (0.5, 2.0)

    def test_empty_file_gives_defaults(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")
        config = load_config(path)

        assert config.anchor is None
        assert config.count == 10
        assert config.processing.is_identity()

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "missing.yaml")

    def test_malformed_yaml(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("generation: [unclosed")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_unknown_keys(self):
        with pytest.raises(ConfigError):
            parse_config({"output": {}})
        with pytest.raises(ConfigError):
            parse_config({"generation": {"anchr": [0, 0, 1, 1]}})

    @pytest.mark.parametrize(
        "generation",
        [
            {"count": "many"},
            {"count": [3]},
            {"count": 2.5},
            {"seed": {"value": 1}},
            {"seed": True},
            {"workers": "four"},
        ],
    )
    def test_malformed_integers(self, generation):
        with pytest.raises(ConfigError, match="must be an integer"):
            parse_config({"generation": generation})

    def test_integer_strings_accepted(self):
        config = parse_config({"generation": {"count": "12", "seed": 7, "workers": " 3 "}})
        assert (config.count, config.seed, config.workers) == (12, 7, 3)

    def test_processing_out_of_range(self):
        with pytest.raises(ConfigError):
            parse_config({"processing": {"blur": 50}})

    def test_build_request_requires_anchor(self):
        with pytest.raises(ConfigError):
            AugmentConfig().build_request()
