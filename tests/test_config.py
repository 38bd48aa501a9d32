"""
Test settings loading
"""
import pytest

from credly2png.core.config import DEFAULT_RELAY_PREFIXES, Settings, load_settings
from credly2png.core.errors import Credly2PngError


class TestSettings:
    """Test Settings defaults and loading"""

    def test_defaults(self):
        settings = Settings()
        assert (settings.width, settings.height) == (512, 254)
        assert settings.per_page == 100
        assert settings.relay_prefixes == DEFAULT_RELAY_PREFIXES

    def test_load_yaml_with_overrides(self, tmp_path):
        """Test explicit overrides win and None overrides are ignored"""
        config = tmp_path / "settings.yaml"
        config.write_text(
            "width: 300\nheight: 150\nimage_concurrency: 2\nrelay_prefixes: ['https://relay.test/?', '']\n",
            encoding="utf-8",
        )
        settings = load_settings(str(config), width=640, height=None)
        assert settings.width == 640
        assert settings.height == 150
        assert settings.image_concurrency == 2
        assert settings.relay_prefixes == ["https://relay.test/?"]

    def test_invalid_value(self):
        with pytest.raises(Credly2PngError):
            load_settings(width=0)

    def test_missing_file(self, tmp_path):
        with pytest.raises(Credly2PngError):
            load_settings(str(tmp_path / "missing.yaml"))

    def test_non_mapping_file(self, tmp_path):
        config = tmp_path / "list.yaml"
        config.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(Credly2PngError):
            load_settings(str(config))
