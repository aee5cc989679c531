"""
Tests for configuration system.
"""

import pytest
from qa_recorder.config import ConfigLoader, Settings, RecorderSettings, ReplaySettings, load_config
from qa_recorder.exceptions import ConfigurationError


class TestSettings:
    """Test the Settings classes."""

    def test_default_settings(self):
        """Test default settings are created correctly."""
        settings = Settings()

        assert settings.recorder.selector_types == ["css", "xpath"]
        assert settings.recorder.test_id_attribute == "data-testid"
        assert settings.replay.speed == "normal"
        assert settings.replay.timeout_ms == 5000
        assert settings.replay.use_debugger is True

    def test_merge_with_overrides(self):
        """Test merging settings with overrides."""
        settings = Settings()
        new_settings = settings.merge_with({
            "replay": {"speed": "slow"},
            "browser": {"headless": True},
        })

        assert new_settings.replay.speed == "slow"
        assert new_settings.browser.headless is True
        # Other settings should remain default
        assert new_settings.replay.timeout_ms == 5000

    def test_speed_delays(self):
        """Test speed names map to inter-step delays."""
        replay = ReplaySettings()

        assert replay.delay_for("slow") == 1000
        assert replay.delay_for("fast") == 0
        assert replay.delay_for("unknown") == 100

    def test_selector_types_validation(self):
        """Test selector types are validated and de-duplicated."""
        assert RecorderSettings(selector_types=["xpath", "css", "xpath"]).selector_types == ["xpath", "css"]

        with pytest.raises(ValueError):
            RecorderSettings(selector_types=[])
        with pytest.raises(ValueError):
            RecorderSettings(selector_types=["jquery"])

    def test_replay_settings_validation(self):
        """Test validation of replay settings."""
        with pytest.raises(ValueError):
            ReplaySettings(timeout_ms=10)

    def test_env_override(self, monkeypatch):
        """Test nested environment variables are applied."""
        monkeypatch.setenv("QA_RECORDER__REPLAY__TIMEOUT_MS", "9000")

        assert Settings().replay.timeout_ms == 9000


class TestConfigLoader:
    """Test loading configuration files."""

    def test_yaml_file(self, tmp_path, monkeypatch):
        """Test values from a YAML file are loaded."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "custom.yaml"
        path.write_text("replay:\n  speed: fast\nrecorder:\n  test_id_attribute: data-qa\n")

        settings = load_config(path)

        assert settings.replay.speed == "fast"
        assert settings.recorder.test_id_attribute == "data-qa"

    def test_overrides_win(self, tmp_path, monkeypatch):
        """Test explicit overrides beat the file."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "custom.yaml"
        path.write_text("replay:\n  speed: fast\n")

        settings = load_config(path, replay={"speed": "slow"})

        assert settings.replay.speed == "slow"

    def test_missing_file(self, tmp_path):
        """Test an explicit missing file is an error."""
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path, monkeypatch):
        """Test malformed YAML is an error."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.yaml"
        path.write_text("replay: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping_file(self, tmp_path, monkeypatch):
        """Test a YAML list at the top level is rejected."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "list.yaml"
        path.write_text("- replay\n- recorder\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_value(self, tmp_path, monkeypatch):
        """Test a value failing validation becomes a ConfigurationError."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "custom.yaml"
        path.write_text("replay:\n  timeout_ms: 5\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_path_from_environment(self, tmp_path, monkeypatch):
        """Test QA_RECORDER_CONFIG names the file when no path is given."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "from-env.yaml"
        path.write_text("recorder:\n  test_id_attribute: data-cy\n")
        monkeypatch.setenv("QA_RECORDER_CONFIG", str(path))

        loader = ConfigLoader()
        settings = loader.load()

        assert settings.recorder.test_id_attribute == "data-cy"
        assert loader.source == path

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        """Test defaults are used when no config file is found."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("QA_RECORDER_CONFIG", raising=False)
        monkeypatch.setattr(ConfigLoader, "SEARCH_PATHS", [tmp_path / "qa-recorder.yaml"])

        loader = ConfigLoader()
        settings = loader.load()

        assert loader.source is None
        assert settings.replay.speed == "normal"
