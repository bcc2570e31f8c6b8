"""Tests for YAML configuration loading and validation."""

import pytest

from satellite_bridge.config import AppConfig, DeviceConfig, load_config, validate_config


def write_config(tmp_path, text):
    path = tmp_path / "satellites.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults():
    """Test default configuration values."""
    config = AppConfig()
    assert config.device.names == ["Dummy Data"]
    assert config.device.gyro_service_uuid == "100f0e0d-0c0b-0a09-0807-060504030201"
    assert config.matrix.unset_value == 0.0
    assert config.export.export_on_stop is False
    assert config.logging.verbose_whitelist == []


def test_load_sections(tmp_path):
    """Test every YAML section is loaded into its dataclass."""
    path = write_config(tmp_path, """
device:
  names: ["Hub A", "Hub B"]
  scan_timeout_sec: 5
matrix:
  unset_display: none
export:
  dir: ./out
  export_on_stop: true
logging:
  mode: verbose
  verbose_whitelist:
    channel: true
""")
    config = load_config(path)

    assert config.device.names == ["Hub A", "Hub B"]
    assert config.device.scan_timeout_sec == 5
    assert config.matrix.unset_value is None
    assert config.export.dir == "./out"
    assert config.export.export_on_stop is True
    assert config.logging.verbose_whitelist == ["channel"]


def test_single_name_becomes_list(tmp_path):
    """Test a single device name is wrapped in a list."""
    path = write_config(tmp_path, "device:\n  names: Dummy Data 2\n")
    assert load_config(path).device.names == ["Dummy Data 2"]


def test_env_substitution(tmp_path, monkeypatch):
    """Test ${VAR} values are substituted from the environment."""
    monkeypatch.setenv("SATELLITE_HUB_MAC", "AA:BB:CC:DD:EE:FF")
    path = write_config(tmp_path, "device:\n  mac: ${SATELLITE_HUB_MAC}\n  names: ['${HUB_NAME_UNSET}']\n")

    config = load_config(path)
    assert config.device.mac == "AA:BB:CC:DD:EE:FF"
    assert config.device.names == ["${HUB_NAME_UNSET}"]


def test_missing_file(tmp_path):
    """Test a missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_empty_file(tmp_path):
    """Test an empty config file raises ValueError."""
    path = write_config(tmp_path, "")
    with pytest.raises(ValueError):
        load_config(path)


def test_unknown_key_rejected(tmp_path):
    """Test unknown keys are rejected."""
    path = write_config(tmp_path, "device:\n  colour: blue\n")
    with pytest.raises(TypeError):
        load_config(path)


class TestValidateConfig:
    """Configuration validation messages."""

    def setup_method(self):
        """Set up a default configuration."""
        self.config = AppConfig()

    def test_valid_config(self, tmp_path):
        """Test a valid config yields no errors and creates directories."""
        self.config.logging.dir = str(tmp_path / "logs")
        self.config.export.dir = str(tmp_path / "exports")
        assert validate_config(self.config) == []
        assert (tmp_path / "exports").is_dir()

    def test_needs_name_or_mac(self, tmp_path):
        """Test a device needs a name or a MAC address."""
        self.config.logging.dir = str(tmp_path / "logs")
        self.config.export.dir = str(tmp_path / "exports")
        self.config.device = DeviceConfig(names=[], mac="")
        errors = validate_config(self.config)
        assert any("mac or at least one name" in e for e in errors)

    def test_duplicate_service_uuids(self, tmp_path):
        """Test sensor service UUIDs must be distinct."""
        self.config.logging.dir = str(tmp_path / "logs")
        self.config.export.dir = str(tmp_path / "exports")
        self.config.device.accel_service_uuid = self.config.device.gyro_service_uuid.upper()
        errors = validate_config(self.config)
        assert any("distinct" in e for e in errors)

    def test_bad_modes(self, tmp_path):
        """Test invalid unset display and logging modes are reported."""
        self.config.logging.dir = str(tmp_path / "logs")
        self.config.export.dir = str(tmp_path / "exports")
        self.config.matrix.unset_display = "blank"
        self.config.logging.mode = "loud"
        errors = validate_config(self.config)
        assert len(errors) == 2
