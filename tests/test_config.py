"""Tests for configuration validation and the CLI wiring."""

import json

import pytest
from click.testing import CliRunner

from hostpulse.config import ConfigError, MonitorConfig
from hostpulse.main import cli


def test_defaults_are_valid():
    config = MonitorConfig().validate()
    assert config.refresh_interval == 60
    assert config.request_deadline == 60.0
    assert config.privileged_capture is False
    assert "/var/lib/mysql/*.err" in config.sql_logs


@pytest.mark.parametrize("overrides", [
    {"refresh_interval": 0},
    {"request_deadline": -1},
    {"probe_timeout": 0},
    {"probe_timeout": 90, "request_deadline": 60},
    {"network_sample_seconds": 0},
    {"max_workers": 0},
])
def test_invalid_config_rejected(overrides):
    with pytest.raises(ConfigError):
        MonitorConfig(**overrides).validate()


def test_config_is_immutable():
    config = MonitorConfig()
    with pytest.raises(AttributeError):
        config.refresh_interval = 5


def test_cli_mock_snapshot_json():
    result = CliRunner().invoke(cli, ["--mock", "snapshot", "--output", "json"])
    assert result.exit_code == 0, result.output
    record = json.loads(result.output)
    assert record["memory"].splitlines()[1].startswith("Mem:")


def test_cli_rejects_bad_config():
    result = CliRunner().invoke(cli, ["--probe-timeout", "120", "snapshot"])
    assert result.exit_code == 2
    assert "exceeds the request deadline" in result.output


def test_cli_reads_environment():
    result = CliRunner().invoke(
        cli, ["--mock", "snapshot", "--output", "json"], env={"HOSTPULSE_REFRESH": "0"}
    )
    assert result.exit_code == 2
    assert "refresh interval must be positive" in result.output
