"""Tests for configuration loading and inventory settings."""

import pytest

from src.ssoinventory.utils.config import (
    CONFIG_DIR,
    DEFAULT_INVENTORY_CONFIG,
    DEFAULT_REGION,
    Config,
    InventorySettings,
)
from src.ssoinventory.utils.logging_config import LogFormat, LogLevel

ENV_VARS = [
    "SSOINVENTORY_REGION",
    "SSOINVENTORY_CONCURRENCY",
    "SSOINVENTORY_MAX_RETRIES",
    "SSOINVENTORY_INITIAL_DELAY_MS",
    "SSOINVENTORY_JITTER_MAX_MS",
    "SSOINVENTORY_OUTPUT_FILE",
    "SSOINVENTORY_CONTINUE_ON_ERROR",
    "SSOINVENTORY_PROGRESS",
    "SSOINVENTORY_LOG_FILE",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "config.yaml"


class TestConfig:
    """Test YAML loading and environment overrides."""

    def test_defaults_without_file(self, config_file):
        config = Config(config_file)

        inventory = config.get_inventory_config()

        expected = dict(DEFAULT_INVENTORY_CONFIG, region=DEFAULT_REGION)
        assert inventory == expected

    def test_yaml_values_override_defaults(self, config_file):
        config_file.write_text(
            "inventory:\n  concurrency: 25\n  output_file: out.csv\n  region: eu-west-1\n",
            encoding="utf-8",
        )

        inventory = Config(config_file).get_inventory_config()

        assert inventory["concurrency"] == 25
        assert inventory["output_file"] == "out.csv"
        assert inventory["region"] == "eu-west-1"
        assert inventory["max_retries"] == 5

    def test_environment_overrides_file(self, config_file, monkeypatch):
        config_file.write_text("inventory:\n  concurrency: 25\n", encoding="utf-8")
        monkeypatch.setenv("SSOINVENTORY_CONCURRENCY", "3")
        monkeypatch.setenv("SSOINVENTORY_CONTINUE_ON_ERROR", "yes")
        monkeypatch.setenv("SSOINVENTORY_PROGRESS", "0")
        monkeypatch.setenv("SSOINVENTORY_OUTPUT_FILE", "env.csv")

        inventory = Config(config_file).get_inventory_config()

        assert inventory["concurrency"] == 3
        assert inventory["continue_on_error"] is True
        assert inventory["progress"] is False
        assert inventory["output_file"] == "env.csv"

    def test_invalid_integer_falls_back(self, config_file, monkeypatch):
        monkeypatch.setenv("SSOINVENTORY_MAX_RETRIES", "many")

        assert Config(config_file).get_inventory_config()["max_retries"] == 5

    def test_region_resolution_order(self, config_file, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-southeast-2")
        assert Config(config_file).get_inventory_config()["region"] == "ap-southeast-2"

        monkeypatch.setenv("AWS_REGION", "ca-central-1")
        assert Config(config_file).get_inventory_config()["region"] == "ca-central-1"

        config_file.write_text("inventory:\n  region: eu-west-1\n", encoding="utf-8")
        assert Config(config_file).get_inventory_config()["region"] == "eu-west-1"

        monkeypatch.setenv("SSOINVENTORY_REGION", "us-east-2")
        assert Config(config_file).get_inventory_config()["region"] == "us-east-2"

    def test_invalid_yaml_is_ignored(self, config_file):
        config_file.write_text("inventory: [unclosed\n", encoding="utf-8")

        config = Config(config_file)

        assert config.get_inventory_config()["concurrency"] == 10

    def test_non_mapping_yaml_is_ignored(self, config_file):
        config_file.write_text("- just\n- a list\n", encoding="utf-8")

        assert Config(config_file).get_inventory_config()["concurrency"] == 10

    def test_get_with_dot_notation(self, config_file):
        config_file.write_text("inventory:\n  concurrency: 7\n", encoding="utf-8")
        config = Config(config_file)

        assert config.get("inventory.concurrency") == 7
        assert config.get("inventory.missing", "fallback") == "fallback"
        assert config.get("inventory")["concurrency"] == 7

    def test_settings_with_overrides(self, config_file):
        config_file.write_text("inventory:\n  concurrency: 7\n", encoding="utf-8")

        settings = Config(config_file).get_inventory_settings(
            profile="audit", concurrency=None, output_file="cli.csv", progress=False
        )

        assert settings.profile == "audit"
        assert settings.concurrency == 7
        assert settings.output_file == "cli.csv"
        assert settings.progress is False


class TestInventorySettings:
    """Test typed settings."""

    def test_defaults_are_valid(self):
        assert InventorySettings().validate() == []

    def test_delays_in_seconds(self):
        settings = InventorySettings(initial_delay_ms=1500, jitter_max_ms=250)

        assert settings.initial_delay_seconds == 1.5
        assert settings.jitter_max_seconds == 0.25

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("concurrency", 0, "concurrency"),
            ("max_retries", -1, "max_retries"),
            ("initial_delay_ms", -5, "initial_delay_ms"),
            ("jitter_max_ms", -1, "jitter_max_ms"),
            ("output_file", "", "output_file"),
        ],
    )
    def test_validation_errors(self, field, value, message):
        settings = InventorySettings(**{field: value})

        errors = settings.validate()

        assert len(errors) == 1
        assert message in errors[0]

    def test_from_dict_ignores_unknown_keys_and_empty_region(self):
        settings = InventorySettings.from_dict({"region": None, "unknown": 1, "concurrency": 3})

        assert settings.region == DEFAULT_REGION
        assert settings.concurrency == 3


class TestLoggingConfig:
    """Test the logging section."""

    def test_defaults(self, config_file):
        logging_config = Config(config_file).get_logging_config()

        assert logging_config.level == LogLevel.WARNING
        assert logging_config.enable_file_logging is False
        assert logging_config.log_directory == str(CONFIG_DIR / "logs")
        assert logging_config.log_aws_requests is False

    def test_file_values(self, config_file, tmp_path):
        config_file.write_text(
            "logging:\n"
            "  file_logging: true\n"
            f"  log_directory: {tmp_path / 'logs'}\n"
            "  backup_count: 2\n"
            "  aws_requests: true\n",
            encoding="utf-8",
        )

        logging_config = Config(config_file).get_logging_config(
            verbose=True, format_type=LogFormat.JSON
        )

        assert logging_config.level == LogLevel.DEBUG
        assert logging_config.format_type == LogFormat.JSON
        assert logging_config.enable_file_logging is True
        assert logging_config.log_directory == str(tmp_path / "logs")
        assert logging_config.backup_count == 2
        assert logging_config.log_aws_requests is True

    def test_environment_toggles_file_logging(self, config_file, monkeypatch):
        config_file.write_text("logging:\n  file_logging: true\n", encoding="utf-8")
        monkeypatch.setenv("SSOINVENTORY_LOG_FILE", "false")

        assert Config(config_file).get_logging_config().enable_file_logging is False

    def test_invalid_sizes_fall_back(self, config_file):
        config_file.write_text(
            "logging:\n  max_file_size_mb: big\n  backup_count: 0\n", encoding="utf-8"
        )

        logging_config = Config(config_file).get_logging_config()

        assert logging_config.max_file_size_mb == 10
        assert logging_config.backup_count == 5
