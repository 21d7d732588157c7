"""
Tests for registrar_config: YAML loading, validation, environment
overrides and the bridges into kernel inputs.
"""

import textwrap

import pytest
import yaml

from registrar_config import DEFAULT_CONFIG_PATH, get_active_config
from registrar_config.bridges import build_intake_policy
from registrar_config.loader import (
    ENV_CONFIG_PATH,
    ENV_DATABASE_URL,
    ENV_LOG_LEVEL,
    parse_settings,
)
from registrar_kernel.services.intake_service import IntakePolicy


def _minimal(**overrides) -> dict:
    data = {"config_id": "test", "version": 2, "database": {"url": "sqlite://"}}
    data.update(overrides)
    return data


class TestDefaults:

    def test_packaged_defaults_load(self):
        settings = get_active_config(environ={})

        assert settings.config_id == "registrar-default"
        assert settings.version == 1
        assert settings.source == str(DEFAULT_CONFIG_PATH)
        assert settings.intake.cooldown_minutes == 5
        assert settings.intake.max_pending_requests == 3
        assert settings.intake.duplicate_guard is True
        assert settings.identifiers.retry_limit == 5
        assert settings.reporting.timezone == "UTC"
        assert settings.logging.level == "INFO"

    def test_omitted_sections_take_dataclass_defaults(self):
        settings = parse_settings(_minimal())

        assert settings.database.pool_size == 20
        assert settings.intake.enforce_purpose_documents is True
        assert settings.identifiers.retry_limit == 5


class TestValidation:

    def test_unknown_top_level_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown keys in 'root'"):
            parse_settings(_minimal(workflows={}))

    def test_unknown_section_key_rejected(self):
        with pytest.raises(ValueError, match="intake"):
            parse_settings(_minimal(intake={"cooldown_minuets": 10}))

    def test_missing_config_id_rejected(self):
        data = _minimal()
        del data["config_id"]
        with pytest.raises(ValueError, match="config_id"):
            parse_settings(data)

    def test_missing_database_url_rejected(self):
        with pytest.raises(ValueError, match="database.url"):
            parse_settings(_minimal(database={"echo": True}))

    @pytest.mark.parametrize("value", ["five", 2.5, True, -1])
    def test_bad_integer_rejected(self, value):
        with pytest.raises(ValueError, match="intake.cooldown_minutes"):
            parse_settings(_minimal(intake={"cooldown_minutes": value}))

    def test_bad_boolean_rejected(self):
        with pytest.raises(ValueError, match="intake.duplicate_guard"):
            parse_settings(_minimal(intake={"duplicate_guard": "yes"}))

    def test_zero_retry_limit_rejected(self):
        with pytest.raises(ValueError, match="retry_limit"):
            parse_settings(_minimal(identifiers={"retry_limit": 0}))

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValueError, match="timezone"):
            parse_settings(_minimal(reporting={"timezone": "Mars/Olympus_Mons"}))

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValueError, match="log level"):
            parse_settings(_minimal(logging={"level": "CHATTY"}))

    def test_log_level_normalized(self):
        assert parse_settings(_minimal(logging={"level": "debug"})).logging.level == "DEBUG"

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ValueError, match="mapping"):
            get_active_config(path, environ={})

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml", environ={})


class TestFileAndEnvironment:

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "campus.yaml"
        path.write_text(textwrap.dedent("""\
            config_id: north-campus
            version: 3
            database:
              url: sqlite:///north.db
            intake:
              cooldown_minutes: 10
              max_pending_requests: 0
            reporting:
              timezone: Asia/Manila
        """))
        return path

    def test_explicit_path(self, config_file):
        settings = get_active_config(config_file, environ={})

        assert settings.config_id == "north-campus"
        assert settings.version == 3
        assert settings.intake.cooldown_minutes == 10
        assert settings.intake.max_pending_requests == 0
        assert settings.reporting.timezone == "Asia/Manila"
        assert settings.source == str(config_file)

    def test_path_from_environment(self, config_file):
        settings = get_active_config(environ={ENV_CONFIG_PATH: str(config_file)})
        assert settings.config_id == "north-campus"

    def test_environment_overrides_win(self, config_file):
        settings = get_active_config(
            config_file,
            environ={ENV_DATABASE_URL: "postgresql://u:p@db/registrar", ENV_LOG_LEVEL: "warning"},
        )

        assert settings.database.url == "postgresql://u:p@db/registrar"
        assert settings.logging.level == "WARNING"
        assert settings.intake.cooldown_minutes == 10

    def test_malformed_yaml_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("config_id: [unterminated\n")
        with pytest.raises(yaml.YAMLError):
            get_active_config(path, environ={})

    def test_trace_logged(self, config_file, captured_logs):
        get_active_config(config_file, environ={})

        traces = [r for r in captured_logs() if r["message"] == "REGISTRAR_CONFIG_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["config_id"] == "north-campus"
        assert trace["config_version"] == 3
        assert trace["database_backend"] == "sqlite"
        assert trace["cooldown_minutes"] == 10


class TestBridges:

    def test_intake_policy_mirrors_settings(self):
        settings = parse_settings(_minimal(
            intake={
                "cooldown_minutes": 0,
                "max_pending_requests": 7,
                "duplicate_guard": False,
                "enforce_purpose_documents": False,
            },
            identifiers={"retry_limit": 9},
        ))

        assert build_intake_policy(settings) == IntakePolicy(
            cooldown_minutes=0,
            max_pending_requests=7,
            duplicate_guard=False,
            enforce_purpose_documents=False,
            identifier_retry_limit=9,
        )
