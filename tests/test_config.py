from __future__ import annotations

import pytest

from core.exceptions import ConfigurationError
from utils.config import AppConfig, load_config


def test_engine_aliases_are_normalized():
    assert AppConfig(DB_ENGINE="MySQL").db_engine == "mariadb"
    assert AppConfig(DB_ENGINE="sqlserver").db_engine == "mssql"


def test_unknown_engine_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        load_config(DB_ENGINE="oracle")


def test_validate_arguments_must_be_a_known_level():
    with pytest.raises(ConfigurationError):
        load_config(VALIDATE_ARGUMENTS=3)


def test_missing_host_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="DB_HOST"):
        load_config(DB_HOST="")


@pytest.mark.parametrize("raw, expected", [("1", True), ("yes", True), ("false", False), ("", False)])
def test_boolean_flags_parse_strings(raw, expected):
    assert AppConfig(SQL_MINIFY=raw).sql_minify is expected


def test_environment_variables_are_read(monkeypatch):
    monkeypatch.setenv("DB_PORT", "3307")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("VALIDATE_ARGUMENTS", "2")
    config = load_config()
    assert config.db_port == 3307
    assert config.log_level == "DEBUG"
    assert config.query_options() == {"sql_minify": False, "validate_arguments": 2}


def test_load_config_is_cached():
    assert load_config() is load_config()
