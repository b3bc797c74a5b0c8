"""
Tests for configuration loading and logging setup.
"""

import json
import logging

import pytest

from virtual_model_routing.core import RoutingEngine
from virtual_model_routing.models import SystemConfig
from virtual_model_routing.models.config import LoggingConfig
from virtual_model_routing.utils import ConfigManager, ConfigurationError, get_logger, setup_logging
from virtual_model_routing.utils.logging import ROOT_LOGGER_NAME


def test_missing_file_creates_default(tmp_path):
    path = tmp_path / "config" / "routing.json"
    manager = ConfigManager(str(path))

    config = manager.load_config()

    assert config == SystemConfig()
    assert path.exists()
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["routing_config"]["enable_fallback"] is True
    assert saved["virtual_models"] == []


def test_load_reads_virtual_models(tmp_path):
    path = tmp_path / "routing.json"
    path.write_text(json.dumps({
        "routing_config": {"enforce_routing_rules": True},
        "virtual_models": [
            {"id": "gpt", "name": "GPT", "provider": "openai", "capabilities": ["chat"]},
        ],
    }), encoding="utf-8")

    config = ConfigManager(str(path)).load_config()
    engine = RoutingEngine.from_config(config)

    assert config.routing_config.enforce_routing_rules is True
    assert config.routing_config.enable_fallback is True
    assert engine.get_target("gpt").endpoint == ""
    assert engine.get_target("gpt").enabled is True


def test_update_round_trip(tmp_path):
    path = tmp_path / "routing.json"
    manager = ConfigManager(str(path))
    manager.load_config()

    manager.update_config({"scoring_weights": {"preferred_model": 50.0}, "debug_mode": True})

    reloaded = ConfigManager(str(path)).load_config()
    assert reloaded.scoring_weights.preferred_model == 50.0
    assert reloaded.scoring_weights.capability_match == 40.0
    assert reloaded.debug_mode is True


@pytest.mark.parametrize("updates", [
    {"health_config": {"healthy_error_rate": 1.5}},
    {"scoring_weights": {"long_context": -1}},
    {"analyzer_config": {"medium_threshold": 9000}},
    {"routing_config": {"max_log_entries": 0}},
    {"routing_config": {"unknown_switch": True}},
    {"virtual_models": [{"name": "no id"}]},
])
def test_invalid_update_is_rejected(tmp_path, updates):
    manager = ConfigManager(str(tmp_path / "routing.json"))
    original = manager.load_config()

    with pytest.raises(ConfigurationError):
        manager.update_config(updates)

    assert manager.get_config() is original


def test_malformed_file_raises_configuration_error(tmp_path):
    path = tmp_path / "routing.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigManager(str(path)).load_config()


def test_setup_logging_installs_handlers(tmp_path):
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(root_logger.handlers), root_logger.level, root_logger.propagate)
    log_file = tmp_path / "logs" / "routing.log"

    try:
        setup_logging(LoggingConfig(level=logging.DEBUG, enable_console=False,
                                    enable_file=True, file_path=str(log_file)))
        get_logger("tests").debug("hello from the tests")
        for handler in root_logger.handlers:
            handler.flush()

        assert len(root_logger.handlers) == 1
        assert "hello from the tests" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers[:] = saved[0]
        root_logger.setLevel(saved[1])
        root_logger.propagate = saved[2]


def test_get_logger_namespaces_module_names():
    assert get_logger("routing").name == f"{ROOT_LOGGER_NAME}.routing"
    assert get_logger(f"{ROOT_LOGGER_NAME}.core.router").name == f"{ROOT_LOGGER_NAME}.core.router"


def test_setup_logging_debug_overrides_level():
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(root_logger.handlers), root_logger.level, root_logger.propagate)

    try:
        configured = setup_logging(LoggingConfig(level=logging.WARNING, enable_console=True), debug=True)

        assert configured is root_logger
        assert root_logger.level == logging.DEBUG
        assert [handler.level for handler in root_logger.handlers] == [logging.DEBUG]
    finally:
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers[:] = saved[0]
        root_logger.setLevel(saved[1])
        root_logger.propagate = saved[2]
