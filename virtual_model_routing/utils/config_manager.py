"""
Configuration management for the Virtual Model Routing Engine.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Dict, Any
import logging

from ..models.config import (
    SystemConfig, AnalyzerConfig, ScoringWeights, RoutingConfig,
    HealthMonitorConfig, DispatcherConfig, LoggingConfig,
)
from .error_handling import ConfigurationError


class ConfigManager:
    """
    Manages engine configuration loading, validation, and updates.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or "routing_config.json"
        self._config: Optional[SystemConfig] = None
        self.logger = logging.getLogger(__name__)

    def load_config(self) -> SystemConfig:
        """
        Load configuration from file or create default configuration.

        Returns:
            SystemConfig instance

        Raises:
            ConfigurationError: If configuration loading fails
        """
        try:
            if Path(self.config_path).exists():
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
                config = self._dict_to_config(config_data)
                self.logger.info(f"Configuration loaded from {self.config_path}")
            else:
                config = SystemConfig()
                self.save_config(config)
                self.logger.info("Default configuration created")
        except ConfigurationError:
            raise
        except (OSError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Failed to load configuration: {str(e)}")

        self._validate_config(config)
        self._config = config
        return config

    def save_config(self, config: Optional[SystemConfig] = None) -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save (uses current config if None)

        Raises:
            ConfigurationError: If configuration saving fails
        """
        config_to_save = config or self._config
        if not config_to_save:
            raise ConfigurationError("No configuration to save")

        try:
            Path(self.config_path).parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self._config_to_dict(config_to_save), f, indent=2, default=str)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {str(e)}")

        self.logger.info(f"Configuration saved to {self.config_path}")

    def get_config(self) -> SystemConfig:
        """
        Get current configuration, loading if necessary.

        Returns:
            SystemConfig instance
        """
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def update_config(self, updates: Dict[str, Any]) -> SystemConfig:
        """
        Update configuration with new values.

        Args:
            updates: Dictionary of configuration updates

        Returns:
            Updated SystemConfig instance
        """
        config_dict = self._config_to_dict(self.get_config())
        self._deep_update(config_dict, updates)

        try:
            updated_config = self._dict_to_config(config_dict)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration update: {str(e)}")
        self._validate_config(updated_config)

        self._config = updated_config
        self.save_config()

        return updated_config

    def _validate_config(self, config: SystemConfig) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If validation fails
        """
        analyzer = config.analyzer_config
        if analyzer.medium_threshold < 0 or analyzer.complex_threshold < analyzer.medium_threshold:
            raise ConfigurationError("Complexity thresholds must satisfy 0 <= medium <= complex",
                                     config_key="analyzer_config")

        weights = config.scoring_weights
        for name, value in asdict(weights).items():
            if value < 0:
                raise ConfigurationError(f"Scoring weight '{name}' must not be negative",
                                         config_key=f"scoring_weights.{name}")

        health = config.health_config
        if not 0 <= health.healthy_error_rate <= 1:
            raise ConfigurationError("Healthy error rate must be between 0 and 1",
                                     config_key="health_config.healthy_error_rate")
        if not 0 <= health.disable_error_rate <= 1:
            raise ConfigurationError("Disable error rate must be between 0 and 1",
                                     config_key="health_config.disable_error_rate")

        if config.routing_config.max_log_entries <= 0:
            raise ConfigurationError("Routing log size must be positive",
                                     config_key="routing_config.max_log_entries")

        if config.dispatcher_config.timeout_seconds <= 0:
            raise ConfigurationError("Dispatcher timeout must be positive",
                                     config_key="dispatcher_config.timeout_seconds")

        for entry in config.virtual_models:
            if not isinstance(entry, dict) or not entry.get("id"):
                raise ConfigurationError("Every virtual model entry needs an id", config_key="virtual_models")

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> SystemConfig:
        """Convert dictionary to SystemConfig object."""
        return SystemConfig(
            analyzer_config=AnalyzerConfig(**config_dict.get('analyzer_config', {})),
            scoring_weights=ScoringWeights(**config_dict.get('scoring_weights', {})),
            routing_config=RoutingConfig(**config_dict.get('routing_config', {})),
            health_config=HealthMonitorConfig(**config_dict.get('health_config', {})),
            dispatcher_config=DispatcherConfig(**config_dict.get('dispatcher_config', {})),
            logging_config=LoggingConfig(**config_dict.get('logging_config', {})),
            virtual_models=list(config_dict.get('virtual_models', [])),
            debug_mode=config_dict.get('debug_mode', False),
            metadata=config_dict.get('metadata', {})
        )

    def _config_to_dict(self, config: SystemConfig) -> Dict[str, Any]:
        """Convert SystemConfig object to dictionary."""
        return asdict(config)

    def _deep_update(self, base_dict: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Recursively update nested dictionary."""
        for key, value in updates.items():
            if key in base_dict and isinstance(base_dict[key], dict) and isinstance(value, dict):
                self._deep_update(base_dict[key], value)
            else:
                base_dict[key] = value
