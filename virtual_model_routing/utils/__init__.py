"""
Utility modules for the Virtual Model Routing Engine.
"""

from .logging import setup_logging, get_logger, RoutingLogger
from .config_manager import ConfigManager
from .error_handling import (
    VirtualModelRoutingError,
    ConfigurationError,
    InvalidTargetError,
    DuplicateTargetError,
    TargetNotFoundOrDisabledError,
    TargetNotFoundError,
    TargetDisabledError,
    InvalidRuleError,
    NoEnabledTargetsError,
    NoSuitableTargetError,
    DispatchError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "RoutingLogger",
    "ConfigManager",
    "VirtualModelRoutingError",
    "ConfigurationError",
    "InvalidTargetError",
    "DuplicateTargetError",
    "TargetNotFoundOrDisabledError",
    "TargetNotFoundError",
    "TargetDisabledError",
    "InvalidRuleError",
    "NoEnabledTargetsError",
    "NoSuitableTargetError",
    "DispatchError",
]
