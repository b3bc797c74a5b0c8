"""
Logging setup for the routing engine and a structured logger for routing events.

All engine loggers live under the ``virtual_model_routing`` namespace so a host
application can attach handlers to that one logger, or let
``setup_logging`` do it.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from ..models import RoutingDecision, RoutingPath
from ..models.config import LoggingConfig


ROOT_LOGGER_NAME = "virtual_model_routing"


def setup_logging(config: LoggingConfig, debug: bool = False) -> logging.Logger:
    """
    Configure handlers on the engine's root logger.

    Args:
        config: Logging configuration settings
        debug: Force DEBUG level, which also emits per-candidate scores

    Returns:
        The configured ``virtual_model_routing`` logger
    """
    level = logging.DEBUG if debug else config.level
    engine_logger = logging.getLogger(ROOT_LOGGER_NAME)
    engine_logger.setLevel(level)

    # Re-running setup replaces handlers instead of stacking them
    for handler in list(engine_logger.handlers):
        engine_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)
    handlers = []

    if config.enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    if config.enable_file and config.file_path:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            filename=config.file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        ))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        engine_logger.addHandler(handler)

    engine_logger.propagate = False
    return engine_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the engine namespace.

    Module names already under ``virtual_model_routing`` are used as they are;
    anything else is nested below it.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class RoutingLogger:
    """
    Emits one structured record per routing event.

    Every record carries ``event_type`` and ``request_id`` in ``extra`` so
    handlers can filter or index routing traffic without parsing messages.
    """

    def __init__(self, name: str = "routing"):
        self.logger = get_logger(name)

    def log_routing_decision(self, decision: RoutingDecision) -> None:
        """Log a completed decision; degraded and fallback paths log at WARNING."""
        level = logging.INFO
        if decision.path in (RoutingPath.DEGRADED, RoutingPath.FALLBACK):
            level = logging.WARNING

        self.logger.log(
            level,
            f"Request {decision.request_id} routed to {decision.target.id} via {decision.path.value} "
            f"(confidence={decision.confidence:.3f})",
            extra={
                "event_type": "routing_decision",
                "request_id": decision.request_id,
                "target_id": decision.target.id,
                "routing_path": decision.path.value,
                "confidence": round(decision.confidence, 3),
                "score": decision.score,
                "reason": decision.reason,
                "alternatives": [target.id for target in decision.alternatives],
            }
        )

    def log_fallback(self, request_id: str, fallback_target: str, reason: str,
                     path: RoutingPath = RoutingPath.FALLBACK) -> None:
        """Log that a request left the scored path."""
        self.logger.warning(
            f"Request {request_id} fell back to {fallback_target} ({path.value}): {reason}",
            extra={
                "event_type": "fallback",
                "request_id": request_id,
                "target_id": fallback_target,
                "routing_path": path.value,
                "reason": reason,
            }
        )

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """Log a routing failure with its traceback and error code."""
        context = context or {}
        self.logger.error(
            f"Routing failed for request {context.get('request_id', '-')}: {str(error)}",
            extra={
                "event_type": "error",
                "request_id": context.get('request_id'),
                "error_type": type(error).__name__,
                "error_code": getattr(error, 'error_code', None),
                "context": context,
            },
            exc_info=True
        )
