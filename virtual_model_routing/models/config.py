"""
Configuration models for the Virtual Model Routing Engine.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
import logging


@dataclass
class AnalyzerConfig:
    """Size thresholds used when deriving request features."""
    medium_threshold: int = 2000
    complex_threshold: int = 8000
    long_context_threshold: int = 4000


@dataclass
class ScoringWeights:
    """Points awarded by each scoring component."""
    capability_match: float = 40.0
    long_context: float = 30.0
    complexity: float = 20.0
    priority: float = 10.0
    health_factor: float = 0.1
    preferred_model: float = 25.0


@dataclass
class RoutingConfig:
    """Behaviour switches for the routing engine."""
    enable_fallback: bool = True
    enforce_routing_rules: bool = False
    max_log_entries: int = 1000


@dataclass
class HealthMonitorConfig:
    """Thresholds for the advisory health sweep."""
    healthy_error_rate: float = 0.1
    auto_disable_on_high_error_rate: bool = False
    disable_error_rate: float = 0.5
    disable_min_requests: int = 10


@dataclass
class DispatcherConfig:
    """Settings for the optional downstream dispatchers."""
    timeout_seconds: float = 60.0
    max_retries: int = 2
    backoff_base_delay: float = 1.0
    backoff_max_delay: float = 30.0
    api_key: str = ""


@dataclass
class LoggingConfig:
    """Configuration for system logging."""
    level: int = logging.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = "virtual_model_routing.log"
    max_file_size_mb: int = 100
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False


@dataclass
class SystemConfig:
    """Main system configuration."""
    analyzer_config: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    scoring_weights: ScoringWeights = field(default_factory=ScoringWeights)
    routing_config: RoutingConfig = field(default_factory=RoutingConfig)
    health_config: HealthMonitorConfig = field(default_factory=HealthMonitorConfig)
    dispatcher_config: DispatcherConfig = field(default_factory=DispatcherConfig)
    logging_config: LoggingConfig = field(default_factory=LoggingConfig)
    virtual_models: List[Dict[str, Any]] = field(default_factory=list)
    debug_mode: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
