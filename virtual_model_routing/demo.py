"""
Demo script showing basic usage of the Virtual Model Routing Engine.
"""

from .models import ClientRequest, SystemConfig
from .utils import setup_logging, get_logger, ConfigManager
from .core import RoutingEngine


DEMO_MODELS = [
    {
        "id": "default",
        "name": "General chat",
        "provider": "qwen",
        "targets": [{"providerId": "qwen", "modelId": "qwen-turbo"}],
    },
    {
        "id": "reasoner",
        "name": "Reasoning model",
        "provider": "iflow",
        "targets": [{"providerId": "iflow", "modelId": "deepseek-r1"}],
    },
    {
        "id": "coder",
        "name": "Coding model",
        "provider": "lmstudio",
        "capabilities": ["chat", "coding", "high-performance"],
        "targets": [{"providerId": "lmstudio", "modelId": "qwen2.5-coder-long-context"}],
    },
]


def main(config_path: str = "routing_config.json"):
    """Demonstrate basic engine functionality."""
    config_manager = ConfigManager(config_path)
    config: SystemConfig = config_manager.load_config()
    if not config.virtual_models:
        config.virtual_models = list(DEMO_MODELS)

    setup_logging(config.logging_config, debug=config.debug_mode)
    logger = get_logger(__name__)
    logger.info("Virtual Model Routing Engine Demo Starting")

    engine = RoutingEngine.from_config(config)

    requests = [
        ClientRequest(path="/v1/chat/completions",
                      body={"messages": [{"role": "user", "content": "What is the capital of France?"}]}),
        ClientRequest(path="/v1/chat/completions",
                      body={"messages": [{"role": "user", "content": "Reason step by step: " + "x" * 9000}]}),
        ClientRequest(path="/v1/chat/completions", headers={"x-rcc-priority": "high"},
                      body={"messages": [{"role": "user", "content": "Write a program that sorts a list"}]}),
        ClientRequest(path="/v1/chat/completions", explicit_target_id="default",
                      body={"messages": [{"role": "user", "content": "Hello"}]}),
    ]

    for i, request in enumerate(requests, 1):
        decision = engine.route_with_decision(request)
        print(f"\nRequest {i}: {request.path} ({request.id})")
        print(f"Target: {decision.target.id} via {decision.path.value}")
        print(f"Confidence: {decision.confidence:.2f}")
        print(f"Reason: {decision.reason}")
        print("-" * 50)

    for report in engine.run_health_sweep():
        print(f"{report.target_id}: {report.status.value} (error rate {report.error_rate:.2f})")

    logger.info("Demo completed successfully")


if __name__ == "__main__":
    main()
