"""
Tests for the downstream dispatchers.
"""

from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import openai
import pytest
import requests

from conftest import chat_request, make_target
from virtual_model_routing.core import HTTPDispatcher, OpenAIDispatcher
from virtual_model_routing.core.interfaces import build_url
from virtual_model_routing.models.config import DispatcherConfig
from virtual_model_routing.utils import DispatchError


def routed_engine(engine, **target_fields):
    fields = dict(model="gpt-4o", endpoint="https://api.example.com/v1")
    fields.update(target_fields)
    target = engine.register(make_target("gpt", **fields))
    engine.route(chat_request(explicit_target_id="gpt"))
    return target


def http_response(status_code=200, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.text = text
    return response


def test_http_dispatch_forwards_request(engine):
    target = routed_engine(engine)
    session = Mock()
    session.post.return_value = http_response(payload={"id": "cmpl-1"})
    dispatcher = HTTPDispatcher(engine, DispatcherConfig(api_key="secret", timeout_seconds=5), session)
    request = chat_request(headers={
        "Content-Type": "application/json",
        "X-RCC-Preferred-Model": "gpt",
        "Authorization": "Bearer client",
        "Host": "gateway",
    })

    response = dispatcher.execute(target, request)

    assert response.content == {"id": "cmpl-1"}
    assert response.success is True
    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.example.com/v1/chat/completions"
    assert kwargs["json"]["model"] == "gpt-4o"
    assert kwargs["json"]["messages"] == request.body["messages"]
    assert kwargs["headers"] == {"Content-Type": "application/json", "Authorization": "Bearer secret"}
    assert kwargs["timeout"] == 5
    metrics = engine.get_metrics("gpt")
    assert metrics.successful_requests == 1
    assert metrics.failed_requests == 0


def test_http_error_status_records_failure(engine):
    target = routed_engine(engine)
    session = Mock()
    session.post.return_value = http_response(status_code=500, text="boom")

    with pytest.raises(DispatchError) as excinfo:
        HTTPDispatcher(engine, session=session).execute(target, chat_request())

    assert excinfo.value.status_code == 500
    assert excinfo.value.target_id == "gpt"
    assert session.post.call_count == 1
    assert engine.get_metrics("gpt").failed_requests == 1


def test_http_connection_errors_are_retried(engine):
    target = routed_engine(engine)
    session = Mock()
    session.post.side_effect = requests.exceptions.ConnectionError("connection refused")
    config = DispatcherConfig(max_retries=1, backoff_base_delay=0, backoff_max_delay=0)

    with pytest.raises(DispatchError) as excinfo:
        HTTPDispatcher(engine, config, session).execute(target, chat_request())

    assert session.post.call_count == 2
    assert excinfo.value.target_id == "gpt"
    assert engine.get_metrics("gpt").failed_requests == 1


@pytest.mark.parametrize("error", [
    requests.exceptions.InvalidURL("bad url"),
    requests.exceptions.MissingSchema("no scheme"),
    requests.exceptions.TooManyRedirects("redirect loop"),
])
def test_http_request_errors_become_dispatch_errors(engine, error):
    target = routed_engine(engine)
    session = Mock()
    session.post.side_effect = error

    with pytest.raises(DispatchError) as excinfo:
        HTTPDispatcher(engine, session=session).execute(target, chat_request())

    assert excinfo.value.target_id == "gpt"
    assert excinfo.value.__cause__ is error
    assert session.post.call_count == 1
    assert engine.get_metrics("gpt").failed_requests == 1


def test_http_dispatch_without_endpoint(engine):
    target = routed_engine(engine, endpoint="")
    session = Mock()

    with pytest.raises(DispatchError):
        HTTPDispatcher(engine, session=session).execute(target, chat_request())

    session.post.assert_not_called()
    assert engine.get_metrics("gpt").failed_requests == 1


def test_outcome_for_unregistered_target_is_ignored(engine):
    target = routed_engine(engine)
    engine.unregister("gpt")
    session = Mock()
    session.post.return_value = http_response(payload={"ok": True})

    response = HTTPDispatcher(engine, session=session).execute(target, chat_request())

    assert response.content == {"ok": True}


def openai_completion(content="hi there", total_tokens=12):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def test_openai_dispatch_uses_target_settings(engine):
    target = routed_engine(engine, temperature=0.2)
    client = Mock()
    client.chat.completions.create.return_value = openai_completion()
    factory = Mock(return_value=client)
    dispatcher = OpenAIDispatcher(engine, DispatcherConfig(api_key="secret"), client_factory=factory)

    response = dispatcher.execute(target, chat_request("hello"))
    dispatcher.execute(target, chat_request("again"))

    assert response.content == "hi there"
    assert response.tokens_used == 12
    assert response.model == "gpt-4o"
    factory.assert_called_once_with(
        api_key="secret", base_url="https://api.example.com/v1", timeout=60.0, max_retries=2,
    )
    kwargs = client.chat.completions.create.call_args_list[0].kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]
    assert kwargs["temperature"] == 0.2
    assert kwargs["max_tokens"] == 4000
    assert kwargs["top_p"] == 0.9


def test_openai_api_error_becomes_dispatch_error(engine):
    target = routed_engine(engine)
    client = Mock()
    client.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.example.com/v1/chat/completions"),
    )
    dispatcher = OpenAIDispatcher(engine, client_factory=Mock(return_value=client))

    with pytest.raises(DispatchError) as excinfo:
        dispatcher.execute(target, chat_request())

    assert excinfo.value.target_id == "gpt"
    assert isinstance(excinfo.value.__cause__, openai.APIConnectionError)
    assert engine.get_metrics("gpt").failed_requests == 1


def test_openai_client_errors_become_dispatch_errors(engine):
    target = routed_engine(engine)
    factory = Mock(side_effect=openai.OpenAIError("missing credentials"))

    with pytest.raises(DispatchError) as excinfo:
        OpenAIDispatcher(engine, client_factory=factory).execute(target, chat_request())

    assert excinfo.value.target_id == "gpt"
    assert engine.get_metrics("gpt").failed_requests == 1


def test_openai_dispatch_requires_messages(engine):
    target = routed_engine(engine)
    factory = Mock()

    with pytest.raises(DispatchError):
        OpenAIDispatcher(engine, client_factory=factory).execute(target, chat_request(body={"prompt": "hi"}))

    factory.assert_not_called()


@pytest.mark.parametrize("endpoint, path, expected", [
    ("https://api.example.com/v1", "/v1/chat/completions", "https://api.example.com/v1/chat/completions"),
    ("https://api.example.com/v1/", "/chat/completions", "https://api.example.com/v1/chat/completions"),
    ("http://localhost:1234", "/v1/messages", "http://localhost:1234/v1/messages"),
    ("https://api.example.com/v1", "models", "https://api.example.com/v1/models"),
])
def test_build_url(endpoint, path, expected):
    assert build_url(endpoint, path) == expected
