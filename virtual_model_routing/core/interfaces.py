"""
Dispatcher strategies that forward a routed request to its target backend.

The routing engine only selects a target. A dispatcher is the caller-side
collaborator that performs the downstream call and reports the outcome back
to the engine, so later routing decisions see the target's real error rate.
"""

import threading
import time
from datetime import datetime
from typing import Dict, Optional, Any, Callable

import openai
import requests
from openai import OpenAI

from ..models import Target, ClientRequest
from ..models.config import DispatcherConfig
from ..utils import get_logger
from ..utils.error_handling import VirtualModelRoutingError, DispatchError, retry_with_backoff


# Headers that belong to the client hop or to the routing layer itself
HOP_HEADERS = {'host', 'content-length', 'connection', 'authorization'}
ROUTING_HEADER_PREFIX = 'x-rcc-'


class DispatchResponse:
    """Response returned by a backend."""
    def __init__(self, content: Any, target_id: str, success: bool = True,
                 status_code: Optional[int] = None, response_time: float = 0.0,
                 tokens_used: int = 0, model: str = ""):
        self.content = content
        self.target_id = target_id
        self.success = success
        self.status_code = status_code
        self.response_time = response_time
        self.tokens_used = tokens_used
        self.model = model
        self.timestamp = datetime.now()


class Dispatcher:
    """
    Base class for dispatch strategies.

    Args:
        engine: Optional RoutingEngine to report outcomes to
        config: Dispatcher settings
    """

    def __init__(self, engine=None, config: Optional[DispatcherConfig] = None):
        self.engine = engine
        self.config = config or DispatcherConfig()
        self.logger = get_logger(__name__)

    def execute(self, target: Target, request: ClientRequest) -> DispatchResponse:
        raise NotImplementedError

    def _report(self, target: Target, success: bool, response_time: Optional[float] = None) -> None:
        if self.engine is None:
            return
        try:
            self.engine.record_outcome(target.id, success, response_time)
        except VirtualModelRoutingError as e:
            # The target may have been unregistered while the call was in flight
            self.logger.warning(f"Could not record outcome for {target.id}: {str(e)}")


class HTTPDispatcher(Dispatcher):
    """
    Forwards the request body as JSON to ``target.endpoint`` using requests.

    Connection errors and timeouts are retried with exponential backoff; HTTP
    error statuses are not.
    """

    def __init__(self, engine=None, config: Optional[DispatcherConfig] = None,
                 session: Optional[requests.Session] = None):
        super().__init__(engine, config)
        self.session = session or requests.Session()
        self._send = retry_with_backoff(
            max_retries=self.config.max_retries,
            base_delay=self.config.backoff_base_delay,
            max_delay=self.config.backoff_max_delay,
            retry_on=(requests.exceptions.ConnectionError, requests.exceptions.Timeout),
        )(self._post)

    def execute(self, target: Target, request: ClientRequest) -> DispatchResponse:
        """
        Send a request to the target backend.

        Args:
            target: Target selected by the routing engine
            request: The original client request

        Returns:
            DispatchResponse with the decoded backend response

        Raises:
            DispatchError: If the backend is unreachable or answers with an error status
        """
        if not target.endpoint:
            self._report(target, False)
            raise DispatchError(f"Virtual model {target.id} has no endpoint", target_id=target.id)

        url = build_url(target.endpoint, request.path)
        start_time = time.time()

        try:
            response = self._send(url, self._payload(target, request), self._headers(request))
        except DispatchError as e:
            self._report(target, False, time.time() - start_time)
            e.target_id = target.id
            self.logger.error(f"Dispatch to {target.id} failed: {e.message}")
            raise
        except requests.exceptions.RequestException as e:
            # Invalid URLs, redirect loops and the like are not retried
            self._report(target, False, time.time() - start_time)
            self.logger.error(f"Request to {target.id} failed: {str(e)}")
            raise DispatchError(f"Request to {target.id} failed: {str(e)}", target_id=target.id) from e

        response_time = time.time() - start_time

        if response.status_code >= 400:
            self._report(target, False, response_time)
            self.logger.error(f"Backend {target.id} error: {response.status_code} - {response.text[:200]}")
            raise DispatchError(
                f"Backend {target.id} returned HTTP {response.status_code}",
                target_id=target.id,
                status_code=response.status_code,
            )

        self._report(target, True, response_time)
        self.logger.info(f"Dispatched request {request.id} to {target.id} in {response_time:.2f}s")

        try:
            content = response.json()
        except ValueError:
            content = response.text

        return DispatchResponse(
            content=content,
            target_id=target.id,
            status_code=response.status_code,
            response_time=response_time,
            model=target.model,
        )

    def _post(self, url: str, payload: Any, headers: Dict[str, str]) -> requests.Response:
        return self.session.post(url, json=payload, headers=headers, timeout=self.config.timeout_seconds)

    def _payload(self, target: Target, request: ClientRequest) -> Any:
        if isinstance(request.body, dict) and target.model:
            return {**request.body, 'model': target.model}
        return request.body

    def _headers(self, request: ClientRequest) -> Dict[str, str]:
        headers = {
            name: value for name, value in (request.headers or {}).items()
            if name.lower() not in HOP_HEADERS and not name.lower().startswith(ROUTING_HEADER_PREFIX)
        }
        if self.config.api_key:
            headers['Authorization'] = f"Bearer {self.config.api_key}"
        return headers


class OpenAIDispatcher(Dispatcher):
    """
    Sends chat completions to OpenAI-compatible targets with the openai SDK.

    One client is kept per endpoint. The SDK's own retry handling is used,
    bounded by ``max_retries``.
    """

    def __init__(self, engine=None, config: Optional[DispatcherConfig] = None,
                 client_factory: Optional[Callable[..., Any]] = None):
        super().__init__(engine, config)
        self._client_factory = client_factory or OpenAI
        self._clients: Dict[str, Any] = {}
        self._clients_lock = threading.Lock()

    def execute(self, target: Target, request: ClientRequest) -> DispatchResponse:
        """
        Send the request's messages as a chat completion.

        Raises:
            DispatchError: If the body has no messages or the API call fails
        """
        body = request.body if isinstance(request.body, dict) else {}
        messages = body.get('messages')
        if not messages:
            raise DispatchError("Chat completion request has no messages", target_id=target.id)

        api_params = {
            'model': target.model or body.get('model', ''),
            'messages': messages,
            'max_tokens': body.get('max_tokens', target.max_tokens),
            'temperature': body.get('temperature', target.temperature),
            'top_p': body.get('top_p', target.top_p),
        }
        api_params = {key: value for key, value in api_params.items() if value is not None}

        start_time = time.time()
        try:
            response = self._client_for(target).chat.completions.create(**api_params)
        except openai.APIError as e:
            response_time = time.time() - start_time
            self._report(target, False, response_time)
            self.logger.error(f"OpenAI API error from {target.id}: {str(e)}")
            raise DispatchError(
                f"OpenAI API error from {target.id}: {str(e)}",
                target_id=target.id,
                status_code=getattr(e, 'status_code', None),
            ) from e
        except (openai.OpenAIError, ValueError, TypeError) as e:
            # Client construction and argument errors raised before any API call
            self._report(target, False, time.time() - start_time)
            self.logger.error(f"Chat completion for {target.id} failed: {str(e)}")
            raise DispatchError(f"Chat completion for {target.id} failed: {str(e)}", target_id=target.id) from e

        response_time = time.time() - start_time
        self._report(target, True, response_time)

        content = response.choices[0].message.content
        tokens_used = response.usage.total_tokens if response.usage else 0
        self.logger.info(f"Chat completion from {target.id} in {response_time:.2f}s ({tokens_used} tokens)")

        return DispatchResponse(
            content=content,
            target_id=target.id,
            response_time=response_time,
            tokens_used=tokens_used,
            model=api_params['model'],
        )

    def _client_for(self, target: Target):
        key = target.endpoint or ''
        with self._clients_lock:
            client = self._clients.get(key)
            if client is None:
                client = self._client_factory(
                    api_key=self.config.api_key or 'not-needed',
                    base_url=target.endpoint or None,
                    timeout=self.config.timeout_seconds,
                    max_retries=self.config.max_retries,
                )
                self._clients[key] = client
            return client


def build_url(endpoint: str, path: str) -> str:
    """Join an endpoint and a request path without doubling a shared version prefix."""
    base = endpoint.rstrip('/')
    path = path or ''
    if path and not path.startswith('/'):
        path = '/' + path

    version = base.rsplit('/', 1)[-1]
    if version.startswith('v') and version[1:].isdigit() and path.startswith(f"/{version}/"):
        path = path[len(version) + 1:]

    return base + path
