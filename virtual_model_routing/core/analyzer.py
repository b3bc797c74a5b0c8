"""
Feature analyzer deriving routing features from a client request.
"""

import json
from typing import Any, List, Optional

from ..models import ClientRequest, RequestFeatures, Complexity, Priority
from ..models.config import AnalyzerConfig
from ..utils import get_logger


CAPABILITIES_HEADER = "x-rcc-capabilities"
PRIORITY_HEADER = "x-rcc-priority"
PREFERRED_MODEL_HEADER = "x-rcc-preferred-model"
EXCLUDE_MODELS_HEADER = "x-rcc-exclude-models"


class FeatureAnalyzer:
    """
    Derives RequestFeatures from a raw ClientRequest.

    The capability heuristics are the only capability signal available when a
    request does not name a virtual model, so their order matters:

    1. POST or a known chat endpoint implies ``chat``
    2. ``stream`` in the path implies ``streaming``
    3. ``function``/``tool`` in the path implies ``tools``
    4. keywords in the serialized body imply ``long-context``, ``thinking``,
       ``coding`` and ``multilingual``
    5. the ``x-rcc-capabilities`` header is merged verbatim
    6. an empty result defaults to ``chat``
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()
        self.logger = get_logger(__name__)

        self.chat_path_fragments = ('/v1/messages', '/v1/chat')
        self.tool_path_fragments = ('function', 'tool')

        self.long_context_keywords = ('long', 'context')
        self.thinking_keywords = ('think', 'reason', 'step')
        self.coding_keywords = ('code', 'program', 'function')
        self.multilingual_keywords = ('translate', 'language', '中文')

    def analyze(self, request: ClientRequest) -> RequestFeatures:
        """
        Analyze a request.

        Args:
            request: The client request to analyze

        Returns:
            RequestFeatures for the scorer
        """
        content = self.serialize_body(request.body)
        content_length = len(content.encode('utf-8'))

        features = RequestFeatures(
            capabilities=self.extract_capabilities(request, content),
            content_length=content_length,
            complexity=self.classify_complexity(content_length),
            priority=self.detect_priority(request),
            special_directives=self.extract_directives(request),
        )

        self.logger.debug(
            f"Request {request.id} features: capabilities={features.capabilities}, "
            f"length={features.content_length}, complexity={features.complexity.value}, "
            f"priority={features.priority.value}, directives={features.special_directives}"
        )
        return features

    def serialize_body(self, body: Any) -> str:
        """Serialize a request body the way it would travel on the wire."""
        if body is None:
            body = {}
        if isinstance(body, str):
            return body
        if isinstance(body, bytes):
            return body.decode('utf-8', errors='replace')
        try:
            return json.dumps(body, ensure_ascii=False, separators=(',', ':'), default=str)
        except (TypeError, ValueError):
            return str(body)

    def extract_capabilities(self, request: ClientRequest, content: Optional[str] = None) -> List[str]:
        """
        Extract the capabilities a request requires.

        Args:
            request: The client request
            content: Pre-serialized body, serialized here when omitted

        Returns:
            Deduplicated capability list, never empty
        """
        capabilities: List[str] = []
        path = (request.path or '').lower()

        if (request.method or '').upper() == 'POST':
            capabilities.append('chat')

        if any(fragment in path for fragment in self.chat_path_fragments):
            capabilities.append('chat')

        if 'stream' in path:
            capabilities.append('streaming')

        if any(fragment in path for fragment in self.tool_path_fragments):
            capabilities.append('tools')

        if request.body is not None:
            if content is None:
                content = self.serialize_body(request.body)
            capabilities.extend(self._body_capabilities(content))

        header_value = request.header(CAPABILITIES_HEADER)
        if header_value:
            capabilities.extend(cap.strip() for cap in header_value.split(',') if cap.strip())

        unique_capabilities = list(dict.fromkeys(capabilities))
        if not unique_capabilities:
            unique_capabilities.append('chat')

        return unique_capabilities

    def classify_complexity(self, content_length: int) -> Complexity:
        if content_length > self.config.complex_threshold:
            return Complexity.COMPLEX
        if content_length > self.config.medium_threshold:
            return Complexity.MEDIUM
        return Complexity.SIMPLE

    def detect_priority(self, request: ClientRequest) -> Priority:
        header_value = (request.header(PRIORITY_HEADER) or '').strip().lower()
        if header_value == 'high' or 'urgent' in (request.path or '').lower():
            return Priority.HIGH
        if header_value == 'low':
            return Priority.LOW
        return Priority.MEDIUM

    def extract_directives(self, request: ClientRequest) -> List[str]:
        """Collect preferred/excluded model directives from headers."""
        directives: List[str] = []

        for header, prefix in ((PREFERRED_MODEL_HEADER, 'preferred-model:'),
                               (EXCLUDE_MODELS_HEADER, 'exclude-models:')):
            value = request.header(header)
            if not value:
                continue
            for model_id in value.split(','):
                model_id = model_id.strip()
                if model_id:
                    directives.append(prefix + model_id)

        return directives

    def _body_capabilities(self, content: str) -> List[str]:
        content_lower = content.lower()
        capabilities = []

        if (len(content.encode('utf-8')) > self.config.long_context_threshold
                or any(keyword in content_lower for keyword in self.long_context_keywords)):
            capabilities.append('long-context')

        if any(keyword in content_lower for keyword in self.thinking_keywords):
            capabilities.append('thinking')

        if any(keyword in content_lower for keyword in self.coding_keywords):
            capabilities.append('coding')

        if any(keyword in content_lower for keyword in self.multilingual_keywords):
            capabilities.append('multilingual')

        return capabilities
