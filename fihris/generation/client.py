"""
Client for the outline generation service.

Sends research parameters, decodes the response in one step against a
schema, and distinguishes transport, upstream and payload failures.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
import requests
from pydantic import BaseModel, ConfigDict, ValidationError as SchemaValidationError

from fihris.audit.logger import AuditLogger
from fihris.outline.document import IndexDocument, AcademicRequirements


logger = logging.getLogger(__name__)

# Prefix the service puts in the payload when its model backend is down
UPSTREAM_ERROR_SENTINEL = "خطأ في الاتصال بـ Ollama"

CITATION_STYLES = ('APA', 'MLA', 'Chicago', 'Harvard')
MODELS = ('ollama', 'openai', 'openrouter')


class GenerationError(Exception):
    """Base class for failed generation attempts."""
    pass


class ValidationError(GenerationError):
    """Raised when request parameters are rejected before any call is made."""
    pass


class TransportError(GenerationError):
    """The request did not complete with a success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class UpstreamUnavailableError(GenerationError):
    """The service answered but reports its model backend unreachable."""
    pass


class MalformedPayloadError(GenerationError):
    """The response body does not decode into an outline."""
    pass


@dataclass(frozen=True)
class GenerationParams:
    """Research parameters sent to the generation service."""

    title: str
    pages: int = 10
    citation_style: str = 'APA'
    is_academic: bool = False
    model: str = 'ollama'

    def validate(self):
        """
        Check parameters before submission.

        Raises:
            ValidationError: On empty title or unknown choices
        """
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValidationError("Research title is required")
        if not isinstance(self.pages, int) or isinstance(self.pages, bool) or self.pages <= 0:
            raise ValidationError(f"Page count must be a positive integer, got {self.pages!r}")
        if self.citation_style not in CITATION_STYLES:
            raise ValidationError(f"Unknown citation style: {self.citation_style}")
        if self.model not in MODELS:
            raise ValidationError(f"Unknown model: {self.model}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the request body."""
        return {
            'title': self.title,
            'pages': self.pages,
            'citation_style': self.citation_style,
            'is_academic': self.is_academic,
            'model': self.model,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GenerationParams':
        """Build parameters from a stored request body."""
        if not isinstance(data, dict):
            raise ValidationError("Stored generation parameters must be an object")
        try:
            return cls(
                title=data.get('title', ''),
                pages=int(data.get('pages', 10)),
                citation_style=data.get('citation_style', 'APA'),
                is_academic=bool(data.get('is_academic', False)),
                model=data.get('model', 'ollama'),
            )
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid stored generation parameters: {e}")


class AcademicRequirementsSchema(BaseModel):
    model_config = ConfigDict(extra='ignore', strict=True)

    has_literature_review: bool = False
    has_methodology: bool = False
    has_citations: bool = False


class GenerationResponse(BaseModel):
    """Response contract of the generation service."""

    model_config = ConfigDict(extra='ignore', strict=True)

    index: str
    estimated_pages: Optional[Dict[str, str]] = None
    academic_requirements: Optional[AcademicRequirementsSchema] = None

    def to_document(self) -> IndexDocument:
        requirements = None
        if self.academic_requirements is not None:
            requirements = AcademicRequirements(**self.academic_requirements.model_dump())
        return IndexDocument(
            raw_text=self.index,
            estimated_pages=self.estimated_pages,
            academic_requirements=requirements,
        )


def _is_upstream_error(payload: Any) -> bool:
    if isinstance(payload, str):
        return payload.startswith(UPSTREAM_ERROR_SENTINEL)
    if isinstance(payload, dict):
        index = payload.get('index')
        return isinstance(index, str) and index.startswith(UPSTREAM_ERROR_SENTINEL)
    return False


def decode_response(body: str) -> IndexDocument:
    """
    Decode a success response body into an outline.

    Args:
        body: Raw response text

    Returns:
        IndexDocument

    Raises:
        UpstreamUnavailableError: If the payload carries the upstream error sentinel
        MalformedPayloadError: If the body is not JSON or does not match the schema
    """
    if body.lstrip().startswith(UPSTREAM_ERROR_SENTINEL):
        raise UpstreamUnavailableError(body.strip())

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Response is not valid JSON: {e}")

    if _is_upstream_error(payload):
        message = payload if isinstance(payload, str) else payload['index']
        raise UpstreamUnavailableError(message)

    try:
        response = GenerationResponse.model_validate(payload)
    except SchemaValidationError as e:
        raise MalformedPayloadError(f"Response does not match the outline schema: {e}")

    return response.to_document()


class GenerationClient:
    """Synchronous client for POST /generate_index."""

    def __init__(self, url: str, timeout: Optional[float] = None,
                 audit_logger: Optional[AuditLogger] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize generation client.

        Args:
            url: Endpoint URL
            timeout: Request timeout in seconds, None waits indefinitely
            audit_logger: Optional audit logger
            session: Optional requests session
        """
        self.url = url
        self.timeout = timeout
        self.audit_logger = audit_logger
        self.session = session or requests.Session()

    def generate(self, params: GenerationParams) -> IndexDocument:
        """
        Request a new outline.

        Args:
            params: Research parameters

        Returns:
            IndexDocument with freshly computed scores

        Raises:
            ValidationError: If params are invalid (no request is sent)
            TransportError: On connection failure or non-success status
            UpstreamUnavailableError: If the service reports its model offline
            MalformedPayloadError: If the response cannot be decoded
        """
        params.validate()

        start_time = time.time()
        try:
            response = self.session.post(
                self.url,
                json=params.to_dict(),
                headers={'Accept': 'application/json'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self._audit(params, None, 0, start_time, 'transport_error')
            logger.warning("Generation request to %s failed: %s", self.url, e)
            raise TransportError(f"Generation request failed: {e}")

        size = len(response.content or b'')

        if not 200 <= response.status_code < 300:
            self._audit(params, response.status_code, size, start_time, 'transport_error')
            raise TransportError(
                f"Generation service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            document = decode_response(response.text)
        except UpstreamUnavailableError:
            self._audit(params, response.status_code, size, start_time, 'upstream_unavailable')
            raise
        except MalformedPayloadError:
            self._audit(params, response.status_code, size, start_time, 'malformed_payload')
            raise

        self._audit(params, response.status_code, size, start_time, 'success')
        logger.info("Generated outline for %r (%d chars)", params.title, len(document.raw_text))
        return document

    def _audit(self, params: GenerationParams, status_code: Optional[int],
               size: int, start_time: float, outcome: str):
        if self.audit_logger:
            self.audit_logger.log_generation_request(
                model=params.model,
                url=self.url,
                status_code=status_code,
                response_size=size,
                execution_time_ms=(time.time() - start_time) * 1000,
                outcome=outcome,
            )


def get_generation_client(config: Dict[str, Any],
                          audit_logger: Optional[AuditLogger] = None) -> GenerationClient:
    """Get configured generation client."""
    return GenerationClient(
        url=config.get('url', 'http://localhost:8000/generate_index'),
        timeout=config.get('timeout'),
        audit_logger=audit_logger,
    )
