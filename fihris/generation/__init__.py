"""Outline generation service client."""

from .client import (
    GenerationClient,
    GenerationParams,
    GenerationError,
    ValidationError,
    TransportError,
    UpstreamUnavailableError,
    MalformedPayloadError,
    get_generation_client,
)

__all__ = [
    "GenerationClient",
    "GenerationParams",
    "GenerationError",
    "ValidationError",
    "TransportError",
    "UpstreamUnavailableError",
    "MalformedPayloadError",
    "get_generation_client",
]
