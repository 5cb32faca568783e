"""
Audit logging for outline generation and lifecycle events.

Each line of the audit file is one JSON event.
Generated outline text is never logged, only sizes and outcomes.
"""

import logging
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


class AuditLogger:
    """
    Structured audit logger.

    Features:
    - JSON event logging
    - Generation request tracking (model, status, byte count, time)
    - Lifecycle transitions and persistence outcomes
    - Append-only log file
    """

    def __init__(self, log_file: str = "./audit.log", level: str = "INFO",
                 enabled: bool = True):
        """
        Initialize audit logger.

        Args:
            log_file: Path to audit log
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            enabled: When False, events are dropped
        """
        self.log_file = Path(log_file)
        self.enabled = enabled

        self.logger = logging.getLogger("fihris_audit")
        self.logger.setLevel(getattr(logging, level))
        self.logger.propagate = False

        # Remove existing handlers to avoid duplicates
        for handler in self.logger.handlers:
            handler.close()
        self.logger.handlers = []

        if not enabled:
            self.logger.addHandler(logging.NullHandler())
            return

        self.log_file.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(self.log_file, mode='a', encoding='utf-8')
        fh.setLevel(getattr(logging, level))

        # Plain formatter (each line is a JSON event)
        fh.setFormatter(logging.Formatter('%(message)s'))
        self.logger.addHandler(fh)

    def _log_event(self, event_dict: Dict[str, Any]):
        """
        Log a structured event as JSON.

        Args:
            event_dict: Event data to log
        """
        event_dict['timestamp'] = datetime.now(timezone.utc).isoformat()
        self.logger.info(json.dumps(event_dict, ensure_ascii=False))

    def log_generation_request(self, model: str, url: str, status_code: Optional[int],
                               response_size: int, execution_time_ms: float,
                               outcome: str, **kwargs):
        """
        Log a call to the generation service.

        The response body is never logged.

        Args:
            model: Requested backend model (ollama, openai, openrouter)
            url: Endpoint URL
            status_code: HTTP status, None when the transport failed
            response_size: Response body size in bytes
            execution_time_ms: Request duration
            outcome: success, transport_error, upstream_unavailable, malformed_payload
            **kwargs: Additional metadata
        """
        event = {
            "event": "generation_request",
            "model": model,
            "url": url,
            "status_code": status_code,
            "response_size_bytes": response_size,
            "execution_time_ms": execution_time_ms,
            "outcome": outcome,
            **kwargs
        }
        self._log_event(event)

    def log_transition(self, action: str, from_state: str, to_state: str, **kwargs):
        """
        Log a lifecycle transition.

        Args:
            action: Operation that caused it (begin_edit, save, regenerate, ...)
            from_state: State before the transition
            to_state: State after the transition
            **kwargs: Additional metadata (scores, text length)
        """
        event = {
            "event": "lifecycle_transition",
            "action": action,
            "from_state": from_state,
            "to_state": to_state,
            **kwargs
        }
        self._log_event(event)

    def log_persistence(self, key: str, ok: bool, **kwargs):
        """
        Log a write to persisted state.

        Args:
            key: Record name (indexParams, currentIndex)
            ok: Whether the write succeeded
            **kwargs: Additional metadata
        """
        event = {
            "event": "persistence",
            "key": key,
            "ok": ok,
            **kwargs
        }
        self._log_event(event)

    def log_error(self, error_type: str, message: str, context: Optional[Dict] = None):
        """
        Log system error.

        Args:
            error_type: Type of error
            message: Error message
            context: Optional context dictionary
        """
        event = {
            "event": "error",
            "error_type": error_type,
            "message": message,
            **(context or {})
        }
        self._log_event(event)


def get_audit_logger(config: Optional[Dict[str, Any]] = None) -> AuditLogger:
    """
    Get configured audit logger instance.

    Args:
        config: Audit config dict with 'file', 'level' and 'enabled' keys

    Returns:
        AuditLogger instance
    """
    if config is None:
        config = {'file': './audit.log', 'level': 'INFO'}

    return AuditLogger(
        log_file=config.get('file', './audit.log'),
        level=config.get('level', 'INFO'),
        enabled=config.get('enabled', True)
    )
