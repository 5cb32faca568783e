"""
Lifecycle of the active outline.

The controller owns the single open IndexDocument and moves it between
viewing, editing and regenerating. Every text change goes through
IndexDocument, so scores always match the committed text. Persisted
state is only written when a transition completes.
"""

import logging
import threading
from enum import Enum
from typing import Optional

from fihris.audit.logger import AuditLogger
from fihris.generation.client import GenerationClient, GenerationParams, ValidationError
from fihris.outline.document import IndexDocument
from fihris.outline.export import ExportArtifact, export_document
from fihris.quality.scorer import QualityScores
from fihris.storage import IndexStore, StorageError, PARAMS_KEY, DOCUMENT_KEY


logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    """States of the open outline."""

    UNLOADED = "unloaded"
    VIEWING = "viewing"
    EDITING = "editing"
    REGENERATING = "regenerating"


class LifecycleError(Exception):
    """Base class for rejected lifecycle operations."""
    pass


class InvalidTransitionError(LifecycleError):
    """Operation is not allowed in the current state."""
    pass


class RegenerationInProgressError(LifecycleError):
    """A generation call is already in flight."""
    pass


class IndexController:
    """
    State machine for one outline.

    Transitions:
    - VIEWING --begin_edit--> EDITING (idempotent while editing)
    - EDITING --cancel_edit--> VIEWING (draft discarded)
    - EDITING --save--> VIEWING (draft committed, rescored, persisted)
    - VIEWING --regenerate--> REGENERATING --> VIEWING
    - any --discard--> UNLOADED

    Requests that arrive while a generation call is in flight are
    rejected, never queued.
    """

    def __init__(self, store: IndexStore, client: GenerationClient,
                 audit_logger: Optional[AuditLogger] = None):
        """
        Initialize controller.

        Args:
            store: Persisted state
            client: Generation service client
            audit_logger: Optional audit logger
        """
        self.store = store
        self.client = client
        self.audit_logger = audit_logger

        self._state = LifecycleState.UNLOADED
        self._document: Optional[IndexDocument] = None
        self._draft: Optional[str] = None
        self._lock = threading.Lock()

        self.last_persistence_error: Optional[StorageError] = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def document(self) -> Optional[IndexDocument]:
        """The committed outline."""
        return self._document

    @property
    def draft(self) -> Optional[str]:
        """Edit buffer, only set while editing."""
        return self._draft

    @property
    def scores(self) -> Optional[QualityScores]:
        return self._document.quality_scores if self._document else None

    @property
    def is_busy(self) -> bool:
        return self._state == LifecycleState.REGENERATING

    def load(self) -> bool:
        """
        Open the stored outline.

        Returns:
            True when a document was loaded and the controller is VIEWING.
            False when nothing usable is stored; the controller stays
            UNLOADED and the caller should start the creation flow.
        """
        with self._lock:
            if self._state != LifecycleState.UNLOADED:
                raise InvalidTransitionError(f"Cannot load while {self._state.value}")

            try:
                document = self.store.load_document()
            except StorageError as e:
                logger.error("Discarding unreadable stored outline: %s", e)
                self._audit_error('load_failed', str(e))
                return False

            if document is None:
                return False

            self._document = document
            self._transition('load', LifecycleState.VIEWING)
            return True

    def create(self, params: GenerationParams) -> IndexDocument:
        """
        Generate a first (or replacement) outline from new parameters.

        Parameters are stored as last-used before the call. On failure the
        previous state and document are left untouched.

        Raises:
            ValidationError: On empty title; nothing is stored or sent
            InvalidTransitionError: While editing
            RegenerationInProgressError: While a generation call is in flight
            GenerationError: If the service call fails
        """
        params.validate()

        with self._lock:
            self._reject_if_busy('create')
            if self._state == LifecycleState.EDITING:
                raise InvalidTransitionError("Finish or cancel the edit before creating a new outline")
            previous_state = self._state
            self._transition('create', LifecycleState.REGENERATING)
            self.last_persistence_error = None

        return self._run_generation('create', params, previous_state, persist_params=True)

    def begin_edit(self) -> str:
        """
        Open an edit draft of the committed text.

        Returns:
            The draft text
        """
        with self._lock:
            self._reject_if_busy('begin_edit')
            if self._state == LifecycleState.EDITING:
                return self._draft
            if self._state != LifecycleState.VIEWING:
                raise InvalidTransitionError(f"Cannot edit while {self._state.value}")

            self._draft = self._document.raw_text
            self._transition('begin_edit', LifecycleState.EDITING)
            return self._draft

    def update_draft(self, text: str):
        """Replace the draft text."""
        if not isinstance(text, str):
            raise TypeError("Draft text must be a string")
        with self._lock:
            if self._state != LifecycleState.EDITING:
                raise InvalidTransitionError(f"No draft to update while {self._state.value}")
            self._draft = text

    def cancel_edit(self):
        """Drop the draft; the committed outline is unchanged."""
        with self._lock:
            if self._state != LifecycleState.EDITING:
                raise InvalidTransitionError(f"Nothing to cancel while {self._state.value}")
            self._draft = None
            self._transition('cancel_edit', LifecycleState.VIEWING)

    def save(self) -> bool:
        """
        Commit the draft, rescore and persist.

        The in-memory document is authoritative even when the write fails.

        Returns:
            True if the outline was persisted, False if only held in memory
            (see last_persistence_error)
        """
        with self._lock:
            if self._state != LifecycleState.EDITING:
                raise InvalidTransitionError(f"Nothing to save while {self._state.value}")

            self.last_persistence_error = None
            self._document = self._document.with_text(self._draft)
            self._draft = None
            persisted = self._persist_document()
            self._transition('save', LifecycleState.VIEWING, persisted=persisted)
            return persisted

    def regenerate(self) -> IndexDocument:
        """
        Replace the outline with a new one generated from the last-used parameters.

        Raises:
            RegenerationInProgressError: If a generation call is already running
            InvalidTransitionError: Unless VIEWING
            ValidationError: If no usable parameters are stored
            GenerationError: If the service call fails; the previous outline is kept
        """
        with self._lock:
            self._reject_if_busy('regenerate')
            if self._state != LifecycleState.VIEWING:
                raise InvalidTransitionError(f"Cannot regenerate while {self._state.value}")

            params = self._load_params()
            self._transition('regenerate', LifecycleState.REGENERATING)
            self.last_persistence_error = None

        return self._run_generation('regenerate', params, LifecycleState.VIEWING)

    def export(self, fmt: str = 'markdown') -> ExportArtifact:
        """
        Build a download of the committed outline.

        Only available while VIEWING, so a pending draft is never exported.
        """
        with self._lock:
            if self._state != LifecycleState.VIEWING:
                raise InvalidTransitionError(f"Cannot export while {self._state.value}")
            return export_document(self._document, fmt)

    def discard(self):
        """Close the outline without persisting anything."""
        with self._lock:
            self._reject_if_busy('discard')
            self._document = None
            self._draft = None
            self._transition('discard', LifecycleState.UNLOADED)

    def _run_generation(self, action: str, params: GenerationParams,
                        fallback_state: LifecycleState,
                        persist_params: bool = False) -> IndexDocument:
        # Any exit without a document, interrupts included, restores fallback_state
        document = None
        error_type = 'interrupted'
        try:
            if persist_params:
                self._persist(PARAMS_KEY, lambda: self.store.save_params(params.to_dict()))
            document = self.client.generate(params)
        except Exception as e:
            error_type = type(e).__name__
            logger.warning("%s failed, keeping previous outline: %s", action, e)
            raise
        finally:
            if document is None:
                with self._lock:
                    self._transition(f'{action}_failed', fallback_state, error_type=error_type)

        with self._lock:
            self._document = document
            self._draft = None
            persisted = self._persist_document()
            self._transition(f'{action}_succeeded', LifecycleState.VIEWING, persisted=persisted)
        return document

    def _load_params(self) -> GenerationParams:
        try:
            data = self.store.load_params()
        except StorageError as e:
            raise ValidationError(f"Stored generation parameters are unreadable: {e}")
        if data is None:
            raise ValidationError("No previous generation parameters to regenerate from")
        params = GenerationParams.from_dict(data)
        params.validate()
        return params

    def _reject_if_busy(self, action: str):
        if self._state == LifecycleState.REGENERATING:
            raise RegenerationInProgressError(f"Cannot {action} while an outline is being generated")

    def _persist_document(self) -> bool:
        return self._persist(DOCUMENT_KEY, lambda: self.store.save_document(self._document))

    def _persist(self, key: str, write) -> bool:
        try:
            write()
        except StorageError as e:
            self.last_persistence_error = e
            logger.warning("Could not persist %s, keeping in-memory copy: %s", key, e)
            if self.audit_logger:
                self.audit_logger.log_persistence(key, ok=False, message=str(e))
            return False

        if self.audit_logger:
            self.audit_logger.log_persistence(key, ok=True)
        return True

    def _transition(self, action: str, new_state: LifecycleState, **kwargs):
        old_state = self._state
        self._state = new_state
        logger.debug("%s: %s -> %s", action, old_state.value, new_state.value)
        if self.audit_logger:
            if self._document is not None:
                kwargs.setdefault('scores', self._document.quality_scores.to_dict())
            self.audit_logger.log_transition(action, old_state.value, new_state.value, **kwargs)

    def _audit_error(self, error_type: str, message: str):
        if self.audit_logger:
            self.audit_logger.log_error(error_type, message)
