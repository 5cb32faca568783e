"""
Local persisted state.

Two independent records in a state directory: the last-used generation
parameters and the current outline. Each file is a versioned JSON
envelope written atomically.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fihris.outline.document import IndexDocument, DocumentError


PARAMS_KEY = "indexParams"
DOCUMENT_KEY = "currentIndex"

STATE_VERSION = 1


class StorageError(Exception):
    """Raised when persisted state cannot be read or written."""
    pass


class IndexStore:
    """JSON file store keyed by fixed record names."""

    def __init__(self, state_dir: str):
        """
        Initialize store.

        Args:
            state_dir: Directory holding the record files
        """
        self.state_dir = Path(state_dir)

    def _path(self, key: str) -> Path:
        return self.state_dir / f"{key}.json"

    def write(self, key: str, data: Dict[str, Any]):
        """
        Write a record.

        Raises:
            StorageError: If the file cannot be written
        """
        envelope = {
            'version': STATE_VERSION,
            'saved_at': datetime.now(timezone.utc).isoformat(),
            'data': data,
        }
        path = self._path(key)
        tmp_name = None
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.state_dir, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(envelope, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to write {key}: {e}")

    def read(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Read a record.

        Returns:
            Record data, or None if it was never written

        Raises:
            StorageError: If the file is unreadable, corrupt or from an unknown version
        """
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                envelope = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {key}: {e}")

        if not isinstance(envelope, dict) or 'data' not in envelope:
            raise StorageError(f"Record {key} has no data envelope")

        version = envelope.get('version')
        if version != STATE_VERSION:
            raise StorageError(f"Record {key} has unsupported version {version!r}")

        return envelope['data']

    def delete(self, key: str):
        """Remove a record if present."""
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}")

    def save_params(self, params: Dict[str, Any]):
        """Persist last-used generation parameters."""
        self.write(PARAMS_KEY, params)

    def load_params(self) -> Optional[Dict[str, Any]]:
        """Load last-used generation parameters."""
        return self.read(PARAMS_KEY)

    def save_document(self, document: IndexDocument):
        """Persist the current outline."""
        self.write(DOCUMENT_KEY, document.to_dict())

    def load_document(self) -> Optional[IndexDocument]:
        """
        Load the current outline.

        Raises:
            StorageError: If the record exists but is not a valid outline
        """
        data = self.read(DOCUMENT_KEY)
        if data is None:
            return None
        try:
            return IndexDocument.from_dict(data)
        except DocumentError as e:
            raise StorageError(f"Stored outline is invalid: {e}")

    def clear_document(self):
        """Remove the current outline."""
        self.delete(DOCUMENT_KEY)
