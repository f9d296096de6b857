"""Per-session key-value storage for bistro.

Each visitor session owns a directory holding ``storage.json``: a JSON
object mapping keys to serialized JSON strings, the same shape a browser's
local storage has.
"""

import fcntl
import json
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import structlog

from .errors import InvalidStoredValueError

logger = structlog.get_logger(__name__)

SESSIONS_DIR = "sessions"
STORAGE_FILE = "storage.json"

# Keys used by the cart and order stores
CART_KEY = "cart"
ORDERS_KEY = "orders"
GUEST_ID_KEY = "guestId"

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_session_id(session_id: str) -> bool:
    """Session IDs become directory names, so keep them to a safe alphabet."""
    return bool(_SESSION_ID_RE.match(session_id))


class LocalStorage:
    """Durable string key-value storage scoped to one visitor session."""

    def __init__(self, data_dir: Path, session_id: str):
        """
        Initialize LocalStorage.

        Args:
            data_dir: Base data directory.
            session_id: Visitor session ID (used as the storage namespace).

        Raises:
            ValueError: If the session ID contains unsafe characters.
        """
        if not is_valid_session_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        self.session_id = session_id
        self.storage_dir = Path(data_dir) / SESSIONS_DIR / session_id
        self.storage_path = self.storage_dir / STORAGE_FILE

    def _ensure_dir(self) -> None:
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold an exclusive lock on this session's storage."""
        self._ensure_dir()
        lock_path = self.storage_dir / ".storage.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_data(self) -> dict[str, str]:
        """Load the key-value map from disk; unreadable content counts as empty."""
        if not self.storage_path.exists():
            return {}

        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                "storage_unreadable", session_id=self.session_id, error=str(e)
            )
            return {}

        if not isinstance(data, dict):
            logger.warning("storage_not_a_mapping", session_id=self.session_id)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save_data(self, data: dict[str, str]) -> None:
        """Save the key-value map to disk atomically."""
        self._ensure_dir()

        fd, temp_path = tempfile.mkstemp(
            dir=self.storage_dir, prefix=".storage_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.storage_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def get_item(self, key: str) -> str | None:
        return self._load_data().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load_data()
        data[key] = value
        self._save_data(data)

    def remove_item(self, key: str) -> None:
        data = self._load_data()
        if key in data:
            del data[key]
            self._save_data(data)

    def clear(self) -> None:
        self._save_data({})

    def keys(self) -> list[str]:
        return list(self._load_data())

    def get_json(self, key: str) -> Any:
        """
        Read and decode a JSON value.

        Returns None when the key is absent.

        Raises:
            InvalidStoredValueError: If the stored string isn't valid JSON.
        """
        raw = self.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidStoredValueError(key, str(e))

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value))
