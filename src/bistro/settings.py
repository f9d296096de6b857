"""Runtime settings for bistro, read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path

from .catalog import DEFAULT_RESTAURANT_DOCUMENT
from .document_store import DocumentStore, FirestoreDocumentStore, LocalDocumentStore

_default_data_dir = Path.cwd() / "data"

BACKEND_LOCAL = "local"
BACKEND_FIRESTORE = "firestore"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    data_dir: Path = _default_data_dir
    document_store: str = BACKEND_LOCAL
    firestore_project: str | None = None
    firestore_api_key: str | None = None
    restaurant_document: str = DEFAULT_RESTAURANT_DOCUMENT
    remote_orders: bool = False
    log_level: str = "INFO"
    session_cookie: str = "bistro_session"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from BISTRO_* environment variables.

        Raises:
            ValueError: If the document store backend is unknown.
        """
        backend = os.environ.get("BISTRO_DOCUMENT_STORE", BACKEND_LOCAL).lower()
        if backend not in (BACKEND_LOCAL, BACKEND_FIRESTORE):
            raise ValueError(f"Unknown document store backend: {backend}")
        return cls(
            data_dir=Path(os.environ.get("BISTRO_DATA_DIR", _default_data_dir)),
            document_store=backend,
            firestore_project=os.environ.get("BISTRO_FIRESTORE_PROJECT"),
            firestore_api_key=os.environ.get("BISTRO_FIRESTORE_API_KEY"),
            restaurant_document=os.environ.get(
                "BISTRO_RESTAURANT_DOCUMENT", DEFAULT_RESTAURANT_DOCUMENT
            ),
            remote_orders=_env_flag("BISTRO_REMOTE_ORDERS"),
            log_level=os.environ.get("BISTRO_LOG_LEVEL", "INFO").upper(),
            session_cookie=os.environ.get("BISTRO_SESSION_COOKIE", "bistro_session"),
        )

    def create_document_store(self) -> DocumentStore:
        """
        Build the configured document store backend.

        Raises:
            ValueError: If Firestore is selected without a project ID.
        """
        if self.document_store == BACKEND_FIRESTORE:
            if not self.firestore_project:
                raise ValueError("BISTRO_FIRESTORE_PROJECT is required for the firestore backend")
            return FirestoreDocumentStore(self.firestore_project, api_key=self.firestore_api_key)
        return LocalDocumentStore(self.data_dir)
