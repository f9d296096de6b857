"""Remote document store access for bistro.

The site reads one restaurant document and appends contact messages,
reservations and (optionally) orders to collections. Two backends share
the ``DocumentStore`` interface: JSON files on local disk and Cloud
Firestore over its REST API.
"""

import json
import os
import re
import tempfile
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import httpx
import structlog

from .errors import DocumentStoreError
from .models import _utc_now

logger = structlog.get_logger(__name__)

DOCUMENTS_DIR = "documents"
FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class _ServerTimestamp:
    """Sentinel for fields the store fills with its own write time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def split_document_path(path: str) -> tuple[str, str]:
    """
    Split "collection/doc_id" into its two segments.

    Raises:
        ValueError: If the path isn't exactly two safe segments.
    """
    parts = path.strip("/").split("/")
    if len(parts) != 2 or not all(_validate_segment(p) for p in parts):
        raise ValueError(f"Invalid document path: {path!r}")
    return parts[0], parts[1]


def _validate_segment(segment: str) -> bool:
    return bool(_SEGMENT_RE.match(segment)) and segment not in (".", "..")


def _new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class DocumentStore(ABC):
    """Generic key-document reads and collection appends."""

    @abstractmethod
    def get_document(self, path: str) -> dict[str, Any] | None:
        """
        Fetch a document by "collection/doc_id".

        Returns None if the document doesn't exist.

        Raises:
            DocumentStoreError: If the store can't be reached or read.
        """

    @abstractmethod
    def add_document(self, collection: str, data: dict[str, Any]) -> str:
        """
        Append a document to a collection.

        Top-level fields set to SERVER_TIMESTAMP are filled by the store.

        Returns:
            The new document's ID.

        Raises:
            DocumentStoreError: If the write fails.
        """

    def close(self) -> None:
        """Release any connections held by the store."""

    def __enter__(self) -> "DocumentStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class LocalDocumentStore(DocumentStore):
    """Documents kept as JSON files under ``<data_dir>/documents``."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.documents_dir = self.data_dir / DOCUMENTS_DIR

    def _document_path(self, collection: str, doc_id: str) -> Path:
        return self.documents_dir / collection / f"{doc_id}.json"

    def _write(self, file_path: Path, data: dict[str, Any]) -> None:
        """Write a document atomically."""
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=file_path.parent, prefix=".doc_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=_json_default)
                f.write("\n")
            os.replace(temp_path, file_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def get_document(self, path: str) -> dict[str, Any] | None:
        collection, doc_id = split_document_path(path)
        file_path = self._document_path(collection, doc_id)
        if not file_path.exists():
            return None

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DocumentStoreError("read", f"{path}: {e}")

        if not isinstance(data, dict):
            raise DocumentStoreError("read", f"{path}: document is not an object")
        return data

    def set_document(self, path: str, data: dict[str, Any]) -> None:
        """Create or replace a document (used for seeding)."""
        collection, doc_id = split_document_path(path)
        try:
            self._write(self._document_path(collection, doc_id), data)
        except OSError as e:
            raise DocumentStoreError("write", f"{path}: {e}")

    def add_document(self, collection: str, data: dict[str, Any]) -> str:
        if not _validate_segment(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")

        doc_id = _new_document_id()
        now = _utc_now()
        resolved = {
            key: now if value is SERVER_TIMESTAMP else value
            for key, value in data.items()
        }
        try:
            self._write(self._document_path(collection, doc_id), resolved)
        except OSError as e:
            raise DocumentStoreError("write", f"{collection}: {e}")

        logger.info("document_added", collection=collection, doc_id=doc_id)
        return doc_id

    def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """Return all documents of a collection, oldest file name first."""
        if not _validate_segment(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")
        collection_dir = self.documents_dir / collection
        if not collection_dir.exists():
            return []

        documents = []
        for file_path in sorted(collection_dir.glob("*.json")):
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    documents.append(json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("document_unreadable", path=str(file_path), error=str(e))
        return documents


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# --- Firestore value codec ---


def decode_value(value: dict[str, Any]) -> Any:
    """Convert a Firestore REST ``Value`` into plain Python data."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return value["doubleValue"]
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "bytesValue" in value:
        return value["bytesValue"]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unknown Firestore value: {sorted(value)}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {name: decode_value(v) for name, v in fields.items()}


def encode_value(value: Any) -> dict[str, Any]:
    """Convert plain Python data into a Firestore REST ``Value``."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, (float, Decimal)):
        return {"doubleValue": float(value)}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat()}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Can't encode {type(value).__name__} as a Firestore value")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {name: encode_value(v) for name, v in data.items()}


class FirestoreDocumentStore(DocumentStore):
    """Cloud Firestore access through the v1 REST API."""

    def __init__(
        self,
        project_id: str,
        api_key: str | None = None,
        database: str = "(default)",
        client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the Firestore client.

        Args:
            project_id: Google Cloud project ID.
            api_key: Web API key sent as the ``key`` query parameter.
            database: Firestore database ID.
            client: Preconfigured httpx client (for testing).
            timeout: Request timeout in seconds.
        """
        self.project_id = project_id
        self.api_key = api_key
        self.database = database
        self.root = f"projects/{project_id}/databases/{database}/documents"
        self.client = client or httpx.Client(
            base_url=FIRESTORE_BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    def _params(self) -> dict[str, str]:
        return {"key": self.api_key} if self.api_key else {}

    def get_document(self, path: str) -> dict[str, Any] | None:
        collection, doc_id = split_document_path(path)
        url = f"/{self.root}/{collection}/{doc_id}"
        try:
            response = self.client.get(url, params=self._params())
            if response.status_code == 404:
                return None
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error("firestore_read_failed", path=path, error=str(e))
            raise DocumentStoreError("read", f"{path}: {e}")
        except ValueError as e:
            raise DocumentStoreError("read", f"{path}: invalid response body ({e})")

        try:
            return decode_fields(payload.get("fields", {}))
        except ValueError as e:
            raise DocumentStoreError("read", f"{path}: {e}")

    def add_document(self, collection: str, data: dict[str, Any]) -> str:
        if not _validate_segment(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")

        doc_id = _new_document_id()
        fields = {k: v for k, v in data.items() if v is not SERVER_TIMESTAMP}
        transforms = [
            {"fieldPath": k, "setToServerValue": "REQUEST_TIME"}
            for k, v in data.items()
            if v is SERVER_TIMESTAMP
        ]
        write: dict[str, Any] = {
            "update": {
                "name": f"{self.root}/{collection}/{doc_id}",
                "fields": encode_fields(fields),
            },
            "currentDocument": {"exists": False},
        }
        if transforms:
            write["updateTransforms"] = transforms

        try:
            response = self.client.post(
                f"/{self.root}:commit",
                params=self._params(),
                json={"writes": [write]},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("firestore_write_failed", collection=collection, error=str(e))
            raise DocumentStoreError("write", f"{collection}: {e}")

        logger.info("document_added", collection=collection, doc_id=doc_id)
        return doc_id

    def close(self) -> None:
        self.client.close()
