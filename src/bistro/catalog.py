"""Read-only restaurant configuration and menu catalog for bistro."""

from enum import Enum
from typing import Any, Generic, TypeVar

import structlog

from .document_store import DocumentStore
from .errors import DocumentStoreError, MenuItemNotFoundError
from .models import Catalog, Category, MenuItem, RestaurantConfig

logger = structlog.get_logger(__name__)

# The restaurant document holding both the configuration and the catalog
DEFAULT_RESTAURANT_DOCUMENT = "Resturant/1"

ALL_CATEGORIES = "all"

T = TypeVar("T")


class ReaderState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class DocumentReader(Generic[T]):
    """
    Fetches one document and keeps a parsed snapshot of it.

    State moves idle -> loading -> ready|error on the first ``refresh`` and
    ready|error -> loading -> ready|error on every later one. A missing
    document is "no data" (ready, snapshot None), not an error. Failures
    keep the previous snapshot and are never retried automatically.
    """

    error_message = "Failed to load data"

    def __init__(self, store: DocumentStore, document_path: str = DEFAULT_RESTAURANT_DOCUMENT):
        self.store = store
        self.document_path = document_path
        self.state = ReaderState.IDLE
        self.error: str | None = None
        self._snapshot: T | None = None

    @property
    def loading(self) -> bool:
        return self.state == ReaderState.LOADING

    @property
    def snapshot(self) -> T | None:
        return self._snapshot

    def parse(self, document: dict[str, Any]) -> T | None:
        raise NotImplementedError

    def refresh(self) -> T | None:
        """Fetch the document again and return the new snapshot."""
        self.state = ReaderState.LOADING
        self.error = None
        try:
            document = self.store.get_document(self.document_path)
            if document is None:
                logger.info("document_missing", path=self.document_path)
                self._snapshot = None
            else:
                self._snapshot = self.parse(document)
            self.state = ReaderState.READY
        except (DocumentStoreError, KeyError, TypeError, ValueError) as e:
            logger.error("document_fetch_failed", path=self.document_path, error=str(e))
            self.error = self.error_message
            self.state = ReaderState.ERROR
        return self._snapshot

    def ensure_loaded(self) -> T | None:
        """Fetch once if nothing has been fetched yet."""
        if self.state == ReaderState.IDLE:
            return self.refresh()
        return self._snapshot


class ConfigReader(DocumentReader[RestaurantConfig]):
    """The restaurant profile stored under the document's ``Config`` field."""

    error_message = "Failed to load restaurant configuration"

    def parse(self, document: dict[str, Any]) -> RestaurantConfig | None:
        config = document.get("Config")
        if not config:
            return None
        return RestaurantConfig.from_dict(config)

    @property
    def config(self) -> RestaurantConfig | None:
        return self.snapshot


class CatalogReader(DocumentReader[Catalog]):
    """Menu items, categories, testimonials and story from the restaurant document."""

    error_message = "Failed to load menu"

    def parse(self, document: dict[str, Any]) -> Catalog:
        return Catalog.from_document(document)

    @property
    def catalog(self) -> Catalog:
        return self.snapshot or Catalog()

    def sorted_categories(self) -> list[Category]:
        return sorted(self.catalog.categories, key=lambda c: c.order)

    def items_in_category(self, category_id: str = ALL_CATEGORIES) -> list[MenuItem]:
        if category_id == ALL_CATEGORIES:
            return list(self.catalog.menu)
        return [item for item in self.catalog.menu if item.category == category_id]

    def featured_items(self) -> list[MenuItem]:
        return [item for item in self.catalog.menu if item.featured]

    def get_item(self, item_id: str) -> MenuItem:
        """
        Get a menu item by ID.

        Raises:
            MenuItemNotFoundError: If the item isn't on the menu.
        """
        for item in self.catalog.menu:
            if item.id == item_id:
                return item
        raise MenuItemNotFoundError(item_id)

    def related_items(self, item: MenuItem) -> list[MenuItem]:
        """Items listed as related, skipping IDs no longer on the menu."""
        by_id = {m.id: m for m in self.catalog.menu}
        return [by_id[i] for i in item.related_items if i in by_id and i != item.id]
