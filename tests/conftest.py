"""Pytest fixtures for bistro tests."""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from bistro.document_store import LocalDocumentStore
from bistro.local_storage import LocalStorage
from bistro.models import CartItem

RESTAURANT_PATH = "Resturant/1"


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage(temp_dir):
    """Session storage in a temporary data directory."""
    return LocalStorage(temp_dir, "test-session")


@pytest.fixture
def restaurant_document():
    """A restaurant document shaped like the one the site reads."""
    return {
        "name": "fast food resturant",
        "Config": {
            "name": "Bella Cucina",
            "logo": "/logo.png",
            "description": "Family-run Italian kitchen",
            "address": "12 Harbor Street",
            "phone": "555-0100",
            "email": "hello@bellacucina.test",
            "socialMedia": {"instagram": "https://instagram.com/bellacucina"},
            "businessHours": [
                {"day": "Monday", "open": "11:00", "close": "22:00", "isClosed": False},
                {"day": "Sunday", "open": "", "close": "", "isClosed": True},
            ],
            "primaryColor": "#b91c1c",
            "secondaryColor": "#f59e0b",
            "fontFamily": "Inter",
            "specialOffers": [
                {"id": "o1", "title": "Pasta Tuesday", "description": "Two for one"},
            ],
        },
        "categories": [
            {"id": "mains", "name": "Mains", "order": 2},
            {"id": "starters", "name": "Starters", "order": 1},
        ],
        "menu": [
            {
                "id": "1",
                "name": "Margherita Pizza",
                "description": "Tomato, mozzarella, basil",
                "price": 12.5,
                "image": "/pizza.jpg",
                "category": "mains",
                "featured": True,
                "options": [
                    {
                        "name": "Size",
                        "choices": [
                            {"name": "Regular"},
                            {"name": "Large", "price": 4},
                        ],
                    },
                    {
                        "name": "Crust",
                        "choices": [
                            {"name": "Classic"},
                            {"name": "Gluten free", "price": 2.5},
                        ],
                    },
                ],
                "dietary": ["vegetarian"],
                "allergens": ["gluten", "dairy"],
                "relatedItems": ["2", "missing"],
            },
            {
                "id": "2",
                "name": "Bruschetta",
                "description": "Grilled bread, tomatoes, garlic",
                "price": 7,
                "image": "/bruschetta.jpg",
                "category": "starters",
                "featured": False,
            },
            {
                "id": "3",
                "name": "Tiramisu",
                "price": 6.75,
                "category": "desserts",
                "featured": True,
            },
        ],
        "Testimonials": [
            {
                "id": "t1",
                "name": "Ana",
                "rating": 5,
                "comment": "Best pizza in town",
                "date": "2024-05-01",
            },
        ],
        "story": "Founded in 1998 by the Rossi family.",
    }


@pytest.fixture
def document_store(temp_dir, restaurant_document):
    """Local document store seeded with the restaurant document."""
    store = LocalDocumentStore(temp_dir)
    store.set_document(RESTAURANT_PATH, restaurant_document)
    return store


def make_item(item_id: str = "1", price: str = "10", quantity: int = 1, **kwargs) -> CartItem:
    """Build a cart item with sensible defaults."""
    return CartItem(
        id=item_id,
        name=kwargs.pop("name", f"Item {item_id}"),
        price=Decimal(price),
        quantity=quantity,
        **kwargs,
    )
