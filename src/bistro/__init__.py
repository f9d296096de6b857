"""bistro - restaurant menu, cart and ordering service."""

__version__ = "0.1.0"
