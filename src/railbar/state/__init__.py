"""
State management for RailBar.

This package provides the pluggable API token storage consumed by the
polling engine.
"""

from .token_store import (
    FileTokenStore,
    InMemoryTokenStore,
    TokenStore,
    TokenStoreFactory,
)

__all__ = [
    "TokenStore",
    "TokenStoreFactory",
    "InMemoryTokenStore",
    "FileTokenStore",
]
