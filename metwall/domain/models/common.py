"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like object identifiers, search
terms and image locators, ensuring consistency and type safety.
"""

from typing import NewType

# === Collection Context ===
ObjectID = NewType("ObjectID", int)          # Upstream object identifier
SearchTerm = NewType("SearchTerm", str)      # Free-text keyword sent to /search
ImageUrl = NewType("ImageUrl", str)          # Raw upstream image locator
ProxiedUrl = NewType("ProxiedUrl", str)      # Image locator routed through /proxy

# === Caching Context ===
StoreKey = NewType("StoreKey", str)          # Key in the durable key/value store

