"""Protocol interfaces for pluggable backends."""

from kvell.protocols.store import Store

__all__ = [
    "Store",
]
