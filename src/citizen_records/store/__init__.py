"""Store module.

This module provides JSON document persistence and the citizen id registry.
"""

from citizen_records.store.codec import decode_citizen, encode_citizen
from citizen_records.store.record_store import RecordStore
from citizen_records.store.registry import REGISTRY_KEY, Registry

__all__ = [
    "REGISTRY_KEY",
    "RecordStore",
    "Registry",
    "decode_citizen",
    "encode_citizen",
]
