"""
Document Store Factory

This module maps store types to their implementations and builds configured
store instances. Instances are not cached: every call returns a new store
whose lifecycle belongs to the caller.
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, Union

from linkguard.exceptions import ConfigurationError
from linkguard.store.base import BaseDocumentStore
from linkguard.store.in_memory import InMemoryDocumentStore
from linkguard.store.sqlite import SQLiteDocumentStore

logger = logging.getLogger(__name__)


class StoreType(str, Enum):
    """Supported document store types."""

    MEMORY = "memory"  # In-process storage (non-persistent)
    SQLITE = "sqlite"  # SQLite file or :memory: database


_STORE_REGISTRY: Dict[StoreType, Type[BaseDocumentStore]] = {
    StoreType.MEMORY: InMemoryDocumentStore,
    StoreType.SQLITE: SQLiteDocumentStore,
}


def create_store(
    store_type: Optional[Union[StoreType, str]] = None,
    config: Optional[Mapping[str, Any]] = None,
) -> BaseDocumentStore:
    """
    Create an unopened document store.

    Args:
        store_type: Store type; defaults to ``config["type"]`` or ``memory``
        config: Store configuration; the section named after the store type
            (e.g. ``sqlite``) is merged over the common keys

    Raises:
        ConfigurationError: If the store type is not supported
    """
    config = dict(config or {})
    requested = store_type or config.pop("type", None) or StoreType.MEMORY
    config.pop("type", None)

    try:
        resolved = StoreType(requested)
    except ValueError:
        raise ConfigurationError(
            f"Unsupported store type: {requested}. "
            f"Supported types: {[member.value for member in StoreType]}"
        ) from None

    store_config: Dict[str, Any] = {
        key: value for key, value in config.items()
        if not (key in StoreType._value2member_map_ and isinstance(value, Mapping))
    }
    section = config.get(resolved.value)
    if isinstance(section, Mapping):
        store_config.update(section)

    store_class = _STORE_REGISTRY[resolved]
    logger.debug(f"Creating {store_class.__name__} with keys {sorted(store_config)}")
    return store_class(store_config)
