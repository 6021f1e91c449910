"""On-disk store: YAML audit database, configuration, imports and caches.

Submodules:
    documents    -- shared YAML readers for audits documents
    loader       -- load_store, load_dependency_graph, load_diffcache
    writer       -- append_audit, write_imports_lock
    imports      -- foreign audit translation and fetching
    http_client  -- async httpx wrapper used by imports
"""

from trustvet.store.documents import (
    AUDITS_FILE,
    CONFIG_FILE,
    DIFFCACHE_FILE,
    IMPORTS_LOCK_FILE,
    STORE_DIR,
    CriteriaMapping,
    ImportSource,
)
from trustvet.store.loader import (
    LoadedStore,
    StoreConfig,
    load_dependency_graph,
    load_diffcache,
    load_store,
    parse_config,
    parse_dependency_graph,
)
from trustvet.store.writer import append_audit, write_imports_lock

__all__ = [
    "AUDITS_FILE",
    "CONFIG_FILE",
    "DIFFCACHE_FILE",
    "IMPORTS_LOCK_FILE",
    "STORE_DIR",
    "CriteriaMapping",
    "ImportSource",
    "LoadedStore",
    "StoreConfig",
    "append_audit",
    "load_dependency_graph",
    "load_diffcache",
    "load_store",
    "parse_config",
    "parse_dependency_graph",
    "write_imports_lock",
]
