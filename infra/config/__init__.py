"""
Configuration management for Scriptorium.

Library config lives at {storage_root}/config.yaml.

Usage:
    from infra.config import LibraryConfigManager, get_library_config

    lib_manager = LibraryConfigManager(storage_root)
    lib_config = lib_manager.load()

    # Cached, resolved from BOOK_STORAGE_ROOT
    config = get_library_config()
"""

from .schemas import (
    ProviderConfig,
    DefaultsConfig,
    LibraryConfig,
    resolve_env_vars,
)

from .library_config import (
    LibraryConfigManager,
    load_library_config,
)

from .runtime import (
    get_storage_root,
    get_library_config,
    get_api_key,
)

__all__ = [
    "ProviderConfig",
    "DefaultsConfig",
    "LibraryConfig",
    "resolve_env_vars",
    "LibraryConfigManager",
    "load_library_config",
    "get_storage_root",
    "get_library_config",
    "get_api_key",
]
