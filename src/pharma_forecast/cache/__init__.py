from .cache import (
    CacheManager,
    NullCacheManager,
    CacheEntry,
    ArtifactManager,
    config_hash,
    panel_fingerprint,
)

__all__ = [
    "CacheManager",
    "NullCacheManager",
    "CacheEntry",
    "ArtifactManager",
    "config_hash",
    "panel_fingerprint",
]
