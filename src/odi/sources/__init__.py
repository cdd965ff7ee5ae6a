"""Source image metadata for ODI.

Key Components:
    - SourceAsset: Immutable metadata of an original upload
    - SourceStoreProtocol: Interface of the host's metadata store
    - InMemorySourceStore: Store used by the CLI and tests
"""

from odi.sources.store import InMemorySourceStore
from odi.sources.types import (
    FOCAL_POINT_KEYS,
    FOCAL_POINT_X_KEY,
    FOCAL_POINT_Y_KEY,
    MetaListener,
    RemovalListener,
    SourceAsset,
    SourceStoreProtocol,
)

__all__ = [
    "FOCAL_POINT_KEYS",
    "FOCAL_POINT_X_KEY",
    "FOCAL_POINT_Y_KEY",
    "InMemorySourceStore",
    "MetaListener",
    "RemovalListener",
    "SourceAsset",
    "SourceStoreProtocol",
]
