"""Derivative cache for ODI.

Key Components:
    - SizeDefinition / SizeRegistry: Requested boxes and named sizes
    - DerivativeStorage: Cache-key file layout on disk
    - DerivativeCache: Lazy generation, lookup and invalidation
    - InvalidationBatch: Request-scoped, deduplicated invalidation
"""

from odi.cache.derivatives import Derivative, DerivativeCache
from odi.cache.invalidation import InvalidationBatch, invalidation_scope
from odi.cache.sizes import (
    SizeDefinition,
    SizeRegistry,
    parse_aspect_ratio,
    parse_size_descriptor,
)
from odi.cache.storage import DerivativeStorage, StorageLocation, derivative_filename

__all__ = [
    "Derivative",
    "DerivativeCache",
    "DerivativeStorage",
    "InvalidationBatch",
    "SizeDefinition",
    "SizeRegistry",
    "StorageLocation",
    "derivative_filename",
    "invalidation_scope",
    "parse_aspect_ratio",
    "parse_size_descriptor",
]
