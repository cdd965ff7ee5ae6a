"""Image codec layer for ODI.

Key Components:
    - ImageCodecProtocol: Interface used by the derivative cache
    - PillowCodec: Pillow-backed implementation
"""

from odi.codec.pillow import PillowCodec
from odi.codec.types import ImageCodecProtocol

__all__ = ["ImageCodecProtocol", "PillowCodec"]
