"""Size definitions, size descriptors and the named-size registry.

A derivative is requested either by a registered size name or by an ad-hoc
descriptor ``*{width}x{height}[c][/{density}x]``:

- ``*300x200``    resize to fit 300x200
- ``*300x200c``   focal crop to exactly 300x200
- ``*300x200c/2x`` the same box at twice the pixel density (600x400)
- ``*300x0``      300 wide, height follows the aspect ratio
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from odi.config import settings
from odi.exceptions import InvalidInputError

_DESCRIPTOR_RE = re.compile(
    r"^\*(?P<width>\d+)x(?P<height>\d+)(?P<crop>c)?(?:/(?P<density>[0-9])x)?$"
)
_ASPECT_RATIO_RE = re.compile(
    r"^(?P<width>\d+(?:\.\d+)?)\s*[:/]\s*(?P<height>\d+(?:\.\d+)?)$"
)

ON_DEMAND_PREFIX = "*"

T = TypeVar("T")


class SizeDefinition(BaseModel, frozen=True):
    """Physical target box of a derivative.

    Attributes:
        width: Target width in pixels, 0 when unconstrained.
        height: Target height in pixels, 0 when unconstrained.
        crop: Crop to fill the box exactly instead of fitting inside it.
    """

    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)
    crop: bool = False

    def descriptor(self, density: int = 1) -> str:
        """Return the ad-hoc descriptor requesting this box."""
        descriptor = f"*{self.width}x{self.height}{'c' if self.crop else ''}"
        if density > 1:
            descriptor += f"/{density}x"
        return descriptor


def parse_size_descriptor(descriptor: str) -> SizeDefinition:
    """Parse an ad-hoc size descriptor.

    The density multiplier is applied to width and height, so ``*300x200/2x``
    and ``*600x400`` address the same derivative.

    Raises:
        InvalidInputError: If the descriptor is malformed.
    """
    match = _DESCRIPTOR_RE.match(descriptor)
    if not match:
        raise InvalidInputError(f"Invalid size descriptor: {descriptor!r}")

    width = int(match["width"])
    height = int(match["height"])
    density = int(match["density"]) if match["density"] else 1
    if density > 1:
        width *= density
        height *= density

    return SizeDefinition(width=width, height=height, crop=match["crop"] == "c")


def parse_aspect_ratio(value: float | int | str) -> float:
    """Parse an aspect ratio given as a number, ``"16:9"`` or ``"16/9"``.

    Raises:
        InvalidInputError: If the ratio is malformed or not positive.
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid aspect ratio: {value!r}")
    if isinstance(value, int | float):
        ratio = float(value)
    else:
        text = value.strip()
        match = _ASPECT_RATIO_RE.match(text)
        try:
            if match:
                ratio = float(match["width"]) / float(match["height"])
            else:
                ratio = float(text)
        except (ValueError, ZeroDivisionError) as e:
            raise InvalidInputError(f"Invalid aspect ratio: {value!r}") from e

    if not ratio > 0 or ratio == float("inf"):
        raise InvalidInputError(f"Aspect ratio must be positive: {value!r}")
    return ratio


class SizeRegistry:
    """Named sizes registered by the host, and which of them are on demand.

    Names starting with ``*`` are on-demand sizes, addressable both with and
    without the prefix. Registered names listed in ``on_demand_keys`` are
    served on demand as well instead of being generated at upload time;
    they default to ``settings.ON_DEMAND_SIZE_KEYS``.
    """

    __slots__ = ("_on_demand", "_registered")

    def __init__(
        self,
        registered: Mapping[str, SizeDefinition | Mapping[str, Any]] | None = None,
        on_demand_keys: Iterable[str] | None = None,
    ) -> None:
        self._registered: dict[str, SizeDefinition] = {
            name: SizeDefinition.model_validate(size)
            for name, size in (registered or {}).items()
        }

        on_demand: dict[str, SizeDefinition] = {}
        for name, size in self._registered.items():
            if name.startswith(ON_DEMAND_PREFIX):
                on_demand[name] = size
                on_demand[name[len(ON_DEMAND_PREFIX) :]] = size
        if on_demand_keys is None:
            on_demand_keys = settings.ON_DEMAND_SIZE_KEYS
        for name in on_demand_keys:
            if name in self._registered:
                on_demand[name] = self._registered[name]
        self._on_demand = on_demand

    def on_demand_sizes(self) -> dict[str, SizeDefinition]:
        """Return every size name served on demand."""
        return dict(self._on_demand)

    def get(self, name: str) -> SizeDefinition | None:
        """Return the on-demand size registered under ``name``, if any."""
        return self._on_demand.get(name)

    def resolve(self, size: str | SizeDefinition) -> SizeDefinition:
        """Resolve a size name or descriptor to a definition.

        Raises:
            InvalidInputError: If the name is unknown and not a valid descriptor.
        """
        if isinstance(size, SizeDefinition):
            return size

        definition = self.get(size)
        if definition is not None:
            return definition

        if size.startswith(ON_DEMAND_PREFIX):
            return parse_size_descriptor(size)

        raise InvalidInputError(f"Unknown image size: {size!r}")

    def filter_upload_sizes(self, sizes: Mapping[str, T]) -> dict[str, T]:
        """Drop on-demand sizes from the sizes generated at upload time."""
        return {name: size for name, size in sizes.items() if name not in self._on_demand}
