"""Custom exceptions for derivative operations.

InvalidInputError surfaces to callers. UnsupportedSourceError,
UpscaleRejectedError and CodecError are raised during generation and turned
into "no derivative" by the cache. CacheIOError is fatal for the call.
"""

from pathlib import Path


class OdiError(Exception):
    """Base exception for all ODI errors."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize error with optional path context.

        Args:
            message: Human-readable error description.
            path: File the error relates to, if any.
        """
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with path context if available."""
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message


class InvalidInputError(OdiError, ValueError):
    """Raised when caller input cannot be interpreted.

    This error is raised when:
    - A size or width expression is malformed or not strictly positive
    - A size descriptor does not follow ``*{w}x{h}[c][/{d}x]``
    - A named size is not registered
    - A per-breakpoint source map has no entry at breakpoint 0
    - An aspect ratio cannot be parsed
    """

    pass


class UnsupportedSourceError(OdiError):
    """Raised when a source cannot be rasterized (e.g. SVG)."""

    def __init__(self, source_id: int, mime_type: str) -> None:
        self.source_id = source_id
        self.mime_type = mime_type
        super().__init__(f"Source #{source_id} has unsupported type {mime_type}")


class UpscaleRejectedError(OdiError):
    """Raised when the requested box exceeds the source dimensions."""

    def __init__(
        self,
        source_id: int,
        *,
        requested: tuple[int, int],
        original: tuple[int, int],
    ) -> None:
        self.source_id = source_id
        self.requested = requested
        self.original = original
        super().__init__(
            f"Source #{source_id} is {original[0]}x{original[1]}, "
            f"cannot produce {requested[0]}x{requested[1]} without upscaling"
        )


class CodecError(OdiError):
    """Raised when the image codec fails to decode, transform or encode an image."""

    pass


class CacheIOError(OdiError):
    """Raised when a derivative file or directory cannot be read or written."""

    pass
