"""On-disk layout of derivatives.

Derivatives live in a dedicated folder under the uploads root, mirroring
the original's relative directory::

    {basedir}/{folder}/{relative dir}/{stem}-{width}x{height}.{ext}

The file name is the cache key: a derivative exists if and only if its
file exists, so no separate index is kept.
"""

from __future__ import annotations

import glob
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from odi.config import Settings
from odi.exceptions import CacheIOError, InvalidInputError
from odi.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StorageLocation:
    """Filesystem path and public URL of a file or folder."""

    path: Path
    url: str


def derivative_filename(file: str, width: int, height: int) -> str:
    """Return the cache-key file name of a derivative of ``file``."""
    original = PurePosixPath(file)
    return f"{original.stem}-{width}x{height}{original.suffix}"


def _relative_directory(file: str) -> PurePosixPath:
    relative = PurePosixPath(file.lstrip("/")).parent
    if ".." in relative.parts:
        raise InvalidInputError(f"Invalid storage path {file!r}: path traversal")
    return relative


class DerivativeStorage:
    """Maps source files to derivative paths and URLs.

    Attributes:
        root: Folder holding all derivatives.
        root_url: Public URL of ``root``.
    """

    __slots__ = ("root", "root_url")

    def __init__(self, basedir: Path | str, baseurl: str, folder: str = "odi") -> None:
        self.root = Path(basedir) / folder
        self.root_url = f"{baseurl.rstrip('/')}/{folder}"

    @classmethod
    def from_settings(cls, settings: Settings) -> DerivativeStorage:
        """Create storage from configured uploads root and URL.

        Raises:
            ConfigError: If the uploads root or URL is not configured.
        """
        return cls(
            settings.require_uploads_basedir(),
            settings.require_uploads_baseurl(),
            settings.UPLOAD_FOLDER,
        )

    def directory_for(self, file: str, *, create: bool = True) -> StorageLocation:
        """Return the derivative folder mirroring the directory of ``file``.

        Raises:
            InvalidInputError: If ``file`` escapes the uploads root.
            CacheIOError: If the folder cannot be created.
        """
        relative = _relative_directory(file)
        path = self.root.joinpath(*relative.parts)
        url = "/".join([self.root_url, *relative.parts])

        if create:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CacheIOError(f"Cannot create derivative folder: {e}", path=path) from e

        return StorageLocation(path=path, url=url)

    def key_for(self, file: str, width: int, height: int) -> StorageLocation:
        """Return the location of the ``width`` x ``height`` derivative of ``file``."""
        directory = self.directory_for(file)
        filename = derivative_filename(file, width, height)
        return StorageLocation(
            path=directory.path / filename,
            url=f"{directory.url}/{filename}",
        )

    def exists(self, path: Path) -> bool:
        """Return True when a derivative is stored at ``path``.

        Raises:
            CacheIOError: If the filesystem cannot be queried.
        """
        try:
            return path.is_file()
        except OSError as e:
            raise CacheIOError(f"Cannot probe derivative: {e}", path=path) from e

    def purge(self, file: str) -> list[Path]:
        """Delete every derivative of ``file``.

        Only names of the exact form ``{stem}-{w}x{h}.{ext}`` are removed, so
        other files sharing the stem prefix survive.

        Returns:
            Deleted paths.

        Raises:
            CacheIOError: If a derivative cannot be deleted.
        """
        directory = self.directory_for(file, create=False).path
        original = PurePosixPath(file)
        pattern = re.compile(
            rf"^{re.escape(original.stem)}-\d+x\d+{re.escape(original.suffix)}$"
        )

        deleted: list[Path] = []
        for candidate in sorted(directory.glob(f"{glob.escape(original.stem)}-*")):
            if not pattern.match(candidate.name):
                continue
            try:
                candidate.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise CacheIOError(f"Cannot delete derivative: {e}", path=candidate) from e
            deleted.append(candidate)

        logger.debug("Purged derivatives", file=file, count=len(deleted))
        return deleted

    def path_for_url(self, url: str) -> Path | None:
        """Map a derivative URL back to its path, None for foreign URLs."""
        prefix = f"{self.root_url}/"
        if not url.startswith(prefix):
            return None

        relative = PurePosixPath(url[len(prefix) :])
        if ".." in relative.parts:
            return None
        return self.root.joinpath(*relative.parts)
