"""ASCII grid file adapter for DemRepository.

Loads Esri ASCII grids (``.asc``) from disk, for offline use and for DEM
clips cached by an earlier download. Parsing is delegated to the domain
parser; this module only owns the file-system checks.

Lifecycle:
1) Validate path (exists, allowed extension, not a symlink, not empty)
2) Enforce the optional byte budget before reading
3) Read text and return it (or a parsed RawGrid)
"""

from __future__ import annotations

import logging
from pathlib import Path

from domain.terrain.ascii_grid import parse_ascii_grid
from domain.terrain.errors import InsufficientMemoryError, MalformedGridError
from domain.terrain.value_objects import BoundingBox, HeightModel, RawGrid

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

ALLOWED_SUFFIXES = (".asc", ".txt")


def cache_file_name(bounds: BoundingBox, height_model: HeightModel) -> str:
    """Deterministic file name for a cached DEM clip."""
    return (
        f"{height_model.value}_{bounds.south:.5f}_{bounds.north:.5f}_"
        f"{bounds.west:.5f}_{bounds.east:.5f}.asc"
    )


class AsciiGridFileAdapter:
    """Infrastructure adapter reading ASCII grids from the local file system.

    Parameters
    ----------
    directory: Path | str | None
        Cache directory used by fetch_ascii_grid(); clips are looked up by
        cache_file_name(). Not needed for load_text()/load_grid().
    max_bytes: int | None
        Optional budget for the file size; larger files raise
        InsufficientMemoryError before anything is read.
    """

    def __init__(
        self, directory: Path | str | None = None, max_bytes: int | None = None
    ) -> None:
        self.directory = Path(directory) if directory is not None else None
        self.max_bytes = max_bytes

    def load_text(self, file_path: Path | str) -> str:
        """Read an ASCII grid file after validating it.

        Raises:
            FileNotFoundError: path does not exist
            MalformedGridError: wrong extension, symlink, or empty file
            InsufficientMemoryError: file exceeds max_bytes
        """
        path = Path(file_path)

        # Missing files surface as FileNotFoundError before any other check
        if not path.exists():
            raise FileNotFoundError(str(path))

        if path.suffix.lower() not in ALLOWED_SUFFIXES:
            raise MalformedGridError(f"Unsupported file extension: {path.suffix}")

        try:
            if path.is_symlink():
                raise MalformedGridError("Symlinks are not permitted")
            size = path.stat().st_size
            if size == 0:
                raise MalformedGridError("Empty file")
            if self.max_bytes is not None and size > self.max_bytes:
                raise InsufficientMemoryError(
                    f"File size {size}B exceeds budget {self.max_bytes}B"
                )
            text = path.read_text(encoding="ascii", errors="replace")
        except OSError as e:
            # File name, errno and strerror only; never the absolute path
            logger.error(
                "Failed to read %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise

        logger.debug("ASCII grid %s: read %d bytes", path.name, size)
        return text

    def load_grid(self, file_path: Path | str, height_model: HeightModel) -> RawGrid:
        """Read and parse an ASCII grid file."""
        return parse_ascii_grid(self.load_text(file_path), height_model)

    def fetch_ascii_grid(
        self, bounds: BoundingBox, height_model: HeightModel
    ) -> str | None:
        """DemRepository implementation over the cache directory.

        Returns None when no clip is cached for bounds.
        """
        if self.directory is None:
            raise ValueError("AsciiGridFileAdapter has no cache directory")
        path = self.directory / cache_file_name(bounds, height_model)
        if not path.exists():
            logger.info("No cached DEM %s", path.name)
            return None
        return self.load_text(path)

    def store(self, bounds: BoundingBox, height_model: HeightModel, text: str) -> Path:
        """Write a downloaded clip into the cache directory.

        The text goes to a sibling ``.tmp`` file first and is then renamed
        over the cache entry, so a failed write never leaves a truncated
        entry behind. Characters outside ASCII are written as ``?``.
        """
        if self.directory is None:
            raise ValueError("AsciiGridFileAdapter has no cache directory")
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / cache_file_name(bounds, height_model)
        partial = path.with_name(path.name + ".tmp")
        try:
            partial.write_text(text, encoding="ascii", errors="replace")
            partial.replace(path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            logger.error(
                "Failed to cache %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise
        logger.info("Cached DEM %s", path.name)
        return path
