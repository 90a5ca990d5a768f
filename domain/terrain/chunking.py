"""Terrain Bounded Context - Chunked Heightmap Delivery.

Hands a finished NormalizedHeightmap to its consumer in fixed-size
rectangular chunks instead of one atomic write, so a host loop can update a
progress indicator and service other events between chunks.

Scheduling options:
    iter_apply()              generator; each ``yield`` is a cooperative
                              checkpoint reporting ChunkProgress
    apply_heightmap()         drives the generator to completion
    apply_heightmap_async()   asyncio task, awaits between chunks
    apply_heightmap_parallel() worker pool with a barrier before commit

Chunk windows are disjoint and cover every cell exactly once, so chunk order
only affects progress reporting. Abandoning iter_apply() between chunks
leaves the destination partially written and never calls ``commit``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

from numpy.typing import NDArray

from domain.terrain.value_objects import (
    ChunkProgress,
    HeightmapChunk,
    NormalizedHeightmap,
)

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000

ApplyChunk = Callable[[int, int, NDArray], None]
Commit = Callable[[], None]
OnProgress = Callable[[ChunkProgress], None]


class ChunkWindow(NamedTuple):
    """Sub-rectangle of the destination buffer."""

    x_offset: int  # First column
    y_offset: int  # First row
    width: int
    height: int


def chunk_windows(shape: tuple[int, int], chunk_size: int) -> list[ChunkWindow]:
    """Row-major list of disjoint windows covering a buffer of shape (rows, cols).

    Edge windows are truncated to the buffer.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    rows, cols = shape
    return [
        ChunkWindow(x, y, min(chunk_size, cols - x), min(chunk_size, rows - y))
        for y in range(0, rows, chunk_size)
        for x in range(0, cols, chunk_size)
    ]


def extract_chunk(heightmap: NormalizedHeightmap, window: ChunkWindow) -> HeightmapChunk:
    """Copy one window of the heightmap into a standalone chunk buffer."""
    heights = heightmap.heights[
        window.y_offset : window.y_offset + window.height,
        window.x_offset : window.x_offset + window.width,
    ]
    return HeightmapChunk(x_offset=window.x_offset, y_offset=window.y_offset, heights=heights)


def iter_apply(
    heightmap: NormalizedHeightmap,
    apply_chunk: ApplyChunk,
    commit: Commit,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[ChunkProgress]:
    """Apply heightmap chunk by chunk, yielding progress after each chunk.

    Args:
        heightmap: Finished heightmap to deliver
        apply_chunk: Called as ``apply_chunk(x_offset, y_offset, heights)``
        commit: Called once after the last chunk has been applied
        chunk_size: Maximum chunk side length in samples

    Yields:
        ChunkProgress(completed, total) after every applied chunk
    """
    windows = chunk_windows(heightmap.heights.shape, chunk_size)
    total = len(windows)
    logger.debug("Applying heightmap in %d chunks of <= %d samples", total, chunk_size)

    for completed, window in enumerate(windows, start=1):
        chunk = extract_chunk(heightmap, window)
        apply_chunk(chunk.x_offset, chunk.y_offset, chunk.heights)
        yield ChunkProgress(completed=completed, total=total)

    commit()
    logger.info("Heightmap applied (%d chunks)", total)


def apply_heightmap(
    heightmap: NormalizedHeightmap,
    apply_chunk: ApplyChunk,
    commit: Commit,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: OnProgress | None = None,
) -> int:
    """Apply every chunk and commit, returning the number of chunks."""
    completed = 0
    for progress in iter_apply(heightmap, apply_chunk, commit, chunk_size):
        completed = progress.completed
        if on_progress is not None:
            on_progress(progress)
    return completed


async def apply_heightmap_async(
    heightmap: NormalizedHeightmap,
    apply_chunk: ApplyChunk,
    commit: Commit,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: OnProgress | None = None,
) -> int:
    """Asyncio variant of apply_heightmap(); yields to the loop between chunks.

    Cancelling the task between chunks skips ``commit``.
    """
    completed = 0
    for progress in iter_apply(heightmap, apply_chunk, commit, chunk_size):
        completed = progress.completed
        if on_progress is not None:
            on_progress(progress)
        await asyncio.sleep(0)
    return completed


def apply_heightmap_parallel(
    heightmap: NormalizedHeightmap,
    apply_chunk: ApplyChunk,
    commit: Commit,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_workers: int | None = None,
    on_progress: OnProgress | None = None,
) -> int:
    """Apply chunks on a thread pool; commit only after every chunk finished.

    ``apply_chunk`` must be safe to call concurrently for disjoint windows.
    Progress is reported from the calling thread in window order. If any
    chunk fails, its exception propagates and ``commit`` is not called.
    """
    windows = chunk_windows(heightmap.heights.shape, chunk_size)
    total = len(windows)

    def _apply(window: ChunkWindow) -> None:
        chunk = extract_chunk(heightmap, window)
        apply_chunk(chunk.x_offset, chunk.y_offset, chunk.heights)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # map() re-raises the first failure while iterating
        for completed, _ in enumerate(pool.map(_apply, windows), start=1):
            if on_progress is not None:
                on_progress(ChunkProgress(completed=completed, total=total))

    commit()
    logger.info("Heightmap applied in parallel (%d chunks)", total)
    return total
