"""Tests for chunked heightmap delivery.

A recording consumer stands in for the terrain engine: it writes each chunk
into its own buffer and counts how often every cell was touched.
"""

from __future__ import annotations

import asyncio
import threading

import numpy as np
import pytest

from domain.terrain.chunking import (
    ChunkWindow,
    apply_heightmap,
    apply_heightmap_async,
    apply_heightmap_parallel,
    chunk_windows,
    extract_chunk,
    iter_apply,
)
from domain.terrain.value_objects import ChunkProgress, NormalizedHeightmap


class RecordingTerrain:
    """Destination buffer that tracks writes and the commit call."""

    def __init__(self, resolution: int) -> None:
        self.buffer = np.full((resolution, resolution), -1.0)
        self.writes = np.zeros((resolution, resolution), dtype=int)
        self.commits = 0
        self.calls: list[tuple[int, int, tuple[int, int]]] = []
        self._lock = threading.Lock()

    def apply_chunk(self, x_offset: int, y_offset: int, heights: np.ndarray) -> None:
        rows, cols = heights.shape
        with self._lock:
            self.buffer[y_offset : y_offset + rows, x_offset : x_offset + cols] = heights
            self.writes[y_offset : y_offset + rows, x_offset : x_offset + cols] += 1
            self.calls.append((x_offset, y_offset, heights.shape))

    def commit(self) -> None:
        self.commits += 1


def _heightmap(resolution: int, seed: int = 0) -> NormalizedHeightmap:
    rng = np.random.default_rng(seed=seed)
    return NormalizedHeightmap(
        heights=rng.uniform(0.0, 1.0, size=(resolution, resolution)),
        min_height=1000.0,
        max_height=2500.0,
        physical_size_m=900.0,
    )


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------
def test_chunk_windows_row_major_with_truncated_edges():
    windows = chunk_windows((5, 5), 2)

    assert windows[:3] == [
        ChunkWindow(0, 0, 2, 2),
        ChunkWindow(2, 0, 2, 2),
        ChunkWindow(4, 0, 1, 2),
    ]
    assert windows[-1] == ChunkWindow(4, 4, 1, 1)
    assert len(windows) == 9


@pytest.mark.parametrize(
    "shape, chunk_size", [((17, 17), 4), ((4097, 4097), 1000), ((3, 7), 10), ((1, 1), 1)]
)
def test_chunk_windows_cover_every_cell_once(shape: tuple[int, int], chunk_size: int):
    coverage = np.zeros(shape, dtype=int)

    for window in chunk_windows(shape, chunk_size):
        coverage[
            window.y_offset : window.y_offset + window.height,
            window.x_offset : window.x_offset + window.width,
        ] += 1

    assert np.all(coverage == 1)


def test_default_resolution_yields_25_chunks():
    assert len(chunk_windows((4097, 4097), 1000)) == 25


@pytest.mark.parametrize("chunk_size", [0, -1])
def test_chunk_windows_rejects_non_positive_size(chunk_size: int):
    with pytest.raises(ValueError, match="chunk_size"):
        chunk_windows((4, 4), chunk_size)


def test_extract_chunk_copies_window():
    heightmap = _heightmap(6)

    chunk = extract_chunk(heightmap, ChunkWindow(4, 2, 2, 3))

    assert (chunk.x_offset, chunk.y_offset) == (4, 2)
    assert (chunk.height, chunk.width) == (3, 2)
    np.testing.assert_array_equal(chunk.heights, heightmap.heights[2:5, 4:6])


# ---------------------------------------------------------------------------
# Sequential delivery
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("chunk_size", [1, 4, 7, 17, 100])
def test_chunked_result_matches_single_write(chunk_size: int):
    heightmap = _heightmap(17, seed=chunk_size)
    terrain = RecordingTerrain(17)

    count = apply_heightmap(heightmap, terrain.apply_chunk, terrain.commit, chunk_size)

    assert count == len(chunk_windows((17, 17), chunk_size))
    np.testing.assert_array_equal(terrain.buffer, heightmap.heights)
    assert np.all(terrain.writes == 1)
    assert terrain.commits == 1


def test_progress_is_reported_after_each_chunk():
    heightmap = _heightmap(9)
    terrain = RecordingTerrain(9)
    reports: list[ChunkProgress] = []

    apply_heightmap(
        heightmap, terrain.apply_chunk, terrain.commit, chunk_size=4, on_progress=reports.append
    )

    assert [p.completed for p in reports] == list(range(1, 10))
    assert all(p.total == 9 for p in reports)
    assert reports[-1].done
    assert reports[-1].fraction == 1.0


def test_iter_apply_commits_only_after_last_chunk():
    heightmap = _heightmap(5)
    terrain = RecordingTerrain(5)

    progress = iter_apply(heightmap, terrain.apply_chunk, terrain.commit, chunk_size=2)

    for report in progress:
        assert terrain.commits == 0
        assert len(terrain.calls) == report.completed
    assert terrain.commits == 1


def test_abandoned_iteration_never_commits():
    heightmap = _heightmap(8)
    terrain = RecordingTerrain(8)

    progress = iter_apply(heightmap, terrain.apply_chunk, terrain.commit, chunk_size=3)
    next(progress)
    next(progress)
    progress.close()

    assert terrain.commits == 0
    assert len(terrain.calls) == 2
    assert np.any(terrain.writes == 0)


def test_consumer_failure_propagates_without_commit():
    heightmap = _heightmap(4)
    terrain = RecordingTerrain(4)

    def failing_apply(x_offset: int, y_offset: int, heights: np.ndarray) -> None:
        if (x_offset, y_offset) == (2, 0):
            raise RuntimeError("terrain engine rejected chunk")
        terrain.apply_chunk(x_offset, y_offset, heights)

    with pytest.raises(RuntimeError, match="rejected chunk"):
        apply_heightmap(heightmap, failing_apply, terrain.commit, chunk_size=2)

    assert terrain.commits == 0


def test_chunks_handed_to_consumer_are_read_only():
    heightmap = _heightmap(4)
    received: list[np.ndarray] = []

    apply_heightmap(
        heightmap, lambda x, y, h: received.append(h), lambda: None, chunk_size=2
    )

    with pytest.raises(ValueError):
        received[0][0, 0] = 0.5


# ---------------------------------------------------------------------------
# Asyncio and thread pool delivery
# ---------------------------------------------------------------------------
def test_async_delivery_matches_single_write():
    heightmap = _heightmap(17, seed=5)
    terrain = RecordingTerrain(17)
    reports: list[ChunkProgress] = []

    count = asyncio.run(
        apply_heightmap_async(
            heightmap,
            terrain.apply_chunk,
            terrain.commit,
            chunk_size=5,
            on_progress=reports.append,
        )
    )

    assert count == 16
    assert len(reports) == 16
    np.testing.assert_array_equal(terrain.buffer, heightmap.heights)
    assert terrain.commits == 1


def test_async_delivery_interleaves_with_other_tasks():
    heightmap = _heightmap(6)
    terrain = RecordingTerrain(6)
    ticks: list[int] = []

    async def ticker() -> None:
        for _ in range(3):
            ticks.append(len(terrain.calls))
            await asyncio.sleep(0)

    async def main() -> None:
        await asyncio.gather(
            apply_heightmap_async(heightmap, terrain.apply_chunk, terrain.commit, chunk_size=2),
            ticker(),
        )

    asyncio.run(main())

    # The ticker saw the buffer between chunks, not only before or after
    assert any(0 < tick < 9 for tick in ticks)
    assert terrain.commits == 1


def test_cancelled_async_delivery_skips_commit():
    heightmap = _heightmap(10)
    terrain = RecordingTerrain(10)

    async def main() -> None:
        task = asyncio.create_task(
            apply_heightmap_async(heightmap, terrain.apply_chunk, terrain.commit, chunk_size=2)
        )
        while len(terrain.calls) < 3:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(main())

    assert terrain.commits == 0
    assert 3 <= len(terrain.calls) < 25


@pytest.mark.parametrize("max_workers", [1, 4])
def test_parallel_delivery_matches_single_write(max_workers: int):
    heightmap = _heightmap(33, seed=max_workers)
    terrain = RecordingTerrain(33)
    reports: list[ChunkProgress] = []

    count = apply_heightmap_parallel(
        heightmap,
        terrain.apply_chunk,
        terrain.commit,
        chunk_size=8,
        max_workers=max_workers,
        on_progress=reports.append,
    )

    assert count == 25
    np.testing.assert_array_equal(terrain.buffer, heightmap.heights)
    assert np.all(terrain.writes == 1)
    assert terrain.commits == 1
    assert [p.completed for p in reports] == list(range(1, 26))


def test_parallel_failure_skips_commit():
    heightmap = _heightmap(8)
    terrain = RecordingTerrain(8)

    def failing_apply(x_offset: int, y_offset: int, heights: np.ndarray) -> None:
        if x_offset == 4 and y_offset == 4:
            raise RuntimeError("worker failed")
        terrain.apply_chunk(x_offset, y_offset, heights)

    with pytest.raises(RuntimeError, match="worker failed"):
        apply_heightmap_parallel(
            heightmap, failing_apply, terrain.commit, chunk_size=4, max_workers=2
        )

    assert terrain.commits == 0


@pytest.mark.slow
def test_full_resolution_heightmap_in_default_chunks():
    resolution = 4097
    heightmap = NormalizedHeightmap(
        heights=np.linspace(0.0, 1.0, resolution * resolution).reshape(resolution, resolution),
        min_height=0.0,
        max_height=4000.0,
        physical_size_m=resolution * 90.0,
    )
    buffer = np.zeros((resolution, resolution))
    sizes: list[tuple[int, int]] = []

    def apply_chunk(x_offset: int, y_offset: int, heights: np.ndarray) -> None:
        rows, cols = heights.shape
        buffer[y_offset : y_offset + rows, x_offset : x_offset + cols] = heights
        sizes.append((rows, cols))

    count = apply_heightmap(heightmap, apply_chunk, lambda: None)

    assert count == 25
    assert sizes[0] == (1000, 1000)
    assert sizes[-1] == (97, 97)
    np.testing.assert_array_equal(buffer, heightmap.heights)
