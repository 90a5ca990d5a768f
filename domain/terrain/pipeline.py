"""Terrain Bounded Context - DEM Pipeline.

Orchestrates fetch -> parse -> resample -> normalize/rotate -> chunked
delivery. The DEM source is injected as a DemRepository; the pipeline keeps
no state between calls.

Scheduling:
    build_heightmap()         one uninterrupted call (reference path)
    iter_build_heightmap()    same result, built in row bands; each ``yield``
                              is a cooperative checkpoint reporting
                              BuildProgress
    DemPipeline.iter_load_and_apply()
                              banded build followed by chunked delivery in
                              one generator
    DemPipeline.load_and_apply_async()
                              asyncio task; fetch runs in a worker thread,
                              then awaits between bands and chunks

Propagation policy:
    - FetchFailure / MalformedGridError abort the run; no partial heightmap
      is emitted and nothing is retried here (retry belongs to the caller).
    - A flat elevation range is resolved locally (all-zero heightmap).
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable, Generator

import numpy as np

from domain.terrain.ascii_grid import parse_ascii_grid
from domain.terrain.chunking import (
    DEFAULT_CHUNK_SIZE,
    ApplyChunk,
    Commit,
    OnProgress,
    iter_apply,
)
from domain.terrain.errors import FetchFailure
from domain.terrain.normalization import (
    height_range,
    normalize_and_rotate,
    normalize_heights,
    rotate_ccw,
    warn_flat_range,
)
from domain.terrain.repositories import DemRepository
from domain.terrain.resampling import (
    DEFAULT_HEIGHTMAP_RESOLUTION,
    resample_bilinear,
    resample_rows,
)
from domain.terrain.value_objects import (
    BoundingBox,
    BuildProgress,
    ChunkProgress,
    HeightModel,
    NormalizedHeightmap,
    RawGrid,
)

logger = logging.getLogger(__name__)

# Destination rows resampled per band; 256 rows of a 4097 heightmap are ~8 MiB
DEFAULT_BAND_ROWS = 256

OnBuildProgress = Callable[[BuildProgress], None]
PipelineSteps = Generator[ChunkProgress, None, NormalizedHeightmap]


def build_heightmap(
    grid: RawGrid, resolution: int = DEFAULT_HEIGHTMAP_RESOLUTION
) -> NormalizedHeightmap:
    """Resample, normalize and rotate a parsed grid into a heightmap.

    The physical footprint is nrows x cell_size_m on each side (square
    terrain after aspect correction).
    """
    resampled = resample_bilinear(grid.data, resolution)
    return normalize_and_rotate(resampled, grid.physical_size_m)


def iter_build_heightmap(
    grid: RawGrid,
    resolution: int = DEFAULT_HEIGHTMAP_RESOLUTION,
    band_rows: int = DEFAULT_BAND_ROWS,
) -> Generator[BuildProgress, None, NormalizedHeightmap]:
    """Banded build_heightmap(); yields BuildProgress between row bands.

    First pass resamples one band of destination rows at a time into a
    single R x R buffer while tracking the elevation range. Second pass
    normalizes each band and writes its counter-clockwise turn into the
    matching columns of the output. The heightmap is the generator's return
    value and equals build_heightmap() bit for bit:

        heightmap = yield from iter_build_heightmap(grid, 4097)

    Closing the generator early discards the partial buffers.

    Raises:
        ValueError: resolution < 2 or band_rows <= 0
    """
    if resolution < 2:
        raise ValueError(f"resolution must be >= 2, got {resolution}")
    if band_rows <= 0:
        raise ValueError(f"band_rows must be positive, got {band_rows}")

    bands = [
        (start, min(start + band_rows, resolution))
        for start in range(0, resolution, band_rows)
    ]
    total = 2 * len(bands)
    completed = 0

    resampled = np.empty((resolution, resolution), dtype=np.float64)
    min_height, max_height = math.inf, -math.inf
    for start, stop in bands:
        band = resample_rows(grid.data, resolution, start, stop)
        resampled[start:stop] = band
        band_min, band_max = height_range(band)
        min_height = min(min_height, band_min)
        max_height = max(max_height, band_max)
        completed += 1
        yield BuildProgress(stage="resample", completed=completed, total=total)

    flat = max_height == min_height
    if flat:
        warn_flat_range(min_height)

    # Source row i lands in destination column i after the turn
    heights = np.empty((resolution, resolution), dtype=np.float64)
    for start, stop in bands:
        if flat:
            heights[:, start:stop] = 0.0
        else:
            normalized = normalize_heights(resampled[start:stop], min_height, max_height)
            heights[:, start:stop] = rotate_ccw(normalized)
        completed += 1
        yield BuildProgress(stage="normalize", completed=completed, total=total)

    return NormalizedHeightmap(
        heights=heights,
        min_height=min_height,
        max_height=max_height,
        physical_size_m=grid.physical_size_m,
    )


def heightmap_from_ascii(
    text: str | None,
    height_model: HeightModel,
    resolution: int = DEFAULT_HEIGHTMAP_RESOLUTION,
) -> NormalizedHeightmap:
    """Build a heightmap straight from ASCII grid text.

    Raises:
        FetchFailure: text is None or blank (failed fetch upstream)
        MalformedGridError: text is not a valid ASCII grid
    """
    if text is None or not text.strip():
        raise FetchFailure("DEM fetch returned no data")
    grid = parse_ascii_grid(text, height_model)
    return build_heightmap(grid, resolution)


def _report(
    progress: ChunkProgress,
    on_progress: OnProgress | None,
    on_build_progress: OnBuildProgress | None,
) -> None:
    if isinstance(progress, BuildProgress):
        if on_build_progress is not None:
            on_build_progress(progress)
    elif on_progress is not None:
        on_progress(progress)


class DemPipeline:
    """Turns a bounding box into a NormalizedHeightmap.

    Parameters
    ----------
    repository: DemRepository
        Source of ASCII grid text (OpenTopography, local files, ...).
    resolution: int
        Side length R of the square heightmap (2^n + 1).
    chunk_size: int
        Maximum chunk side length used by load_and_apply().
    band_rows: int
        Destination rows resampled between two cooperative checkpoints.
    """

    def __init__(
        self,
        repository: DemRepository,
        resolution: int = DEFAULT_HEIGHTMAP_RESOLUTION,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        band_rows: int = DEFAULT_BAND_ROWS,
    ) -> None:
        if resolution < 2:
            raise ValueError(f"resolution must be >= 2, got {resolution}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if band_rows <= 0:
            raise ValueError(f"band_rows must be positive, got {band_rows}")
        self.repository = repository
        self.resolution = resolution
        self.chunk_size = chunk_size
        self.band_rows = band_rows

    def fetch_grid(self, bounds: BoundingBox, height_model: HeightModel) -> RawGrid:
        """Fetch and parse the DEM for bounds.

        Raises:
            FetchFailure: repository failed or returned no data
            MalformedGridError: payload is not a valid ASCII grid
        """
        text = self.repository.fetch_ascii_grid(bounds, height_model)
        if text is None or not text.strip():
            logger.error("DEM fetch for %s returned no data", height_model.value)
            raise FetchFailure("DEM fetch returned no data")
        return parse_ascii_grid(text, height_model)

    def iter_build(
        self, grid: RawGrid
    ) -> Generator[BuildProgress, None, NormalizedHeightmap]:
        """Banded heightmap build at the pipeline's resolution."""
        heightmap = yield from iter_build_heightmap(grid, self.resolution, self.band_rows)
        logger.info(
            "Heightmap built from %dx%d %s grid (R=%d, %.0f m)",
            grid.ncols,
            grid.nrows,
            grid.height_model.value,
            self.resolution,
            heightmap.physical_size_m,
        )
        return heightmap

    def load(self, bounds: BoundingBox, height_model: HeightModel) -> NormalizedHeightmap:
        """Fetch the DEM for bounds and build its heightmap.

        Raises:
            FetchFailure: repository failed or returned no data
            MalformedGridError: payload is not a valid ASCII grid
        """
        steps = self.iter_build(self.fetch_grid(bounds, height_model))
        return self._run(steps, None, None)

    def iter_apply_grid(
        self, grid: RawGrid, apply_chunk: ApplyChunk, commit: Commit
    ) -> PipelineSteps:
        """Banded build of grid followed by chunked delivery.

        Yields BuildProgress between bands, then ChunkProgress after each
        applied chunk; returns the heightmap. ``commit`` runs only after the
        last chunk, so closing the generator early never commits.
        """
        heightmap = yield from self.iter_build(grid)
        yield from iter_apply(heightmap, apply_chunk, commit, self.chunk_size)
        return heightmap

    def iter_load_and_apply(
        self,
        bounds: BoundingBox,
        height_model: HeightModel,
        apply_chunk: ApplyChunk,
        commit: Commit,
    ) -> PipelineSteps:
        """Fetch, then iter_apply_grid(); the fetch itself is not interruptible."""
        grid = self.fetch_grid(bounds, height_model)
        return (yield from self.iter_apply_grid(grid, apply_chunk, commit))

    def load_and_apply(
        self,
        bounds: BoundingBox,
        height_model: HeightModel,
        apply_chunk: ApplyChunk,
        commit: Commit,
        on_progress: OnProgress | None = None,
        on_build_progress: OnBuildProgress | None = None,
    ) -> NormalizedHeightmap:
        """load() followed by chunked delivery to the consumer callbacks."""
        steps = self.iter_load_and_apply(bounds, height_model, apply_chunk, commit)
        return self._run(steps, on_progress, on_build_progress)

    async def load_and_apply_async(
        self,
        bounds: BoundingBox,
        height_model: HeightModel,
        apply_chunk: ApplyChunk,
        commit: Commit,
        on_progress: OnProgress | None = None,
        on_build_progress: OnBuildProgress | None = None,
    ) -> NormalizedHeightmap:
        """Asyncio variant of load_and_apply().

        The blocking fetch and parse run via asyncio.to_thread(); the build
        and delivery yield to the loop after every band and chunk.
        Cancelling the task skips ``commit``.
        """
        grid = await asyncio.to_thread(self.fetch_grid, bounds, height_model)
        steps = self.iter_apply_grid(grid, apply_chunk, commit)
        try:
            while True:
                try:
                    progress = next(steps)
                except StopIteration as stop:
                    return stop.value
                _report(progress, on_progress, on_build_progress)
                await asyncio.sleep(0)
        finally:
            steps.close()

    @staticmethod
    def _run(
        steps: PipelineSteps,
        on_progress: OnProgress | None,
        on_build_progress: OnBuildProgress | None,
    ) -> NormalizedHeightmap:
        while True:
            try:
                progress = next(steps)
            except StopIteration as stop:
                return stop.value
            _report(progress, on_progress, on_build_progress)
