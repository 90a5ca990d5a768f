"""OpenTopography adapter for DemRepository.

Downloads a global DEM clip as an ASCII grid (AAIGrid) from the
OpenTopography ``globaldem`` REST endpoint.

Lifecycle:
1) Build the query from the bounding box and height model
2) Stream the response with a timeout, logging download progress
3) Map transport/HTTP errors and empty bodies to FetchFailure
4) Return the grid text (parsing happens in the domain)

No retries: a failed request is terminal for the current pipeline run.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from domain.terrain.errors import FetchFailure
from domain.terrain.value_objects import BoundingBox, HeightModel

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

BASE_URL = "https://portal.opentopography.org/API/globaldem"
API_KEY_ENV = "OPENTOPOGRAPHY_API_KEY"
DEFAULT_TIMEOUT_S = 60.0
OUTPUT_FORMAT = "AAIGrid"
_STREAM_CHUNK_BYTES = 64 * 1024


class OpenTopographyDemAdapter:
    """Infrastructure adapter fetching ASCII grids from OpenTopography.

    Parameters
    ----------
    api_key: str | None
        OpenTopography API key. Falls back to the OPENTOPOGRAPHY_API_KEY
        environment variable; ValueError if neither is set.
    timeout: float
        Connect/read timeout in seconds for each request.
    base_url: str
        Endpoint URL (overridable for mirrors and tests).
    session: requests.Session | None
        Optional session for connection reuse.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        base_url: str = BASE_URL,
        session: requests.Session | None = None,
    ) -> None:
        key = api_key or os.environ.get(API_KEY_ENV)
        if not key:
            raise ValueError(
                f"OpenTopography API key required (argument or {API_KEY_ENV})"
            )
        self._api_key = key
        self.timeout = timeout
        self.base_url = base_url
        self.session = session or requests.Session()

    def build_params(
        self, bounds: BoundingBox, height_model: HeightModel
    ) -> dict[str, Any]:
        """Query parameters for a globaldem request."""
        return {
            "demtype": height_model.api_reference,
            "south": bounds.south,
            "north": bounds.north,
            "west": bounds.west,
            "east": bounds.east,
            "outputFormat": OUTPUT_FORMAT,
            "API_Key": self._api_key,
        }

    def fetch_ascii_grid(self, bounds: BoundingBox, height_model: HeightModel) -> str:
        """Download the ASCII grid covering bounds.

        Raises:
            FetchFailure: transport error, non-2xx status, or empty body
        """
        params = self.build_params(bounds, height_model)
        # Never log params: they carry the API key
        logger.info(
            "Requesting %s DEM for lat [%.5f, %.5f], lon [%.5f, %.5f]",
            height_model.value,
            bounds.south,
            bounds.north,
            bounds.west,
            bounds.east,
        )

        try:
            with self.session.get(
                self.base_url, params=params, timeout=self.timeout, stream=True
            ) as response:
                if not response.ok:
                    logger.error(
                        "DEM request failed: HTTP %d %s",
                        response.status_code,
                        response.reason,
                    )
                    raise FetchFailure(
                        f"DEM request failed: HTTP {response.status_code} {response.reason}",
                        status_code=response.status_code,
                    )
                body = self._read_body(response)
        except requests.RequestException as e:
            logger.error("DEM request failed: %s", type(e).__name__)
            raise FetchFailure(f"DEM request failed: {type(e).__name__}") from e

        text = body.decode(response.encoding or "ascii", errors="replace")
        if not text.strip():
            raise FetchFailure(
                "DEM request returned an empty body", status_code=response.status_code
            )
        return text

    def _read_body(self, response: requests.Response) -> bytes:
        total = int(response.headers.get("Content-Length") or -1)
        downloaded = 0
        parts: list[bytes] = []
        for part in response.iter_content(chunk_size=_STREAM_CHUNK_BYTES):
            parts.append(part)
            downloaded += len(part)
            if total > 0:
                logger.debug(
                    "Downloaded %d of %d bytes (%.0f%%)",
                    downloaded,
                    total,
                    100.0 * downloaded / total,
                )
            else:
                logger.debug("Downloaded %d bytes", downloaded)
        return b"".join(parts)
