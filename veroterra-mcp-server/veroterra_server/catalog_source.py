"""Catalog acquisition: remote CSV and local files."""

import logging
from pathlib import Path
from typing import Optional, Union

import httpx

from .errors import SourceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "https://petervero-droid.github.io/VeroTERRA/products.csv"


class CatalogSource:
    """Fetches catalog text from the published CSV or from local files."""

    def __init__(
        self,
        url: str = DEFAULT_CATALOG_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the catalog source.

        Args:
            url: Address of the published catalog CSV
            transport: Optional httpx transport (used to stub the network)
        """
        self.url = url
        self.client = httpx.AsyncClient(
            timeout=30.0,
            follow_redirects=True,
            transport=transport,
            headers={"Accept": "text/csv,text/plain;q=0.9,*/*;q=0.8"},
        )

    async def fetch_csv(self) -> str:
        """
        Download the catalog CSV.

        Raises:
            SourceUnavailable: on transport errors or a non-2xx response
        """
        logger.info(f"Fetching catalog from {self.url}")
        try:
            response = await self.client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SourceUnavailable(
                f"Catalog download failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Catalog download failed: {e}") from e

        return response.text

    def read_file(self, path: Union[str, Path]) -> str:
        """
        Read a local catalog file.

        Raises:
            SourceUnavailable: if the file cannot be read
        """
        path = Path(path).expanduser()
        logger.info(f"Reading catalog file {path}")
        try:
            return path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailable(f"Could not read {path}: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
