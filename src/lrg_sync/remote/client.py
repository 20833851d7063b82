"""Client for the public LRG server: identifier listing and XML download."""

import logging
import re
import time
from pathlib import Path
from typing import Any

import httpx
import requests
import requests_cache
from requests.exceptions import ConnectionError, HTTPError, Timeout
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lrg_sync.config.schema import LRG_PUBLIC_URL, SyncConfig
from lrg_sync.errors import RemoteFetchError

logger = logging.getLogger(__name__)

LRG_FILE_PATTERN = re.compile(r"\b(LRG_[0-9]+)\.xml\b")


class LRGRemoteClient:
    """
    HTTP client for the LRG server.

    Features:
    - Identifier listing through a persistent SQLite cache with retry on
      429/5xx/network errors and exponential backoff
    - Streaming XML download, trying each configured directory in order
    - Rate limiting for non-cached requests
    """

    def __init__(
        self,
        cache_dir: Path,
        download_dir: Path,
        listing_url: str = LRG_PUBLIC_URL,
        base_urls: list[str] | None = None,
        rate_limit: int = 5,
        max_retries: int = 5,
        cache_ttl: int = 86400,
        timeout: int = 30,
    ):
        """
        Initialize client with caching and retry logic.

        Args:
            cache_dir: Directory for SQLite cache storage
            download_dir: Directory where fetched XML files are written
            listing_url: Directory listing of published records
            base_urls: Directories searched in order for <LRG id>.xml
            rate_limit: Maximum requests per second
            max_retries: Maximum retry attempts on failure
            cache_ttl: Cache time-to-live in seconds (0 = infinite)
            timeout: Request timeout in seconds
        """
        self.cache_dir = Path(cache_dir)
        self.download_dir = Path(download_dir)
        self.listing_url = listing_url
        self.base_urls = list(base_urls or [listing_url])
        self.rate_limit = rate_limit
        self.max_retries = max_retries
        self.timeout = timeout

        self.cache_dir.mkdir(parents=True, exist_ok=True)

        cache_path = self.cache_dir / "lrg_listing_cache"
        expire_after = cache_ttl if cache_ttl > 0 else None

        self.session = requests_cache.CachedSession(
            cache_name=str(cache_path),
            backend="sqlite",
            expire_after=expire_after,
        )

    def _should_rate_limit(self, response: requests.Response) -> bool:
        """Check if response came from cache (no rate limit needed)."""
        return not getattr(response, "from_cache", False)

    def _create_retry_decorator(self):
        """Create retry decorator with exponential backoff."""
        return retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=60),
            retry=retry_if_exception_type((HTTPError, Timeout, ConnectionError)),
            reraise=True,
        )

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        **kwargs,
    ) -> requests.Response:
        """
        Make GET request with retry logic and caching.

        Raises:
            HTTPError: On HTTP error after retries exhausted
            Timeout: On timeout after retries exhausted
            ConnectionError: On connection error after retries exhausted
        """
        @self._create_retry_decorator()
        def _get_with_retry():
            response = self.session.get(
                url,
                params=params,
                timeout=self.timeout,
                **kwargs,
            )
            try:
                response.raise_for_status()
            except HTTPError as e:
                if response.status_code == 429:
                    logger.warning(
                        f"Rate limited by LRG server (429). "
                        f"URL: {url}. Will retry with backoff."
                    )
                raise e
            return response

        response = _get_with_retry()

        if self._should_rate_limit(response):
            time.sleep(1 / self.rate_limit)

        return response

    def list_lrg_ids(self) -> list[str]:
        """
        List identifiers of records published on the server.

        Returns:
            Unique LRG identifiers sorted by number

        Raises:
            RemoteFetchError: If the listing cannot be retrieved
        """
        try:
            response = self.get(self.listing_url)
        except (HTTPError, Timeout, ConnectionError) as e:
            raise RemoteFetchError(
                f"Could not get LRG listing from {self.listing_url}: {e}",
                url=self.listing_url,
            ) from e

        ids = set(LRG_FILE_PATTERN.findall(response.text))
        listing = sorted(ids, key=lambda lrg_id: int(lrg_id.split("_")[1]))
        logger.info(f"Found {len(listing)} LRG records at {self.listing_url}")
        return listing

    def fetch_record(self, lrg_id: str, force: bool = False) -> Path:
        """
        Download the XML document for ``lrg_id``.

        Each base URL is tried in order (published records first, then
        pending ones); the first successful download wins.

        Args:
            lrg_id: LRG identifier
            force: Re-download even if the file already exists locally

        Returns:
            Path to the downloaded XML file

        Raises:
            RemoteFetchError: If no base URL serves the document
        """
        output_path = self.download_dir / f"{lrg_id}.xml"
        if output_path.exists() and not force:
            logger.info(f"Using previously downloaded {output_path}")
            return output_path

        errors = []
        for base_url in self.base_urls:
            url = f"{base_url}{lrg_id}.xml"
            try:
                return _download(url, output_path, timeout=self.timeout)
            except (httpx.HTTPStatusError, httpx.ConnectError, httpx.TimeoutException) as e:
                logger.warning(f"Could not fetch {url}: {e}")
                errors.append(f"{url}: {e}")

        raise RemoteFetchError(
            "Could not fetch XML file from LRG server. " + "; ".join(errors),
            lrg_id=lrg_id,
            url=self.base_urls[-1],
        )

    @classmethod
    def from_config(cls, config: SyncConfig) -> "LRGRemoteClient":
        """
        Create client from lrg-sync configuration.

        Args:
            config: SyncConfig instance

        Returns:
            Configured LRGRemoteClient instance
        """
        return cls(
            cache_dir=config.cache_dir,
            download_dir=config.data_dir / "xml",
            listing_url=config.remote.listing_url,
            base_urls=config.remote.base_urls,
            rate_limit=config.api.rate_limit_per_second,
            max_retries=config.api.max_retries,
            cache_ttl=config.api.cache_ttl_seconds,
            timeout=config.api.timeout_seconds,
        )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)
def _download(url: str, output_path: Path, timeout: float = 30.0) -> Path:
    """Stream ``url`` to ``output_path`` via a temporary file.

    Raises:
        httpx.HTTPStatusError: On HTTP errors (404 is not retried)
        httpx.ConnectError: On connection errors (after retries)
        httpx.TimeoutException: On timeout (after retries)
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")

    with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
        response.raise_for_status()
        with open(temp_path, "wb") as f:
            for chunk in response.iter_bytes(chunk_size=8192):
                f.write(chunk)

    temp_path.replace(output_path)
    logger.info(f"Downloaded {url} to {output_path}")
    return output_path
