# src/modkeeper/transport.py
import hashlib
import importlib.metadata
from contextlib import contextmanager
from typing import Iterator, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from modkeeper.constants import (
    APP_NAME,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
)
from modkeeper.exceptions import HTTPError, NetworkError
from modkeeper.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `modkeeper/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def is_http_ok(status_code: int) -> bool:
    return 200 <= status_code < 300


class Transport:
    """
    Fetches bytes over HTTP(S) with a shared `requests` session.

    Only connection establishment is retried, and only as many times as
    `connect_retries` allows; a non-2xx status or a broken read is reported
    to the caller immediately.
    """

    def __init__(
        self,
        connect_retries: int = DEFAULT_CONNECT_RETRIES,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = requests.Session()
        retry_strategy: Retry = Retry(
            total=connect_retries,
            connect=connect_retries,
            read=0,
            status=0,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({"User-Agent": get_user_agent()})

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _iter_chunks(self, response: requests.Response, url: str) -> Iterator[bytes]:
        try:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if chunk:
                    yield chunk
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"download {url}", url=url, details=str(e)) from e

    @contextmanager
    def stream(self, url: str) -> Iterator[Iterator[bytes]]:
        """
        Open `url` and yield an iterator over its body in chunks.

        The response is closed when the context exits.

        Raises:
            NetworkError: If the request cannot be made or the body cannot be read.
            HTTPError: If the response status is not 2xx.
        """
        logger.debug(f"Requesting {url}")
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"download {url}", url=url, details=str(e)) from e

        try:
            logger.debug(
                f"Received HTTP response status code: {response.status_code} for URL: {url}"
            )
            if not is_http_ok(response.status_code):
                raise HTTPError(
                    f"download {url}: response status was {response.status_code}",
                    status_code=response.status_code,
                    url=url,
                )
            yield self._iter_chunks(response, url)
        finally:
            response.close()

    def fetch_bytes(self, url: str) -> bytes:
        """Download `url` completely into memory."""
        with self.stream(url) as chunks:
            return b"".join(chunks)

    def sha256_of_url(self, url: str) -> str:
        """
        Stream `url` and return the SHA-256 hex digest of its body.

        Nothing is written to disk.
        """
        sha256_hash = hashlib.sha256()
        with self.stream(url) as chunks:
            for chunk in chunks:
                sha256_hash.update(chunk)
        return sha256_hash.hexdigest()
