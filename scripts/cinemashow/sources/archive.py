"""
Base archive source: fetches the resource pack that generated shows are written into.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse, unquote

import requests

from .base import FetchError


logger = logging.getLogger(__name__)


class BaseArchiveSource:
    """Fetches the base archive from an http(s) URL or a local path."""

    def __init__(self, address: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        """
        Initialize archive source.

        Args:
            address: http(s) URL, file:// URL, or filesystem path of the base archive
            timeout: Request timeout in seconds for remote addresses
            session: Optional requests session to reuse; its headers are left untouched
        """
        if not address:
            raise ValueError("Base archive address cannot be empty")

        self.address = address
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers.update({
                'User-Agent': 'CinemaShow-Pipeline/1.0'
            })
        self.session = session

    @property
    def is_remote(self) -> bool:
        """Whether the address is fetched over HTTP."""
        return urlparse(self.address).scheme in ('http', 'https')

    def fetch(self) -> bytes:
        """
        Fetch the base archive bytes.

        The content is not inspected here; only success or failure matters.

        Returns:
            Raw archive bytes

        Raises:
            FetchError: If the archive is unavailable
        """
        if self.is_remote:
            return self._fetch_remote()
        return self._fetch_local()

    def _fetch_remote(self) -> bytes:
        logger.info(f"Fetching base archive from {self.address}")
        try:
            response = self.session.get(self.address, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(self.address, str(e))

        if response.status_code != 200:
            raise FetchError(
                self.address,
                f"HTTP {response.status_code} {response.reason}",
                status_code=response.status_code,
            )

        logger.info(f"Fetched base archive ({len(response.content)} bytes)")
        return response.content

    def _fetch_local(self) -> bytes:
        parsed = urlparse(self.address)
        if parsed.scheme == 'file':
            path = Path(unquote(parsed.path))
        else:
            path = Path(self.address)

        logger.info(f"Reading base archive from {path}")
        if not path.is_file():
            raise FetchError(self.address, "file not found")

        try:
            return path.read_bytes()
        except OSError as e:
            raise FetchError(self.address, str(e))
