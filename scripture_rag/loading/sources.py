"""
Shard data sources - where manifest, record and embedding files come from.

Two sources are provided:
- LocalShardSource: a directory tree on disk (data/<shard>/...)
- HttpShardSource: the same layout served over HTTP
"""
from pathlib import Path
from typing import Union
import time
import logging

import requests

from ..errors import FetchError

logger = logging.getLogger(__name__)


class ShardSource:
    """Interface for anything that can return the bytes of a shard file."""

    def read_bytes(self, path: str) -> bytes:
        """
        Read one file.

        Args:
            path: Path relative to the source root, e.g. "gita_arnold/manifest.json"

        Returns:
            File contents

        Raises:
            FetchError: If the file cannot be retrieved
        """
        raise NotImplementedError


class LocalShardSource(ShardSource):
    """Reads shard files from a local directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def read_bytes(self, path: str) -> bytes:
        file_path = self.root / path
        try:
            return file_path.read_bytes()
        except OSError as e:
            raise FetchError(f"Could not read {file_path}: {e}")

    def __repr__(self) -> str:
        return f"LocalShardSource({str(self.root)!r})"


class HttpShardSource(ShardSource):
    """Fetches shard files over HTTP with bounded retries."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        """
        Initialize the HTTP source.

        Args:
            base_url: URL the shard directories are served under
            timeout: Per-request timeout in seconds
            max_retries: Attempts per file before giving up
            retry_delay: Seconds to wait between attempts
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    def read_bytes(self, path: str) -> bytes:
        url = f"{self.base_url}/{path.lstrip('/')}"
        last_error = None

        for attempt in range(self.max_retries):
            try:
                response = requests.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.content

            except requests.RequestException as e:
                last_error = e
                logger.warning(
                    f"Fetch of {url} failed (attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay)

        raise FetchError(f"Failed to fetch {url} after {self.max_retries} attempts: {last_error}")

    def __repr__(self) -> str:
        return f"HttpShardSource({self.base_url!r})"
