# atomspector/sources/http_stream.py
# !/usr/bin/env python3

import io
import logging

from urllib import request
from urllib.error import URLError, HTTPError
from typing import Optional

logger = logging.getLogger(__name__)

HTTP_RANGE_NOT_SATISFIABLE = 416


class PartialHttpStream(io.RawIOBase):
    """
    A read-only, seekable stream over a remote file.

    Every read() fetches exactly the requested window with an HTTP Range
    request; seek() only moves the position. Nothing is cached.
    """

    def __init__(self, url: str, timeout: float = 10):
        super().__init__()
        self.url = url
        self.timeout = timeout
        self.http_requests_count = 0
        self._position = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        else:
            raise io.UnsupportedOperation("Seeking relative to the end is not supported.")
        if position < 0:
            raise ValueError(f"Negative seek position {position}")
        self._position = position
        return self._position

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream.")
        length = len(buffer)
        if length == 0:
            return 0
        data = self._fetch_range(self._position, length)
        n = len(data)
        buffer[:n] = data
        self._position += n
        return n

    def _fetch_range(self, start: int, length: int) -> bytes:
        """Fetches a specific length of bytes from a start position."""
        end = start + length - 1
        headers = {"Range": f"bytes={start}-{end}"}
        req = request.Request(self.url, headers=headers)
        self.http_requests_count += 1
        try:
            with request.urlopen(req, timeout=self.timeout) as response:
                status: Optional[int] = getattr(response, "status", None)
                data = response.read(length)
        except HTTPError as e:
            if e.code == HTTP_RANGE_NOT_SATISFIABLE:
                logger.debug(f"Range bytes={start}-{end} is past the end of '{self.url}'.")
                return b""
            logger.error(f"HTTP error fetching range bytes={start}-{end}: {e}")
            raise IOError(f"HTTP error fetching range bytes={start}-{end}: {e}") from e
        except URLError as e:
            logger.error(f"HTTP error fetching range bytes={start}-{end}: {e}")
            raise IOError(f"Failed to fetch '{self.url}': {e}") from e

        if status == 200 and start > 0:
            raise IOError(f"Server for '{self.url}' ignored the Range header.")
        logger.debug(f"Fetched {len(data)} bytes at bytes={start}-{end} (status {status}).")
        return data
