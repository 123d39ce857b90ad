"""Fetch remote files for upload-by-URL."""

import logging
from contextlib import closing
from typing import Iterator, Optional

import requests

import hashserve.utils as u
from .errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_SIZE = 100 << 20


class RemoteFetcher(object):
    """Download a URL into a :class:`hashserve.utils.ReplayableStream`.

    Args:
        timeout: Connect/read timeout in seconds.
        max_size: Largest body accepted, in bytes.
        session: ``requests.Session`` used for the request. A new one is
            created when omitted.
        user_agent: User-Agent header sent with every request.
    """

    def __init__(self,
                 timeout: float = DEFAULT_TIMEOUT,
                 max_size: int = DEFAULT_MAX_SIZE,
                 session: Optional[requests.Session] = None,
                 user_agent: str = "hashserve"):
        self.timeout = timeout
        self.max_size = max_size
        self.session = session or requests.Session()
        self.user_agent = user_agent

    def fetch(self, url: str) -> u.ReplayableStream:
        """Fetch `url` and buffer its body.

        Raises:
            UpstreamError: If the request fails, the response is not ``200``
                or the body exceeds :attr:`max_size`.
        """
        try:
            response = self.session.get(url,
                                        stream=True,
                                        timeout=self.timeout,
                                        headers={"User-Agent": self.user_agent})
        except requests.RequestException as exc:
            logger.error("Error fetching file %s: %s", url, exc)
            raise UpstreamError() from exc

        with closing(response):
            if response.status_code != 200:
                logger.error("Error fetching file %s: status %s", url, response.status_code)
                raise UpstreamError()

            try:
                return u.ReplayableStream(self._limited(response, url))
            except requests.RequestException as exc:
                logger.error("Error reading file %s: %s", url, exc)
                raise UpstreamError() from exc

    def _limited(self, response, url: str) -> Iterator[bytes]:
        received = 0
        for data in response.iter_content(chunk_size=u.CHUNK_SIZE):
            received += len(data)
            if received > self.max_size:
                logger.error("Remote file %s exceeds %d bytes", url, self.max_size)
                raise UpstreamError("Remote file is too large")
            yield data
