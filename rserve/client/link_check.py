"""Live check that a freshly signed URL is accepted by the server."""

import logging

import aiohttp

from rserve.exceptions import LinkCheckError

_LOGGER = logging.getLogger(__name__)


class LinkChecker:
    """Client that requests a signed URL the way a downloader would."""

    def __init__(self, session: aiohttp.ClientSession) -> None:
        """Initialize the LinkChecker."""
        self._session = session

    async def check(self, url: str) -> None:
        """Confirm the server accepts a signed URL.

        A HEAD request is tried first. If it does not return 200 the URL is
        fetched with GET so that the server's error message can be reported.

        Raises:
            LinkCheckError: The server did not accept the URL.
            aiohttp.ClientError: The server could not be reached.
        """
        async with self._session.head(url, allow_redirects=False) as response:
            if response.status == 200:
                _LOGGER.debug(
                    "Signed URL accepted (Content-Length: %s)",
                    response.headers.get("Content-Length"),
                )
                return
            _LOGGER.debug("HEAD returned %s, retrying with GET", response.status)

        async with self._session.get(url, allow_redirects=False) as response:
            if response.status == 200:
                return
            body = await response.text(errors="replace")
            raise LinkCheckError(url, response.status, body.strip())
