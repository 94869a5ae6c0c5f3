"""Client for the companion disk server that mirrors the lexicon image.

None of these calls raise on network trouble: an unreachable or failing
server is a normal condition for the store, reported through return values
and logged.
"""

import httpx
import structlog

from lexistore.services.sqlite_image import is_sqlite_image

LEXICON_ROUTE = "/lexicon.sqlite"
STATUS_ROUTE = "/status"


class DiskSyncClient:
    """Fetches and pushes the serialized database over HTTP.

    Accepts an ``httpx.AsyncClient`` via dependency injection so tests can
    route requests to a mock transport or to the in-process server app. An
    injected client belongs to the caller. When only a ``transport`` is
    given, the client built around it is owned and closed here.
    """

    DEFAULT_BASE_URL = "http://localhost:4000"
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self._transport = transport
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def check_availability(self) -> bool:
        """Probe the status route. Any transport failure means unreachable."""
        try:
            response = await self._get_client().get(f"{self._base_url}{STATUS_ROUTE}")
        except httpx.HTTPError as e:
            self._logger.debug("server_unreachable", base_url=self._base_url, error=str(e))
            return False

        available = response.is_success
        self._logger.info("server_probed", base_url=self._base_url, available=available)
        return available

    async def fetch_image(self) -> bytes | None:
        """Download the server's stored image.

        Returns:
            The image bytes, or None when the server has no file, answers
            with a non-2xx status, fails, or returns something that is not
            a SQLite image.
        """
        try:
            response = await self._get_client().get(f"{self._base_url}{LEXICON_ROUTE}")
        except httpx.HTTPError as e:
            self._logger.debug("server_fetch_failed", error=str(e))
            return None

        if not response.is_success:
            self._logger.debug("server_image_missing", status_code=response.status_code)
            return None

        blob = response.content
        if not is_sqlite_image(blob):
            self._logger.warning("server_image_invalid", size_bytes=len(blob))
            return None
        return blob

    async def push_image(self, blob: bytes) -> bool:
        """Upload ``blob``, replacing the server's stored file.

        Returns:
            True if the server accepted the upload.
        """
        try:
            response = await self._get_client().post(
                f"{self._base_url}{LEXICON_ROUTE}",
                content=blob,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.HTTPError as e:
            self._logger.warning("server_push_failed", error=str(e))
            return False

        if not response.is_success:
            self._logger.warning("server_push_rejected", status_code=response.status_code)
            return False

        self._logger.debug("server_push_completed", size_bytes=len(blob))
        return True

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
