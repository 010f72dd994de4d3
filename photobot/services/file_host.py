"""
Anonymous file host client (catbox.moe user API).

Uploads a remote URL and returns a publicly fetchable link.
"""

import httpx
from structlog import get_logger

from photobot.exceptions import FileHostError

logger = get_logger(__name__)


class FileHostClient:
    """Client for the catbox.moe 'urlupload' API."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def upload_url(self, source_url: str, user_hash: str | None = None) -> str:
        """
        Re-host source_url on the file host.

        The API expects multipart/form-data fields, so they are sent as
        file-less parts.
        """
        fields: dict[str, tuple[None, str]] = {
            "reqtype": (None, "urlupload"),
            "url": (None, source_url),
        }
        if user_hash:
            fields["userhash"] = (None, user_hash)

        try:
            response = await self.http_client.post(self.api_url, files=fields)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "file_host_upload_failed",
                status=e.response.status_code,
                text=e.response.text[:200],
            )
            raise FileHostError(f"upload rejected with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("file_host_unreachable", error=str(e))
            raise FileHostError(f"file host unreachable: {e}") from e

        hosted_url = response.text.strip()
        if not hosted_url.startswith("http"):
            logger.error("file_host_invalid_response", text=hosted_url[:200])
            raise FileHostError(f"unexpected upload response: {hosted_url[:100]!r}")

        logger.debug("file_host_upload_succeeded", hosted_url=hosted_url)
        return hosted_url

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
