"""
Photo enhancement API client.
"""

import httpx
from structlog import get_logger

from photobot.exceptions import EnhancementAPIError

logger = get_logger(__name__)


class EnhancementClient:
    """Calls the remote enhancement endpoint: GET ?url=<image> -> {"result": <url>}."""

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

    async def enhance(self, image_url: str) -> str:
        """Return the URL of the enhanced version of image_url."""
        try:
            response = await self.http_client.get(self.api_url, params={"url": image_url})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "enhancement_request_failed",
                status=e.response.status_code,
                text=e.response.text[:200],
            )
            raise EnhancementAPIError(f"API returned status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("enhancement_api_unreachable", error=str(e))
            raise EnhancementAPIError(f"API unreachable: {e}") from e
        except ValueError as e:
            logger.error("enhancement_response_not_json", error=str(e))
            raise EnhancementAPIError("API returned a non-JSON body") from e

        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, str) or not result:
            logger.error(
                "enhancement_response_invalid",
                keys=sorted(data) if isinstance(data, dict) else None,
            )
            raise EnhancementAPIError("Invalid API response")

        return result

    async def download(self, result_url: str) -> bytes:
        """Fetch the enhanced image bytes (for re-sending as a named document)."""
        try:
            response = await self.http_client.get(result_url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("enhanced_image_download_failed", url=result_url, error=str(e))
            raise EnhancementAPIError(f"could not download result: {e}") from e
        return response.content

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
