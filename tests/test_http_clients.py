"""
Tests for the file host and enhancement API clients.

Requests are served by httpx.MockTransport; no network access.
"""

import httpx
import pytest

from photobot.exceptions import EnhancementAPIError, FileHostError
from photobot.models.domain import PipelineStage
from photobot.services.enhancer import EnhancementClient
from photobot.services.file_host import FileHostClient

FILE_HOST_URL = "https://catbox.moe/user/api.php"
ENHANCE_URL = "https://enhance.example.com/imagecreator/remini"


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFileHostClient:
    async def test_upload_sends_multipart_urlupload(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="https://files.catbox.moe/abc123.jpg\n")

        host = FileHostClient(FILE_HOST_URL, http_client=client_for(handler))

        url = await host.upload_url("https://api.telegram.org/file/x.jpg", user_hash="user_100")

        assert url == "https://files.catbox.moe/abc123.jpg"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == FILE_HOST_URL
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.content.decode()
        assert 'name="reqtype"' in body
        assert "urlupload" in body
        assert 'name="url"' in body
        assert "https://api.telegram.org/file/x.jpg" in body
        assert 'name="userhash"' in body
        assert "user_100" in body

    async def test_userhash_optional(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="https://files.catbox.moe/z.jpg")

        host = FileHostClient(FILE_HOST_URL, http_client=client_for(handler))
        await host.upload_url("https://cdn.example.com/enhanced.jpg")

        assert 'name="userhash"' not in seen[0].content.decode()

    async def test_error_status(self):
        host = FileHostClient(
            FILE_HOST_URL,
            http_client=client_for(lambda request: httpx.Response(503, text="busy")),
        )

        with pytest.raises(FileHostError) as exc_info:
            await host.upload_url("https://x/y.jpg")

        assert exc_info.value.stage == PipelineStage.UPLOADED
        assert "503" in exc_info.value.message

    async def test_non_url_body(self):
        host = FileHostClient(
            FILE_HOST_URL,
            http_client=client_for(lambda request: httpx.Response(200, text="Invalid URL")),
        )

        with pytest.raises(FileHostError):
            await host.upload_url("https://x/y.jpg")

    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        host = FileHostClient(FILE_HOST_URL, http_client=client_for(handler))

        with pytest.raises(FileHostError) as exc_info:
            await host.upload_url("https://x/y.jpg")
        assert "unreachable" in exc_info.value.message

    async def test_close(self):
        host = FileHostClient(FILE_HOST_URL)
        assert isinstance(host.http_client, httpx.AsyncClient)
        await host.close()
        assert host._http_client is None


class TestEnhancementClient:
    async def test_enhance_returns_result(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"result": "https://cdn.example.com/out.jpg"})

        client = EnhancementClient(ENHANCE_URL, http_client=client_for(handler))

        result = await client.enhance("https://files.catbox.moe/abc.jpg")

        assert result == "https://cdn.example.com/out.jpg"
        assert seen[0].method == "GET"
        assert seen[0].url.params["url"] == "https://files.catbox.moe/abc.jpg"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"result": ""},
            {"result": None},
            {"error": "quota"},
            ["https://cdn.example.com/out.jpg"],
        ],
    )
    async def test_missing_result(self, payload):
        client = EnhancementClient(
            ENHANCE_URL,
            http_client=client_for(lambda request: httpx.Response(200, json=payload)),
        )

        with pytest.raises(EnhancementAPIError) as exc_info:
            await client.enhance("https://x/y.jpg")
        assert exc_info.value.message == "Invalid API response"
        assert exc_info.value.stage == PipelineStage.ENHANCED

    async def test_non_json_body(self):
        client = EnhancementClient(
            ENHANCE_URL,
            http_client=client_for(lambda request: httpx.Response(200, text="<html>oops</html>")),
        )

        with pytest.raises(EnhancementAPIError):
            await client.enhance("https://x/y.jpg")

    async def test_error_status(self):
        client = EnhancementClient(
            ENHANCE_URL,
            http_client=client_for(lambda request: httpx.Response(500, text="error")),
        )

        with pytest.raises(EnhancementAPIError) as exc_info:
            await client.enhance("https://x/y.jpg")
        assert "500" in exc_info.value.message

    async def test_download(self):
        client = EnhancementClient(
            ENHANCE_URL,
            http_client=client_for(lambda request: httpx.Response(200, content=b"\xff\xd8jpeg")),
        )

        assert await client.download("https://cdn.example.com/out.jpg") == b"\xff\xd8jpeg"

    async def test_download_failure(self):
        client = EnhancementClient(
            ENHANCE_URL,
            http_client=client_for(lambda request: httpx.Response(404)),
        )

        with pytest.raises(EnhancementAPIError):
            await client.download("https://cdn.example.com/gone.jpg")
