"""
Тесты клиента AI-ассистента.
"""
import json

import httpx
import pytest

from office_core.core.config import AppSettings
from office_core.core.errors import AssistantAuthError, AssistantNetworkError
from office_core.domains.assistant.services import AssistantClient


def make_client(handler) -> AssistantClient:
    return AssistantClient(AppSettings(), transport=httpx.MockTransport(handler))


class TestAssistantClient:
    """Запросы к API ассистента."""

    @pytest.mark.asyncio
    async def test_returns_first_text_block(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "content": [{"type": "text", "text": "Improved text"}]
            })

        text = await make_client(handler).complete("Fix this", api_key="key", model="model-x", system="Be brief")

        assert text == "Improved text"
        assert seen["headers"]["x-api-key"] == "key"
        assert seen["body"]["model"] == "model-x"
        assert seen["body"]["system"] == "Be brief"
        assert seen["body"]["messages"] == [{"role": "user", "content": "Fix this"}]

    @pytest.mark.asyncio
    async def test_missing_key(self):
        def handler(request):
            raise AssertionError("request must not be sent")

        with pytest.raises(AssistantAuthError):
            await make_client(handler).complete("Hi", api_key="", model="m")

    @pytest.mark.asyncio
    async def test_rejected_key(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "invalid x-api-key"}})

        with pytest.raises(AssistantAuthError, match="invalid x-api-key"):
            await make_client(handler).complete("Hi", api_key="bad", model="m")

    @pytest.mark.asyncio
    async def test_api_error(self):
        def handler(request):
            return httpx.Response(529, text="overloaded")

        with pytest.raises(AssistantNetworkError, match="529"):
            await make_client(handler).complete("Hi", api_key="key", model="m")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AssistantNetworkError):
            await make_client(handler).complete("Hi", api_key="key", model="m")

    @pytest.mark.asyncio
    async def test_success_with_non_json_body(self):
        """Ответ 2xx, который не является JSON-объектом, считается сетевой ошибкой."""
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(AssistantNetworkError, match="Invalid response"):
            await make_client(handler).complete("Hi", api_key="key", model="m")

    @pytest.mark.asyncio
    async def test_success_with_json_list(self):
        def handler(request):
            return httpx.Response(200, json=[{"type": "text", "text": "hidden"}])

        with pytest.raises(AssistantNetworkError, match="Invalid response"):
            await make_client(handler).complete("Hi", api_key="key", model="m")
