"""
AI-ассистент: тонкий клиент messages API.

Ответ: непрозрачный текст для вставки в документ; построение промптов
остаётся на стороне редакторов.
"""
import logging
from typing import Optional

import httpx

from office_core.core.config import AppSettings
from office_core.core.errors import AssistantAuthError, AssistantNetworkError

logger = logging.getLogger(__name__)


class AssistantClient:
    """Клиент AI-ассистента"""

    def __init__(self, app_settings: AppSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = app_settings.assistant_api_url
        self.api_version = app_settings.assistant_api_version
        self.max_tokens = app_settings.assistant_max_tokens
        self.timeout = app_settings.assistant_timeout
        self._transport = transport

    async def complete(
        self,
        prompt: str,
        api_key: str,
        model: str,
        system: Optional[str] = None
    ) -> str:
        """
        Запрос к модели.

        Args:
            prompt: Текст запроса пользователя
            api_key: Ключ API из настроек
            model: Идентификатор модели
            system: Системный промпт

        Returns:
            Текст первого блока ответа
        """
        if not api_key:
            raise AssistantAuthError("API key is not set in settings")

        payload = {
            "model": model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        headers = {
            "content-type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": self.api_version,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Assistant request failed: {exc}")
            raise AssistantNetworkError(str(exc)) from exc

        if response.status_code in (401, 403):
            raise AssistantAuthError(self._error_message(response))
        if response.status_code >= 400:
            logger.error(f"Assistant error | status={response.status_code}")
            raise AssistantNetworkError(self._error_message(response))

        try:
            data = response.json()
        except ValueError as exc:
            logger.error(f"Assistant returned non-JSON body | status={response.status_code}")
            raise AssistantNetworkError("Invalid response from API") from exc
        if not isinstance(data, dict):
            raise AssistantNetworkError("Invalid response from API")

        blocks = data.get("content")
        for block in blocks if isinstance(blocks, list) else []:
            if isinstance(block, dict) and block.get("type") == "text":
                return block.get("text", "")
        return data.get("message", "")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"API Error ({response.status_code})"
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return f"API Error ({response.status_code})"
