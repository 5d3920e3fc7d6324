"""
Gemini text generator (generateContent REST API).
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class GeminiTextGenerator:
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-1.5-flash",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not (api_key or "").strip():
            raise ValueError("Gemini API key missing")
        self.api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def generate(self, prompt: str) -> Optional[str]:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
                    json=body,
                )
                if response.status_code != 200:
                    logger.warning(f"Gemini API {response.status_code}")
                    logger.debug(f"Gemini response body: {response.text}")
                    return None
                payload = response.json()
        except Exception as exc:
            logger.warning(f"Gemini request failed: {exc}")
            return None

        try:
            parts = payload["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Gemini response had no candidates")
            return None
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        return text or None
