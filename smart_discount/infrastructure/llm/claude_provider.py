"""
Claude text generator (Anthropic Messages REST API).
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class ClaudeTextGenerator:
    name = "claude"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.anthropic.com",
        model: str = "claude-3-5-sonnet-latest",
        api_version: str = "2023-06-01",
        max_tokens: int = 1024,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not (api_key or "").strip():
            raise ValueError("Anthropic API key missing")
        self.api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_version = api_version
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._transport = transport

    async def generate(self, prompt: str) -> Optional[str]:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }
        body = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/v1/messages", headers=headers, json=body)
                if response.status_code != 200:
                    logger.warning(f"Claude API {response.status_code}")
                    logger.debug(f"Claude response body: {response.text}")
                    return None
                payload = response.json()
        except Exception as exc:
            logger.warning(f"Claude request failed: {exc}")
            return None

        blocks = payload.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        return text or None
