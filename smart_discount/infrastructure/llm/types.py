"""
Text generator protocol for type hints.
"""

from __future__ import annotations

from typing import Optional, Protocol


class TextGenerator(Protocol):
    name: str

    async def generate(self, prompt: str) -> Optional[str]:
        """Return generated text, or None when the provider is unavailable."""
        ...
