"""
Text generator factory and fallback chain.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from smart_discount.config import Settings, settings as default_settings
from smart_discount.infrastructure.llm.claude_provider import ClaudeTextGenerator
from smart_discount.infrastructure.llm.gemini_provider import GeminiTextGenerator
from smart_discount.infrastructure.llm.types import TextGenerator

logger = logging.getLogger(__name__)


class ChainedTextGenerator:
    """Ask each generator in turn; first non-empty answer wins."""

    def __init__(self, generators: List[TextGenerator]):
        if not generators:
            raise ValueError("At least one text generator is required")
        self.generators = generators
        self.last_source: Optional[str] = None

    @property
    def name(self) -> str:
        return "+".join(g.name for g in self.generators)

    async def generate(self, prompt: str) -> Optional[str]:
        for generator in self.generators:
            try:
                text = await generator.generate(prompt)
            except Exception as exc:
                logger.warning(f"{generator.name}: generate failed: {exc}")
                continue
            if text:
                self.last_source = generator.name
                return text
        return None


def get_text_generator(cfg: Optional[Settings] = None) -> Optional[ChainedTextGenerator]:
    """Build the configured generators, or None when no LLM key is set."""
    cfg = cfg or default_settings
    generators: List[TextGenerator] = []

    try:
        generators.append(
            ClaudeTextGenerator(
                api_key=cfg.ANTHROPIC_API_KEY or "",
                base_url=cfg.ANTHROPIC_BASE_URL,
                model=cfg.ANTHROPIC_MODEL,
                api_version=cfg.ANTHROPIC_VERSION,
                timeout=cfg.LLM_TIMEOUT_SECONDS,
            )
        )
    except ValueError:
        pass
    try:
        generators.append(
            GeminiTextGenerator(
                api_key=cfg.GEMINI_API_KEY or "",
                base_url=cfg.GEMINI_BASE_URL,
                model=cfg.GEMINI_MODEL,
                timeout=cfg.LLM_TIMEOUT_SECONDS,
            )
        )
    except ValueError:
        pass

    if not generators:
        logger.info("No LLM provider configured; deterministic fallbacks only")
        return None
    return ChainedTextGenerator(generators)
