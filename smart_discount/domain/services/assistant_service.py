"""
Shopping assistant chat
Answers free-text shopper messages, grounded on matching catalog products.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from smart_discount.domain.models import ChatReply
from smart_discount.infrastructure.llm.types import TextGenerator

logger = logging.getLogger(__name__)

FALLBACK_ACTIONS = ["Browse catalog", "Search products", "Get recommendations"]
FALLBACK_CONFIDENCE = 0.7
MIN_KEYWORD_LENGTH = 4


def search_terms(message: str) -> str:
    """Keep the longer words of a message; short words rarely name products."""
    keywords = [word for word in message.lower().split() if len(word) >= MIN_KEYWORD_LENGTH]
    return " ".join(keywords) if keywords else message


def response_type(message: str, products: Sequence[Dict[str, Any]]) -> str:
    lowered = message.lower()
    if "help" in lowered or "assist" in lowered:
        return "help"
    if "search" in lowered or "find" in lowered:
        return "search"
    if "recommend" in lowered or "suggest" in lowered:
        return "recommendation"
    if products:
        return "product_info"
    return "general"


def response_confidence(message: str, products: Sequence[Dict[str, Any]]) -> float:
    confidence = 0.5
    if products:
        confidence += 0.3
    if len(message) > 10:
        confidence += 0.2
    return min(1.0, round(confidence, 2))


def suggested_actions(message: str, products: Sequence[Dict[str, Any]]) -> List[str]:
    actions: List[str] = []
    if products:
        actions += ["View product details", "Add to cart", "Compare products"]
    lowered = message.lower()
    if "discount" in lowered or "sale" in lowered:
        actions.append("Check for available discounts")
    actions.append("Continue browsing")
    return actions


def build_chat_prompt(
    message: str,
    products: Sequence[Dict[str, Any]],
    history: Optional[Sequence[Dict[str, Any]]] = None,
    returning_customer: bool = False,
) -> str:
    lines = [
        "You are a helpful AI shopping assistant for an e-commerce platform. "
        "Provide friendly, informative responses to help customers find products "
        "and make purchase decisions.",
        "",
        "User Context: "
        + ("Returning customer with previous shopping activity." if returning_customer else "This is a new customer."),
    ]
    if products:
        lines += ["", "Relevant Products Found:"]
        for product in products:
            lines.append(
                f"- {product.get('name')} (${product.get('price')}, {product.get('category')}, "
                f"Rating: {product.get('average_rating')}/5)"
            )
    turns = [t for t in (history or []) if t.get("role") and t.get("content")]
    if turns:
        lines += ["", "Recent conversation:"]
        lines += [f"{turn['role']}: {turn['content']}" for turn in turns]
    lines += [
        "",
        f"Customer message: {message}",
        "",
        "Provide a helpful response (max 150 words). If products were found, mention them naturally. "
        "If no products match, suggest alternatives or ask clarifying questions. "
        "Be conversational and helpful.",
    ]
    return "\n".join(lines)


def fallback_reply(products: Sequence[Dict[str, Any]]) -> ChatReply:
    if products:
        text = (
            "I found some products that might interest you! "
            "Let me know if you'd like more details about any of them."
        )
    else:
        text = (
            "I'm here to help you find the perfect products. "
            "Could you tell me more about what you're looking for?"
        )
    return ChatReply(
        message=text,
        type="fallback",
        confidence=FALLBACK_CONFIDENCE,
        suggested_actions=list(FALLBACK_ACTIONS),
    )


async def generate_chat_reply(
    generator: Optional[TextGenerator],
    message: str,
    products: Sequence[Dict[str, Any]],
    history: Optional[Sequence[Dict[str, Any]]] = None,
    returning_customer: bool = False,
) -> ChatReply:
    """Ask the generator for a reply; fall back to a canned answer without one."""
    if generator is None:
        return fallback_reply(products)

    prompt = build_chat_prompt(message, products, history, returning_customer)
    try:
        text = await generator.generate(prompt)
    except Exception as exc:
        logger.error(f"Failed to generate AI chat response: {exc}")
        text = None
    if not text:
        return fallback_reply(products)

    return ChatReply(
        message=text.strip(),
        type=response_type(message, products),
        confidence=response_confidence(message, products),
        suggested_actions=suggested_actions(message, products),
    )
