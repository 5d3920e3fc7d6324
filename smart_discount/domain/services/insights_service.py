"""
Insights Service
Behaviour analytics for the storefront team and personalised product search.

Responsibilities:
- Summarise search, behaviour and product-view activity over a time window
- Turn those summaries into prioritised insights with an overall 0-100 score
- Re-rank search hits by the categories a shopper has engaged with
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from smart_discount.domain.models import EventType, UserEvent
from smart_discount.infrastructure.catalog.types import CatalogProvider

logger = logging.getLogger(__name__)

SEARCH_EVENT_TYPES = frozenset({
    EventType.SEARCH_QUERY.value,
    EventType.NO_RESULTS_SEARCH.value,
    EventType.SMART_SEARCH.value,
})

ANALYTICS_EVENT_LIMIT = 1000
PREFERENCE_HISTORY_LIMIT = 50
SMART_SEARCH_LIMIT = 20
TOP_PRODUCTS = 10
TOP_QUERIES = 10
MAX_NEXT_STEPS = 3

# Insight rule thresholds
LOW_SEARCH_SUCCESS = 80
LOW_CONVERSION = 5
HIGH_PRODUCT_VIEWS = 1000
LOW_ENGAGEMENT_EVENTS = 100
HIGH_ENGAGEMENT_EVENTS = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------------------------------------------------
# SUMMARIES
# ----------------------------------------------------------------------

def _zero_result(event: UserEvent) -> bool:
    if event.event_type == EventType.NO_RESULTS_SEARCH.value:
        return True
    return event.details.get("resultCount") == 0


def search_analytics(events: Sequence[UserEvent]) -> Dict[str, Any]:
    searches = [e for e in events if e.event_type in SEARCH_EVENT_TYPES]
    total = len(searches)
    users = {e.user_id for e in searches}
    zero = sum(1 for e in searches if _zero_result(e))
    queries = Counter(e.query.strip().lower() for e in searches if e.query and e.query.strip())
    return {
        "totalSearches": total,
        "uniqueUsers": len(users),
        "averageSearchesPerUser": round(total / len(users), 2) if users else 0.0,
        "zeroResultSearches": zero,
        "searchSuccessRate": round((total - zero) / total * 100, 2) if total else 100.0,
        "topQueries": [{"query": q, "count": n} for q, n in queries.most_common(TOP_QUERIES)],
    }


def user_segment(engagement_score: int) -> str:
    if engagement_score > 80:
        return "loyal"
    if engagement_score > 40:
        return "engaged"
    return "casual"


def behaviour_insights(events: Sequence[UserEvent], user_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Per-shopper engagement when user_id is given, storefront-wide
    conversion otherwise.
    """
    counts = Counter(e.event_type for e in events)
    purchases = counts.get(EventType.PURCHASE.value, 0)
    cart_adds = counts.get(EventType.CART_ADD.value, 0)

    if user_id is not None:
        engagement = min(100, len(events) * 5 + purchases * 20 + cart_adds * 10)
        return {
            "userId": user_id,
            "totalEvents": len(events),
            "eventTypes": dict(counts),
            "engagementScore": engagement,
            "userSegment": user_segment(engagement),
        }

    return {
        "totalEvents": len(events),
        "uniqueUsers": len({e.user_id for e in events}),
        "eventTypes": dict(counts),
        "conversionRate": round(purchases / cart_adds * 100, 2) if cart_adds else 0.0,
    }


def product_performance(events: Sequence[UserEvent]) -> Dict[str, Any]:
    views = Counter(
        e.product_id for e in events
        if e.event_type == EventType.PRODUCT_VIEW.value and e.product_id
    )
    total = sum(views.values())
    return {
        "topViewedProducts": [{"productId": p, "views": n} for p, n in views.most_common(TOP_PRODUCTS)],
        "totalProductViews": total,
        "averageViewsPerProduct": round(total / len(views), 2) if views else 0.0,
        "totalUniqueProducts": len(views),
    }


# ----------------------------------------------------------------------
# RECOMMENDATIONS
# ----------------------------------------------------------------------

def _insight(kind: str, priority: str, title: str, description: str, action: str) -> Dict[str, str]:
    return {
        "type": kind,
        "priority": priority,
        "title": title,
        "description": description,
        "action": action,
    }


def generate_insights(
    search: Dict[str, Any],
    behaviour: Dict[str, Any],
    performance: Dict[str, Any],
) -> List[Dict[str, str]]:
    insights = []

    success_rate = search.get("searchSuccessRate", 100.0)
    if success_rate < LOW_SEARCH_SUCCESS:
        insights.append(_insight(
            "search_optimization", "high", "Improve Search Experience",
            f"Search success rate is {int(success_rate)}%. "
            "Consider improving product tagging and search algorithms.",
            "Review zero-result queries and enhance product metadata",
        ))

    conversion = behaviour.get("conversionRate")
    if conversion is not None and conversion < LOW_CONVERSION:
        insights.append(_insight(
            "conversion_optimization", "medium", "Boost Conversion Rate",
            f"Current conversion rate is {int(conversion)}%. "
            "Consider implementing dynamic pricing or targeted promotions.",
            "Launch personalized discount campaigns for cart abandoners",
        ))

    views = performance.get("totalProductViews", 0)
    if views > HIGH_PRODUCT_VIEWS:
        insights.append(_insight(
            "inventory_management", "low", "High Engagement Products",
            f"Strong product engagement with {views} views. "
            "Consider expanding inventory for top performers.",
            "Increase stock levels for high-performing products",
        ))

    total_events = behaviour.get("totalEvents", 0)
    if 0 < total_events < LOW_ENGAGEMENT_EVENTS:
        insights.append(_insight(
            "engagement", "high", "Low User Engagement",
            "Limited user activity detected. Focus on user acquisition and engagement strategies.",
            "Implement welcome campaigns and onboarding flows",
        ))
    elif total_events > HIGH_ENGAGEMENT_EVENTS:
        insights.append(_insight(
            "engagement", "low", "High User Engagement",
            "Excellent user engagement! Consider premium features or loyalty programs.",
            "Launch VIP customer program",
        ))
    return insights


def overall_score(search: Dict[str, Any], behaviour: Dict[str, Any]) -> int:
    score = 50
    score += int(search.get("searchSuccessRate", 100.0) * 0.3)
    conversion = behaviour.get("conversionRate")
    if conversion is not None:
        score += min(40, int(conversion * 4))
    total_events = behaviour.get("totalEvents", 0)
    if total_events > 0:
        score += min(30, total_events // 10)
    return max(0, min(100, score))


def score_category(score: int) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "average"
    return "needs_improvement"


def next_steps(insights: Sequence[Dict[str, str]]) -> List[str]:
    return [i["action"] for i in insights if i["priority"] == "high"][:MAX_NEXT_STEPS]


# ----------------------------------------------------------------------
# SMART SEARCH
# ----------------------------------------------------------------------

def _rating(product: Dict[str, Any]) -> float:
    return float(product.get("average_rating") or 0)


def personalize_results(products: Sequence[Dict[str, Any]], preferences: Counter) -> List[Dict[str, Any]]:
    """Most-engaged categories first, then higher rated; index order otherwise."""
    if not preferences:
        return list(products)
    return sorted(
        products,
        key=lambda p: (-preferences.get(p.get("category"), 0), -_rating(p)),
    )


def search_insights(query: str, products: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    prices = [float(p["price"]) for p in products if p.get("price") is not None]
    recommendations = []
    if not products:
        recommendations = ["Try broader search terms", "Check spelling"]
    elif len(products) < 3:
        recommendations = ["Try related keywords"]
    return {
        "query": query,
        "resultCount": len(products),
        "hasResults": bool(products),
        "avgPrice": round(sum(prices) / len(prices), 2) if prices else 0.0,
        "categoryDistribution": dict(Counter(p.get("category") or "unknown" for p in products)),
        "recommendations": recommendations,
    }


class InsightsService:
    def __init__(
        self,
        catalog: CatalogProvider,
        events_index: str = "sdg_user_events",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.catalog = catalog
        self.events_index = events_index
        self._clock = clock

    async def _events(self, since: datetime, user_id: Optional[str] = None) -> List[UserEvent]:
        records = await self.catalog.search_events(
            self.events_index, user_id=user_id, limit=ANALYTICS_EVENT_LIMIT
        )
        events = [UserEvent.from_record(r) for r in records]
        return [e for e in events if e.timestamp >= since]

    async def analyse(self, user_id: Optional[str] = None, days: int = 7) -> Dict[str, Any]:
        """Search, behaviour and product-view summaries plus scored insights."""
        if days < 1:
            raise ValueError("Analysis window must be at least one day")

        now = self._clock()
        since = now - timedelta(days=days)
        events = await self._events(since)
        if user_id:
            behaviour = behaviour_insights(await self._events(since, user_id), user_id)
        else:
            behaviour = behaviour_insights(events)
        search = search_analytics(events)
        performance = product_performance(events)

        insights = generate_insights(search, behaviour, performance)
        score = overall_score(search, behaviour)
        logger.info(f"Generated {len(insights)} insights over {days} days (score: {score})")
        return {
            "searchAnalytics": search,
            "behaviorInsights": behaviour,
            "productPerformance": performance,
            "aiRecommendations": {
                "insights": insights,
                "overallScore": score,
                "scoreCategory": score_category(score),
                "nextSteps": next_steps(insights),
                "generatedAt": now.isoformat(),
            },
            "generatedAt": now.isoformat(),
            "analysisScope": f"{days} days",
        }

    async def category_preferences(self, user_id: str) -> Counter:
        """Category counts over the products in a shopper's recent events."""
        records = await self.catalog.search_events(
            self.events_index, user_id=user_id, limit=PREFERENCE_HISTORY_LIMIT
        )
        categories: Dict[str, Optional[str]] = {}
        preferences: Counter = Counter()
        for record in records:
            product_id = record.get("productId")
            if not product_id:
                continue
            if product_id not in categories:
                product = await self.catalog.get_product(product_id)
                categories[product_id] = product.get("category") if product else None
            if categories[product_id]:
                preferences[categories[product_id]] += 1
        return preferences

    async def smart_search(self, query: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        products = await self.catalog.search_products(query, SMART_SEARCH_LIMIT)
        if user_id:
            preferences = await self.category_preferences(user_id)
            logger.debug(f"Category preferences for {user_id}: {dict(preferences)}")
            products = personalize_results(products, preferences)

        return {
            "results": products,
            "searchInsights": search_insights(query, products),
            "query": query,
            "resultCount": len(products),
            "personalized": bool(user_id),
        }
