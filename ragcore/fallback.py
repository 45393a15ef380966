"""Rule-based fallback responses for queries retrieval could not answer."""

import math
import threading

from .config import config
from .models import (
    GENERAL_CATEGORY,
    FallbackContext,
    FallbackResponse,
    FallbackStats,
    FallbackType,
    Tone,
)

logger = config.get_logger(__name__)

LOW_CONFIDENCE_THRESHOLD = 0.5
FAMILIAR_AFTER_INTERACTIONS = 3

URGENT_KEYWORDS = ("urgent", "problem", "help", "error", "fail")
IMPLEMENTATION_KEYWORDS = ("implement", "integrate", "install")
SHOW_KEYWORDS = ("show me", "see it", "see how")

# Checked in order; the first intent with a matching keyword wins.
INTENT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("pricing", ("how much", "cost", "price", "pricing", "fee", "investment")),
    (
        "features",
        ("feature", "function", "what does", "how does it work", "capabilit"),
    ),
    ("implementation", IMPLEMENTATION_KEYWORDS),
    (
        "success_stories",
        ("success stor", "testimonial", "client", "customer", "example"),
    ),
    ("demo", ("demo", "demonstration", "walkthrough", *SHOW_KEYWORDS)),
)
GENERAL_INTENT = "general"

ESCALATION_MESSAGE = (
    "I understand you need more specific help. Would you like to talk to a "
    "member of our team? They will be able to help you better with your question."
)

# (intent, category) -> template; category None is the default for the intent.
MESSAGES: dict[tuple[str, str | None], str] = {
    ("pricing", "qribar"): (
        "QRIBAR offers flexible plans adapted to each restaurant. The investment "
        "depends on the number of tables and the features you need. Would you "
        "like us to send you a personalised quote?"
    ),
    ("pricing", "reviews"): (
        "Our online reputation service has plans from basic to premium. The cost "
        "depends on the number of platforms and the level of management. Shall "
        "we contact you with more details?"
    ),
    ("pricing", None): (
        "Our services have competitive prices adapted to each business. Would you "
        "like an advisor to contact you with personalised pricing information?"
    ),
    ("features", "qribar"): (
        "QRIBAR is an innovative digital menu that includes: an interactive QR "
        "menu, table ordering, integrated payments, real-time sales analytics, "
        "and instant product and price updates."
    ),
    ("features", "reviews"): (
        "Our online reputation system includes: Google Reviews and Instagram "
        "monitoring, automatic replies to reviews, sentiment analysis, review "
        "collection campaigns, and performance reports."
    ),
    ("features", None): (
        "SmartConnect offers complete digitalisation solutions: digital menus "
        "(QRIBAR), online reputation management, marketing automation, and AI "
        "chatbots. All designed to grow your business."
    ),
    ("implementation", None): (
        "Implementation is quick and hassle-free. Our team supports you through "
        "the whole process: initial setup, training, and ongoing support. Would "
        "you like to schedule a call to see how we can help?"
    ),
    ("success_stories", "qribar"): (
        "Restaurants like La Taverna and El Asador have increased their sales by "
        "30% using QRIBAR. Customers value the digital experience and fast ordering."
    ),
    ("success_stories", "reviews"): (
        "Local businesses have improved their online reputation by 40% in the "
        "first 3 months. More positive reviews means more new customers."
    ),
    ("success_stories", None): (
        "Our clients have seen great results: more sales, a better online "
        "reputation, and automated processes that save them time. Would you like "
        "to see cases from your industry?"
    ),
    (GENERAL_INTENT, "qribar"): (
        "QRIBAR is our digital menu solution for restaurants and bars. Customers "
        "can browse the menu, order and pay from their phone by scanning a QR code."
    ),
    (GENERAL_INTENT, "reviews"): (
        "Our online reputation service helps you boost your Google Reviews and "
        "Instagram. More positive reviews means more visibility and more customers."
    ),
    (GENERAL_INTENT, None): (
        "SmartConnect is an agency-school that transforms businesses with "
        "technical solutions: digitalisation, automation and AI. We focus on "
        "delivering immediate value in every project."
    ),
}


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def detect_intent(query: str) -> str:
    """Classify a query into one of the known intents.

    Returns:
        The intent name, ``general`` when nothing matches.
    """
    lowered = query.lower()
    for intent, keywords in INTENT_KEYWORDS:
        if _contains_any(lowered, keywords):
            return intent
    return GENERAL_INTENT


class FallbackHandler:
    """Produces fallback messages and tracks how often they are needed.

    Each call is independent, but the handler keeps running totals for the
    life of the instance until ``reset_stats`` is called.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._total_fallbacks = 0
        self._by_category: dict[str, int] = {}
        self._total_escalations = 0
        self._confidence_sum = 0.0

    def get_fallback(self, context: FallbackContext) -> FallbackResponse:
        """Build the fallback response for a query and record it.

        Returns:
            FallbackResponse with message, routing advice and tone.
        """
        context = self._normalize_context(context)
        escalation_reason = self._get_escalation_reason(context)
        should_escalate = escalation_reason is not None
        intent = detect_intent(context.query)

        self._update_stats(context, escalated=should_escalate)

        if should_escalate:
            message = self._get_escalation_message(context)
            response_type = FallbackType.ESCALATION
            logger.info(
                "Escalating query in category %s (%s)",
                context.category,
                escalation_reason,
            )
        else:
            message = self._get_fallback_message(context, intent)
            response_type = (
                FallbackType.PREDEFINED
                if intent == GENERAL_INTENT
                else FallbackType.CONTEXTUAL
            )

        return FallbackResponse(
            message=message,
            type=response_type,
            category=context.category,
            should_escalate=should_escalate,
            escalation_reason=escalation_reason,
            action_suggestions=self._get_action_suggestions(context, intent),
            tone=self._determine_tone(context),
            confidence=context.confidence,
        )

    def get_stats(self) -> FallbackStats:
        """Return aggregate statistics since creation or the last reset.

        Returns:
            FallbackStats snapshot.
        """
        with self._lock:
            total = self._total_fallbacks
            return FallbackStats(
                total_fallbacks=total,
                by_category=dict(self._by_category),
                total_escalations=self._total_escalations,
                escalation_rate=self._total_escalations / total if total else 0.0,
                average_confidence=self._confidence_sum / total if total else 0.0,
            )

    def reset_stats(self) -> None:
        with self._lock:
            self._reset_counters()

    @staticmethod
    def _normalize_context(context: FallbackContext) -> FallbackContext:
        confidence = context.confidence
        if confidence is None or not math.isfinite(confidence):
            confidence = 0.0
        previous = context.previous_interactions or 0
        return FallbackContext(
            query=context.query or "",
            category=context.category or GENERAL_CATEGORY,
            rag_results=list(context.rag_results or []),
            confidence=max(0.0, min(1.0, float(confidence))),
            user_name=context.user_name or None,
            previous_interactions=max(0, int(previous)),
        )

    def _update_stats(self, context: FallbackContext, *, escalated: bool) -> None:
        with self._lock:
            self._total_fallbacks += 1
            self._by_category[context.category] = (
                self._by_category.get(context.category, 0) + 1
            )
            self._confidence_sum += context.confidence
            if escalated:
                self._total_escalations += 1

    @staticmethod
    def _get_escalation_reason(context: FallbackContext) -> str | None:
        query = context.query.lower()
        if _contains_any(query, URGENT_KEYWORDS):
            return "urgent"
        if _contains_any(query, IMPLEMENTATION_KEYWORDS):
            return "sensitive"
        if context.confidence < LOW_CONFIDENCE_THRESHOLD:
            return "low_confidence"
        return None

    @staticmethod
    def _get_escalation_message(context: FallbackContext) -> str:
        greeting = f"{context.user_name}, " if context.user_name else ""
        return f"{greeting}{ESCALATION_MESSAGE}"

    @staticmethod
    def _get_fallback_message(context: FallbackContext, intent: str) -> str:
        greeting = f"Hi {context.user_name}, " if context.user_name else ""
        if intent == "demo":
            intent = GENERAL_INTENT
        template = MESSAGES.get((intent, context.category)) or MESSAGES[(intent, None)]
        return f"{greeting}{template}"

    @staticmethod
    def _get_action_suggestions(context: FallbackContext, intent: str) -> list[str]:
        suggestions: list[str] = []

        if intent in {"pricing", "implementation"}:
            suggestions.append("contact")
        if intent in {"features", GENERAL_INTENT}:
            suggestions.append("documentation")
        if intent == "demo" or _contains_any(context.query.lower(), SHOW_KEYWORDS):
            suggestions.append("demo")
        if intent == "success_stories":
            suggestions.append("testimonials")

        if "contact" not in suggestions:
            suggestions.append("contact")
        return suggestions

    @staticmethod
    def _determine_tone(context: FallbackContext) -> Tone:
        if context.previous_interactions >= FAMILIAR_AFTER_INTERACTIONS:
            return Tone.FAMILIAR
        return Tone.FORMAL
