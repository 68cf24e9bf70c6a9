"""Response templates for the resolution pipeline.

A pipeline pass ends in exactly one outcome: a knowledge base hit, an
intent returned by the classifier, or no classification at all. Everything
the user sees is derived from that outcome by the pure functions below.
"""

from dataclasses import dataclass
from typing import Union

from ..models import EscalationDecision, Intent

RESOLUTION_CHECK_SUFFIX = " Does this resolve your issue?"
TOPIC_PREFIX_LENGTH = 50


@dataclass(frozen=True)
class KBHit:
    topic: str
    snippet: str

    @property
    def intent(self) -> Intent:
        return Intent.TECHNICAL_SUPPORT


@dataclass(frozen=True)
class Classified:
    intent: Intent
    topic: str


@dataclass(frozen=True)
class Unclassified:
    @property
    def intent(self) -> Intent:
        return Intent.UNKNOWN

    @property
    def topic(self) -> None:
        return None


ResolutionOutcome = Union[KBHit, Classified, Unclassified]


def fallback_topic(query: str) -> str:
    """Topic used when neither the KB nor the classifier names one."""
    return query[:TOPIC_PREFIX_LENGTH].strip() + "..."


def _intent_template(intent: Intent, topic: str | None) -> str:
    if intent is Intent.TECHNICAL_SUPPORT:
        return (
            f'Thanks for your query about "{topic}". I couldn\'t find an immediate '
            "answer in our knowledge base for this technical issue. Our team will "
            "look into this."
        )
    if intent is Intent.PRODUCT_FEATURE_REQUEST:
        return (
            f'Thank you for your suggestion! We\'ve logged your feature request for "{topic}" '
            "for our product team to review."
        )
    if intent is Intent.SALES_LEAD:
        return (
            f'Thanks for your interest in our products/services regarding "{topic}"! '
            "Our sales team will be in touch soon. In the meantime, could you tell us "
            "more about your needs or your company?"
        )
    return "I'm not sure how to help with that. What would you like to do?"


def render_response(outcome: ResolutionOutcome) -> str:
    """Agent reply for an outcome, including the resolution check where it applies."""
    if isinstance(outcome, KBHit):
        text = (
            f'Regarding "{outcome.topic}", here\'s some information from our knowledge '
            f'base: "{outcome.snippet}".'
        )
    elif isinstance(outcome, Classified):
        text = _intent_template(outcome.intent, outcome.topic)
    else:
        text = "I'm having trouble understanding your request. Could you please try rephrasing it?"

    if outcome.intent is not Intent.UNKNOWN:
        text += RESOLUTION_CHECK_SUFFIX
    return text


def classification_event(outcome: ResolutionOutcome) -> str:
    """System log line recording where the intent came from."""
    if isinstance(outcome, KBHit):
        return (
            f"Query content matched knowledge base. Classified as: "
            f"{outcome.intent.value} (Source: KB)."
        )
    if isinstance(outcome, Classified):
        return f"Query classified by AI as: {outcome.intent.value} (Topic: {outcome.topic or 'N/A'})"
    return "Error: Could not classify your query after KB search. Please try rephrasing."


def escalation_team(intent: Intent) -> str:
    """Name of the human team an escalated query goes to.

    Args:
        intent: Resolved intent of the escalated query.

    Returns:
        str: "Technical Support", "Sales", or "the relevant" for any other intent.
    """
    if intent is Intent.TECHNICAL_SUPPORT:
        return "Technical Support"
    if intent is Intent.SALES_LEAD:
        return "Sales"
    return "the relevant"


def escalation_notice(intent: Intent, decision: EscalationDecision) -> str:
    """System message announcing an escalation, with the advisor's reason when given."""
    text = f"This issue has been flagged for escalation to our human {escalation_team(intent)} team."
    if decision.reason:
        text += f" Reason: {decision.reason}"
    return text
