import pytest

from supporttriage.agent.responses import (
    RESOLUTION_CHECK_SUFFIX,
    Classified,
    KBHit,
    Unclassified,
    classification_event,
    escalation_notice,
    escalation_team,
    fallback_topic,
    render_response,
)
from supporttriage.models import EscalationDecision, Intent


def test_fallback_topic_truncates_to_fifty_characters() -> None:
    query = "x" * 80
    assert fallback_topic(query) == "x" * 50 + "..."
    assert fallback_topic("short question ") == "short question..."


def test_kb_hit_is_technical_support() -> None:
    outcome = KBHit(topic="Password reset", snippet="Click Forgot Password.")
    assert outcome.intent is Intent.TECHNICAL_SUPPORT
    assert render_response(outcome) == (
        'Regarding "Password reset", here\'s some information from our knowledge base: '
        '"Click Forgot Password.". Does this resolve your issue?'
    )


@pytest.mark.parametrize(
    "intent,fragment",
    [
        (Intent.TECHNICAL_SUPPORT, "couldn't find an immediate answer in our knowledge base"),
        (Intent.PRODUCT_FEATURE_REQUEST, 'logged your feature request for "export"'),
        (Intent.SALES_LEAD, "Our sales team will be in touch soon"),
    ],
)
def test_template_table(intent: Intent, fragment: str) -> None:
    text = render_response(Classified(intent=intent, topic="export"))
    assert fragment in text
    assert '"export"' in text
    assert text.endswith(RESOLUTION_CHECK_SUFFIX)


def test_unknown_intents_have_no_resolution_check() -> None:
    classified_unknown = render_response(Classified(intent=Intent.UNKNOWN, topic="export"))
    unclassified = render_response(Unclassified())

    assert classified_unknown == "I'm not sure how to help with that. What would you like to do?"
    assert unclassified == (
        "I'm having trouble understanding your request. Could you please try rephrasing it?"
    )


def test_classification_events() -> None:
    assert classification_event(KBHit(topic="t", snippet="s")) == (
        "Query content matched knowledge base. Classified as: Technical Support (Source: KB)."
    )
    assert classification_event(Classified(intent=Intent.SALES_LEAD, topic="pricing")) == (
        "Query classified by AI as: Sales Lead (Topic: pricing)"
    )
    assert classification_event(Unclassified()).startswith("Error: Could not classify")


@pytest.mark.parametrize(
    "intent,team",
    [
        (Intent.TECHNICAL_SUPPORT, "Technical Support"),
        (Intent.SALES_LEAD, "Sales"),
        (Intent.PRODUCT_FEATURE_REQUEST, "the relevant"),
        (Intent.UNKNOWN, "the relevant"),
    ],
)
def test_escalation_team(intent: Intent, team: str) -> None:
    assert escalation_team(intent) == team


def test_escalation_notice_reason_is_optional() -> None:
    without = escalation_notice(Intent.SALES_LEAD, EscalationDecision(escalate=True))
    with_reason = escalation_notice(Intent.SALES_LEAD, EscalationDecision(escalate=True, reason="Big deal"))

    assert without == "This issue has been flagged for escalation to our human Sales team."
    assert with_reason == without + " Reason: Big deal"
