from unittest.mock import MagicMock, patch

from supporttriage.agent.agent import SupportTriageService
from supporttriage.agent.tools import OpenAISupportTools
from supporttriage.models import ConversationMode
from supporttriage.settings import Settings


def test_get_engine_is_cached_per_session() -> None:
    """get_engine returns the same engine for a session and a new one per session."""
    service = SupportTriageService(tools=MagicMock(spec=OpenAISupportTools))
    with patch("supporttriage.agent.agent.get_settings") as get_settings:
        get_settings.return_value = Settings(openai_api_key="sk-test", greeting="Hi there!")
        first = service.get_engine("a")
        assert service.get_engine("a") is first
        assert service.get_engine("b") is not first

    assert first.mode is ConversationMode.IDLE_ACCEPTING_INPUT
    assert first.messages[0].text == "Hi there!"


def test_get_engine_without_key_is_configuration_error() -> None:
    service = SupportTriageService(tools=MagicMock(spec=OpenAISupportTools))
    with patch("supporttriage.agent.agent.get_settings") as get_settings:
        get_settings.return_value = Settings(openai_api_key="YOUR_ACTUAL_API_KEY")
        engine = service.get_engine("a")

    assert engine.mode is ConversationMode.CONFIGURATION_ERROR
    assert engine.snapshot().configuration_error.startswith("API Key is not configured")


def test_end_session() -> None:
    service = SupportTriageService(tools=MagicMock(spec=OpenAISupportTools))
    with patch("supporttriage.agent.agent.get_settings") as get_settings:
        get_settings.return_value = Settings(openai_api_key="sk-test")
        first = service.get_engine("a")
        assert service.end_session("a") is True
        assert service.end_session("a") is False
        assert service.get_engine("a") is not first
