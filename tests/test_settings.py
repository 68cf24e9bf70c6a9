from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from supporttriage.knowledge_base import SAMPLE_KNOWLEDGE_BASE, load_knowledge_base
from supporttriage.settings import PLACEHOLDER_API_KEY, Settings


@pytest.mark.parametrize("key", [None, "", "   ", PLACEHOLDER_API_KEY])
def test_configuration_error_when_key_unusable(key: str | None) -> None:
    """configuration_error reports a missing or placeholder API key."""
    error = Settings(openai_api_key=key).configuration_error
    assert error is not None
    assert "API Key is not configured" in error


def test_no_configuration_error_with_real_key() -> None:
    assert Settings(openai_api_key="sk-live-123").configuration_error is None


def test_load_knowledge_base_defaults_to_sample() -> None:
    with patch("supporttriage.knowledge_base.get_settings") as get_settings:
        get_settings.return_value = MagicMock(knowledge_base_path=None)
        kb = load_knowledge_base()
    assert kb == SAMPLE_KNOWLEDGE_BASE
    assert "How do I reset my password?" in kb


def test_load_knowledge_base_from_file(tmp_path: Path) -> None:
    kb_file = tmp_path / "kb.md"
    kb_file.write_text("**Q: Do you ship abroad?**\nA: Yes.", encoding="utf-8")
    assert load_knowledge_base(kb_file).startswith("**Q: Do you ship abroad?**")


def test_load_knowledge_base_missing_file_falls_back(tmp_path: Path) -> None:
    assert load_knowledge_base(tmp_path / "missing.md") == SAMPLE_KNOWLEDGE_BASE
