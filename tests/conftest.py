import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from supporttriage.agent.tools import OpenAISupportTools  # noqa: E402
from supporttriage.models import EscalationDecision  # noqa: E402


@pytest.fixture
def fake_tools() -> MagicMock:
    """Collaborators with no KB match, no classification and no escalation."""
    m = MagicMock(spec=OpenAISupportTools)
    m.search_knowledge_base = AsyncMock(return_value=None)
    m.classify_intent = AsyncMock(return_value=None)
    m.determine_escalation = AsyncMock(return_value=EscalationDecision(escalate=False))
    return m
