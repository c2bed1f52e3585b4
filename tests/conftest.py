import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

# portfolio.main loads its config on import.
os.environ.setdefault("PORTFOLIO_CONFIG", str(ROOT / "config.yaml"))

from langchain_core.messages import AIMessageChunk  # noqa: E402


class FakeLLM:
    """Stands in for ChatAnthropic: streams fixed chunks, optionally failing."""

    def __init__(self, chunks, fail_after=None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.messages = None

    async def astream(self, messages):
        self.messages = messages
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise RuntimeError("provider unavailable")
            yield AIMessageChunk(content=chunk)


PITCH_CHUNKS = [
    "# Cart Recovery ",
    "Copilot\n## 1. Business Problem Analysis\n",
    "Shoppers leave **at checkout**.\n### Key Features:\n- Exit-intent ",
    "offers\n- Email nudges\n",
]


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    from portfolio.security import reset_rate_limits

    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def repo_config():
    """The repository config.yaml, loaded into the module cache."""
    from portfolio.config import load_config

    return load_config(str(ROOT / "config.yaml"))


@pytest.fixture
def profile(repo_config):
    from portfolio.profile import load_profile

    return load_profile(repo_config.profile_path)


@pytest.fixture
def fake_llm(monkeypatch):
    """Patch the API's LLM factory with a FakeLLM streaming PITCH_CHUNKS."""
    from portfolio import main

    llm = FakeLLM(PITCH_CHUNKS)
    monkeypatch.setattr(main, "get_llm", lambda _config: llm)
    return llm


@pytest.fixture
def api_client(repo_config):
    from fastapi.testclient import TestClient

    from portfolio.main import app

    with TestClient(app) as client:
        yield client
