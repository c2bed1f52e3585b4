import json

import httpx
import pytest
from conftest import PITCH_CHUNKS, FakeLLM

from portfolio.config import get_config
from portfolio.generation import AI_SERVICE_ERROR
from portfolio.security import RATE_LIMIT_MESSAGE

PROBLEM = "Our e-commerce store has a high rate of abandoned carts."


def read_events(response):
    """Decode every ``data:`` line of an SSE body."""
    events = []
    for line in response.text.splitlines():
        if line.startswith("data: "):
            events.append(json.loads(line[len("data: "):]))
    return events


# ---------------------------------------------------------------------------
# /api/generate-pitch
# ---------------------------------------------------------------------------


def test_generate_pitch_streams_fragments(api_client, fake_llm):
    response = api_client.post("/api/generate-pitch", json={"businessProblem": PROBLEM})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = read_events(response)
    assert [e["content"] for e in events] == PITCH_CHUNKS
    assert all("error" not in e for e in events)


def test_generate_pitch_grounds_prompt_in_profile(api_client, fake_llm):
    api_client.post("/api/generate-pitch", json={"businessProblem": PROBLEM})

    system, human = fake_llm.messages
    assert "VOC Complaint Analyzer" in system.content
    assert "--- START PORTFOLIO DATA ---" in system.content
    assert PROBLEM in human.content


def test_generate_pitch_rejects_short_problem(api_client, fake_llm):
    response = api_client.post("/api/generate-pitch", json={"businessProblem": "  help  "})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "A detailed problem description is required (minimum 10 characters).",
    }
    assert fake_llm.messages is None


def test_generate_pitch_missing_field(api_client, fake_llm):
    response = api_client.post("/api/generate-pitch", json={"problem": PROBLEM})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "businessProblem" in body["message"]


def test_generate_pitch_without_api_key_is_unavailable(api_client, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    response = api_client.post("/api/generate-pitch", json={"businessProblem": PROBLEM})

    assert response.status_code == 503
    assert response.json()["message"] == "The AI service is not configured."


def test_generate_pitch_reports_midstream_failure(api_client, monkeypatch):
    from portfolio import main

    llm = FakeLLM(PITCH_CHUNKS, fail_after=2)
    monkeypatch.setattr(main, "get_llm", lambda _config: llm)

    response = api_client.post("/api/generate-pitch", json={"businessProblem": PROBLEM})

    assert response.status_code == 200
    events = read_events(response)
    assert [e["content"] for e in events[:2]] == PITCH_CHUNKS[:2]
    assert events[-1] == {"content": "", "error": AI_SERVICE_ERROR}


# ---------------------------------------------------------------------------
# /api/ask-assistant
# ---------------------------------------------------------------------------


def test_ask_assistant_trims_history(api_client, fake_llm):
    history = [
        {"role": "user" if i % 2 == 0 else "assistant", "content": f"turn {i}"}
        for i in range(14)
    ]

    response = api_client.post(
        "/api/ask-assistant",
        json={"question": "Which projects used LangChain?", "history": history},
    )

    assert response.status_code == 200
    assert read_events(response)
    # system prompt + last 10 turns + the question
    assert len(fake_llm.messages) == 12
    assert fake_llm.messages[1].content == "turn 4"
    assert fake_llm.messages[-1].content == "Which projects used LangChain?"


def test_ask_assistant_requires_question(api_client, fake_llm):
    response = api_client.post("/api/ask-assistant", json={"question": "   "})

    assert response.status_code == 400
    assert response.json()["message"] == "A question is required."


# ---------------------------------------------------------------------------
# /api/contact
# ---------------------------------------------------------------------------


def test_contact_success(api_client):
    response = api_client.post(
        "/api/contact",
        json={"name": "Dana", "email": "dana@example.com", "message": "Let's talk."},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Thank you for your message. I'll get back to you soon!",
    }


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"name": "Dana", "email": "dana@example.com"}, "All fields are required"),
        ({"name": " ", "email": "dana@example.com", "message": "Hi"}, "All fields are required"),
        ({"name": "Dana", "email": "not-an-email", "message": "Hi"}, "Invalid email format"),
    ],
)
def test_contact_rejects_bad_input(api_client, payload, message):
    response = api_client.post("/api/contact", json=payload)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": message}


# ---------------------------------------------------------------------------
# Profile and operational endpoints
# ---------------------------------------------------------------------------


def test_user_data(api_client):
    response = api_client.get("/api/user-data")

    assert response.status_code == 200
    assert response.json() == {
        "name": "Mohammed Aamir Shuaib",
        "title": "Generative AI Specialist",
        "experience": "4+ years",
    }


def test_portfolio_returns_full_profile(api_client):
    body = api_client.get("/api/portfolio").json()

    assert body["name"] == "Mohammed Aamir Shuaib"
    assert "VOC Complaint Analyzer" in [p["title"] for p in body["projects"]]
    assert body["skills"]["technical"]


def test_health(api_client):
    response = api_client.get("/health")

    assert response.json() == {"status": "healthy", "profile": "Mohammed Aamir Shuaib"}


def test_rate_limit_applies_per_ip(api_client, monkeypatch):
    monkeypatch.setattr(get_config().rate_limit, "max_requests", 2)

    assert api_client.get("/api/user-data").status_code == 200
    assert api_client.get("/api/user-data").status_code == 200
    response = api_client.get("/api/user-data")

    assert response.status_code == 429
    assert response.json() == {"success": False, "message": RATE_LIMIT_MESSAGE}
    assert int(response.headers["Retry-After"]) > 0
    # operational endpoints are not limited
    assert api_client.get("/health").status_code == 200


def test_reload_requires_api_key(api_client, monkeypatch):
    monkeypatch.setattr(get_config(), "api_key", "secret")

    response = api_client.post("/reload")
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or missing API key"

    response = api_client.post("/reload", headers={"X-API-Key": "secret"})
    assert response.status_code == 200
    assert response.json() == {"status": "reloaded", "profile": "Mohammed Aamir Shuaib"}


# ---------------------------------------------------------------------------
# Terminal client against the real app
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_session_against_app(profile, fake_llm):
    from portfolio.client import GenerationState, PitchClient, PitchSession
    from portfolio.main import app
    from portfolio.render import BulletList, Heading, parse_markdown

    transport = httpx.ASGITransport(app=app)
    async with PitchClient("http://portfolio.test", transport=transport) as client:
        session = PitchSession(client)
        assert await session.submit(PROBLEM) is True

    assert session.state is GenerationState.COMPLETED
    assert session.pitch == "".join(PITCH_CHUNKS)
    blocks = parse_markdown(session.pitch)
    assert isinstance(blocks[0], Heading) and blocks[0].level == 1
    assert isinstance(blocks[-1], BulletList)
