"""API tests through FastAPI's TestClient.

Generation goes through a StubLLM standing in for the HTTP client of an
assigned connection; tests that leave a role unassigned check how the API
degrades without it."""

import pytest
from fastapi.testclient import TestClient

from backend import campaigns, storage
from backend.app import create_app
from conftest import TEST_DATA_DIR, StubLLM

BASE = "/api/campaigns/starship-escape"


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(TEST_DATA_DIR))


def _assign(llm: StubLLM, monkeypatch, *roles: str) -> None:
    storage.update_config({
        "llm_connections": [{"name": "Local", "provider_url": "http://localhost:5001"}],
        "roles": {role: "Local" for role in roles},
    })
    monkeypatch.setattr(campaigns, "HttpLLM", lambda *args, **kwargs: llm)


@pytest.fixture
def assigned(llm: StubLLM, monkeypatch) -> StubLLM:
    """Both roles assigned to one connection served by `llm`."""
    _assign(llm, monkeypatch, "character", "summarizer")
    return llm


@pytest.fixture
def hero_ids(client: TestClient) -> list[str]:
    ids = []
    for name, cls in [("Aria", "Ranger"), ("Thorne", "Fighter")]:
        resp = client.post("/api/heroes", json={"name": name, "hero_class": cls})
        assert resp.status_code == 201
        ids.append(resp.json()["id"])
    return ids


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_settings_roundtrip(client: TestClient) -> None:
    resp = client.patch("/api/settings", json={"banter_max_turns": 1})
    assert resp.json()["banter_max_turns"] == 1
    assert client.get("/api/settings").json()["banter_max_turns"] == 1


def test_hero_crud(client: TestClient) -> None:
    created = client.post("/api/heroes", json={"name": "Aria Windwhisper", "race": "Elf"}).json()
    assert created["id"] == "aria-windwhisper"
    assert [h["id"] for h in client.get("/api/heroes").json()] == ["aria-windwhisper"]

    updated = client.patch("/api/heroes/aria-windwhisper", json={"level": 3}).json()
    assert updated["level"] == 3
    assert updated["race"] == "Elf"

    assert client.delete("/api/heroes/aria-windwhisper").status_code == 200
    assert client.get("/api/heroes/aria-windwhisper").status_code == 404
    assert client.post("/api/heroes", json={"name": "  "}).status_code == 400


def test_campaign_state(client: TestClient) -> None:
    assert client.get("/api/campaigns").json()[0]["id"] == "starship-escape"
    state = client.get(BASE).json()
    assert state["active_area"] == "briefing"
    assert [n["state"] for n in state["nodes"]] == [
        "unlocked", "locked", "locked", "locked", "locked",
    ]
    assert client.get("/api/campaigns/nope").status_code == 404


def test_play_through_briefing(client: TestClient, assigned: StubLLM, hero_ids: list[str]) -> None:
    opened = client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": hero_ids}).json()
    assert opened["messages"][0]["speaker"] == "Narrator"

    posted = client.post(f"{BASE}/areas/briefing/messages", json={"message": "Status?"})
    assert posted.status_code == 201

    assigned.replies.append("The crew is frozen solid.")
    reply = client.post(f"{BASE}/areas/briefing/respond", json={"hero_id": "aria"}).json()
    assert reply["speaker"] == "Aria"
    assert reply["text"] == "The crew is frozen solid."

    banter = client.post(f"{BASE}/areas/briefing/banter", json={"max_turns": 2}).json()
    assert [m["speaker"] for m in banter] == ["Thorne", "Aria"]
    assert len(client.get(f"{BASE}/areas/briefing/messages").json()) == 5

    assigned.replies.append("The party woke in the cargo hold and headed for the medical bay.")
    unlocked = client.post(f"{BASE}/unlock", json={"node_id": "medicalBay"}).json()
    assert unlocked["outcome"] == "unlocked"
    assert unlocked["completed"] == ["briefing"]

    refused = client.post(f"{BASE}/unlock", json={"node_id": "armory"}).json()
    assert refused["outcome"] == "branch_locked_out"
    assert refused["permanent"] is True

    state = client.get(BASE).json()
    assert [s["text"] for s in state["summaries"]] == [
        "The party woke in the cargo hold and headed for the medical bay.",
    ]

    resp = client.post(f"{BASE}/areas/briefing/messages", json={"message": "Wait!"})
    assert resp.status_code == 409


def test_unassigned_character_role_is_refused(client: TestClient, hero_ids: list[str]) -> None:
    client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": hero_ids})
    client.post(f"{BASE}/areas/briefing/messages", json={"message": "Anyone awake?"})

    resp = client.post(f"{BASE}/areas/briefing/respond", json={"hero_id": "aria"})
    assert resp.status_code == 400
    assert "character role is not assigned" in resp.json()["detail"]
    assert client.post(f"{BASE}/areas/briefing/banter", json={}).status_code == 400
    assert client.post(f"{BASE}/heroes/aria/chat", json={"message": "hi"}).status_code == 400

    # nothing was added to the log, not even a placeholder
    messages = client.get(f"{BASE}/areas/briefing/messages").json()
    assert [m["sender"] for m in messages] == ["character", "user"]
    assert client.get(BASE).json()["nodes"][0]["busy"] is False


def test_unassigned_summarizer_uses_fallback(
    client: TestClient, llm: StubLLM, monkeypatch, hero_ids: list[str],
) -> None:
    _assign(llm, monkeypatch, "character")
    client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": hero_ids})
    client.post(f"{BASE}/areas/briefing/messages", json={"message": "Let's move."})

    client.post(f"{BASE}/unlock", json={"node_id": "medicalBay"})

    summary = client.get(BASE).json()["summaries"][0]
    assert summary["fallback"] is True
    assert summary["text"] == "Mission Briefing - Conversation completed with 2 messages exchanged."
    assert "summarizer" not in llm.stages()


def test_error_status_codes(client: TestClient, hero_ids: list[str]) -> None:
    client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": hero_ids[:1]})

    assert client.post(f"{BASE}/unlock", json={"node_id": "engineRoom"}).status_code == 404
    assert client.post(f"{BASE}/areas/armory/open", json={}).status_code == 409
    assert client.post(f"{BASE}/areas/briefing/respond", json={"hero_id": "thorne"}).status_code == 404
    assert client.post(f"{BASE}/areas/briefing/messages", json={"message": " "}).status_code == 400
    assert client.get(f"{BASE}/areas/engineRoom/messages").status_code == 404
    assert client.post(
        f"{BASE}/areas/briefing/open", json={"hero_ids": ["ghost"]},
    ).status_code == 404


def test_reset_requires_confirmation(client: TestClient, hero_ids: list[str]) -> None:
    client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": hero_ids})
    client.post(f"{BASE}/unlock", json={"node_id": "armory"})

    resp = client.post(f"{BASE}/reset", json={})
    assert resp.status_code == 428
    assert "cannot be undone" in resp.json()["detail"]

    state = client.post(f"{BASE}/reset", json={"confirm": True}).json()
    assert [n["state"] for n in state["nodes"]][:3] == ["unlocked", "locked", "locked"]
    assert state["party"] == []


def test_hero_health(client: TestClient, assigned: StubLLM, hero_ids: list[str]) -> None:
    client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": hero_ids})
    assert client.get(f"{BASE}/heroes/aria/health").json() == {
        "hero_id": "aria", "hearts": 3, "down": False,
    }

    downed = client.put(f"{BASE}/heroes/aria/health", json={"hearts": 0}).json()
    assert downed["down"] is True
    resp = client.post(f"{BASE}/areas/briefing/respond", json={"hero_id": "aria"})
    assert resp.status_code == 409
    assert "is down" in resp.json()["detail"]

    party = client.get(BASE).json()["party"]
    assert [(h["id"], h["hearts"]) for h in party] == [("aria", 0), ("thorne", 3)]

    assert client.put(f"{BASE}/heroes/aria/health", json={"hearts": 7}).json()["hearts"] == 3
    assert client.get(f"{BASE}/heroes/nobody/health").status_code == 404


def test_hero_chat(client: TestClient, assigned: StubLLM, hero_ids: list[str]) -> None:
    client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": hero_ids})
    greeting = client.get(f"{BASE}/heroes/aria/chat").json()
    assert greeting[0]["text"].startswith("Greetings! I'm Aria.")

    assigned.replies.append("Hello yourself.")
    reply = client.post(f"{BASE}/heroes/aria/chat", json={"message": "Hello there"}).json()
    assert reply["text"] == "Hello yourself."
    assert assigned.stages() == ["hero_chat"]

    assert client.delete(f"{BASE}/heroes/aria/chat").json() == {"ok": True}
    assert client.post(f"{BASE}/heroes/nobody/chat", json={"message": "hi"}).status_code == 404


def test_demo_heroes(client: TestClient) -> None:
    from backend.demo import create_demo_data

    ids = create_demo_data()
    assert ids == ["aria-windwhisper", "thorne-ironfist", "lyra-voss"]
    assert len(client.get("/api/heroes").json()) == 3
    opened = client.post(f"{BASE}/areas/briefing/open", json={"hero_ids": ids}).json()
    assert "Thorne Ironfist" in opened["messages"][0]["text"]
