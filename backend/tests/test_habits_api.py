from __future__ import annotations

from uuid import uuid4

from mentorme.core.config import settings


def _create_habit(test_client, user_id, title, **extra):
    return test_client.post("/habits", json={"user_id": str(user_id), "title": title, **extra})


def test_habits_share_the_active_limit(client, monkeypatch):
    monkeypatch.setattr(settings, "habit_limit_enforcement", "hard")
    test_client, _ = client
    user_id = uuid4()

    for title in ("Meditate", "Stretch"):
        assert _create_habit(test_client, user_id, title).json()["habit"]["status"] == "active"
    third = _create_habit(test_client, user_id, "Journal", frequency="weekly")

    assert third.status_code == 201
    body = third.json()
    assert body["habit"]["status"] == "backlog"
    assert body["habit"]["frequency"] == "weekly"
    assert body["coerced_to_backlog"] is True


def test_soft_habit_limit_needs_confirmation(client, monkeypatch):
    monkeypatch.setattr(settings, "habit_limit_enforcement", "soft")
    test_client, _ = client
    user_id = uuid4()
    for title in ("Meditate", "Stretch"):
        _create_habit(test_client, user_id, title)

    declined = _create_habit(test_client, user_id, "Journal")
    assert declined.status_code == 409
    assert "habit" in declined.json()["detail"]["message"]

    confirmed = _create_habit(test_client, user_id, "Journal", confirm_over_limit=True)
    assert confirmed.json()["habit"]["status"] == "active"


def test_habit_can_link_to_own_goal_only(client):
    test_client, _ = client
    user_id = uuid4()
    goal_id = test_client.post("/goals", json={"user_id": str(user_id), "title": "Get fit"}).json()["goal"]["id"]

    linked = _create_habit(test_client, user_id, "Run", linked_goal_id=goal_id)
    assert linked.status_code == 201
    assert linked.json()["habit"]["linked_goal_id"] == goal_id

    stranger = _create_habit(test_client, uuid4(), "Run", linked_goal_id=goal_id)
    assert stranger.status_code == 403


def test_update_list_and_delete_habit(client):
    test_client, _ = client
    user_id = uuid4()
    habit_id = _create_habit(test_client, user_id, "Meditate").json()["habit"]["id"]

    updated = test_client.patch(
        f"/habits/{habit_id}",
        json={"user_id": str(user_id), "title": "Meditate 10 minutes", "status": "backlog"},
    )
    assert updated.status_code == 200
    assert updated.json()["habit"]["title"] == "Meditate 10 minutes"
    assert updated.json()["habit"]["status"] == "backlog"

    listed = test_client.get("/habits", params={"user_id": str(user_id), "status": "backlog"})
    assert [habit["id"] for habit in listed.json()] == [habit_id]

    assert test_client.delete(f"/habits/{habit_id}", params={"user_id": str(user_id)}).status_code == 204
    assert test_client.get("/habits", params={"user_id": str(user_id)}).json() == []
