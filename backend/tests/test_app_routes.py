"""Regression tests for application route registration."""
from fastapi.routing import APIRoute

from mentorme.main import app


def _routes(path: str, method: str) -> list[APIRoute]:
    return [
        route
        for route in app.routes
        if isinstance(route, APIRoute) and route.path == path and method in route.methods
    ]


def test_status_options_route_not_shadowed_by_goal_id() -> None:
    """The literal path must be registered; /goals/{goal_id} has no GET to shadow it."""
    assert len(_routes("/goals/status-options", "GET")) == 1
    assert _routes("/goals/{goal_id}", "GET") == []


def test_voice_routes_registered_once() -> None:
    for path, method in [
        ("/voice/activate", "POST"),
        ("/voice/transcript", "POST"),
        ("/voice/captures/{todo_id}/undo", "POST"),
    ]:
        assert len(_routes(path, method)) == 1


def test_milestone_suggest_route_not_taken_by_goal_id() -> None:
    assert len(_routes("/goals/milestones/suggest", "POST")) == 1
    assert _routes("/goals/{goal_id}", "POST") == []
