"""Todo API routes."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from mentorme.api.schemas.todo import TodoCreateRequest, TodoSummary, TodoUpdateRequest
from mentorme.db.deps import get_db
from mentorme.db.models.enums import TodoStatus
from mentorme.observability.metrics import log_metric
from mentorme.observability.tracing import trace
from mentorme.services import todo_service

router = APIRouter()


@router.get("/todos", response_model=List[TodoSummary], tags=["todos"])
def list_todos(
    http_request: Request,
    user_id: UUID = Query(...),
    status_filter: Optional[TodoStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
) -> List[TodoSummary]:
    """List todos, earliest due first; undated todos last."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "todo.list",
        metadata={"route": "/todos", "user_id": str(user_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        todos = todo_service.list_todos(db, user_id, status_filter)
    log_metric("todo.list.count", len(todos), metadata={"user_id": str(user_id)})
    return [todo_service.serialize_todo(todo) for todo in todos]


@router.post("/todos", response_model=TodoSummary, status_code=status.HTTP_201_CREATED, tags=["todos"])
def create_todo(
    payload: TodoCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TodoSummary:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "todo.create",
        metadata={"route": "/todos", "user_id": str(payload.user_id), "priority": payload.priority.value},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        todo = todo_service.create_todo(db, payload, request_id)
    log_metric("todo.create.success", 1, metadata={"user_id": str(payload.user_id)})
    return todo_service.serialize_todo(todo)


@router.patch("/todos/{todo_id}", response_model=TodoSummary, tags=["todos"])
def update_todo_status(
    todo_id: UUID,
    payload: TodoUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TodoSummary:
    """Complete, reopen or cancel a todo."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "todo.status",
        metadata={"route": f"/todos/{todo_id}", "todo_id": str(todo_id), "status": payload.status.value},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        todo = todo_service.set_todo_status(db, todo_id, payload.user_id, payload.status, request_id)
    log_metric("todo.status.success", 1, metadata={"status": todo.status})
    return todo_service.serialize_todo(todo)


@router.delete("/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["todos"])
def delete_todo(
    todo_id: UUID,
    http_request: Request,
    user_id: UUID = Query(...),
    db: Session = Depends(get_db),
) -> Response:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "todo.delete",
        metadata={"route": f"/todos/{todo_id}", "todo_id": str(todo_id)},
        user_id=str(user_id),
        request_id=request_id,
    ):
        todo_service.delete_todo(db, todo_id, user_id, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
