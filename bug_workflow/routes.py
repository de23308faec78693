"""
Bug workflow API routes.

REST endpoints over the WorkflowEngine. The acting user is identified by the
``X-User-Id`` header, set by the auth gateway in front of this service, and
resolved against the user directory.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .db.base import get_db
from .db.services import BugService, UserService, build_workflow_engine
from .workflow.errors import ForbiddenError, NotFoundError, WorkflowError
from .workflow.schemas import (
    Actor,
    BlockRequest,
    BugCreate,
    QAAssignRequest,
    StatusTransitionRequest,
    UnblockRequest,
    UserCreate,
)

logger = structlog.get_logger()

router = APIRouter(tags=["bugs"])


def get_actor(
    x_user_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the acting user from the gateway header."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    user = UserService(db).get(x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail=f"Unknown user {x_user_id}")

    return Actor(id=user.id, role=user.role)


def _http_error(exc: WorkflowError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.to_dict())
    if isinstance(exc, ForbiddenError):
        logger.info("workflow_forbidden", code=exc.code, message=exc.message)
        return HTTPException(status_code=403, detail=exc.to_dict())
    return HTTPException(status_code=400, detail=exc.to_dict())


def _conflict(bug_id: int, exc: StaleDataError) -> HTTPException:
    logger.warning("bug_update_conflict", bug_id=bug_id, error=str(exc))
    return HTTPException(
        status_code=409,
        detail=f"Bug #{bug_id} was modified by another request; reload and retry",
    )


# =============================================================================
# User Endpoints
# =============================================================================


@router.post("/users", status_code=201)
async def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Register a user in the directory."""
    service = UserService(db)

    if service.get_by_email(user.email):
        raise HTTPException(
            status_code=409,
            detail=f"User with email '{user.email}' already exists",
        )

    db_user = service.create(user)
    return {
        "status": "success",
        "user": db_user.to_dict(),
    }


# =============================================================================
# Bug Endpoints
# =============================================================================


@router.post("/bugs", status_code=201)
async def create_bug(
    bug: BugCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """File a new bug in the open state."""
    db_bug = BugService(db).create(bug, reporter_id=actor.id)
    return {
        "status": "success",
        "bug": db_bug.model_dump(mode="json"),
    }


@router.get("/bugs/{bug_id}")
async def get_bug(
    bug_id: int,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a bug by ID."""
    bug = BugService(db).get(bug_id)

    if not bug:
        raise HTTPException(status_code=404, detail="Bug not found")

    return bug.model_dump(mode="json")


@router.put("/bugs/{bug_id}/status")
async def transition_bug_status(
    bug_id: int,
    request: StatusTransitionRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Move a bug to another status, subject to the role policy."""
    engine = build_workflow_engine(db)
    try:
        bug = engine.transition_status(bug_id, request.status, actor, notes=request.notes)
    except WorkflowError as e:
        raise _http_error(e)
    except StaleDataError as e:
        raise _conflict(bug_id, e)

    return {
        "status": "success",
        "message": "Bug status updated successfully",
        "bug": bug.model_dump(mode="json"),
    }


@router.get("/bugs/{bug_id}/transitions")
async def list_allowed_transitions(
    bug_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Statuses the acting user may move this bug into."""
    engine = build_workflow_engine(db)
    try:
        targets = engine.allowed_transitions(bug_id, actor)
    except WorkflowError as e:
        raise _http_error(e)

    return {
        "bug_id": bug_id,
        "role": actor.role.value,
        "allowed": [status.value for status in targets],
    }


@router.put("/bugs/{bug_id}/qa-assign")
async def assign_bug_to_qa(
    bug_id: int,
    request: QAAssignRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Set the bug's QA assignee."""
    engine = build_workflow_engine(db)
    try:
        bug = engine.assign_qa(bug_id, request.qa_user_id, actor)
    except WorkflowError as e:
        raise _http_error(e)
    except StaleDataError as e:
        raise _conflict(bug_id, e)

    return {
        "status": "success",
        "message": "Bug assigned to QA successfully",
        "bug": bug.model_dump(mode="json"),
    }


@router.put("/bugs/{bug_id}/block")
async def block_bug(
    bug_id: int,
    request: BlockRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Mark a bug as blocked by another bug."""
    engine = build_workflow_engine(db)
    try:
        bug = engine.block_bug(bug_id, request.blocked_by_bug_id, actor, reason=request.reason)
    except WorkflowError as e:
        raise _http_error(e)
    except StaleDataError as e:
        raise _conflict(bug_id, e)

    return {
        "status": "success",
        "message": "Bug blocked successfully",
        "bug": bug.model_dump(mode="json"),
    }


@router.put("/bugs/{bug_id}/unblock")
async def unblock_bug(
    bug_id: int,
    request: UnblockRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Clear a bug's blocking relationship."""
    engine = build_workflow_engine(db)
    try:
        bug = engine.unblock_bug(bug_id, actor, reason=request.reason)
    except WorkflowError as e:
        raise _http_error(e)
    except StaleDataError as e:
        raise _conflict(bug_id, e)

    return {
        "status": "success",
        "message": "Bug unblocked successfully",
        "bug": bug.model_dump(mode="json"),
    }


@router.get("/bugs/{bug_id}/history")
async def get_bug_history(
    bug_id: int,
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """Audit trail for a bug, newest first."""
    if not BugService(db).get(bug_id):
        raise HTTPException(status_code=404, detail="Bug not found")

    engine = build_workflow_engine(db)
    return [entry.to_dict() for entry in engine.get_history(bug_id)]
