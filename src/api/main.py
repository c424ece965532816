"""
HTTP surface for the review workflow: action dispatch and guarded group reads.

Authentication happens upstream; the authenticated actor arrives in the
X-User-Id header.
"""

from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from util.logging import logger

from ..authz.group_members import AccessDeniedError, GroupMembersService, GroupNotFoundError
from ..authz.group_permission import GROUP_TYPE, READ, GroupPermissionEvaluator
from ..core.config import VERSION, debug_enabled, validate_workflow_config
from ..core.context import Context
from ..core.db import health_check
from ..core.errors import StoreError
from ..core.schema import WorkItem
from ..workflow.factory import WorkflowServices, build_services
from ..workflow.request import ActionRequest
from ..workflow.service import WorkflowError
from .schemas import (
    ActionOptionsResponse,
    ActionOutcomeResponse,
    ActionRequestBody,
    GroupMembersResponse,
    GroupResponse,
    HealthResponse,
    PersonResponse,
)

app = FastAPI(
    title="Review Workflow API",
    version=VERSION,
    description="Reviewer assignment, scoring and evaluation for submitted work items",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

_services: Optional[WorkflowServices] = None


def get_services() -> WorkflowServices:
    global _services
    if _services is None:
        _services = build_services()
    return _services


def get_context(x_user_id: Optional[str] = Header(default=None),
                services: WorkflowServices = Depends(get_services)) -> Context:
    person = services.identity.find_person(x_user_id) if x_user_id else None
    context = Context(current_user=person)
    context.admin = services.authorize.is_admin(context)
    return context


def _get_work_item(services: WorkflowServices, item_id: int) -> WorkItem:
    work_item = services.items.find(item_id)
    if work_item is None:
        raise HTTPException(status_code=404, detail="Work item not found")
    return work_item


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(services: WorkflowServices = Depends(get_services)):
    """Check system health."""
    db_health = health_check()
    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        config_issues=validate_workflow_config(services.configuration)
    )


@app.get("/workflow/items/{item_id}/options", response_model=ActionOptionsResponse)
def get_action_options(item_id: int, services: WorkflowServices = Depends(get_services)):
    work_item = _get_work_item(services, item_id)
    try:
        options = services.workflow.options_for(work_item)
    except WorkflowError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ActionOptionsResponse(item_id=work_item.id, **options)


@app.post("/workflow/items/{item_id}/actions", response_model=ActionOutcomeResponse)
def execute_action(item_id: int, body: ActionRequestBody,
                   services: WorkflowServices = Depends(get_services),
                   context: Context = Depends(get_context)):
    if context.current_user is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    work_item = _get_work_item(services, item_id)
    try:
        outcome = services.workflow.execute(context, work_item, ActionRequest(body.parameters))
    except WorkflowError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ActionOutcomeResponse(
        item_id=work_item.id,
        type=outcome.type.value,
        outcome=outcome.outcome,
        step_id=work_item.step_id,
        active=work_item.active
    )


@app.get("/groups/{group_id}", response_model=GroupResponse)
def get_group(group_id: str, services: WorkflowServices = Depends(get_services),
              context: Context = Depends(get_context)):
    evaluator = GroupPermissionEvaluator(services.identity, services.items, services.authorize,
                                         services.configuration)
    if not (context.admin or evaluator.has_permission(context, group_id, GROUP_TYPE, READ)):
        raise HTTPException(status_code=403, detail="Not permitted")

    group = services.identity.find_group(group_id)
    if group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return GroupResponse(id=group.id, name=group.name, permanent=group.permanent)


@app.get("/groups/{group_id}/members", response_model=GroupMembersResponse)
def get_group_members(group_id: str,
                      offset: int = Query(default=0, ge=0),
                      limit: int = Query(default=20, ge=1, le=100),
                      services: WorkflowServices = Depends(get_services),
                      context: Context = Depends(get_context)):
    if context.current_user is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    members_service = GroupMembersService(services.identity, services.items, services.authorize,
                                          services.configuration)
    try:
        page = members_service.list_members(context, group_id, offset=offset, limit=limit)
    except GroupNotFoundError:
        raise HTTPException(status_code=404, detail="Group not found")
    except AccessDeniedError:
        raise HTTPException(status_code=403, detail="Access denied to group members")

    return GroupMembersResponse(
        group_id=group_id,
        members=[PersonResponse(id=p.id, email=p.email, name=p.name) for p in page.members],
        total=page.total,
        offset=offset,
        limit=limit
    )


@app.exception_handler(StoreError)
async def store_error_handler(request, exc):
    logger.error(f"Store failure while handling {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal storage error"})
