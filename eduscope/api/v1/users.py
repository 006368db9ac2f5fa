"""
Profile change request endpoints for the signed-in user.
"""

from typing import List

from fastapi import APIRouter, status

from eduscope.api.deps import Context, CurrentActor, DbSession, Workflow
from eduscope.kernel.ledger import PendingChangeLedger
from eduscope.orchestration import DEGREE_CHANGE, YEAR_CHANGE
from eduscope.schemas.common import ApiResponse
from eduscope.schemas.moderation import (
    DegreeChangeRequest,
    PendingChangeResponse,
    YearChangeRequest,
)

router = APIRouter()


@router.post(
    "/year-change",
    response_model=ApiResponse[PendingChangeResponse],
    status_code=status.HTTP_201_CREATED,
)
async def request_year_change(
    data: YearChangeRequest,
    actor: CurrentActor,
    workflow: Workflow,
    context: Context,
):
    """Request a change of academic year."""
    change = await workflow.propose(
        actor, YEAR_CHANGE, actor.id, data.model_dump(mode="json"), context=context,
    )
    return ApiResponse.ok(
        PendingChangeResponse.model_validate(change),
        message="Academic year change request submitted successfully",
    )


@router.get("/pending-year-change", response_model=ApiResponse[PendingChangeResponse])
async def get_pending_year_change(actor: CurrentActor, workflow: Workflow, context: Context):
    change = await workflow.get_open_for_host(actor, YEAR_CHANGE, actor.id, context=context)
    return ApiResponse.ok(PendingChangeResponse.model_validate(change) if change else None)


@router.post(
    "/degree-change",
    response_model=ApiResponse[PendingChangeResponse],
    status_code=status.HTTP_201_CREATED,
)
async def request_degree_change(
    data: DegreeChangeRequest,
    actor: CurrentActor,
    workflow: Workflow,
    context: Context,
):
    """Request a move to another degree programme."""
    change = await workflow.propose(
        actor, DEGREE_CHANGE, actor.id, data.model_dump(mode="json"), context=context,
    )
    return ApiResponse.ok(
        PendingChangeResponse.model_validate(change),
        message="Degree change request submitted successfully",
    )


@router.get("/pending-degree-change", response_model=ApiResponse[PendingChangeResponse])
async def get_pending_degree_change(actor: CurrentActor, workflow: Workflow, context: Context):
    change = await workflow.get_open_for_host(actor, DEGREE_CHANGE, actor.id, context=context)
    return ApiResponse.ok(PendingChangeResponse.model_validate(change) if change else None)


@router.get("/change-requests", response_model=ApiResponse[List[PendingChangeResponse]])
async def list_my_change_requests(actor: CurrentActor, db: DbSession):
    """Every change request the caller has made, newest first."""
    changes = await PendingChangeLedger(db).list_for_requester(actor.id)
    return ApiResponse.ok([PendingChangeResponse.model_validate(c) for c in changes])
