"""
Research paper endpoints.

Owners never edit or delete a paper directly; both go through the
moderation workflow as change requests.
"""

import uuid

from fastapi import APIRouter, status

from eduscope.api.deps import Context, DbSession, OptionalActor, Workflow
from eduscope.errors import NotFoundError
from eduscope.kernel.models.research_paper import ContentStatus
from eduscope.kernel.permissions import Capability, evaluate
from eduscope.kernel.stores import ResearchPaperStore
from eduscope.orchestration import PAPER_DELETE, PAPER_UPDATE
from eduscope.schemas.common import ApiResponse
from eduscope.schemas.moderation import (
    PaperChanges,
    PendingChangeResponse,
    ResearchPaperResponse,
)

router = APIRouter()


@router.get("/{paper_id}", response_model=ApiResponse[ResearchPaperResponse])
async def get_paper(paper_id: uuid.UUID, actor: OptionalActor, db: DbSession):
    """
    Get a research paper.

    Papers that are not yet approved are visible only to their owner and
    to moderators.
    """
    paper = await ResearchPaperStore(db).find_by_id(paper_id)
    if paper is None:
        raise NotFoundError("Research paper not found")

    if paper.status != ContentStatus.APPROVED.value:
        is_owner = actor is not None and paper.uploaded_by == actor.id
        if not is_owner and not evaluate(actor, Capability.PAPER_VIEW_ALL):
            raise NotFoundError("Research paper not found")

    return ApiResponse.ok(ResearchPaperResponse.model_validate(paper))


@router.post(
    "/{paper_id}/request-update",
    response_model=ApiResponse[PendingChangeResponse],
    status_code=status.HTTP_201_CREATED,
)
async def request_update(
    paper_id: uuid.UUID,
    data: PaperChanges,
    actor: OptionalActor,
    workflow: Workflow,
    context: Context,
):
    """Submit an update request for a paper the caller uploaded."""
    change = await workflow.propose(
        actor,
        PAPER_UPDATE,
        paper_id,
        data.model_dump(mode="json", exclude_unset=True),
        context=context,
    )
    return ApiResponse.ok(
        PendingChangeResponse.model_validate(change),
        message="Update request submitted successfully. Moderators will review your changes.",
    )


@router.post(
    "/{paper_id}/request-delete",
    response_model=ApiResponse[PendingChangeResponse],
    status_code=status.HTTP_201_CREATED,
)
async def request_delete(
    paper_id: uuid.UUID,
    actor: OptionalActor,
    workflow: Workflow,
    context: Context,
):
    """Submit a deletion request for a paper the caller uploaded."""
    change = await workflow.propose(actor, PAPER_DELETE, paper_id, context=context)
    return ApiResponse.ok(
        PendingChangeResponse.model_validate(change),
        message="Deletion request submitted successfully. Moderators will review your request.",
    )


@router.get(
    "/{paper_id}/pending-update",
    response_model=ApiResponse[PendingChangeResponse],
)
async def get_pending_update(
    paper_id: uuid.UUID,
    actor: OptionalActor,
    workflow: Workflow,
    context: Context,
):
    """The open update request on a paper, if any."""
    change = await workflow.get_open_for_host(actor, PAPER_UPDATE, paper_id, context=context)
    return ApiResponse.ok(PendingChangeResponse.model_validate(change) if change else None)
