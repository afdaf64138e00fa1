"""Protocol review routes.

GET    /protocols                               — list, with reviewer / due-state / period / search filters
GET    /protocols/{ref}                         — protocol detail
POST   /protocols/bulk-reassign                 — reassign one reviewer across several protocols
POST   /protocols/{ref}/reassign                — swap the reviewer on one assignment
POST   /protocols/{ref}/reviews/complete        — mark a reviewer's assignment Completed
POST   /protocols/{ref}/reviews/reopen          — put a Completed assignment back In Progress

``ref`` is the storage token: ``<id>`` for flat records or
``<month>/<week>/<id>`` for hierarchical ones.
"""
from __future__ import annotations

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from app.api.deps import get_catalog, get_reassignment_service, get_review_workflow
from app.review.catalog import DUE_STATE_ALL, ProtocolCatalog
from app.review.due_dates import resolve_representative_due_date
from app.review.forms import form_type_name
from app.review.models import Protocol
from app.review.reassignment import ReassignmentService
from app.review.status import aggregate_status, completion_counts
from app.review.temporal import due_state as badge_for
from app.review.workflow import ReviewWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/protocols", tags=["protocols"])


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class ReassignBody(BaseModel):
    from_reviewer_id: str
    to_reviewer_id: str
    to_reviewer_name: str | None = None
    from_reviewer_name: str | None = None
    new_due_date: date | None = None
    reason: str | None = None
    actor: str = "system"


class BulkReassignBody(ReassignBody):
    protocol_refs: list[str] = Field(min_length=1)


class ReviewStatusBody(BaseModel):
    reviewer_id: str
    reviewer_name: str | None = None
    completed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_protocol(protocol: Protocol, reference_now: date | None = None) -> dict:
    status = aggregate_status(protocol)
    due = resolve_representative_due_date(protocol, reference_now)
    completed, total = completion_counts(protocol)
    return {
        "protocol_id": protocol.protocol_id,
        "ref": protocol.storage_path,
        "name": protocol.name,
        "status": status.value,
        "due_date": _iso(due),
        "due_state": badge_for(status, due, reference_now),
        "completed_reviews": completed,
        "total_reviews": total,
        "release_period": protocol.release_period,
        "academic_level": protocol.academic_level,
        "document_type": protocol.document_type,
        "record_shape": protocol.shape.value,
        "reviewers": [
            {
                "id": a.reviewer_id,
                "name": a.reviewer_name,
                "status": a.status.value,
                "document_type": a.document_type,
                "form_name": form_type_name(a.document_type or protocol.document_type),
                "due_date": _iso(protocol.effective_due_date(a)),
                "due_state": badge_for(a.status, protocol.effective_due_date(a), reference_now),
                "completed_at": _iso(a.completed_at),
            }
            for a in protocol.assignments
        ],
    }


def _serialize_detail(protocol: Protocol, reference_now: date | None = None) -> dict:
    result = serialize_protocol(protocol, reference_now)
    result["created_at"] = _iso(protocol.created_at)
    result["legacy_reviewer"] = protocol.legacy_reviewer
    result["history"] = [
        {
            "id": h.entry_id,
            "type": h.event_type,
            "from": h.from_reviewer,
            "to": h.to_reviewer,
            "date": _iso(h.date),
            "reason": h.reason,
            "actor": h.actor,
        }
        for h in protocol.history
    ]
    return result


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("", summary="List protocols")
def list_protocols(
    reviewer_id: str | None = None,
    reviewer_name: str | None = None,
    due_state: str = DUE_STATE_ALL,
    release_period: str | None = None,
    q: str | None = None,
    as_of: date | None = Query(default=None, description="Reference date for due-date classification"),
    catalog: ProtocolCatalog = Depends(get_catalog),
):
    protocols = catalog.load_all()
    if reviewer_id or reviewer_name:
        protocols = catalog.for_reviewer(reviewer_id, reviewer_name, protocols)
    if release_period:
        protocols = catalog.filter_by_release(release_period, protocols)
    if q:
        protocols = catalog.search(q, protocols)
    try:
        protocols = catalog.filter_by_due_state(due_state, as_of, protocols)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return [serialize_protocol(p, as_of) for p in protocols]


@router.post("/bulk-reassign", summary="Reassign a reviewer across several protocols")
def bulk_reassign(
    body: BulkReassignBody,
    service: ReassignmentService = Depends(get_reassignment_service),
):
    outcomes = service.bulk_reassign(
        body.protocol_refs,
        body.from_reviewer_id,
        body.to_reviewer_id,
        body.to_reviewer_name,
        from_reviewer_name=body.from_reviewer_name,
        new_due_date=body.new_due_date,
        reason=body.reason,
        actor=body.actor,
    )
    return {
        "succeeded": sum(1 for o in outcomes if o.ok),
        "failed": sum(1 for o in outcomes if not o.ok),
        "results": [
            {
                "ref": o.protocol_ref,
                "ok": o.ok,
                "error": o.error,
                "protocol": serialize_protocol(o.protocol) if o.protocol is not None else None,
            }
            for o in outcomes
        ],
    }


@router.post("/{ref:path}/reassign", summary="Reassign one reviewer on a protocol")
def reassign(
    ref: str,
    body: ReassignBody,
    service: ReassignmentService = Depends(get_reassignment_service),
):
    try:
        protocol = service.reassign(
            ref,
            body.from_reviewer_id,
            body.to_reviewer_id,
            body.to_reviewer_name,
            from_reviewer_name=body.from_reviewer_name,
            new_due_date=body.new_due_date,
            reason=body.reason,
            actor=body.actor,
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _serialize_detail(protocol)


@router.post("/{ref:path}/reviews/complete", summary="Mark a reviewer's assignment Completed")
def complete_review(
    ref: str,
    body: ReviewStatusBody,
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    try:
        protocol = workflow.mark_completed(
            ref,
            body.reviewer_id,
            body.reviewer_name,
            completed_at=body.completed_at,
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _serialize_detail(protocol)


@router.post("/{ref:path}/reviews/reopen", summary="Put a Completed assignment back In Progress")
def reopen_review(
    ref: str,
    body: ReviewStatusBody,
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    try:
        protocol = workflow.mark_in_progress(ref, body.reviewer_id, body.reviewer_name)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _serialize_detail(protocol)


@router.get("/{ref:path}", summary="Protocol detail")
def get_protocol(
    ref: str,
    as_of: date | None = None,
    catalog: ProtocolCatalog = Depends(get_catalog),
):
    try:
        protocol = catalog.get(ref)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _serialize_detail(protocol, as_of)
