"""Report routes.

GET /reports/summary               — dashboard headline counts + upcoming list
GET /reports/overdue-reviewers     — pending assignments past their due date
GET /reports/reviewers             — assigned / completed / overdue per reviewer
GET /reports/reviewer-speed        — mean completion delay per reviewer
GET /reports/completion-by-period  — completed vs not per release period
GET /reports/upcoming              — pending protocols due within the window
GET /reports/reminders             — overdue and due-soon work grouped by reviewer
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_catalog
from app.core.settings import Settings, get_settings
from app.review import reports
from app.review.catalog import ProtocolCatalog

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary", summary="Dashboard summary")
def summary(
    as_of: date | None = None,
    catalog: ProtocolCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
):
    result = reports.dashboard_summary(
        catalog.load_all(),
        as_of,
        upcoming_window_days=settings.upcoming_window_days,
    )
    return asdict(result)


@router.get("/overdue-reviewers", summary="Overdue reviewer assignments")
def overdue_reviewers(
    as_of: date | None = None,
    catalog: ProtocolCatalog = Depends(get_catalog),
):
    return [asdict(row) for row in reports.overdue_reviewer_list(catalog.load_all(), as_of)]


@router.get("/reviewers", summary="Reviewer workload")
def reviewer_workload(
    as_of: date | None = None,
    catalog: ProtocolCatalog = Depends(get_catalog),
):
    return [
        {**asdict(stats), "pending": stats.pending}
        for stats in reports.reviewer_stats(catalog.load_all(), as_of)
    ]


@router.get("/reviewer-speed", summary="Reviewer completion speed")
def reviewer_speed(
    min_samples: int = Query(default=reports.MIN_SPEED_SAMPLES, ge=1),
    catalog: ProtocolCatalog = Depends(get_catalog),
):
    return [asdict(row) for row in reports.reviewer_speed(catalog.load_all(), min_samples)]


@router.get("/completion-by-period", summary="Completion tally per release period")
def completion_by_period(catalog: ProtocolCatalog = Depends(get_catalog)):
    return [
        {**asdict(tally), "total": tally.total}
        for tally in reports.completion_by_period(catalog.load_all())
    ]


@router.get("/upcoming", summary="Protocols due in the next few days")
def upcoming(
    as_of: date | None = None,
    window_days: int | None = Query(default=None, ge=0),
    catalog: ProtocolCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
):
    window = settings.upcoming_window_days if window_days is None else window_days
    return [asdict(row) for row in reports.upcoming_protocols(catalog.load_all(), as_of, window)]


@router.get("/reminders", summary="Overdue and due-soon reminders per reviewer")
def reminders(
    as_of: date | None = None,
    catalog: ProtocolCatalog = Depends(get_catalog),
):
    return [asdict(row) for row in reports.reviewer_reminders(catalog.load_all(), as_of)]
