#!/usr/bin/env python3
"""Seed demo data: a mix of legacy and current protocol records, in both layouts.

Usage:
    python scripts/seed_demo.py          # uses DATABASE_URL / STORE_BACKEND from env / .env
    DATABASE_URL=... python scripts/seed_demo.py
"""
from __future__ import annotations

import sys
from datetime import date, timedelta

# Ensure project root is on sys.path
sys.path.insert(0, ".")

from app.core.logging import setup_logging
from app.core.settings import get_settings
from app.store import build_store
from app.store.base import DocumentStore, StoragePath


def _reviewer(rid: str, name: str, form: str, due: date, status: str = "In Progress", completed: date | None = None):
    return {
        "id": rid,
        "name": name,
        "document_type": form,
        "due_date": due.isoformat(),
        "status": status,
        "completed_at": completed.isoformat() if completed else None,
    }


def seed(store: DocumentStore, kind: str = "protocols") -> int:
    """Insert demo protocols; returns the number of records written."""
    today = date.today()
    records: list[tuple[StoragePath, dict]] = [
        # Legacy flat records: one reviewer string, record-level status and due date.
        (
            StoragePath("SPUP_2024_0101"),
            {
                "spup_rec_code": "SPUP_2024_0101",
                "research_title": "Sleep Patterns of Nursing Students",
                "reviewer": "Dr. Alicia Reyes",
                "status": "In Progress",
                "due_date": (today - timedelta(days=5)).isoformat(),
                "document_type": "ICA",
                "course_program": "BSN",
                "release_period": "First Release",
            },
        ),
        (
            StoragePath("SPUP_2024_0102"),
            {
                "spup_rec_code": "SPUP_2024_0102",
                "research_title": "Microfinance Adoption in Rural Cagayan",
                "reviewer": "DRBEN-014",
                "reviewer_name": "Dr. Benito Cruz",
                "status": "Completed",
                "due_date": (today - timedelta(days=20)).isoformat(),
                "completed_at": (today - timedelta(days=22)).isoformat(),
                "document_type": "PRA",
                "release_period": "First Release",
            },
        ),
        # Current flat record: two reviewers with independent due dates.
        (
            StoragePath("SPUP_2024_0115"),
            {
                "protocol_name": "Telehealth Uptake Among Senior Citizens",
                "reviewers": [
                    _reviewer("DRAPL-001", "Dr. Alicia Reyes", "Form 06B1 PRA", today + timedelta(days=2)),
                    _reviewer(
                        "DRBEN-014",
                        "Dr. Benito Cruz",
                        "Form 06C ICA",
                        today - timedelta(days=1),
                        status="Completed",
                        completed=today - timedelta(days=3),
                    ),
                ],
                "status": "Partially Completed",
                "due_date": (today + timedelta(days=2)).isoformat(),
                "academic_level": "Graduate",
                "release_period": "Second Release",
            },
        ),
        # Current hierarchical records under month/week.
        (
            StoragePath("SPUP_2024_0201", month="February", week="week-1"),
            {
                "protocol_name": "Water Quality Monitoring in Tuguegarao",
                "reviewers": [
                    _reviewer("DRCAR-007", "Dr. Carla Mendoza", "CFEFR", today + timedelta(days=10)),
                    _reviewer("DRDAN-022", "Dr. Daniel Santos", "PRA-EX", today + timedelta(days=6)),
                    _reviewer("DRAPL-001", "Dr. Alicia Reyes", "ICA", today - timedelta(days=8)),
                ],
                "status": "In Progress",
                "academic_level": "Undergraduate",
            },
        ),
        (
            StoragePath("SPUP_2024_0202", month="February", week="week-2"),
            {
                "protocol_name": "Mental Health Literacy of Teachers",
                "reviewers": [
                    _reviewer(
                        "DRCAR-007",
                        "Dr. Carla Mendoza",
                        "Form 04A CERF",
                        today - timedelta(days=12),
                        status="Completed",
                        completed=today - timedelta(days=10),
                    ),
                    _reviewer(
                        "DRDAN-022",
                        "Dr. Daniel Santos",
                        "PRA",
                        today - timedelta(days=12),
                        status="Completed",
                        completed=today - timedelta(days=13),
                    ),
                ],
                "status": "Completed",
                "completed_at": (today - timedelta(days=10)).isoformat(),
            },
        ),
    ]

    for path, data in records:
        data.setdefault("created_at", (today - timedelta(days=30)).isoformat())
        store.put(path, data, kind=kind)
    return len(records)


def main() -> None:
    setup_logging()
    settings = get_settings()
    store = build_store(settings)
    count = seed(store, kind=settings.protocol_kind)
    print(f"Seeded {count} protocol records into the {settings.store_backend} store.")


if __name__ == "__main__":
    main()
