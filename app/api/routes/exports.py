"""Export routes.

GET /exports/protocols.csv  — download protocols as CSV
"""
from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from app.api.deps import get_catalog
from app.core.settings import Settings, get_settings
from app.export.csv_exporter import ProtocolCSVExporter, export_file_name
from app.review.catalog import DUE_STATE_ALL, ProtocolCatalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/protocols.csv", summary="Download protocols as CSV")
def export_protocols(
    fields: str | None = None,
    due_state: str = DUE_STATE_ALL,
    release_period: str | None = None,
    as_of: date | None = None,
    catalog: ProtocolCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
):
    requested = [f for f in fields.split(",") if f.strip()] if fields else None
    exporter = ProtocolCSVExporter(catalog)
    try:
        content = exporter.render(
            requested,
            due_state=due_state,
            release_period=release_period,
            reference_now=as_of,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    file_name = export_file_name(settings.protocol_kind, as_of)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
