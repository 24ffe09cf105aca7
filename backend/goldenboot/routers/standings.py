"""Golden Boot table and spreadsheet export."""

from __future__ import annotations

import io

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

import pandas as pd

from ..dependencies import get_store, http_error
from ..services.record_store import RecordStore
from ..services.standings import compute_standings, standings_frame

router = APIRouter()


@router.get("/{league_id}")
async def get_standings(league_id: str, store: RecordStore = Depends(get_store)):
    """Teams by transfer-adjusted goals, highest first."""
    try:
        rows = compute_standings(store, league_id)
    except ValueError as e:
        raise http_error(e)
    return rows


@router.get("/{league_id}/export")
async def export_standings(
    league_id: str,
    format: str = Query("csv", description="Export format: 'csv' or 'xlsx'"),
    store: RecordStore = Depends(get_store),
):
    try:
        rows = compute_standings(store, league_id)
    except ValueError as e:
        raise http_error(e)
    df: pd.DataFrame = standings_frame(rows)
    filename = f"golden_boot_{league_id}"

    if format.lower() == "xlsx":
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Golden Boot")
        buf.seek(0)
        return StreamingResponse(
            buf,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
        )
    else:
        buf = io.StringIO()
        df.to_csv(buf, index=False)
        buf.seek(0)
        return StreamingResponse(
            buf,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
        )
