"""
DDD Service Backend - Lucrari (Service Records) API Endpoints
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): CSV export download and email
v1.0.0 (2026-09-28): Initial read-only listing

Service records are written only by the submission workflow; this router
lists, exports and clears them. Every number shown is numar_ordine - 1.
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from datetime import date
from typing import Optional
import logging

from ddd_backend.api.auth import require_admin
from ddd_backend.database import get_db, execute_one, execute_all, execute_update
from ddd_backend.errors import ExternalCallError, ValidationError
from ddd_backend.services.data_store import DataStore
from ddd_backend.services.lucrari_export import export_lucrari
from ddd_backend.services.mailer import Mailer, MailConfig, RecipientSource
from ddd_backend.services.reception import display_order_number

router = APIRouter(prefix="/lucrari", tags=["lucrari"],
                   dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


class ExportEmailRequest(BaseModel):
    recipient: Optional[str] = Field(None, alias="recipientEmail")
    to: Optional[str] = None


def _with_display_number(row: dict) -> dict:
    row["display_number"] = display_order_number(row["numar_ordine"])
    return row


@router.get("")
async def list_lucrari(search: Optional[str] = None, limit: int = 1000):
    """List service records, newest first"""
    async with get_db() as db:
        if search:
            term = f"%{search.lower()}%"
            rows = await execute_all(db, """
                SELECT * FROM lucrari
                WHERE LOWER(client_name) LIKE ?
                   OR LOWER(employee_name) LIKE ?
                   OR CAST(numar_ordine - 1 AS TEXT) LIKE ?
                ORDER BY created_at DESC, id DESC LIMIT ?
            """, (term, term, term, limit))
        else:
            rows = await execute_all(
                db, "SELECT * FROM lucrari ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,)
            )
    return [_with_display_number(row) for row in rows]


@router.get("/export.csv")
async def download_export():
    """CSV export of every service record (UTF-8 with BOM)"""
    try:
        content = await export_lucrari(DataStore())
    except ExternalCallError as e:
        logger.error(f"Export failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    filename = f"lucrari_export_{date.today().isoformat()}.csv"
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/export/email")
async def email_export(data: ExportEmailRequest):
    """Send the CSV export to the given address"""
    mailer = Mailer(MailConfig.from_settings(RecipientSource.FROM_REQUEST))
    try:
        content = await export_lucrari(DataStore())
        result = await mailer.send_csv_export(content, data.recipient or data.to)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalCallError as e:
        logger.error(f"Export email failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return result.model_dump(by_alias=True)


@router.get("/{lucrare_id}")
async def get_lucrare(lucrare_id: int):
    async with get_db() as db:
        row = await execute_one(db, "SELECT * FROM lucrari WHERE id = ?", (lucrare_id,))
    if not row:
        raise HTTPException(status_code=404, detail="Lucrare not found")
    return _with_display_number(row)


@router.delete("")
async def clear_lucrari():
    """Delete every service record"""
    async with get_db() as db:
        count = await execute_update(db, "DELETE FROM lucrari")
    logger.warning(f"Cleared {count} lucrari")
    return {"success": True, "deleted": count}
