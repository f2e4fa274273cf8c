"""Health check endpoints for monitoring."""
from typing import Dict, Any
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from receipt_enrichment.api.dependencies import get_receipt_repository
from receipt_enrichment.services.receipt_repository import ReceiptRepository
from receipt_enrichment.utils.helpers import utc_now_iso

router = APIRouter()


@router.api_route("/health", methods=["GET", "HEAD"])
async def health_check(repository: ReceiptRepository = Depends(get_receipt_repository)) -> Dict[str, Any]:
    """Health check with a database round trip (supports GET & HEAD)."""
    if not await repository.ping():
        return JSONResponse(
            status_code=503,
            content={
                "status": "error",
                "message": "Database connection failed",
                "timestamp": utc_now_iso(),
            },
        )
    return {"status": "ok", "timestamp": utc_now_iso()}
