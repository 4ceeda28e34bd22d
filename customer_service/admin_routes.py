from datetime import datetime
from fastapi import APIRouter, Depends
from structlog import get_logger

from app.api.deps import get_backfill_job, get_reader, verify_admin_token
from app.core.backfill import BackfillJob
from app.core.reader import IndexReader

logger = get_logger()

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/index", dependencies=[Depends(verify_admin_token)])
async def dump_index(reader: IndexReader = Depends(get_reader)):
    """
    Raw contents of the token-link index for inspection.
    Keys: business:*:customers, token:*:customers, customer:*:businesses, customer:*:tokens.
    """
    data = await reader.dump_index()
    return {"data": data, "meta": {"keys": len(data), "generated_at": datetime.now().isoformat()}}


@router.get("/customers/{customer_id}/links", dependencies=[Depends(verify_admin_token)])
async def get_customer_links(customer_id: str, reader: IndexReader = Depends(get_reader)):
    return {
        "customer_id": customer_id,
        "businesses": await reader.businesses_for_customer(customer_id),
        "tokens": await reader.tokens_for_customer(customer_id),
    }


@router.post("/index/backfill", dependencies=[Depends(verify_admin_token)])
async def run_backfill(job: BackfillJob = Depends(get_backfill_job)):
    """
    Additive rebuild of the index from every stored record.
    Operator-triggered only; safe to repeat.
    """
    logger.info("backfill_requested", source="admin_api")
    report = await job.run()
    return {"status": "ok", "report": report.model_dump()}
