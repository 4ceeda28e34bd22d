from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from structlog import get_logger

from app.api.deps import get_indexer, get_reader, get_store
from app.core.config import settings
from app.core.indexer import IndexMaintainer
from app.core.reader import IndexReader
from app.core.store import CustomerRecordStore
from app.schemas.customer import CustomerRecord

logger = get_logger()

router = APIRouter(prefix=settings.API_V1_STR, tags=["customer-records"])


@router.get("/customer-records/by-email/{email}")
async def get_customer_record_by_email(email: str, store: CustomerRecordStore = Depends(get_store)):
    record = await store.get_by_email(email)
    if record is None:
        raise HTTPException(status_code=404, detail="Customer record not found")
    return {"data": record.to_document()}


@router.get("/customer-records/{customer_id}")
async def get_customer_record(customer_id: str, store: CustomerRecordStore = Depends(get_store)):
    record = await store.get_by_id(customer_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Customer record not found")
    return {"data": record.to_document()}


@router.put("/customer-records/{customer_id}")
async def replace_customer_record(
    customer_id: str,
    record: CustomerRecord,
    indexer: IndexMaintainer = Depends(get_indexer),
):
    """
    Full replace (sync/seed). The body is the complete record and is stored as sent;
    updatedAt and friends are the client's responsibility.
    """
    if record.id != customer_id:
        raise HTTPException(status_code=400, detail="Record id does not match path id")

    result = await indexer.replace_and_reindex(customer_id, record)
    return {"data": record.to_document(), "index": result.model_dump()}


def _page(customer_ids: List[str], page: int, limit: int) -> Dict[str, Any]:
    start = (page - 1) * limit
    return {
        "data": customer_ids[start:start + limit],
        "meta": {"page": page, "limit": limit, "total": len(customer_ids)},
    }


@router.get("/businesses/{business_id}/customers")
async def get_business_customers(
    business_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    reader: IndexReader = Depends(get_reader),
):
    customer_ids = await reader.customers_for_business(business_id)
    return _page(customer_ids, page, limit)


@router.get("/tokens/{token_id}/customers")
async def get_token_customers(
    token_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    reader: IndexReader = Depends(get_reader),
):
    customer_ids = await reader.customers_for_token(token_id)
    return _page(customer_ids, page, limit)
