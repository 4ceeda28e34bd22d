from app.schemas.customer import CustomerRecord, TokenItem, EmailIndexEntry
from app.schemas.index import IndexUpdateResult, BackfillReport

__all__ = [
    "CustomerRecord", "TokenItem", "EmailIndexEntry",
    "IndexUpdateResult", "BackfillReport"
]
