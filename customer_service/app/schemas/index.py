from pydantic import BaseModel


class IndexUpdateResult(BaseModel):
    """Index bookkeeping performed by one replace. The document write itself always succeeded."""
    customer_id: str
    business_links_added: int = 0
    business_links_removed: int = 0
    token_links_added: int = 0
    token_links_removed: int = 0
    failed_mutations: int = 0

    @property
    def consistent(self) -> bool:
        return self.failed_mutations == 0


class BackfillReport(BaseModel):
    processed: int = 0
    with_links: int = 0
    business_links_written: int = 0
    token_links_written: int = 0
    malformed: int = 0
