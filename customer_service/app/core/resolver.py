from dataclasses import dataclass, field
from typing import Iterable, Optional, Set

from app.schemas.customer import TokenItem

# Legacy documents sometimes hold the business id in businessName
BUSINESS_ID_PREFIX = "business_"
CAMPAIGN_PREFIX = "campaign-"


@dataclass
class ResolvedIds:
    business_ids: Set[str] = field(default_factory=set)
    token_ids: Set[str] = field(default_factory=set)
    campaign_doc_ids: Set[str] = field(default_factory=set)

    @property
    def all_token_ids(self) -> Set[str]:
        """Token key space used by token:{id}:customers and customer:{id}:tokens."""
        return self.token_ids | self.campaign_doc_ids


def effective_business_id(item: TokenItem) -> str:
    business_name = item.business_name_text
    if business_name.startswith(BUSINESS_ID_PREFIX):
        return business_name
    return item.business_id_text


def campaign_doc_id(item_id: str) -> Optional[str]:
    """
    Campaign item ids look like campaign-{documentId}-{slug}.
    Splits on the first hyphen, so a document id containing '-' is truncated.
    """
    if not item_id.startswith(CAMPAIGN_PREFIX):
        return None
    doc_id = item_id[len(CAMPAIGN_PREFIX):].split("-", 1)[0]
    return doc_id or None


def resolve(items: Iterable[TokenItem]) -> ResolvedIds:
    """Never raises: items without usable identifiers contribute nothing."""
    resolved = ResolvedIds()
    for item in items:
        business_id = effective_business_id(item)
        if business_id:
            resolved.business_ids.add(business_id)

        token_id = item.id_text
        if not token_id:
            continue
        resolved.token_ids.add(token_id)

        doc_id = campaign_doc_id(token_id)
        if doc_id:
            resolved.campaign_doc_ids.add(doc_id)
    return resolved
