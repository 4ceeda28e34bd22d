from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional


def identifier_text(value: Any) -> str:
    """
    String form of a stored identifier, trimmed. Legacy items carry numbers
    and booleans here; null, objects and arrays yield ''.
    """
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


class TokenItem(BaseModel):
    """
    A reward or campaign held by a customer, embedded in the record's `rewards` array.
    Identifier fields keep whatever the writer stored so the item round-trips unchanged;
    the *_text properties give their string form. Everything else (name, count, icon, qrCode...) is kept as-is.
    """
    model_config = ConfigDict(extra="allow")

    id: Any = None
    business_id: Any = Field(default=None, alias="businessId")
    business_name: Any = Field(default=None, alias="businessName")

    @property
    def id_text(self) -> str:
        return identifier_text(self.id)

    @property
    def business_id_text(self) -> str:
        return identifier_text(self.business_id)

    @property
    def business_name_text(self) -> str:
        return identifier_text(self.business_name)


class CustomerRecord(BaseModel):
    """Full customer document stored at customer:{id}. Profile fields pass through untouched."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    email: Optional[str] = None
    token_items: List[TokenItem] = Field(default_factory=list, alias="rewards")

    @field_validator("token_items", mode="before")
    @classmethod
    def coerce_missing_items(cls, v: Any) -> Any:
        # Legacy documents carry null or a non-array here
        if not isinstance(v, list):
            return []
        return v

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready dict with the stored key names and only the fields the writer supplied."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class EmailIndexEntry(BaseModel):
    """Value stored at customer:email:{email}."""
    model_config = ConfigDict(populate_by_name=True)

    customer_id: str = Field(alias="customerId")
