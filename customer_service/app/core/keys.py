"""Redis key layout for customer records and the token-link index."""

CUSTOMER_PREFIX = "customer:"
EMAIL_PREFIX = "customer:email:"
PHONE_PREFIX = "customer:phone:"


def customer(customer_id: str) -> str:
    return f"customer:{customer_id}"


def customer_by_email(normalized_email: str) -> str:
    return f"customer:email:{normalized_email}"


def business_customers(business_id: str) -> str:
    return f"business:{business_id}:customers"


def token_customers(token_id: str) -> str:
    return f"token:{token_id}:customers"


def customer_businesses(customer_id: str) -> str:
    return f"customer:{customer_id}:businesses"


def customer_tokens(customer_id: str) -> str:
    return f"customer:{customer_id}:tokens"


# SCAN patterns for the four index relations
INDEX_PATTERNS = (
    "business:*:customers",
    "token:*:customers",
    "customer:*:businesses",
    "customer:*:tokens",
)


def customer_id_from_key(key: str) -> str | None:
    """
    Returns the id of a primary document key (customer:{id}), or None for
    email/phone lookups and per-customer index keys.
    """
    if not key.startswith(CUSTOMER_PREFIX):
        return None
    if key.startswith(EMAIL_PREFIX) or key.startswith(PHONE_PREFIX):
        return None
    customer_id = key[len(CUSTOMER_PREFIX):]
    if not customer_id or ":" in customer_id:
        return None
    return customer_id


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()
