from typing import Optional

from beanie import PydanticObjectId as OID

from curequeue.errors import InvalidInput


def parse_oid(value: Optional[str], what: str) -> OID:
    """Parse a client-supplied ObjectId string, 400 when malformed."""
    # ObjectId(None) would mint a fresh id
    if not value:
        raise InvalidInput(f"Invalid {what}")
    try:
        return OID(value)
    except Exception:
        raise InvalidInput(f"Invalid {what}")
