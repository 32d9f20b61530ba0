from beanie import Document, Indexed
from pydantic import Field
from datetime import datetime, timezone
from curequeue.constants import Role


class User(Document):
    """A system account: patient, doctor or admin.

    Everyone signs in with email + password; the role decides which
    queue operations the account may perform.
    """

    name: str
    email: Indexed(str, unique=True)  # stored lower-cased
    password_hash: str
    phone: str | None = None
    address: str | None = None
    role: Role = Role.PATIENT
    home_visit_fee: float | None = None  # doctors only

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "users"
