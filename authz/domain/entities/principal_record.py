"""Principal record entity (application database mirror)."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass
class PrincipalRecord:
    """Application database record for a principal.

    The database is the system of record for the role; the identity provider
    profile mirrors it. The role consistency verifier is the only sanctioned
    path for healing divergence between the two.

    Attributes:
        id: Internal primary key.
        external_id: Identity provider user id.
        email: Email address.
        role: Stored role value.
        first_name: Given name.
        last_name: Family name.
        is_deleted: Soft-delete flag (deleted records are not verified).
        last_role_sync: Source and timestamp of the last role write.
        created_at: Record creation time.
        updated_at: Last modification time.
    """

    id: UUID
    external_id: str
    email: str | None
    role: str
    first_name: str | None = None
    last_name: str | None = None
    is_deleted: bool = False
    last_role_sync: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
