from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import ENTITY_TYPE_ATTENDANCE
from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable before/after record of one state change."""

    entity_id: str
    action: AuditAction
    before_data: Optional[dict]
    after_data: Optional[dict]
    actor_id: str
    reason: Optional[str] = None
    request_id: Optional[str] = None
    entity_type: str = ENTITY_TYPE_ATTENDANCE
