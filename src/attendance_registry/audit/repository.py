from __future__ import annotations

from typing import Protocol

from .model import AuditLogEntry


class AuditLogRepository(Protocol):
    def append(self, entry: AuditLogEntry) -> str:
        """Append one entry inside the caller's transaction; return its id.

        Raises AuditWriteError when the write fails.
        """

        raise NotImplementedError
