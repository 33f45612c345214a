from __future__ import annotations

from typing import Optional, Protocol


class SystemConfigRepository(Protocol):
    def get_value(self, key: str) -> Optional[str]:
        raise NotImplementedError
