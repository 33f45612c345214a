from __future__ import annotations

from typing import Optional

from ..core.constants import MONTH_CLOSE_ENABLED_KEY, SELF_MARK_ENABLED_KEY, TRUTHY_CONFIG_VALUES
from .repository import SystemConfigRepository


def is_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_CONFIG_VALUES


class FeatureFlags:
    """Runtime toggles stored in system_config; a missing key means disabled."""

    def __init__(self, config: SystemConfigRepository):
        self._config = config

    def is_self_mark_enabled(self) -> bool:
        return is_truthy(self._config.get_value(SELF_MARK_ENABLED_KEY))

    def is_month_close_enforced(self) -> bool:
        return is_truthy(self._config.get_value(MONTH_CLOSE_ENABLED_KEY))
