from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_max_length(value: Optional[str], field_name: str, max_len: Optional[int]) -> Optional[str]:
    if value is not None and max_len is not None and len(str(value)) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def require_non_empty(value: Optional[str], field_name: str, *, max_len: Optional[int] = None) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return require_max_length(str(value).strip(), field_name, max_len)


def optional_trimmed(
    value: Optional[str], field_name: str = "Value", *, max_len: Optional[int] = None
) -> Optional[str]:
    """Trim free text; blank collapses to None."""
    if value is None:
        return None
    return require_max_length(str(value).strip() or None, field_name, max_len)
