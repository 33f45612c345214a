"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

ENTITY_TYPE_ATTENDANCE = "ATTENDANCE"

# system_config keys
SELF_MARK_ENABLED_KEY = "ATTENDANCE_SELF_MARK_ENABLED"
MONTH_CLOSE_ENABLED_KEY = "MONTH_CLOSE_ENABLED"
TRUTHY_CONFIG_VALUES = frozenset({"true", "1", "yes", "enabled"})

BULK_MAX_ITEMS = 500

LEAVE_NOTE_PREFIX = "LEAVE_REQUEST"
REVERTED_LEAVE_NOTE_PREFIX = "REVERTED_LEAVE_REQUEST"

# Column widths in attendance_record / audit_log
NOTE_MAX_LENGTH = 500
REASON_MAX_LENGTH = 500
ACTOR_ID_MAX_LENGTH = 36
REQUEST_ID_MAX_LENGTH = 64
