from __future__ import annotations

# The "і" below is CYRILLIC SMALL LETTER BYELORUSSIAN-UKRAINIAN I (U+0456), not ASCII "i".
# Existing ticket channels carry it in both the name and the topic, so it must not change.
TICKET_NAME_PREFIX = "tіcket-"
TICKET_TOPIC_MARKER = "tіcket"
TOPIC_DELIMITER = "|"
DEFAULT_CATEGORY_NAME = "Default"

CUSTOM_ID_TICKET_CREATE = "TICKET_CREATE"
CUSTOM_ID_TICKET_CLOSE = "TICKET_CLOSE"
CUSTOM_ID_CATEGORY_MENU = "ticket-menu"

MAX_CATEGORIES = 25
MAX_TICKET_LIMIT = 100

OPEN_SUCCESS = "success"
OPEN_MISSING_PERMISSION = "missing_permission"
OPEN_ALREADY_EXISTS = "already_exists"
OPEN_LIMIT_REACHED = "limit_reached"
OPEN_TIMEOUT = "timeout"
OPEN_CREATION_ERROR = "creation_error"
OPEN_INVALID_CONTEXT = "invalid_context"

CLOSE_SUCCESS = "success"
CLOSE_MISSING_PERMISSIONS = "missing_permissions"
CLOSE_ERROR = "error"
CLOSE_NOT_A_TICKET = "not_a_ticket"

CLOSE_ALL_REASON = "Force close all open tickets"
UNKNOWN_USER = "Unknown"
