"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
DEFAULT_STOCK_THRESHOLD = 10
DEFAULT_INVOICE_PREFIX = "INV-"
DUE_MANAGEMENT_SOURCE = "due-management"
UNCATEGORIZED = "__none__"
WALK_IN_CUSTOMER = "Walk-in Customer"
MAIN_BRANCH_LABEL = "Main"
MAX_EXPORT_ROWS = 10000
EMPLOYEE_ID_PREFIX = "E"
