"""Shared constants used across the application."""

# Random bytes in an email token (hex encoded, so tokens are twice as long)
TOKEN_BYTES = 32

# Finance defaults
DEFAULT_CATEGORY_ICON = "Package"
DEFAULT_BUDGET_NAME = "Monthly Budget"

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

# Budget progress thresholds, in percent of the budgeted amount
BUDGET_GOOD_BELOW = 90.0
BUDGET_WARNING_ABOVE = 95.0
BUDGET_LIMIT = 100.0

# Where the verify-email endpoint sends the browser after a successful check
LOGIN_VERIFIED_REDIRECT = "/login?verified=true"
