"""
Application-wide constants.
Centralizes magic numbers and format strings.
"""

# Wire formats (business-local wall clock)
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

# Time constants
MINUTES_IN_DAY = 24 * 60
LAST_MINUTE_OF_DAY = MINUTES_IN_DAY - 1

# Timezone used when a business has none configured or an invalid one
FALLBACK_TIMEZONE = "UTC"

# Weekday numbering used by weekly hours: 0=Sunday .. 6=Saturday
SUNDAY = 0
SATURDAY = 6

# Display limits
APPOINTMENTS_LIST_LIMIT = 50
