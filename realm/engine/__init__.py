"""
Province Strategy Turn Engine
Turn resolution, construction eligibility and diplomacy - no web framework, database, or UI
"""

DEFAULT_COLONIZATION_COST = 100
DEFAULT_BUILDING_COST = 100

# Event log retention: hard cap on stored entries, and the size kept by a manual trim.
MAX_LOG_ENTRIES = 200
TRIM_LOG_TO = 50
