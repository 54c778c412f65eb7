from __future__ import annotations

import os
from pathlib import Path


DATA_DIR = Path(__file__).resolve().parent / "data"
DATABASE_URL = os.environ.get(
    "SHIFT_BUILDER_DATABASE_URL",
    f"sqlite:///{(DATA_DIR / 'schedule.db').as_posix()}",
)

# Local time-of-day is always derived in the organisation's zone, never the viewer's.
BUSINESS_TIMEZONE = "America/New_York"

DEFAULT_LOCATION = "Calder"
LOCATIONS = ("Calder", "Beaver", "Bagel Crust")

SCHEDULED_ROLE = "staff"

TARGET_WEEKLY_HOURS = 40
HOURS_THRESHOLD = 5

ALL_DAY_TOLERANCE_MINUTES = 1

SHIFT_STATUS_CHOICES = {"draft", "published"}
TIME_OFF_STATUS_CHOICES = {"approved", "pending", "denied"}
