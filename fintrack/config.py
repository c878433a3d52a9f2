"""Runtime settings, overridable through the environment or a ``.env`` file."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

SAVES_DIR = Path(os.getenv("FINTRACK_SAVES_DIR", "saves"))

# Hour of day (local time) at which a live session re-runs the recurring scheduler
RECHECK_HOUR = int(os.getenv("FINTRACK_RECHECK_HOUR", "0"))
DAILY_RECHECK = os.getenv("FINTRACK_DAILY_RECHECK", "1").lower() not in ("0", "false", "no")

# Transactions of a deleted category are moved here
FALLBACK_CATEGORY = "Food"
