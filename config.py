"""
config.py
Runtime settings. Every value can be overridden with an environment variable.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

DB_FILE = Path(os.environ.get("GYM_DB_FILE", BASE_DIR / "gym.db"))
PHOTOS_DIR = Path(os.environ.get("GYM_PHOTOS_DIR", BASE_DIR / "member_photos"))

GYM_NAME = os.environ.get("GYM_NAME", "Kavifit Gym")
CURRENCY = os.environ.get("GYM_CURRENCY", "₹")

# Prefixed to 10-digit local numbers when building WhatsApp links
COUNTRY_CODE = os.environ.get("GYM_COUNTRY_CODE", "91")

LOG_LEVEL = os.environ.get("GYM_LOG_LEVEL", "INFO")
