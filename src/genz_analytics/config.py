from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Data directory holding the three cleaned CSV exports and the boundary file.
# Override with GENZ_DATA_DIR when the data lives elsewhere.
DATA_DIR = Path(os.getenv("GENZ_DATA_DIR", str(PROJECT_ROOT / "data"))).expanduser()

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "GenZ Financial Literacy Analytics"
APP_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("GENZ_LOG_LEVEL", "INFO").strip().upper() or "INFO"

# ---------------------------------------------------------------------------
# Dataset sources
#
# By default the loader reads from DATA_DIR. If GENZ_DATA_BASE_URL is set,
# files are fetched over HTTP from "<base url>/<file name>" instead
# (e.g. a static host serving the dashboard's data/ folder).
# ---------------------------------------------------------------------------

DATA_BASE_URL = os.getenv("GENZ_DATA_BASE_URL", "").strip().rstrip("/")

SURVEY_FILE = os.getenv("GENZ_SURVEY_FILE", "GenZ_Financial_Literacy_Survey_CLEAN.csv").strip()
PROFILE_FILE = os.getenv("GENZ_PROFILE_FILE", "GenZ_Financial_Profile_CLEAN.csv").strip()
REGIONAL_FILE = os.getenv("GENZ_REGIONAL_FILE", "Regional_Economic_Indicators_CLEAN.csv").strip()

# Province boundary GeoJSON, only used for province name fallback matching
BOUNDARY_FILE = os.getenv("GENZ_BOUNDARY_FILE", "indonesia-provinces.json").strip()

HTTP_TIMEOUT_SECONDS = int(os.getenv("GENZ_HTTP_TIMEOUT_SECONDS", "60"))

# ---------------------------------------------------------------------------
# Scoring constants
# ---------------------------------------------------------------------------

# Ages are derived from birth year against a fixed reference year so that
# results do not drift with the wall clock.
REFERENCE_YEAR = 2025

# Survey answers are a 1..4 Likert scale; 0 marks a missing answer.
LIKERT_MIN = 1
LIKERT_MAX = 4
QUESTION_COUNT = 48

# KPI cards use 0..4, the dimension radar uses 0..25
TARGET_SCALE = 4
DIMENSION_SCALE = 25
