"""Configuration settings for the clicker economy core."""

import os
from dotenv import load_dotenv
load_dotenv()

# Base directory paths
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.path.join(BASE_DIR, "data")

# Economy tables (defaults; remote snapshots are merged on top)
ECONOMY_CONFIG_PATH = os.getenv(
    "CLICKER_CONFIG_PATH",
    os.path.join(DATA_DIR, "clicker", "economy.json"),
)

# Persistence adapter
DB_PATH = os.getenv("CLICKER_DB_PATH", os.path.join(DATA_DIR, "clicker.db"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "logs", "clicker.log"))

# Session timers (seconds)
AUTOSAVE_INTERVAL_SECONDS = float(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "30"))
BOOST_SWEEP_INTERVAL_SECONDS = float(os.getenv("BOOST_SWEEP_INTERVAL_SECONDS", "1"))
