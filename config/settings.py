"""Centralized configuration management."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
SRC_DIR = BASE_DIR / "src"
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Durable blob store holding the serialized database image
DEFAULT_BLOB_STORE_PATH = DATA_DIR / "local_store.db"
BLOB_STORE_URL = os.getenv("BLOB_STORE_URL", f"sqlite:///{DEFAULT_BLOB_STORE_PATH}")
BLOB_STORE_KEY = os.getenv("BLOB_STORE_KEY", "dbFile")

# Export / import
EXPORT_FILE_PREFIX = os.getenv("EXPORT_FILE_PREFIX", "resume_analyzer")
