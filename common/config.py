import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Downloaded images only live here while they are being measured
TEMP_DIR = Path(os.getenv("TEMP_DIR", str(BASE_DIR / "temp")))

# Store master data: explicit override first, then the usual locations
STORE_MASTER_CSV = os.getenv("STORE_MASTER_CSV")
STORE_CSV_CANDIDATES = [
    BASE_DIR / "data" / "StoreMasterAssignment.csv",
    Path.cwd() / "data" / "StoreMasterAssignment.csv",
    Path.cwd() / "StoreMasterAssignment.csv",
]
if STORE_MASTER_CSV:
    STORE_CSV_CANDIDATES.insert(0, Path(STORE_MASTER_CSV))

# Simulated per-image processing time, in milliseconds
DELAY_MIN_MS = int(os.getenv("DELAY_MIN_MS", "100"))
DELAY_MAX_MS = int(os.getenv("DELAY_MAX_MS", "400"))

DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "30"))

TEMP_DIR.mkdir(parents=True, exist_ok=True)
