"""Pure constants for the view pipeline. No side effects at import time."""

from pathlib import Path

# === Directories ===
# Use absolute path relative to project root (parent of view-pipeline/)
_PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = _PROJECT_ROOT / "data"
CURSOR_FILE_NAME = "resume_cursors.json"

# === API ===
X_API_BASE_URL = "https://api.x.com"
DEFAULT_REQUEST_TIMEOUT = 30

# === Batching ===
DEFAULT_BATCH_SIZE = 10
MAX_ITEMS_PER_RUN = 300  # Keeps one invocation inside a typical job time limit

# === Delays (seconds) ===
DEFAULT_API_CALL_DELAY = 1.0  # Flat spacing between items in a batch
DEFAULT_BATCH_DELAY = 5.0  # Pause between batches
INITIAL_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 60.0

# === Rate Limit ===
MAX_RETRIES = 3  # Attempts per item
RATE_LIMIT_ABORT_THRESHOLD = 3  # Consecutive 429s before the run stops

# === Sheet layout ===
DEFAULT_INPUT_COLUMN = "A"
DEFAULT_OUTPUT_COLUMN = "B"
DEFAULT_START_ROW = 2  # Row 1 holds the header
