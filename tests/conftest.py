import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_DATA_DIR = tempfile.mkdtemp(prefix="distortion_tests_")
os.environ["REQUIRE_BOT_TOKEN"] = "false"
os.environ.setdefault("DATA_DIR", _DATA_DIR)
os.environ.setdefault("OPERATIONS_DIR", str(Path(_DATA_DIR) / "operations"))
os.environ.setdefault("PROGRESS_INTERVAL_SECONDS", "5")
