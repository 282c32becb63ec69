"""
conftest.py – central pytest configuration and test bootstrap.

Pytest imports this module before it collects any test files, which lets us prepare the
environment once for the whole suite:
  1) Extend `sys.path` with the project root so absolute-style imports like `from core ...`
     and `from shared ...` resolve without an editable install.
  2) Define safe defaults for the environment variables the `config` package validates at
     import time (messaging gateway credentials and agent identity), plus an LLM key so
     `get_client()` can be built. File logging is disabled so tests never write to logs/.
"""

import os
import sys
from pathlib import Path

# Ensure project root is on sys.path for direct imports like `core`, `shared`, etc.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Provide required environment defaults for tests
os.environ.setdefault("A1BASE_API_KEY", "test-api-key")
os.environ.setdefault("A1BASE_API_SECRET", "test-api-secret")
os.environ.setdefault("A1BASE_ACCOUNT_ID", "acc-123")
os.environ.setdefault("A1BASE_AGENT_NUMBER", "+61400000000")
os.environ.setdefault("A1BASE_AGENT_NAME", "Felicie")
os.environ.setdefault("A1BASE_AGENT_EMAIL", "felicie@a1send.com")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("LOG_FILE_PATH", "")
