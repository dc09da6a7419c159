"""
weatherly-auth entry point.

Runs the operator CLI against the file-backed stores under ./data
(override with --data-dir or WEATHERLY_DATA_DIR).
"""

import sys
from pathlib import Path

# Load .env before settings are read
from dotenv import load_dotenv

from weatherly_auth.cli import main

if __name__ == "__main__":
    env_path = Path(__file__).resolve().parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    sys.exit(main())
