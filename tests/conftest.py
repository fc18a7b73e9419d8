"""Root conftest — shared test configuration."""

import os

# Blank key: Settings maps it to None, so nothing in the suite can reach the real API
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ.setdefault("LOG_FORMAT", "text")
