"""Global pytest configuration."""

import os

# Point settings at in-process backends before any imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.pop("REDIS_URL", None)
