"""
Centralized runtime configuration for the baby log.

This module uses `python-dotenv` to read a local `.env` file during
development and exposes a Pydantic `Settings` model named `settings`.

Environment variables used:
- `STORAGE_PATH` — SQLite file that holds the key-value storage slot.
- `STORAGE_KEY` — fixed key the record snapshot is written under.
- `TIME_FORMAT` — `strftime` pattern used for the display timestamp.
- `INVALID_AMOUNT_POLICY` — `sentinel` (store NaN) or `reject` (raise).
- `LOG_LEVEL` — root log level configured by `main.py`.

Example `.env`:
STORAGE_PATH=~/.local/share/babylog/storage.db
INVALID_AMOUNT_POLICY=reject

"""

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()


class Settings(BaseModel):
    """Typed settings container.

    All downstream code should import `settings` from this module. Use
    these attributes (not os.getenv) so tests can monkeypatch `settings`.
    """

    # defaults come from the environment, so they need validating too
    model_config = ConfigDict(validate_default=True)

    storage_path: str = os.path.expanduser(
        os.getenv("STORAGE_PATH", "~/.local/share/babylog/storage.db")
    )
    storage_key: str = os.getenv("STORAGE_KEY", "baby-records")
    time_format: str = os.getenv("TIME_FORMAT", "%Y/%m/%d %H:%M:%S")
    invalid_amount_policy: Literal["sentinel", "reject"] = os.getenv(
        "INVALID_AMOUNT_POLICY", "sentinel"
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
