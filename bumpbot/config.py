"""Configuration paths and defaults for bumpbot."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("BUMPBOT_HOME", str(Path.home() / ".bumpbot"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH_PREFIX = "bumpbot/"
DEFAULT_COMMIT_MESSAGE = "chore(deps): upgrade dependencies"
DEFAULT_USER_NAME = "bumpbot"
DEFAULT_USER_EMAIL = "bumpbot@users.noreply.github.com"
DEFAULT_UPDATE_COMMAND = "ncu"
DEFAULT_UPDATE_ARGS = ["-u"]
DEFAULT_LABEL = "dependencies"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_HTTP_TIMEOUT = 30.0