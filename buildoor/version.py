"""Version info for buildoor."""

import os
from importlib.metadata import PackageNotFoundError, version as _dist_version

CLIENT_NAME = "buildoor"


def get_version() -> str:
    """Get the installed buildoor version, or $BUILDOOR_VERSION when not installed."""
    try:
        return _dist_version(CLIENT_NAME)
    except PackageNotFoundError:
        return os.environ.get("BUILDOOR_VERSION", "0.1.0")


def user_agent() -> str:
    return f"{CLIENT_NAME}/{get_version()}"
