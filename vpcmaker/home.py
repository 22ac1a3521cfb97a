"""
Local working directory holding the credentials and private key files.
"""

import os
from pathlib import Path
from typing import Optional, Union

CREDENTIALS_FILE = ".aws"
KEY_FILE = ".key"


def get_home(config_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Get the vpcmaker home directory.

    Args:
        config_dir: Explicit directory, takes precedence over VPCMAKER_HOME

    Returns:
        Path: Home directory (not created)
    """
    if config_dir is None:
        config_dir = os.environ.get("VPCMAKER_HOME", ".vpcmaker")
    return Path(config_dir).resolve()


def ensure_home(config_dir: Optional[Union[str, Path]] = None) -> Path:
    """Create the home directory if needed and return its path."""
    home = get_home(config_dir)
    home.mkdir(parents=True, exist_ok=True)
    return home


def credentials_path(home: Path) -> Path:
    return home / CREDENTIALS_FILE


def key_path(home: Path) -> Path:
    return home / KEY_FILE
