"""jfs context: home directory resolution and state passed between commands."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

STATE_FILE = "state.json"


@dataclass(frozen=True)
class HomePaths:
    """Resolved paths for persisted state."""

    home_dir: Path
    state_path: Path


def _user_global_home() -> Path:
    """Return the user global directory for jfs (~/.local/jfs)."""
    return Path.home() / ".local" / "jfs"


def _find_project_jfs_dir(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Walk up from start_dir looking for a .jfs directory.

    Args:
        start_dir: Directory to start searching from (default: CWD)

    Returns:
        Path to the first .jfs directory found, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        jfs_dir = current / ".jfs"
        if jfs_dir.is_dir():
            return jfs_dir

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _paths(home_dir: Path) -> HomePaths:
    return HomePaths(home_dir=home_dir, state_path=home_dir / STATE_FILE)


def resolve_home(home_option: Optional[str] = None) -> HomePaths:
    """Resolve the jfs home directory.

    Resolution order:
    1. --home CLI flag (explicit override)
    2. $JFS_HOME environment variable
    3. Walk up from CWD looking for a .jfs directory (project-local)
    4. ~/.local/jfs (user global)

    Args:
        home_option: Value of --home CLI option if provided

    Returns:
        HomePaths with home_dir and state_path
    """
    # 1. CLI --home overrides all
    if home_option:
        return _paths(Path(home_option).expanduser())

    # 2. $JFS_HOME environment variable
    env_home = os.environ.get("JFS_HOME")
    if env_home:
        return _paths(Path(env_home).expanduser())

    # 3. Walk up from CWD looking for .jfs directory
    project_dir = _find_project_jfs_dir()
    if project_dir:
        return _paths(project_dir)

    # 4. User global directory
    return _paths(_user_global_home())


class JFSContext:
    def __init__(self):
        self.home = None
        self.state_path = None
        self.quiet = False


pass_context = click.make_pass_decorator(JFSContext, ensure=True)
