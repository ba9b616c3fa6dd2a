# gitbm/utils/utils.py
"""
gitbm.utils.utils.py
====================

Configuration, subprocess and repository helpers shared by the entry point
and the git CLI backend.

- First Run: `config.toml` and `.env` templates are written to
  `~/.config/gitbm` when they are missing.
- Configuration: the embedded `DEFAULT_CONFIG` is deep-merged with the user
  file, then environment overrides are applied.
- Safe Subprocess Execution: A wrapper around `subprocess.run` used by the git
  CLI adapter and by the startup repository check.
- Helper Utilities: deep-merging of dictionaries and repository detection.

The application is always runnable, even if user configuration files are
missing or corrupted, by falling back to the embedded defaults.
"""

import copy
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from gitbm.errors import NotARepositoryError


logger = logging.getLogger("gitbm")

ENV_TEMPLATE = """# Environment overrides for gitbm
# Select the repository backend: "cli" (git executable) or "gitpython".
# GITBM_BACKEND=cli
# Write every decoded key press to keytrace.log.
# GITBM_KEYTRACE=0
"""

# This dictionary is the ultimate fallback, ensuring the application can ALWAYS start.
DEFAULT_CONFIG: Dict[str, Any] = {
    "settings": {
        "tick_rate": 4.0,
        "frame_rate": 60.0,
        "backend": "cli",
        "validation_timeout": 2.0,
        "git_timeout": 0,
    },
    "logging": {
        "log_dir": "~/.cache/gitbm",
        "file_level": "DEBUG",
        "console_level": "WARNING",
        "log_to_console": False,
        "separate_error_log": False,
    },
    "colors": {
        "staged": "red",
        "valid": "green",
        "invalid": "red",
        "error": "red",
        "title": "yellow",
        "footer": "white",
    },
    "keybindings": {
        "default": {
            "quit": ["esc", "q", "ctrl+c"],
            "toggle_view": "tab",
            "suspend": "ctrl+z",
        },
        "input": {"quit": "ctrl+c"},
        "error": {"quit": "ctrl+c"},
        "branches": {
            "select_next": ["down", "j"],
            "select_previous": ["up", "k"],
            "init_new": "shift+c",
            "primary": "c",
            "delete": "d",
            "unstage": "shift+d",
            "delete_staged": "ctrl+d",
            "refresh": "r",
        },
        "stashes": {
            "select_next": ["down", "j"],
            "select_previous": ["up", "k"],
            "init_new": "s",
            "primary": "a",
            "pop": "p",
            "delete": "d",
            "unstage": "shift+d",
            "delete_staged": "ctrl+d",
            "refresh": "r",
        },
    },
}


# --- Configuration ---

def get_config_dir() -> Path:
    """Returns the directory holding `config.toml` and `.env`."""
    return Path.home() / ".config" / "gitbm"


def ensure_user_config_exists() -> None:
    """Writes the `config.toml` and `.env` templates on first run."""
    try:
        config_dir = get_config_dir()
        user_config_path = config_dir / "config.toml"
        user_env_path = config_dir / ".env"

        config_dir.mkdir(parents=True, exist_ok=True)

        if not user_config_path.exists():
            with open(user_config_path, "w", encoding="utf-8") as fh:
                toml.dump(DEFAULT_CONFIG, fh)
            logger.info(f"Wrote config template {user_config_path}")

        if not user_env_path.exists():
            user_env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
            logger.info(f"Wrote .env template {user_env_path}")

    except Exception as e:
        logger.critical(f"Cannot write the config templates in {get_config_dir()}: {e}", exc_info=True)


def load_config(user_config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Returns the defaults merged with the user file and the environment.

    Environment overrides (`GITBM_BACKEND`) are applied last, after the user
    file, so a `.env` loaded by the entry point wins over `config.toml`.
    """
    final_config = copy.deepcopy(DEFAULT_CONFIG)
    logger.debug("Starting from the embedded default configuration.")

    if user_config_path is None:
        ensure_user_config_exists()
        user_config_path = get_config_dir() / "config.toml"

    if user_config_path.is_file():
        try:
            user_config = toml.load(user_config_path)
            final_config = deep_merge(final_config, user_config)
            logger.info(f"Merged user config from {user_config_path}")
        except Exception as e:
            logger.error(f"Ignoring unreadable config {user_config_path}: {e}")

    backend = os.environ.get("GITBM_BACKEND", "").strip().lower()
    if backend:
        final_config["settings"]["backend"] = backend
        logger.debug(f"Backend overridden from environment: {backend}")

    return final_config


def safe_run(cmd: List[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """
    Runs `cmd` with captured text output. Never raises: a missing executable
    gives exit code 127, a timeout -9, anything else -1.
    """
    try:
        return subprocess.run(
            cmd, capture_output=True, text=True, check=False,
            encoding="utf-8", errors="replace", **kwargs,
        )
    except FileNotFoundError as e:
        logger.error(f"Command not found: {cmd[0]!r}", exc_info=True)
        return subprocess.CompletedProcess(cmd, 127, stdout="", stderr=str(e))
    except subprocess.TimeoutExpired as e:
        logger.warning(f"Command timed out: {' '.join(cmd)}")
        # Partial output on timeout can be bytes even in text mode.
        stdout, stderr = (
            out.decode("utf-8", "replace") if isinstance(out, bytes) else (out or "")
            for out in (e.stdout, e.stderr)
        )
        return subprocess.CompletedProcess(cmd, -9, stdout=stdout, stderr=stderr or "Command timed out")
    except Exception as e:
        logger.exception(f"An unexpected error occurred while running command: {' '.join(cmd)}")
        return subprocess.CompletedProcess(cmd, -1, stdout="", stderr=str(e))


def ensure_git_repository(path: Optional[str] = None) -> Path:
    """
    Verifies that `path` (default: the current directory) is inside a git work
    tree and returns the top-level directory.

    Raises:
        NotARepositoryError: if git is missing or the directory is not a work tree.
    """
    cwd = path or os.getcwd()
    result = safe_run(["git", "rev-parse", "--show-toplevel"], cwd=cwd)
    if result.returncode != 0 or not result.stdout.strip():
        reason = result.stderr.strip() or "not a git repository"
        raise NotARepositoryError(f"{cwd}: {reason}")
    return Path(result.stdout.strip())


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Returns `base` with `override` merged in; nested tables merge key by key.
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result
