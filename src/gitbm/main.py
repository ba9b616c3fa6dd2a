# gitbm/main.py
"""
gitbm Main Entry Point
======================

This module is the console entry point (`gitbm`). It performs:
1) Environment Loading: reads ~/.config/gitbm/.env before the configuration.
2) Configuration & Logging: loads config.toml over the defaults, applies the
   command-line overrides and initializes logging.
3) Repository Check: refuses to start outside a git work tree, before curses
   touches the terminal.
4) Curses Wrapper: safely initializes and tears down curses.
5) Application Run: builds the repository backend and runs the App loop.
"""

from __future__ import annotations

import curses
import locale
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

import click
from dotenv import load_dotenv

from gitbm.core.App import App
from gitbm.errors import NotARepositoryError
from gitbm.integrations.GitCliRepo import GitCliRepo
from gitbm.integrations.GitPythonRepo import GitPythonRepo
from gitbm.integrations.GitRepo import GitRepo
from gitbm.utils.logging_config import setup_logging
from gitbm.utils.utils import ensure_git_repository, get_config_dir, load_config


logger = logging.getLogger("gitbm")

BACKENDS = ("cli", "gitpython")


def build_repo(config: dict[str, Any], repo_dir: Path) -> GitRepo:
    """Creates the repository backend selected by `settings.backend`."""
    settings = config.get("settings", {})
    backend = str(settings.get("backend", "cli")).lower()
    if backend == "gitpython":
        return GitPythonRepo(str(repo_dir))
    if backend != "cli":
        logger.warning(f"Unknown backend {backend!r}, using the git executable.")
    timeout = settings.get("git_timeout") or None
    return GitCliRepo(str(repo_dir), timeout=timeout)


def _install_signal_handlers(app: App) -> None:
    def _request_quit(signum: int, _frame: Any) -> None:
        logger.info(f"Received signal {signum}, quitting.")
        app.request_quit()

    for name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, _request_quit)


def main_app_runner(stdscr: curses.window, config: dict[str, Any], repo: GitRepo) -> None:
    """Target for `curses.wrapper`: runs the App until it quits."""
    app = App(stdscr, config, repo)
    _install_signal_handlers(app)
    app.run()


@click.command("gitbm")
@click.option(
    "--tick-rate",
    type=float,
    default=None,
    help="Ticks per second driving loading indicators (default 4.0).",
)
@click.option(
    "--frame-rate",
    type=float,
    default=None,
    help="Frames per second (default 60.0).",
)
@click.option(
    "--backend",
    type=click.Choice(BACKENDS, case_sensitive=False),
    default=None,
    help="Repository backend: the git executable or GitPython.",
)
@click.version_option(package_name="gitbm")
def cli(tick_rate: Optional[float], frame_rate: Optional[float], backend: Optional[str]) -> None:
    """Manage the local branches and stashes of the current git repository."""
    load_dotenv(dotenv_path=get_config_dir() / ".env")

    config = load_config()
    settings = config["settings"]
    if tick_rate is not None:
        settings["tick_rate"] = tick_rate
    if frame_rate is not None:
        settings["frame_rate"] = frame_rate
    if backend is not None:
        settings["backend"] = backend.lower()
    setup_logging(config)

    try:
        repo_dir = ensure_git_repository()
        repo = build_repo(config, repo_dir)
    except NotARepositoryError as e:
        logger.error(f"Not starting: {e}")
        raise click.ClickException(f"Not a git repository: {e}") from e

    logger.info(f"gitbm starting in {repo_dir} (backend: {settings['backend']})")

    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        logger.warning("Could not set system locale. Character rendering may be affected.")

    try:
        curses.wrapper(main_app_runner, config, repo)
        logger.info("gitbm shut down gracefully.")
    except Exception:
        logger.critical("Unhandled exception at the top level.", exc_info=True)
        click.echo("gitbm exited after an unexpected error; see gitbm.log.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
