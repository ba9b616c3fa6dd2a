# gitbm/utils/logging_config.py
"""gitbm.utils.logging_config
============================

Logging configuration for gitbm. It defines the global logger objects and a
single setup function, `setup_logging`, which attaches application-wide
handlers according to the ``[logging]`` section of the configuration.

Features:
    - Rotating file logging for general application events (gitbm.log).
    - Optional console logging to stderr. Disabled by default because curses
      owns the terminal while the UI is running.
    - Optional separate error log file (error.log) for ERROR and CRITICAL events.
    - Optional key event tracing (keytrace.log) enabled via the GITBM_KEYTRACE
      environment variable.
    - Automatic creation of the log directory, with fallback to the system temp
      directory on failure.
    - Safe reconfiguration: clears existing handlers to avoid duplicate logs when
      called multiple times.
    - Never raises; problems are reported to stderr and logging continues with a
      best-effort configuration.

Globals:
    logger: Main application logger ("gitbm").
    KEY_LOGGER: Logger for decoded key-press trace events ("gitbm.keyevents").
"""

import logging
import logging.handlers
import os
import sys
import tempfile
from typing import Any, Optional


# ======================== Global loggers ========================
# Created at import-time, configured by ``setup_logging()``.
logger = logging.getLogger("gitbm")
KEY_LOGGER = logging.getLogger("gitbm.keyevents")

KEYTRACE_ENV = "GITBM_KEYTRACE"


def _resolve_log_dir(configured: Optional[str]) -> str:
    """Expands and creates the log directory, falling back to the temp dir."""
    log_dir = os.path.expanduser(configured or "~/.cache/gitbm")
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError as e_mkdir:
        print(f"Error creating log directory '{log_dir}': {e_mkdir}", file=sys.stderr)
        log_dir = tempfile.gettempdir()
        print(f"Logging to temporary directory: '{log_dir}'", file=sys.stderr)
    return log_dir


def setup_logging(config: Optional[dict[str, Any]] = None) -> None:
    """Configures application-wide logging handlers and log levels.

    Up to four independent handlers are installed:

    1. File handler: rotating gitbm.log capturing everything from the
       configured `file_level` (default DEBUG) upward.
    2. Console handler: optional `stderr` output whose threshold is
       `console_level` (default WARNING).
    3. Error-file handler: optional rotating error.log that stores only
       ERROR and CRITICAL events.
    4. Key-event handler: optional rotating keytrace.log enabled when
       ``GITBM_KEYTRACE`` is ``1/true/yes``; attached to ``gitbm.keyevents``.

    Existing handlers on the root logger are cleared so repeated calls (e.g.
    in unit tests) do not duplicate records.

    Args:
        config (dict | None): Application configuration. Only the
            ``["logging"]`` sub-section is consulted; recognised keys are
            ``log_dir``, ``file_level``, ``console_level``,
            ``log_to_console`` and ``separate_error_log``.
    """
    if config is None:
        config = {}
    logging_config = config.get("logging", {})
    log_dir = _resolve_log_dir(logging_config.get("log_dir"))
    log_filename = os.path.join(log_dir, "gitbm.log")

    log_file_level_str = str(logging_config.get("file_level", "DEBUG")).upper()
    log_file_level = getattr(logging, log_file_level_str, logging.DEBUG)

    file_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)-8s - %(name)-15s - %(threadName)s - %(message)s (%(filename)s:%(lineno)d)"
    )
    file_handler = None
    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_filename, maxBytes=2 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(log_file_level)
    except Exception as e_fh:
        print(
            f"Error setting up file logger for '{log_filename}': {e_fh}. File logging may be impaired.",
            file=sys.stderr,
        )

    console_handler = None
    if logging_config.get("log_to_console", False):
        console_level_str = str(logging_config.get("console_level", "WARNING")).upper()
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(levelname)-8s - %(name)-12s - %(message)s")
        )
        console_handler.setLevel(getattr(logging, console_level_str, logging.WARNING))

    error_file_handler = None
    if logging_config.get("separate_error_log", False):
        error_log_filename = os.path.join(log_dir, "error.log")
        try:
            error_file_handler = logging.handlers.RotatingFileHandler(
                error_log_filename,
                maxBytes=1 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            error_file_handler.setFormatter(file_formatter)
            error_file_handler.setLevel(logging.ERROR)
        except Exception as e_efh:
            print(
                f"Error setting up separate error log '{error_log_filename}': {e_efh}.",
                file=sys.stderr,
            )

    root_logger = logging.getLogger()
    root_logger.handlers = []

    for handler in (file_handler, console_handler, error_file_handler):
        if handler:
            root_logger.addHandler(handler)

    root_logger.setLevel(log_file_level)

    # Key Event Logger
    KEY_LOGGER.propagate = False
    KEY_LOGGER.setLevel(logging.DEBUG)
    KEY_LOGGER.handlers = []
    KEY_LOGGER.disabled = False

    if os.environ.get(KEYTRACE_ENV, "").lower() in {"1", "true", "yes"}:
        key_trace_filename = os.path.join(log_dir, "keytrace.log")
        try:
            key_trace_handler = logging.handlers.RotatingFileHandler(
                key_trace_filename,
                maxBytes=1 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            key_trace_handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
            KEY_LOGGER.addHandler(key_trace_handler)
            logging.info("Key event tracing enabled, logging to '%s'.", key_trace_filename)
        except Exception as e_keytrace:
            logging.error(f"Failed to set up key trace logging: {e_keytrace}", exc_info=True)
            KEY_LOGGER.disabled = True
    else:
        KEY_LOGGER.addHandler(logging.NullHandler())
        KEY_LOGGER.disabled = True
        logging.debug("Key event tracing is disabled.")

    logging.info(
        "Logging setup complete. Root logger level: %s.",
        logging.getLevelName(root_logger.level),
    )
    if file_handler:
        logging.info(
            f"File logging to '{log_filename}' at level: {logging.getLevelName(file_handler.level)}."
        )
    if console_handler:
        logging.info(
            f"Console logging to stderr at level: {logging.getLevelName(console_handler.level)}."
        )
    if error_file_handler:
        logging.info("Error logging to 'error.log' at level: ERROR.")
