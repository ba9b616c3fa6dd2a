# gitbm/errors.py
"""
gitbm.errors
============

Exception hierarchy shared by the repository adapters, the input handlers and
the action bus.

- ``RepositoryError``: any failure reported by a repository adapter. Background
  operations turn it into an ``ERROR`` action carrying ``str(exc)``.
- ``ValidationError``: input text rejected by an input handler. It never leaves
  the handler; the input box only shows it as the invalid colour.
- ``NotARepositoryError``: the working directory is not a git work tree.
  Raised once at startup, before curses is initialised.
- ``ChannelFailure``: an action was sent on a closed bus. This is a programming
  error and is never caught by the application.
"""


class GitBmError(Exception):
    """Base class for all gitbm errors."""


class RepositoryError(GitBmError):
    """A git operation failed; the message is suitable for the error view."""


class NotARepositoryError(GitBmError):
    """The current directory is not inside a git work tree."""


class ValidationError(GitBmError):
    """Input text was rejected by an input handler."""


class ChannelFailure(GitBmError):
    """An action was sent on a bus that has already been closed."""
