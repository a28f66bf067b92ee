"""Exceptions raised while launching an interactive deposit.

Each is surfaced once to the user. None is retried automatically.
"""

from typing import Optional


class LaunchError(Exception):
    """Base class for launch failures."""

    pass


class WalletNotReady(LaunchError):
    """The wallet is not connected in extension-managed mode."""

    pass


class AssetUndeterminable(LaunchError):
    """No deposit asset could be derived from the leg or the route."""

    pass


class NoInteractiveUrl(LaunchError):
    """The anchor accepted the request but returned no interactive URL."""

    pass


class LaunchAborted(LaunchError):
    """A launch step failed.

    Attributes:
        step: Step that failed (anchor, authenticate, initiate)
    """

    def __init__(self, message: str, step: Optional[str] = None):
        self.step = step
        super().__init__(message)
