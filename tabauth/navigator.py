"""Location and navigation capability.

The session never touches a browser directly. It reads the current
location to detect a callback, replaces it in place to strip callback
parameters, and assigns it to leave for the provider.
"""

from __future__ import annotations

import logging
import webbrowser

from abc import ABC, abstractmethod


logger = logging.getLogger("tabauth.navigator")


class Navigator(ABC):
    """Access to the current location."""

    @property
    @abstractmethod
    def current_url(self) -> str:
        """The current location."""

    @abstractmethod
    def assign(self, url: str) -> None:
        """Navigate away to ``url`` (a full page load)."""

    @abstractmethod
    def replace(self, url: str) -> None:
        """Replace the current location in history without navigating."""


class MemoryNavigator(Navigator):
    """Navigator that records what the session asked for.

    Parameters
    ----------
    url : str
        The initial location (for example the URL a redirect landed on).
    """

    def __init__(self, url: str = "") -> None:
        """Initialize the memory navigator."""
        self._url = url
        self.assigned: list[str] = []
        self.replaced: list[str] = []

    @property
    def current_url(self) -> str:
        """The current location."""
        return self._url

    def assign(self, url: str) -> None:
        """Record a full navigation and move to ``url``."""
        self.assigned.append(url)
        self._url = url

    def replace(self, url: str) -> None:
        """Record a history replace and move to ``url``."""
        self.replaced.append(url)
        self._url = url


class BrowserNavigator(MemoryNavigator):
    """Navigator for desktop clients that hand navigation to the system browser.

    Full navigations open in the default browser; the location itself is
    tracked locally and set by whatever received the provider redirect.
    """

    def assign(self, url: str) -> None:
        """Open ``url`` in the system browser."""
        super().assign(url)
        if not webbrowser.open(url):
            logger.warning("Could not open a browser; navigate to %s manually", url)
