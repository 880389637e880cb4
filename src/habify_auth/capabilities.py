"""Injected capabilities: randomness, time and navigation."""

import secrets
import time
import webbrowser
from collections.abc import Callable
from typing import Protocol

RandomSource = Callable[[int], bytes]
Clock = Callable[[], int]


def system_random(length: int) -> bytes:
    """Cryptographically secure random bytes from the operating system."""
    return secrets.token_bytes(length)


def system_clock() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class Navigator(Protocol):
    """Sends the user agent to another URL (provider login or logout page)."""

    def navigate(self, url: str) -> None: ...


class BrowserNavigator:
    """Navigator that opens URLs in the user's default web browser."""

    def navigate(self, url: str) -> None:
        webbrowser.open(url)
