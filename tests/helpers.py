"""Helper classes for tests."""

from tests.fixtures.token_fixtures import NOW_MS


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: int = NOW_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now


class RecordingNavigator:
    """Navigator that remembers where it was sent."""

    def __init__(self):
        self.visited: list[str] = []

    def navigate(self, url: str) -> None:
        self.visited.append(url)
