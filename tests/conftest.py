from typing import Iterable, Tuple

import pytest

from cloudinfo.core.models import IPList


class FakeClock:
    """Monotonic clock the tests can move by hand."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def local_addresses():
    """Factory for a scanner returning fixed ``(public, private)`` lists."""

    def factory(
        public: Iterable[str] = (), private: Iterable[str] = ("10.0.0.1",)
    ):
        def scan() -> Tuple[IPList, IPList]:
            return IPList(public), IPList(private)

        return scan

    return factory
