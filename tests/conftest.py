"""
Shared fixtures: a controllable clock and in-memory collaborators.
"""

import pytest

from verity_core.otp import EmailMessage, InMemoryDocumentStore

FIXED_NOW = 1_700_000_000.0


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: float = FIXED_NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailer:
    """Keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []

    async def send(self, message: EmailMessage) -> None:
        self.sent.append(message)

    @property
    def last(self) -> EmailMessage:
        return self.sent[-1]


class FailingMailer:
    async def send(self, message: EmailMessage) -> None:
        raise ConnectionError("smtp relay unreachable")


def extract_code(message: EmailMessage) -> str:
    """Pull the OTP out of the rendered email body."""
    marker = "margin: 0;\">"
    start = message.html.index(marker) + len(marker)
    return message.html[start:message.html.index("</h1>", start)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def mailer():
    return RecordingMailer()
