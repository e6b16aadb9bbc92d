"""Error kinds raised by the agent and its collaborators."""

from __future__ import annotations
from typing import Iterable


class BotError(Exception):
    """Base class for engulfing_bot errors."""


class FeedUnavailable(BotError):
    """Bar or price data could not be retrieved. Evaluation is skipped for the cycle."""


class ExecutionRejected(BotError):
    """Gateway declined an order or modification."""

    def __init__(self, reason: str, request=None):
        super().__init__(reason)
        self.reason = reason
        self.request = request


class InvalidConfiguration(BotError):
    """Configuration rejected at startup."""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))
