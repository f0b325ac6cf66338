"""Error taxonomy for the smoke harness.

Every failure the harness can detect maps onto one of these classes. They all
derive from ``SmokeTestError`` so the entry point can record them uniformly.
"""

from __future__ import annotations


class SmokeTestError(Exception):
    """Base class for every detected smoke-test failure."""


class ConfigError(SmokeTestError):
    """The configuration file is missing, unreadable or invalid."""


class PreconditionError(SmokeTestError):
    """Required files or DOM elements are absent."""


class InterpretationError(SmokeTestError):
    """A generated problem cannot be interpreted."""

    def __init__(self, message: str, eq_text: str = ""):
        super().__init__(message)
        self.eq_text = eq_text


class UnrecognizedProblemError(InterpretationError):
    """No classification rule matched the problem snapshot."""


class LivenessError(SmokeTestError):
    """An expected UI transition did not happen within its timeout."""


class RuntimeSignalError(SmokeTestError):
    """The page itself reported script errors or failed requests."""

    def __init__(self, signals: list[str]):
        super().__init__(
            "Page reported errors:\n" + "\n".join(f"- {s}" for s in signals)
        )
        self.signals = list(signals)


class ResourceError(SmokeTestError):
    """The local server could not be started or did not become ready."""


class InvariantError(SmokeTestError):
    """The page behaved in a way the scenario asserts it must not."""
