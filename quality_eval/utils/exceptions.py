"""Exception hierarchy for the quality evaluation pipeline."""

from __future__ import annotations


class QualityEvalError(Exception):
    """Base exception for all evaluation pipeline errors."""


class JudgeError(QualityEvalError):
    """The external scoring call failed (provider, network or all fallbacks)."""


class JudgeTimeoutError(JudgeError):
    """The scoring call did not finish before its deadline."""


class StoreError(QualityEvalError):
    """Base for durable store failures."""


class StoreWriteError(StoreError):
    """Writing the evaluation log or configuration record failed."""


class ConfigValidationError(QualityEvalError):
    """A configuration update was rejected.

    ``field_errors`` maps each offending field to its messages.
    """

    def __init__(self, message: str, field_errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.field_errors = field_errors or {}
