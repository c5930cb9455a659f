"""Exception types raised by the editing pipeline and its collaborators."""

from __future__ import annotations


class SeditorError(Exception):
    """Base class for all Seditor errors."""


class UserInputError(SeditorError):
    """Raised before a run starts when the instruction or document is unusable."""


class LLMServiceError(SeditorError):
    """Transport, authorization or empty-response failure from the completion service.

    The message is the exact text shown to the user.
    """


class RunInProgressError(SeditorError):
    """Raised when a second run is started for a session that is already running."""

    def __init__(self, key: str):
        super().__init__(f"An analysis is already running for '{key}'.")
        self.key = key
