"""Exceptions raised by the locator, the model layer and the tool layer."""
from enum import Enum


class InvalidElementError(ValueError):
    """The element record handed to the locator is missing or malformed."""


class ModelError(RuntimeError):
    """A vision model call failed (transport, HTTP status, missing credentials)."""


class ModelResponseError(ModelError):
    """The model answered, but the answer does not fit the requested result type."""


class UserInterruptedError(Exception):
    """Execution was interrupted by the operator. Never retried, never absorbed."""


class ElementLocationStatus(str, Enum):
    NO_ELEMENTS_FOUND_IN_DB = "NO_ELEMENTS_FOUND_IN_DB"
    SIMILAR_ELEMENTS_IN_DB_BUT_SCORE_TOO_LOW = "SIMILAR_ELEMENTS_IN_DB_BUT_SCORE_TOO_LOW"
    ELEMENT_NOT_FOUND_ON_SCREEN_VISUAL_AND_ALGORITHMIC_FAILED = "ELEMENT_NOT_FOUND_ON_SCREEN_VISUAL_AND_ALGORITHMIC_FAILED"
    ELEMENT_NOT_FOUND_ON_SCREEN_VALIDATION_FAILED = "ELEMENT_NOT_FOUND_ON_SCREEN_VALIDATION_FAILED"


class ElementLocationError(Exception):
    """An element could not be resolved to a screen location by the tool layer."""

    def __init__(self, message: str, status: ElementLocationStatus):
        super().__init__(message)
        self.message = message
        self.status = status

    def to_dict(self) -> dict:
        return {"error": self.message, "status": self.status.value}
