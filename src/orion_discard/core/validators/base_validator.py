"""
Base validator interface for submission input rules.

All validators inherit from BaseValidator and implement validate().
"""

from abc import ABC, abstractmethod
from typing import Any


class FieldError(Exception):
    """Raised by a single rule when one input fails it."""

    def __init__(self, rule_name: str, field_name: str, message: str):
        self.rule_name = rule_name
        self.field_name = field_name
        self.message = message
        super().__init__(f"[{rule_name}] {field_name}: {message}")


class BaseValidator(ABC):
    """
    Abstract base class for all validators.

    Each validator checks one input of a submission payload.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        """
        Initialize validator.

        Args:
            field_name: Name of the payload key to validate
            parameters: Rule-specific parameters
        """
        self.field_name = field_name
        self.parameters = parameters or {}

    @abstractmethod
    def validate(self, value: Any, payload: dict[str, Any]) -> None:
        """
        Validate a value against this rule.

        Args:
            value: The input value to validate
            payload: The entire submission payload

        Raises:
            FieldError: If validation fails
        """

    @property
    @abstractmethod
    def rule_type(self) -> str:
        """Return the rule type identifier."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, params={self.parameters})"
