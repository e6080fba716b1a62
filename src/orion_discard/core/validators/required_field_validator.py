"""
RequiredFieldValidator - ensures an input is present and not blank.
"""

from typing import Any

from .base_validator import BaseValidator, FieldError


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a required input is present and not null/blank.

    Fails if the key is missing, the value is None, or the value is a
    whitespace-only string.
    """

    def validate(self, value: Any, payload: dict[str, Any]) -> None:
        if self.field_name not in payload or value is None:
            raise FieldError("required_field", self.field_name, "Field is missing")

        if isinstance(value, str) and value.strip() == "":
            raise FieldError("required_field", self.field_name, "Field value is empty")

    @property
    def rule_type(self) -> str:
        return "required_field"
