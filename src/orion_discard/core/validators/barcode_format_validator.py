"""
BarcodeFormatValidator - checks that a scanned code looks like a printed barcode.
"""

from typing import Any

from orion_discard.core.barcodes import BARCODE_MAX_LENGTH, BARCODE_MIN_LENGTH, validate_barcode_format

from .base_validator import BaseValidator, FieldError


class BarcodeFormatValidator(BaseValidator):
    """
    Validates barcode length and character set.

    Blank values are skipped; they are reported by RequiredFieldValidator.
    """

    def validate(self, value: Any, payload: dict[str, Any]) -> None:
        if value is None or str(value).strip() == "":
            return

        if not validate_barcode_format(value):
            raise FieldError(
                "barcode_format",
                self.field_name,
                f"'{str(value).strip()}' is not a valid barcode "
                f"({BARCODE_MIN_LENGTH}-{BARCODE_MAX_LENGTH} letters, digits, '-', '_' or '.')",
            )

    @property
    def rule_type(self) -> str:
        return "barcode_format"
