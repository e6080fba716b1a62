"""
Validation for the discard workflow.

Input rules for submission payloads and the barcode validator that applies
discard transitions.
"""

from .barcode_format_validator import BarcodeFormatValidator
from .barcode_validator import BarcodeValidator
from .base_validator import BaseValidator, FieldError
from .required_field_validator import RequiredFieldValidator
from .submission_rules import DEFAULT_SUBMISSION_RULES, SCOPE_RULES, SubmissionRules

__all__ = [
    "BaseValidator",
    "FieldError",
    "RequiredFieldValidator",
    "BarcodeFormatValidator",
    "SubmissionRules",
    "DEFAULT_SUBMISSION_RULES",
    "SCOPE_RULES",
    "BarcodeValidator",
]
