"""
Rule engine for discard submission payloads.

Runs every rule against a payload and reports all failing inputs together,
so the operator sees one combined message instead of fixing problems one at
a time.
"""

from typing import Any

from orion_discard.core.errors import ValidationError
from orion_discard.observability.logger import get_logger

from .barcode_format_validator import BarcodeFormatValidator
from .base_validator import BaseValidator, FieldError
from .required_field_validator import RequiredFieldValidator

logger = get_logger(__name__)

# Inputs the station must provide with every scan
DEFAULT_SUBMISSION_RULES: list[dict[str, Any]] = [
    {"rule_name": "require_farm", "rule_type": "required_field", "field_name": "farm_id", "label": "farm"},
    {"rule_name": "require_section", "rule_type": "required_field", "field_name": "section_id", "label": "section"},
    {"rule_name": "require_field", "rule_type": "required_field", "field_name": "field_id", "label": "field"},
    {"rule_name": "require_code", "rule_type": "required_field", "field_name": "scanned_code", "label": "scanned code"},
    {
        "rule_name": "code_format",
        "rule_type": "barcode_format",
        "field_name": "scanned_code",
        "label": "scanned code",
        "severity": "warning",
    },
]

SCOPE_RULES: list[dict[str, Any]] = [
    {"rule_name": "require_site", "rule_type": "required_field", "field_name": "site", "label": "site"},
    {"rule_name": "require_year", "rule_type": "required_field", "field_name": "year", "label": "year"},
    {"rule_name": "require_record_type", "rule_type": "required_field", "field_name": "record_type", "label": "record type"},
]


class SubmissionRules:
    """
    Orchestrates input rules on submission payloads.

    Rules with severity "error" block the submission; "warning" rules are
    logged and returned but never block.
    """

    VALIDATOR_REGISTRY = {
        "required_field": RequiredFieldValidator,
        "barcode_format": BarcodeFormatValidator,
    }

    def __init__(self, rules: list[dict[str, Any]] | None = None):
        """
        Initialize with rule configurations.

        Args:
            rules: Rule dicts with rule_name, rule_type, field_name and
                optional label, parameters, severity and enabled. Defaults to
                the station inputs plus the scope inputs.
        """
        self.rules = rules if rules is not None else DEFAULT_SUBMISSION_RULES + SCOPE_RULES
        self.validators: list[tuple[str, str, str, BaseValidator]] = []
        self._build_validators()

    def _build_validators(self) -> None:
        for rule in self.rules:
            if not rule.get("enabled", True):
                continue

            validator_class = self.VALIDATOR_REGISTRY.get(rule["rule_type"])
            if not validator_class:
                raise ValueError(f"Unknown rule type: {rule['rule_type']}")

            validator = validator_class(rule["field_name"], rule.get("parameters", {}))
            label = rule.get("label", rule["field_name"])
            self.validators.append((rule["rule_name"], rule.get("severity", "error"), label, validator))

    def check(self, payload: dict[str, Any]) -> list[str]:
        """
        Validate a payload.

        Args:
            payload: Submission inputs

        Returns:
            Warning messages from non-blocking rules

        Raises:
            ValidationError: Listing the label of every failing input
        """
        problems: list[str] = []
        warnings: list[str] = []

        for rule_name, severity, label, validator in self.validators:
            try:
                validator.validate(payload.get(validator.field_name), payload)
            except FieldError as e:
                if severity == "error":
                    if label not in problems:
                        problems.append(label)
                else:
                    warnings.append(e.message)
                    logger.warning(
                        f"Submission warning: {e.message}",
                        extra={"rule_name": rule_name, "field_name": validator.field_name},
                    )

        if problems:
            raise ValidationError(problems)

        return warnings
