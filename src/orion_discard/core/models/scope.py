"""
ScopeCriteria model: the (site, year, record type) partition every record lives in.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from orion_discard.core.errors import ValidationError


class ScopeCriteria(BaseModel):
    """
    Partition key required for every record store access.

    Attributes:
        site: Site code (e.g., "PRSA")
        year: Season year, kept as a string ("2024")
        record_type: Record type of the source form (e.g., "T1")
    """

    site: str = Field(..., min_length=1)
    year: str = Field(..., min_length=1)
    record_type: str = Field(..., min_length=1)

    @field_validator("site", "year", "record_type", mode="before")
    @classmethod
    def coerce_to_trimmed_string(cls, v):
        """Accept ints (years) and strip surrounding whitespace."""
        if v is None:
            return ""
        return str(v).strip()

    @classmethod
    def build(cls, site: Any, year: Any, record_type: Any) -> "ScopeCriteria":
        """
        Build a scope, reporting every missing part at once.

        Raises:
            ValidationError: If any of site, year or record_type is empty
        """
        values = {"site": site, "year": year, "record_type": record_type}
        missing = [name for name, value in values.items() if value is None or str(value).strip() == ""]
        if missing:
            raise ValidationError(missing, message="Missing required parameters: " + ", ".join(missing))
        return cls(**values)

    def key(self) -> tuple[str, str, str]:
        return (self.site, self.year, self.record_type)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "site": "PRSA",
                "year": "2024",
                "record_type": "T1",
            }
        }
