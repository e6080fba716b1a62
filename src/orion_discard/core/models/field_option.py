"""
FieldOption model: one entry of the farm / section / field choice lists.
"""

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field

OptionType = Literal["farm", "sections", "fields"]


class FieldOption(BaseModel):
    """
    A choice-list entry published by the options source.

    Attributes:
        id: Option identifier
        title: Display title (fields are selected by title)
        type: "farm", "sections" or "fields"
        farm: Parent farm id (sections and fields)
        section: Parent section id (fields)
    """

    id: str = Field(..., min_length=1)
    title: str = ""
    type: OptionType
    farm: str = ""
    section: str = ""

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "FieldOption":
        """Build from the options source's ``field_type``/``farm_name``/``section_name`` shape."""
        return cls(
            id=str(raw.get("id", "")).strip(),
            title=str(raw.get("title") or "").strip(),
            type=raw.get("field_type") or raw.get("type"),
            farm=str(raw.get("farm_name") or raw.get("farm") or "").strip(),
            section=str(raw.get("section_name") or raw.get("section") or "").strip(),
        )

    @property
    def value(self) -> str:
        """Value submitted when this option is selected."""
        return self.title if self.type == "fields" else self.id
