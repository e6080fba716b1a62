"""
DiscardEntry model: one operator submission recorded in the discard log.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class DiscardEntry(BaseModel):
    """
    A scanned discard as submitted from the station.

    Attributes:
        entry_id: Auto-increment primary key (None until stored)
        farm_id, farm_name: Selected farm
        section_id, section_name: Selected section
        field_id, field_name: Selected field
        scanned_code: Raw code read by the scanner
        barcode: Barcode recorded (defaults to the scanned code)
        crop, owner, submission_id, extno, range, row, plot_id, subplot_id,
        material_id, abbrc, sd_instruction: Descriptive metadata copied from
            the matching record when known
        site, year, record_type: Scope the scan was made in
        is_discarded: Always True for a stored entry
        user_id: Operator id
        created_at: Submission time
    """

    entry_id: int | None = None
    farm_id: str = Field(..., min_length=1)
    farm_name: str = ""
    section_id: str = Field(..., min_length=1)
    section_name: str = ""
    field_id: str = Field(..., min_length=1)
    field_name: str = ""
    scanned_code: str = Field(..., min_length=1)
    barcode: str = ""
    crop: str = ""
    owner: str = ""
    submission_id: str = ""
    extno: str = ""
    range: str = ""
    row: str = ""
    plot_id: str = ""
    subplot_id: str = ""
    material_id: str = ""
    abbrc: str = ""
    sd_instruction: str = ""
    site: str = ""
    year: str = ""
    record_type: str = ""
    is_discarded: bool = True
    user_id: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        json_schema_extra = {
            "example": {
                "farm_id": "1",
                "farm_name": "Farm A",
                "section_id": "10",
                "section_name": "North",
                "field_id": "AB-RA",
                "field_name": "AB-RA",
                "scanned_code": "AB-100",
                "barcode": "AB-100",
                "site": "PRSA",
                "year": "2024",
                "record_type": "T1",
                "user_id": "42",
            }
        }
