"""
RawRow model: one committed data row.
"""

from uuid import UUID

from pydantic import BaseModel, Field


class RawRow(BaseModel):
    """
    A data row committed to the row store.

    Attributes:
        batch_id: Owning batch
        region: Region detected from the worksheet title row (None if undetected)
        row_num: 1-based worksheet row the values came from
        source_file: Staged file name the row was extracted from
        tech_id: Row-level natural key within the file
        payload: Column values keyed by the file's own header strings, in column order
    """

    batch_id: UUID
    region: str | None = None
    row_num: int = Field(..., ge=1)
    source_file: str = Field(..., min_length=1)
    tech_id: str = Field(..., min_length=1)
    payload: dict[str, str | None]

    class Config:
        json_schema_extra = {
            "example": {
                "batch_id": "6f1f3a34-7c1e-4a39-9a43-1e7dc1f0b0a2",
                "region": "Keystone",
                "row_num": 3,
                "source_file": "keystone_week12.xlsx",
                "tech_id": "T1001",
                "payload": {"TechId": "T1001", "TechName": "Ana Ruiz", "Total Jobs": "42"},
            }
        }
