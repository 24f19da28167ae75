"""
Pydantic schemas shared by the services and the API.

ResultRecord is the typed form every decoded row is converted into;
nothing downstream of the normalizer touches raw cell values.
"""

from pydantic import BaseModel, ConfigDict, Field


class ResultRecord(BaseModel):
    """Canonical result record. Serialized with `class` as the JSON key."""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    registration_number: str = Field(..., min_length=1)
    student_name: str = Field(..., min_length=1)
    class_name: str = Field(..., alias="class")
    batch: str
    subject: str
    marks: float = Field(0, ge=0)
    grade: str
    exam_date: str

    @property
    def natural_key(self) -> tuple:
        return (self.registration_number, self.class_name, self.batch,
                self.subject, self.exam_date)


class IngestionSummary(BaseModel):
    """Outcome of ingesting one workbook."""
    count: int
    sheets_processed: int
