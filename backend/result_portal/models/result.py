"""
Result model - one student's mark for one subject of one exam.

A row is identified by its natural key
(registration_number, class, batch, subject, exam_date); the unique
index over those columns is what makes uploads upsert instead of append.
"""

from sqlalchemy import Column, Float, Index, Integer, Text
from result_portal.database import Base

NATURAL_KEY_COLUMNS = ("registration_number", "class", "batch", "subject", "exam_date")
UNIQUE_INDEX_NAME = "idx_unique_result"


class Result(Base):
    """
    SQLAlchemy model for the results table.

    The integer id only orders rows by creation; the lowest id of a
    natural-key group is the one kept when legacy duplicates are repaired.
    """
    __tablename__ = "results"

    id = Column(Integer, primary_key=True, autoincrement=True,
                doc="Surrogate identity, increasing with insertion order")
    registration_number = Column(Text, nullable=False,
                                 doc="Student registration number, trimmed")
    student_name = Column(Text, nullable=False,
                          doc="Student name as written in the uploaded sheet")
    # `class` is a Python keyword, so the attribute is class_name
    class_name = Column("class", Text, nullable=False,
                        doc="Class tag derived from the sheet name, or 'Unknown'")
    batch = Column(Text, nullable=False,
                   doc="Batch letter A-D derived from the sheet name, or 'Unknown'")
    subject = Column(Text, nullable=False)
    marks = Column(Float, nullable=False, default=0)
    grade = Column(Text, nullable=False)
    exam_date = Column(Text, nullable=False,
                       doc="Exam label, e.g. 'Exam-4'")

    __table_args__ = (
        Index(UNIQUE_INDEX_NAME, *NATURAL_KEY_COLUMNS, unique=True),
    )

    def __repr__(self):
        return (f"<Result(id={self.id}, reg='{self.registration_number}', "
                f"class='{self.class_name}', batch='{self.batch}', subject='{self.subject}')>")
