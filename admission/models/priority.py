from sqlalchemy import Column, Integer, String, Date, CheckConstraint, UniqueConstraint, Index

from .base import Base


class Priority(Base):
    __tablename__ = "priorities"
    __table_args__ = (
        UniqueConstraint("applicant_id", "cycle_date", "priority", name="uq_priorities_applicant_date_rank"),
        CheckConstraint("priority BETWEEN 1 AND 4", name="ck_priorities_rank_range"),
        Index("ix_priorities_program_date", "program_code", "cycle_date"),
    )

    applicant_id = Column(Integer, primary_key=True, autoincrement=False)
    program_code = Column(String(32), primary_key=True)
    cycle_date = Column(Date, primary_key=True)
    priority = Column(Integer, nullable=False)
