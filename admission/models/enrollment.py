from sqlalchemy import Column, Integer, String, Date, UniqueConstraint, Index

from .base import Base


class Enrollment(Base):
    __tablename__ = "enrollment"
    __table_args__ = (
        UniqueConstraint("applicant_id", "simulation_date", name="uq_enrollment_applicant_date"),
        Index("ix_enrollment_program_date", "program_code", "simulation_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, nullable=False)
    program_code = Column(String(32), nullable=False)
    priority = Column(Integer, nullable=False)  # rank honored
    total_score = Column(Integer, nullable=False)
    simulation_date = Column(Date, nullable=False)
