from sqlalchemy import Column, Integer, String, Date, DateTime, UniqueConstraint

from .base import Base, utc_now


class PassingScore(Base):
    __tablename__ = "passing_scores"
    __table_args__ = (
        UniqueConstraint("program_code", "calculation_date", name="uq_passing_scores_program_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    program_code = Column(String(32), nullable=False)
    passing_score = Column(Integer, nullable=True)
    status = Column(String(32), nullable=False)
    calculation_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=False), default=utc_now, nullable=False)
