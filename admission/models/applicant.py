from sqlalchemy import Column, Integer, Boolean, Date, CheckConstraint

from .base import Base


class Applicant(Base):
    __tablename__ = "applicants"
    __table_args__ = (
        CheckConstraint(
            "physics_ict >= 0 AND russian >= 0 AND math >= 0 AND achievements >= 0",
            name="ck_applicants_components_non_negative",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=False)
    cycle_date = Column(Date, primary_key=True)

    # Component scores
    physics_ict = Column(Integer, nullable=False, default=0)
    russian = Column(Integer, nullable=False, default=0)
    math = Column(Integer, nullable=False, default=0)
    achievements = Column(Integer, nullable=False, default=0)

    # Always the sum of the four components, see set_scores()
    total = Column(Integer, nullable=False, default=0, index=True)
    consent = Column(Boolean, nullable=False, default=False)

    def set_scores(self, physics_ict: int, russian: int, math: int, achievements: int):
        self.physics_ict = physics_ict
        self.russian = russian
        self.math = math
        self.achievements = achievements
        self.total = physics_ict + russian + math + achievements
