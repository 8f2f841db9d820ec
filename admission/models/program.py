from sqlalchemy import Column, Integer, String

from .base import Base


class Program(Base):
    __tablename__ = "programs"

    code = Column(String(32), primary_key=True)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False, default=0)  # seats ("places")
