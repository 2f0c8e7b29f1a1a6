"""Clinic configuration model definitions."""

from sqlalchemy import JSON, Boolean, Column, Integer
from clinic_backend.database import Base


class ClinicConfig(Base):
    """Singleton row holding the open/closed switch and the weekly working hours."""
    __tablename__ = "clinic_config"

    id = Column(Integer, primary_key=True)
    is_open = Column(Boolean, nullable=False, default=True)
    working_hours = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
