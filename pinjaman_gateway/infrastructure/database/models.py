"""SQLAlchemy ORM models for the state blob store"""

from sqlalchemy import Column, DateTime, Integer, JSON, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class AppStateRecord(Base):
    """Whole application state stored as one JSON document per config id"""

    __tablename__ = "app_state"

    id = Column(Integer, primary_key=True, autoincrement=True)
    config_id = Column(Text, nullable=False, unique=True, index=True)
    app_data = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
