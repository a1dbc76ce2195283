from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from prode.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=True)
    avatar = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
