import uuid
from sqlalchemy import Column, Text, TIMESTAMP, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    email = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    cars = relationship("Car", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        """Name shown to clients, falling back to the email's local part"""
        return self.name or self.email.split("@", 1)[0]
