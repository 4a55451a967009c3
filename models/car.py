import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Car(Base):
    __tablename__ = "cars"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)  # ordered, duplicates kept
    created_at = Column(TIMESTAMP(timezone=True), default=_utcnow, nullable=False)

    user = relationship("User", back_populates="cars")
    images = relationship(
        "CarImage",
        back_populates="car",
        order_by="CarImage.position",
        cascade="all, delete-orphan",
    )
