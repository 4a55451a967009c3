# models/car_image.py
import uuid
from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Integer, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from .base import Base

class CarImage(Base):
    __tablename__ = "car_images"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    car_id = Column(Uuid, ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    public_id = Column(Text, nullable=False)              # e.g. 'users/{uid}/cars/{uuid}.jpg'
    position = Column(Integer, nullable=False, default=0)
    content_type = Column(Text)
    bytes = Column(Integer)
    width = Column(Integer)
    height = Column(Integer)
    created_at = Column(TIMESTAMP, server_default=func.now())

    car = relationship("Car", back_populates="images")
