import uuid
from sqlalchemy import Column, String, DateTime, func, Text, Integer, Float, JSON, Uuid
from app.db.session import Base

class Property(Base):
    __tablename__ = "properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    bhk_type = Column(String(20), nullable=True, index=True)
    furnishing = Column(String(50), nullable=True)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    super_builtup_area = Column(String(50), nullable=True)
    developer = Column(String(255), nullable=True)
    project = Column(String(255), nullable=True)
    property_type = Column(String(50), nullable=True, index=True)
    transaction_type = Column(String(50), nullable=True)
    status = Column(String(50), nullable=True)  # ready to move, under construction, ...
    price = Column(Float, nullable=True, index=True)
    rera_id = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    city = Column(String(100), nullable=True, index=True)
    active_status = Column(String(20), default="Draft")  # Draft, Published
    images = Column(JSON, nullable=False, default=list)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
