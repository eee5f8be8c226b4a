from typing import Optional, List
from pydantic import BaseModel, UUID4, Field
from datetime import datetime


class PropertyBase(BaseModel):
    title: str
    bhk_type: Optional[str] = None
    furnishing: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    super_builtup_area: Optional[str] = None
    developer: Optional[str] = None
    project: Optional[str] = None
    property_type: Optional[str] = None
    transaction_type: Optional[str] = None
    status: Optional[str] = None
    price: Optional[float] = None
    rera_id: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    active_status: Optional[str] = "Draft"


class Property(PropertyBase):
    id: UUID4
    slug: str
    images: List[str] = []
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PropertyWithDistance(Property):
    distance_km: float


class NearbyRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(5.0, gt=0, le=500)
    limit: int = Field(20, ge=1, le=100)


class FavoriteToggle(BaseModel):
    property_id: UUID4
