from uuid import UUID
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.property import Property
from app.schemas.property import Property as PropertySchema, PropertyWithDistance, NearbyRequest
from app.schemas.common import PaginatedResponse, paginate
from app.utils.geo import bounding_box, haversine_km

router = APIRouter(prefix="/properties", tags=["Properties"])


@router.get("/", response_model=PaginatedResponse[PropertySchema])
def list_properties(
    search: Optional[str] = None,
    city: Optional[str] = None,
    property_type: Optional[str] = None,
    bhk_type: Optional[str] = None,
    furnishing: Optional[str] = None,
    status: Optional[str] = None,
    transaction_type: Optional[str] = None,
    price_min: Optional[float] = Query(None, ge=0),
    price_max: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(9, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(Property)

    if search:
        query = query.filter(Property.title.ilike(f"%{search}%"))
    if city:
        query = query.filter(Property.city == city)
    if property_type:
        query = query.filter(Property.property_type == property_type)
    if bhk_type:
        query = query.filter(Property.bhk_type == bhk_type)
    if furnishing:
        query = query.filter(Property.furnishing == furnishing)
    if status:
        query = query.filter(Property.status == status)
    if transaction_type:
        query = query.filter(Property.transaction_type == transaction_type)
    if price_min is not None:
        query = query.filter(Property.price >= price_min)
    if price_max is not None:
        query = query.filter(Property.price <= price_max)

    total = query.count()
    properties = query.order_by(Property.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return PaginatedResponse(**paginate(properties, total, page, limit))


@router.get("/compare", response_model=List[PropertySchema])
def compare_properties(
    ids: str = Query(..., description="Comma-separated property ids (2 to 4)"),
    db: Session = Depends(get_db),
):
    try:
        wanted = [UUID(part.strip()) for part in ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid property id")
    if not 2 <= len(wanted) <= 4:
        raise HTTPException(status_code=400, detail="Select between 2 and 4 properties to compare")

    found = {p.id: p for p in db.query(Property).filter(Property.id.in_(wanted)).all()}
    # Keep the order the client asked for
    return [found[pid] for pid in wanted if pid in found]


@router.post("/nearby", response_model=List[PropertyWithDistance])
def nearby_properties(body: NearbyRequest, db: Session = Depends(get_db)):
    """Properties within ``radius_km`` of a point, closest first."""
    min_lat, max_lat, min_lng, max_lng = bounding_box(body.lat, body.lng, body.radius_km)
    query = db.query(Property).filter(
        Property.latitude != None,  # noqa: E711
        Property.longitude != None,  # noqa: E711
        Property.latitude.between(min_lat, max_lat),
    )
    # Boxes that cross the antimeridian are left to the exact distance check
    if min_lng >= -180 and max_lng <= 180:
        query = query.filter(Property.longitude.between(min_lng, max_lng))

    results = []
    for prop in query.all():
        distance = haversine_km(body.lat, body.lng, prop.latitude, prop.longitude)
        if distance <= body.radius_km:
            results.append(PropertyWithDistance(
                **PropertySchema.model_validate(prop).model_dump(),
                distance_km=round(distance, 3),
            ))

    results.sort(key=lambda p: p.distance_km)
    return results[: body.limit]


@router.get("/slug/{slug}", response_model=PropertySchema)
def get_property_by_slug(slug: str, db: Session = Depends(get_db)):
    prop = db.query(Property).filter(Property.slug == slug).first()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


@router.get("/{id}", response_model=PropertySchema)
def get_property(id: UUID, db: Session = Depends(get_db)):
    prop = db.query(Property).filter(Property.id == id).first()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


@router.get("/{id}/related", response_model=List[PropertySchema])
def related_properties(id: UUID, db: Session = Depends(get_db)):
    """Other properties in the same city."""
    prop = db.query(Property).filter(Property.id == id).first()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")

    return (
        db.query(Property)
        .filter(Property.id != prop.id, Property.city == prop.city)
        .order_by(Property.created_at.desc())
        .limit(3)
        .all()
    )
