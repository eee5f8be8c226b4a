import json
import logging
from uuid import UUID
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import String, cast
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.core.exceptions import CatalogueError, GeocodingError, ImageHostError
from app.models.user import User, user_favorites
from app.models.property import Property
from app.models.lead import Quote
from app.schemas.property import Property as PropertySchema
from app.services.geocoding import Geocoder, get_geocoder
from app.services.images import ImageHost, PROPERTY_FOLDER, get_image_host
from app.services.slugs import save_with_unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/properties", tags=["Admin - Properties"])

MAX_IMAGES = 10
TITLE_MAX_LENGTH = Property.__table__.c.title.type.length


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _upload_images(image_host: ImageHost, files: List[UploadFile]) -> List[str]:
    if len(files) > MAX_IMAGES:
        raise HTTPException(status_code=400, detail=f"At most {MAX_IMAGES} images are allowed")
    urls = []
    try:
        for f in files:
            urls.append(image_host.upload(f.file, f.filename, PROPERTY_FOLDER))
    except CatalogueError:
        _destroy_images(image_host, urls)
        raise
    return urls


def _destroy_images(image_host: ImageHost, urls: List[str]) -> None:
    for url in urls:
        image_host.destroy(url, PROPERTY_FOLDER)


def _destroy_unshared_images(db: Session, image_host: ImageHost, urls: List[str], owner_id: UUID) -> None:
    """Destroy images no longer listed by any property other than ``owner_id``."""
    for url in urls:
        others = (
            db.query(Property)
            .filter(Property.id != owner_id, cast(Property.images, String).contains(url, autoescape=True))
            .all()
        )
        if any(url in (p.images or []) for p in others):
            logger.info("Keeping image %s, still used by another property", url)
            continue
        image_host.destroy(url, PROPERTY_FOLDER)


def _locate(geocoder: Geocoder, address: Optional[str], city: Optional[str]):
    """(lat, lng) for the address, or (None, None) when it cannot be resolved."""
    query = ", ".join(part for part in (address, city) if part)
    if not query:
        return None, None
    try:
        point = geocoder.geocode(query)
    except GeocodingError:
        logger.warning("Geocoding failed for %r; saving without coordinates", query, exc_info=True)
        return None, None
    return point if point else (None, None)


def _get_property_or_404(db: Session, id: UUID) -> Property:
    prop = db.query(Property).filter(Property.id == id).first()
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


# ---------------------------------------------------------------------------
# Property CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=PropertySchema, status_code=status.HTTP_201_CREATED)
def create_property(
    title: str = Form(..., max_length=TITLE_MAX_LENGTH),
    bhk_type: Optional[str] = Form(None),
    furnishing: Optional[str] = Form(None),
    bedrooms: Optional[int] = Form(None),
    bathrooms: Optional[int] = Form(None),
    super_builtup_area: Optional[str] = Form(None),
    developer: Optional[str] = Form(None),
    project: Optional[str] = Form(None),
    property_type: Optional[str] = Form(None),
    transaction_type: Optional[str] = Form(None),
    status_: Optional[str] = Form(None, alias="status"),
    price: Optional[float] = Form(None),
    rera_id: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    active_status: Optional[str] = Form(None),
    images: List[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
    geocoder: Geocoder = Depends(get_geocoder),
):
    latitude, longitude = _locate(geocoder, address, city)
    urls = _upload_images(image_host, images)

    prop = Property(
        title=title.strip(),
        bhk_type=bhk_type,
        furnishing=furnishing,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        super_builtup_area=super_builtup_area,
        developer=developer,
        project=project,
        property_type=property_type,
        transaction_type=transaction_type,
        status=status_,
        price=price,
        rera_id=rera_id,
        address=address,
        description=description,
        city=city,
        active_status=active_status or "Draft",
        images=urls,
        latitude=latitude,
        longitude=longitude,
    )
    try:
        prop = save_with_unique_slug(db, prop, title, "property")
    except CatalogueError:
        # Nothing references the uploads if the row was never written
        _destroy_images(image_host, urls)
        raise
    logger.info("Property %s created with slug %s", prop.id, prop.slug)
    return prop


@router.put("/{id}", response_model=PropertySchema)
def update_property(
    id: UUID,
    title: Optional[str] = Form(None, max_length=TITLE_MAX_LENGTH),
    bhk_type: Optional[str] = Form(None),
    furnishing: Optional[str] = Form(None),
    bedrooms: Optional[int] = Form(None),
    bathrooms: Optional[int] = Form(None),
    super_builtup_area: Optional[str] = Form(None),
    developer: Optional[str] = Form(None),
    project: Optional[str] = Form(None),
    property_type: Optional[str] = Form(None),
    transaction_type: Optional[str] = Form(None),
    status_: Optional[str] = Form(None, alias="status"),
    price: Optional[float] = Form(None),
    rera_id: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    active_status: Optional[str] = Form(None),
    removed_images: Optional[str] = Form(None, description="JSON list of image URLs to delete"),
    images: List[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
    geocoder: Geocoder = Depends(get_geocoder),
):
    prop = _get_property_or_404(db, id)

    try:
        removed = json.loads(removed_images) if removed_images else []
    except ValueError:
        raise HTTPException(status_code=400, detail="removed_images must be a JSON list")
    if not isinstance(removed, list):
        raise HTTPException(status_code=400, detail="removed_images must be a JSON list")
    # Only images this property actually lists can be removed through it
    removed = [url for url in removed if url in (prop.images or [])]

    changes = {
        "bhk_type": bhk_type,
        "furnishing": furnishing,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "super_builtup_area": super_builtup_area,
        "developer": developer,
        "project": project,
        "property_type": property_type,
        "transaction_type": transaction_type,
        "status": status_,
        "price": price,
        "rera_id": rera_id,
        "address": address,
        "description": description,
        "city": city,
        "active_status": active_status,
    }
    changes = {field: value for field, value in changes.items() if value is not None}

    if "address" in changes or "city" in changes:
        latitude, longitude = _locate(
            geocoder, changes.get("address", prop.address), changes.get("city", prop.city)
        )
        changes["latitude"] = latitude
        changes["longitude"] = longitude

    new_urls = _upload_images(image_host, images)
    changes["images"] = [img for img in (prop.images or []) if img not in removed] + new_urls

    renamed = title is not None and title.strip() != prop.title
    try:
        if renamed:
            changes["title"] = title.strip()
            prop = save_with_unique_slug(db, prop, title, "property", changes=changes, exclude_id=prop.id)
        else:
            for field, value in changes.items():
                setattr(prop, field, value)
            db.commit()
            db.refresh(prop)
    except CatalogueError:
        _destroy_images(image_host, new_urls)
        raise

    _destroy_unshared_images(db, image_host, removed, prop.id)
    return prop


@router.post("/{id}/duplicate", response_model=PropertySchema, status_code=status.HTTP_201_CREATED)
def duplicate_property(
    id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
):
    original = _get_property_or_404(db, id)

    images = []
    for url in original.images or []:
        try:
            images.append(image_host.copy(url, PROPERTY_FOLDER))
        except ImageHostError:
            logger.warning("Could not copy image %s; the duplicate shares it", url, exc_info=True)
            images.append(url)

    suffix = " (Copy)"
    copy_title = f"{(original.title or 'Property')[:TITLE_MAX_LENGTH - len(suffix)]}{suffix}"
    duplicate = Property(
        title=copy_title,
        bhk_type=original.bhk_type,
        furnishing=original.furnishing,
        bedrooms=original.bedrooms,
        bathrooms=original.bathrooms,
        super_builtup_area=original.super_builtup_area,
        developer=original.developer,
        project=original.project,
        property_type=original.property_type,
        transaction_type=original.transaction_type,
        status=original.status,
        price=original.price,
        rera_id=original.rera_id,
        address=original.address,
        description=original.description,
        city=original.city,
        active_status=original.active_status,
        images=images,
        latitude=original.latitude,
        longitude=original.longitude,
    )
    return save_with_unique_slug(db, duplicate, copy_title, "property")


@router.delete("/{id}", status_code=status.HTTP_200_OK)
def delete_property(
    id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
    image_host: ImageHost = Depends(get_image_host),
):
    prop = _get_property_or_404(db, id)
    images = list(prop.images or [])

    db.execute(user_favorites.delete().where(user_favorites.c.property_id == id))
    db.query(Quote).filter(Quote.property_id == id).update({"property_id": None})
    db.delete(prop)
    db.commit()

    _destroy_unshared_images(db, image_host, images, id)
    return {"id": str(id), "message": "Property deleted successfully"}
