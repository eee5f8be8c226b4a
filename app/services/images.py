"""Image hosting on Cloudinary."""

import logging
import os
from typing import BinaryIO

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.core.config import settings
from app.core.exceptions import ImageHostError, UnsupportedImage

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ("jpg", "jpeg", "png", "webp")

PROPERTY_FOLDER = "property-images"
BLOG_FOLDER = "blog_images"


def public_id_from_url(url: str, folder: str) -> str:
    """``https://res.cloudinary.com/x/image/upload/v1/property-images/abc.jpg`` -> ``property-images/abc``"""
    last = url.rstrip("/").split("/")[-1]
    name = last.rsplit(".", 1)[0] if "." in last else last
    return f"{folder}/{name}"


class ImageHost:
    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )

    def upload(self, file: BinaryIO, filename: str, folder: str) -> str:
        ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
        if ext not in ALLOWED_FORMATS:
            raise UnsupportedImage(filename, ALLOWED_FORMATS)
        try:
            result = cloudinary.uploader.upload(file, folder=folder, allowed_formats=list(ALLOWED_FORMATS))
        except CloudinaryError as e:
            raise ImageHostError(context={"filename": filename, "folder": folder, "error": str(e)}) from e
        logger.info("Uploaded %s to %s as %s", filename, folder, result.get("public_id"))
        return result["secure_url"]

    def copy(self, url: str, folder: str) -> str:
        """Upload a new copy of an already hosted image."""
        try:
            result = cloudinary.uploader.upload(url, folder=folder)
        except CloudinaryError as e:
            raise ImageHostError("Image copy failed", context={"url": url, "error": str(e)}) from e
        return result["secure_url"]

    def destroy(self, url: str, folder: str) -> bool:
        """Remove a hosted image. Failures are logged and reported as False."""
        public_id = public_id_from_url(url, folder)
        try:
            result = cloudinary.uploader.destroy(public_id)
        except CloudinaryError:
            logger.warning("Cloudinary delete failed for %s", public_id, exc_info=True)
            return False
        return result.get("result") == "ok"


def get_image_host() -> ImageHost:
    return ImageHost()
