# listings/utils.py

import logging
import re
import time

import cloudinary.uploader

from .models import MAX_IMAGES

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 5 * 1024 * 1024

# Cloudinary applies these on upload: cap the size, let it pick quality and format
IMAGE_TRANSFORMATION = [
    {'width': 1200, 'height': 800, 'crop': 'limit'},
    {'quality': 'auto'},
    {'fetch_format': 'auto'},
]


class ImageUploadError(Exception):
    pass


def sanitize_title(title):
    """'Sea View 2BHK!' -> 'sea-view-2bhk'"""
    slug = re.sub(r'[^a-z0-9]', '-', (title or '').strip().lower())
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-')


def image_file_error(file):
    """Return why an uploaded file can't be a listing image, or None."""
    content_type = getattr(file, 'content_type', '') or ''
    if not content_type.startswith('image/'):
        return f"{file.name} is not an image file"
    if file.size > MAX_IMAGE_SIZE:
        return f"{file.name} is too large. Maximum size is 5MB"
    return None


def check_image_files(files, existing_count=0):
    """Validate a batch of uploads against the per-listing limits."""
    if existing_count + len(files) > MAX_IMAGES:
        return f"A listing can have at most {MAX_IMAGES} images"
    for file in files:
        error = image_file_error(file)
        if error:
            return error
    return None


def upload_listing_images(files, user_id, title):
    """
    Upload files to listings/<user_id>/<sanitized-title>/ and return
    [{"url": ..., "public_id": ...}] in upload order.
    Anything already uploaded is destroyed again if a later file fails.
    """
    slug = sanitize_title(title)
    folder = f"listings/{user_id}/{slug}"
    timestamp = int(time.time() * 1000)

    uploaded = []
    try:
        for index, file in enumerate(files):
            result = cloudinary.uploader.upload(
                file,
                folder=folder,
                public_id=f"{slug}-{timestamp}-{index}",
                resource_type="image",
                transformation=IMAGE_TRANSFORMATION,
            )
            uploaded.append({"url": result['secure_url'], "public_id": result['public_id']})
    except Exception as e:
        logger.exception(f"Cloudinary upload failed for folder {folder}")
        destroy_images([image['public_id'] for image in uploaded], ignore_errors=True)
        raise ImageUploadError("Failed to upload images") from e

    logger.info(f"Uploaded {len(uploaded)} image(s) to {folder}")
    return uploaded


def destroy_images(public_ids, ignore_errors=False):
    for public_id in public_ids:
        try:
            cloudinary.uploader.destroy(public_id, invalidate=True)
        except Exception:
            if not ignore_errors:
                raise
            logger.warning(f"Could not destroy Cloudinary image {public_id}")
