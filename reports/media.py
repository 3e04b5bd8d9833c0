"""
Media store for report photos.

Photos are saved through Django's default storage; only the returned
URL is kept on the report.
"""

import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage

from core import exceptions as errors

logger = logging.getLogger('campusfix.reports')

ALLOWED_PHOTO_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.webp': 'image/webp',
    '.heic': 'image/heic',
}


def validate_report_photo(uploaded_file):
    """
    Check extension and size of an uploaded photo.

    Returns:
        str: the normalized extension

    Raises:
        ValidationError: for an unsupported type or oversized file
    """
    extension = os.path.splitext(uploaded_file.name or '')[1].lower()
    if extension not in ALLOWED_PHOTO_TYPES:
        raise errors.ValidationError(f"File type not allowed: {extension or 'unknown'}")

    max_size = settings.REPORT_PHOTO_MAX_BYTES
    if uploaded_file.size > max_size:
        raise errors.ValidationError(
            f"File size exceeds maximum allowed ({max_size // (1024 * 1024)} MB)"
        )

    return extension


def store_report_photo(uploaded_file, request=None):
    """
    Save an uploaded photo.

    Returns:
        tuple: (storage name, reference URL). With a request the URL is
        absolute.
    """
    extension = validate_report_photo(uploaded_file)

    name = default_storage.save(f'report_photos/{uuid.uuid4().hex}{extension}', uploaded_file)
    url = default_storage.url(name)
    if request is not None:
        url = request.build_absolute_uri(url)

    logger.info(f"[Media] stored report photo {name} ({uploaded_file.size} bytes)")
    return name, url


def discard_report_photo(name):
    """Remove a stored photo whose report was never saved."""
    default_storage.delete(name)
    logger.warning(f"[Media] discarded report photo {name}")
