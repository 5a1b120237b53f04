"""
Product image uploads.

A write request carries at most one image. The file is committed to storage
before the database row that references it, and removed again if that write
fails, so a reference never points at a missing file and a failed request
leaves nothing behind.
"""
import logging
import os
import secrets
import time
from contextlib import contextmanager

from django.conf import settings
from django.core.files.storage import default_storage
from rest_framework import serializers
from rest_framework.parsers import MultiPartParser

logger = logging.getLogger(__name__)

UPLOAD_DIR = "products"

# room for the text fields and multipart boundaries next to the file itself
MULTIPART_OVERHEAD = 64 * 1024


def max_upload_size():
    return settings.MAX_IMAGE_UPLOAD_SIZE


def size_error_message():
    return f"Image must be {max_upload_size() // (1024 * 1024)}MB or smaller"


class ImageMultiPartParser(MultiPartParser):
    """Refuses bodies that announce more than one image's worth of bytes before reading them."""

    def parse(self, stream, media_type=None, parser_context=None):
        request = (parser_context or {}).get("request")
        if request is not None:
            try:
                length = int(request.META.get("CONTENT_LENGTH") or 0)
            except (TypeError, ValueError):
                length = 0
            if length > max_upload_size() + MULTIPART_OVERHEAD:
                raise serializers.ValidationError({"image": [size_error_message()]})
        return super().parse(stream, media_type, parser_context)


def check_image(upload):
    content_type = getattr(upload, "content_type", "") or ""
    if not content_type.startswith("image/"):
        raise serializers.ValidationError("Not an image! Please upload only images.")
    if upload.size > max_upload_size():
        raise serializers.ValidationError(size_error_message())
    return upload


def unique_image_name(original_name):
    """`products/<epoch ms>-<9 random digits><ext>`, e.g. products/1700000000000-042424242.png"""
    ext = os.path.splitext(original_name or "")[1].lower()
    return f"{UPLOAD_DIR}/{int(time.time() * 1000)}-{secrets.randbelow(10**9):09d}{ext}"


def commit(upload):
    # storage.save() renames on the off chance the generated name is already taken
    reference = default_storage.save(unique_image_name(upload.name), upload)
    logger.info("Stored image %s", reference)
    return reference


def discard(reference):
    """Best-effort delete. Failures are logged, never raised."""
    if not reference:
        return
    try:
        default_storage.delete(reference)
    except Exception:
        logger.exception("Error deleting image %s", reference)


def rollback(reference):
    logger.warning("Rolling back image %s after failed write", reference)
    discard(reference)


@contextmanager
def staged_image(upload):
    """
    Commit `upload` and yield its reference; roll it back if the block raises.
    Yields None when there is nothing to upload.
    """
    if upload is None:
        yield None
        return

    reference = commit(upload)
    try:
        yield reference
    except Exception:
        rollback(reference)
        raise
