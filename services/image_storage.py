"""
Permanent storage for generated images.

Images arrive from the generator as base64 data URLs and are written to
GENERATED_IMAGES_DIR; the app serves them back under /generated/<path>.
"""

import base64
import binascii
import logging
import os
import re

from flask import current_app

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")


class ImageStorageError(ValueError):
    """Raised when an image cannot be decoded or written."""

    pass


def images_root() -> str:
    return os.path.abspath(current_app.config["GENERATED_IMAGES_DIR"])


def public_url(path: str) -> str:
    base_url = current_app.config.get("BASE_URL", "").rstrip("/")
    return f"{base_url}/generated/{path}"


def decode_data_url(data_url: str) -> bytes:
    """Strip the data URL prefix (if any) and decode the base64 payload."""
    payload = DATA_URL_PREFIX.sub("", (data_url or "").strip())
    if not payload:
        raise ImageStorageError("Image data is empty")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageStorageError(f"Image data is not valid base64: {str(e)}") from e


def save_base64_image(data_url: str, path: str) -> str:
    """
    Write a base64 image to storage and return its public URL.

    Args:
        data_url: `data:image/png;base64,...` or a bare base64 string.
        path: Relative storage path, e.g. `campaign_3/item_0_1700000000000.png`.

    Raises:
        ImageStorageError: If the data cannot be decoded or the path escapes storage.
    """
    image_bytes = decode_data_url(data_url)

    root = images_root()
    target = os.path.abspath(os.path.join(root, path))
    if not target.startswith(root + os.sep):
        raise ImageStorageError(f"Invalid image path: {path}")

    try:
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "wb") as f:
            f.write(image_bytes)
    except OSError as e:
        logger.error(f"Failed to write generated image {path}: {e}")
        raise ImageStorageError(f"Failed to store image: {str(e)}") from e

    logger.info(f"Stored generated image {path} ({len(image_bytes)} bytes)")
    return public_url(path)
