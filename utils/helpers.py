# utils/helpers.py - upload helpers
import os
import secrets
import time
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError


def create_directory(path) -> bool:
    """Create a directory, return True if it did not exist"""
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)
        return True
    return False


def build_upload_filename(original_filename: str) -> str:
    """
    Upload time in milliseconds plus a random suffix, keeping the original
    extension: 1729350000123-9f2c1ab4.jpg
    """
    extension = Path(original_filename or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}{extension}"


def is_valid_image(data: bytes) -> bool:
    """Check that the bytes decode as an image Pillow understands

    Image.DecompressionBombError propagates so callers can reject oversized
    dimensions separately.
    """
    try:
        with Image.open(BytesIO(data)) as image:
            image.verify()
        return True
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return False
