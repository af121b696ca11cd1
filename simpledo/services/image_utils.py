# simpledo/services/image_utils.py

import io
from dataclasses import dataclass
from typing import Optional, Sequence
import cv2  # This is the OpenCV library
import numpy as np
from loguru import logger
from PIL import Image, UnidentifiedImageError

from ..exceptions import InvalidImageError


@dataclass
class ClipboardItem:
    mime_type: str
    data: bytes


def select_image_item(items: Sequence[ClipboardItem]) -> Optional[ClipboardItem]:
    """First pasted item that is an image, if any."""
    for item in items:
        if "image" in (item.mime_type or ""):
            return item
    return None


def detect_mime_type(data: bytes, declared: Optional[str] = None) -> str:
    """
    Opens the bytes with Pillow to make sure they really are an image and
    returns the MIME type Pillow recognised (falling back to `declared`).
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise InvalidImageError(f"Pasted data is not a readable image: {e}") from e
    return Image.MIME.get(fmt or "") or declared or "application/octet-stream"


def preprocess_image(data: bytes) -> bytes:
    """
    Cleans up the image for better OCR accuracy: grayscale plus adaptive
    thresholding, returned as PNG bytes.
    """
    try:
        buffer = np.frombuffer(data, dtype=np.uint8)
        img = cv2.imdecode(buffer, cv2.IMREAD_GRAYSCALE)
        if img is None:
            raise ValueError("OpenCV could not decode the image")

        processed_img = cv2.adaptiveThreshold(
            img, 255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY, 11, 2
        )

        ok, encoded = cv2.imencode(".png", processed_img)
        if not ok:
            raise ValueError("OpenCV could not encode the processed image")
        return encoded.tobytes()
    except Exception as e:
        logger.warning(f"Error during image preprocessing, using the original image: {e}")
        # If preprocessing fails, we can still try with the original image
        return data
