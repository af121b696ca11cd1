import io

import pytest
from PIL import Image

from simpledo.exceptions import InvalidImageError
from simpledo.services.image_utils import (
    ClipboardItem,
    detect_mime_type,
    preprocess_image,
    select_image_item,
)


def test_select_first_image_item(png_bytes):
    items = [
        ClipboardItem("text/plain", b"hello"),
        ClipboardItem("image/png", png_bytes),
        ClipboardItem("image/jpeg", b"second"),
    ]
    assert select_image_item(items) is items[1]


def test_select_without_image():
    assert select_image_item([ClipboardItem("text/html", b"<b>x</b>")]) is None
    assert select_image_item([]) is None


def test_detect_mime_type_from_content(png_bytes):
    # the declared type is wrong, the bytes win
    assert detect_mime_type(png_bytes, declared="image/jpeg") == "image/png"


def test_detect_mime_type_rejects_non_images():
    with pytest.raises(InvalidImageError):
        detect_mime_type(b"definitely not an image", declared="image/png")


def test_preprocess_returns_grayscale_png(png_bytes):
    processed = preprocess_image(png_bytes)

    with Image.open(io.BytesIO(processed)) as img:
        assert img.format == "PNG"
        assert img.mode == "L"
        assert img.size == (64, 32)


def test_preprocess_keeps_original_on_failure():
    data = b"garbage"
    assert preprocess_image(data) is data
