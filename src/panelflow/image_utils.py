"""Image conversion utilities for PanelFlow.

Everything handed to the detector ends up as a contiguous uint8 NumPy array
in RGB(A) channel order (or single-channel grayscale). QImage, image files
and base64 data URIs are converted here.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Union

import cv2
import numpy as np
from numpy.typing import NDArray
from PySide6.QtGui import QImage

from .errors import InvalidImageError

ImageLike = Union[NDArray, QImage]

_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^;,]*)*?;base64,(?P<data>.*)$",
    re.S,
)


def qimage_to_numpy_rgba(img: QImage) -> NDArray:
    """Convert QImage to NumPy array (HxWx4 RGBA uint8).

    Handles PySide6 memoryview correctly and the stride padding of scanlines.

    Raises:
        InvalidImageError: if the QImage is null or empty
    """
    if img.isNull() or img.width() == 0 or img.height() == 0:
        raise InvalidImageError("QImage is null or has zero size")

    # Convert to RGBA8888 if needed
    if img.format() != QImage.Format.Format_RGBA8888:
        img = img.convertToFormat(QImage.Format.Format_RGBA8888)

    w, h = img.width(), img.height()
    bpl = img.bytesPerLine()

    buf = bytes(img.constBits())
    arr = np.frombuffer(buf, dtype=np.uint8)

    # Handle stride padding (bytesPerLine may be > width * 4)
    arr = arr[: h * bpl].reshape((h, bpl))
    arr = arr[:, : w * 4]
    arr = arr.reshape((h, w, 4))

    # Return a contiguous copy for OpenCV compatibility
    return np.ascontiguousarray(arr)


def as_pixel_array(image: ImageLike) -> NDArray:
    """Normalise a supported image into a contiguous uint8 array.

    Accepts (H, W), (H, W, 3) RGB or (H, W, 4) RGBA uint8 arrays, or a QImage.

    Raises:
        InvalidImageError: on None, zero-size, wrong dtype or wrong shape
    """
    if image is None:
        raise InvalidImageError("No image given")
    if isinstance(image, QImage):
        return qimage_to_numpy_rgba(image)
    if not isinstance(image, np.ndarray):
        raise InvalidImageError(f"Unsupported image type: {type(image).__name__}")

    if image.dtype != np.uint8:
        raise InvalidImageError(f"Expected uint8 pixels, got {image.dtype}")
    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    if not (image.ndim == 2 or (image.ndim == 3 and image.shape[2] in (3, 4))):
        raise InvalidImageError(f"Unsupported image shape: {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImageError(f"Image has zero size: {image.shape[1]}x{image.shape[0]}")

    return np.ascontiguousarray(image)


def to_grayscale(arr: NDArray) -> NDArray:
    """Convert an RGB(A) or grayscale array to single-channel luma.

    Uses the standard BT.601 weights of OpenCV's RGB->GRAY conversion.
    A new buffer is always returned so the source is never aliased.
    """
    if arr.ndim == 2:
        return arr.copy()
    if arr.shape[2] == 4:
        return cv2.cvtColor(arr, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(arr, cv2.COLOR_RGB2GRAY)


def decode_image_bytes(data: bytes) -> NDArray:
    """Decode encoded image bytes (PNG, JPEG, ...) into an RGB(A) array.

    Raises:
        InvalidImageError: if the bytes cannot be decoded
    """
    if not data:
        raise InvalidImageError("Empty image data")
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise InvalidImageError("Image data could not be decoded")
    return _from_opencv_order(img)


def load_image(path: str) -> NDArray:
    """Load image from file path as an RGB(A) array.

    Raises:
        InvalidImageError: if the file is missing or cannot be decoded
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise InvalidImageError(f"Failed to read image {path}: {e}") from e
    try:
        return decode_image_bytes(data)
    except InvalidImageError as e:
        raise InvalidImageError(f"Failed to load image {path}: {e}") from e


def image_from_data_uri(uri: str) -> NDArray:
    """Decode a ``data:<mimetype>;base64,<data>`` URI into an RGB(A) array.

    Raises:
        InvalidImageError: if the URI is malformed or the payload undecodable
    """
    m = _DATA_URI_RE.match(uri.strip()) if isinstance(uri, str) else None
    if m is None:
        raise InvalidImageError("Not a base64 data URI")
    mime = m.group("mime") or ""
    if mime and not mime.startswith("image/"):
        raise InvalidImageError(f"Data URI is not an image: {mime}")
    try:
        payload = base64.b64decode("".join(m.group("data").split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Invalid base64 payload: {e}") from e
    return decode_image_bytes(payload)


def encode_png(arr: NDArray) -> bytes:
    """Encode an RGB(A) or grayscale array as PNG bytes."""
    if arr.ndim == 3:
        code = cv2.COLOR_RGBA2BGRA if arr.shape[2] == 4 else cv2.COLOR_RGB2BGR
        arr = cv2.cvtColor(arr, code)
    ok, buf = cv2.imencode(".png", arr)
    if not ok:
        raise InvalidImageError("PNG encoding failed")
    return buf.tobytes()


def _from_opencv_order(img: NDArray) -> NDArray:
    """Convert an array decoded by OpenCV (BGR/BGRA) to RGB/RGBA uint8."""
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    elif img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    return as_pixel_array(img)
