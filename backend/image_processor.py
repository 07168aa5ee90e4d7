"""
Image Processor - Image checks, previews and frame encoding for uploads.
Validates selected images, builds data URL previews and turns camera
frames into JPEG files ready for upload.
"""

import io
import base64
import hashlib
from typing import Any, Tuple, Optional

from PIL import Image


# Supported image formats
SUPPORTED_FORMATS = {'JPEG', 'PNG'}

PREVIEW_SIZE = 640  # Maximum width/height of previews
JPEG_QUALITY = 92


class ImageProcessingError(Exception):
    """Raised when image processing fails."""
    pass


def validate_image_format(file_bytes: bytes) -> Tuple[bool, str]:
    """
    Validate that the file is a readable JPEG or PNG image.

    Returns:
        Tuple of (is_valid, message)
    """
    if not file_bytes:
        return False, "File is empty"

    try:
        image = Image.open(io.BytesIO(file_bytes))
        image_format = image.format

        if image_format not in SUPPORTED_FORMATS:
            return False, f"Unsupported format: {image_format}. Use JPEG or PNG."

        # Verify the image is not truncated
        image.verify()

        return True, f"Valid {image_format} image"

    except Exception as e:
        return False, f"Invalid or corrupted image: {str(e)}"


def is_image_readable(file_bytes: bytes) -> bool:
    is_valid, _ = validate_image_format(file_bytes)
    return is_valid


def load_image(file_bytes: bytes) -> Image.Image:
    """Load image from bytes, flattened to RGB."""
    try:
        image = Image.open(io.BytesIO(file_bytes))
        if image.mode in ('RGBA', 'P', 'LA'):
            # White background for transparency
            background = Image.new('RGB', image.size, (255, 255, 255))
            if image.mode == 'P':
                image = image.convert('RGBA')
            background.paste(image, mask=image.split()[-1] if 'A' in image.mode else None)
            image = background
        elif image.mode != 'RGB':
            image = image.convert('RGB')
        return image
    except Exception as e:
        raise ImageProcessingError(f"Failed to load image: {str(e)}")


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def make_preview(file_bytes: bytes, max_size: int = PREVIEW_SIZE) -> str:
    """
    Build a JPEG data URL preview of an image.

    Raises:
        ImageProcessingError: If the image cannot be read
    """
    image = load_image(file_bytes)
    image.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
    encoded = base64.b64encode(encode_jpeg(image, quality=80)).decode('utf-8')
    return f"data:image/jpeg;base64,{encoded}"


def frame_to_jpeg(frame: Any, quality: int = JPEG_QUALITY) -> bytes:
    """
    Encode a camera frame as JPEG.

    Args:
        frame: PIL Image, or a BGR array as returned by OpenCV
    """
    if isinstance(frame, Image.Image):
        image = frame.convert('RGB')
    else:
        try:
            # OpenCV frames are BGR
            image = Image.fromarray(frame[:, :, ::-1])
        except Exception as e:
            raise ImageProcessingError(f"Failed to convert camera frame: {str(e)}")
    return encode_jpeg(image, quality=quality)


def data_url_to_bytes(data_url: str) -> bytes:
    """Decode a base64 data URL (or bare base64) to bytes."""
    if ',' in data_url:
        data_url = data_url.split(',', 1)[1]
    return base64.b64decode(data_url)


def calculate_md5_checksum(file_bytes: bytes) -> str:
    """Calculate MD5 checksum for file."""
    return hashlib.md5(file_bytes).hexdigest()
