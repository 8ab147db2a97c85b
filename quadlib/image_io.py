"""
Image loading and saving.

Images inside the library are numpy arrays in RGB order (grayscale results
stay single-channel). Files are read through Pillow so that HEIC photos and
EXIF orientation are handled the same way for every format.
"""

import logging
import os

import numpy as np
from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

# Register HEIF opener with Pillow to enable HEIC support
register_heif_opener()

DEFAULT_DPI = 300


class ImageFormatError(ValueError):
    """The input cannot be interpreted as an image"""


def as_rgb_array(image):
    """
    Convert an image into the pipeline's working representation.

    Args:
        image: numpy array (H, W), (H, W, 3) or (H, W, 4), or a PIL Image

    Returns:
        numpy uint8 array, (H, W, 3) for colour input or (H, W) for grayscale

    Raises:
        ImageFormatError: if the input is not an image with a non-empty extent
    """
    if image is None:
        raise ImageFormatError("No image given")

    if isinstance(image, Image.Image):
        image = ImageOps.exif_transpose(image)
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image = np.array(image)

    if not isinstance(image, np.ndarray):
        raise ImageFormatError(f"Unsupported image type: {type(image).__name__}")

    if image.ndim == 3 and image.shape[2] == 4:
        image = image[:, :, :3]
    elif image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]

    if image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] != 3):
        raise ImageFormatError(f"Unsupported image shape: {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ImageFormatError(f"Image has an empty extent: {image.shape}")

    if image.dtype != np.uint8:
        if np.issubdtype(image.dtype, np.integer):
            # 16-bit and wider samples span their full range, not 0-255
            image = image.astype(np.float64) * (255.0 / np.iinfo(image.dtype).max)
            image = np.rint(image)
        elif np.issubdtype(image.dtype, np.floating) and image.size and image.max() <= 1.0:
            image = image * 255.0
        image = np.clip(image, 0, 255).astype(np.uint8)

    return image


def fix_orientation(image):
    """
    Normalise a filter result into an upright, contiguous uint8 buffer.

    OpenCV can hand back views with negative strides or non-uint8 data after
    some operations; downstream encoders expect a plain C-ordered array.
    """
    if image is None:
        return None
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    return np.ascontiguousarray(image)


def load_image(file_path):
    """
    Load an image file as an upright RGB array.

    EXIF orientation is applied so the pixels match how the photo is meant
    to be viewed.

    Args:
        file_path: Path to a JPEG, PNG, BMP, HEIC, ... file

    Returns:
        tuple: (image, dpi) where dpi is the horizontal DPI from the file
               metadata, or None if the file does not carry one

    Raises:
        FileNotFoundError: if the file does not exist
        ImageFormatError: if the file cannot be decoded
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Could not read image at: {file_path}")

    try:
        with Image.open(file_path) as pil_image:
            dpi_info = pil_image.info.get('dpi')
            upright = ImageOps.exif_transpose(pil_image)
            image = np.array(upright.convert('RGB'))
    except OSError as e:
        raise ImageFormatError(f"Could not decode image {file_path}: {e}") from e

    dpi = int(round(float(dpi_info[0]))) if dpi_info else None
    logging.info(f"Loaded {file_path} ({image.shape[1]}x{image.shape[0]}px, DPI: {dpi})")
    return image, dpi


def save_image(file_path, image, dpi=DEFAULT_DPI):
    """
    Save an RGB or grayscale array with DPI metadata.

    HEIC output is not supported; use PNG or JPEG.
    """
    ext = os.path.splitext(file_path)[1].lower()
    if ext in ('.heic', '.heif'):
        raise ValueError("Saving HEIC is not supported, use .png or .jpg")

    pil_image = Image.fromarray(fix_orientation(image))
    pil_image.save(file_path, dpi=(dpi, dpi))
    logging.info(f"Image saved to {file_path} @ {dpi} DPI")


def suggested_output_path(input_path, suffix="_scan"):
    """
    Suggest an output filename next to the input.

    HEIC inputs are written as PNG; other formats keep their extension.
    """
    directory = os.path.dirname(input_path)
    name_without_ext, ext = os.path.splitext(os.path.basename(input_path))

    ext = ext.lower()
    if ext == '.jpeg':
        ext = '.jpg'
    elif ext not in ('.jpg', '.png', '.bmp'):
        ext = '.png'

    return os.path.join(directory, f"{name_without_ext}{suffix}{ext}")
