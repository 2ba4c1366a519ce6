import json
import os.path
from typing import Any

SUPPORTED_IMAGE_EXTENSIONS = {'.bmp', '.jpg', '.jpeg', '.png', '.tif', '.tiff', '.webp'}

IMAGE_MIME_TYPES = {
    '.bmp': 'image/bmp',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.tif': 'image/tiff',
    '.tiff': 'image/tiff',
    '.webp': 'image/webp',
}

CAPTION_EXTENSION = '.txt'


def write_json_atomic(path: str, obj: Any):
    with open(path + ".write", "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=4)
    os.replace(path + ".write", path)


def is_supported_image_extension(extension: str) -> bool:
    return extension.lower() in SUPPORTED_IMAGE_EXTENSIONS


def caption_filename(image_filename: str) -> str:
    # the sidecar shares the image's base name, only the extension changes
    return os.path.splitext(image_filename)[0] + CAPTION_EXTENSION


def image_mime_type(image_filename: str) -> str:
    extension = os.path.splitext(image_filename)[1].lower()
    return IMAGE_MIME_TYPES.get(extension, 'image/jpeg')
