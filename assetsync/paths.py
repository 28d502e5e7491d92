"""
Translation between folder-relative paths ("a/b/image.jpg") and the keys in the bucket.

A source can be configured with a subfolder, which is prepended to every key. All code that
needs a bucket key or a relative path should go through these functions.
"""

import re
from typing import Tuple

from assetsync.models import SourceSettings

IMAGE_EXTENSIONS = {"jpg", "jpeg", "jpe", "png", "gif", "bmp", "webp", "tif", "tiff", "ico"}

# Characters that cannot safely be used in asset filenames
_UNSAFE_NAME_CHARS = re.compile(r'[\\/?*:"<>|#\x00-\x1f]')


class InvalidPathError(ValueError):
    pass


def path_prefix(settings: SourceSettings) -> str:
    if settings.subfolder:
        return settings.subfolder.rstrip("/") + "/"
    return ""


def to_remote_key(relative_path: str, settings: SourceSettings) -> str:
    return path_prefix(settings) + relative_path


def to_relative_path(key: str, settings: SourceSettings) -> str:
    prefix = path_prefix(settings)
    if not key.startswith(prefix):
        raise InvalidPathError(f"Key {key!r} is outside of the source prefix {prefix!r}")
    relative_path = key[len(prefix) :]
    if not relative_path:
        raise InvalidPathError(f"Key {key!r} is the source prefix itself")
    return relative_path


def parent_folder_path(path: str) -> str:
    """
    Parent of a folder path, e.g. a/b/ -> a/ and a/ -> ""
    """
    path = path.rstrip("/")
    if "/" not in path:
        return ""
    return path.rsplit("/", 1)[0] + "/"


def split_uri(uri: str) -> Tuple[str, str]:
    """
    Split a relative file path into folder path and filename, e.g. a/b/c.jpg -> (a/b/, c.jpg)
    """
    if "/" in uri:
        folder, filename = uri.rsplit("/", 1)
        return folder + "/", filename
    return "", uri


def get_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def is_image_extension(filename: str) -> bool:
    return get_extension(filename) in IMAGE_EXTENSIONS


def clean_asset_name(name: str) -> str:
    name = _UNSAFE_NAME_CHARS.sub("", name)
    name = re.sub(r"\s+", " ", name).strip()
    return name.lstrip(".")
