"""Storage key generation."""

import re
from pathlib import PurePosixPath
from typing import Callable
from uuid import UUID, uuid4

_EXTENSION_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def file_extension(filename: str) -> str:
    """Return the extension of a client supplied filename, or "" if unusable.

    Browsers may send full Windows paths, so backslashes count as separators.
    """
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix
    if not _EXTENSION_PATTERN.match(suffix):
        return ""
    return suffix


def generate_object_key(filename: str, id_factory: Callable[[], UUID] = uuid4) -> str:
    """Build a fresh storage key: a random identifier plus the file extension."""
    return f"{id_factory()}{file_extension(filename)}"
