"""
Question content references

A question, hint1 or hint2 field is either plain text or an opaque
picture reference written as file://<relative path>. The engine only
needs to tell the two apart; turning a reference into bytes is the job
of a ContentResolver supplied by the host.
"""
import logging
from pathlib import Path
from typing import Optional, Protocol


logger = logging.getLogger(__name__)

IMAGE_PREFIX = "file://"


def is_image_reference(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(IMAGE_PREFIX)


def reference_path(value: str) -> str:
    """Strip the file:// prefix from a picture reference"""
    return value[len(IMAGE_PREFIX):]


class ContentResolver(Protocol):
    def resolve(self, reference: str) -> Optional[bytes]:
        """Return the bytes behind a picture reference, or None if missing"""


class MediaDirectoryResolver:
    """Resolve picture references against a local media directory"""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def resolve(self, reference: str) -> Optional[bytes]:
        path = (self.root / reference_path(reference).lstrip('/')).resolve()
        if self.root not in path.parents or not path.is_file():
            logger.warning(f"Picture not found: {reference}")
            return None
        return path.read_bytes()
