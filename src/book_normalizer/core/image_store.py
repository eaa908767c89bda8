"""Persist image assets beside their source document."""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable

from book_normalizer.models.document import ImageRef

log = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/bmp": ".bmp",
}
UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class ImageAsset:
    """Image declared by a source document, loaded on demand."""

    id: str
    href: str
    media_type: str
    load: Callable[[], bytes]


def images_dir_for(source_path: Path, suffix: str = "_images") -> Path:
    """Return <source dir>/<source stem>_images."""
    return source_path.parent / f"{source_path.stem}{suffix}"


def extension_for(media_type: str | None) -> str:
    return MIME_EXTENSIONS.get((media_type or "").lower(), ".jpg")


def safe_filename(href: str, fallback: str, media_type: str | None) -> str:
    """Build a sanitized file name from an asset reference."""
    name = PurePosixPath(href or fallback).name or fallback
    if not PurePosixPath(name).suffix:
        name = f"{name}{extension_for(media_type)}"
    return UNSAFE_FILENAME_RE.sub("_", name)


def claim_filename(directory: Path, filename: str, claimed: set[str]) -> Path:
    """Pick a free path, inserting _1, _2, ... before the extension."""
    stem, suffix = Path(filename).stem, Path(filename).suffix
    candidate = filename
    counter = 1
    while candidate in claimed or (directory / candidate).exists():
        candidate = f"{stem}_{counter}{suffix}"
        counter += 1
    claimed.add(candidate)
    return directory / candidate


class ImageStore:
    """Save image assets to a directory, one file per asset."""

    def __init__(self, images_dir: Path, max_workers: int = 4):
        self.images_dir = images_dir
        self.max_workers = max_workers

    def save_all(self, assets: list[ImageAsset]) -> list[ImageRef]:
        """Save assets concurrently; results keep the declaration order.

        A failing asset is reported through ImageRef.error rather than raised.
        """
        if not assets:
            return []

        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.warning("Could not create image directory %s: %s", self.images_dir, e)

        # Names are claimed up front so concurrent writes never share a path
        claimed: set[str] = set()
        targets = [
            claim_filename(
                self.images_dir,
                safe_filename(asset.href, asset.id, asset.media_type),
                claimed,
            )
            for asset in assets
        ]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self._save_one, assets, targets))

    def _save_one(self, asset: ImageAsset, target: Path) -> ImageRef:
        try:
            data = asset.load()
            target.write_bytes(data)
        except Exception as e:
            log.warning("Image %s could not be saved: %s", asset.id, e)
            return ImageRef(
                id=asset.id,
                href=asset.href,
                media_type=asset.media_type,
                error=str(e) or e.__class__.__name__,
            )

        log.debug("Saved image %s", target)
        return ImageRef(
            id=asset.id,
            href=asset.href,
            media_type=asset.media_type,
            size=target.stat().st_size,
            saved_path=str(target),
        )
