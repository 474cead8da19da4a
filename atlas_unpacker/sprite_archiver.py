import io
import os
import zipfile
from typing import Dict, Iterable

from .errors import ArchiveError
from .sprite_extractor import ExtractedSprite
from .utils.file_operations import remove_partial_output

ARCHIVE_FOLDER = 'images'


def _collect_entries(sprites: Iterable[ExtractedSprite], folder: str) -> Dict[str, bytes]:
    # Later sprites with the same name replace earlier ones
    entries = {}
    for sprite in sprites:
        entries[f"{folder}/{sprite.name}.png"] = sprite.data
    return entries


def create_zip(sprites: Iterable[ExtractedSprite], folder: str = ARCHIVE_FOLDER) -> bytes:
    """
    Bundle sprites into a deflate-compressed ZIP.

    Each sprite is stored as <folder>/<name>.png. Name collisions are
    resolved silently, last write wins.

    Raises:
        ArchiveError: If the archive could not be written
    """
    buffer = io.BytesIO()
    try:
        entries = _collect_entries(sprites, folder)
        with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            # Directory entry, so empty bundles still contain the folder
            zf.writestr(f"{folder}/", b'')
            for arcname, data in entries.items():
                zf.writestr(arcname, data)
    except Exception as e:
        raise ArchiveError(e) from e
    return buffer.getvalue()


def write_zip(sprites: Iterable[ExtractedSprite], output_path: str, folder: str = ARCHIVE_FOLDER) -> str:
    """Write the bundle to output_path and return the path."""
    blob = create_zip(sprites, folder)
    output_dir = os.path.dirname(output_path)
    try:
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(output_path, 'wb') as f:
            f.write(blob)
    except OSError as e:
        remove_partial_output(output_path)
        raise ArchiveError(e) from e
    return output_path
