"""File operation utilities for atlas_unpacker."""
import os
from typing import List, Optional


def find_file_case_insensitive(folder: str, filename: str) -> Optional[str]:
    """
    Search for a file in a folder with case-insensitive matching.

    Atlas headers often disagree with the sheet's on-disk casing
    ("Hero.PNG" vs "hero.png"), so the page image is looked up this way.

    Args:
        folder: Directory to search in
        filename: Name of the file to find

    Returns:
        Full path to the file if found, None otherwise
    """
    direct = os.path.join(folder, filename)
    if os.path.isfile(direct):
        return direct

    filename_lower = os.path.basename(filename).lower()
    for root, dirs, files in os.walk(folder):
        dirs.sort()
        for f in sorted(files):
            if f.lower() == filename_lower:
                return os.path.join(root, f)
    return None


def remove_partial_output(path: str) -> bool:
    """Delete a half-written output file; returns False if it could not be removed."""
    if not os.path.exists(path):
        return False
    try:
        os.remove(path)
    except OSError:
        return False
    return True


def find_atlas_files(directory: str, recursive: bool = False) -> List[str]:
    """
    Collect the .atlas files below directory, sorted by path.

    Args:
        directory: Directory to search
        recursive: Also descend into subdirectories

    Returns:
        List of atlas file paths
    """
    atlas_paths = []
    for root, dirs, files in os.walk(directory):
        atlas_paths.extend(os.path.join(root, f) for f in files if f.lower().endswith('.atlas'))
        if not recursive:
            break
    return sorted(atlas_paths)
