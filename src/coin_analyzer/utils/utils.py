import os
from pathlib import Path
from typing import Iterator, List

IMAGE_EXTS = {'.jpg', '.jpeg', '.png', '.heic', '.heif'}


def iter_files(root: Path) -> Iterator[Path]:
    """
    Recursively yield file paths under `root` using os.scandir for speed.
    """
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    if entry.is_dir(follow_symlinks=False):
                        stack.append(Path(entry.path))
                    elif entry.is_file(follow_symlinks=False):
                        yield Path(entry.path)
        except PermissionError:
            continue


def find_images(root: Path) -> List[Path]:
    """Return the image files under `root` (or `root` itself if it is an image), sorted."""
    if root.is_file():
        return [root] if root.suffix.lower() in IMAGE_EXTS else []
    return sorted(
        path for path in iter_files(root)
        # Skip macOS metadata files
        if path.suffix.lower() in IMAGE_EXTS and not path.name.startswith("._")
    )
