import os
from collections.abc import Iterable
from pathlib import Path


def discover_files(root: str | Path, extensions: Iterable[str], exclude_dirs: Iterable[str]) -> list[Path]:
    """Return absolute paths of files under ``root`` with a supported extension.

    Directories whose name is in ``exclude_dirs`` are pruned, as are hidden
    directories and hidden files. The result is sorted so that runs over the same tree
    process files in the same order.
    """
    root_path = Path(root).resolve()
    wanted = {ext.lower() for ext in extensions}
    excluded = set(exclude_dirs)

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = [d for d in dirnames if d not in excluded and not d.startswith(".")]
        for filename in filenames:
            if filename.startswith("."):
                continue
            if Path(filename).suffix.lower() in wanted:
                found.append(Path(dirpath) / filename)
    return sorted(found)
