from __future__ import annotations

from pathlib import Path


def _is_under_root(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def ensure_safe_blob_path(root: str | Path, name: str) -> Path:
    root_path = Path(root).resolve()
    p = (root_path / name).resolve()
    if p == root_path or not _is_under_root(p, root_path):
        raise ValueError(f"blob path outside storage root: {name}")
    if not p.is_file():
        raise FileNotFoundError(f"blob not found: {name}")
    return p
