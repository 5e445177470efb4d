"""
solstash/core/fs.py

Small filesystem helpers shared by the local storage provider and the local
cache.
"""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path, PurePath
from typing import Iterator, Union


@contextmanager
def staged_file(target: Path) -> Iterator[Path]:
    """
    Yield a temporary path next to ``target``; move it into place on success.

    The temporary file lives in the target's directory so the final
    ``os.replace`` is atomic. If the block raises, the temporary file is
    removed and ``target`` is left untouched.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def atomic_write_bytes(target: Path, data: bytes) -> None:
    with staged_file(target) as tmp_path:
        tmp_path.write_bytes(data)


def sanitize_relative_path(path: Union[str, PurePath]) -> str:
    """
    Turn any file path into a relative POSIX path safe to nest under a prefix.

    Drive letters, roots, ``.`` and ``..`` segments are dropped:
    ``/abs/out/a.json`` becomes ``abs/out/a.json`` and ``./../b.json`` becomes
    ``b.json``.
    """
    raw = str(path).replace("\\", "/")
    segments = []
    for index, segment in enumerate(raw.split("/")):
        if segment in ("", ".", ".."):
            continue
        if index == 0 and len(segment) == 2 and segment[1] == ":":
            continue
        segments.append(segment)
    if not segments:
        raise ValueError(f"Path {path!r} has no usable segment")
    return "/".join(segments)
