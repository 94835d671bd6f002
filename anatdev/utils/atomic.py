"""
Atomic file output
==================
Write to ``<name>.tmp`` next to the destination, then rename over it, so an
interrupted run never leaves a partially written file behind.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger(__name__)


@contextmanager
def atomic_output(path: Union[str, Path]) -> Iterator[Path]:
    """
    Yield a temporary path to write to; it replaces ``path`` on success

    Usage:
        with atomic_output(out_file) as tmp:
            tmp.write_text(content)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        yield tmp_path
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path.exists():
            tmp_path.unlink()
        raise
    logger.debug(f"Wrote {path}")
