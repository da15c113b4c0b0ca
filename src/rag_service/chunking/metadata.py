"""
Chunk and file metadata builders.

Both builders return a new dict and never mutate the caller's base map.
Values stay JSON-serializable so they can be stored in a JSONB column.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union


def build_chunk_metadata(
    index: int,
    total: int,
    base: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Copy ``base`` and record the chunk's position within its source.
    """
    meta = dict(base or {})
    meta["chunk_index"] = index
    meta["chunk_count"] = total
    return meta


def build_file_metadata(
    path: Union[str, Path],
    base: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Copy ``base`` and record where a document was loaded from.

    Adds ``source``, ``file_path`` (as given), ``absolute_path``,
    ``file_name``, ``file_ext`` and a UTC ``loaded_at`` timestamp.
    """
    file_path = Path(path)

    meta = dict(base or {})
    meta["source"] = "file"
    meta["file_path"] = str(path)
    meta["absolute_path"] = str(file_path.resolve())
    meta["file_name"] = file_path.name
    meta["file_ext"] = file_path.suffix
    meta["loaded_at"] = datetime.now(timezone.utc).isoformat()
    return meta
