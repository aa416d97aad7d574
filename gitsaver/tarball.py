"""
Extraction of host-generated repository tarballs

Copyright 2025 HyperSec

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import logging
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ExtractionError

logger = logging.getLogger(__name__)


@dataclass
class ExtractStats:
    directories: int = 0
    files: int = 0
    skipped: int = 0


def strip_top_level(name: str) -> Optional[str]:
    """
    Drop the wrapper directory GitHub puts around every tarball.

    Example: "owner-repo-deadbeef/src/main.go" -> "src/main.go". Entries
    without a path separator have nothing left once the wrapper is
    removed, so None is returned for them.
    """
    parts = name.split("/")
    if len(parts) < 2:
        return None
    return "/".join(parts[1:])


def _safe_target(dest: Path, relative: str) -> Optional[Path]:
    target = (dest / relative).resolve()
    root = dest.resolve()
    if target != root and root not in target.parents:
        return None
    return target


def extract_tarball(archive_path: Path, dest: Path) -> ExtractStats:
    """
    Extract a .tar.gz archive into dest, stripping the first path segment.

    Directories are created, regular files are written in full (replacing
    existing files) and any other entry type is logged and skipped.

    Raises:
        ExtractionError: if the archive cannot be read or written out
    """
    archive_path = Path(archive_path)
    dest = Path(dest)
    stats = ExtractStats()

    try:
        dest.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive_path, "r:gz") as tar:
            for member in tar:
                relative = strip_top_level(member.name)
                if not relative:
                    stats.skipped += 1
                    continue

                target = _safe_target(dest, relative)
                if target is None:
                    logger.warning(
                        f"[EXTRACT] Skipping entry outside destination: {member.name}"
                    )
                    stats.skipped += 1
                    continue

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    stats.directories += 1
                elif member.isreg():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = tar.extractfile(member)
                    if source is None:
                        raise ExtractionError(f"Cannot read {member.name} from archive")
                    with source, open(target, "wb") as out:
                        shutil.copyfileobj(source, out)
                    stats.files += 1
                else:
                    logger.warning(
                        f"[EXTRACT] Unsupported tar entry type {member.type!r} for {member.name}"
                    )
                    stats.skipped += 1
    except ExtractionError:
        raise
    except (tarfile.TarError, OSError, EOFError) as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e

    logger.info(
        f"[EXTRACT] Extracted {archive_path.name} to {dest} "
        f"({stats.files} files, {stats.directories} directories, {stats.skipped} skipped)"
    )
    return stats
