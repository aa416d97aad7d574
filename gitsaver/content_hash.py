"""
Git content addressing helpers

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

import hashlib
from pathlib import Path
from typing import Union


def git_blob_sha1(content: bytes) -> str:
    """
    Compute the blob id git (and GitHub) assign to a file's content.

    The content is prefixed with "blob <length>\\0" before hashing, which is
    what makes the result comparable to the sha reported by the host.
    """
    header = f"blob {len(content)}\0".encode("ascii")
    return hashlib.sha1(header + content).hexdigest()


def file_blob_sha1(path: Union[str, Path]) -> str:
    return git_blob_sha1(Path(path).read_bytes())


def is_up_to_date(path: Union[str, Path], remote_sha: str) -> bool:
    """True when a local file already matches the remote blob sha"""
    path = Path(path)
    if not path.is_file():
        return False
    try:
        return file_blob_sha1(path) == remote_sha.lower()
    except OSError:
        return False
