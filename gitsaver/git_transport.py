"""
Thin wrapper around the git command line

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
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import quote, urlparse, urlunparse

from .errors import TransportError

ALL_REFS = "refs/*:refs/*"


def with_credentials(url: str, credentials: Optional[Tuple[str, str]]) -> str:
    """Embed basic-auth credentials into an https clone URL"""
    if not credentials:
        return url
    username, password = credentials
    parsed = urlparse(url)
    host = parsed.hostname or ""
    if parsed.port:
        host = f"{host}:{parsed.port}"
    netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{host}"
    return urlunparse(parsed._replace(netloc=netloc))


def mask_secret(text: str, secret: Optional[str], mask: str = "*****") -> str:
    if not secret or not text:
        return text
    return text.replace(secret, mask).replace(quote(secret, safe=""), mask)


class GitTransport:
    def __init__(self, git_binary: str = "git", timeout: Optional[int] = None):
        self.git_binary = git_binary
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    def clone(
        self,
        url: str,
        destination: Path,
        credentials: Optional[Tuple[str, str]] = None,
    ):
        """Full clone of url into destination"""
        secret = credentials[1] if credentials else None
        remote = with_credentials(url, credentials)
        self._run(["clone", remote, str(destination)], secret=secret)

    def fetch_all_refs(
        self,
        repo_path: Path,
        remote: str = "origin",
        credentials: Optional[Tuple[str, str]] = None,
    ):
        """
        Fetch every ref from the remote into the working copy.

        --update-head-ok lets the checked-out branch be updated too; an
        already up to date fetch exits cleanly.
        """
        secret = credentials[1] if credentials else None
        self._run(
            ["fetch", "--update-head-ok", "--force", remote, ALL_REFS],
            cwd=repo_path,
            secret=secret,
        )

    def _run(
        self,
        args: List[str],
        cwd: Optional[Path] = None,
        secret: Optional[str] = None,
    ) -> str:
        cmd = [self.git_binary] + args
        printable = mask_secret(" ".join(cmd), secret)
        self.logger.debug(f"[GIT] Running: {printable}")

        env = os.environ.copy()
        # Never block on an interactive credential prompt
        env["GIT_TERMINAL_PROMPT"] = "0"

        try:
            # DEVNULL for stdout avoids buffering git progress output
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                cwd=str(cwd) if cwd else None,
                env=env,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise TransportError(f"git executable not found: {self.git_binary}") from e
        except subprocess.TimeoutExpired as e:
            raise TransportError(
                f"git command timed out after {self.timeout}s: {printable}"
            ) from e

        if result.returncode != 0:
            stderr_truncated = mask_secret((result.stderr or "")[:500], secret).strip()
            raise TransportError(
                f"git {args[0]} failed with exit code {result.returncode}: "
                f"{stderr_truncated}"
            )

        return result.stderr or ""
