"""
Tests for tarball module

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

import io
import tarfile
from pathlib import Path

import pytest

from gitsaver.errors import ExtractionError
from gitsaver.tarball import extract_tarball, strip_top_level


def build_tarball(path: Path, entries):
    """Write a .tar.gz; entries are (name, type, content) tuples"""
    with tarfile.open(path, "w:gz") as tar:
        for name, kind, content in entries:
            info = tarfile.TarInfo(name)
            if kind == "dir":
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
            elif kind == "file":
                data = content.encode()
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
            elif kind == "symlink":
                info.type = tarfile.SYMTYPE
                info.linkname = content
                tar.addfile(info)
    return path


class TestStripTopLevel:
    """Tests for wrapper directory stripping"""

    def test_strips_first_segment(self):
        """Test the first path segment is removed"""
        assert strip_top_level("repo-abc123/src/main.go") == "src/main.go"

    def test_no_separator(self):
        """Test names without a separator have nothing to extract"""
        assert strip_top_level("repo-abc123") is None

    def test_only_first_segment_removed(self):
        """Test deeper segments are kept intact"""
        assert strip_top_level("a/b/c/d.txt") == "b/c/d.txt"


class TestExtractTarball:
    """Tests for tarball extraction"""

    def test_extracts_without_wrapper(self, tmp_path):
        """Test files land under dest with the wrapper directory removed"""
        archive = build_tarball(
            tmp_path / "repo.tar.gz",
            [
                ("repo-abc123", "dir", None),
                ("repo-abc123/src", "dir", None),
                ("repo-abc123/src/main.go", "file", "package main\n"),
                ("repo-abc123/README.md", "file", "# readme\n"),
            ],
        )
        dest = tmp_path / "out"

        stats = extract_tarball(archive, dest)

        assert (dest / "src" / "main.go").read_text() == "package main\n"
        assert (dest / "README.md").read_text() == "# readme\n"
        assert not (dest / "repo-abc123").exists()
        assert stats.files == 2
        assert stats.directories == 1
        assert stats.skipped == 1

    def test_top_level_file_skipped(self, tmp_path):
        """Test an entry with no separator produces no file"""
        archive = build_tarball(
            tmp_path / "repo.tar.gz",
            [("repo-abc123", "file", "stray"), ("repo-abc123/a.txt", "file", "a")],
        )
        dest = tmp_path / "out"

        extract_tarball(archive, dest)

        assert sorted(p.name for p in dest.iterdir()) == ["a.txt"]

    def test_overwrites_existing_files(self, tmp_path):
        """Test regular files replace existing content"""
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "a.txt").write_text("old content that is longer")
        archive = build_tarball(tmp_path / "repo.tar.gz", [("w/a.txt", "file", "new")])

        extract_tarball(archive, dest)

        assert (dest / "a.txt").read_text() == "new"

    def test_files_without_directory_entries(self, tmp_path):
        """Test parent directories are created for file entries"""
        archive = build_tarball(
            tmp_path / "repo.tar.gz", [("w/deep/nested/file.txt", "file", "x")]
        )
        dest = tmp_path / "out"

        extract_tarball(archive, dest)

        assert (dest / "deep" / "nested" / "file.txt").read_text() == "x"

    def test_symlinks_skipped(self, tmp_path):
        """Test unsupported entry types are skipped rather than failing"""
        archive = build_tarball(
            tmp_path / "repo.tar.gz",
            [("w/target.txt", "file", "t"), ("w/link", "symlink", "target.txt")],
        )
        dest = tmp_path / "out"

        stats = extract_tarball(archive, dest)

        assert (dest / "target.txt").exists()
        assert not (dest / "link").exists()
        assert stats.skipped == 1

    def test_path_traversal_skipped(self, tmp_path):
        """Test entries escaping the destination are not written"""
        archive = build_tarball(
            tmp_path / "repo.tar.gz", [("w/../../evil.txt", "file", "bad")]
        )
        dest = tmp_path / "nested" / "out"

        stats = extract_tarball(archive, dest)

        assert not (tmp_path / "evil.txt").exists()
        assert stats.skipped == 1

    def test_corrupt_archive(self, tmp_path):
        """Test unreadable archives raise ExtractionError"""
        archive = tmp_path / "broken.tar.gz"
        archive.write_bytes(b"this is not a tarball")

        with pytest.raises(ExtractionError):
            extract_tarball(archive, tmp_path / "out")

    def test_archive_is_not_removed(self, tmp_path):
        """Test extraction itself leaves the archive in place"""
        archive = build_tarball(tmp_path / "repo.tar.gz", [("w/a.txt", "file", "a")])

        extract_tarball(archive, tmp_path / "out")

        assert archive.exists()
