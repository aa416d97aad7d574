"""
Tests for base module

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

import dataclasses

import pytest

from gitsaver.base import (
    BackupMethod,
    RepositoryRef,
    RunResultBuilder,
    TransferOutcome,
)
from gitsaver.errors import ConfigurationError


class TestRepositoryRef:
    """Tests for RepositoryRef dataclass"""

    def test_repository_creation(self):
        """Test basic repository creation"""
        repo = RepositoryRef(
            owner="test-org",
            name="test-repo",
            clone_url="https://github.com/test-org/test-repo.git",
        )

        assert repo.name == "test-repo"
        assert repo.owner == "test-org"
        assert repo.is_fork is False
        assert repo.is_archived is False
        assert repo.default_branch is None
        assert repo.full_name == "test-org/test-repo"
        assert repo.identity == ("test-org", "test-repo")

    def test_repository_equality(self):
        """Test that two repositories with same values are equal"""
        repo1 = RepositoryRef(owner="o", name="r", clone_url="https://x/o/r.git")
        repo2 = RepositoryRef(owner="o", name="r", clone_url="https://x/o/r.git")

        assert repo1 == repo2
        assert hash(repo1) == hash(repo2)

    def test_repository_is_immutable(self):
        """Test that fetched repositories cannot be modified"""
        repo = RepositoryRef(owner="o", name="r", clone_url="https://x/o/r.git")

        with pytest.raises(dataclasses.FrozenInstanceError):
            repo.name = "other"


class TestBackupMethod:
    """Tests for BackupMethod parsing"""

    def test_parse_config_values(self):
        """Test config spellings map to the two strategies"""
        assert BackupMethod.parse("tarball") is BackupMethod.ARCHIVE
        assert BackupMethod.parse("git") is BackupMethod.CLONE

    def test_parse_is_case_insensitive(self):
        """Test parsing ignores case and whitespace, and accepts member names"""
        assert BackupMethod.parse(" TARBALL ") is BackupMethod.ARCHIVE
        assert BackupMethod.parse("Clone") is BackupMethod.CLONE

    def test_parse_member_passthrough(self):
        """Test an enum member is returned unchanged"""
        assert BackupMethod.parse(BackupMethod.CLONE) is BackupMethod.CLONE

    def test_parse_invalid(self):
        """Test unknown methods raise ConfigurationError"""
        with pytest.raises(ConfigurationError) as exc_info:
            BackupMethod.parse("zip")
        assert "Unknown backup method" in str(exc_info.value)


class TestRunResultBuilder:
    """Tests for building run results"""

    @pytest.fixture
    def repo(self):
        return RepositoryRef(owner="o", name="r", clone_url="https://x/o/r.git")

    def test_counts(self, repo):
        """Test skips and outcomes are tallied"""
        builder = RunResultBuilder()
        builder.record_considered(3)
        builder.record_skip()
        builder.record_outcome(TransferOutcome.success(repo))
        builder.record_outcome(TransferOutcome.failure(repo, "boom"))

        result = builder.finalize()

        assert result.total_considered == 3
        assert result.skipped == 1
        assert result.succeeded == 1
        assert result.failed == 1
        assert result.eligible == 2
        assert result.failures[0].error == "boom"
        assert result.status == "failure"
        assert result.finished_at >= result.started_at

    def test_successful_run_status(self, repo):
        """Test a run without failures reports success"""
        builder = RunResultBuilder()
        builder.record_considered(1)
        builder.record_outcome(TransferOutcome.success(repo))

        result = builder.finalize()

        assert result.ok is True
        assert result.status == "success"
        assert result.failures == []

    def test_fatal_run_status(self):
        """Test a fatal error marks the run as failed with nothing attempted"""
        builder = RunResultBuilder()
        builder.record_fatal("bad token")

        result = builder.finalize()

        assert result.ok is False
        assert result.fatal_error == "bad token"
        assert result.eligible == 0

    def test_finalize_only_once(self):
        """Test a result cannot be finalized twice"""
        builder = RunResultBuilder()
        builder.finalize()

        with pytest.raises(RuntimeError):
            builder.finalize()


class TestTransferOutcome:
    """Tests for TransferOutcome constructors"""

    def test_failure_stringifies_error(self):
        """Test exceptions are stored as text"""
        repo = RepositoryRef(owner="o", name="r", clone_url="https://x/o/r.git")

        outcome = TransferOutcome.failure(repo, ValueError("nope"))

        assert outcome.repository == "o/r"
        assert outcome.succeeded is False
        assert outcome.error == "nope"
