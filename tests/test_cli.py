"""Tests for gitdeliver.cli module."""

import json
from unittest.mock import AsyncMock

import pytest
from typer.testing import CliRunner

from gitdeliver.changeset import ChangeSet, Literal, Tombstone, WriteIfAbsent
from gitdeliver.cli import app
from gitdeliver.cli.utils import format_change_set, load_modules, run_with_retries
from gitdeliver.exceptions import (
    ConflictError,
    MalformedInputError,
    NotFoundError,
    PolicyAmbiguityError,
    TransientTransportError,
)
from gitdeliver.github.models import Commit


runner = CliRunner()


@pytest.fixture
def modules_file(temp_dir):
    """JSON file with a few generated modules."""
    path = temp_dir / "modules.json"
    path.write_text(json.dumps([
        {"path": "a.ts", "code": "x"},
        {"path": "server/src/customer/customer.service.ts", "code": "generated"},
        {"path": "old.ts", "code": None},
        {"path": "server/src/app.module.ts", "code": "app"},
    ]))
    return path


@pytest.fixture
def configured(mocker):
    """Stub out user configuration."""
    mocker.patch("gitdeliver.cli.deliver.global_config.get_github_token", return_value="ghp_test")
    mocker.patch("gitdeliver.cli.deliver.global_config.get_head_branch", return_value="amplication")
    mocker.patch("gitdeliver.cli.deliver.global_config.get_server_root", return_value="server")
    mocker.patch("gitdeliver.cli.deliver.global_config.get_api_url", return_value="https://api.github.com")


class TestLoadModules:
    """Tests for load_modules function."""

    def test_loads_modules(self, modules_file):
        """Test loading modules including deletions."""
        modules = load_modules(modules_file)

        assert [m.path for m in modules] == [
            "a.ts",
            "server/src/customer/customer.service.ts",
            "old.ts",
            "server/src/app.module.ts",
        ]
        assert modules[2].is_deleted

    def test_invalid_json(self, temp_dir):
        """Test that broken JSON is malformed input."""
        path = temp_dir / "modules.json"
        path.write_text("{not json")

        with pytest.raises(MalformedInputError):
            load_modules(path)

    def test_invalid_shape(self, temp_dir):
        """Test that entries without a path are malformed input."""
        path = temp_dir / "modules.json"
        path.write_text(json.dumps([{"code": "x"}]))

        with pytest.raises(MalformedInputError):
            load_modules(path)

    def test_missing_code_is_not_a_deletion(self, temp_dir):
        """Test that an entry without a code key is rejected, not deleted."""
        path = temp_dir / "modules.json"
        path.write_text(json.dumps([{"path": "server/src/app.ts", "content": "x"}]))

        with pytest.raises(MalformedInputError) as exc_info:
            load_modules(path)

        assert "code" in str(exc_info.value)


class TestRunWithRetries:
    """Tests for run_with_retries function."""

    @pytest.mark.asyncio
    async def test_no_retry_needed(self):
        """Test that a successful first attempt is returned."""
        operation = AsyncMock(return_value="ok")

        assert await run_with_retries(operation, retries=3) == "ok"
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_conflicts(self, mocker):
        """Test that conflicts and transient errors are retried with backoff."""
        sleep = mocker.patch("gitdeliver.cli.utils.asyncio.sleep", new=AsyncMock())
        operation = AsyncMock(side_effect=[ConflictError("moved"), TransientTransportError("502"), "ok"])

        assert await run_with_retries(operation, retries=2, base_delay=0.5) == "ok"
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up(self, mocker):
        """Test that the last error propagates once retries are exhausted."""
        mocker.patch("gitdeliver.cli.utils.asyncio.sleep", new=AsyncMock())
        operation = AsyncMock(side_effect=ConflictError("moved"))

        with pytest.raises(ConflictError):
            await run_with_retries(operation, retries=1)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        """Test that non-retryable errors fail immediately."""
        operation = AsyncMock(side_effect=PolicyAmbiguityError("two PRs"))

        with pytest.raises(PolicyAmbiguityError):
            await run_with_retries(operation, retries=5)
        assert operation.await_count == 1


class TestFormatChangeSet:
    """Tests for format_change_set function."""

    def test_aligned_lines(self):
        """Test one aligned line per path."""
        change_set = ChangeSet({"a.ts": Literal("x"), "b.ts": WriteIfAbsent("y"), "c.ts": Tombstone()})

        assert format_change_set(change_set) == [
            "write            a.ts",
            "write-if-absent  b.ts",
            "delete           c.ts",
        ]

    def test_empty(self):
        """Test that an empty change set has no lines."""
        assert format_change_set(ChangeSet()) == []


class TestPlanCommand:
    """Tests for gitdeliver plan command."""

    def test_shows_directives(self, mocker, modules_file):
        """Test the offline preview."""
        mocker.patch("gitdeliver.cli.plan.global_config.get_server_root", return_value="server")

        result = runner.invoke(app, ["plan", str(modules_file)])

        assert result.exit_code == 0
        assert "write-if-absent  server/src/customer/customer.service.ts" in result.output
        assert "delete" in result.output
        assert "4 path(s) from 4 module(s)" in result.output

    def test_with_ignore_file(self, mocker, modules_file, temp_dir):
        """Test that a local ignore file quarantines paths."""
        mocker.patch("gitdeliver.cli.plan.global_config.get_server_root", return_value="server")
        ignore_file = temp_dir / ".amplicationignore"
        ignore_file.write_text("*.module.ts\n")

        result = runner.invoke(app, ["plan", str(modules_file), "--ignore-file", str(ignore_file)])

        assert result.exit_code == 0
        assert ".amplication/ignored/server/src/app.module.ts" in result.output

    def test_rejects_malformed_paths(self, temp_dir):
        """Test that malformed module paths fail the command."""
        path = temp_dir / "modules.json"
        path.write_text(json.dumps([{"path": "/abs.ts", "code": "x"}]))

        result = runner.invoke(app, ["plan", str(path)])

        assert result.exit_code == 1
        assert "error" in result.output.lower()

    def test_nothing_to_deliver(self, mocker, temp_dir):
        """Test an empty module list."""
        mocker.patch("gitdeliver.cli.plan.global_config.get_server_root", return_value="server")
        path = temp_dir / "modules.json"
        path.write_text("[]")

        result = runner.invoke(app, ["plan", str(path)])

        assert result.exit_code == 0
        assert "Nothing to deliver" in result.output


class TestDeliverCommand:
    """Tests for gitdeliver deliver command."""

    def test_prints_pull_request_url(self, mocker, modules_file, configured):
        """Test a pull request delivery."""
        deliver = mocker.patch(
            "gitdeliver.cli.deliver.deliver_modules",
            new=AsyncMock(return_value="https://github.com/acme/app/pull/3"),
        )

        result = runner.invoke(app, [
            "deliver", str(modules_file),
            "--owner", "acme", "--repo", "app",
            "--title", "Regenerate", "--base", "main",
        ])

        assert result.exit_code == 0
        assert "https://github.com/acme/app/pull/3" in result.output
        args = deliver.await_args
        assert args.args[1:3] == ("acme", "app")
        assert len(args.args[3]) == 4
        assert args.kwargs["head_branch"] == "amplication"
        assert args.kwargs["base_branch"] == "main"
        assert args.kwargs["server_root"] == "server"

    def test_direct_commit(self, mocker, modules_file, configured):
        """Test committing straight to a branch."""
        commit = mocker.patch(
            "gitdeliver.cli.deliver.commit_modules",
            new=AsyncMock(return_value=Commit(sha="c9", tree_sha="t9", parent_shas=["c8"])),
        )

        result = runner.invoke(app, [
            "deliver", str(modules_file),
            "--owner", "acme", "--repo", "app",
            "--direct", "--head", "develop",
        ])

        assert result.exit_code == 0
        assert "Committed c9 to develop" in result.output
        assert commit.await_args.args[5] == "develop"

    def test_missing_token(self, mocker, modules_file):
        """Test that a missing token fails before any delivery."""
        mocker.patch("gitdeliver.cli.deliver.global_config.get_github_token", return_value=None)

        result = runner.invoke(app, ["deliver", str(modules_file), "--owner", "acme", "--repo", "app"])

        assert result.exit_code == 1
        assert "No GitHub token" in result.output

    def test_delivery_error(self, mocker, modules_file, configured):
        """Test that delivery errors exit with status 1."""
        mocker.patch(
            "gitdeliver.cli.deliver.deliver_modules",
            new=AsyncMock(side_effect=NotFoundError("Branch not found: main")),
        )

        result = runner.invoke(app, ["deliver", str(modules_file), "--owner", "acme", "--repo", "app"])

        assert result.exit_code == 1
        assert "Branch not found" in result.output

    def test_retries_on_conflict(self, mocker, modules_file, configured):
        """Test that --retries re-runs the whole delivery."""
        mocker.patch("gitdeliver.cli.utils.asyncio.sleep", new=AsyncMock())
        deliver = mocker.patch(
            "gitdeliver.cli.deliver.deliver_modules",
            new=AsyncMock(side_effect=[ConflictError("moved"), "https://github.com/acme/app/pull/3"]),
        )

        result = runner.invoke(app, [
            "deliver", str(modules_file), "--owner", "acme", "--repo", "app", "--retries", "1",
        ])

        assert result.exit_code == 0
        assert deliver.await_count == 2


class TestConfigCommands:
    """Tests for gitdeliver config commands."""

    def test_show(self, mocker):
        """Test showing configuration with a masked token."""
        mocker.patch("gitdeliver.cli.config.global_config.load_global_config", return_value={})
        mocker.patch("gitdeliver.cli.config.global_config.get_server_root", return_value="server")
        mocker.patch("gitdeliver.cli.config.global_config.get_head_branch", return_value="amplication")
        mocker.patch("gitdeliver.cli.config.global_config.get_api_url", return_value="https://api.github.com")
        mocker.patch("gitdeliver.cli.config.global_config.get_github_token", return_value="ghp_0123456789abcdef")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "Server root: server" in result.output
        assert "ghp_...cdef" in result.output
        assert "0123456789" not in result.output

    def test_set(self, mocker):
        """Test setting a value."""
        set_value = mocker.patch("gitdeliver.cli.config.global_config.set_config_value")

        result = runner.invoke(app, ["config", "set", "server_root", "api"])

        assert result.exit_code == 0
        set_value.assert_called_once_with("server_root", "api")

    def test_set_token(self, mocker):
        """Test storing a token from the prompt."""
        save = mocker.patch("gitdeliver.cli.config.global_config.save_credential")

        result = runner.invoke(app, ["config", "set-token"], input="ghp_new\n")

        assert result.exit_code == 0
        save.assert_called_once_with("GITHUB_TOKEN", "ghp_new")
