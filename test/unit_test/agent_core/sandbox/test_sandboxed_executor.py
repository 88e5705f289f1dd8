from __future__ import annotations

from pathlib import Path

import pytest

from gatekeeper_ai.agent_core.sandbox import SandboxConfig, SandboxedExecutor


@pytest.fixture
def sandbox(tmp_path: Path) -> SandboxedExecutor:
    ex = SandboxedExecutor(project_root=tmp_path)
    yield ex
    ex.cleanup()


@pytest.mark.asyncio
async def test_allowed_command_runs(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("echo hello")

    assert res.success is True
    assert res.output.strip() == "hello"
    assert res.exit_code == 0
    assert res.denied is False


@pytest.mark.asyncio
async def test_sandbox_env_is_merged(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("echo $SANDBOX-$NO_COLOR-$GREETING", env={"GREETING": "hi"})

    assert res.output.strip() == "true-1-hi"


@pytest.mark.asyncio
async def test_scanner_blocks_before_lists(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("rm -rf /")

    assert res.success is False
    assert res.denied is True
    assert res.error.startswith("Security check failed:")
    assert "Recursive delete of root" in res.error


@pytest.mark.asyncio
async def test_deny_list_blocks_first_token(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("rm notes.txt")

    assert res.denied is True
    assert res.error == "Command blocked: rm"


@pytest.mark.asyncio
async def test_allow_list_rejects_unknown_commands(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("whoami")

    assert res.denied is True
    assert res.error == "Command not allowed: whoami"
    assert sandbox.is_command_allowed("git status") is True
    assert sandbox.is_command_allowed("whoami") is False


@pytest.mark.asyncio
async def test_working_directory_outside_root_is_denied(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("ls", cwd="/etc")

    assert res.denied is True
    assert res.error.startswith("Working directory not allowed")


@pytest.mark.asyncio
async def test_dry_run_reports_without_running(sandbox: SandboxedExecutor, tmp_path: Path) -> None:
    res = await sandbox.execute_command("touch created.txt", dry_run=True)

    assert res.success is True
    assert res.output == "[SANDBOX] Would execute: touch created.txt"
    assert not (tmp_path / "created.txt").exists()


@pytest.mark.asyncio
async def test_dry_run_still_applies_policy(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("sudo ls", dry_run=True)

    assert res.denied is True


@pytest.mark.asyncio
async def test_nonzero_exit_is_a_failure(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.execute_command("cat does-not-exist.txt")

    assert res.success is False
    assert res.denied is False
    assert res.exit_code not in (None, 0)
    assert "does-not-exist.txt" in res.error


@pytest.mark.asyncio
async def test_disabled_sandbox_runs_unrestricted(tmp_path: Path) -> None:
    ex = SandboxedExecutor(SandboxConfig(enabled=False), project_root=tmp_path)

    res = await ex.execute_command("printf ok")

    assert res.success is True
    assert res.output == "ok"


@pytest.mark.asyncio
async def test_timeout_kills_process(tmp_path: Path) -> None:
    ex = SandboxedExecutor(SandboxConfig(enabled=False), project_root=tmp_path)

    res = await ex.execute_command("sleep 5", timeout=0.2)

    assert res.success is False
    assert res.error == "Command timed out after 0.2s"


def test_path_policy(sandbox: SandboxedExecutor, tmp_path: Path) -> None:
    assert sandbox.is_path_allowed("src/app.py") is True
    assert sandbox.is_path_allowed(tmp_path / "a" / "b.txt") is True
    assert sandbox.is_path_allowed("/etc/passwd") is False
    assert sandbox.is_path_allowed("../outside.txt") is False
    assert sandbox.is_path_allowed(".ssh/id_rsa") is False

    safe, issues = sandbox.check_path("/etc/hosts")
    assert safe is False
    assert "blocked" in issues[0]


def test_allowed_paths_extend_the_root(tmp_path: Path) -> None:
    root = tmp_path / "project"
    extra = tmp_path / "shared"
    root.mkdir()
    extra.mkdir()
    ex = SandboxedExecutor(SandboxConfig(allowed_paths=[str(extra)]), project_root=root)

    assert ex.is_path_allowed(extra / "data.json") is True
    assert ex.is_path_allowed(tmp_path / "other" / "x") is False


def test_network_policy(sandbox: SandboxedExecutor) -> None:
    assert sandbox.is_network_allowed("https://pypi.org/simple/") is True
    assert sandbox.is_network_allowed("https://files.pypi.org/x") is True
    assert sandbox.is_network_allowed("https://evil.example.com") is False

    sandbox.update_config(allowed_domains=[])
    assert sandbox.is_network_allowed("https://evil.example.com") is True

    sandbox.update_config(allow_network=False)
    assert sandbox.is_network_allowed("https://pypi.org") is False


def test_update_config_rejects_unknown_fields(sandbox: SandboxedExecutor) -> None:
    with pytest.raises(ValueError):
        sandbox.update_config(nonsense=1)

    sandbox.set_enabled(False)
    assert sandbox.get_status()["enabled"] is False


@pytest.mark.asyncio
async def test_file_round_trip_inside_root(sandbox: SandboxedExecutor, tmp_path: Path) -> None:
    written = await sandbox.write_file("docs/readme.md", "# Title\n")
    assert written.success is True
    assert (tmp_path / "docs" / "readme.md").read_text() == "# Title\n"

    await sandbox.write_file("docs/readme.md", "more\n", append=True)
    read = await sandbox.read_file("docs/readme.md")
    assert read.output == "# Title\nmore\n"

    deleted = await sandbox.delete_file("docs/readme.md")
    assert deleted.output == "Deleted docs/readme.md"
    assert not (tmp_path / "docs" / "readme.md").exists()


@pytest.mark.asyncio
async def test_file_access_outside_root_is_denied_even_when_disabled(tmp_path: Path) -> None:
    ex = SandboxedExecutor(SandboxConfig(enabled=False), project_root=tmp_path / "root")

    res = await ex.read_file("/etc/hostname")

    assert res.denied is True
    assert res.error == "Access denied: /etc/hostname"


@pytest.mark.asyncio
async def test_file_dry_runs_do_not_touch_disk(sandbox: SandboxedExecutor, tmp_path: Path) -> None:
    (tmp_path / "keep.txt").write_text("x")

    w = await sandbox.write_file("new.txt", "abc", dry_run=True)
    d = await sandbox.delete_file("keep.txt", dry_run=True)

    assert w.output == "[SANDBOX] Would write 3 bytes to new.txt"
    assert d.output == "[SANDBOX] Would delete keep.txt"
    assert not (tmp_path / "new.txt").exists()
    assert (tmp_path / "keep.txt").exists()


@pytest.mark.asyncio
async def test_read_missing_file_fails_without_raising(sandbox: SandboxedExecutor) -> None:
    res = await sandbox.read_file("missing.txt")

    assert res.success is False
    assert res.denied is False


@pytest.mark.asyncio
async def test_blocked_prefix_inside_root_is_denied(tmp_path: Path) -> None:
    secrets = tmp_path / "secrets"
    secrets.mkdir()
    (secrets / "token.txt").write_text("s3cret")
    ex = SandboxedExecutor(SandboxConfig(blocked_paths=[str(secrets)]), project_root=tmp_path)

    read = await ex.read_file("secrets/token.txt")
    written = await ex.write_file(secrets / "new.txt", "x")
    ran = await ex.execute_command("ls", cwd="secrets")

    assert read.denied is True
    assert written.denied is True
    assert not (secrets / "new.txt").exists()
    assert ran.denied is True
    assert ran.error.startswith("Working directory not allowed")
    assert ex.is_path_allowed("notes.txt") is True
