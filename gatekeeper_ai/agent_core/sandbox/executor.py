from __future__ import annotations

"""Sandboxed executor.

``SandboxedExecutor`` is the only way tools touch the shell or the
filesystem. Every operation returns a ``SandboxResult``; policy rejections,
I/O errors and timeouts are reported in the result, never raised.

Command checks
--------------

When the sandbox is enabled a command goes through, in order:

1. the security scanner (``critical``/``high`` findings block);
2. the command deny list (first token containing a blocked name);
3. the command allow list (first token must be listed, if the list is non-empty);
4. the working-directory path policy;
5. dry run short-circuit.

Only then is it run, with a wall-clock timeout (``max_cpu_time_s`` unless the
caller passes a shorter one) and an output cap (``max_file_size_mb``).
When the sandbox is disabled commands run unrestricted; file operations are
always path-gated.
"""

import asyncio
import logging
import os
import shlex
import shutil
import sys
import tempfile
import time
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from ..errors import SandboxPolicyViolation
from .models import ResourceUsage, SandboxConfig, SandboxResult
from .scanner import PatternSecurityScanner, SecurityScanner, blocking_findings

if sys.platform != "win32":
    import resource
else:
    resource = None

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000.0


def _is_under(path: Path, root: Path) -> bool:
    return path == root or path.is_relative_to(root)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    removed = len(text) - limit
    return text[:limit] + f"\n\n[Truncated: {removed} characters removed]"


class SandboxedExecutor:
    """Policy-checked command and file execution.

    The config is shared mutable state with no locking; ``update_config`` and
    ``set_enabled`` affect every later call.
    """

    def __init__(
        self,
        config: Optional[SandboxConfig] = None,
        *,
        scanner: Optional[SecurityScanner] = None,
        project_root: Optional[Path | str] = None,
    ) -> None:
        """
        Initialize the SandboxedExecutor.

        Args:
            config: Sandbox policy; ``SandboxConfig()`` defaults when omitted.
            scanner: Command/content scanner; ``PatternSecurityScanner`` when omitted.
            project_root: Root that commands and file access are confined to.
                Defaults to the current working directory.
        """
        self._config = config or SandboxConfig()
        self._scanner: SecurityScanner = scanner or PatternSecurityScanner()
        self._root = Path(project_root or os.getcwd()).expanduser().resolve()
        self._session_dir: Optional[Path] = None

    @property
    def config(self) -> SandboxConfig:
        return self._config

    @property
    def project_root(self) -> Path:
        return self._root

    def update_config(self, **updates: Any) -> SandboxConfig:
        for key, value in updates.items():
            if key not in SandboxConfig.model_fields:
                raise ValueError(f"Unknown sandbox config field: {key}")
            setattr(self._config, key, value)
        return self._config

    def set_enabled(self, enabled: bool) -> None:
        self._config.enabled = enabled
        logger.info("Sandbox %s", "enabled" if enabled else "disabled")

    def get_status(self) -> Dict[str, Any]:
        return {
            "enabled": self._config.enabled,
            "project_root": str(self._root),
            "session_dir": str(self._session_dir) if self._session_dir else None,
            "config": {
                "max_memory_mb": self._config.max_memory_mb,
                "max_cpu_time_s": self._config.max_cpu_time_s,
                "max_file_size_mb": self._config.max_file_size_mb,
                "allow_network": self._config.allow_network,
                "allowed_commands": list(self._config.allowed_commands),
                "blocked_commands": list(self._config.blocked_commands),
            },
        }

    def cleanup(self) -> None:
        """Remove the per-session scratch directory, if one was created."""
        if self._session_dir is not None:
            shutil.rmtree(self._session_dir, ignore_errors=True)
            self._session_dir = None

    def _session(self) -> Path:
        if self._session_dir is None or not self._session_dir.exists():
            self._session_dir = Path(tempfile.mkdtemp(prefix="gatekeeper-sandbox-"))
        return self._session_dir

    # ------------------------------------------------------------------
    # Policy checks
    # ------------------------------------------------------------------

    def resolve_path(self, path: Path | str) -> Path:
        """Resolve ``path`` against the project root."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self._root / p
        return p.resolve()

    def _denied_by(self, resolved: Path) -> Optional[str]:
        posix = PurePosixPath(resolved.as_posix())
        for entry in self._config.blocked_paths:
            if os.path.isabs(entry):
                if _is_under(resolved, Path(entry)):
                    return entry
            elif "/" in entry.strip("/"):
                if f"/{entry.strip('/')}/" in f"{posix}/":
                    return entry
            elif entry in resolved.parts:
                return entry
        return None

    def is_path_allowed(self, path: Path | str) -> bool:
        safe, _ = self.check_path(path)
        return safe

    def check_path(self, path: Path | str) -> Tuple[bool, List[str]]:
        """Return ``(allowed, issues)`` for ``path`` under the path policy."""
        try:
            resolved = self.resolve_path(path)
        except (OSError, RuntimeError) as e:
            return False, [f"Cannot resolve path {path}: {e}"]

        blocked = self._denied_by(resolved)
        if blocked is not None:
            return False, [f"Path {resolved} is blocked ({blocked})"]

        roots = [self._root]
        if self._config.allowed_paths:
            roots += [self.resolve_path(p) for p in self._config.allowed_paths]
        if any(_is_under(resolved, r) for r in roots):
            return True, []
        return False, [f"Path {resolved} is outside the project root and allowed paths"]

    def _base_command(self, command: str) -> str:
        try:
            tokens = shlex.split(command)
        except ValueError:
            tokens = command.split()
        return tokens[0].lower() if tokens else ""

    def is_command_allowed(self, command: str) -> bool:
        try:
            self._enforce_command_policy(command)
        except SandboxPolicyViolation:
            return False
        return True

    def _enforce_command_policy(self, command: str) -> None:
        base = self._base_command(command)
        if not base:
            raise SandboxPolicyViolation("Empty command")
        for blocked in self._config.blocked_commands:
            if blocked.lower() in base:
                raise SandboxPolicyViolation(f"Command blocked: {base}")
        if self._config.allowed_commands and base not in {c.lower() for c in self._config.allowed_commands}:
            raise SandboxPolicyViolation(f"Command not allowed: {base}")

    def _enforce_scan(self, command: str) -> None:
        blocking = blocking_findings(self._scanner.scan_command(command))
        if blocking:
            details = "\n".join(f"  - {f.message}" for f in blocking)
            raise SandboxPolicyViolation(f"Security check failed:\n{details}")

    def is_network_allowed(self, url: str) -> bool:
        if not self._config.allow_network:
            return False
        try:
            host = urlparse(url).hostname
        except ValueError:
            return False
        if not host:
            return False
        if not self._config.allowed_domains:
            return True
        return any(host == d or host.endswith(f".{d}") for d in self._config.allowed_domains)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def execute_command(
        self,
        command: str,
        *,
        cwd: Optional[Path | str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        dry_run: bool = False,
    ) -> SandboxResult:
        """
        Run ``command`` through the sandbox policy.

        Args:
            command: Shell command line.
            cwd: Working directory (relative paths resolve against the project root).
            env: Extra environment variables.
            timeout: Wall-clock timeout in seconds, capped at ``max_cpu_time_s``.
            dry_run: Report what would run instead of running it.

        Returns:
            A ``SandboxResult``; ``denied`` is set for policy rejections.
        """
        start = time.monotonic()
        try:
            return await self._execute_command(command, cwd, env, timeout, dry_run, start)
        except Exception as e:
            logger.exception("Sandbox failed to execute %r", command)
            return SandboxResult(success=False, error=f"Sandbox error: {e}", duration_ms=_elapsed_ms(start))

    async def _execute_command(
        self,
        command: str,
        cwd: Optional[Path | str],
        env: Optional[Dict[str, str]],
        timeout: Optional[float],
        dry_run: bool,
        start: float,
    ) -> SandboxResult:
        workdir = self.resolve_path(cwd) if cwd is not None else self._root
        limit = float(self._config.max_cpu_time_s)
        effective_timeout = min(timeout, limit) if timeout else limit

        if not self._config.enabled:
            if dry_run:
                return self._dry_run_result(command, start)
            logger.debug("Sandbox disabled, running unrestricted: %s", command)
            return await self._run(command, workdir, env, effective_timeout, start, sandboxed=False)

        try:
            self._enforce_scan(command)
            self._enforce_command_policy(command)
            safe, issues = self.check_path(workdir)
            if not safe:
                raise SandboxPolicyViolation(f"Working directory not allowed: {'; '.join(issues)}")
        except SandboxPolicyViolation as e:
            logger.warning("Sandbox denied command %r: %s", command, e.message)
            return SandboxResult(success=False, error=e.message, duration_ms=_elapsed_ms(start), denied=True)

        if dry_run:
            return self._dry_run_result(command, start)
        return await self._run(command, workdir, env, effective_timeout, start, sandboxed=True)

    @staticmethod
    def _dry_run_result(command: str, start: float) -> SandboxResult:
        return SandboxResult(success=True, output=f"[SANDBOX] Would execute: {command}", duration_ms=_elapsed_ms(start))

    def _child_env(self, env: Optional[Dict[str, str]], sandboxed: bool) -> Dict[str, str]:
        merged = {**os.environ, **self._config.environment, **(env or {})}
        if sandboxed:
            merged["SANDBOX"] = "true"
            merged["SANDBOX_SESSION"] = str(self._session())
        return merged

    def _preexec(self):
        if resource is None or not self._config.apply_resource_limits:
            return None
        cpu = self._config.max_cpu_time_s
        mem = self._config.max_memory_mb * _MB

        def _limit() -> None:
            resource.setrlimit(resource.RLIMIT_CPU, (cpu, cpu))
            resource.setrlimit(resource.RLIMIT_AS, (mem, mem))

        return _limit

    async def _run(
        self,
        command: str,
        workdir: Path,
        env: Optional[Dict[str, str]],
        timeout: float,
        start: float,
        *,
        sandboxed: bool,
    ) -> SandboxResult:
        usage_before = resource.getrusage(resource.RUSAGE_CHILDREN) if resource is not None else None
        try:
            kwargs: Dict[str, Any] = {}
            preexec = self._preexec() if sandboxed else None
            if preexec is not None:
                kwargs["preexec_fn"] = preexec
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=str(workdir),
                env=self._child_env(env, sandboxed),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **kwargs,
            )
        except OSError as e:
            logger.warning("Failed to start %r: %s", command, e)
            return SandboxResult(success=False, error=str(e), duration_ms=_elapsed_ms(start))

        try:
            stdout_b, stderr_b = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Command timed out after %ss: %s", timeout, command)
            return SandboxResult(
                success=False,
                error=f"Command timed out after {timeout:g}s",
                duration_ms=_elapsed_ms(start),
                resources=self._usage(usage_before),
            )

        cap = self._config.max_file_size_mb * _MB
        stdout = _truncate(stdout_b.decode("utf-8", errors="replace"), cap)
        stderr = _truncate(stderr_b.decode("utf-8", errors="replace"), cap)
        code = proc.returncode
        if code == 0:
            return SandboxResult(
                success=True,
                output=stdout if stdout else stderr,
                exit_code=0,
                duration_ms=_elapsed_ms(start),
                resources=self._usage(usage_before),
            )
        return SandboxResult(
            success=False,
            output=stdout,
            error=stderr.strip() or f"Command exited with code {code}",
            exit_code=code,
            duration_ms=_elapsed_ms(start),
            resources=self._usage(usage_before),
        )

    @staticmethod
    def _usage(before: Any) -> ResourceUsage:
        if resource is None or before is None:
            return ResourceUsage()
        after = resource.getrusage(resource.RUSAGE_CHILDREN)
        cpu = (after.ru_utime + after.ru_stime) - (before.ru_utime + before.ru_stime)
        return ResourceUsage(cpu_time_s=round(max(cpu, 0.0), 6), max_rss_kb=int(after.ru_maxrss))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def _path_denied(self, path: Path | str, start: float) -> Optional[SandboxResult]:
        safe, issues = self.check_path(path)
        if safe:
            return None
        logger.warning("Sandbox denied file access: %s", "; ".join(issues))
        return SandboxResult(success=False, error=f"Access denied: {path}", duration_ms=_elapsed_ms(start), denied=True)

    async def read_file(self, path: Path | str) -> SandboxResult:
        start = time.monotonic()
        denied = self._path_denied(path, start)
        if denied is not None:
            return denied
        target = self.resolve_path(path)
        try:
            size = target.stat().st_size
            if size > self._config.max_file_size_mb * _MB:
                return SandboxResult(
                    success=False,
                    error=f"File too large: {path} ({size} bytes)",
                    duration_ms=_elapsed_ms(start),
                )
            content = target.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return SandboxResult(success=False, error=str(e), duration_ms=_elapsed_ms(start))
        return SandboxResult(success=True, output=content, duration_ms=_elapsed_ms(start))

    async def write_file(
        self,
        path: Path | str,
        content: str,
        *,
        dry_run: bool = False,
        append: bool = False,
        create_dirs: bool = True,
    ) -> SandboxResult:
        start = time.monotonic()
        denied = self._path_denied(path, start)
        if denied is not None:
            return denied
        for finding in self._scanner.scan_content(content):
            logger.warning("Content written to %s: %s (%s)", path, finding.message, finding.severity.value)
        if dry_run:
            return SandboxResult(
                success=True,
                output=f"[SANDBOX] Would write {len(content)} bytes to {path}",
                duration_ms=_elapsed_ms(start),
            )
        target = self.resolve_path(path)
        try:
            if create_dirs:
                target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "a" if append else "w", encoding="utf-8") as fh:
                fh.write(content)
        except OSError as e:
            return SandboxResult(success=False, error=str(e), duration_ms=_elapsed_ms(start))
        return SandboxResult(success=True, output=f"Written to {path}", duration_ms=_elapsed_ms(start))

    async def delete_file(self, path: Path | str, *, dry_run: bool = False) -> SandboxResult:
        start = time.monotonic()
        denied = self._path_denied(path, start)
        if denied is not None:
            return denied
        if dry_run:
            return SandboxResult(success=True, output=f"[SANDBOX] Would delete {path}", duration_ms=_elapsed_ms(start))
        target = self.resolve_path(path)
        try:
            target.unlink()
        except OSError as e:
            return SandboxResult(success=False, error=str(e), duration_ms=_elapsed_ms(start))
        return SandboxResult(success=True, output=f"Deleted {path}", duration_ms=_elapsed_ms(start))
