from __future__ import annotations

"""Built-in tools.

Filesystem, shell and git tools. Every side effect goes through
``ctx.sandbox`` so the sandbox policy applies no matter which tool a plan
names. Directory walks (glob/tree/search) check each path against the
sandbox path policy before reading.
"""

import asyncio
import re
import shlex
import time
from pathlib import Path
from typing import Any, Dict, List

from ..schemas.domain import OperationType, RiskLevel
from .base import ToolContext, ToolDefinition, ToolResult

_SKIP_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "venv", ".gatekeeper"})
_MAX_LISTED = 1000


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000.0


def _require(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"missing {key}")
    return str(value)


def _denied(path: Any) -> ToolResult:
    return ToolResult(success=False, error=f"Access denied: {path}", denied=True)


def _in_skipped_dir(root: Path, path: Path) -> bool:
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        parts = path.parts
    return any(part in _SKIP_DIRS for part in parts)


def _walk(ctx: ToolContext, root: Path) -> List[Path]:
    """Files under ``root`` the sandbox allows, skipping VCS/dependency dirs."""
    found: List[Path] = []
    for path in sorted(root.rglob("*")):
        if _in_skipped_dir(root, path):
            continue
        if path.is_file() and ctx.sandbox.is_path_allowed(path):
            found.append(path)
    return found


def _rel(ctx: ToolContext, path: Path) -> str:
    try:
        return path.relative_to(ctx.sandbox.project_root).as_posix()
    except ValueError:
        return str(path)


# ----------------------------------------------------------------------
# Filesystem
# ----------------------------------------------------------------------


async def file_read(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    """
    Read a file, optionally a 1-based inclusive line range.

    Args:
        args:
            - path (str): file to read.
            - line_start / line_end (int, optional): line range.
    """
    try:
        path = _require(args, "path")
    except ValueError as e:
        return ToolResult.failure(str(e))
    res = await ctx.sandbox.read_file(path)
    if not res.success:
        return ToolResult.from_sandbox(res)
    content = res.output
    start, end = args.get("line_start"), args.get("line_end")
    if start is not None or end is not None:
        lines = content.split("\n")
        lo = max(int(start or 1), 1) - 1
        hi = int(end) if end is not None else len(lines)
        content = "\n".join(lines[lo:hi])
    return ToolResult(success=True, output=content, duration_ms=res.duration_ms)


async def file_write(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    """
    Create, overwrite or append to a file.

    Args:
        args:
            - path (str), content (str).
            - mode (str, optional): ``overwrite`` (default) or ``append``.
    """
    try:
        path = _require(args, "path")
    except ValueError as e:
        return ToolResult.failure(str(e))
    if "content" not in args:
        return ToolResult.failure("missing content")
    mode = str(args.get("mode") or "overwrite")
    if mode not in ("overwrite", "append"):
        return ToolResult.failure(f"unsupported write mode: {mode}")
    res = await ctx.sandbox.write_file(path, str(args["content"]), dry_run=ctx.dry_run, append=mode == "append")
    return ToolResult.from_sandbox(res, files_changed=[] if ctx.dry_run else [path])


async def file_delete(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    try:
        path = _require(args, "path")
    except ValueError as e:
        return ToolResult.failure(str(e))
    res = await ctx.sandbox.delete_file(path, dry_run=ctx.dry_run)
    return ToolResult.from_sandbox(res, files_changed=[] if ctx.dry_run else [path])


async def file_glob(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    start = time.monotonic()
    try:
        pattern = _require(args, "pattern")
    except ValueError as e:
        return ToolResult.failure(str(e))
    base = args.get("cwd") or "."
    if not ctx.sandbox.is_path_allowed(base):
        return _denied(base)
    root = ctx.sandbox.resolve_path(base)

    def _glob() -> List[str]:
        return [
            _rel(ctx, p)
            for p in sorted(root.glob(pattern))
            if p.is_file() and ctx.sandbox.is_path_allowed(p) and not _in_skipped_dir(root, p)
        ][:_MAX_LISTED]

    files = await asyncio.to_thread(_glob)
    return ToolResult(success=True, output="\n".join(files), data={"files": files}, duration_ms=_elapsed_ms(start))


async def file_tree(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    """List a directory as an indented tree (``max_depth`` defaults to 3)."""
    start = time.monotonic()
    base = args.get("path") or "."
    if not ctx.sandbox.is_path_allowed(base):
        return _denied(base)
    root = ctx.sandbox.resolve_path(base)
    if not root.is_dir():
        return ToolResult.failure(f"Not a directory: {base}")
    max_depth = int(args.get("max_depth") or 3)

    def _tree(directory: Path, depth: int) -> List[str]:
        lines: List[str] = []
        if depth > max_depth:
            return lines
        for entry in sorted(directory.iterdir(), key=lambda p: (not p.is_dir(), p.name)):
            if entry.name in _SKIP_DIRS or not ctx.sandbox.is_path_allowed(entry):
                continue
            indent = "  " * depth
            if entry.is_dir():
                lines.append(f"{indent}{entry.name}/")
                lines.extend(_tree(entry, depth + 1))
            else:
                lines.append(f"{indent}{entry.name}")
        return lines

    try:
        lines = await asyncio.to_thread(_tree, root, 0)
    except OSError as e:
        return ToolResult.failure(str(e))
    return ToolResult(success=True, output="\n".join(lines), duration_ms=_elapsed_ms(start))


async def file_search(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    """Find files whose content matches a regex (optionally filtered by suffix)."""
    start = time.monotonic()
    try:
        regex = re.compile(_require(args, "pattern"))
    except ValueError as e:
        return ToolResult.failure(str(e))
    except re.error as e:
        return ToolResult.failure(f"invalid pattern: {e}")
    base = args.get("path") or "."
    if not ctx.sandbox.is_path_allowed(base):
        return _denied(base)
    root = ctx.sandbox.resolve_path(base)
    suffix = args.get("file_type")

    def _search() -> List[str]:
        hits: List[str] = []
        for path in _walk(ctx, root):
            if suffix and not path.name.endswith(str(suffix)):
                continue
            try:
                if regex.search(path.read_text(encoding="utf-8")):
                    hits.append(_rel(ctx, path))
            except (OSError, UnicodeDecodeError):
                continue
            if len(hits) >= _MAX_LISTED:
                break
        return hits

    files = await asyncio.to_thread(_search)
    return ToolResult(success=True, output="\n".join(files), data={"files": files}, duration_ms=_elapsed_ms(start))


# ----------------------------------------------------------------------
# Shell
# ----------------------------------------------------------------------


async def shell_exec(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    """
    Run a shell command through the sandbox.

    Args:
        args:
            - command (str): command line.
            - timeout (float, optional): seconds, capped by the sandbox.
    """
    try:
        command = _require(args, "command")
    except ValueError as e:
        return ToolResult.failure(str(e))
    timeout = args.get("timeout")
    res = await ctx.sandbox.execute_command(
        command,
        cwd=ctx.working_dir,
        timeout=float(timeout) if timeout else None,
        dry_run=ctx.dry_run,
    )
    return ToolResult.from_sandbox(res)


# ----------------------------------------------------------------------
# Git
# ----------------------------------------------------------------------


async def _git(ctx: ToolContext, *argv: str, dry_run: bool = False) -> ToolResult:
    command = "git " + " ".join(shlex.quote(a) for a in argv)
    res = await ctx.sandbox.execute_command(command, cwd=ctx.working_dir, dry_run=dry_run)
    return ToolResult.from_sandbox(res)


async def git_status(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    return await _git(ctx, "status", "--short", "--branch")


async def git_diff(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    argv = ["diff"]
    if args.get("staged"):
        argv.append("--cached")
    if args.get("path"):
        argv += ["--", str(args["path"])]
    return await _git(ctx, *argv)


async def git_commit(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    try:
        message = _require(args, "message")
    except ValueError as e:
        return ToolResult.failure(str(e))
    if args.get("all"):
        staged = await _git(ctx, "add", "-A", dry_run=ctx.dry_run)
        if not staged.success:
            return staged
    argv = ["commit", "-m", message]
    if args.get("amend"):
        argv.append("--amend")
    return await _git(ctx, *argv, dry_run=ctx.dry_run)


async def git_branch(args: Dict[str, Any], ctx: ToolContext) -> ToolResult:
    operation = str(args.get("operation") or "list")
    name = args.get("name")
    if operation == "list":
        return await _git(ctx, "branch")
    if not name:
        return ToolResult.failure("missing name")
    if operation == "create":
        return await _git(ctx, "branch", str(name), dry_run=ctx.dry_run)
    if operation == "delete":
        return await _git(ctx, "branch", "-D" if args.get("force") else "-d", str(name), dry_run=ctx.dry_run)
    return ToolResult.failure(f"Invalid branch operation: {operation}")


def builtin_tools() -> List[ToolDefinition]:
    """Definitions of all built-in tools."""
    return [
        ToolDefinition(
            name="file_read",
            description="Read the contents of a file",
            handler=file_read,
            category="filesystem",
            schema={"path": "string", "line_start": "number?", "line_end": "number?"},
        ),
        ToolDefinition(
            name="file_glob",
            description="Find files matching a glob pattern",
            handler=file_glob,
            category="filesystem",
            schema={"pattern": "string", "cwd": "string?"},
        ),
        ToolDefinition(
            name="file_tree",
            description="Get directory tree structure",
            handler=file_tree,
            category="filesystem",
            schema={"path": "string?", "max_depth": "number?"},
        ),
        ToolDefinition(
            name="file_search",
            description="Search for files containing a pattern",
            handler=file_search,
            category="filesystem",
            schema={"pattern": "string", "path": "string?", "file_type": "string?"},
        ),
        ToolDefinition(
            name="file_write",
            description="Create or overwrite a file with content",
            handler=file_write,
            risk_level=RiskLevel.medium,
            operation_type=OperationType.file_write,
            requires_approval=True,
            category="filesystem",
            schema={"path": "string", "content": "string", "mode": "string?"},
        ),
        ToolDefinition(
            name="file_delete",
            description="Delete a file",
            handler=file_delete,
            risk_level=RiskLevel.high,
            operation_type=OperationType.delete,
            requires_approval=True,
            category="filesystem",
            schema={"path": "string"},
        ),
        ToolDefinition(
            name="shell_exec",
            description="Execute a shell command",
            handler=shell_exec,
            risk_level=RiskLevel.high,
            operation_type=OperationType.shell,
            requires_approval=True,
            category="shell",
            schema={"command": "string", "timeout": "number?"},
        ),
        ToolDefinition(
            name="git_status",
            description="Show the working tree status",
            handler=git_status,
            category="git",
        ),
        ToolDefinition(
            name="git_diff",
            description="Show changes between commits or the working tree",
            handler=git_diff,
            category="git",
            schema={"staged": "boolean?", "path": "string?"},
        ),
        ToolDefinition(
            name="git_commit",
            description="Record changes to the repository",
            handler=git_commit,
            risk_level=RiskLevel.high,
            operation_type=OperationType.git_mutation,
            requires_approval=True,
            category="git",
            schema={"message": "string", "all": "boolean?", "amend": "boolean?"},
        ),
        ToolDefinition(
            name="git_branch",
            description="List, create, or delete branches",
            handler=git_branch,
            risk_level=RiskLevel.medium,
            operation_type=OperationType.git_mutation,
            requires_approval=True,
            category="git",
            schema={"operation": "string", "name": "string?", "force": "boolean?"},
        ),
    ]
