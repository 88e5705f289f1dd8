from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import ConfigDict, Field

from ..schemas.base import BaseSchema

DEFAULT_BLOCKED_PATHS = [
    "/etc",
    "/usr",
    "/bin",
    "/sbin",
    "/boot",
    "/lib",
    "/lib64",
    "/root",
    "/home/root",
    ".ssh",
    ".aws",
    ".gcloud",
    "/private/etc",
    "/private/var",
]

DEFAULT_ALLOWED_COMMANDS = [
    "npm",
    "yarn",
    "pnpm",
    "bun",
    "git",
    "ls",
    "cat",
    "echo",
    "mkdir",
    "touch",
    "node",
    "python",
    "python3",
    "go",
    "rustc",
    "cargo",
    "docker",
    "docker-compose",
    "kubectl",
    "helm",
]

DEFAULT_BLOCKED_COMMANDS = [
    "rm",
    "mkfs",
    "dd",
    "chmod",
    "chown",
    "useradd",
    "passwd",
    "sudo",
    "su",
    "ssh",
    "scp",
    "ftp",
    "telnet",
    "curl",
    "wget",
    "nc",
    "netcat",
    "ncat",
]

DEFAULT_ALLOWED_DOMAINS = [
    "registry.npmjs.org",
    "pypi.org",
    "api.github.com",
    "crates.io",
    "hub.docker.com",
]


class SandboxConfig(BaseSchema):
    """
    Policy and resource ceilings for the sandboxed executor.

    Mutable for the process lifetime through ``SandboxedExecutor.update_config``
    and ``set_enabled``; assignments are validated.
    """

    model_config = ConfigDict(validate_assignment=True)

    enabled: bool = Field(default=True, description="When False, commands run without any policy checks.")
    allowed_paths: List[str] = Field(
        default_factory=list,
        description="Extra roots (besides the project root) that commands and file access may touch.",
    )
    blocked_paths: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_PATHS),
        description="Absolute entries deny by prefix; relative entries deny any path containing that component.",
    )
    allowed_commands: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_COMMANDS),
        description="If non-empty, the first token of a command must be one of these.",
    )
    blocked_commands: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS),
        description="A command whose first token contains any of these is denied.",
    )
    max_memory_mb: int = Field(default=512, ge=1)
    max_cpu_time_s: int = Field(default=60, ge=1, description="Wall-clock timeout for commands.")
    max_file_size_mb: int = Field(default=10, ge=1, description="Cap on command output and file reads.")
    allow_network: bool = True
    allowed_domains: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_DOMAINS))
    environment: Dict[str, str] = Field(default_factory=lambda: {"NO_COLOR": "1"})
    apply_resource_limits: bool = Field(
        default=False, description="Apply RLIMIT_CPU / RLIMIT_AS to child processes (POSIX only)."
    )


class ResourceUsage(BaseSchema):
    cpu_time_s: Optional[float] = None
    max_rss_kb: Optional[int] = None


class SandboxResult(BaseSchema):
    """Uniform outcome of every sandbox operation. ``denied`` marks policy rejections."""

    success: bool
    output: str = ""
    error: Optional[str] = None
    exit_code: Optional[int] = None
    duration_ms: float = 0.0
    resources: ResourceUsage = Field(default_factory=ResourceUsage)
    denied: bool = False
