from __future__ import annotations

"""Workspace snapshots.

``WorkspaceSnapshotter`` captures the text files under a project root into a
JSON-serializable dict and re-applies such a dict later. The dict is the
opaque ``Checkpoint.state`` handle.

Snapshot layout::

    {
        "root": "/abs/project",
        "files": {"relative/path.py": "<content>", ...},
        "skipped": ["big.bin", ...],
    }

``skipped`` lists files that were present but not captured (binary, too
large, unreadable or beyond ``max_files``). Restore leaves them alone.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)

DEFAULT_IGNORE = (
    ".git",
    ".gatekeeper",
    "__pycache__",
    "node_modules",
    ".venv",
    "venv",
    ".mypy_cache",
    ".pytest_cache",
    "*.pyc",
)


@dataclass
class WorkspaceSnapshotter:
    root: Path
    ignore: Tuple[str, ...] = DEFAULT_IGNORE
    max_file_bytes: int = 1024 * 1024
    max_files: int = 5000
    _resolved: Path = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._resolved = Path(self.root).expanduser().resolve()

    @property
    def resolved_root(self) -> Path:
        return self._resolved

    def _ignored(self, name: str) -> bool:
        return any(fnmatch.fnmatch(name, pat) for pat in self.ignore)

    def iter_files(self) -> Iterator[Path]:
        """Yield workspace files (relative to the root) not matched by ``ignore``."""
        for dirpath, dirnames, filenames in os.walk(self._resolved):
            dirnames[:] = sorted(d for d in dirnames if not self._ignored(d))
            for name in sorted(filenames):
                if self._ignored(name):
                    continue
                full = Path(dirpath) / name
                if full.is_symlink() or not full.is_file():
                    continue
                yield full.relative_to(self._resolved)

    def capture(self) -> Dict[str, Any]:
        files: Dict[str, str] = {}
        skipped: List[str] = []
        for rel in self.iter_files():
            key = rel.as_posix()
            if len(files) >= self.max_files:
                skipped.append(key)
                continue
            full = self._resolved / rel
            try:
                if full.stat().st_size > self.max_file_bytes:
                    skipped.append(key)
                    continue
                files[key] = full.read_bytes().decode("utf-8")
            except (OSError, UnicodeDecodeError):
                skipped.append(key)
        return {"root": str(self._resolved), "files": files, "skipped": skipped}

    def apply(self, state: Dict[str, Any]) -> List[str]:
        """Make the workspace match ``state``.

        Rewrites captured files whose content differs (recreating deleted
        ones) and deletes files that appeared after the capture. Skipped and
        ignored files are not touched.

        Returns:
            Relative paths that were written or deleted.

        Raises:
            ValueError: when ``state`` was captured under a different root.
            OSError: when the filesystem refuses a change.
        """
        if Path(state.get("root", "")).resolve() != self._resolved:
            raise ValueError(f"Snapshot root {state.get('root')!r} does not match {self._resolved}")
        files: Dict[str, str] = state.get("files", {})
        keep = set(files) | set(state.get("skipped", []))
        changed: List[str] = []

        for rel in list(self.iter_files()):
            key = rel.as_posix()
            if key not in keep:
                (self._resolved / rel).unlink()
                changed.append(key)

        for key, content in files.items():
            target = self._resolved / key
            encoded = content.encode("utf-8")
            if target.is_file() and target.read_bytes() == encoded:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(encoded)
            changed.append(key)

        return changed
