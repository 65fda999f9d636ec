"""Repository targets: local paths, GitHub URLs and owner/repo shorthand."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

CLONE_TIMEOUT = 120
CLONE_DEPTH = 1

_GITHUB_URL = re.compile(r"(?:https?://)?(?:www\.)?(?:github\.com/)?([\w.-]+)/([\w.-]+?)(?:\.git)?(?:[/#?].*)?$")


class RepoError(Exception):
    """A repository target could not be resolved or cloned."""


def parse_github_target(target: str) -> tuple[str, str] | None:
    """Return (owner, repo) for a GitHub URL or owner/repo shorthand."""
    target = target.strip()
    if "github.com/" not in target:
        # Shorthand only when it cannot be a local path
        if target.startswith(("/", ".", "~")) or target.count("/") != 1 or Path(target).exists():
            return None
    match = _GITHUB_URL.match(target)
    if not match:
        return None
    return match.group(1), match.group(2)


def clone_repo(url: str, dest: Path) -> Path:
    """Shallow-clone a git repository into dest. Returns clone path."""
    parsed = parse_github_target(url)
    clone_dir = dest / (parsed[1] if parsed else "repo")

    logger.info("Cloning %s", url)
    try:
        result = subprocess.run(
            ["git", "clone", f"--depth={CLONE_DEPTH}", "--single-branch", url, str(clone_dir)],
            capture_output=True, text=True, timeout=CLONE_TIMEOUT,
        )
    except FileNotFoundError:
        raise RepoError("git is not installed")
    except subprocess.TimeoutExpired:
        raise RepoError(f"Git clone timed out after {CLONE_TIMEOUT}s")
    if result.returncode != 0:
        raise RepoError(f"Git clone failed: {result.stderr[:200]}")
    return clone_dir


@contextmanager
def checkout(target: str) -> Iterator[tuple[Path, dict]]:
    """Yield (local path, repository info) for a target.

    Remote targets are cloned into a temp dir that is removed on exit.
    """
    parsed = parse_github_target(target)
    if parsed is None:
        path = Path(target).expanduser().resolve()
        if not path.is_dir():
            raise RepoError(f"Not a directory: {target}")
        yield path, {"type": "local", "name": path.name, "path": str(path)}
        return

    owner, name = parsed
    url = f"https://github.com/{owner}/{name}"
    tmpdir = Path(tempfile.mkdtemp(prefix="whisperer-"))
    try:
        clone_path = clone_repo(f"{url}.git", tmpdir)
        yield clone_path, {"type": "github", "name": name, "owner": owner, "url": url}
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)
