"""Fetching raw content from URLs and git repositories."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import unquote, urlparse

import httpx

from .errors import ConfigException, InvalidRemoteRepoException, SourceNotFoundException

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0
DEFAULT_BRANCH = "HEAD"


def fetch_url(url: str, client: Optional[httpx.Client] = None) -> bytes:
    """Read the content behind a URL.

    ``file:`` URLs are read from the local filesystem; anything else goes
    through httpx.

    Args:
        url: URL to read.
        client: Client to use instead of a short-lived default one.

    Raises:
        SourceNotFoundException: If the URL cannot be read.
    """
    parsed = urlparse(url)
    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
        try:
            return path.read_bytes()
        except OSError as e:
            raise SourceNotFoundException(f"cannot read URL '{url}': {e}") from e

    if client is None:
        with httpx.Client(timeout=DEFAULT_TIMEOUT, follow_redirects=True) as owned:
            return _get(owned, url)
    return _get(client, url)


def _get(client: httpx.Client, url: str) -> bytes:
    try:
        resp = client.get(url)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise SourceNotFoundException(f"cannot read URL '{url}': {e}") from e
    return resp.content


def _git(*args: str, cwd: Optional[Path] = None) -> str:
    cmd: List[str] = ["git", *args]
    try:
        ret = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=True)
    except FileNotFoundError as e:
        raise ConfigException("git executable not found") from e
    except subprocess.CalledProcessError as e:
        raise SourceNotFoundException(
            f"'{' '.join(cmd)}' failed: {e.stderr.strip()}"
        ) from e
    return ret.stdout.strip()


def _is_checkout(dir: Path) -> bool:
    try:
        toplevel = _git("rev-parse", "--show-toplevel", cwd=dir)
    except SourceNotFoundException:
        return False
    return Path(toplevel).resolve() == dir.resolve()


def checkout_git(
    repo: str,
    dir: Optional[Union[str, Path]] = None,
    branch: str = DEFAULT_BRANCH,
) -> Path:
    """Clone or update a local checkout of ``repo``.

    Args:
        repo: Remote repository location, anything ``git clone`` accepts.
        dir: Checkout directory. A temporary directory is used if omitted.
        branch: Branch to check out; ``HEAD`` follows the remote default.

    Returns:
        The checkout directory.

    Raises:
        InvalidRemoteRepoException: If ``dir`` holds a checkout of another
            repository.
        SourceNotFoundException: If cloning or fetching fails.
    """
    if dir is None:
        dir = tempfile.mkdtemp(prefix="strata-git-")
    dir = Path(dir)
    dir.mkdir(parents=True, exist_ok=True)

    if any(dir.iterdir()):
        if not _is_checkout(dir):
            raise InvalidRemoteRepoException(repo, str(dir))
        try:
            origin = _git("config", "--get", "remote.origin.url", cwd=dir)
        except SourceNotFoundException:
            origin = ""
        if not origin or _normalize_repo(origin) != _normalize_repo(repo):
            raise InvalidRemoteRepoException(repo, str(dir))
        logger.debug("updating %s from %s (%s)", dir, repo, branch)
        _git("fetch", "--quiet", "origin", branch, cwd=dir)
        _git("reset", "--quiet", "--hard", "FETCH_HEAD", cwd=dir)
    else:
        logger.debug("cloning %s into %s (%s)", repo, dir, branch)
        args = ["clone", "--quiet"]
        if branch != DEFAULT_BRANCH:
            args += ["--branch", branch]
        _git(*args, repo, str(dir))
    return dir


def _normalize_repo(repo: str) -> str:
    parsed = urlparse(repo)
    if parsed.scheme == "file":
        repo = unquote(parsed.path)
    if "://" not in repo and Path(repo).exists():
        return str(Path(repo).resolve())
    return repo.rstrip("/")
