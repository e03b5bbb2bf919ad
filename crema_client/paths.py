"""Snapshot path resolution.

A hosting page either injects its base path explicitly or the resolver guesses it
from the page location. Two layouts are recognised by the guess:

    /tenants/<tenant>/app/...   tenant-scoped development root
    /<segment>/...              short production root

The tenant root is matched first; every tenant path also looks like a short root.
"""

import re

from loguru import logger

from settings import CACHE_DIR, SNAPSHOT_FILE

TENANT_ROOT = re.compile(r"^(.*?/tenants/[^/]+/app)(?:/|$)")
SHORT_ROOT = re.compile(r"^(/[^/]+)")
_SEPARATORS = re.compile(r"/{2,}")


def collapse_separators(path: str) -> str:
    """Collapse repeated slashes."""
    return _SEPARATORS.sub("/", path)


def strip_file_name(page_path: str) -> str:
    """Drop a trailing file name or trailing slash from a page path.

    >>> strip_file_name("/maps/index.html")
    '/maps'
    >>> strip_file_name("/maps/")
    '/maps'
    """
    path = page_path.split("?", 1)[0].split("#", 1)[0]
    if path.endswith("/"):
        return path.rstrip("/")
    head, _, last = path.rpartition("/")
    if "." in last:
        return head
    return path


class PathResolver:
    """Locate the consolidated snapshot file."""

    def __init__(
        self,
        cache_dir: str = CACHE_DIR,
        snapshot_file: str = SNAPSHOT_FILE,
        base_path: str | None = None,
        tenant_id: str | None = None,
    ):
        self.cache_dir = cache_dir
        self.snapshot_file = snapshot_file
        self.base_path = base_path
        self.default_root = f"/tenants/{tenant_id}/app" if tenant_id else "/"

    def base_for(self, page_path: str | None) -> str:
        """Base path the cache directory hangs off."""
        if self.base_path is not None:
            return self.base_path

        path = strip_file_name(page_path or "")
        match = TENANT_ROOT.match(path)
        if match:
            return match.group(1)
        match = SHORT_ROOT.match(path)
        if match:
            return match.group(1)

        logger.warning("Unrecognised page path {!r}, using default root {}", page_path, self.default_root)
        return self.default_root

    def resolve(self, page_path: str | None = None) -> str:
        """Absolute URL path of the snapshot file."""
        if self.cache_dir.startswith("/"):
            path = f"{self.cache_dir}/{self.snapshot_file}"
        else:
            path = f"{self.base_for(page_path)}/{self.cache_dir}/{self.snapshot_file}"
        return collapse_separators(path)

    def resolve_url(self, origin: str, page_path: str | None = None) -> str:
        """Snapshot URL on the static host."""
        return origin.rstrip("/") + self.resolve(page_path)
