"""
Script: earthly_ci/tool_cache.py
What: Makes the pinned `earthly` release available on PATH.
Doing: Looks it up in the runner tool cache, otherwise downloads, marks executable, and caches it.
Why: Hosted and self-hosted runners keep the tool cache between jobs, so the download happens once per version.
Goal: Run every build with the same earthly version.
"""

from __future__ import annotations

import shutil
import tempfile
import urllib.error
import urllib.request
import uuid
from pathlib import Path

from earthly_ci.common import (
    EarthlyCiError,
    add_path,
    log_debug,
    optional_env,
    require_env,
    write_github_outputs,
)


EARTHLY_TOOL_NAME = "earthly"
EARTHLY_BINARY = "earthly"
EARTHLY_VERSION = "0.6.23"
EARTHLY_URL_TEMPLATE = (
    "https://github.com/earthly/earthly/releases/download/v{version}/earthly-linux-amd64"
)
# Runner naming for amd64.
DEFAULT_ARCH = "x64"


def tool_cache_root() -> Path:
    return Path(require_env("RUNNER_TOOL_CACHE"))


def tool_dir(tool: str, version: str, arch: str, cache_root: Path) -> Path:
    """Runner tool-cache layout: `<root>/<tool>/<version>/<arch>`."""
    return cache_root / tool / version / arch


def find_tool(
    tool: str,
    version: str,
    arch: str = DEFAULT_ARCH,
    cache_root: Path | None = None,
) -> Path | None:
    """
    Return the cached install directory, or None on a miss.

    A directory without its `<arch>.complete` marker is a half-written
    install from an interrupted job and counts as a miss.
    """
    root = cache_root if cache_root is not None else tool_cache_root()
    directory = tool_dir(tool, version, arch, root)
    marker = directory.parent / f"{arch}.complete"
    if directory.is_dir() and marker.exists():
        return directory
    return None


def download_tool(url: str, dest_dir: Path | None = None) -> Path:
    """Download `url` to a uniquely named file and return its path."""
    if dest_dir is None:
        dest_dir = Path(optional_env("RUNNER_TEMP") or tempfile.gettempdir())
    dest = dest_dir / str(uuid.uuid4())
    tmp = dest.with_suffix(".tmp")

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        urllib.request.urlretrieve(url, tmp)  # noqa: S310 - fixed release URL
        tmp.replace(dest)
    except urllib.error.URLError as exc:
        raise EarthlyCiError(f"Failed to download {url}: {exc.reason}") from exc
    except OSError as exc:
        raise EarthlyCiError(f"Failed to save download from {url}: {exc}") from exc
    return dest


def cache_file(
    source: Path,
    target_name: str,
    tool: str,
    version: str,
    arch: str = DEFAULT_ARCH,
    cache_root: Path | None = None,
) -> Path:
    """Copy one file into the tool cache and mark the install complete."""
    root = cache_root if cache_root is not None else tool_cache_root()
    directory = tool_dir(tool, version, arch, root)
    marker = directory.parent / f"{arch}.complete"

    try:
        # Start from an empty version dir so a previous partial install cannot leak in.
        shutil.rmtree(directory, ignore_errors=True)
        marker.unlink(missing_ok=True)
        directory.mkdir(parents=True)
        shutil.copy2(source, directory / target_name)
        marker.write_text("", encoding="utf-8")
    except OSError as exc:
        raise EarthlyCiError(f"Failed to cache {tool} {version} in {directory}: {exc}") from exc
    return directory


def ensure_earthly_in_path(version: str = EARTHLY_VERSION) -> Path:
    cached = find_tool(EARTHLY_TOOL_NAME, version)
    if cached is not None:
        log_debug("Found cached earthly install, hooray!")
        add_path(str(cached))
        return cached

    url = EARTHLY_URL_TEMPLATE.format(version=version)
    print(f"Downloading earthly {version} from {url}")
    downloaded = download_tool(url)
    try:
        downloaded.chmod(0o755)
    except OSError as exc:
        raise EarthlyCiError(f"Failed to mark {downloaded} executable: {exc}") from exc

    installed = cache_file(downloaded, EARTHLY_BINARY, EARTHLY_TOOL_NAME, version)
    add_path(str(installed))
    return installed


def main() -> None:
    installed = ensure_earthly_in_path()
    write_github_outputs({"earthly-path": str(installed / EARTHLY_BINARY)})
    print(f"earthly {EARTHLY_VERSION} available at {installed}")


if __name__ == "__main__":
    main()
