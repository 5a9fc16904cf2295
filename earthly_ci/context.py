"""
Script: earthly_ci/context.py
What: Resolves repository, branch, registry, and pull-request identity for one run.
Doing: Reads runner environment variables once and parses the webhook event payload file.
Why: Cache flag selection depends on whether the run was triggered by a pull request.
Goal: Hand the argument builder one immutable snapshot of the run context.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from earthly_ci.common import EarthlyCiError, optional_env, require_env, write_github_outputs


@dataclass(frozen=True)
class BuildContext:
    repository: str
    branch: str
    oci_registry: str
    cache_oci_registry: str
    pull_request_id: str | None = None


def load_event(event_path: str) -> dict:
    """Read the webhook payload the runner wrote for the triggering event."""
    try:
        raw_event = Path(event_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise EarthlyCiError(f"Failed to read event payload {event_path}: {exc}") from exc

    try:
        event = json.loads(raw_event)
    except json.JSONDecodeError as exc:
        raise EarthlyCiError(f"Event payload {event_path} is not valid JSON: {exc}") from exc

    if not isinstance(event, dict):
        raise EarthlyCiError(f"Event payload {event_path} is not a JSON object")
    return event


def pull_request_id_from_event(event: Mapping[str, object]) -> str | None:
    """
    Return the pull-request number as a string, or None for non-PR events.

    Only the presence of `pull_request` matters, so `pull_request_target`
    and `pull_request_review` payloads count as PR runs too.
    """
    if "pull_request" not in event:
        return None

    pull_request = event["pull_request"]
    if not isinstance(pull_request, dict) or pull_request.get("number") is None:
        raise EarthlyCiError("Event payload has a pull_request object without a number")
    return str(pull_request["number"])


def resolve_build_context(environ: Mapping[str, str] | None = None) -> BuildContext:
    """Build the run context from runner env vars (default: `os.environ`)."""
    # Without the payload we cannot tell PR runs from branch runs.
    event_path = optional_env("GITHUB_EVENT_PATH", environ=environ)
    if not event_path:
        raise EarthlyCiError(
            "GITHUB_EVENT_PATH is not set! We cannot get contextual information without that file."
        )

    # Both registries come from the self-hosted runner environment, not from GitHub.
    return BuildContext(
        repository=require_env("GITHUB_REPOSITORY", environ),
        branch=require_env("GITHUB_REF_NAME", environ),
        oci_registry=optional_env("OCI_REGISTRY", environ=environ),
        cache_oci_registry=require_env("CACHE_OCI_REGISTRY", environ),
        pull_request_id=pull_request_id_from_event(load_event(event_path)),
    )


def main() -> None:
    # Deferred: `arguments` imports this module.
    from earthly_ci.arguments import cache_refs, read_trunk_branch

    ctx = resolve_build_context()
    remote_cache, cache_from = cache_refs(ctx, read_trunk_branch())

    # Exported so later steps can reuse the same cache refs, e.g. for a plain docker build.
    write_github_outputs(
        {
            "repository": ctx.repository,
            "branch": ctx.branch,
            "pull_request_id": ctx.pull_request_id or "",
            "remote_cache": remote_cache,
            "cache_from": cache_from,
        }
    )
    print(f"Repository: {ctx.repository}")
    print(f"Branch: {ctx.branch}")
    if ctx.pull_request_id:
        print(f"Pull request: #{ctx.pull_request_id}")
    print(f"Remote cache: {remote_cache}")


if __name__ == "__main__":
    main()
