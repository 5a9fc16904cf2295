"""
Script: earthly_ci/arguments.py
What: Builds the `earthly` command line for one run.
Doing: Combines baseline flags, cache image refs, push flag, build args, secrets, and target.
Why: Keeps every flag decision in pure functions that tests can call directly.
Goal: Produce a deterministic argument list from the run context and job inputs.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field

from earthly_ci.common import EarthlyCiError, get_boolean_input, get_input
from earthly_ci.context import BuildContext


BASELINE_ARGS = ("--strict", "--allow-privileged")
DEFAULT_TRUNK_BRANCH = "main"


@dataclass(frozen=True)
class JobInputs:
    target: str
    push: bool = False
    build_args: dict[str, str] = field(default_factory=dict)
    secrets: dict[str, str] = field(default_factory=dict)
    trunk_branch: str = DEFAULT_TRUNK_BRANCH


def _stringify(value: object, input_name: str, key: str) -> str:
    # bool first: it is a subclass of int.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and not math.isfinite(value):
        raise EarthlyCiError(f"Input {input_name} value for {key} is not a finite number")
    # Whole floats print without the fraction, so `1.0` becomes `1` like JavaScript does.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    raise EarthlyCiError(
        f"Input {input_name} value for {key} must be a string, number, or boolean"
    )


def _reject_constant(name: str) -> float:
    raise ValueError(f"{name} is not valid JSON")


def parse_string_mapping(raw: str, input_name: str) -> dict[str, str]:
    """
    Parse a JSON object input into an ordered `str -> str` mapping.

    An empty input is an empty mapping. Key order follows the JSON document,
    so flags come out in the order the workflow author wrote them.
    `NaN` and `Infinity` are rejected; strict JSON has no such literals.
    """
    if not raw.strip():
        return {}
    try:
        document = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as exc:
        raise EarthlyCiError(f"Input {input_name} is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise EarthlyCiError(f"Input {input_name} must be a JSON object")
    return {key: _stringify(value, input_name, key) for key, value in document.items()}


def read_trunk_branch() -> str:
    return get_input("trunkBranch") or DEFAULT_TRUNK_BRANCH


def read_job_inputs() -> JobInputs:
    """Read action inputs from `INPUT_*` environment variables."""
    return JobInputs(
        target=get_input("target", required=True),
        push=get_boolean_input("push"),
        build_args=parse_string_mapping(get_input("buildArgs"), "buildArgs"),
        secrets=parse_string_mapping(get_input("secrets"), "secrets"),
        trunk_branch=read_trunk_branch(),
    )


def cache_image(ctx: BuildContext, tag: str) -> str:
    return f"{ctx.cache_oci_registry}/{ctx.repository}:{tag}"


def cache_refs(ctx: BuildContext, trunk_branch: str = DEFAULT_TRUNK_BRANCH) -> tuple[str, str]:
    """
    Return `(remote_cache, cache_from)` image refs; `cache_from` is empty for branch runs.

    PR runs write their own `pr-<id>` topic cache and read the trunk cache,
    so concurrent PRs never overwrite each other. Branch runs read and write
    a cache tagged with the raw branch name; the name is not sanitized, so
    branches with `/` produce an invalid tag.
    """
    if ctx.pull_request_id:
        return cache_image(ctx, f"pr-{ctx.pull_request_id}"), cache_image(ctx, trunk_branch)
    return cache_image(ctx, ctx.branch), ""


def cache_args(ctx: BuildContext, trunk_branch: str = DEFAULT_TRUNK_BRANCH) -> list[str]:
    remote_cache, cache_from = cache_refs(ctx, trunk_branch)
    args = [f"--remote-cache={remote_cache}"]
    if cache_from:
        args.append(f"--cache-from={cache_from}")
    return args


def merged_build_args(ctx: BuildContext, overrides: dict[str, str]) -> dict[str, str]:
    """Default build args updated by the job's `buildArgs`; job keys win."""
    build_args = {"OCI_REGISTRY": ctx.oci_registry}
    build_args.update(overrides)
    return build_args


def build_earthly_args(ctx: BuildContext, inputs: JobInputs) -> list[str]:
    args = list(BASELINE_ARGS)
    args.extend(cache_args(ctx, inputs.trunk_branch))

    if inputs.push:
        args.append("--push")

    # No quoting or escaping: values go to earthly as separate argv entries.
    for key, value in merged_build_args(ctx, inputs.build_args).items():
        args.append(f"--build-arg={key}={value}")
    for key, value in inputs.secrets.items():
        args.append(f"--secret={key}={value}")

    args.append(inputs.target)
    return args
