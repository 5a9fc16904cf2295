"""
Script: earthly_ci/earthly_build.py
What: Runs one Earthly target for the current workflow job.
Doing: Resolves context and inputs, builds the argument list, provisions earthly, then runs `--version` and the target.
Why: This is the action's single entry point, so the whole run order lives in one place.
Goal: Build (and optionally push) the requested target with shared remote caching.
"""

from __future__ import annotations

import os
from typing import Mapping

from earthly_ci.arguments import build_earthly_args, read_job_inputs
from earthly_ci.common import run_cmd
from earthly_ci.context import resolve_build_context
from earthly_ci.tool_cache import EARTHLY_BINARY, ensure_earthly_in_path


# NO_DOCKER keeps earthly from trying to manage its own buildkit container through docker.
EARTHLY_ENV_OVERLAY = {
    "NO_DOCKER": "1",
    "FORCE_COLOR": "1",
}


def earthly_env(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Process environment with the earthly overlay applied on top."""
    env = dict(os.environ if base is None else base)
    env.update(EARTHLY_ENV_OVERLAY)
    return env


def main() -> None:
    # Read everything up front; nothing below goes back to the environment.
    inputs = read_job_inputs()
    ctx = resolve_build_context()
    args = build_earthly_args(ctx, inputs)

    ensure_earthly_in_path()
    # Built after provisioning so PATH already contains the earthly directory.
    env = earthly_env()

    print("Running earthly --version")
    run_cmd([EARTHLY_BINARY, "--version"], capture_output=False, env=env)

    print(f"Running Earthly target {inputs.target}")
    run_cmd([EARTHLY_BINARY, *args], capture_output=False, env=env)


if __name__ == "__main__":
    main()
