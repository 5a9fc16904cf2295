"""
Script: earthly_ci/common.py
What: Shared helper functions used by all `earthly_ci` modules.
Doing: Wraps env reads, action input reads, workflow commands, and command execution.
Why: Avoids duplicated helper code.
Goal: Keep behavior consistent across all helper modules.
"""

from __future__ import annotations

import os
import subprocess
from typing import Mapping, Sequence


class EarthlyCiError(RuntimeError):
    """Raised when a workflow helper hits a known error condition."""


# YAML 1.2 "core schema" booleans, the only spellings GitHub accepts for boolean inputs.
TRUE_VALUES = ("true", "True", "TRUE")
FALSE_VALUES = ("false", "False", "FALSE")


def require_env(name: str, environ: Mapping[str, str] | None = None) -> str:
    """Return a required environment variable or raise a clear error."""
    source = os.environ if environ is None else environ
    value = source.get(name)
    if value is None or value == "":
        raise EarthlyCiError(f"Missing required environment variable: {name}")
    return value


def optional_env(name: str, default: str = "", environ: Mapping[str, str] | None = None) -> str:
    """Return an environment variable with a fallback default."""
    source = os.environ if environ is None else environ
    return source.get(name, default)


def input_env_name(name: str) -> str:
    """
    Return the environment variable that carries one action input.

    The runner exposes input `buildArgs` as `INPUT_BUILDARGS`; spaces become `_`.
    """
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(
    name: str,
    *,
    required: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Return one trimmed action input, or raise if a required input is empty."""
    value = optional_env(input_env_name(name), environ=environ).strip()
    if required and not value:
        raise EarthlyCiError(f"Input required and not supplied: {name}")
    return value


def get_boolean_input(name: str, environ: Mapping[str, str] | None = None) -> bool:
    """
    Return one boolean action input.

    An empty input counts as false. Anything outside the YAML 1.2 core
    spellings is rejected instead of guessed.
    """
    value = get_input(name, environ=environ)
    if not value or value in FALSE_VALUES:
        return False
    if value in TRUE_VALUES:
        return True
    raise EarthlyCiError(
        f'Input does not meet YAML 1.2 "Core Schema" specification: {name}\n'
        "Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


def log_debug(message: str) -> None:
    """Print a debug line; the runner only shows these when step debug is on."""
    print(f"::debug::{message}")


def set_failed(message: str) -> None:
    """Report a job failure to the runner and exit non-zero."""
    print(f"::error::{message}")
    raise SystemExit(1)


def add_path(directory: str) -> None:
    """
    Put a directory in front of PATH for this process and later steps.

    Later steps pick it up from the `GITHUB_PATH` file; this process needs
    the `os.environ` update because the runner only reads that file between steps.
    """
    path_file = optional_env("GITHUB_PATH")
    if path_file:
        try:
            with open(path_file, "a", encoding="utf-8") as handle:
                handle.write(f"{directory}\n")
        except OSError as exc:
            raise EarthlyCiError(f"Failed to write GITHUB_PATH file {path_file}: {exc}") from exc
    else:
        print(f"::add-path::{directory}")
    current = os.environ.get("PATH", "")
    os.environ["PATH"] = f"{directory}{os.pathsep}{current}" if current else directory


def write_github_outputs(values: Mapping[str, str]) -> None:
    """
    Write step outputs for GitHub Actions.

    GitHub provides a file path in `GITHUB_OUTPUT`; writing `name=value` lines
    there makes that value available to later steps in the same job.
    """
    output_file = require_env("GITHUB_OUTPUT")
    try:
        with open(output_file, "a", encoding="utf-8") as handle:
            for key, value in values.items():
                handle.write(f"{key}={value}\n")
    except OSError as exc:
        raise EarthlyCiError(f"Failed to write GITHUB_OUTPUT file {output_file}: {exc}") from exc


def run_cmd(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    env: Mapping[str, str] | None = None,
) -> str:
    """Run a command and return stdout, raising a readable error on failure."""
    try:
        result = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=capture_output,
            env=dict(env) if env is not None else None,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        stdout = (exc.stdout or "").strip()
        details = stderr or stdout or str(exc)
        raise EarthlyCiError(f"Command failed: {' '.join(args)}\n{details}") from exc
    except OSError as exc:
        # Spawn failures (missing binary, not executable) never reach CalledProcessError.
        raise EarthlyCiError(f"Failed to start command: {' '.join(args)}\n{exc}") from exc

    if not capture_output:
        return ""
    return result.stdout
