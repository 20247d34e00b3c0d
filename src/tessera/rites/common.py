"""Shared plumbing for CLI commands."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import click

from ..config import HarnessConfig
from ..nexus.abi import ContractArtifact, load_artifact
from ..session import Session


def fail(message: str) -> None:
    click.secho(f"ERROR: {message}", fg="red")
    sys.exit(1)


def load_config(ctx: click.Context) -> HarnessConfig:
    """Config for the selected network; exits with an error message on failure."""
    obj = ctx.ensure_object(dict)
    try:
        return HarnessConfig.from_env(obj.get("network"), env_path=obj.get("env_file"))
    except ValueError as exc:
        fail(str(exc))


def load_contract(name: str, artifacts: Optional[Path]) -> ContractArtifact:
    try:
        return load_artifact(name, artifacts)
    except (FileNotFoundError, ValueError, KeyError) as exc:
        fail(f"Cannot load artifact for {name}: {exc}")


def open_session(ctx: click.Context, abi: Optional[list[dict[str, Any]]] = None) -> Session:
    config = load_config(ctx)
    return Session.open(config, abi, transport=ctx.ensure_object(dict).get("transport"))


def parse_args_json(raw: str) -> list[Any]:
    try:
        args = json.loads(raw)
        if not isinstance(args, list):
            raise ValueError("Args must be a JSON array")
    except (json.JSONDecodeError, ValueError) as exc:
        fail(f"Invalid args: {exc}")
    return args


def artifacts_option(func: Any) -> Any:
    return click.option(
        "--artifacts",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Project root holding artifacts/ or out/ (default: current directory)",
    )(func)
