"""Configuration resolution and route table loading.

* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the project-local ``./typedtrail.json`` into a
  :class:`~typedtrail.models.ClientConfig`.
* **Route tables** -- :func:`load_route_table` reads a JSON or YAML route
  table from a file or stdin and validates it into a
  :class:`~typedtrail.models.RouteTable`.

A route table file maps paths to verbs to declared names::

    /resources:
      GET:
        description: List resources
        query_params: [search, page]
      POST: {}
    /resources/:id:
      GET: {}
      DELETE: {}
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from typedtrail.exceptions import ConfigError, RouteTableError
from typedtrail.models import ClientConfig, RouteTable

_PROJECT_CONFIG_FILENAME = "typedtrail.json"

ENV_ROOT_URL = "TYPEDTRAIL_ROOT_URL"
ENV_TIMEOUT = "TYPEDTRAIL_TIMEOUT"
ENV_VERIFY_SSL = "TYPEDTRAIL_VERIFY_SSL"

_FALSE_VALUES = {"0", "false", "no", "off"}


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./typedtrail.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_root_url: Optional[str] = None,
    cli_timeout: Optional[float] = None,
) -> ClientConfig:
    """Resolve the client configuration.

    Precedence (high to low):
        1. CLI flags (``cli_root_url``, ``cli_timeout``)
        2. Environment variables (``TYPEDTRAIL_ROOT_URL``,
           ``TYPEDTRAIL_TIMEOUT``, ``TYPEDTRAIL_VERIFY_SSL``)
        3. Project config (``./typedtrail.json``)
        4. Defaults

    Raises:
        ConfigError: If the project file or an environment value is invalid.
    """
    data: dict[str, Any] = dict(load_project_config() or {})

    env_root_url = os.environ.get(ENV_ROOT_URL)
    if env_root_url:
        data["root_url"] = env_root_url

    env_timeout = os.environ.get(ENV_TIMEOUT)
    if env_timeout:
        try:
            data["timeout"] = float(env_timeout)
        except ValueError as exc:
            raise ConfigError(f"{ENV_TIMEOUT} must be a number, got {env_timeout!r}") from exc

    env_verify = os.environ.get(ENV_VERIFY_SSL)
    if env_verify:
        data["verify_ssl"] = env_verify.strip().lower() not in _FALSE_VALUES

    if cli_root_url is not None:
        data["root_url"] = cli_root_url
    if cli_timeout is not None:
        data["timeout"] = cli_timeout

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


# --- Route tables ---


def load_route_table(source: str) -> RouteTable:
    """Load a route table from a file path, or from stdin when *source* is ``-``.

    The format is picked from the file extension (``.json``, ``.yaml``,
    ``.yml``); other sources are tried as JSON, then YAML.

    Raises:
        RouteTableError: If the source cannot be read, parsed, or validated.
    """
    if source == "-":
        content = sys.stdin.read()
        hint = ""
    else:
        path = Path(source)
        if not path.is_file():
            raise RouteTableError(f"Route table not found: {source}")
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RouteTableError(f"Failed to read route table {source}: {exc}") from exc
        suffix = path.suffix.lower()
        hint = "json" if suffix == ".json" else "yaml" if suffix in (".yaml", ".yml") else ""

    if not content.strip():
        raise RouteTableError(f"Route table is empty: {source}")

    raw = _parse_content(content, hint)
    try:
        return RouteTable.model_validate(raw)
    except ValidationError as exc:
        raise RouteTableError(f"Invalid route table {source}: {exc}") from exc


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML, trying JSON first unless hinted otherwise."""
    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise RouteTableError(f"Invalid JSON: {exc}") from exc
        else:
            return _require_mapping(result)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise RouteTableError(f"Failed to parse route table as JSON or YAML: {exc}") from exc
    return _require_mapping(result)


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise RouteTableError(f"Route table must be a JSON/YAML object (got {kind})")
    return result
