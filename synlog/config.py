"""Configuration loading from an optional YAML file, env vars, and CLI args.

Example file::

    window: 600
    formats:
      short: "${timestamp} ${resp_code} ${req_method} ${req_path}"
    bundles:
      media-403:
        filters:
          - resp_code = 403
          - req_path ~ ^/_matrix/media
        format: short
      agents:
        fields: [user_agent]
        tally: true
"""

import logging
import math
import os
from dataclasses import dataclass, field

import yaml

from synlog.correlation import DEFAULT_WINDOW
from synlog.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SYNLOG_CONFIG"

_BUNDLE_KEYS = {"filters", "format", "fields", "json", "tally", "grep"}


@dataclass(frozen=True)
class Bundle:
    filters: tuple[str, ...] = ()
    format: str | None = None
    fields: tuple[str, ...] = ()
    json: bool | None = None
    tally: bool | None = None
    grep: str | None = None


@dataclass(frozen=True)
class Config:
    window: float = DEFAULT_WINDOW
    formats: dict[str, str] = field(default_factory=dict)
    bundles: dict[str, Bundle] = field(default_factory=dict)


@dataclass(frozen=True)
class RunOptions:
    """Fully resolved options, ready to be compiled."""

    filters: tuple[str, ...] = ()
    template: str | None = None
    fields: tuple[str, ...] = ()
    json_output: bool = False
    tally: bool = False
    grep: str | None = None
    window: float = DEFAULT_WINDOW


def load_yaml_config(path: str | None, required: bool = True) -> dict:
    """Load a YAML mapping from path. Returns empty dict if no path.

    A missing file raises ConfigError when required, else logs a warning.
    """
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        if required:
            raise ConfigError(f"Config file not found: {path}")
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _string_list(value, where: str) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a string or a list of strings")
    return tuple(value)


def _optional(value, kind: type, where: str):
    if value is not None and not isinstance(value, kind):
        raise ConfigError(f"{where} must be a {kind.__name__}")
    return value


def _parse_bundle(name: str, raw) -> Bundle:
    if not isinstance(raw, dict):
        raise ConfigError(f"Bundle {name!r} must be a mapping")
    unknown = set(raw) - _BUNDLE_KEYS
    if unknown:
        raise ConfigError(f"Bundle {name!r} has unknown key(s): {', '.join(sorted(unknown))}")
    where = f"bundles.{name}"
    return Bundle(
        filters=_string_list(raw.get("filters", []), f"{where}.filters"),
        format=_optional(raw.get("format"), str, f"{where}.format"),
        fields=_string_list(raw.get("fields", []), f"{where}.fields"),
        json=_optional(raw.get("json"), bool, f"{where}.json"),
        tally=_optional(raw.get("tally"), bool, f"{where}.tally"),
        grep=_optional(raw.get("grep"), str, f"{where}.grep"),
    )


def parse_config(data: dict) -> Config:
    """Validate parsed YAML data and build a Config."""
    window = data.get("window", DEFAULT_WINDOW)
    if (
        isinstance(window, bool)
        or not isinstance(window, (int, float))
        or not math.isfinite(window)
        or window <= 0
    ):
        raise ConfigError("window must be a positive number of seconds")

    formats = data.get("formats") or {}
    if not isinstance(formats, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in formats.items()
    ):
        raise ConfigError("formats must map names to template strings")

    raw_bundles = data.get("bundles") or {}
    if not isinstance(raw_bundles, dict):
        raise ConfigError("bundles must be a mapping")
    bundles = {str(name): _parse_bundle(str(name), raw) for name, raw in raw_bundles.items()}

    return Config(window=float(window), formats=dict(formats), bundles=bundles)


def load_config(path: str | None = None) -> Config:
    """Build Config from an explicit path, else the SYNLOG_CONFIG env var."""
    if path:
        return parse_config(load_yaml_config(path, required=True))
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return parse_config(load_yaml_config(env_path, required=False))


def resolve_options(
    config: Config,
    bundle_names: list[str] | None = None,
    filters: list[str] | None = None,
    template: str | None = None,
    fields: list[str] | None = None,
    json_output: bool = False,
    tally: bool = False,
    grep: str | None = None,
    window: float | None = None,
) -> RunOptions:
    """Expand bundles in order, then apply command-line values on top.

    Filters accumulate; every other setting is overridden by whatever comes
    later. A template name found in config.formats is replaced by its text.
    """
    if window is not None and (not math.isfinite(window) or window <= 0):
        raise ConfigError("window must be a positive number of seconds")

    merged_filters: list[str] = []
    merged = {"template": None, "fields": (), "json_output": False, "tally": False, "grep": None}

    for name in bundle_names or ():
        bundle = config.bundles.get(name)
        if bundle is None:
            raise ConfigError(f"Unknown bundle: {name!r}")
        logger.debug("Expanding bundle %s", name)
        merged_filters.extend(bundle.filters)
        if bundle.format is not None:
            merged["template"] = bundle.format
            merged["json_output"] = False
        if bundle.fields:
            merged["fields"] = bundle.fields
        if bundle.json is not None:
            merged["json_output"] = bundle.json
            if bundle.json:
                merged["template"] = None
        if bundle.tally is not None:
            merged["tally"] = bundle.tally
        if bundle.grep is not None:
            merged["grep"] = bundle.grep

    merged_filters.extend(filters or ())
    if template is not None:
        merged["template"] = template
        merged["json_output"] = False
    if json_output:
        merged["json_output"] = True
        merged["template"] = None
    if fields:
        merged["fields"] = tuple(fields)
    if tally:
        merged["tally"] = True
    if grep is not None:
        merged["grep"] = grep

    resolved_template = merged["template"]
    if resolved_template is not None:
        resolved_template = config.formats.get(resolved_template, resolved_template)

    return RunOptions(
        filters=tuple(merged_filters),
        template=resolved_template,
        fields=tuple(merged["fields"]),
        json_output=merged["json_output"],
        tally=merged["tally"],
        grep=merged["grep"],
        window=config.window if window is None else window,
    )
