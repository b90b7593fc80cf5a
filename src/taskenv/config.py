"""Config file discovery, loading, environment overrides and logging setup.

A project is configured by a ``taskenv.yaml`` file at its root. The YAML
mapping is validated into a frozen ``ResolvedConfig`` whose paths are
made absolute against the config file's directory.
"""

from __future__ import annotations

import importlib
import logging
import os
from pathlib import Path
import sys
from typing import Any

from pydantic import ValidationError
import yaml

from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.models import ProjectPaths, ResolvedConfig, RunArguments

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "taskenv.yaml"


def find_config_file(start_dir: str | Path | None = None) -> Path | None:
    """Walk up from *start_dir* looking for ``taskenv.yaml``.

    Args:
        start_dir: Directory to start from; the working directory by default.

    Returns:
        The config file path, or ``None`` if no parent directory has one.
    """
    current = Path(start_dir if start_dir is not None else Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file that must contain a mapping.

    Raises:
        TaskEnvError: ``CONFIG_NOT_FOUND`` or ``INVALID_CONFIG``.
    """
    if not path.is_file():
        raise TaskEnvError(ErrorKind.CONFIG_NOT_FOUND, {"path": str(path)})

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise TaskEnvError(
            ErrorKind.INVALID_CONFIG, {"path": str(path), "reason": str(exc)}, exc
        ) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TaskEnvError(
            ErrorKind.INVALID_CONFIG,
            {
                "path": str(path),
                "reason": f"expected a YAML mapping, got {type(data).__name__}",
            },
        )
    return data


def _resolve_paths(raw_paths: dict[str, Any], config_path: Path | None) -> ProjectPaths:
    base = config_path.parent if config_path is not None else Path.cwd()
    root = (base / raw_paths.get("root", ".")).resolve()
    defaults = ProjectPaths(root=str(root))

    def under_root(key: str) -> str:
        return str((root / raw_paths.get(key, getattr(defaults, key))).resolve())

    return ProjectPaths(
        root=str(root),
        config=str(config_path) if config_path is not None else None,
        sources=under_root("sources"),
        cache=under_root("cache"),
        artifacts=under_root("artifacts"),
        tests=under_root("tests"),
    )


def resolve_config(data: dict[str, Any], config_path: Path | None = None) -> ResolvedConfig:
    """Validate a raw config mapping into a ``ResolvedConfig``.

    Args:
        data: Parsed YAML content.
        config_path: Location of the file, used to resolve relative paths.

    Raises:
        TaskEnvError: ``INVALID_CONFIG`` if validation fails.
    """
    raw = dict(data)
    raw_paths = raw.pop("paths", None) or {}
    label = str(config_path) if config_path is not None else "<defaults>"

    if not isinstance(raw_paths, dict):
        raise TaskEnvError(
            ErrorKind.INVALID_CONFIG, {"path": label, "reason": "paths must be a mapping"}
        )

    try:
        return ResolvedConfig(paths=_resolve_paths(raw_paths, config_path), **raw)
    except ValidationError as exc:
        raise TaskEnvError(
            ErrorKind.INVALID_CONFIG, {"path": label, "reason": str(exc)}, exc
        ) from exc


def load_config(path: str | Path) -> ResolvedConfig:
    """Load and resolve the config file at *path*."""
    config_path = Path(path).resolve()
    logger.debug("Loading config from %s", config_path)
    return resolve_config(_load_yaml(config_path), config_path)


def import_plugins(config: ResolvedConfig) -> None:
    """Import every module listed in ``config.plugins``.

    The project root is put on ``sys.path`` so project-local plugin
    modules can be imported. Plugins register their tasks and extenders
    in the current ``TaskEnvContext`` as a side effect of importing.

    Raises:
        TaskEnvError: ``PLUGIN_IMPORT_FAILED`` if a module can't be imported.
    """
    root = config.paths.root
    if config.plugins and root not in sys.path:
        sys.path.insert(0, root)

    for plugin in config.plugins:
        logger.debug("Importing plugin %s", plugin)
        try:
            importlib.import_module(plugin)
        except ImportError as exc:
            raise TaskEnvError(
                ErrorKind.PLUGIN_IMPORT_FAILED, {"plugin": plugin, "reason": str(exc)}, exc
            ) from exc


# ---------------------------------------------------------------------------
# Environment variable support
# ---------------------------------------------------------------------------

_ENV_FIELD_MAP: dict[str, str] = {
    "TASKENV_NETWORK": "network",
    "TASKENV_VERBOSE": "verbose",
    "TASKENV_SHOW_STACK_TRACES": "show_stack_traces",
}
"""Maps environment variable names to RunArguments field names."""

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def apply_env_overrides(arguments: RunArguments) -> RunArguments:
    """Apply ``TASKENV_*`` env var overrides to run arguments.

    Environment variables override **default** values only; a field set
    on the command line (differing from its default) keeps its value.
    Unparseable boolean values are ignored.

    Args:
        arguments: The parsed run arguments.

    Returns:
        A new ``RunArguments`` with the overrides applied.
    """
    defaults = RunArguments()
    overrides: dict[str, Any] = {}

    for env_var, field_name in _ENV_FIELD_MAP.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue
        if getattr(arguments, field_name) != getattr(defaults, field_name):
            continue

        parsed = _parse_env_value(field_name, env_value)
        if parsed is not None:
            overrides[field_name] = parsed

    if not overrides:
        return arguments

    return arguments.model_copy(update=overrides)


def _parse_env_value(field_name: str, raw: str) -> Any:
    if field_name == "network":
        return raw or None

    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(log_level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the ``taskenv`` logger.

    Adds a console handler and an optional file handler. Idempotent:
    repeated calls do not duplicate handlers.

    Args:
        log_level: Logging level name.
        log_file: Optional path of a log file.
    """
    taskenv_logger = logging.getLogger("taskenv")
    taskenv_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if not any(
        type(h) is logging.StreamHandler for h in taskenv_logger.handlers
    ):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_LOG_FORMAT))
        taskenv_logger.addHandler(console)

    if log_file is not None:
        resolved = str(Path(log_file).resolve())
        has_file = any(
            isinstance(h, logging.FileHandler)
            and getattr(h, "baseFilename", None) == resolved
            for h in taskenv_logger.handlers
        )
        if not has_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            taskenv_logger.addHandler(file_handler)
