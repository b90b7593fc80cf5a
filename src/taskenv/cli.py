"""CLI entry point for taskenv.

Provides ``main()`` as the console-script entry point registered in
``pyproject.toml`` as ``taskenv = "taskenv.cli:main"``. Parses the global
options, loads the project config and its plugins, builds the
environment, parses the task's own arguments and runs the task.
"""

from __future__ import annotations

import argparse
import asyncio
from importlib import metadata
import logging
from pathlib import Path
import sys
import traceback
from typing import Any

from taskenv.builtin_tasks import TASK_HELP, register_builtin_tasks
from taskenv.config import (
    CONFIG_FILENAME,
    apply_env_overrides,
    configure_logging,
    find_config_file,
    import_plugins,
    load_config,
    resolve_config,
)
from taskenv.context import TaskEnvContext
from taskenv.environment import Environment, TaskArguments
from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.models import ResolvedConfig, RunArguments
from taskenv.tasks import TaskDefinition

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the parser of the global options.

    Task names and task arguments are left unparsed for
    ``parse_task_arguments``.
    """
    parser = argparse.ArgumentParser(
        prog="taskenv",
        description="Run project tasks in a task runtime environment.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("--config", default=None, help="Path to a taskenv.yaml file.")
    parser.add_argument("--network", default=None, help="The network to connect to.")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging."
    )
    parser.add_argument(
        "--show-stack-traces",
        action="store_true",
        help="Show stack traces on task errors.",
    )
    parser.add_argument("--help", action="store_true", help="Show help for a task.")
    parser.add_argument(
        "--version", action="store_true", help="Show the taskenv version."
    )
    return parser


def _package_version() -> str:
    try:
        return metadata.version("taskenv")
    except metadata.PackageNotFoundError:
        return "unknown"


def parse_task_arguments(
    definition: TaskDefinition, tokens: list[str]
) -> TaskArguments:
    """Turn command-line tokens into raw task arguments.

    ``--param-name value`` sets a named param, ``--flag`` sets a flag, and
    the remaining tokens bind to the positional params in order, a
    variadic one collecting the rest. Mandatory params that were not given
    are left out; ``Environment.run`` reports them.

    Raises:
        TaskEnvError: ``UNRECOGNIZED_PARAM_NAME``, ``MISSING_PARAM_VALUE``,
            ``UNRECOGNIZED_POSITIONAL_ARG`` or ``INVALID_VALUE_FOR_TYPE``.
    """
    arguments: TaskArguments = {}
    positionals: list[str] = []

    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token == "--":
            positionals.extend(tokens[index + 1 :])
            break
        if not token.startswith("--"):
            positionals.append(token)
            index += 1
            continue

        name = token[2:].replace("-", "_")
        param = definition.param_definitions.get(name)
        if param is None:
            raise TaskEnvError(ErrorKind.UNRECOGNIZED_PARAM_NAME, {"param": token})
        if param.is_flag:
            arguments[name] = True
            index += 1
            continue
        if index + 1 >= len(tokens):
            raise TaskEnvError(ErrorKind.MISSING_PARAM_VALUE, {"param": token})
        arguments[name] = param.type.parse(name, tokens[index + 1])
        index += 2

    for param in definition.positional_param_definitions:
        if not positionals:
            break
        if param.is_variadic:
            arguments[param.name] = [param.type.parse(param.name, v) for v in positionals]
            positionals = []
            break
        arguments[param.name] = param.type.parse(param.name, positionals.pop(0))

    if positionals:
        raise TaskEnvError(
            ErrorKind.UNRECOGNIZED_POSITIONAL_ARG, {"argument": positionals[0]}
        )

    return arguments


def _load_project_config(arguments: RunArguments, task_name: str) -> ResolvedConfig:
    """Load the config named by ``--config``, or the nearest one.

    Outside a project only ``help`` runs, on the default config.

    Raises:
        TaskEnvError: ``CONFIG_NOT_FOUND`` if no config file applies and
            *task_name* is not ``help``.
    """
    if arguments.config is not None:
        return load_config(arguments.config)
    found = find_config_file()
    if found is not None:
        return load_config(found)
    if task_name != TASK_HELP:
        raise TaskEnvError(
            ErrorKind.CONFIG_NOT_FOUND,
            {"path": f"{CONFIG_FILENAME} in {Path.cwd()} or any parent directory"},
        )
    logger.debug("No config file found; using defaults")
    return resolve_config({})


def _split_task(tokens: list[str]) -> tuple[str, list[str]]:
    if tokens and not tokens[0].startswith("-"):
        return tokens[0], tokens[1:]
    return TASK_HELP, tokens


async def _run(environment: Environment, task_name: str, arguments: dict[str, Any]) -> Any:
    return await environment.run(task_name, arguments)


def main() -> int:
    """Entry point for the taskenv CLI application.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    parser = _build_parser()
    options, rest = parser.parse_known_args()

    if options.version:
        print(_package_version())
        return 0

    run_arguments = apply_env_overrides(
        RunArguments(
            network=options.network,
            config=options.config,
            verbose=options.verbose,
            show_stack_traces=options.show_stack_traces,
        )
    )

    task_name, task_tokens = _split_task(rest)
    if options.help and task_name != TASK_HELP:
        task_name, task_tokens = TASK_HELP, [task_name]

    context_created = False
    try:
        context = TaskEnvContext.create_context()
        context_created = True

        config = _load_project_config(run_arguments, task_name)
        configure_logging(
            "DEBUG" if run_arguments.verbose else config.log_level, config.log_file
        )

        register_builtin_tasks(context.tasks)
        import_plugins(config)

        environment = Environment(
            config, run_arguments, context.tasks.freeze(), context.extenders
        )
        context.set_environment(environment)

        definition = environment.tasks.get(task_name)
        if definition is None:
            raise TaskEnvError(ErrorKind.UNRECOGNIZED_TASK, {"task": task_name})

        task_arguments = parse_task_arguments(definition, task_tokens)
        asyncio.run(_run(environment, task_name, task_arguments))

    except TaskEnvError as exc:
        print(f"Error {exc.code}: {exc}", file=sys.stderr)
        if run_arguments.show_stack_traces:
            traceback.print_exception(exc)
        else:
            print(
                "For more info run taskenv with --show-stack-traces",
                file=sys.stderr,
            )
        return 1
    except Exception as exc:
        print(f"An unexpected error occurred: {exc}", file=sys.stderr)
        if run_arguments.show_stack_traces:
            traceback.print_exception(exc)
        return 1
    finally:
        if context_created:
            TaskEnvContext.delete_context()

    return 0


if __name__ == "__main__":
    sys.exit(main())
