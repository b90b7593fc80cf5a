"""Tasks available in every project."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.tasks import ParamDefinition, TaskDefinition, TaskRegistry

if TYPE_CHECKING:
    from taskenv.environment import Environment, RunSuperFunction

TASK_HELP = "help"


def _param_usage(param: ParamDefinition, *, positional: bool) -> str:
    if positional:
        usage = param.name + ("..." if param.is_variadic else "")
    elif param.is_flag:
        usage = f"--{param.name.replace('_', '-')}"
    else:
        usage = f"--{param.name.replace('_', '-')} {param.name.upper()}"
    return f"[{usage}]" if param.is_optional else usage


def format_task_help(definition: TaskDefinition) -> str:
    """Render the usage line and parameter list of a task."""
    named = list(definition.param_definitions.values())
    positional = list(definition.positional_param_definitions)

    usage_parts = [definition.name]
    usage_parts += [_param_usage(p, positional=False) for p in named]
    usage_parts += [_param_usage(p, positional=True) for p in positional]

    lines = [f"Usage: taskenv [GLOBAL OPTIONS] {' '.join(usage_parts)}", ""]
    if definition.description:
        lines += [definition.description, ""]

    if named:
        lines.append("OPTIONS:")
        for p in named:
            default = f" (default: {p.default_value!r})" if p.is_optional and not p.is_flag else ""
            lines.append(f"  --{p.name.replace('_', '-'):<24}{p.description or ''}{default}")
        lines.append("")
    if positional:
        lines.append("POSITIONAL ARGUMENTS:")
        for p in positional:
            lines.append(f"  {p.name:<26}{p.description or ''}")
        lines.append("")

    return "\n".join(lines)


def format_tasks_list(environment: Environment) -> str:
    """Render the list of public tasks of *environment*."""
    public = sorted(
        (d for d in environment.tasks.values() if not d.is_internal),
        key=lambda d: d.name,
    )
    width = max((len(d.name) for d in public), default=0) + 2
    lines = ["Usage: taskenv [GLOBAL OPTIONS] <TASK> [TASK OPTIONS]", "", "AVAILABLE TASKS:", ""]
    lines += [f"  {d.name:<{width}}{d.description or ''}" for d in public]
    lines += ["", f"To get help for a specific task run: taskenv {TASK_HELP} [task]"]
    return "\n".join(lines)


async def _help_action(
    args: dict[str, Any], env: Environment, run_super: RunSuperFunction
) -> str:
    task_name = args.get("task")
    if task_name is None:
        text = format_tasks_list(env)
    else:
        definition = env.tasks.get(task_name)
        if definition is None:
            raise TaskEnvError(ErrorKind.UNRECOGNIZED_TASK, {"task": task_name})
        text = format_task_help(definition)
    print(text)
    return text


def register_builtin_tasks(registry: TaskRegistry) -> None:
    """Register the built-in tasks in *registry*."""
    registry.task(TASK_HELP, "Prints this message", _help_action).add_optional_positional_param(
        "task", "An optional task to print more info about"
    )
