"""Argument types used by task parameter definitions.

Each type validates values passed to a task (``validate``) and parses
the string form received from the command line (``parse``). Validation
failures are always ``TaskEnvError`` of kind ``INVALID_VALUE_FOR_TYPE``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
from pathlib import Path
from typing import Any

from taskenv.errors import ErrorKind, TaskEnvError


def _invalid(value: Any, name: str, type_name: str) -> TaskEnvError:
    return TaskEnvError(
        ErrorKind.INVALID_VALUE_FOR_TYPE,
        {"value": value, "name": name, "type": type_name},
    )


class ArgumentType(ABC):
    """Base class of every parameter type.

    Attributes:
        name: Type name reported in validation errors.
    """

    name: str

    @abstractmethod
    def validate(self, arg_name: str, value: Any) -> None:
        """Check that *value* conforms to this type.

        Raises:
            TaskEnvError: ``INVALID_VALUE_FOR_TYPE`` if it doesn't.
        """

    @abstractmethod
    def parse(self, arg_name: str, str_value: str) -> Any:
        """Convert a command-line string into a value of this type."""

    def __repr__(self) -> str:
        return f"ArgumentType({self.name})"


class StringType(ArgumentType):
    name = "string"

    def validate(self, arg_name: str, value: Any) -> None:
        if not isinstance(value, str):
            raise _invalid(value, arg_name, self.name)

    def parse(self, arg_name: str, str_value: str) -> Any:
        return str_value


class BooleanType(ArgumentType):
    name = "boolean"

    def validate(self, arg_name: str, value: Any) -> None:
        if not isinstance(value, bool):
            raise _invalid(value, arg_name, self.name)

    def parse(self, arg_name: str, str_value: str) -> Any:
        lowered = str_value.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise _invalid(str_value, arg_name, self.name)


class IntType(ArgumentType):
    name = "int"

    def validate(self, arg_name: str, value: Any) -> None:
        # bool is a subclass of int
        if isinstance(value, bool) or not isinstance(value, int):
            raise _invalid(value, arg_name, self.name)

    def parse(self, arg_name: str, str_value: str) -> Any:
        try:
            return int(str_value, 0)
        except ValueError as exc:
            raise TaskEnvError(
                ErrorKind.INVALID_VALUE_FOR_TYPE,
                {"value": str_value, "name": arg_name, "type": self.name},
                exc,
            ) from exc


class FloatType(ArgumentType):
    name = "float"

    def validate(self, arg_name: str, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _invalid(value, arg_name, self.name)

    def parse(self, arg_name: str, str_value: str) -> Any:
        try:
            return float(str_value)
        except ValueError as exc:
            raise TaskEnvError(
                ErrorKind.INVALID_VALUE_FOR_TYPE,
                {"value": str_value, "name": arg_name, "type": self.name},
                exc,
            ) from exc


class InputFileType(ArgumentType):
    """Path to an existing, readable file."""

    name = "input_file"

    def validate(self, arg_name: str, value: Any) -> None:
        if not isinstance(value, (str, Path)):
            raise _invalid(value, arg_name, self.name)
        if not Path(value).is_file():
            raise _invalid(value, arg_name, self.name)

    def parse(self, arg_name: str, str_value: str) -> Any:
        self.validate(arg_name, str_value)
        return str_value


class JsonType(ArgumentType):
    """Any JSON-serializable value; parsed from its JSON text."""

    name = "json"

    def validate(self, arg_name: str, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise TaskEnvError(
                ErrorKind.INVALID_VALUE_FOR_TYPE,
                {"value": value, "name": arg_name, "type": self.name},
                exc,
            ) from exc

    def parse(self, arg_name: str, str_value: str) -> Any:
        try:
            return json.loads(str_value)
        except json.JSONDecodeError as exc:
            raise TaskEnvError(
                ErrorKind.INVALID_VALUE_FOR_TYPE,
                {"value": str_value, "name": arg_name, "type": self.name},
                exc,
            ) from exc


STRING: ArgumentType = StringType()
BOOLEAN: ArgumentType = BooleanType()
INT: ArgumentType = IntType()
FLOAT: ArgumentType = FloatType()
INPUT_FILE: ArgumentType = InputFileType()
JSON: ArgumentType = JsonType()
