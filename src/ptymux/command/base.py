"""Base command classes with Pydantic parameter validation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ptymux.errors import CommandError

if TYPE_CHECKING:
    from ptymux.pty.manager import TerminalMultiplexer

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class CommandParams(BaseModel):
    """Parameter model base: accepts ``session_id`` as well as ``sessionId``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BaseCommand(ABC, Generic[T]):
    """Base class for the commands a client can invoke by name.

    Commands are the text-transport boundary of the multiplexer: arguments
    arrive as a JSON-like dict, are validated against ``param_model``, and
    byte payloads travel base64-encoded in both directions.

    Usage:
        class PingParams(CommandParams):
            session_id: str

        class PingCommand(BaseCommand[PingParams]):
            name = "ping_terminal_session"
            description = "Check whether a session is alive"
            param_model = PingParams

            def execute(self, params: PingParams) -> bool:
                return self.mux.ping(params.session_id)
    """

    name: ClassVar[str]
    description: ClassVar[str]
    param_model: ClassVar[type[BaseModel]]

    def __init__(self, mux: TerminalMultiplexer) -> None:
        self.mux = mux

    def __call__(self, arguments: dict[str, Any]) -> Any:
        """Validate arguments and execute.

        Raises:
            CommandError: If the arguments do not match ``param_model``.
            MuxError: Whatever the multiplexer reports, unchanged.
        """
        try:
            params = self.param_model.model_validate(arguments)
        except ValidationError as e:
            raise CommandError(f"Invalid parameters for {self.name}: {e}") from e
        return self.execute(params)  # type: ignore[arg-type]

    @abstractmethod
    def execute(self, params: T) -> Any:
        """Execute the command with validated parameters."""
        ...

    def describe(self) -> dict[str, Any]:
        """Describe the command and its JSON parameter schema."""
        schema = self.param_model.model_json_schema(by_alias=False)
        schema.pop("title", None)
        return {
            "name": self.name,
            "description": self.description,
            "parameters": schema,
        }
