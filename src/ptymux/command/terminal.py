"""Terminal commands — the six operations exposed to UI clients."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, Field

from ptymux.codec import decode_payload, encode_payload
from ptymux.command.base import BaseCommand, CommandParams
from ptymux.config import TerminalConfig


class SessionParams(CommandParams):
    session_id: str = Field(min_length=1, description="Caller-chosen session id")


class CreateParams(SessionParams):
    config: TerminalConfig


class WriteParams(SessionParams):
    data: str = Field(description="Base64-encoded bytes for the shell's input")


class ResizeParams(SessionParams):
    cols: int = Field(ge=1, le=65535)
    rows: int = Field(ge=1, le=65535)


class CreateTerminalSessionCommand(BaseCommand[CreateParams]):
    name: ClassVar[str] = "create_terminal_session"
    description: ClassVar[str] = (
        "Start a shell in a new PTY sized cols x rows in the given directory. "
        "Output is pushed as terminal-output-<id> events."
    )
    param_model: ClassVar[type[BaseModel]] = CreateParams

    def execute(self, params: CreateParams) -> str:
        return self.mux.create_session(params.session_id, params.config)


class WriteToTerminalCommand(BaseCommand[WriteParams]):
    name: ClassVar[str] = "write_to_terminal"
    description: ClassVar[str] = "Send base64-encoded input bytes to a session."
    param_model: ClassVar[type[BaseModel]] = WriteParams

    def execute(self, params: WriteParams) -> None:
        # Unknown sessions are reported before payload errors
        self.mux.get_session(params.session_id)
        self.mux.write_to_session(params.session_id, decode_payload(params.data))


class ResizeTerminalCommand(BaseCommand[ResizeParams]):
    name: ClassVar[str] = "resize_terminal"
    description: ClassVar[str] = "Resize a session's terminal in character cells."
    param_model: ClassVar[type[BaseModel]] = ResizeParams

    def execute(self, params: ResizeParams) -> None:
        self.mux.resize_session(params.session_id, params.cols, params.rows)


class CloseTerminalSessionCommand(BaseCommand[SessionParams]):
    name: ClassVar[str] = "close_terminal_session"
    description: ClassVar[str] = "Kill a session's shell. Unknown ids are ignored."
    param_model: ClassVar[type[BaseModel]] = SessionParams

    def execute(self, params: SessionParams) -> None:
        self.mux.close_session(params.session_id)


class GetTerminalBufferCommand(BaseCommand[SessionParams]):
    name: ClassVar[str] = "get_terminal_buffer"
    description: ClassVar[str] = (
        "Return the session's recent output as base64, or null when the "
        "session is unknown or has produced nothing yet."
    )
    param_model: ClassVar[type[BaseModel]] = SessionParams

    def execute(self, params: SessionParams) -> str | None:
        data = self.mux.get_buffer(params.session_id)
        if data is None:
            return None
        return encode_payload(data)


class PingTerminalSessionCommand(BaseCommand[SessionParams]):
    name: ClassVar[str] = "ping_terminal_session"
    description: ClassVar[str] = "Check whether a session is still registered."
    param_model: ClassVar[type[BaseModel]] = SessionParams

    def execute(self, params: SessionParams) -> bool:
        return self.mux.ping(params.session_id)
