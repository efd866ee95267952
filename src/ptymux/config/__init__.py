"""Configuration — Pydantic models for ptymux settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

MAX_BUFFER_SIZE = 2 * 1024 * 1024  # 2 MiB
READ_CHUNK_SIZE = 8192

_U16_MAX = 65535


class TerminalConfig(BaseModel):
    """Per-session creation parameters sent by the client."""

    model_config = ConfigDict(frozen=True)

    cwd: str = Field(description="Working directory for the shell")
    cols: int = Field(default=80, ge=1, le=_U16_MAX)
    rows: int = Field(default=24, ge=1, le=_U16_MAX)


class ShellConfig(BaseModel):
    """Shell override.

    When ``program`` is unset the platform strategy table picks the shell
    (``$SHELL`` or the platform default).
    """

    program: str | None = Field(default=None, description="Shell executable")
    args: list[str] | None = Field(
        default=None,
        description="Explicit argument list. Disables the login flag when set.",
    )
    login: bool = Field(default=True, description="Start bash/zsh as a login shell")
    env: dict[str, str] = Field(
        default_factory=dict, description="Extra environment for every session"
    )


class BufferConfig(BaseModel):
    max_bytes: int = Field(default=MAX_BUFFER_SIZE, ge=1)
    read_chunk_size: int = Field(default=READ_CHUNK_SIZE, ge=1)


class MuxConfig(BaseModel):
    """Top-level ptymux configuration."""

    shell: ShellConfig = Field(default_factory=ShellConfig)
    buffer: BufferConfig = Field(default_factory=BufferConfig)
    kill_timeout: float = Field(
        default=2.0, gt=0, description="Seconds to wait for a killed shell to be reaped"
    )

    @classmethod
    def load(cls, config_path: str | None = None) -> MuxConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            PTYMUX_SHELL             - Shell executable for new sessions
            PTYMUX_LOGIN_SHELL       - "0"/"false" to disable the login flag
            PTYMUX_MAX_BUFFER_SIZE   - History buffer cap in bytes
            PTYMUX_READ_CHUNK_SIZE   - Reader chunk size in bytes
            PTYMUX_KILL_TIMEOUT      - Reap timeout after SIGKILL, in seconds
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        shell = config_data.get("shell", {})
        env_shell = os.environ.get("PTYMUX_SHELL")
        if env_shell:
            shell["program"] = env_shell

        env_login = os.environ.get("PTYMUX_LOGIN_SHELL")
        if env_login:
            shell["login"] = env_login.strip().lower() not in ("0", "false", "no")

        if shell:
            config_data["shell"] = shell

        buffer = config_data.get("buffer", {})
        env_max = os.environ.get("PTYMUX_MAX_BUFFER_SIZE")
        if env_max:
            buffer["max_bytes"] = int(env_max)

        env_chunk = os.environ.get("PTYMUX_READ_CHUNK_SIZE")
        if env_chunk:
            buffer["read_chunk_size"] = int(env_chunk)

        if buffer:
            config_data["buffer"] = buffer

        env_kill_timeout = os.environ.get("PTYMUX_KILL_TIMEOUT")
        if env_kill_timeout:
            config_data["kill_timeout"] = float(env_kill_timeout)

        return cls.model_validate(config_data)
