"""Configuration module for the message runtime.

Supports three configuration methods:
1. Direct Python instantiation
2. Environment variables
3. .env file (loaded through python-dotenv)
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import DispatchMode, ShutdownPolicy

load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


class TransportConfig(BaseModel):
    """Credentials handed to the transport factory.

    Supports environment variables with TG_ prefix and .env file loading.
    The runtime itself never reads these; they are passed through to the
    factory given to ``MessageRuntime.connect``.
    """

    api_id: Optional[int] = Field(
        default_factory=lambda: _optional_int("TG_ID"),
        description="Application id issued by the messaging service",
    )
    api_hash: Optional[str] = Field(
        default_factory=lambda: os.getenv("TG_HASH"),
        description="Application hash issued by the messaging service",
    )
    bot_token: Optional[str] = Field(
        default_factory=lambda: os.getenv("TG_BOT_TOKEN"),
        description="Bot token used instead of a phone login",
    )
    session_file: Optional[str] = Field(
        default_factory=lambda: os.getenv("TG_SESSION_FILE"),
        description="Path of the persisted session, if any",
    )

    @property
    def has_credentials(self) -> bool:
        """Whether the application id and hash are both set."""
        return self.api_id is not None and bool(self.api_hash)


class DispatchConfig(BaseModel):
    """Dispatcher behavior configuration.

    Supports environment variables with RUNTIME_ prefix and .env file loading.
    Environment variables take precedence over defaults.
    """

    mode: DispatchMode = Field(
        default_factory=lambda: DispatchMode(os.getenv("RUNTIME_DISPATCH_MODE", "concurrent")),
        description="Run matched handlers of one event concurrently or one after another",
    )
    shutdown_policy: ShutdownPolicy = Field(
        default_factory=lambda: ShutdownPolicy(os.getenv("RUNTIME_SHUTDOWN_POLICY", "drain")),
        description="Drain or abandon in-flight invocations on stop",
    )
    drain_timeout: Optional[float] = Field(
        default_factory=lambda: _optional_float("RUNTIME_DRAIN_TIMEOUT"),
        description="Maximum seconds to wait for in-flight invocations on stop",
    )
    handler_timeout: Optional[float] = Field(
        default_factory=lambda: _optional_float("RUNTIME_HANDLER_TIMEOUT"),
        description="Timeout for a single handler invocation (seconds)",
    )
    max_concurrency: Optional[int] = Field(
        default_factory=lambda: _optional_int("RUNTIME_MAX_CONCURRENCY"),
        description="Maximum number of invocations running at once",
    )


class Config(BaseModel):
    """Main configuration class for the message runtime.

    **Direct Python**
    ```python
    config = Config(
        dispatch=DispatchConfig(mode=DispatchMode.SEQUENTIAL, handler_timeout=10.0),
        log_level="DEBUG",
    )
    runtime = MessageRuntime(transport, config=config)
    ```

    **Environment Variables**
    ```bash
    export TG_ID=12345
    export TG_HASH=abcdef
    export RUNTIME_HANDLER_TIMEOUT=30
    python bot.py
    ```
    """

    transport: TransportConfig = Field(default_factory=TransportConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    debug: bool = Field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


# Global config instance
# This is optional - the recommended pattern is to pass Config directly
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Raises:
        RuntimeError: If no global configuration has been set
    """
    if _config is None:
        raise RuntimeError(
            "No global configuration set. Either:\n"
            "1. Pass config directly: MessageRuntime(transport, config=Config(...))\n"
            "2. Set global config: set_config(Config(...))"
        )
    return _config


def set_config(config: Optional[Config]) -> None:
    """Set (or clear, with None) the global configuration instance."""
    global _config
    _config = config
