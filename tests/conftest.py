"""Test fixtures and configuration for message runtime tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from message_runtime.client import MessageRuntime
from message_runtime.config import Config, set_config
from message_runtime.models import User
from message_runtime.state import SharedState
from message_runtime.transport import InMemorySession, InMemoryTransport

from helpers import CallRecorder, sequential_config

RUNTIME_ENV_VARS = [
    "TG_ID",
    "TG_HASH",
    "TG_BOT_TOKEN",
    "TG_SESSION_FILE",
    "RUNTIME_DISPATCH_MODE",
    "RUNTIME_SHUTDOWN_POLICY",
    "RUNTIME_DRAIN_TIMEOUT",
    "RUNTIME_HANDLER_TIMEOUT",
    "RUNTIME_MAX_CONCURRENCY",
    "DEBUG",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep configuration from the host environment out of the tests."""
    for name in RUNTIME_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    set_config(None)


# Configuration Fixtures
@pytest.fixture
def test_config() -> Config:
    """Default test configuration (concurrent dispatch, drain on stop)."""
    return Config()


@pytest.fixture
def seq_config() -> Config:
    """Configuration dispatching handlers one after another."""
    return sequential_config()


# Transport Fixtures
@pytest.fixture
def session() -> InMemorySession:
    """In-memory session logged in as a test bot."""
    return InMemorySession(me=User(id=1, username="test_bot", is_bot=True, is_self=True))


@pytest.fixture
def transport(session: InMemorySession) -> InMemoryTransport:
    """In-memory transport on the test session."""
    return InMemoryTransport(session)


@pytest.fixture
def mock_transport() -> MagicMock:
    """Mock transport for unit tests."""
    transport = MagicMock()
    transport.session = MagicMock()
    transport.session.get_me = AsyncMock(return_value=User(id=1, is_self=True))
    transport.session.send_message = AsyncMock()
    transport.next_event = AsyncMock(return_value=None)
    transport.disconnect = AsyncMock()
    return transport


# Runtime Fixtures
@pytest.fixture
def runtime(transport: InMemoryTransport, test_config: Config) -> MessageRuntime:
    """Runtime on the in-memory transport."""
    return MessageRuntime(transport, config=test_config)


@pytest.fixture
def seq_runtime(transport: InMemoryTransport, seq_config: Config) -> MessageRuntime:
    """Runtime on the in-memory transport with sequential dispatch."""
    return MessageRuntime(transport, config=seq_config)


@pytest.fixture
def state() -> SharedState:
    """Empty shared state."""
    return SharedState()


@pytest.fixture
def recorder() -> CallRecorder:
    """Handler call recorder."""
    return CallRecorder()
