"""
HTTP client with transparent retries, backoff, cancellation and body replay.

Wraps httpx clients and transports; every request goes through a retry
executor that decides per response or transport error whether to try again.
"""
from .types import (
    AttemptOutcome,
    AsyncSender,
    SyncSender,
    RetryCondition,
    RetryHook,
    BodyFactory,
    TRANSPORT_ERRORS,
    REPLAY_BODY_EXTENSION,
    CANCEL_CONTEXT_EXTENSION,
)
from .errors import (
    RetryClientError,
    BodyBufferError,
    BodyReplayError,
    CancellationError,
    ContextCancelledError,
    DeadlineExceededError,
    MaxRetriesExceededError,
)
from .config import (
    ClientConfig,
    DEFAULT_CLIENT_CONFIG,
    DEFAULT_MAX_RETRIES,
    DEFAULT_INITIAL_BACKOFF_SECONDS,
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_MAX_BACKOFF_SECONDS,
    default_retry_condition,
    next_backoff,
    backoff_schedule,
    merge_config,
    validate_config,
)
from .context import CancelContext
from .body import BodyReplayBuffer
from .executor import RetryExecutor
from .client import RetryClient, AsyncRetryClient
from .transport import RetryTransport, SyncRetryTransport
from .idle import close_idle_connections, aclose_idle_connections
from .factory import (
    RETRY_PRESETS,
    resolve_preset,
    create_retry_client,
    create_async_retry_client,
    create_retry_transport,
    create_async_retry_transport,
)


__all__ = [
    # Types
    "AttemptOutcome",
    "AsyncSender",
    "SyncSender",
    "RetryCondition",
    "RetryHook",
    "BodyFactory",
    "TRANSPORT_ERRORS",
    "REPLAY_BODY_EXTENSION",
    "CANCEL_CONTEXT_EXTENSION",
    # Errors
    "RetryClientError",
    "BodyBufferError",
    "BodyReplayError",
    "CancellationError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "MaxRetriesExceededError",
    # Config
    "ClientConfig",
    "DEFAULT_CLIENT_CONFIG",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_INITIAL_BACKOFF_SECONDS",
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_MAX_BACKOFF_SECONDS",
    "default_retry_condition",
    "next_backoff",
    "backoff_schedule",
    "merge_config",
    "validate_config",
    # Cancellation
    "CancelContext",
    # Engine
    "BodyReplayBuffer",
    "RetryExecutor",
    # Clients
    "RetryClient",
    "AsyncRetryClient",
    # Transport wrappers
    "RetryTransport",
    "SyncRetryTransport",
    # Connection pools
    "close_idle_connections",
    "aclose_idle_connections",
    # Factory functions
    "RETRY_PRESETS",
    "resolve_preset",
    "create_retry_client",
    "create_async_retry_client",
    "create_retry_transport",
    "create_async_retry_transport",
]

__version__ = "1.0.0"
