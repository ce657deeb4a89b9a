"""Assembly point for the server's long-lived components.

Everything is built from one immutable ServerConfig and wired here so that
no component constructs another:

    registry        ClientRegistry (disk)
    rate_limiter    AuthRateLimiter (failed-auth backoff)
    authenticator   ChallengeAuthenticator -> sessions.handle_auth_timeout
    sessions        SessionManager -> tracker.on_session_closed (teardown)
    backend         OllamaClient
    tracker         GenerationTracker
    watcher         RegistryWatcher (revocations made by the CLI)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..state import ServerConfig
from ..backend import OllamaClient
from ..registry import ClientRegistry, RegistryWatcher
from ..security import AuthRateLimiter, ChallengeAuthenticator
from ..generation import GenerationTracker
from .session import SessionManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Gateway:
    config: ServerConfig
    registry: ClientRegistry
    rate_limiter: AuthRateLimiter
    authenticator: ChallengeAuthenticator
    sessions: SessionManager
    backend: OllamaClient
    tracker: GenerationTracker
    watcher: RegistryWatcher

    @classmethod
    def build(
        cls,
        config: ServerConfig,
        *,
        backend: OllamaClient | None = None,
        registry: ClientRegistry | None = None,
    ) -> "Gateway":
        registry = registry or ClientRegistry.from_config(config)
        rate_limiter = AuthRateLimiter(
            max_attempts=config.max_auth_attempts,
            window_s=config.auth_window_s,
            max_backoff_s=config.max_backoff_s,
        )
        authenticator = ChallengeAuthenticator(
            registry,
            timeout_s=config.auth_timeout_s,
            rate_limiter=rate_limiter,
        )
        sessions = SessionManager(registry, ping_interval_s=config.ping_interval_s)
        backend = backend or OllamaClient.from_config(config)
        tracker = GenerationTracker(sessions, backend, default_model=config.default_model)

        authenticator.set_timeout_callback(sessions.handle_auth_timeout)
        sessions.add_teardown_hook(tracker.on_session_closed)

        return cls(
            config=config,
            registry=registry,
            rate_limiter=rate_limiter,
            authenticator=authenticator,
            sessions=sessions,
            backend=backend,
            tracker=tracker,
            watcher=RegistryWatcher(registry, config.registry_poll_interval_s),
        )

    async def start(self) -> None:
        """Load the registry and start background work.

        Raises:
            RegistryUnrecoverableError: The registry cannot be loaded; the
                process must not serve traffic.
        """
        self.registry.load()
        if self.registry.recovered_from is not None:
            logger.warning("serving from registry recovered out of %s", self.registry.recovered_from.name)
        self.sessions.start()
        self.watcher.start()
        if not await self.backend.ping():
            logger.warning("Ollama backend at %s is not reachable yet", self.config.ollama_url)

    async def shutdown(self) -> None:
        """Cancel generations, close sessions, then release the backend."""
        await self.tracker.shutdown()
        await self.sessions.shutdown()
        await self.watcher.stop()
        await self.backend.aclose()


__all__ = ["Gateway"]
