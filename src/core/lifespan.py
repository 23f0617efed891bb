"""
Lifespan manager for FastAPI
Lets each runtime service (database pool, lock registry, rate limiter)
register its own startup/shutdown with decorator syntax.
"""

from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Callable

from fastapi import FastAPI


class LifespanManager:
    """Manages multiple lifespan contexts for FastAPI applications."""

    def __init__(self):
        self._lifespans: list[Callable] = []

    def add(self, lifespan: Callable) -> Callable:
        """
        Decorator to register a lifespan context.

        Usage:
            @manager.add
            @asynccontextmanager
            async def locks_lifespan():
                # startup
                yield {"pair_locks": PairLockRegistry()}
                # shutdown
        """
        if lifespan not in self._lifespans:
            self._lifespans.append(lifespan)
        return lifespan

    @property
    def registered(self) -> list[str]:
        return [getattr(f, "__name__", repr(f)) for f in self._lifespans]

    @asynccontextmanager
    async def __call__(self, app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        """
        Execute all registered lifespans and merge their states.
        Later lifespans see nothing of earlier ones; state keys must be unique.
        """
        async with AsyncExitStack() as stack:
            combined_state: dict[str, Any] = {}

            for lifespan_func in self._lifespans:
                try:
                    context = lifespan_func(app)
                except TypeError:
                    context = lifespan_func()

                state = await stack.enter_async_context(context)
                if state:
                    duplicated = combined_state.keys() & state.keys()
                    if duplicated:
                        raise RuntimeError(
                            f"Lifespan state keys registered twice: {sorted(duplicated)}"
                        )
                    combined_state.update(state)

            yield combined_state


manager = LifespanManager()
