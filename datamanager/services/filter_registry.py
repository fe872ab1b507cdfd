"""
Filter Handler Registry

Explicit table of (entity model, filter class) -> handler. A handler turns
an active filter into a SQL predicate for that entity:

    @filter_registry.handles(Translation, CultureNameFilter)
    async def culture_name(f: CultureNameFilter) -> ColumnElement[bool]:
        return Translation.culture_name == f.value

The per-entity lookup map is built on first use and cached until the
next registration.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.sql.elements import ColumnElement

from datamanager.schemas.filters import QueryFilter

logger = logging.getLogger(__name__)

FilterHandler = Callable[[Any], Awaitable[ColumnElement[bool]]]


class FilterHandlerRegistry:
    def __init__(self) -> None:
        self._handlers: dict[tuple[type, type[QueryFilter]], FilterHandler] = {}
        self._cache: dict[type, dict[type[QueryFilter], FilterHandler]] = {}

    # ── Registration ──────────────────────────────────────────────────────────

    def register(self, entity: type, filter_type: type[QueryFilter], handler: FilterHandler) -> None:
        key = (entity, filter_type)
        if key in self._handlers:
            logger.warning(f"Replacing filter handler for {entity.__name__}/{filter_type.__name__}")
        self._handlers[key] = handler
        self._cache.clear()

    def handles(self, entity: type, filter_type: type[QueryFilter]) -> Callable[[FilterHandler], FilterHandler]:
        """Decorator form of register()."""

        def decorator(handler: FilterHandler) -> FilterHandler:
            self.register(entity, filter_type, handler)
            return handler

        return decorator

    # ── Lookup ────────────────────────────────────────────────────────────────

    def handlers_for(self, entity: type) -> dict[type[QueryFilter], FilterHandler]:
        cached = self._cache.get(entity)
        if cached is None:
            cached = {
                filter_type: handler
                for (handler_entity, filter_type), handler in self._handlers.items()
                if handler_entity is entity
            }
            self._cache[entity] = cached
        return cached

    def get(self, entity: type, filter_type: type[QueryFilter]) -> FilterHandler | None:
        return self.handlers_for(entity).get(filter_type)


# ── Global singleton ──────────────────────────────────────────────────────────

filter_registry = FilterHandlerRegistry()
