"""Namespace handler discovery and registration.

This module defines the resolver mapping namespace URIs to handlers.
Handlers come from the builtins, from explicit registration, and from
third-party packages exposing a `NamespaceHandler` under the
`xmldefs_namespaces` entry point group.

Handlers are loaded defensively: individual failures do not interrupt
loading unless strict mode is enabled.
"""

from typing import TYPE_CHECKING
from warnings import warn

from pydantic import ValidationError

from xmldefs.errors import NamespaceHandlerError, NamespaceHandlerWarning
from xmldefs.extensions import NamespaceHandler

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint

ENTRYPOINT_GROUP = 'xmldefs_namespaces'


class NamespaceHandlerResolver:
    """Registry of namespace handlers keyed by namespace URI.

    Attributes:
        strict_mode: If True, any handler loading issue raises an error.
            If False, issues are emitted as warnings and loading continues.
    """

    def __init__(self, *handlers: NamespaceHandler, strict: bool = False,
                 load_entrypoints: bool = True) -> None:
        """Initialize the resolver.

        Args:
            *handlers: Handlers to register up front.
            strict: Whether loading issues raise instead of warning.
            load_entrypoints: Whether to discover handlers from entry points.

        Raises:
            NamespaceHandlerError: If any loading issue occurs on strict mode.
        """
        self.strict_mode = strict
        self.handlers: dict[str, NamespaceHandler] = {}

        for handler in handlers:
            self.add_handler(handler)

        if load_entrypoints:
            self.load_handlers()

    def resolve(self, namespace: str | None) -> NamespaceHandler | None:
        """Find the handler of a namespace.

        Args:
            namespace: Namespace URI.

        Returns:
            The registered handler, or `None`.
        """
        if namespace is None:
            return None

        return self.handlers.get(namespace)

    def add_handler(self, handler: NamespaceHandler,
                    entrypoint: 'EntryPoint | None' = None) -> None:
        """Register a handler for its namespace.

        Args:
            handler: Handler to register.
            entrypoint: Entry point the handler was loaded from, if any.

        Raises:
            NamespaceHandlerError: If the handler shadows another on strict mode.
        """
        module = entrypoint.value if entrypoint else handler.__module__

        if handler.namespace in self.handlers and (error := self.emit_handler_issue(
            f'Handler {handler.name!r} from {module!r} is shadowing an existing '
            f'handler for namespace {handler.namespace!r}',
            entrypoint,
        )):
            raise error

        self.handlers[handler.namespace] = handler

    def emit_handler_issue(self, message: str,
                           entrypoint: 'EntryPoint | None' = None) -> Exception | None:
        """Emit a handler warning or return the exception.

        Args:
            message: Warning message to emit.
            entrypoint: Entry point associated with the issue, if any.

        Returns:
            NamespaceHandlerError on strict mode, otherwise `None`
                with producing a NamespaceHandlerWarning.
        """
        if self.strict_mode:
            return NamespaceHandlerError(message, entrypoint=entrypoint)

        warn(message, category=NamespaceHandlerWarning, stacklevel=2)

        return None

    def _load_handler(self, entrypoint: 'EntryPoint') -> None:
        """Load and register a single handler entry point.

        Args:
            entrypoint: Entry point describing the handler to load.

        Raises:
            NamespaceHandlerError: If any loading issues occur on strict mode.
        """
        try:
            handler = entrypoint.load()

        except ValidationError as base:
            if error := self.emit_handler_issue(
                f'Failed to validate entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        except Exception as base:
            if error := self.emit_handler_issue(
                f'Failed to load entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        if not isinstance(handler, NamespaceHandler):
            if error := self.emit_handler_issue(
                f'Loaded from entrypoint {entrypoint.name!r} object is not a namespace handler',
                entrypoint,
            ):
                raise error
            return None

        self.add_handler(handler, entrypoint)

    def load_handlers(self) -> None:
        """Discover handlers from the `xmldefs_namespaces` entry point group.

        Raises:
            NamespaceHandlerError: If any loading issues occur on strict mode.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        for entrypoint in entry_points().select(group=ENTRYPOINT_GROUP):
            self._load_handler(entrypoint)
