"""Reader context: collaborators shared while reading one document.

This module bundles everything a registrar needs besides the element
tree itself: the registry to populate, the resource being read, the
environment, the problem reporter, the event listener, and a way back
into the reader for imports.

Problems are reported, not raised. The collecting reporter keeps them
so that a single failure report can be produced at the end of the
overall load; the fail-fast reporter raises on the first error.
"""

import logging
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from xmldefs.definitions import DefinitionHolder, ScopeContext  # noqa: TC001
from xmldefs.errors import DefinitionParsingError, ErrorContext, ErrorFormatter
from xmldefs.models import SchemaModel
from xmldefs.resources import Resource  # noqa: TC001

if TYPE_CHECKING:
    from collections.abc import Iterable

if TYPE_CHECKING:
    from lxml.etree import _Element

    from xmldefs.core.loader import NamespaceHandlerResolver
    from xmldefs.core.reader import XmlDefinitionReader
    from xmldefs.environment import Environment
    from xmldefs.registry import DefinitionRegistry

logger = logging.getLogger(__name__)


class Problem(SchemaModel):
    """Single problem found while reading a document."""

    message: str
    severity: Literal['error', 'warning'] = 'error'
    resource: str | None = None
    element: Any = None
    cause: Exception | None = None

    def describe(self) -> str:
        """Render the problem with location, snippet and cause."""
        context = ErrorContext(
            filename=self.resource,
            error=self.cause,
        )
        if self.element is not None:
            context['element'] = self.element
            context['line_num'] = self.element.sourceline
            if not self.resource:
                context['filename'] = self.element.base

        return ErrorFormatter.format(self.message, context)


class ProblemReporter:
    """Sink for problems, keeping everything it receives."""

    def __init__(self) -> None:
        self.errors: list[Problem] = []
        self.warnings: list[Problem] = []

    @property
    def has_errors(self) -> bool:
        """Whether any error was reported."""
        return bool(self.errors)

    def reset(self) -> None:
        """Forget every problem reported so far."""
        self.errors.clear()
        self.warnings.clear()

    def error(self, problem: Problem) -> None:
        """Record an error."""
        logger.debug('Problem reported: %s', problem.message)
        self.errors.append(problem)

    def warning(self, problem: Problem) -> None:
        """Record a warning."""
        logger.warning('%s', problem.describe())
        self.warnings.append(problem)

    def raise_for_errors(self) -> None:
        """Raise one consolidated error if any error was reported.

        Raises:
            DefinitionParsingError: Listing every reported error.
        """
        if self.errors:
            raise DefinitionParsingError.from_problems(self.errors)


class FailFastProblemReporter(ProblemReporter):
    """Reporter that aborts reading on the first error."""

    def error(self, problem: Problem) -> None:
        """Record an error and raise it immediately.

        Raises:
            DefinitionParsingError: Always.
        """
        super().error(problem)
        raise DefinitionParsingError.from_problems((problem,))


class ImportRecord(SchemaModel):
    """Outcome of one processed import element."""

    location: str
    resources: tuple[Resource, ...] = ()
    element: Any = None


class AliasRecord(SchemaModel):
    """Alias registered from an alias element."""

    name: str
    alias: str
    element: Any = None


class ComponentRecord(SchemaModel):
    """Definition registered from a definition element."""

    holder: DefinitionHolder
    element: Any = None

    @property
    def name(self) -> str:
        """Primary name of the registered definition."""
        return self.holder.name


class ReaderEventListener:
    """Receiver of registration events.

    All callbacks are no-ops; subclasses override what they need.
    """

    def import_processed(self, record: ImportRecord) -> None:
        """Called after an import element was resolved."""

    def alias_registered(self, record: AliasRecord) -> None:
        """Called after an alias was registered."""

    def component_registered(self, record: ComponentRecord) -> None:
        """Called after a definition was registered."""


class ReaderContext:
    """Collaborators available while reading a single document.

    Attributes:
        registry: Registry to populate.
        resource: Resource being read, base of relative imports.
        environment: Profile and placeholder source.
        reporter: Problem sink.
        listener: Registration event sink.
        reader: Reader used to load imported locations.
        handlers: Resolver of custom namespace handlers.
    """

    def __init__(self, *, registry: 'DefinitionRegistry',
                 resource: Resource,
                 environment: 'Environment',
                 reporter: ProblemReporter,
                 listener: ReaderEventListener,
                 reader: 'XmlDefinitionReader',
                 handlers: 'NamespaceHandlerResolver') -> None:
        self.registry = registry
        self.resource = resource
        self.environment = environment
        self.reporter = reporter
        self.listener = listener
        self.reader = reader
        self.handlers = handlers

    def resolve_placeholders(self, text: str) -> str:
        """Resolve `${...}` placeholders through the environment.

        Raises:
            PlaceholderResolutionError: For unresolvable placeholders.
        """
        return self.environment.resolve_placeholders(text)

    def accepts_profiles(self, profiles: 'Iterable[str]') -> bool:
        """Check the environment accepts at least one profile."""
        return self.environment.accepts_profiles(profiles)

    def load_definitions_from(self, location: str | Resource,
                              actual_resources: list[Resource] | None = None) -> int:
        """Load definitions from another location into the same registry.

        Args:
            location: Absolute location string or resource.
            actual_resources: Collects the resources that were read.

        Returns:
            Number of definitions registered.

        Raises:
            DefinitionStoreError: If a location cannot be read or parsed.
        """
        return self.reader.load_definitions(location, actual_resources)

    def error(self, message: str, element: '_Element | None' = None,
              cause: Exception | None = None) -> None:
        """Report an error attached to an element."""
        self.reporter.error(Problem(
            message=message,
            resource=self.resource.description,
            element=element,
            cause=cause,
        ))

    def warning(self, message: str, element: '_Element | None' = None,
                cause: Exception | None = None) -> None:
        """Report a warning attached to an element."""
        self.reporter.warning(Problem(
            message=message,
            severity='warning',
            resource=self.resource.description,
            element=element,
            cause=cause,
        ))

    def fire_import_processed(self, location: str, resources: 'Iterable[Resource]',
                              element: '_Element | None' = None) -> None:
        self.listener.import_processed(ImportRecord(
            location=location,
            resources=tuple(resources),
            element=element,
        ))

    def fire_alias_registered(self, name: str, alias: str,
                              element: '_Element | None' = None) -> None:
        self.listener.alias_registered(AliasRecord(name=name, alias=alias, element=element))

    def fire_component_registered(self, holder: DefinitionHolder,
                                  element: '_Element | None' = None) -> None:
        self.listener.component_registered(ComponentRecord(holder=holder, element=element))


class ParserContext(SchemaModel):
    """Context handed to namespace handlers.

    Gives handlers access to the reader context, the definition parser,
    the active fragment scope, and, while decorating, the holder of the
    enclosing definition.
    """

    reader_context: Any = Field(
        title='Reader context',
        description='Collaborators of the document being read.',
    )

    delegate: Any = Field(
        title='Definition parser',
        description='Parser for default-vocabulary definition elements.',
    )

    scope: ScopeContext = Field(
        title='Scope',
        description='Defaults of the enclosing fragment.',
    )

    containing: DefinitionHolder | None = Field(
        default=None,
        title='Containing definition',
        description='Definition being decorated, if any.',
    )

    def error(self, message: str, element: '_Element | None' = None,
              cause: Exception | None = None) -> None:
        """Report an error through the reader context."""
        self.reader_context.error(message, element, cause)
