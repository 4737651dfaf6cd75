"""Reading configuration documents into a definition registry.

The reader maps locations to resources, parses each resource with lxml
(external DTDs are supplied by the entity resolver, never fetched by
the parser itself), and hands the document to a `DocumentRegistrar`.

Imports found in a document call back into the same reader, sharing
its problem reporter and event listener. Problems collected during the
outermost load are raised together as one `DefinitionParsingError`
once that load completes; the reporter is emptied when the next outermost
load starts.
"""

import logging
from typing import TYPE_CHECKING

from lxml import etree

from xmldefs.builtins.handlers import p, util
from xmldefs.core.context import ProblemReporter, ReaderContext, ReaderEventListener
from xmldefs.core.entities import LxmlEntityResolver, ResourceEntityResolver
from xmldefs.core.loader import NamespaceHandlerResolver
from xmldefs.core.registrar import DocumentRegistrar
from xmldefs.environment import Environment
from xmldefs.errors import DefinitionStoreError
from xmldefs.resources import Resource, ResourceLoader

if TYPE_CHECKING:
    from lxml.etree import _ElementTree

    from xmldefs.core.entities import KnownEntityResolver
    from xmldefs.registry import DefinitionRegistry

logger = logging.getLogger(__name__)


class XmlDefinitionReader:
    """Reader of XML configuration documents.

    A reader tracks the resources currently being loaded to detect
    cyclic imports, so one instance must not serve concurrent loads.

    Attributes:
        registry: Registry to populate.
        environment: Profile and placeholder source.
        resource_loader: Strategy mapping locations to resources.
        reporter: Problem sink shared by every document of a load.
        listener: Registration event sink.
        handlers: Resolver of custom namespace handlers.
        entity_resolver: Resolver of external DTD and schema entities.
    """

    def __init__(self, registry: 'DefinitionRegistry', *,
                 environment: Environment | None = None,
                 resource_loader: ResourceLoader | None = None,
                 reporter: ProblemReporter | None = None,
                 listener: ReaderEventListener | None = None,
                 handlers: NamespaceHandlerResolver | None = None,
                 entity_resolver: 'ResourceEntityResolver | KnownEntityResolver | None' = None,
                 strict: bool = False) -> None:
        """Initialize the reader.

        Args:
            registry: Registry to populate.
            environment: Profile and placeholder source.
            resource_loader: Strategy mapping locations to resources.
            reporter: Problem sink, collecting by default.
            listener: Registration event sink, no-op by default.
            handlers: Namespace handlers, builtins and entry points by default.
            entity_resolver: Entity resolver, based on the resource loader
                by default.
            strict: Whether default collaborators raise on handler loading
                and remote schema fetch failures.

        Raises:
            NamespaceHandlerError: If a handler fails to load on strict mode.
        """
        self.registry = registry
        self.environment = environment if environment is not None else Environment()
        self.resource_loader = resource_loader if resource_loader is not None else ResourceLoader()
        self.reporter = reporter if reporter is not None else ProblemReporter()
        self.listener = listener if listener is not None else ReaderEventListener()

        if handlers is None:
            handlers = NamespaceHandlerResolver(p, util, strict=strict)
        self.handlers = handlers

        if entity_resolver is None:
            entity_resolver = ResourceEntityResolver(self.resource_loader, strict=strict)
        self.entity_resolver = entity_resolver

        self._loading: list[Resource] = []

    def load_definitions(self, location: str | Resource,
                         actual_resources: list[Resource] | None = None) -> int:
        """Load definitions from a location.

        Args:
            location: Location string, possibly a `glob:` pattern, or a
                resource.
            actual_resources: Collects the resources that were read.

        Returns:
            Number of definitions registered.

        Raises:
            DefinitionStoreError: If a resource cannot be read or parsed.
            DefinitionParsingError: If problems were reported during the
                outermost load.
            PlaceholderResolutionError: For unresolvable placeholders.
        """
        outermost = not self._loading
        if outermost:
            self.reporter.reset()

        if isinstance(location, Resource):
            resources = [location]
        else:
            resources = self.resource_loader.get_resources(location)

        count = 0
        for resource in resources:
            count += self.load_resource(resource)
            if actual_resources is not None:
                actual_resources.append(resource)

        if outermost:
            self.reporter.raise_for_errors()

        return count

    def load_resource(self, resource: Resource) -> int:
        """Load definitions from one resource.

        Raises:
            DefinitionStoreError: If the resource is already being loaded,
                or cannot be read or parsed.
        """
        if resource in self._loading:
            raise DefinitionStoreError(f'Detected cyclic loading of resource [{resource.description}]')

        self._loading.append(resource)
        try:
            document = self.parse_document(resource)

            before = len(self.registry)
            self.register_document(document, resource)
            count = len(self.registry) - before

        finally:
            self._loading.pop()

        logger.info('Loaded %d definitions from %s', count, resource)

        return count

    def create_parser(self) -> etree.XMLParser:
        """Create a parser consulting the entity resolver for external DTDs."""
        parser = etree.XMLParser(
            load_dtd=True,
            no_network=True,
            resolve_entities=False,
        )
        parser.resolvers.add(LxmlEntityResolver(self.entity_resolver))

        return parser

    def parse_document(self, resource: Resource) -> '_ElementTree':
        """Parse a resource into an element tree.

        Raises:
            DefinitionStoreError: If the resource cannot be read or parsed.
        """
        try:
            base_url = resource.url
        except OSError:
            base_url = resource.description

        try:
            with resource.open_stream() as stream:
                return etree.parse(stream, self.create_parser(), base_url=base_url)

        except OSError as base:
            raise DefinitionStoreError(
                f'Failed to read XML document from {resource.description}',
            ) from base

        except etree.XMLSyntaxError as base:
            raise DefinitionStoreError(
                f'Line {base.lineno} in XML document from {resource.description} is invalid',
            ) from base

    def create_context(self, resource: Resource) -> ReaderContext:
        """Bundle the collaborators for reading one resource."""
        return ReaderContext(
            registry=self.registry,
            resource=resource,
            environment=self.environment,
            reporter=self.reporter,
            listener=self.listener,
            reader=self,
            handlers=self.handlers,
        )

    def create_registrar(self, context: ReaderContext) -> DocumentRegistrar:
        """Create the registrar of one document."""
        return DocumentRegistrar(context)

    def register_document(self, document: '_ElementTree', resource: Resource) -> None:
        """Register the definitions of a parsed document."""
        self.create_registrar(self.create_context(resource)).register_definitions(document)
