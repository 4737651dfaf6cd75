"""Document traversal and registry population.

The registrar walks the element tree of one document and turns it into
registry mutations. Nested `config` fragments recurse with a child scope
passed by value, so leaving a fragment never needs to restore shared
state. Fragments whose `profile` attribute is rejected by the
environment are skipped entirely.

Every child element of a default-vocabulary fragment is dispatched to
one of four handlers (nested fragment, import, alias, definition);
elements of any other namespace go to their namespace handler.

Attribute-level and resource-level problems are reported through the
reader context and traversal continues with the next sibling. Only
placeholder resolution failures and unexpected collaborator errors
abort the pass.
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from xmldefs.core.delegate import (
    DefinitionParser,
    child_elements,
    is_default_namespace,
    localname_of,
)
from xmldefs.errors import DefinitionStoreError
from xmldefs.names import (
    ALIAS_ATTRIBUTE,
    ALIAS_ELEMENT,
    CONFIG_ELEMENT,
    IMPORT_ELEMENT,
    ITEM_ELEMENT,
    NAME_ATTRIBUTE,
    PROFILE_ATTRIBUTE,
    RESOURCE_ATTRIBUTE,
    tokenize,
)
from xmldefs.resources import apply_relative_path, is_absolute_location

if TYPE_CHECKING:
    from lxml.etree import _Element, _ElementTree

    from xmldefs.core.context import ReaderContext
    from xmldefs.definitions import DefinitionHolder, ScopeContext
    from xmldefs.resources import Resource

logger = logging.getLogger(__name__)

#: Extension hook called with a fragment root and its scope.
type FragmentHook = Callable[['_Element', 'ScopeContext'], None]


def noop(root: '_Element', scope: 'ScopeContext') -> None:
    """Default fragment hook doing nothing."""


class DocumentRegistrar:
    """Populates a registry from one parsed document.

    Attributes:
        context: Collaborators of the document being read.
        delegate: Parser for definition elements and custom namespaces.
        pre_process: Hook called before a fragment's children are visited.
        post_process: Hook called after a fragment's children were visited.
    """

    def __init__(self, context: 'ReaderContext', *,
                 delegate: DefinitionParser | None = None,
                 pre_process: FragmentHook | None = None,
                 post_process: FragmentHook | None = None) -> None:
        self.context = context
        self.delegate = delegate if delegate is not None else DefinitionParser(context)
        self.pre_process = pre_process or noop
        self.post_process = post_process or noop

    def register_definitions(self, document: '_Element | _ElementTree') -> None:
        """Register everything declared by a document.

        Args:
            document: Parsed document or its root element.

        Raises:
            PlaceholderResolutionError: If an import location references an
                undefined placeholder without default.
        """
        root = document.getroot() if hasattr(document, 'getroot') else document
        self.process_fragment(root)

    def process_fragment(self, root: '_Element', parent: 'ScopeContext | None' = None) -> None:
        """Process one fragment: scope, profile gate, hooks and children.

        Args:
            root: Fragment root element.
            parent: Scope of the enclosing fragment, `None` at the document root.
        """
        scope = self.delegate.create_scope(root, parent)

        if is_default_namespace(root):
            profile_value = root.get(PROFILE_ATTRIBUTE)
            if profile_value and profile_value.strip():
                profiles = tokenize(profile_value)
                if not self.context.accepts_profiles(profiles):
                    logger.debug(
                        'Skipped fragment due to specified profiles [%s] not matching: %s',
                        profile_value,
                        self.context.resource,
                    )
                    return

        self.pre_process(root, scope)
        self.parse_fragment(root, scope)
        self.post_process(root, scope)

    def parse_fragment(self, root: '_Element', scope: 'ScopeContext') -> None:
        """Dispatch the children of a fragment root.

        A root outside the default vocabulary is handed as a whole to its
        namespace handler.
        """
        if not is_default_namespace(root):
            self.parse_custom_element(root, scope)
            return

        for element in child_elements(root):
            if is_default_namespace(element):
                self.parse_default_element(element, scope)
            else:
                self.parse_custom_element(element, scope)

    def parse_default_element(self, element: '_Element', scope: 'ScopeContext') -> None:
        """Dispatch a default-vocabulary element on its local name."""
        localname = localname_of(element)

        if localname == IMPORT_ELEMENT:
            self.resolve_import(element)
        elif localname == ALIAS_ELEMENT:
            self.register_alias(element)
        elif localname == ITEM_ELEMENT:
            self.register_definition(element, scope)
        elif localname == CONFIG_ELEMENT:
            self.process_fragment(element, scope)

    def parse_custom_element(self, element: '_Element', scope: 'ScopeContext') -> None:
        """Hand an element to its namespace handler and register the result."""
        holder = self.delegate.parse_custom_element(element, scope)
        if holder is not None:
            self.register_holder(holder, element)

    def resolve_import(self, element: '_Element') -> None:
        """Load the definitions of another location into the registry.

        Absolute locations are loaded as they are. Relative locations are
        resolved against the current resource; if no such resource exists,
        the location is applied to the current resource's URL and loaded
        as an absolute location instead.

        Args:
            element: Import element.

        Raises:
            PlaceholderResolutionError: For unresolvable placeholders.
        """
        location = element.get(RESOURCE_ATTRIBUTE) or ''
        if not location.strip():
            self.context.error('Resource location must not be empty', element)
            return

        location = self.context.resolve_placeholders(location)
        actual_resources: list[Resource] = []

        if is_absolute_location(location):
            try:
                count = self.context.load_definitions_from(location, actual_resources)
            except DefinitionStoreError as base:
                self.context.error(
                    f'Failed to import definitions from URL location [{location}]',
                    element,
                    base,
                )
                return

            logger.debug('Imported %d definitions from URL location [%s]', count, location)

        else:
            try:
                relative = self.context.resource.create_relative(location)
                base_location = None if relative.exists() else self.context.resource.url
            except OSError as base:
                self.context.error('Failed to resolve current resource location', element, base)
                return

            try:
                if base_location is None:
                    count = self.context.load_definitions_from(relative)
                    actual_resources.append(relative)
                else:
                    count = self.context.load_definitions_from(
                        apply_relative_path(base_location, location),
                        actual_resources,
                    )
            except DefinitionStoreError as base:
                self.context.error(
                    f'Failed to import definitions from relative location [{location}]',
                    element,
                    base,
                )
                return

            logger.debug('Imported %d definitions from relative location [%s]', count, location)

        self.context.fire_import_processed(location, dict.fromkeys(actual_resources), element)

    def register_alias(self, element: '_Element') -> None:
        """Register the alias declared by an alias element.

        Both attributes are validated before giving up, so a pass reports
        a blank name and a blank alias together.
        """
        name = element.get(NAME_ATTRIBUTE) or ''
        alias = element.get(ALIAS_ATTRIBUTE) or ''

        valid = True
        if not name.strip():
            self.context.error('Name must not be empty', element)
            valid = False
        if not alias.strip():
            self.context.error('Alias must not be empty', element)
            valid = False

        if not valid:
            return

        try:
            self.context.registry.register_alias(name, alias)
        except Exception as base:  # noqa: BLE001
            self.context.error(
                f"Failed to register alias '{alias}' for definition with name '{name}'",
                element,
                base,
            )
            return

        self.context.fire_alias_registered(name, alias, element)

    def register_definition(self, element: '_Element', scope: 'ScopeContext') -> None:
        """Parse, decorate and register a definition element."""
        holder = self.delegate.parse_definition_element(element, scope)
        if holder is None:
            return

        holder = self.delegate.decorate_if_required(element, holder, scope)
        self.register_holder(holder, element)

    def register_holder(self, holder: 'DefinitionHolder', element: '_Element') -> None:
        """Hand a holder to the registry and announce it."""
        try:
            self.context.registry.register_definition(holder)
        except DefinitionStoreError as base:
            self.context.error(
                f"Failed to register definition with name '{holder.name}'",
                element,
                base,
            )
            return

        self.context.fire_component_registered(holder, element)
