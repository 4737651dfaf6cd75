"""Definition element parsing and custom namespace routing.

The definition parser builds fragment scopes from `default-*`
attributes, turns `item` elements into definition holders, and routes
everything outside the default vocabulary to the namespace handlers.
Problems are reported through the reader context; a `None` result means
the element contributes nothing and processing continues.
"""

import logging
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, get_args

from lxml.etree import QName
from pydantic import ValidationError

from xmldefs.core.context import ParserContext
from xmldefs.definitions import (
    AutowireMode,
    Definition,
    DefinitionHolder,
    ScopeContext,
    ScopeDefaults,
    element_source,
)
from xmldefs.extensions import AttributeNode
from xmldefs.names import (
    AUTOWIRE_ATTRIBUTE,
    AUTOWIRE_CANDIDATE_ATTRIBUTE,
    DEFAULT_AUTOWIRE_ATTRIBUTE,
    DEFAULT_AUTOWIRE_CANDIDATES_ATTRIBUTE,
    DEFAULT_DESTROY_METHOD_ATTRIBUTE,
    DEFAULT_INIT_METHOD_ATTRIBUTE,
    DEFAULT_LAZY_INIT_ATTRIBUTE,
    DEFAULT_MERGE_ATTRIBUTE,
    DEFAULT_NAMESPACE,
    DEFAULT_VALUE,
    DEPENDS_ON_ATTRIBUTE,
    DESTROY_METHOD_ATTRIBUTE,
    ID_ATTRIBUTE,
    INIT_METHOD_ATTRIBUTE,
    KIND_ATTRIBUTE,
    LAZY_INIT_ATTRIBUTE,
    NAME_ATTRIBUTE,
    PARENT_ATTRIBUTE,
    PROPERTY_ELEMENT,
    VALUE_ATTRIBUTE,
    VALUE_ELEMENT,
    tokenize,
)

if TYPE_CHECKING:
    from lxml.etree import _Element

    from xmldefs.core.context import ReaderContext
    from xmldefs.definitions import PropertyValue

logger = logging.getLogger(__name__)

#: Namespaces under this prefix belong to the library itself.
RESERVED_NAMESPACE_PREFIX = 'https://xmldefs.dev/schema/'

GENERATED_NAME_SEPARATOR = '#'
GENERATED_NAME_FALLBACK = 'item'

AUTOWIRE_MODES = frozenset(get_args(AutowireMode.__value__))


def namespace_of(node: '_Element | str') -> str | None:
    """Namespace URI of an element or Clark-notation name."""
    tag = node if isinstance(node, str) else node.tag
    return QName(tag).namespace


def localname_of(node: '_Element') -> str:
    """Local name of an element."""
    return QName(node.tag).localname


def is_default_namespace(node: '_Element | str | None') -> bool:
    """Check whether an element, or a namespace URI, is in the default vocabulary."""
    namespace = node if node is None or isinstance(node, str) else namespace_of(node)

    return not namespace or namespace == DEFAULT_NAMESPACE


def child_elements(element: '_Element') -> 'list[_Element]':
    """Element children, skipping comments and processing instructions."""
    return [child for child in element if isinstance(child.tag, str)]


class DefinitionParser:
    """Stateless parser of definition elements for one document.

    Attributes:
        context: Reader context of the document being read.
    """

    def __init__(self, context: 'ReaderContext') -> None:
        self.context = context

    def create_scope(self, root: '_Element', parent: ScopeContext | None = None) -> ScopeContext:
        """Create the scope of a fragment.

        Each `default-*` attribute that is missing or set to `default`
        falls back to the parent scope, or to the builtin defaults at the
        document root.

        Args:
            root: Fragment root element.
            parent: Scope of the enclosing fragment, if any.

        Returns:
            The new scope chained to the parent.
        """
        inherited = parent.defaults if parent is not None else ScopeDefaults()

        autowire = self._attribute(root, DEFAULT_AUTOWIRE_ATTRIBUTE)
        if autowire is not None and autowire not in AUTOWIRE_MODES:
            self.context.error(f'Invalid default autowire mode {autowire!r}', root)
            autowire = None

        candidates = self._attribute(root, DEFAULT_AUTOWIRE_CANDIDATES_ATTRIBUTE)
        defaults = ScopeDefaults(
            lazy_init=self._flag(root, DEFAULT_LAZY_INIT_ATTRIBUTE, inherited.lazy_init),
            merge=self._flag(root, DEFAULT_MERGE_ATTRIBUTE, inherited.merge),
            autowire=autowire or inherited.autowire,
            autowire_candidates=(
                tokenize(candidates) if candidates is not None
                else inherited.autowire_candidates
            ),
            init_method=(
                self._attribute(root, DEFAULT_INIT_METHOD_ATTRIBUTE)
                or inherited.init_method
            ),
            destroy_method=(
                self._attribute(root, DEFAULT_DESTROY_METHOD_ATTRIBUTE)
                or inherited.destroy_method
            ),
        )

        if parent is None:
            return ScopeContext(defaults=defaults)

        return parent.child(defaults)

    def parse_definition_element(self, element: '_Element',
                                 scope: ScopeContext) -> DefinitionHolder | None:
        """Build a definition holder from an `item` element.

        The `id` attribute is the primary name; the `name` attribute lists
        aliases. Without an `id`, the first alias becomes the name, and
        without any name one is generated from the kind.

        Args:
            element: Definition element.
            scope: Scope of the enclosing fragment.

        Returns:
            The holder, or `None` if a problem was reported.
        """
        name = (element.get(ID_ATTRIBUTE) or '').strip()
        aliases = list(tokenize(element.get(NAME_ATTRIBUTE)))
        kind = self._attribute(element, KIND_ATTRIBUTE)

        if not name and aliases:
            name = aliases.pop(0)
            logger.debug('No id specified - using %r as name and %r as aliases', name, aliases)

        if not name:
            name = self.generate_name(kind)
            logger.debug('Neither id nor name specified - using generated name %r', name)

        autowire = self._attribute(element, AUTOWIRE_ATTRIBUTE) or scope.defaults.autowire
        if autowire not in AUTOWIRE_MODES:
            self.context.error(f'Invalid autowire mode {autowire!r} for definition {name!r}', element)
            return None

        properties = self.parse_properties(element)
        if properties is None:
            return None

        try:
            return DefinitionHolder(
                name=name,
                aliases=tuple(aliases),
                definition=Definition(
                    kind=kind,
                    parent=self._attribute(element, PARENT_ATTRIBUTE),
                    properties=properties,
                    lazy_init=self._flag(element, LAZY_INIT_ATTRIBUTE, scope.defaults.lazy_init),
                    merge=scope.defaults.merge,
                    autowire=autowire,
                    autowire_candidate=self._autowire_candidate(element, name, scope),
                    init_method=(
                        self._attribute(element, INIT_METHOD_ATTRIBUTE)
                        or scope.defaults.init_method
                    ),
                    destroy_method=(
                        self._attribute(element, DESTROY_METHOD_ATTRIBUTE)
                        or scope.defaults.destroy_method
                    ),
                    depends_on=tokenize(element.get(DEPENDS_ON_ATTRIBUTE)),
                    source=element_source(element),
                ),
            )

        except ValidationError as base:
            self.context.error(f'Invalid definition {name!r}', element, base)
            return None

    def parse_properties(self, element: '_Element') -> 'dict[str, PropertyValue] | None':
        """Collect `property` children of a definition element.

        Args:
            element: Definition element.

        Returns:
            Properties in document order, or `None` if a problem was reported.
        """
        properties: dict[str, PropertyValue] = {}
        valid = True

        for child in child_elements(element):
            if not is_default_namespace(child) or localname_of(child) != PROPERTY_ELEMENT:
                continue

            name = (child.get(NAME_ATTRIBUTE) or '').strip()
            if not name:
                self.context.error("Tag 'property' must have a 'name' attribute", child)
                valid = False
                continue

            if name in properties:
                self.context.error(f'Multiple property definitions for property {name!r}', child)
                valid = False
                continue

            values = [
                (value.text or '').strip()
                for value in child_elements(child)
                if is_default_namespace(value) and localname_of(value) == VALUE_ELEMENT
            ]
            value = child.get(VALUE_ATTRIBUTE)

            if value is not None and values:
                self.context.error(
                    f'Property {name!r} is only allowed to contain either '
                    "a 'value' attribute or 'value' sub-elements",
                    child,
                )
                valid = False
            elif value is not None:
                properties[name] = value
            elif values:
                properties[name] = values
            else:
                self.context.error(f'Property {name!r} must specify a value', child)
                valid = False

        return properties if valid else None

    def decorate_if_required(self, element: '_Element', holder: DefinitionHolder,
                             scope: ScopeContext) -> DefinitionHolder:
        """Pass a holder through the handlers of custom attributes and children.

        Args:
            element: Definition element.
            holder: Holder built from the element.
            scope: Scope of the enclosing fragment.

        Returns:
            The decorated holder, possibly the same instance.
        """
        for key, value in element.attrib.items():
            namespace = namespace_of(key)
            if is_default_namespace(namespace):
                continue

            node = AttributeNode(
                namespace=namespace,
                name=QName(key).localname,
                value=value,
                element=element,
            )
            holder = self.decorate_node(node, namespace, holder, scope)

        for child in child_elements(element):
            namespace = namespace_of(child)
            if is_default_namespace(namespace):
                continue

            holder = self.decorate_node(child, namespace, holder, scope)

        return holder

    def decorate_node(self, node: 'AttributeNode | _Element', namespace: str,
                      holder: DefinitionHolder, scope: ScopeContext) -> DefinitionHolder:
        """Decorate a holder with one custom attribute or element.

        Unknown namespaces are ignored, except for the reserved
        library namespaces which must have a handler.
        """
        handler = self.context.handlers.resolve(namespace)
        if handler is not None:
            return handler.decorate(node, holder, ParserContext(
                reader_context=self.context,
                delegate=self,
                scope=scope,
                containing=holder,
            ))

        if namespace.startswith(RESERVED_NAMESPACE_PREFIX):
            element = node.element if isinstance(node, AttributeNode) else node
            self.context.error(f'Unable to locate handler for namespace [{namespace}]', element)
        else:
            logger.debug('No namespace handler found for [%s], ignoring', namespace)

        return holder

    def parse_custom_element(self, element: '_Element',
                             scope: ScopeContext) -> DefinitionHolder | None:
        """Hand a custom-namespace element to its handler.

        Args:
            element: Element outside the default vocabulary.
            scope: Scope of the enclosing fragment.

        Returns:
            The definition produced by the handler, or `None`.
        """
        namespace = namespace_of(element)

        handler = self.context.handlers.resolve(namespace)
        if handler is None:
            self.context.error(f'Unable to locate handler for namespace [{namespace}]', element)
            return None

        return handler.parse(element, ParserContext(
            reader_context=self.context,
            delegate=self,
            scope=scope,
        ))

    def generate_name(self, kind: str | None) -> str:
        """Generate a name unique within the registry."""
        prefix = f'{kind or GENERATED_NAME_FALLBACK}{GENERATED_NAME_SEPARATOR}'

        counter = 0
        while f'{prefix}{counter}' in self.context.registry:
            counter += 1

        return f'{prefix}{counter}'

    def _autowire_candidate(self, element: '_Element', name: str,
                            scope: ScopeContext) -> bool:
        """Decide whether a definition may be autowired into others."""
        value = self._attribute(element, AUTOWIRE_CANDIDATE_ATTRIBUTE)
        if value is not None:
            return value == 'true'

        patterns = scope.defaults.autowire_candidates
        if not patterns:
            return True

        return any(fnmatchcase(name, pattern) for pattern in patterns)

    @classmethod
    def _flag(cls, element: '_Element', attribute: str, default: bool) -> bool:
        """Read a boolean attribute, `default` meaning inherited."""
        value = cls._attribute(element, attribute)
        if value is None:
            return default

        return value == 'true'

    @staticmethod
    def _attribute(element: '_Element', attribute: str) -> str | None:
        """Read an attribute, treating blank and `default` as absent."""
        value = (element.get(attribute) or '').strip()
        if not value or value == DEFAULT_VALUE:
            return None

        return value
