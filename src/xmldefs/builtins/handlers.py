"""Builtin namespace handlers.

Two handlers ship with the library:

- `p`: shortcut attributes on definition elements, where
  `p:timeout="30"` is equivalent to a nested
  `<property name="timeout" value="30"/>`;
- `util`: standalone `constant` and `list` elements, each producing
  one definition.
"""

from typing import TYPE_CHECKING

from xmldefs.definitions import Definition, DefinitionHolder, element_source
from xmldefs.extensions import ANY_NAME, NamespaceHandler
from xmldefs.names import ID_ATTRIBUTE, P_NAMESPACE, UTIL_NAMESPACE, VALUE_ATTRIBUTE, VALUE_ELEMENT

if TYPE_CHECKING:
    from lxml.etree import _Element

    from xmldefs.core.context import ParserContext
    from xmldefs.extensions import AttributeNode


def property_decorator(node: 'AttributeNode', holder: DefinitionHolder,
                       context: 'ParserContext') -> DefinitionHolder:
    """Add a property from a `p:` attribute.

    Args:
        node: Attribute in the `p` namespace.
        holder: Definition being decorated.
        context: Parser context.

    Returns:
        The definition with the additional property, or the original
        one if the property is already defined.
    """
    if node.name in holder.definition.properties:
        context.error(
            f'Property {node.name!r} is already defined using both '
            '<property> and inline syntax. Only one approach may be used per property.',
            node.element,
        )
        return holder

    return holder.with_definition(
        holder.definition.with_properties(**{node.name: node.value}),
    )


def _require_id(element: '_Element', context: 'ParserContext') -> str | None:
    """Read a mandatory `id` attribute, reporting it when blank."""
    name = (element.get(ID_ATTRIBUTE) or '').strip()
    if not name:
        context.error('Attribute id is required', element)
        return None

    return name


def constant_parser(element: '_Element', context: 'ParserContext') -> DefinitionHolder | None:
    """Parse `<util:constant id="..." value="..."/>`."""
    name = _require_id(element, context)
    if name is None:
        return None

    value = element.get(VALUE_ATTRIBUTE)
    if value is None:
        context.error(f'Constant {name!r} must declare a value', element)
        return None

    return DefinitionHolder(
        name=name,
        definition=Definition(
            kind='constant',
            properties={'value': value},
            source=element_source(element),
        ),
    )


def list_parser(element: '_Element', context: 'ParserContext') -> DefinitionHolder | None:
    """Parse `<util:list id="..."><util:value>...</util:value></util:list>`."""
    name = _require_id(element, context)
    if name is None:
        return None

    values = [
        (child.text or '').strip()
        for child in element
        if isinstance(child.tag, str) and child.tag.rpartition('}')[2] == VALUE_ELEMENT
    ]

    return DefinitionHolder(
        name=name,
        definition=Definition(
            kind='list',
            properties={'values': values},
            source=element_source(element),
        ),
    )


p = NamespaceHandler(
    name='p',
    namespace=P_NAMESPACE,
    attribute_decorators={ANY_NAME: property_decorator},
)

util = NamespaceHandler(
    name='util',
    namespace=UTIL_NAMESPACE,
    parsers={
        'constant': constant_parser,
        'list': list_parser,
    },
)
