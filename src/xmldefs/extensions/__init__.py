"""Declarative custom namespace handlers.

Elements and attributes outside the default vocabulary are processed by
a namespace handler registered for their namespace URI. A handler is a
declarative container of callables:

- element parsers turn a top-level custom element into a definition;
- element decorators augment the enclosing definition with a nested
  custom element;
- attribute decorators augment the enclosing definition with a custom
  attribute.

Handlers are contributed by builtins, by explicit registration, or by
third-party packages through the `xmldefs_namespaces` entry point group.
The handler model contains no execution logic beyond dispatching on the
local name.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import Field

from xmldefs.definitions import DefinitionHolder
from xmldefs.models import SchemaModel
from xmldefs.names import Name  # noqa: TC001

if TYPE_CHECKING:
    from lxml.etree import _Element

if TYPE_CHECKING:
    from xmldefs.core.context import ParserContext

__all__ = (
    'AttributeNode',
    'NamespaceHandler',
)

#: Wildcard key matching any local name.
ANY_NAME = '*'

#: Callable parsing a custom element, `(element, context) -> holder | None`.
type ElementParser = Callable[..., DefinitionHolder | None]

#: Callable decorating a definition, `(node, holder, context) -> holder`.
type Decorator = Callable[..., DefinitionHolder]


class AttributeNode(SchemaModel):
    """Custom-namespace attribute found on a definition element."""

    namespace: str
    name: str
    value: str
    element: Any = None


class NamespaceHandler(SchemaModel):
    """Declarative handler for one custom namespace."""

    name: Name = Field(
        title='Handler name',
        description='Short identifier used in diagnostics.',
    )

    namespace: str = Field(
        title='Namespace URI',
        description='Namespace whose elements and attributes the handler processes.',
    )

    parsers: dict[str, ElementParser] = Field(
        default_factory=dict,
        title='Element parsers',
        description=(
            'Parsers for top-level custom elements, keyed by local name. '
            'A parser returns the definition to register, or `None` if it '
            'registered nothing or reported a problem.'
        ),
    )

    element_decorators: dict[str, Decorator] = Field(
        default_factory=dict,
        title='Element decorators',
        description='Decorators for custom elements nested in a definition, keyed by local name.',
    )

    attribute_decorators: dict[str, Decorator] = Field(
        default_factory=dict,
        title='Attribute decorators',
        description=(
            'Decorators for custom attributes of a definition element, '
            f'keyed by local name; {ANY_NAME!r} matches any attribute.'
        ),
    )

    def parse(self, element: '_Element', context: 'ParserContext') -> DefinitionHolder | None:
        """Parse a top-level custom element.

        Args:
            element: Custom element.
            context: Parser context.

        Returns:
            A definition to register, or `None`.
        """
        localname = _localname(element.tag)

        parser = self.parsers.get(localname) or self.parsers.get(ANY_NAME)
        if parser is None:
            context.error(
                f'Cannot locate parser for element [{localname}] '
                f'in namespace [{self.namespace}]',
                element,
            )
            return None

        return parser(element, context)

    def decorate(self, node: 'AttributeNode | _Element', holder: DefinitionHolder,
                 context: 'ParserContext') -> DefinitionHolder:
        """Decorate a definition with a custom attribute or nested element.

        Args:
            node: Custom attribute or element.
            holder: Definition to decorate.
            context: Parser context.

        Returns:
            The decorated definition, or the same one if nothing applies.
        """
        if isinstance(node, AttributeNode):
            decorators = self.attribute_decorators
            localname = node.name
            element = node.element
        else:
            decorators = self.element_decorators
            localname = _localname(node.tag)
            element = node

        decorator = decorators.get(localname) or decorators.get(ANY_NAME)
        if decorator is None:
            context.error(
                f'Cannot locate decorator for [{localname}] '
                f'in namespace [{self.namespace}]',
                element,
            )
            return holder

        return decorator(node, holder, context)


def _localname(tag: str) -> str:
    """Strip the `{namespace}` part of a Clark-notation tag."""
    return tag.rpartition('}')[2]
