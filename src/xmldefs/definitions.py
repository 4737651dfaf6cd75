"""Configuration records produced while reading documents.

Defines the immutable models stored in the registry (`Definition`), the
named wrapper handed between parser, decorators and registry
(`DefinitionHolder`), and the chained default settings of a document
fragment (`ScopeDefaults` and `ScopeContext`).
"""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from xmldefs.models import SchemaModel
from xmldefs.names import Name  # noqa: TC001

if TYPE_CHECKING:
    from typing import Self

#: Property values are plain strings or lists of strings.
type PropertyValue = str | list[str]

#: Autowiring modes understood by the default vocabulary.
type AutowireMode = Literal['no', 'by-name', 'by-type', 'constructor']


class ScopeDefaults(SchemaModel):
    """Default settings declared on a fragment root.

    Every definition of the fragment inherits these values unless it
    overrides them.
    """

    lazy_init: bool = Field(
        default=False,
        title='Lazy initialization',
        description='Whether definitions are initialized on first use.',
    )

    merge: bool = Field(
        default=False,
        title='Merge collections',
        description='Whether collection properties merge with the parent definition.',
    )

    autowire: AutowireMode = Field(
        default='no',
        title='Autowire mode',
        description='How dependencies of definitions are resolved.',
    )

    autowire_candidates: tuple[str, ...] = Field(
        default=(),
        title='Autowire candidate patterns',
        description='Name patterns of definitions eligible for autowiring.',
    )

    init_method: str | None = Field(
        default=None,
        title='Default init method',
        description='Initialization callback name.',
    )

    destroy_method: str | None = Field(
        default=None,
        title='Default destroy method',
        description='Destruction callback name.',
    )


class ScopeContext(SchemaModel):
    """Chained default settings of one fragment nesting level.

    A child scope is created when entering a fragment and passed down the
    recursion; the enclosing fragment keeps its own scope untouched.
    """

    defaults: ScopeDefaults = Field(
        default_factory=ScopeDefaults,
        title='Scope defaults',
        description='Effective defaults of this fragment.',
    )

    parent: 'ScopeContext | None' = Field(
        default=None,
        title='Parent scope',
        description='Scope of the enclosing fragment, `None` at the document root.',
    )

    @property
    def depth(self) -> int:
        """Nesting depth, zero for the document root."""
        return 0 if self.parent is None else self.parent.depth + 1

    def child(self, defaults: ScopeDefaults) -> 'Self':
        """Create a nested scope chained to this one."""
        return type(self)(defaults=defaults, parent=self)


class Definition(SchemaModel):
    """Registry-stored configuration record.

    The registry does not interpret the record; all fields are metadata
    collected from one definition element.
    """

    kind: str | None = Field(
        default=None,
        title='Kind',
        description='Type of the configured component.',
    )

    parent: str | None = Field(
        default=None,
        title='Parent definition',
        description='Name of a definition to inherit settings from.',
    )

    properties: dict[str, PropertyValue] = Field(
        default_factory=dict,
        title='Properties',
        description='Property values in document order.',
    )

    lazy_init: bool = False
    merge: bool = False
    autowire: AutowireMode = 'no'
    autowire_candidate: bool = True
    init_method: str | None = None
    destroy_method: str | None = None
    depends_on: tuple[str, ...] = ()

    source: str | None = Field(
        default=None,
        title='Source',
        description='Document location and line the definition was read from.',
    )

    def with_properties(self, **properties: PropertyValue) -> 'Self':
        """Return a copy with additional properties."""
        return self.model_copy(update={
            'properties': {**self.properties, **properties},
        })


class DefinitionHolder(SchemaModel):
    """Definition bound to its primary name and aliases."""

    name: Name
    aliases: tuple[Name, ...] = ()
    definition: Definition

    def __str__(self) -> str:
        if not self.aliases:
            return f'Definition {self.name!r}'
        return f'Definition {self.name!r} with aliases {list(self.aliases)}'

    def with_definition(self, definition: Definition) -> 'Self':
        """Return a copy bound to another definition."""
        return self.model_copy(update={'definition': definition})


def element_source(element: Any) -> str | None:  # noqa: ANN401
    """Describe where an element comes from as `location:line`."""
    base = getattr(element, 'base', None)
    if not base:
        return None

    line = getattr(element, 'sourceline', None)
    if line is None:
        return base

    return f'{base}:{line}'
