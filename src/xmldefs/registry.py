"""In-memory definition registry.

The registry stores definitions by primary name and keeps a separate
alias table. It enforces the override policy and the alias rules; the
document reader reports every rejection as a problem attached to the
offending element.
"""

import logging
from typing import TYPE_CHECKING

from xmldefs.errors import DefinitionStoreError

if TYPE_CHECKING:
    from collections.abc import Iterator

if TYPE_CHECKING:
    from xmldefs.definitions import Definition, DefinitionHolder

logger = logging.getLogger(__name__)


class DefinitionRegistry:
    """Registry of named definitions and their aliases.

    Attributes:
        allow_override: Whether a definition or alias may replace an
            existing one registered under the same name.
    """

    def __init__(self, *, allow_override: bool = True) -> None:
        self.allow_override = allow_override

        self._definitions: dict[str, Definition] = {}
        self._aliases: dict[str, str] = {}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.canonical_name(name) in self._definitions

    def __iter__(self) -> 'Iterator[str]':
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def definition_names(self) -> tuple[str, ...]:
        """Primary names in registration order."""
        return tuple(self._definitions)

    @property
    def aliases(self) -> dict[str, str]:
        """Copy of the alias table, alias to name."""
        return dict(self._aliases)

    def register_definition(self, holder: 'DefinitionHolder') -> None:
        """Register a definition under its primary name and aliases.

        Args:
            holder: Definition with its names.

        Raises:
            DefinitionStoreError: If the name is taken and overriding is
                not allowed, or an alias cannot be registered.
        """
        self.add_definition(holder.name, holder.definition)

        for alias in holder.aliases:
            self.register_alias(holder.name, alias)

    def add_definition(self, name: str, definition: 'Definition') -> None:
        """Register a single definition under a primary name.

        Args:
            name: Primary name.
            definition: Definition to store.

        Raises:
            DefinitionStoreError: On a blank name or a forbidden override.
        """
        if not name or not name.strip():
            raise DefinitionStoreError('Definition name must not be empty')

        if name in self._definitions:
            if not self.allow_override:
                raise DefinitionStoreError(
                    f'Cannot register definition {name!r}: '
                    'there is already a definition bound to this name',
                )
            logger.info('Overriding definition %r', name)

        if name in self._aliases:
            if not self.allow_override:
                raise DefinitionStoreError(
                    f'Cannot register definition {name!r}: '
                    f'it is already an alias for {self._aliases[name]!r}',
                )
            del self._aliases[name]

        self._definitions[name] = definition

    def register_alias(self, name: str, alias: str) -> None:
        """Bind an alias to a name.

        An alias equal to the name removes any existing alias entry.

        Args:
            name: Primary name (or another alias) to bind to.
            alias: Secondary lookup name.

        Raises:
            DefinitionStoreError: On blank values, a forbidden override, or
                an alias cycle.
        """
        if not name or not name.strip():
            raise DefinitionStoreError('Name must not be empty')
        if not alias or not alias.strip():
            raise DefinitionStoreError('Alias must not be empty')

        if alias == name:
            self._aliases.pop(alias, None)
            return

        if (registered := self._aliases.get(alias)) is not None:
            if registered == name:
                return
            if not self.allow_override:
                raise DefinitionStoreError(
                    f'Cannot define alias {alias!r} for name {name!r}: '
                    f'it is already registered for name {registered!r}',
                )
            logger.info('Overriding alias %r from %r to %r', alias, registered, name)

        if self.has_alias(alias, name):
            raise DefinitionStoreError(
                f'Cannot register alias {alias!r} for name {name!r}: '
                f'circular reference - {name!r} is a direct or indirect alias '
                f'for {alias!r} already',
            )

        self._aliases[alias] = name

    def has_alias(self, name: str, alias: str) -> bool:
        """Check whether `alias` resolves to `name`, directly or through a chain."""
        registered = self._aliases.get(alias)
        while registered is not None:
            if registered == name:
                return True
            registered = self._aliases.get(registered)

        return False

    def canonical_name(self, name: str) -> str:
        """Follow aliases to the primary name."""
        seen = set()
        while name in self._aliases and name not in seen:
            seen.add(name)
            name = self._aliases[name]

        return name

    def get_aliases(self, name: str) -> tuple[str, ...]:
        """All aliases resolving to a name, in registration order."""
        canonical = self.canonical_name(name)

        return tuple(
            alias
            for alias in self._aliases
            if alias != name and self.canonical_name(alias) == canonical
        )

    def get_definition(self, name: str) -> 'Definition':
        """Look up a definition by name or alias.

        Raises:
            KeyError: If no definition is registered under the name.
        """
        try:
            return self._definitions[self.canonical_name(name)]
        except KeyError:
            raise KeyError(f'No definition named {name!r}') from None

    def remove_definition(self, name: str) -> None:
        """Remove a definition by primary name.

        Raises:
            KeyError: If no definition is registered under the name.
        """
        try:
            del self._definitions[name]
        except KeyError:
            raise KeyError(f'No definition named {name!r}') from None
