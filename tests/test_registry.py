"""Tests for the definition registry."""

import pytest

from xmldefs.definitions import Definition, DefinitionHolder
from xmldefs.errors import DefinitionStoreError
from xmldefs.registry import DefinitionRegistry


def test_register_with_aliases() -> None:
    """Register definitions and resolve them by alias."""
    registry = DefinitionRegistry()
    definition = Definition(kind='service')

    registry.register_definition(DefinitionHolder(
        name='main',
        aliases=('primary', 'default-service'),
        definition=definition,
    ))

    assert 'main' in registry
    assert 'primary' in registry
    assert registry.get_definition('default-service') is definition
    assert registry.get_aliases('main') == ('primary', 'default-service')
    assert registry.canonical_name('primary') == 'main'


@pytest.mark.parametrize('allow_override', (True, False))
def test_override_policy(allow_override: bool) -> None:
    """Replace or reject definitions with a taken name."""
    registry = DefinitionRegistry(allow_override=allow_override)
    registry.add_definition('main', Definition(kind='first'))

    if allow_override:
        registry.add_definition('main', Definition(kind='second'))
        assert registry.get_definition('main').kind == 'second'
        return

    with pytest.raises(DefinitionStoreError, match=r'already a definition bound'):
        registry.add_definition('main', Definition(kind='second'))


def test_definition_replaces_alias() -> None:
    """Drop an alias shadowed by a new definition name."""
    registry = DefinitionRegistry()
    registry.add_definition('main', Definition())
    registry.register_alias('main', 'other')

    registry.add_definition('other', Definition(kind='own'))

    assert registry.aliases == {}
    assert registry.get_definition('other').kind == 'own'


@pytest.mark.parametrize(('name', 'alias', 'pattern'), (
    pytest.param('', 'a', r'^Name must not be empty', id='blank-name'),
    pytest.param('a', ' ', r'^Alias must not be empty', id='blank-alias'),
))
def test_alias_blank_values(name: str, alias: str, pattern: str) -> None:
    """Reject blank alias registrations."""
    with pytest.raises(DefinitionStoreError, match=pattern):
        DefinitionRegistry().register_alias(name, alias)


def test_alias_equal_to_name() -> None:
    """Remove an alias registered for its own name."""
    registry = DefinitionRegistry()
    registry.register_alias('main', 'other')

    registry.register_alias('other', 'other')

    assert registry.aliases == {}


def test_alias_override_policy() -> None:
    """Reject rebinding an alias when overriding is not allowed."""
    registry = DefinitionRegistry(allow_override=False)
    registry.register_alias('a', 'shared')
    registry.register_alias('a', 'shared')

    with pytest.raises(DefinitionStoreError, match=r"already registered for name 'a'$"):
        registry.register_alias('b', 'shared')


def test_alias_cycle() -> None:
    """Reject aliases closing a cycle."""
    registry = DefinitionRegistry()
    registry.register_alias('a', 'b')
    registry.register_alias('b', 'c')

    with pytest.raises(DefinitionStoreError, match=r'circular reference'):
        registry.register_alias('c', 'a')


def test_remove_and_missing() -> None:
    """Raise lookup errors for unknown names."""
    registry = DefinitionRegistry()
    registry.add_definition('main', Definition())
    registry.remove_definition('main')

    assert len(registry) == 0

    with pytest.raises(KeyError):
        registry.get_definition('main')

    with pytest.raises(KeyError):
        registry.remove_definition('main')
