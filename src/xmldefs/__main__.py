"""CLI utilities for reading xmldefs configuration documents.

The `load` command reads a document into a fresh registry and prints
its contents as YAML; the `resolve` command prints the content an
external DTD or schema reference resolves to.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from click import BadParameter, ClickException, argument, echo, group, option
from click import Path as PathParam
from yaml import dump, safe_load

from xmldefs.core import (
    FailFastProblemReporter,
    ProblemReporter,
    ResourceEntityResolver,
    XmlDefinitionReader,
)
from xmldefs.environment import Environment
from xmldefs.errors import DefinitionError
from xmldefs.registry import DefinitionRegistry
from xmldefs.resources import ResourceLoader

if TYPE_CHECKING:
    from collections.abc import Iterable

LOG_FORMAT = '%(levelname)s %(name)s: %(message)s'

PropertiesFilepath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)


@group(help='Command-line utilities for xmldefs configuration documents.')
def cli() -> None:
    """Root CLI group for xmldefs tools."""
    return None


def _read_properties(properties_file: Path | None, properties: 'Iterable[str]') -> dict[str, str]:
    """Collect placeholder values from a YAML file and `KEY=VALUE` pairs.

    Pairs given on the command line take precedence over the file.

    Args:
        properties_file: YAML mapping of property names to values.
        properties: `KEY=VALUE` pairs.

    Returns:
        Property values as strings.
    """
    values: dict[str, str] = {}

    if properties_file is not None:
        content = safe_load(properties_file.read_text()) or {}
        if not isinstance(content, dict):
            raise BadParameter('Properties file must contain a mapping', param_hint='--properties')
        values.update({str(key): str(value) for key, value in content.items()})

    for item in properties:
        key, separator, value = item.partition('=')
        if not separator or not key.strip():
            raise BadParameter(f'Expected KEY=VALUE, got {item!r}', param_hint='--property')
        values[key.strip()] = value

    return values


def _dump_registry(registry: DefinitionRegistry) -> dict[str, Any]:
    """Render registry contents as plain data."""
    return {
        'definitions': {
            name: registry.get_definition(name).model_dump(mode='json', exclude_defaults=True)
            for name in registry
        },
        'aliases': registry.aliases,
    }


@cli.command(
    name='load',
    help='Read a configuration document and print the registered definitions as YAML.',
)
@option(
    '-p', '--profile', 'profiles',
    multiple=True,
    help='Profile to activate. May be repeated.',
)
@option(
    '-D', '--property', 'properties',
    multiple=True,
    help='Placeholder value as KEY=VALUE. May be repeated.',
)
@option(
    '--properties', 'properties_file',
    type=PropertiesFilepath,
    help='YAML file with placeholder values.',
)
@option(
    '--strict',
    is_flag=True,
    help='Stop on the first problem and fail on handler or schema lookup issues.',
)
@option(
    '--allow-override/--no-allow-override',
    default=True,
    help='Whether definitions may replace earlier ones with the same name.',
)
@option(
    '-v', '--verbose',
    is_flag=True,
    help='Enable debug logging.',
)
@argument('location')
def load_document(location: str, profiles: tuple[str, ...], properties: tuple[str, ...],
                  properties_file: Path | None, *, strict: bool, allow_override: bool,
                  verbose: bool) -> None:
    """Load a document and print the registry.

    Args:
        location: Document location.
        profiles: Profiles to activate.
        properties: Placeholder values as `KEY=VALUE`.
        properties_file: YAML file with placeholder values.
        strict: Whether to stop on the first problem.
        allow_override: Whether definitions may be overridden.
        verbose: Whether to enable debug logging.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    settings: dict[str, Any] = {
        'properties': _read_properties(properties_file, properties),
    }
    if profiles:
        settings['active_profiles'] = profiles

    registry = DefinitionRegistry(allow_override=allow_override)
    reader = XmlDefinitionReader(
        registry,
        environment=Environment(**settings),
        reporter=FailFastProblemReporter() if strict else ProblemReporter(),
        strict=strict,
    )

    try:
        reader.load_definitions(location)
    except DefinitionError as error:
        raise ClickException(str(error)) from error

    echo(dump(_dump_registry(registry), sort_keys=False, allow_unicode=True), nl=False)


@cli.command(
    name='resolve',
    help='Print the content an external DTD or schema reference resolves to.',
)
@option(
    '--public-id',
    default=None,
    help='Public identifier of the entity.',
)
@option(
    '--strict',
    is_flag=True,
    help='Fail if a remote schema cannot be fetched.',
)
@argument('system_id')
def resolve_entity(system_id: str, public_id: str | None, *, strict: bool) -> None:
    """Resolve an entity and print its content.

    Args:
        system_id: System identifier of the entity.
        public_id: Public identifier of the entity.
        strict: Whether a failed remote fetch is an error.
    """
    resolver = ResourceEntityResolver(ResourceLoader(), strict=strict)

    try:
        source = resolver.resolve(public_id, system_id)
    except (OSError, DefinitionError) as error:
        raise ClickException(f'Failed to resolve entity [{system_id}]: {error}') from error

    if source is None:
        raise ClickException(f'Entity [{system_id}] could not be resolved')

    with source.stream as stream:
        echo(stream.read(), nl=False)


if __name__ == '__main__':
    cli()
