"""Tests for external entity resolution."""

from typing import TYPE_CHECKING

import pytest
from requests import ConnectionError as RequestsConnectionError
from requests import Session

from xmldefs.core import KnownEntityResolver, ResourceEntityResolver
from xmldefs.errors import EntityResolutionError, EntityResolutionWarning
from xmldefs.resources import ResourceLoader

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture, MockType


@pytest.fixture
def session(mocker: 'MockerFixture') -> 'MockType':
    """Provide a mocked HTTP session answering every GET with a tiny DTD."""
    session = mocker.Mock(spec=Session)
    session.get.return_value.content = b'<!ELEMENT remote EMPTY>'

    return session


@pytest.fixture
def resolver(tmp_path: 'Path', session: 'MockType') -> ResourceEntityResolver:
    """Provide a resolver rooted in a temporary working directory."""
    return ResourceEntityResolver(
        ResourceLoader(tmp_path, session=session),
        working_directory=tmp_path,
    )


@pytest.mark.parametrize(('public_id', 'system_id', 'marker'), (
    pytest.param(
        '-//XMLDEFS//DTD CONFIG//EN', None, b'<!ELEMENT config',
        id='public-id',
    ),
    pytest.param(
        None, 'https://xmldefs.dev/schema/xmldefs-config.dtd', b'<!ELEMENT config',
        id='dtd-file-name',
    ),
    pytest.param(
        None, 'http://example.com/legacy/xmldefs-config.xsd', b'<xsd:schema',
        id='xsd-file-name',
    ),
))
def test_known_entities(public_id: str | None, system_id: str | None, marker: bytes) -> None:
    """Resolve well-known identifiers to bundled schemas."""
    source = KnownEntityResolver().resolve(public_id, system_id)

    assert source is not None
    assert source.public_id == public_id
    assert source.system_id == system_id

    with source.stream as stream:
        assert marker in stream.read()


def test_known_entity_mappings() -> None:
    """Prefer explicit system id mappings."""
    resolver = KnownEntityResolver({
        'urn:example:config': 'package:xmldefs/schemas/xmldefs-config.xsd',
    })

    assert resolver.locate(None, 'urn:example:config') == 'package:xmldefs/schemas/xmldefs-config.xsd'
    assert resolver.locate(None, 'urn:example:other') is None


def test_known_entity_missing_bundle() -> None:
    """Return nothing when a mapped bundle is not available."""
    resolver = KnownEntityResolver({'urn:example:gone': 'package:xmldefs/schemas/gone.dtd'})

    assert resolver.resolve(None, 'urn:example:gone') is None


def test_base_resolver_wins(resolver: ResourceEntityResolver, session: 'MockType') -> None:
    """Return bundled content before consulting the loader."""
    source = resolver.resolve(None, 'http://xmldefs.dev/schema/xmldefs-config.dtd')

    assert source is not None
    session.get.assert_not_called()


def test_working_directory_entity(resolver: ResourceEntityResolver, tmp_path: 'Path') -> None:
    """Load system ids below the working directory through the loader."""
    schema = tmp_path / 'schemas' / 'local types.dtd'
    schema.parent.mkdir()
    schema.write_bytes(b'<!ELEMENT local EMPTY>')

    source = resolver.resolve('-//LOCAL//EN', schema.as_uri())

    assert source is not None
    assert source.public_id == '-//LOCAL//EN'
    assert source.system_id == schema.as_uri()

    with source.stream as stream:
        assert stream.read() == b'<!ELEMENT local EMPTY>'


def test_relative_path_derivation(resolver: ResourceEntityResolver, tmp_path: 'Path') -> None:
    """Derive paths relative to the working directory."""
    inside = (tmp_path / 'a' / 'b.dtd').as_uri()

    assert resolver.relative_path(inside) == 'a/b.dtd'
    assert resolver.relative_path('https://example.com/b.dtd') is None
    assert resolver.relative_path('schemas/b.dtd') == 'schemas/b.dtd'
    assert resolver.relative_path('urn:example:b') == 'urn:example:b'


def test_plain_path_entity(resolver: ResourceEntityResolver, tmp_path: 'Path') -> None:
    """Treat system ids that are not URLs as paths."""
    (tmp_path / 'plain.dtd').write_bytes(b'<!ELEMENT plain EMPTY>')

    source = resolver.resolve(None, 'plain.dtd')

    assert source is not None
    with source.stream as stream:
        assert stream.read() == b'<!ELEMENT plain EMPTY>'


def test_missing_local_entity_propagates(resolver: ResourceEntityResolver) -> None:
    """Raise when a derived local path cannot be opened."""
    with pytest.raises(FileNotFoundError):
        resolver.resolve(None, 'missing.dtd')


@pytest.mark.parametrize(('system_id', 'fetched'), (
    pytest.param(
        'http://example.com/schema/app.dtd',
        'https://example.com/schema/app.dtd',
        id='upgraded',
    ),
    pytest.param(
        'https://example.com/schema/app.xsd',
        'https://example.com/schema/app.xsd',
        id='secure',
    ),
))
def test_remote_entity(system_id: str, fetched: str,
                       resolver: ResourceEntityResolver, session: 'MockType') -> None:
    """Fetch schemas outside the working directory over HTTPS."""
    source = resolver.resolve(None, system_id)

    session.get.assert_called_once_with(fetched, timeout=10.0)

    assert source is not None
    assert source.system_id == system_id

    with source.stream as stream:
        assert stream.read() == b'<!ELEMENT remote EMPTY>'


def test_remote_non_schema_is_unresolved(resolver: ResourceEntityResolver,
                                         session: 'MockType') -> None:
    """Leave other remote entities to the parser."""
    assert resolver.resolve(None, 'https://example.com/entities/chars.ent') is None

    session.get.assert_not_called()


def test_remote_failure_falls_back(resolver: ResourceEntityResolver, session: 'MockType') -> None:
    """Return nothing and warn when the remote fetch fails."""
    session.get.side_effect = RequestsConnectionError('offline')

    with pytest.warns(EntityResolutionWarning, match=r'through URL \[https://example.com/app.dtd\]$'):
        source = resolver.resolve(None, 'http://example.com/app.dtd')

    assert source is None


def test_remote_failure_strict(tmp_path: 'Path', session: 'MockType') -> None:
    """Raise on remote fetch failures on strict mode."""
    session.get.side_effect = RequestsConnectionError('offline')

    resolver = ResourceEntityResolver(
        ResourceLoader(tmp_path, session=session),
        working_directory=tmp_path,
        strict=True,
    )

    with pytest.raises(EntityResolutionError, match=r'^Could not resolve entity'):
        resolver.resolve(None, 'http://example.com/app.dtd')


def test_no_system_id(resolver: ResourceEntityResolver) -> None:
    """Leave entities without system id unresolved."""
    assert resolver.resolve('-//UNKNOWN//EN', None) is None
