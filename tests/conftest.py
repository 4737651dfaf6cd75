"""Tests configurations and fixtures."""

from importlib.metadata import EntryPoint, EntryPoints
from typing import TYPE_CHECKING

import pytest
from lxml import etree

from xmldefs.builtins.handlers import p, util
from xmldefs.core import ProblemReporter, ReaderContext, ReaderEventListener, XmlDefinitionReader
from xmldefs.core.loader import NamespaceHandlerResolver
from xmldefs.environment import Environment
from xmldefs.registry import DefinitionRegistry
from xmldefs.resources import BytesResource, ResourceLoader

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType

if TYPE_CHECKING:
    from xmldefs.core import AliasRecord, ComponentRecord, ImportRecord
    from xmldefs.extensions import NamespaceHandler


class RecordingListener(ReaderEventListener):
    """Event listener keeping every record in arrival order."""

    def __init__(self) -> None:
        self.events: list[ImportRecord | AliasRecord | ComponentRecord] = []

    def import_processed(self, record: 'ImportRecord') -> None:
        self.events.append(record)

    def alias_registered(self, record: 'AliasRecord') -> None:
        self.events.append(record)

    def component_registered(self, record: 'ComponentRecord') -> None:
        self.events.append(record)


@pytest.fixture
def registry() -> DefinitionRegistry:
    """Provide an empty registry allowing overrides."""
    return DefinitionRegistry()


@pytest.fixture
def listener() -> RecordingListener:
    """Provide a listener recording registration events."""
    return RecordingListener()


@pytest.fixture
def handlers() -> NamespaceHandlerResolver:
    """Provide builtin namespace handlers without entry point discovery."""
    return NamespaceHandlerResolver(p, util, load_entrypoints=False)


@pytest.fixture
def write_document(tmp_path: 'Path') -> 'Callable[[str, str], Path]':
    """Provide a factory writing documents into a temporary directory.

    Returns a callable taking a relative file name and the document
    content; parent directories are created as needed.
    """
    def write(name: str, content: str) -> 'Path':
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

        return path

    return write


@pytest.fixture
def make_reader(registry: DefinitionRegistry, listener: RecordingListener,
                handlers: NamespaceHandlerResolver,
                tmp_path: 'Path') -> 'Callable[..., XmlDefinitionReader]':
    """Provide a factory for readers sharing the test registry and listener.

    Keyword arguments override the reader collaborators; `profiles` and
    `properties` configure the environment.
    """
    def make(*, profiles: tuple[str, ...] = (), properties: dict[str, str] | None = None,
             **kwargs: object) -> XmlDefinitionReader:
        kwargs.setdefault('environment', Environment(
            active_profiles=profiles,
            properties=properties or {},
        ))
        kwargs.setdefault('resource_loader', ResourceLoader(tmp_path))
        kwargs.setdefault('listener', listener)
        kwargs.setdefault('handlers', handlers)

        return XmlDefinitionReader(registry, **kwargs)  # type: ignore[arg-type]

    return make


@pytest.fixture
def make_context(registry: DefinitionRegistry, listener: RecordingListener,
                 handlers: NamespaceHandlerResolver,
                 mocker: 'MockerFixture') -> 'Callable[..., ReaderContext]':
    """Provide a factory for reader contexts around an in-memory document.

    The reader is a mock, so imports are not followed.
    """
    def make(*, profiles: tuple[str, ...] = (), properties: dict[str, str] | None = None,
             reporter: ProblemReporter | None = None) -> ReaderContext:
        return ReaderContext(
            registry=registry,
            resource=BytesResource(b'<config/>', 'test document'),
            environment=Environment(active_profiles=profiles, properties=properties or {}),
            reporter=reporter or ProblemReporter(),
            listener=listener,
            reader=mocker.Mock(spec=XmlDefinitionReader),
            handlers=handlers,
        )

    return make


@pytest.fixture
def parse_xml() -> 'Callable[[str], etree._Element]':
    """Provide a helper parsing a markup string into its root element."""
    def parse(content: str) -> 'etree._Element':
        return etree.fromstring(content.strip().encode())

    return parse


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking `importlib.metadata.entry_points`.

    Returns a callable that patches `entry_points()` to simulate
    discovery of handlers in the `xmldefs_namespaces` entry point group.

    The returned factory allows configuring:
    - successfully loadable handlers,
    - or an exception raised during handler loading,
    - or an empty entry point list.
    """
    def patch(*handlers: 'NamespaceHandler | object',
              raises: Exception | None = None) -> 'MockType':
        """Patch `entry_points` with a controlled handler configuration.

        Args:
            handlers: Objects to be returned by `EntryPoint.load()`.
                If empty, no entry points are registered.
            raises: Exception to raise when `EntryPoint.load()` is called.

        Returns:
            A mock patch object produced by `mocker.patch` that replaces
            `importlib.metadata.entry_points` for the duration of the test.
        """
        entrypoints = []
        for handler in handlers:
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'xmldefs_namespaces'
            ep.name = 'tests'
            ep.value = 'tests.handlers:test'
            ep.load.return_value = handler
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
