"""External entity resolution for configuration documents.

Documents may reference a DTD or an XML schema by public or system id.
Resolution never requires network access for the bundled schemas:

1. well-known identifiers map to schemas shipped with the package;
2. system ids below the working directory, and ids that are not URLs at
   all, are loaded through the resource loader;
3. as a last resort, `.dtd` and `.xsd` URLs are fetched remotely, with
   `http:` upgraded to `https:`.

A failed remote fetch is not an error: the resolver returns `None` and
the markup parser falls back to its own behavior.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlsplit
from warnings import warn

from lxml import etree
from pydantic import Field

from xmldefs.errors import EntityResolutionError, EntityResolutionWarning
from xmldefs.models import SchemaModel
from xmldefs.resources import URL_SCHEMES, PackageResource

if TYPE_CHECKING:
    from collections.abc import Mapping

    from xmldefs.resources import ResourceLoader

logger = logging.getLogger(__name__)

DTD_SUFFIX = '.dtd'
XSD_SUFFIX = '.xsd'

#: Public identifiers of the bundled DTD.
KNOWN_PUBLIC_IDS = {
    '-//XMLDEFS//DTD CONFIG//EN': 'package:xmldefs/schemas/xmldefs-config.dtd',
}

#: File names of bundled schemas, matched on the last system id segment.
KNOWN_SCHEMA_FILES = {
    'xmldefs-config.dtd': 'package:xmldefs/schemas/xmldefs-config.dtd',
    'xmldefs-config.xsd': 'package:xmldefs/schemas/xmldefs-config.xsd',
}


class InputSource(SchemaModel):
    """Resolved entity content with its identifiers."""

    stream: Any = Field(
        title='Stream',
        description='Binary file object with the entity content.',
    )

    public_id: str | None = None
    system_id: str | None = None


class KnownEntityResolver:
    """Resolver of well-known identifiers to bundled schemas.

    Attributes:
        mappings: Exact system id to `package:` location table.
    """

    def __init__(self, mappings: 'Mapping[str, str] | None' = None) -> None:
        self.mappings = dict(mappings or {})

    def locate(self, public_id: str | None, system_id: str | None) -> str | None:
        """Find the bundled location of an entity.

        Exact system id mappings win over public ids, which win over
        file name matches.
        """
        if system_id and system_id in self.mappings:
            return self.mappings[system_id]

        if public_id and public_id in KNOWN_PUBLIC_IDS:
            return KNOWN_PUBLIC_IDS[public_id]

        if system_id:
            return KNOWN_SCHEMA_FILES.get(system_id.rpartition('/')[2])

        return None

    def resolve(self, public_id: str | None, system_id: str | None) -> InputSource | None:
        """Resolve an entity to bundled content.

        Args:
            public_id: Public identifier, if any.
            system_id: System identifier, if any.

        Returns:
            The bundled content, or `None` if the entity is not known or
            its bundled copy is missing.
        """
        location = self.locate(public_id, system_id)
        if location is None:
            return None

        resource = PackageResource.from_location(location)
        try:
            stream = resource.open_stream()
        except OSError:
            logger.debug('Could not find bundled entity [%s] at %s', system_id, resource, exc_info=True)
            return None

        logger.debug('Found bundled entity [%s] at %s', system_id or public_id, resource)

        return InputSource(stream=stream, public_id=public_id, system_id=system_id)


class ResourceEntityResolver:
    """Resolver trying bundled schemas, the resource loader and the network.

    Attributes:
        resource_loader: Loader of local and remote resources.
        base: Resolver of well-known identifiers, consulted first.
        strict: Whether a failed remote fetch raises instead of warning.
        working_directory: Directory that local system ids are relative to.
    """

    def __init__(self, resource_loader: 'ResourceLoader', *,
                 base: KnownEntityResolver | None = None,
                 strict: bool = False,
                 working_directory: str | Path | None = None) -> None:
        self.resource_loader = resource_loader
        self.base = base if base is not None else KnownEntityResolver()
        self.strict = strict
        self.working_directory = Path(working_directory) if working_directory else None

    def resolve(self, public_id: str | None, system_id: str | None) -> InputSource | None:
        """Resolve an entity to its content.

        Args:
            public_id: Public identifier, if any.
            system_id: System identifier, if any.

        Returns:
            The entity content, or `None` to let the parser fall back to
            its default behavior.

        Raises:
            OSError: If a local path was derived but cannot be opened.
            EntityResolutionError: If the remote fetch fails on strict mode.
        """
        source = self.base.resolve(public_id, system_id)
        if source is not None or system_id is None:
            return source

        path = self.relative_path(system_id)
        if path is not None:
            logger.debug('Trying to locate entity [%s] as resource [%s]', system_id, path)

            resource = self.resource_loader.get_resource(path)
            source = InputSource(
                stream=resource.open_stream(),
                public_id=public_id,
                system_id=system_id,
            )
            logger.debug('Found entity [%s]: %s', system_id, resource)

            return source

        if system_id.endswith((DTD_SUFFIX, XSD_SUFFIX)):
            return self.fetch(public_id, system_id)

        return None

    def relative_path(self, system_id: str) -> str | None:
        """Derive the local path of a system id.

        Returns:
            The path relative to the working directory, the system id
            itself if it is not a URL, or `None` for URLs outside the
            working directory.
        """
        try:
            given = unquote(system_id, errors='strict')
            scheme = urlsplit(given).scheme.lower()
            if scheme not in URL_SCHEMES:
                raise ValueError(f'Unknown protocol: {scheme or given!r}')

            root = (self.working_directory or Path.cwd()).absolute().as_uri().rstrip('/') + '/'

        except ValueError:
            logger.debug('Could not resolve entity [%s] against working directory', system_id,
                         exc_info=True)
            return system_id

        if given.startswith(root):
            return given.removeprefix(root)

        return None

    def fetch(self, public_id: str | None, system_id: str) -> InputSource | None:
        """Fetch a schema from its URL, preferring HTTPS.

        Raises:
            EntityResolutionError: If the fetch fails on strict mode.
        """
        url = system_id
        if url.startswith('http:'):
            url = 'https:' + url.removeprefix('http:')

        try:
            stream = self.resource_loader.get_resource(url).open_stream()

        except OSError as base:
            message = f'Could not resolve entity [{system_id}] through URL [{url}]'
            if self.strict:
                raise EntityResolutionError(message) from base

            logger.debug(message, exc_info=True)
            warn(message, category=EntityResolutionWarning, stacklevel=2)

            return None

        return InputSource(stream=stream, public_id=public_id, system_id=system_id)


class LxmlEntityResolver(etree.Resolver):
    """Bridge letting the lxml parser consult an entity resolver."""

    def __init__(self, resolver: KnownEntityResolver | ResourceEntityResolver) -> None:
        super().__init__()
        self.resolver = resolver

    def resolve(self, system_url: str | None, public_id: str | None,
                context: Any) -> Any:  # noqa: ANN401
        source = self.resolver.resolve(public_id, system_url)
        if source is None:
            return None

        return self.resolve_file(source.stream, context, base_url=system_url, close=True)
