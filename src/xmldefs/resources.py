"""Resource abstraction and location handling.

A resource is something that can be checked for existence, opened as a
byte stream, located by URL, and used as the base for relative lookups.
Locations are plain strings and are mapped to resources by the
`ResourceLoader`:

- `package:<dotted.package>/<path>` for data bundled in a Python package;
- `glob:<pattern>` for several files at once;
- `file:`, `http:` and `https:` URLs;
- anything else is a filesystem path.

The helpers at the bottom classify import locations as absolute or
relative. The classification is heuristic: a drive-letter path such as
`C:/conf/app.xml` parses with a one-letter scheme and counts as absolute,
while `C:\\conf\\app.xml` contains characters not allowed in a URI and
counts as relative.
"""

import logging
from abc import ABC, abstractmethod
from glob import glob
from importlib.resources import files
from io import BytesIO
from os.path import isabs
from pathlib import Path
from posixpath import dirname, join, normpath
from re import compile as regexp
from typing import IO, TYPE_CHECKING, Any
from urllib.parse import urljoin, urlsplit
from urllib.request import url2pathname

from requests import Session

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable
    from urllib.parse import SplitResult

logger = logging.getLogger(__name__)

PACKAGE_PREFIX = 'package:'
GLOB_PREFIX = 'glob:'

#: Schemes accepted as URLs without further checks.
URL_SCHEMES = frozenset(('file', 'http', 'https', 'ftp'))

#: Default timeout for remote requests, in seconds.
DEFAULT_TIMEOUT = 10.0

#: Characters that make a location unparsable as a URI.
_ILLEGAL_URI_PATTERN = regexp(r'[\x00-\x1f\x7f<>"{}|\\^`\[\]]|%(?![0-9A-Fa-f]{2})')


def create_session() -> Session:
    """Create an HTTP session for fetching remote documents and schemas."""
    session = Session()
    session.headers.update({
        'User-Agent': 'xmldefs',
        'Accept': 'application/xml, text/xml, */*',
    })

    return session


class Resource(ABC):
    """Abstract readable resource.

    Two resources are equal when they have the same type and point to the
    same location, so sets of loaded resources deduplicate naturally.
    """

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable location used in messages."""

    @property
    def url(self) -> str:
        """Absolute URL of the resource.

        Raises:
            OSError: If the resource cannot be addressed by URL.
        """
        raise FileNotFoundError(f'{self.description} cannot be resolved to URL')

    @abstractmethod
    def exists(self) -> bool:
        """Check whether the resource physically exists.

        Raises:
            OSError: If existence cannot be determined.
        """

    @abstractmethod
    def open_stream(self) -> IO[bytes]:
        """Open the resource for binary reading.

        Raises:
            OSError: If the resource cannot be opened.
        """

    def create_relative(self, path: str) -> 'Resource':
        """Create a resource relative to this one.

        Args:
            path: Relative path, resolved against this resource's parent.

        Raises:
            OSError: If relative resources are not supported.
        """
        raise FileNotFoundError(f'Cannot create a relative resource for {self.description}')

    def _key(self) -> Any:  # noqa: ANN401
        return self.description

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self), self._key()))

    def __str__(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.description!r})'


class FileResource(Resource):
    """Resource backed by a filesystem path."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def description(self) -> str:
        return f'file [{self.path.absolute()}]'

    @property
    def url(self) -> str:
        return self.path.absolute().as_uri()

    def exists(self) -> bool:
        return self.path.exists()

    def open_stream(self) -> IO[bytes]:
        return self.path.open('rb')

    def create_relative(self, path: str) -> 'FileResource':
        return FileResource(self.path.parent / path)

    def _key(self) -> Any:  # noqa: ANN401
        return self.path.absolute()


class UrlResource(Resource):
    """Resource fetched over HTTP or HTTPS."""

    def __init__(self, url: str, *,
                 session: Session | None = None,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self._url = url
        self.session = session if session is not None else create_session()
        self.timeout = timeout

    @property
    def description(self) -> str:
        return f'URL [{self._url}]'

    @property
    def url(self) -> str:
        return self._url

    def exists(self) -> bool:
        """Check the resource with a HEAD request.

        Raises:
            OSError: On connection failures (`requests` errors are `OSError`).
        """
        response = self.session.head(self._url, timeout=self.timeout, allow_redirects=True)
        return response.ok

    def open_stream(self) -> IO[bytes]:
        logger.debug('Fetching %s', self._url)

        response = self.session.get(self._url, timeout=self.timeout)
        response.raise_for_status()

        return BytesIO(response.content)

    def create_relative(self, path: str) -> 'UrlResource':
        return UrlResource(
            urljoin(self._url, path.lstrip('/')),
            session=self.session,
            timeout=self.timeout,
        )

    def _key(self) -> Any:  # noqa: ANN401
        return self._url


class PackageResource(Resource):
    """Resource bundled inside an importable Python package."""

    def __init__(self, package: str, path: str) -> None:
        self.package = package
        self.path = normpath(path.lstrip('/'))

    @classmethod
    def from_location(cls, location: str) -> 'PackageResource':
        """Create a resource from a `package:` location.

        Args:
            location: Location such as `package:xmldefs/schemas/config.dtd`.

        Returns:
            The package resource.
        """
        package, _, path = location.removeprefix(PACKAGE_PREFIX).lstrip('/').partition('/')
        return cls(package, path)

    @property
    def description(self) -> str:
        return f'package resource [{self.package}/{self.path}]'

    @property
    def url(self) -> str:
        return f'{PACKAGE_PREFIX}{self.package}/{self.path}'

    def _traversable(self) -> 'Traversable':
        try:
            return files(self.package).joinpath(self.path)
        except (ModuleNotFoundError, ValueError, TypeError) as base:
            raise FileNotFoundError(f'Package {self.package!r} is not importable') from base

    def exists(self) -> bool:
        try:
            return self._traversable().is_file()
        except FileNotFoundError:
            return False

    def open_stream(self) -> IO[bytes]:
        return self._traversable().open('rb')

    def create_relative(self, path: str) -> 'PackageResource':
        return PackageResource(self.package, join(dirname(self.path), path))

    def _key(self) -> Any:  # noqa: ANN401
        return self.package, self.path


class BytesResource(Resource):
    """In-memory resource, mainly for documents built at runtime.

    It has no URL and does not support relative resources, so relative
    imports inside such a document cannot be resolved.
    """

    def __init__(self, content: bytes, description: str = 'byte array') -> None:
        self.content = content
        self._description = description

    @property
    def description(self) -> str:
        return f'{self._description} [{len(self.content)} bytes]'

    def exists(self) -> bool:
        return True

    def open_stream(self) -> IO[bytes]:
        return BytesIO(self.content)

    def _key(self) -> Any:  # noqa: ANN401
        return self._description, self.content


class ResourceLoader:
    """Strategy mapping location strings to resources.

    Attributes:
        base_path: Directory that plain relative paths are resolved against.
        session: HTTP session shared by remote resources.
        timeout: Timeout of remote requests, in seconds.
    """

    def __init__(self, base_path: str | Path | None = None, *,
                 session: Session | None = None,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_path = Path(base_path) if base_path is not None else None
        self.session = session if session is not None else create_session()
        self.timeout = timeout

    def get_resource(self, location: str) -> Resource:
        """Map a single location to a resource.

        The resource is not checked for existence.

        Args:
            location: Resource location.

        Returns:
            Resource handle.
        """
        if location.startswith(PACKAGE_PREFIX):
            return PackageResource.from_location(location)

        try:
            parts = urlsplit(location)
        except ValueError:
            return self._get_file(location)

        scheme = parts.scheme.lower()
        if scheme == 'file':
            return FileResource(url2pathname(parts.path))

        if scheme in ('http', 'https'):
            return UrlResource(location, session=self.session, timeout=self.timeout)

        return self._get_file(location)

    def get_resources(self, location: str) -> list[Resource]:
        """Map a location to all the resources it designates.

        A `glob:` location expands to every matching file, in sorted order;
        any other location designates exactly one resource.

        Args:
            location: Resource location or pattern.

        Returns:
            List of resources, possibly empty for patterns.
        """
        if not location.startswith(GLOB_PREFIX):
            return [self.get_resource(location)]

        pattern = location.removeprefix(GLOB_PREFIX)
        if not isabs(pattern) and self.base_path is not None:
            pattern = str(self.base_path / pattern)

        return [
            FileResource(match)
            for match in sorted(glob(pattern, recursive=True))
            if Path(match).is_file()
        ]

    def _get_file(self, location: str) -> FileResource:
        path = Path(location)
        if self.base_path is not None and not path.is_absolute():
            path = self.base_path / path

        return FileResource(path)


def is_url(location: str) -> bool:
    """Check whether a location is a recognized URL or resource prefix.

    Args:
        location: Resource location.

    Returns:
        True for `package:` and `glob:` locations and for URLs with a
        recognized scheme.
    """
    if location.startswith((PACKAGE_PREFIX, GLOB_PREFIX)):
        return True

    try:
        return urlsplit(location).scheme.lower() in URL_SCHEMES
    except ValueError:
        return False


def to_uri(location: str) -> 'SplitResult':
    """Parse a location as a URI.

    Spaces are encoded before parsing.

    Args:
        location: Resource location.

    Returns:
        The split URI.

    Raises:
        ValueError: If the location is not a syntactically valid URI.
    """
    candidate = location.replace(' ', '%20')
    if match := _ILLEGAL_URI_PATTERN.search(candidate):
        raise ValueError(f'Illegal character at index {match.start()} in location {location!r}')

    return urlsplit(candidate)


def is_absolute_location(location: str) -> bool:
    """Decide whether an import location is absolute.

    A location is absolute if it is a recognized URL or prefix, or if it
    parses as a URI with a scheme. An unparsable location is relative.

    Args:
        location: Resource location, with placeholders already resolved.

    Returns:
        True if the location must not be resolved against the current
        document.
    """
    if is_url(location):
        return True

    try:
        return bool(to_uri(location).scheme)
    except ValueError:
        return False


def apply_relative_path(path: str, relative_path: str) -> str:
    """Replace the last segment of a path with a relative path.

    Args:
        path: Base path or URL, typically of the current document.
        relative_path: Path to apply.

    Returns:
        The combined path, or the relative path if the base has no folder.
    """
    separator = path.rfind('/')
    if separator < 0:
        return relative_path

    folder = path[:separator]
    if not relative_path.startswith('/'):
        folder += '/'

    return folder + relative_path
