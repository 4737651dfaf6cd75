"""Core exception hierarchy.

This module defines base error and warning types used across the library
to report namespace handler loading issues, resource and registry
failures, and problems found while reading configuration documents in a
structured and extensible way.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from lxml import etree

if TYPE_CHECKING:
    from collections.abc import Iterable
    from importlib.metadata import EntryPoint
    from typing import Self

if TYPE_CHECKING:
    from xmldefs.core.context import Problem

SNIPPET_LIMIT = 240
SNIPPET_ELLIPSIS = '...'

FORMAT_FILENAME = '<unknown resource>'
FORMAT_INDENT = 4


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Location of the document where the error occurred.
    filename: str | None

    #: Line number in the source document (1-based, as reported by lxml).
    line_num: int | None

    #: Underlying exception that triggered formatting.
    error: Exception | None

    #: Document element associated with the error.
    element: Any


class ErrorFormatter:
    """Utility class for formatting document-related errors.

    This formatter is responsible for producing human-readable
    error messages with optional source location and a markup
    snippet of the failing element.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)
        message += cls.get_cause_string(context, indent=FORMAT_INDENT)

        return message.rstrip()

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string including filename and line.
        """
        indent = cls._ensure_indent(indent)

        filename = context.get('filename')
        if not filename:
            filename = FORMAT_FILENAME

        message = f'{indent}in "{filename}"'
        if (line_num := context.get('line_num')) is not None:
            message += f', line {line_num}'

        return message + linesep

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Render the failing element as a short markup snippet.

        Args:
            context: Error context containing the element.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted snippet, or an empty string if no element is set.
        """
        indent = cls._ensure_indent(indent)

        element = context.get('element')
        if element is None or not isinstance(element.tag, str):
            return ''

        snippet = etree.tostring(element, encoding='unicode', with_tail=False)
        snippet = snippet.strip()
        if len(snippet) > SNIPPET_LIMIT:
            snippet = snippet[:SNIPPET_LIMIT] + SNIPPET_ELLIPSIS

        return cls._make_indent(snippet, indent) + linesep

    @classmethod
    def get_cause_string(cls, context: ErrorContext, *,
                         indent: str | int | None = None) -> str:
        """Format the underlying exception, if any.

        Args:
            context: Error context containing the exception.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A single line naming the cause, or an empty string.
        """
        indent = cls._ensure_indent(indent)

        error = context.get('error')
        if error is None:
            return ''

        message = str(error).splitlines()[0] if str(error) else ''
        return f'{indent}caused by {type(error).__name__}: {message}{linesep}'

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string.

        Empty or whitespace-only lines are omitted.

        Args:
            value: Original multi-line string.
            indent: Indentation prefix.

        Returns:
            Indented string.
        """
        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input.

        Args:
            indent: Indentation as string or number of spaces.

        Returns:
            A string consisting of spaces or the provided string.
        """
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class NamespaceHandlerWarning(UserWarning):
    """Warning emitted for non-fatal namespace handler issues.

    This warning is used when a handler cannot be loaded or registered,
    but the error does not prevent further processing (for example,
    when running in non-strict mode).
    """


class EntityResolutionWarning(UserWarning):
    """Warning emitted when an external entity falls back to parser defaults.

    The remote lookup of a DTD or XSD failed and the markup parser will
    use its own resolution behavior, which may itself fail.
    """


class DefinitionError(Exception, ErrorFormatter):
    """Base exception for all xmldefs errors.

    All custom exceptions raised by the library should inherit from
    this class to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing location and cause.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class NamespaceHandlerError(DefinitionError):
    """Error raised for fatal namespace handler failures.

    This exception is raised when a handler entry point is invalid,
    misconfigured, or fails to load in strict mode.
    """

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Initialize a namespace handler error.

        Args:
            message: Human-readable error description.
            entrypoint: Optional entry point associated with the error.
        """
        self.entrypoint = entrypoint

        super().__init__(message)


class DefinitionStoreError(DefinitionError):
    """Error raised when definitions cannot be loaded or stored.

    Covers unreadable or malformed resources as well as registry
    rejections such as a duplicate name under a no-override policy.
    """


class PlaceholderResolutionError(DefinitionError):
    """Error raised when a required placeholder cannot be resolved.

    This condition is fatal for the whole document pass.
    """

    def __init__(self, message: str, *, placeholder: str, value: str) -> None:
        """Initialize a placeholder error.

        Args:
            message: Human-readable error description.
            placeholder: Name of the unresolvable placeholder.
            value: Original string containing the placeholder.
        """
        self.placeholder = placeholder
        self.value = value

        super().__init__(message)


class EntityResolutionError(DefinitionError):
    """Error raised when an external entity cannot be fetched in strict mode."""


class DefinitionParsingError(DefinitionError):
    """Error aggregating problems found while reading documents.

    Individual problems are reported independently during traversal;
    this error collects them into one consolidated failure report.
    """

    def __init__(self, message: str, *,
                 problems: 'Iterable[Problem]' = ()) -> None:
        """Initialize a parsing error.

        Args:
            message: Human-readable summary.
            problems: Reported problems in discovery order.
        """
        self.problems = tuple(problems)

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        if not self.problems:
            return self.message

        sections = [self.message]
        for position, problem in enumerate(self.problems, start=1):
            sections.append(f'[{position}] {problem.describe()}')

        return (linesep * 2).join(sections)

    @classmethod
    def from_problems(cls, problems: 'Iterable[Problem]') -> 'Self':
        """Create a consolidated error from reported problems.

        Args:
            problems: Reported problems.

        Returns:
            DefinitionParsingError listing every problem.
        """
        problems = tuple(problems)

        count = len(problems)
        noun = 'problem' if count == 1 else 'problems'

        return cls(f'Configuration contains {count} {noun}', problems=problems)
