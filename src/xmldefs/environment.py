"""Runtime environment: profiles and placeholder resolution.

The environment decides which profile-gated fragments are loaded and
expands `${name}` and `${name:default}` placeholders in resource
locations. Values are resolved from explicit properties first and then
from process environment variables.

Settings are read from `XMLDEFS_*` environment variables, for example
`XMLDEFS_ACTIVE_PROFILES=dev,cloud`.
"""

from os import environ
from typing import TYPE_CHECKING, Annotated

from pydantic import Field, field_validator
from pydantic_settings import NoDecode, SettingsConfigDict

from xmldefs.errors import PlaceholderResolutionError
from xmldefs.models import SettingsModel
from xmldefs.names import tokenize

if TYPE_CHECKING:
    from collections.abc import Iterable

PLACEHOLDER_PREFIX = '${'
PLACEHOLDER_SUFFIX = '}'
VALUE_SEPARATOR = ':'
NEGATION = '!'

Profiles = Annotated[tuple[str, ...], NoDecode]


class Environment(SettingsModel):
    """Profile and property source consulted while reading documents.

    When no profile is active the default profiles apply, so a fragment
    gated with `profile="default"` is loaded in a plain environment.
    """

    model_config = SettingsConfigDict(
        env_prefix='XMLDEFS_',
    )

    active_profiles: Profiles = Field(
        default=(),
        title='Active profiles',
        description='Profiles explicitly activated for this environment.',
    )

    default_profiles: Profiles = Field(
        default=('default',),
        title='Default profiles',
        description='Profiles considered active when no profile is active.',
    )

    properties: dict[str, str] = Field(
        default_factory=dict,
        title='Properties',
        description=(
            'Explicit placeholder values. '
            'They take precedence over process environment variables.'
        ),
    )

    ignore_unresolvable: bool = Field(
        default=False,
        title='Ignore unresolvable placeholders',
        description=(
            'Leave unresolvable placeholders untouched instead of failing.'
        ),
    )

    @field_validator('active_profiles', 'default_profiles', mode='before')
    @classmethod
    def split_profiles(cls, value: 'str | Iterable[str]') -> tuple[str, ...]:
        """Accept comma-separated strings as well as sequences."""
        if isinstance(value, str):
            return tokenize(value)

        return tuple(value)

    def get_property(self, key: str) -> str | None:
        """Look up a placeholder value.

        Args:
            key: Placeholder name.

        Returns:
            The property value, the environment variable value, or `None`.
        """
        if key in self.properties:
            return self.properties[key]

        return environ.get(key)

    def is_profile_active(self, profile: str) -> bool:
        """Check whether a single profile is active.

        Args:
            profile: Profile name.

        Returns:
            True if the profile is active, or is a default profile while
            no profile is explicitly active.

        Raises:
            ValueError: If the profile name is blank.
        """
        if not profile or not profile.strip():
            raise ValueError(f'Invalid profile [{profile}]: must contain text')

        if self.active_profiles:
            return profile in self.active_profiles

        return profile in self.default_profiles

    def accepts_profiles(self, profiles: 'Iterable[str]') -> bool:
        """Check whether at least one of the given profiles is accepted.

        A profile prefixed with `!` is accepted when it is not active.

        Args:
            profiles: Profile tokens from a `profile` attribute.

        Returns:
            True if any token is accepted.

        Raises:
            ValueError: If no profile is given or a token is blank.
        """
        profiles = tuple(profiles)
        if not profiles:
            raise ValueError('Must specify at least one profile')

        for profile in profiles:
            if profile.startswith(NEGATION):
                if not self.is_profile_active(profile[len(NEGATION):]):
                    return True
            elif self.is_profile_active(profile):
                return True

        return False

    def resolve_placeholders(self, text: str) -> str:
        """Replace `${name}` placeholders in a string.

        Placeholders may carry a default value after a colon
        (`${name:fallback}`) and may be nested.

        Args:
            text: String to resolve.

        Returns:
            The resolved string.

        Raises:
            PlaceholderResolutionError: If a placeholder has no value and
                no default (unless unresolvable placeholders are ignored),
                or if placeholders refer to each other circularly.
        """
        return self._parse(text, frozenset())

    def _parse(self, text: str, visiting: frozenset[str]) -> str:
        """Resolve placeholders recursively, tracking the active chain."""
        parts: list[str] = []
        index = 0

        while (start := text.find(PLACEHOLDER_PREFIX, index)) >= 0:
            end = self._find_placeholder_end(text, start + len(PLACEHOLDER_PREFIX))
            if end < 0:
                break

            parts.append(text[index:start])

            placeholder = text[start + len(PLACEHOLDER_PREFIX):end]
            placeholder = self._parse(placeholder, visiting)
            if placeholder in visiting:
                raise PlaceholderResolutionError(
                    f'Circular placeholder reference {placeholder!r} in value {text!r}',
                    placeholder=placeholder,
                    value=text,
                )

            key, separator, default = placeholder.partition(VALUE_SEPARATOR)

            value = self.get_property(key)
            if value is None and separator:
                value = default

            if value is not None:
                parts.append(self._parse(value, visiting | {placeholder}))
            elif self.ignore_unresolvable:
                parts.append(text[start:end + len(PLACEHOLDER_SUFFIX)])
            else:
                raise PlaceholderResolutionError(
                    f'Could not resolve placeholder {key!r} in value {text!r}',
                    placeholder=key,
                    value=text,
                )

            index = end + len(PLACEHOLDER_SUFFIX)

        parts.append(text[index:])

        return ''.join(parts)

    @staticmethod
    def _find_placeholder_end(text: str, position: int) -> int:
        """Find the closing brace matching a placeholder prefix.

        Args:
            text: String being resolved.
            position: Index right after the placeholder prefix.

        Returns:
            Index of the matching suffix, or -1 if unterminated.
        """
        depth = 0

        while position < len(text):
            if text.startswith(PLACEHOLDER_PREFIX, position):
                depth += 1
                position += len(PLACEHOLDER_PREFIX)
            elif text.startswith(PLACEHOLDER_SUFFIX, position):
                if depth == 0:
                    return position
                depth -= 1
                position += len(PLACEHOLDER_SUFFIX)
            else:
                position += 1

        return -1
