"""Document vocabulary and identifier rules.

This module defines the element and attribute names of the default
vocabulary, the namespaces of the builtin handlers, and the strongly
typed aliases used to validate definition names.

The names defined here form part of the public document contract and
are relied upon by the registrar, the definition parser, namespace
handlers, and the bundled schemas.
"""

from re import compile as regexp
from typing import Annotated

from pydantic import Field

#: Namespace of the default vocabulary.
#: Elements without a namespace are treated as default vocabulary too.
DEFAULT_NAMESPACE = 'https://xmldefs.dev/schema/config'

#: Namespace of the builtin property-shortcut decorator.
P_NAMESPACE = 'https://xmldefs.dev/schema/p'

#: Namespace of the builtin utility elements.
UTIL_NAMESPACE = 'https://xmldefs.dev/schema/util'

CONFIG_ELEMENT = 'config'
IMPORT_ELEMENT = 'import'
ALIAS_ELEMENT = 'alias'
ITEM_ELEMENT = 'item'
PROPERTY_ELEMENT = 'property'
VALUE_ELEMENT = 'value'

RESOURCE_ATTRIBUTE = 'resource'
PROFILE_ATTRIBUTE = 'profile'
NAME_ATTRIBUTE = 'name'
ALIAS_ATTRIBUTE = 'alias'
ID_ATTRIBUTE = 'id'
KIND_ATTRIBUTE = 'kind'
PARENT_ATTRIBUTE = 'parent'
VALUE_ATTRIBUTE = 'value'
LAZY_INIT_ATTRIBUTE = 'lazy-init'
AUTOWIRE_ATTRIBUTE = 'autowire'
AUTOWIRE_CANDIDATE_ATTRIBUTE = 'autowire-candidate'
INIT_METHOD_ATTRIBUTE = 'init-method'
DESTROY_METHOD_ATTRIBUTE = 'destroy-method'
DEPENDS_ON_ATTRIBUTE = 'depends-on'

DEFAULT_LAZY_INIT_ATTRIBUTE = 'default-lazy-init'
DEFAULT_MERGE_ATTRIBUTE = 'default-merge'
DEFAULT_AUTOWIRE_ATTRIBUTE = 'default-autowire'
DEFAULT_AUTOWIRE_CANDIDATES_ATTRIBUTE = 'default-autowire-candidates'
DEFAULT_INIT_METHOD_ATTRIBUTE = 'default-init-method'
DEFAULT_DESTROY_METHOD_ATTRIBUTE = 'default-destroy-method'

#: Attribute value meaning "inherit from the enclosing fragment".
DEFAULT_VALUE = 'default'

#: Pattern splitting multi-value attributes on commas, semicolons and spaces.
#: Tabs and line breaks count as spaces.
MULTI_VALUE_PATTERN = regexp(r'[,;\s]+')

#: Base pattern for definition names.
_NAME_PATTERN = r'[^\s,;]+'

Name = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Definition name',
        description=(
            'Primary or secondary lookup name of a definition. '
            'Names must not contain whitespace or multi-value delimiters.'
        ),
        examples=[
            'dataSource',
            'app.cache',
        ],
    ),
]


def tokenize(value: str | None) -> tuple[str, ...]:
    """Split a multi-value attribute into trimmed non-empty tokens.

    Args:
        value: Raw attribute value, possibly `None`.

    Returns:
        Tuple of tokens in document order.
    """
    if not value:
        return ()

    return tuple(
        token
        for token in MULTI_VALUE_PATTERN.split(value)
        if token
    )
