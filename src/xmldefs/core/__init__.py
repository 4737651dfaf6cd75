"""Document reading and registry population.

This module defines the core infrastructure for turning configuration
documents into registry contents.

It provides:
- recursive traversal of documents with scoped defaults and profiles;
- resolution of imports relative to the current document;
- resolution of external DTD and schema entities without network access;
- discovery of namespace handlers from builtins and entry points.

The primary public entry point is `XmlDefinitionReader`, which maps a
location to resources, parses them, and registers their definitions.
"""

from .context import (
    AliasRecord,
    ComponentRecord,
    FailFastProblemReporter,
    ImportRecord,
    Problem,
    ProblemReporter,
    ReaderContext,
    ReaderEventListener,
)
from .entities import InputSource, KnownEntityResolver, ResourceEntityResolver
from .reader import XmlDefinitionReader
from .registrar import DocumentRegistrar

__all__ = (
    'AliasRecord',
    'ComponentRecord',
    'DocumentRegistrar',
    'FailFastProblemReporter',
    'ImportRecord',
    'InputSource',
    'KnownEntityResolver',
    'Problem',
    'ProblemReporter',
    'ReaderContext',
    'ReaderEventListener',
    'ResourceEntityResolver',
    'XmlDefinitionReader',
)
