"""Declarative XML configuration documents for Python applications.

The `xmldefs` package reads hierarchical XML documents into a registry
of named, aliasable configuration definitions.

Key features:
- nested fragments with inherited default settings;
- profile-gated fragments and `${...}` placeholders in import locations;
- imports of other documents by absolute location or relative path;
- bundled DTD and schema resolution that works without network access;
- custom namespaces contributed by third-party packages.

The registry stores definitions as plain records and does not
instantiate anything; interpreting them is left to the application.
"""
