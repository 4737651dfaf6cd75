"""Test suite for the xmldefs package.

This package contains unit and integration tests validating document
traversal, imports, entity resolution, namespace handlers, resources,
the environment, the registry, and the command-line interface.
"""
