"""Tests for definition elements and builtin namespace handlers."""

from typing import TYPE_CHECKING

import pytest

from xmldefs.core import DocumentRegistrar

if TYPE_CHECKING:
    from collections.abc import Callable

    from lxml.etree import _Element

    from xmldefs.core import ReaderContext


def _read(context: 'ReaderContext', parse_xml: 'Callable[[str], _Element]', markup: str) -> None:
    DocumentRegistrar(context).register_definitions(parse_xml(f"""
        <config xmlns:p="https://xmldefs.dev/schema/p"
                xmlns:util="https://xmldefs.dev/schema/util">
            {markup}
        </config>
    """))


def _messages(context: 'ReaderContext') -> list[str]:
    return [problem.message for problem in context.reporter.errors]


def test_definition_attributes(make_context: 'Callable[..., ReaderContext]',
                               parse_xml: 'Callable[[str], _Element]') -> None:
    """Read every definition attribute."""
    context = make_context()
    _read(context, parse_xml, """
        <item id="service" kind="app.Service" parent="base" lazy-init="true"
              autowire="by-type" autowire-candidate="false" init-method="open"
              destroy-method="close" depends-on="db, cache"/>
    """)

    definition = context.registry.get_definition('service')

    assert definition.kind == 'app.Service'
    assert definition.parent == 'base'
    assert definition.lazy_init is True
    assert definition.autowire == 'by-type'
    assert definition.autowire_candidate is False
    assert definition.init_method == 'open'
    assert definition.destroy_method == 'close'
    assert definition.depends_on == ('db', 'cache')


@pytest.mark.parametrize(('markup', 'name', 'aliases'), (
    pytest.param('<item id="main" name="a, b;c"/>', 'main', ('a', 'b', 'c'), id='id-and-names'),
    pytest.param('<item name="first second"/>', 'first', ('second',), id='names-only'),
    pytest.param('<item kind="cache"/>', 'cache#0', (), id='generated'),
    pytest.param('<item/>', 'item#0', (), id='generated-without-kind'),
))
def test_definition_names(markup: str, name: str, aliases: tuple[str, ...],
                          make_context: 'Callable[..., ReaderContext]',
                          parse_xml: 'Callable[[str], _Element]') -> None:
    """Derive primary names and aliases."""
    context = make_context()
    _read(context, parse_xml, markup)

    assert context.registry.definition_names == (name,)
    assert context.registry.get_aliases(name) == aliases


def test_generated_names_are_unique(make_context: 'Callable[..., ReaderContext]',
                                    parse_xml: 'Callable[[str], _Element]') -> None:
    """Number generated names within the registry."""
    context = make_context()
    _read(context, parse_xml, '<item kind="cache"/><item kind="cache"/>')

    assert context.registry.definition_names == ('cache#0', 'cache#1')


def test_scope_autowire_candidates(make_context: 'Callable[..., ReaderContext]',
                                   parse_xml: 'Callable[[str], _Element]') -> None:
    """Match definition names against candidate patterns of the fragment."""
    context = make_context()
    _read(context, parse_xml, """
        <config default-autowire-candidates="*Service, *Repository" default-autowire="by-name">
            <item id="userService"/>
            <item id="helper"/>
            <item id="helperRepository" autowire="no"/>
        </config>
    """)

    def candidate(name: str) -> bool:
        return context.registry.get_definition(name).autowire_candidate

    assert candidate('userService') is True
    assert candidate('helper') is False
    assert candidate('helperRepository') is True
    assert context.registry.get_definition('helper').autowire == 'by-name'
    assert context.registry.get_definition('helperRepository').autowire == 'no'


def test_properties(make_context: 'Callable[..., ReaderContext]',
                    parse_xml: 'Callable[[str], _Element]') -> None:
    """Collect scalar and list properties in document order."""
    context = make_context()
    _read(context, parse_xml, """
        <item id="client" p:retries="3">
            <property name="url" value="https://example.com"/>
            <property name="hosts">
                <value>a.example.com</value>
                <value> b.example.com </value>
            </property>
        </item>
    """)

    assert context.registry.get_definition('client').properties == {
        'url': 'https://example.com',
        'hosts': ['a.example.com', 'b.example.com'],
        'retries': '3',
    }


@pytest.mark.parametrize(('markup', 'message'), (
    pytest.param(
        '<property value="1"/>',
        "Tag 'property' must have a 'name' attribute",
        id='missing-name',
    ),
    pytest.param(
        '<property name="a" value="1"/><property name="a" value="2"/>',
        "Multiple property definitions for property 'a'",
        id='duplicate',
    ),
    pytest.param(
        '<property name="a" value="1"><value>2</value></property>',
        "Property 'a' is only allowed to contain either a 'value' attribute or 'value' sub-elements",
        id='ambiguous',
    ),
    pytest.param(
        '<property name="a"/>',
        "Property 'a' must specify a value",
        id='no-value',
    ),
))
def test_invalid_properties(markup: str, message: str,
                            make_context: 'Callable[..., ReaderContext]',
                            parse_xml: 'Callable[[str], _Element]') -> None:
    """Report invalid properties and skip the definition."""
    context = make_context()
    _read(context, parse_xml, f'<item id="broken">{markup}</item><item id="valid"/>')

    assert _messages(context) == [message]
    assert context.registry.definition_names == ('valid',)


@pytest.mark.parametrize(('markup', 'message'), (
    pytest.param(
        '<item id="a" autowire="magic"/>',
        "Invalid autowire mode 'magic' for definition 'a'",
        id='autowire',
    ),
    pytest.param(
        '<config default-autowire="magic"><item id="a"/></config>',
        "Invalid default autowire mode 'magic'",
        id='default-autowire',
    ),
))
def test_invalid_autowire(markup: str, message: str,
                          make_context: 'Callable[..., ReaderContext]',
                          parse_xml: 'Callable[[str], _Element]') -> None:
    """Report unknown autowire modes."""
    context = make_context()
    _read(context, parse_xml, markup)

    assert _messages(context) == [message]


def test_inline_property_conflict(make_context: 'Callable[..., ReaderContext]',
                                  parse_xml: 'Callable[[str], _Element]') -> None:
    """Report properties declared both inline and as elements."""
    context = make_context()
    _read(context, parse_xml, """
        <item id="client" p:url="https://inline.example.com">
            <property name="url" value="https://example.com"/>
        </item>
    """)

    assert _messages(context) == [
        "Property 'url' is already defined using both <property> and inline syntax. "
        'Only one approach may be used per property.',
    ]
    assert context.registry.get_definition('client').properties == {'url': 'https://example.com'}


def test_custom_attributes(make_context: 'Callable[..., ReaderContext]',
                           parse_xml: 'Callable[[str], _Element]') -> None:
    """Ignore foreign attributes and report unknown library namespaces."""
    context = make_context()
    _read(context, parse_xml, """
        <item xmlns:ext="urn:example:ext"
              xmlns:lib="https://xmldefs.dev/schema/unknown"
              id="client" ext:note="ignored" lib:flag="true"/>
    """)

    assert _messages(context) == ['Unable to locate handler for namespace [https://xmldefs.dev/schema/unknown]']
    assert 'client' in context.registry


def test_util_elements(make_context: 'Callable[..., ReaderContext]',
                       parse_xml: 'Callable[[str], _Element]') -> None:
    """Register constants and lists."""
    context = make_context()
    _read(context, parse_xml, """
        <util:constant id="timeout" value="30"/>
        <util:list id="hosts">
            <util:value>a.example.com</util:value>
            <util:value>b.example.com</util:value>
        </util:list>
    """)

    timeout = context.registry.get_definition('timeout')
    assert timeout.kind == 'constant'
    assert timeout.properties == {'value': '30'}

    hosts = context.registry.get_definition('hosts')
    assert hosts.kind == 'list'
    assert hosts.properties == {'values': ['a.example.com', 'b.example.com']}


@pytest.mark.parametrize(('markup', 'message'), (
    pytest.param('<util:constant value="1"/>', 'Attribute id is required', id='missing-id'),
    pytest.param('<util:constant id="c"/>', "Constant 'c' must declare a value", id='missing-value'),
    pytest.param(
        '<util:map id="m"/>',
        'Cannot locate parser for element [map] in namespace [https://xmldefs.dev/schema/util]',
        id='unknown-element',
    ),
))
def test_invalid_util_elements(markup: str, message: str,
                               make_context: 'Callable[..., ReaderContext]',
                               parse_xml: 'Callable[[str], _Element]') -> None:
    """Report invalid utility elements."""
    context = make_context()
    _read(context, parse_xml, markup)

    assert _messages(context) == [message]
    assert len(context.registry) == 0


def test_scope_merge_default(make_context: 'Callable[..., ReaderContext]',
                             parse_xml: 'Callable[[str], _Element]') -> None:
    """Carry the merge default of the enclosing fragment into definitions."""
    context = make_context()
    _read(context, parse_xml, """
        <config default-merge="true">
            <item id="merged"/>
            <config default-merge="default">
                <item id="inherited"/>
            </config>
        </config>
        <item id="plain"/>
    """)

    def merge(name: str) -> bool:
        return context.registry.get_definition(name).merge

    assert merge('merged') is True
    assert merge('inherited') is True
    assert merge('plain') is False
