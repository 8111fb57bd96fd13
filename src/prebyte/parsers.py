"""Structured-format parsers producing the generic Value model.

Public API::

    from prebyte.parsers import parse_file, parse_string, parser_type

    value = parse_string("variables: {a: 1}", parser_type("yaml"))
    settings = parse_file("~/.prebyte/settings.toml")
"""

from __future__ import annotations

import configparser
import csv
import io
import json
import tomllib
import xml.etree.ElementTree as ElementTree
from enum import Enum
from pathlib import Path

import yaml

from prebyte.model.value import Value, to_value


class ParseError(ValueError):
    """A document could not be parsed in the requested format."""


class ParserType(str, Enum):
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    INI = "ini"
    ENV = "env"
    CSV = "csv"
    XML = "xml"


_PARSER_NAMES = {
    "json": ParserType.JSON,
    "yaml": ParserType.YAML,
    "yml": ParserType.YAML,
    "toml": ParserType.TOML,
    "ini": ParserType.INI,
    "cfg": ParserType.INI,
    "env": ParserType.ENV,
    "csv": ParserType.CSV,
    "xml": ParserType.XML,
}


def parser_type(name: str) -> ParserType:
    """Resolve a format name (or file extension without the dot)."""
    try:
        return _PARSER_NAMES[name.strip().lower()]
    except KeyError:
        raise ParseError(f"Unknown parser type: {name!r}") from None


# ---------------------------------------------------------------------------
# Individual formats
# ---------------------------------------------------------------------------

def _parse_json(text: str) -> object:
    return json.loads(text)


def _parse_yaml(text: str) -> object:
    return yaml.safe_load(text)


def _parse_toml(text: str) -> object:
    return tomllib.loads(text)


def _parse_ini(text: str) -> object:
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # keep key case
    parser.read_string(text)
    result: dict[str, object] = dict(parser.defaults())
    for section in parser.sections():
        result[section] = {
            key: value
            for key, value in parser.items(section)
            if key not in parser.defaults()
        }
    return result


def _parse_env(text: str) -> object:
    result: dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ParseError(f"Invalid env line {lineno}: {line!r}")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        result[key] = value
    return result


def _parse_csv(text: str) -> object:
    return [dict(row) for row in csv.DictReader(io.StringIO(text))]


def _xml_node(element: ElementTree.Element) -> object:
    """Convert an element: attributes become ``@name`` keys, leading text
    ``_text``, and repeated child tags collect into a list.

    An element holding nothing but text collapses to that text.
    """
    text = (element.text or "").strip()
    if not element.attrib and len(element) == 0:
        return text

    result: dict[str, object] = {f"@{name}": value for name, value in element.attrib.items()}
    if text:
        result["_text"] = text
    for child in element:
        if not isinstance(child.tag, str):
            continue
        converted = _xml_node(child)
        if child.tag not in result:
            result[child.tag] = converted
        elif isinstance(result[child.tag], list):
            result[child.tag].append(converted)
        else:
            result[child.tag] = [result[child.tag], converted]
    return result


def _parse_xml(text: str) -> object:
    # The root element is the document; its tag is dropped.
    return _xml_node(ElementTree.fromstring(text))


_PARSERS = {
    ParserType.JSON: _parse_json,
    ParserType.YAML: _parse_yaml,
    ParserType.TOML: _parse_toml,
    ParserType.INI: _parse_ini,
    ParserType.ENV: _parse_env,
    ParserType.CSV: _parse_csv,
    ParserType.XML: _parse_xml,
}


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def parse_string(text: str, kind: ParserType | str) -> Value:
    """Parse *text* in the given format into a Value.

    An empty document yields a null Value.
    """
    if not isinstance(kind, ParserType):
        kind = parser_type(kind)
    try:
        data = _PARSERS[kind](text)
    except ParseError:
        raise
    except (ValueError, TypeError, yaml.YAMLError, configparser.Error, csv.Error,
            ElementTree.ParseError) as exc:
        raise ParseError(f"Error parsing {kind.value} input: {exc}") from exc
    return to_value(data)


def file_parser_type(path: str | Path) -> ParserType:
    path = Path(path)
    if path.name == ".env":
        return ParserType.ENV
    if not path.suffix:
        raise ParseError(f"Cannot determine the format of {str(path)!r}")
    return parser_type(path.suffix[1:])


def parse_file(path: str | Path) -> Value:
    path = Path(path).expanduser()
    kind = file_parser_type(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ParseError(f"Cannot read {str(path)!r}: {exc.strerror or exc}") from exc
    return parse_string(text, kind)
