import json
import pytest
import yaml

from lox.lox_serialize import serialize, to_builtin, locals_table
from lox.lox_scanner import scan
from lox.lox_parser import parse
from lox.lox_resolver import resolve
from lox.lox_errors import ParsingError


def test_tokens_to_json():
    out = serialize(scan('print "hi";'), fmt='json', pretty=False)
    data = json.loads(out)
    assert [t['type'] for t in data] == ["PRINT", "STRING", "SEMICOLON", "EOF"]
    assert data[1]['literal'] == "hi"
    assert data[1]['line'] == 1


def test_tree_to_yaml_round_trips_through_safe_load():
    steps = parse(scan("let a = 1 + 2;"))
    data = yaml.safe_load(serialize(steps, fmt='yaml'))
    [var] = data
    assert var['node'] == "Var"
    assert var['name'] == "a"
    assert var['initializer']['node'] == "Binary"
    assert var['initializer']['operator'] == "+"
    assert var['initializer']['left'] == {'node': 'Literal', 'value': 1.0, 'line': 1}


def test_blocks_serialize_their_steps():
    [block] = parse(scan("{ print 1; }"))
    built = to_builtin(block)
    assert built['node'] == "Block"
    assert built['steps'][0]['node'] == "Print"


def test_errors_serialize_with_kind():
    assert to_builtin(ParsingError(2, "bad")) == {'kind': 'ParseError', 'line': 2, 'message': 'bad'}


def test_locals_table_rows():
    steps = parse(scan("let a = 1;\n{\n  let b = a;\n  print b;\n}"))
    rows = locals_table(resolve(steps))
    assert rows == [
        {'name': 'a', 'line': 3, 'node': 'Variable', 'depth': 1},
        {'name': 'b', 'line': 4, 'node': 'Variable', 'depth': 0},
    ]


def test_unsupported_format():
    with pytest.raises(ValueError):
        serialize([], fmt='xml')
