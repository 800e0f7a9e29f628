from __future__ import annotations

import array
import base64
import datetime
import math
import re

import pytest

from tagjson import (
    BackingApiFailure,
    BigInt,
    JSError,
    JSHole,
    JSMap,
    JSRegExp,
    JSSet,
    JSSymbol,
    JSUndefined,
    MalformedWrapper,
    UnknownReferenceId,
    UnknownTypedArrayConstructor,
    UnsupportedValueKind,
    decode,
    register_error,
)

UTC = datetime.timezone.utc


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def test_plain_json():
    tree = {"a": [1, 2.5, None, True, "s"], "b": {}}
    res = decode(tree)
    assert res == tree
    assert res is not tree


def test_unknown_tags_are_data():
    tree = {"$$type": "Sandwich", "value": {"$$type": "Undefined"}}
    assert decode(tree) == {"$$type": "Sandwich", "value": JSUndefined}


def test_markers():
    assert decode([{"$$type": "Hole"}, {"$$type": "Undefined"}]) == [
        JSHole,
        JSUndefined,
    ]
    assert decode({"$$type": "Hole"}) is JSHole


def test_numbers():
    assert math.isnan(decode({"$$type": "Number", "value": "NaN"}))
    assert decode({"$$type": "Number", "value": "Infinity"}) == math.inf
    assert decode({"$$type": "Number", "value": "-Infinity"}) == -math.inf
    assert decode({"$$type": "Number", "value": "1.5"}) == 1.5
    with pytest.raises(MalformedWrapper, match="'Number'"):
        decode({"$$type": "Number", "value": "lots"})
    with pytest.raises(MalformedWrapper):
        decode({"$$type": "Number", "value": 1})


def test_bigint():
    res = decode({"$$type": "BigInt", "value": "-18446744073709551616"})
    assert type(res) is BigInt
    assert res == -(2**64)
    with pytest.raises(MalformedWrapper, match="not an integer"):
        decode({"$$type": "BigInt", "value": "12x"})


@pytest.mark.parametrize(
    "text, expected",
    [
        (
            "2024-01-02T03:04:05.678Z",
            datetime.datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=UTC),
        ),
        (
            "2024-01-02T12:00:00+02:00",
            datetime.datetime(2024, 1, 2, 10, tzinfo=UTC),
        ),
        (
            "2024-01-02T03:04:05",
            datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
        ),
    ],
)
def test_dates(text, expected):
    res = decode({"$$type": "Date", "value": text})
    assert res == expected
    assert res.tzinfo is UTC


def test_bad_date():
    with pytest.raises(MalformedWrapper, match="not a date"):
        decode({"$$type": "Date", "value": "yesterday"})


def test_patterns():
    p = decode(
        {"$$type": "RegExp", "value": {"source": r"a+\d", "flags": "gimy"}}
    )
    assert p == JSRegExp(r"a+\d", "gimy")
    compiled = p.compile()
    assert compiled.flags & (re.I | re.M) == re.I | re.M
    assert not compiled.flags & re.S
    with pytest.raises(MalformedWrapper, match="unknown flag"):
        decode({"$$type": "RegExp", "value": {"source": "a", "flags": "q"}})
    # Sources are only checked when compiling.
    p = decode({"$$type": "RegExp", "value": {"source": "(", "flags": ""}})
    with pytest.raises(re.error):
        p.compile()
    with pytest.raises(MalformedWrapper):
        decode({"$$type": "RegExp", "value": {"source": "a"}})


def test_collections():
    s = decode({"$$type": "Set", "value": [1, [2], 1]})
    assert isinstance(s, JSSet)
    assert list(s) == [1, [2]]
    m = decode(
        {
            "$$type": "Map",
            "value": [["a", 1], [[1], {"$$type": "Undefined"}]],
        }
    )
    assert isinstance(m, JSMap)
    assert list(m.items()) == [("a", 1), ([1], JSUndefined)]


def test_booleans_and_numbers_are_distinct():
    s = decode({"$$type": "Set", "value": [1, True, 0, False]})
    assert len(s) == 4
    assert [type(x) for x in s] == [int, bool, int, bool]
    m = decode({"$$type": "Map", "value": [[1, "a"], [True, "b"]]})
    assert [(type(k), v) for k, v in m.items()] == [(int, "a"), (bool, "b")]
    assert m[True] == "b"
    assert m[1] == "a"


@pytest.mark.parametrize(
    "tree",
    [
        {"$$type": "Set", "value": {}},
        {"$$type": "Set"},
        {"$$type": "Map", "value": [["lonely"]]},
        {"$$type": "Map", "value": ["a"]},
        {"$$type": "object", "$$id": 1, "value": []},
        {"$$type": "array", "$$id": 1, "value": {}},
        {"$$type": "Error", "value": "boom"},
        {"$$type": "Buffer", "value": 12},
        {"$$type": "PropKeyString", "value": 12},
    ],
)
def test_malformed(tree):
    with pytest.raises(MalformedWrapper):
        decode(tree)


def test_binary():
    assert decode({"$$type": "Buffer", "value": "aGk="}) == b"hi"
    res = decode({"$$type": "ArrayBuffer", "value": "aGk="})
    assert type(res) is bytearray
    assert res == b"hi"


def test_lenient_base64():
    assert decode({"$$type": "Buffer", "value": "aGk=!!!!aGk="}) == b"hi"


def test_typed_arrays():
    res = decode(
        {
            "$$type": "TypedArray",
            "arrayType": "Int16Array",
            "value": b64(b"\x01\x00\xfe\xff"),
            "byteOffset": 0,
            "length": 2,
        }
    )
    assert res == array.array("h", [1, -2])


def test_typed_array_length():
    node = {
        "$$type": "TypedArray",
        "arrayType": "Uint8Array",
        "value": b64(b"\x01\x02\x03"),
    }
    assert decode(node) == array.array("B", [1, 2, 3])
    assert decode({**node, "length": 2}) == array.array("B", [1, 2])
    with pytest.raises(BackingApiFailure):
        decode({**node, "length": 4})


def test_clamped_arrays_are_unsigned_bytes():
    res = decode(
        {
            "$$type": "TypedArray",
            "arrayType": "Uint8ClampedArray",
            "value": "/w==",
        }
    )
    assert res.typecode == "B"
    assert list(res) == [255]


@pytest.mark.parametrize("name", ["Int128Array", None, 3])
def test_unknown_typed_array(name):
    node = {"$$type": "TypedArray", "arrayType": name, "value": ""}
    with pytest.raises(UnknownTypedArrayConstructor) as exc_info:
        decode(node)
    assert exc_info.value.name == name


def test_data_view():
    node = {"$$type": "DataView", "value": b64(b"abc"), "length": 3}
    res = decode(node)
    assert isinstance(res, memoryview)
    assert res.tobytes() == b"abc"
    assert not res.readonly
    assert decode({**node, "length": 1}).tobytes() == b"a"
    with pytest.raises(BackingApiFailure):
        decode({**node, "length": 5})


def test_prop_keys():
    assert decode({"$$type": "PropKeyString", "value": "a"}) == "a"
    assert decode({"$$type": "PropKeyString"}) is JSUndefined
    g = decode({"$$type": "PropKeySymbol", "global": True, "key": "test.g"})
    assert g is JSSymbol.for_key("test.g")
    local = decode(
        {"$$type": "PropKeySymbol", "global": False, "description": "d"}
    )
    assert local.description == "d"
    assert JSSymbol.key_for(local) is None
    anonymous = decode({"$$type": "PropKeySymbol", "global": False})
    assert anonymous.description is None


def test_references():
    tree = {
        "$$type": "object",
        "$$id": 1,
        "value": {
            "self": {"$$type": "reference", "$$id": 1},
            "items": {
                "$$type": "array",
                "$$id": 2,
                "value": [{"$$type": "reference", "$$id": 2}],
            },
        },
    }
    res = decode(tree)
    assert res["self"] is res
    assert res["items"][0] is res["items"]


def test_set_references():
    s = decode(
        {
            "$$type": "Set",
            "$$id": 1,
            "value": [{"$$type": "reference", "$$id": 1}],
        }
    )
    assert s in s


def test_references_to_leaves():
    res = decode(
        [
            {"$$type": "Buffer", "$$id": 1, "value": "aGk="},
            {"$$type": "reference", "$$id": 1},
        ]
    )
    assert res[0] is res[1]


def test_integral_float_ids():
    res = decode(
        {
            "$$type": "array",
            "$$id": 1.0,
            "value": [{"$$type": "reference", "$$id": 1}],
        }
    )
    assert res[0] is res
    with pytest.raises(UnknownReferenceId):
        decode(
            [
                {"$$type": "array", "$$id": 1.5, "value": []},
                {"$$type": "reference", "$$id": 1},
            ]
        )


@pytest.mark.parametrize("ident", [2, "1", None])
def test_unknown_references(ident):
    tree = [
        {"$$type": "array", "$$id": 1, "value": []},
        {"$$type": "reference", "$$id": ident},
    ]
    with pytest.raises(UnknownReferenceId) as exc_info:
        decode(tree)
    assert exc_info.value.ident == ident


def test_forward_reference():
    tree = [
        {"$$type": "reference", "$$id": 1},
        {"$$type": "array", "$$id": 1, "value": []},
    ]
    with pytest.raises(UnknownReferenceId):
        decode(tree)


def test_builtin_errors():
    err = decode(
        {"$$type": "Error", "value": {"name": "KeyError", "message": "k"}}
    )
    assert type(err) is KeyError
    assert err.args == ("k",)
    assert vars(err)["name"] == "KeyError"


def test_unknown_errors():
    err = decode(
        {
            "$$type": "Error",
            "value": {"name": "RangeError", "message": "far", "stack": "s"},
        }
    )
    assert type(err) is JSError
    assert (err.name, err.message, err.stack) == ("RangeError", "far", "s")


def test_errors_without_message():
    err = decode({"$$type": "Error", "value": {"name": "Error"}})
    assert type(err) is JSError
    assert err.message == ""


def test_registered_errors():
    @register_error
    class QuotaExceeded(Exception):
        pass

    @register_error(name="ERR_PICKY")
    class Picky(Exception):
        def __init__(self, a, b):
            super().__init__(a, b)

    err = decode(
        {"$$type": "Error", "value": {"name": "QuotaExceeded", "message": "m"}}
    )
    assert type(err) is QuotaExceeded
    with pytest.raises(BackingApiFailure, match="ERR_PICKY"):
        decode({"$$type": "Error", "value": {"name": "ERR_PICKY"}})


def test_error_props():
    sym = {"$$type": "PropKeySymbol", "global": False, "description": "s"}
    err = decode(
        {
            "$$type": "Error",
            "$$id": 1,
            "value": {
                "name": "Error",
                "message": "m",
                "props": [
                    [{"$$type": "PropKeyString", "value": "code"}, 42],
                    [
                        {"$$type": "PropKeyString", "value": "cause"},
                        {"$$type": "reference", "$$id": 1},
                    ],
                    [sym, [1]],
                    # Keys that are neither strings nor symbols are skipped
                    [1, "one"],
                    [{"$$type": "PropKeyString"}, "undefined"],
                ],
            },
        }
    )
    assert err.code == 42
    assert err.cause is err
    [key] = [k for k in vars(err) if isinstance(k, JSSymbol)]
    assert key.description == "s"
    assert vars(err)[key] == [1]
    assert set(k for k in vars(err) if isinstance(k, str)) == {
        "name",
        "code",
        "cause",
    }


def test_non_string_keys():
    with pytest.raises(UnsupportedValueKind):
        decode({1: "a"})


def test_transform():
    seen = []

    def hook(node, replace):
        seen.append(node)
        if isinstance(node, str) and node.startswith("#"):
            replace({"$$type": "BigInt", "value": node[1:]})

    res = decode(["#12", {"a": "#-1"}], transform=hook)
    assert res == [12, {"a": -1}]
    assert type(res[0]) is BigInt
    # Substitutes are not offered again.
    assert {"$$type": "BigInt", "value": "12"} not in seen


def test_transform_children_of_substitutes():
    def hook(node, replace):
        if node == "box":
            replace(["inner"])
        elif node == "inner":
            replace("unboxed")

    assert decode({"k": "box"}, transform=hook) == {"k": ["unboxed"]}


def test_transform_skips_holes_in_arrays():
    seen = []
    res = decode(
        [{"$$type": "Hole"}, 1], transform=lambda n, replace: seen.append(n)
    )
    assert res == [JSHole, 1]
    assert seen == [[{"$$type": "Hole"}, 1], 1]
