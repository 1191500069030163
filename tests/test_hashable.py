import json

import pytest

from wirerpc.hashable import HashableValue, canonical_key


def test_hash_value_set_membership() -> None:
    null = HashableValue(None)
    t = HashableValue(True)
    f = HashableValue(False)
    ns = HashableValue(json.loads("[0, -0, 123.4567, -100000000]"))
    m = HashableValue(json.loads('{"field": 0, "other": -0}'))

    coll: set[HashableValue] = set()

    assert null not in coll
    coll.add(null)
    assert null in coll

    assert t not in coll
    assert f not in coll
    coll.add(t)
    assert t in coll
    assert f not in coll
    coll.add(f)
    assert f in coll

    assert ns not in coll
    coll.add(ns)
    assert HashableValue(json.loads("[0, 0, 123.4567, -100000000]")) in coll

    assert m not in coll
    coll.add(m)
    assert m in coll


def test_sentinels_are_distinct() -> None:
    values = [HashableValue(v) for v in (None, False, True, 0, 1, "", "null", [], {})]
    assert len(set(values)) == len(values)


def test_bool_is_not_a_number() -> None:
    assert HashableValue(True) != HashableValue(1)
    assert HashableValue(False) != HashableValue(0)


def test_integers_compare_numerically() -> None:
    assert HashableValue(7) == HashableValue(7)
    assert hash(HashableValue(2**63 - 1)) == hash(HashableValue(2**63 - 1))
    assert HashableValue(2**64 - 1) == HashableValue(2**64 - 1)
    assert HashableValue(2**64) == HashableValue(2**64)
    assert HashableValue(2**64) != HashableValue(2**64 + 1)


def test_integer_and_string_ids_differ() -> None:
    assert HashableValue(1) != HashableValue("1")
    assert HashableValue(2**70) != HashableValue(str(2**70))


def test_fractions_compare_by_text() -> None:
    assert HashableValue(0.5) == HashableValue(0.5)
    assert HashableValue(0.1 + 0.2) != HashableValue(0.3)
    assert canonical_key(1.0) != canonical_key(1)


def test_object_key_order_is_irrelevant() -> None:
    a = HashableValue({"a": 1, "b": [1, 2]})
    b = HashableValue({"b": [1, 2], "a": 1})
    assert a == b
    assert hash(a) == hash(b)
    assert a != HashableValue({"a": 1, "b": [2, 1]})


def test_usable_as_dict_key() -> None:
    table = {HashableValue(1): "one", HashableValue("x"): "x", HashableValue(None): "null"}
    assert table[HashableValue(1)] == "one"
    assert table[HashableValue("x")] == "x"
    assert table[HashableValue(None)] == "null"


def test_rejects_non_json_values() -> None:
    with pytest.raises(TypeError):
        HashableValue(object())
