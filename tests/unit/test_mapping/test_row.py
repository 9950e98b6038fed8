import copy
import pickle

import pytest

from dbmap.mapping import Row


def test_row_lookup_is_case_insensitive() -> None:
    row = Row({"Id": 1, "Name": "Ada"})
    assert row["id"] == 1
    assert row["NAME"] == "Ada"
    assert "nAmE" in row
    assert 1 not in row


def test_row_keeps_first_spelling_and_order() -> None:
    row = Row.from_values(["Id", "Name", "Age"], [1, "Ada", 36])
    row["NAME"] = "Grace"
    assert list(row) == ["Id", "Name", "Age"]
    assert row.canonical_name("name") == "Name"
    assert row.canonical_name("missing") is None
    assert row.to_dict() == {"Id": 1, "Name": "Grace", "Age": 36}


def test_row_attribute_access() -> None:
    row = Row(Id=1)
    assert row.id == 1
    row.Name = "Ada"
    assert row["name"] == "Ada"
    del row.name
    assert "Name" not in row
    with pytest.raises(AttributeError):
        _ = row.missing
    with pytest.raises(AttributeError):
        del row.missing


def test_row_delete_and_len() -> None:
    row = Row({"A": 1, "B": 2})
    del row["a"]
    assert len(row) == 1
    with pytest.raises(KeyError):
        del row["a"]


def test_row_equality_and_repr() -> None:
    row = Row({"Id": 1})
    assert row == {"Id": 1}
    assert repr(row) == "Row({'Id': 1})"


def test_row_copy_and_pickle() -> None:
    row = Row({"Id": 1, "Tags": ["a"]})
    clone = copy.deepcopy(row)
    assert clone == row
    assert clone["tags"] is not row["tags"]
    assert pickle.loads(pickle.dumps(row)) == row
