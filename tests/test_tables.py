"""
Unit tests for table declaration normalization.
"""

import pytest

from simpleql.errors import ConfigValidationError
from simpleql.modules.tables import Column, Index, TableSchema, parse_column, parse_index, prepare_tables


def test_shorthand_column():
    column = parse_column("User", "email", "string/40")
    assert column.type == "string"
    assert column.length == 40


def test_shorthand_column_without_length():
    column = parse_column("User", "birthday", "date")
    assert column.type == "date"
    assert column.length is None


def test_shorthand_decimal_precision():
    column = parse_column("Product", "price", "decimal/8,2")
    assert column.length == 8
    assert column.scale == 2


def test_shorthand_rejects_bad_length():
    with pytest.raises(ConfigValidationError, match="expected an integer after the /"):
        parse_column("User", "email", "string/abc")


def test_descriptive_column():
    column = parse_column("User", "password", {"type": "binary", "length": 64, "notNull": True})
    assert column.type == "binary"
    assert column.length == 64
    assert column.not_null is True


def test_descriptive_column_is_strict():
    with pytest.raises(ConfigValidationError, match="for size in column password in table User"):
        parse_column("User", "password", {"type": "binary", "size": 64})


def test_unknown_column_type():
    with pytest.raises(ConfigValidationError, match="invalid type for email"):
        parse_column("User", "email", "varchar/40")


def test_index_shorthand():
    index = parse_index("User", {"email": Column(type="string")}, "email/unique/20")
    assert index == Index(column="email", type="unique", length=20)


def test_index_shorthand_unknown_part():
    with pytest.raises(ConfigValidationError, match="could not be interpreted"):
        parse_index("User", {"email": Column(type="string")}, "email/primary")


def test_index_object_form():
    index = parse_index("User", {}, {"column": ["firstname", "lastname"], "type": "unique"})
    assert index.column == ["firstname", "lastname"]


def test_prepare_tables_full_declaration():
    tables = prepare_tables({
        "User": {
            "email": "string/40",
            "password": {"type": "binary", "length": 64},
            "salt": "binary/16",
            "contacts": [{"name": "string"}],
            "notNull": ["email"],
            "index": ["email/unique"],
        }
    })

    user = tables["User"]
    assert isinstance(user, TableSchema)
    assert set(user.columns) == {"email", "password", "salt"}
    assert user.columns["email"].not_null is True
    assert user.has_unique_index("email")
    assert not user.has_unique_index("password")


def test_prepare_tables_legacy_index_mapping():
    tables = prepare_tables({"User": {"email": "string/40", "index": {"email": "unique"}}})
    assert tables["User"].has_unique_index("email")


def test_prepare_tables_keeps_schemas():
    schema = TableSchema(name="User")
    assert prepare_tables({"User": schema})["User"] is schema
