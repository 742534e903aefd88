"""
CRM - List Fields Tests
Mise en page des listes (simple / générale) et mutation atomique d'un item.
Run: cd backend && pytest tests/test_list_fields.py -v
"""

import copy

import pytest

from models import FieldSchema
from services.data_collection_errors import InvalidFieldValueError
from services.field_renderer import add_list_item, edit_list_item, remove_list_item
from services.list_fields import (
    append_item,
    describe_list,
    item_choices,
    item_label,
    list_layout,
    normalize_items,
    remove_item,
    update_item,
)


def list_field(key, item_schema, **options):
    return FieldSchema(
        id=f"f-{key}",
        key=key,
        label=key,
        field_type="list",
        data_path=f"lists.{key}",
        options={"itemSchema": item_schema, **options},
    )


ASSET_SCHEMA = {
    "has_insurance": "boolean",
    "months_remaining": "number",
    "name": "text",
    "installment_monthly_brl": "currency",
    "market_value_brl": "currency",
    "is_paid_off": "boolean",
}


class TestListLayout:

    def test_simple_list_detection(self):
        layout = list_layout(list_field("income", {"name": "text", "value_monthly_brl": "currency"}))
        assert layout["simple"] is True
        assert layout["value_key"] == "value_monthly_brl"
        assert layout["main"] == ["name", "value_monthly_brl"]

    def test_two_keys_without_known_value_key_is_general(self):
        layout = list_layout(list_field("children", {"name": "text", "idade": "number"}))
        assert layout["simple"] is False
        assert layout["main"] == ["name", "idade"]

    def test_three_keys_is_general(self):
        layout = list_layout(list_field("x", {"name": "text", "value_monthly_brl": "currency", "note": "text"}))
        assert layout["simple"] is False

    def test_asset_order_and_conditional_split(self):
        layout = list_layout(list_field("cars", ASSET_SCHEMA))
        assert layout["main"] == ["name", "market_value_brl", "is_paid_off", "has_insurance"]
        assert layout["conditional"] == ["installment_monthly_brl", "months_remaining"]
        assert layout["secondary"] == []
        assert layout["columns"] == 4

    def test_secondary_how_and_unknown_keys_last(self):
        schema = {"extra": "text", "how": "text", "priority": "select", "name": "text"}
        layout = list_layout(list_field("goals_list", schema))
        assert layout["main"] == ["name", "priority", "extra"]
        assert layout["secondary"] == ["how"]

    def test_unknown_list_keeps_schema_order(self):
        layout = list_layout(list_field("misc", {"b": "text", "a": "text"}))
        assert layout["main"] == ["b", "a"]


class TestItemChoicesAndLabels:

    def test_camel_case_options(self):
        field = list_field("debts_list", {"interest_type": "select"}, interestTypeOptions=["Pré", "Pós"], typeOptions=["X"])
        assert item_choices(field, "interest_type") == ["Pré", "Pós"]

    def test_type_options_fallback(self):
        field = list_field("debts_list", {"kind": "select"}, typeOptions=["X", "Y"])
        assert item_choices(field, "kind") == ["X", "Y"]

    def test_labels(self):
        assert item_label("outstanding_brl") == "Saldo Devedor (R$)"
        assert item_label("unknown_key") == "unknown_key"


class TestRowOperations:
    """Chaque opération produit une nouvelle liste"""

    def test_append_empty_item(self):
        items = [{"name": "a"}]
        result = append_item(items)
        assert result == [{"name": "a"}, {}]
        assert items == [{"name": "a"}]

    def test_remove_by_index(self):
        assert remove_item([{"i": 0}, {"i": 1}, {"i": 2}], 1) == [{"i": 0}, {"i": 2}]

    def test_out_of_range(self):
        with pytest.raises(IndexError):
            remove_item([], 0)
        with pytest.raises(IndexError):
            update_item([{}], 3, "k", 1)

    def test_atomic_item_edit(self):
        items = [{"name": "a", "v": 1}, {"name": "b", "v": 2}, {"name": "c", "v": 3}]
        snapshot = copy.deepcopy(items)
        result = update_item(items, 1, "v", 20)

        assert len(result) == len(items)
        assert items == snapshot
        for i, (before, after) in enumerate(zip(items, result)):
            if i == 1:
                assert after is not before
                assert after == {"name": "b", "v": 20}
            else:
                assert after is before

    def test_normalize_items(self):
        assert normalize_items(None) == []
        assert normalize_items("x") == []
        assert normalize_items([{"a": 1}, "junk"]) == [{"a": 1}, {}]


class TestListEditsThroughRenderer:

    def test_add_edit_remove(self):
        field = list_field("income", {"name": "text", "value_monthly_brl": "currency"})
        doc = add_list_item(field, {})
        doc = add_list_item(field, doc)
        doc = edit_list_item(field, doc, 1, "value_monthly_brl", "1.500,00")
        assert doc["lists"]["income"] == [{}, {"value_monthly_brl": 1500.0}]

        doc = remove_list_item(field, doc, 0)
        assert doc["lists"]["income"] == [{"value_monthly_brl": 1500.0}]

    def test_bad_index_is_invalid_value(self):
        field = list_field("income", {"name": "text", "value_monthly_brl": "currency"})
        with pytest.raises(InvalidFieldValueError):
            remove_list_item(field, {}, 0)

    def test_list_operation_on_other_type(self):
        field = FieldSchema(id="f", key="t", label="t", field_type="text", data_path="t")
        with pytest.raises(InvalidFieldValueError):
            add_list_item(field, {})


class TestDescribeList:

    def test_conditional_cells_hidden_when_paid_off(self):
        field = list_field("cars", ASSET_SCHEMA)
        rows = describe_list(field, [
            {"name": "Civic", "is_paid_off": True},
            {"name": "Gol", "is_paid_off": False, "months_remaining": 12},
        ])["rows"]

        assert rows[0]["conditional"] == []
        assert [c["key"] for c in rows[1]["conditional"]] == ["installment_monthly_brl", "months_remaining"]
        assert rows[1]["conditional"][1]["value"] == 12

    def test_cells_carry_type_props(self):
        field = list_field("debts_list", {"name": "text", "interest_type": "select"}, interestTypeOptions=["Pré"])
        row = describe_list(field, [{"name": None}])["rows"][0]
        name_cell, interest_cell = row["main"]
        assert name_cell["value"] == ""
        assert interest_cell["choices"] == ["Pré"]
        assert interest_cell["label"] == "Tipo de Juros"
