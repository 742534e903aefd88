"""
CRM - Field Renderer / Sections Tests
Visibilité conditionnelle (égalité stricte), rendu des champs, onglets et notes.
Run: cd backend && pytest tests/test_field_renderer.py -v
"""

import pytest

from models import FieldSchema
from services.field_renderer import is_field_visible, render_field, strict_equals
from services.path_accessor import MISSING
from services.section_controller import render_form, section_tabs


def conditional_field(value):
    return FieldSchema(
        id="f-ref", key="referrer", label="Quem indicou", field_type="text",
        data_path="personal.referrer",
        conditional_on={"field": "source", "value": value},
    )


class TestStrictEquals:

    @pytest.mark.parametrize("left,right", [
        (True, 1), (1, True), ("1", 1), (None, ""), (MISSING, None), (0, False), ("Sim", True),
    ])
    def test_no_type_coercion(self, left, right):
        assert not strict_equals(left, right)

    @pytest.mark.parametrize("left,right", [
        (True, True), (1, 1.0), ("Indicação", "Indicação"), (None, None), (MISSING, MISSING),
    ])
    def test_equal(self, left, right):
        assert strict_equals(left, right)


class TestConditionalVisibility:

    def test_visible_when_condition_matches(self):
        assert is_field_visible(conditional_field("Indicação"), {"source": "Indicação"})

    def test_invisible_even_with_stored_value(self):
        field = conditional_field("Indicação")
        doc = {"source": "Google", "personal": {"referrer": "Carlos"}}
        assert not is_field_visible(field, doc)

    def test_missing_source_against_none(self):
        assert not is_field_visible(conditional_field(None), {})
        assert is_field_visible(conditional_field(None), {"source": None})

    def test_boolean_condition(self):
        field = conditional_field(True)
        assert is_field_visible(field, {"source": True})
        assert not is_field_visible(field, {"source": 1})

    def test_unconditional_field_always_visible(self):
        field = FieldSchema(id="f", key="k", label="K", field_type="text", data_path="k")
        assert is_field_visible(field, {})


class TestRenderField:

    def test_rendered_props(self, form_schema):
        field = form_schema.find_field("monthly_savings")
        view = render_field(field, {"cash_flow": {"monthly_savings": 1500}})
        assert view["key"] == "monthly_savings"
        assert view["value"] == 1500
        assert view["formatted"] == "1.500,00"
        assert view["visible"] is True
        assert view["read_only"] is False

    def test_computed_field_rendered_read_only(self, form_schema):
        field = form_schema.find_field("total_income")
        doc = {"cash_flow": {"income": [{"value_monthly_brl": 3000}, {"value_monthly_brl": 500}]}}
        view = render_field(field, doc)
        assert view["read_only"] is True
        assert view["value"] == 3500
        assert view["formatted"] == "3.500,00"

    def test_list_field_rendered_with_rows(self, form_schema):
        field = form_schema.find_field("income")
        view = render_field(field, {"cash_flow": {"income": [{"name": "Salário", "value_monthly_brl": 10}]}})
        assert view["layout"]["simple"] is True
        assert len(view["rows"]) == 1


class TestSections:

    def test_tabs_exclude_notes(self, form_schema):
        tabs = section_tabs(form_schema)
        assert [t["key"] for t in tabs] == ["personal", "cash_flow", "goals"]

    def test_notes_rendered_as_side_panel(self, form_schema):
        view = render_form(form_schema, {"notes": {"planner_notes": "ok"}})
        assert view["notes"]["key"] == "notes"
        assert view["notes"]["fields"][0]["value"] == "ok"
        assert "notes" not in [s["key"] for s in view["sections"]]

    def test_hidden_fields_not_rendered(self, form_schema):
        view = render_form(form_schema, {"personal": {"source": "Google"}}, active_section="personal")
        assert len(view["sections"]) == 1
        keys = [f["key"] for f in view["sections"][0]["fields"]]
        assert "referrer" not in keys

        view = render_form(form_schema, {"personal": {"source": "Indicação"}}, active_section="personal")
        keys = [f["key"] for f in view["sections"][0]["fields"]]
        assert "referrer" in keys
