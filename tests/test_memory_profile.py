"""
Tests for the Memory Profile Builder

The builder must never raise: structured fields arrive as JSON text, as
parsed values, or broken, and broken input reads as absent.
"""

import json

from aistaff.services.memory_profile import (
    NOT_SPECIFIED, TASK_PHRASING_INSTRUCTIONS,
    build_profile, parse_json_field, parse_string_list, parse_string_map,
)


def _section(profile: str, header: str) -> str:
    """Body of one blank-line separated section."""
    for block in profile.split("\n\n"):
        if block.startswith(header):
            return block[len(header):].strip()
    raise AssertionError(f"section {header!r} missing")


class TestParsing:

    def test_json_text_is_parsed(self):
        assert parse_json_field('{"a": 1}') == {"a": 1}

    def test_structured_value_passes_through(self):
        assert parse_json_field(["x"]) == ["x"]

    def test_malformed_json_is_absent(self):
        assert parse_json_field("{not json") is None
        assert parse_string_map("{not json") == {}
        assert parse_string_list("[unterminated") == []

    def test_wrong_shape_is_absent(self):
        assert parse_string_map('["a", "b"]') == {}
        assert parse_string_list('{"a": "b"}') == []

    def test_blank_entries_dropped(self):
        assert parse_string_list(json.dumps(["Grow sales", "", None, "  "])) == ["Grow sales"]


class TestBuildProfile:

    def test_minimal_business_uses_placeholders(self):
        profile = build_profile({"name": "Acme"})

        assert "- Name: Acme" in profile
        assert f"- Industry: {NOT_SPECIFIED}" in profile
        assert _section(profile, "TARGET AUDIENCE:") == NOT_SPECIFIED
        assert _section(profile, "BRAND VOICE & TONE:") == "professional"
        assert _section(profile, "BRAND COLORS:") == NOT_SPECIFIED
        assert _section(profile, "SOCIAL MEDIA PRESENCE:") == NOT_SPECIFIED
        assert _section(profile, "BUSINESS GOALS:") == NOT_SPECIFIED

    def test_full_business(self):
        profile = build_profile({
            "name": "Acme",
            "industry": "Retail",
            "description": "Hardware for everyone",
            "target_audience": "DIY homeowners",
            "brand_tone": "friendly",
            "brand_colors": json.dumps({"primary": "#ff0000", "accent": "#000000"}),
            "social_links": {"instagram": "https://instagram.com/acme"},
            "goals": json.dumps(["Grow sales", "Open a second store"]),
        })

        assert "- Industry: Retail" in profile
        assert _section(profile, "TARGET AUDIENCE:") == "DIY homeowners"
        assert _section(profile, "BRAND VOICE & TONE:") == "friendly"
        assert _section(profile, "BRAND COLORS:") == "- primary: #ff0000\n- accent: #000000"
        assert _section(profile, "SOCIAL MEDIA PRESENCE:") == "- instagram: https://instagram.com/acme"
        assert _section(profile, "BUSINESS GOALS:") == "- Grow sales\n- Open a second store"

    def test_malformed_fields_do_not_raise(self):
        profile = build_profile({
            "name": "Acme",
            "goals": "not json at all",
            "brand_colors": "{broken",
            "social_links": 42,
        })
        assert _section(profile, "BUSINESS GOALS:") == NOT_SPECIFIED
        assert _section(profile, "BRAND COLORS:") == NOT_SPECIFIED
        assert _section(profile, "SOCIAL MEDIA PRESENCE:") == NOT_SPECIFIED

    def test_deeply_nested_json_is_absent(self):
        nested = "[" * 100000 + "]" * 100000
        assert parse_json_field(nested) is None

        profile = build_profile({"name": "Acme", "goals": nested, "brand_colors": nested})
        assert _section(profile, "BUSINESS GOALS:") == NOT_SPECIFIED
        assert _section(profile, "BRAND COLORS:") == NOT_SPECIFIED

    def test_ends_with_task_phrasing_instructions(self):
        profile = build_profile({"name": "Acme"})
        assert profile.endswith(TASK_PHRASING_INSTRUCTIONS)
        assert '"I\'ll [action]"' in profile

    def test_deterministic(self):
        business = {"name": "Acme", "goals": ["Grow sales"]}
        assert build_profile(business) == build_profile(dict(business))

    def test_accepts_objects(self):
        class Row:
            name = "Acme"
            industry = "Retail"
            goals = '["Grow sales"]'

        profile = build_profile(Row())
        assert "- Industry: Retail" in profile
        assert _section(profile, "BUSINESS GOALS:") == "- Grow sales"
