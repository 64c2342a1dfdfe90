from app.modules.templates.config_resolver import merge, resolve, resolve_defaults, validate_overrides
from app.modules.templates.schemas import TemplateConfigSchema

SCHEMA = TemplateConfigSchema(fields=[
    {"key": "title", "label": "Title", "default": "Hello", "required": True},
    {"key": "accent", "label": "Accent", "type": "color", "default": "#0088cc"},
    {"key": "show_banner", "label": "Banner", "type": "boolean", "default": False},
    {"key": "theme", "label": "Theme", "type": "select", "default": "light", "options": ["light", "dark"]},
    {"key": "tagline", "label": "Tagline"},
])


def test_resolve_defaults_covers_every_declared_key():
    assert resolve_defaults(SCHEMA) == {
        "title": "Hello",
        "accent": "#0088cc",
        "show_banner": False,
        "theme": "light",
        "tagline": None,
    }


def test_merge_with_no_overrides_returns_defaults():
    defaults = resolve_defaults(SCHEMA)

    assert merge(defaults, {}) == defaults
    assert merge(defaults, None) == defaults


def test_merge_overrides_win_and_unknown_keys_are_dropped():
    merged = merge(resolve_defaults(SCHEMA), {"title": "My Site", "show_banner": True, "rogue": "x"})

    assert merged["title"] == "My Site"
    assert merged["show_banner"] is True
    assert merged["accent"] == "#0088cc"
    assert "rogue" not in merged


def test_merge_does_not_mutate_defaults():
    defaults = resolve_defaults(SCHEMA)

    merge(defaults, {"title": "Changed"})

    assert defaults["title"] == "Hello"


def test_resolve_without_schema_passes_overrides_through():
    assert resolve(None, {"anything": 1}) == {"anything": 1}
    assert resolve(None, None) == {}


def test_validate_overrides_accepts_valid_values():
    assert validate_overrides(SCHEMA, {"title": "Acme", "theme": "dark", "show_banner": True}) == []


def test_validate_overrides_reports_each_problem():
    issues = validate_overrides(SCHEMA, {
        "title": "  ",
        "theme": "neon",
        "show_banner": "yes",
        "accent": 42,
        "rogue": "x",
    })

    assert issues == [
        "'title' is required",
        "'theme' must be one of: light, dark",
        "'show_banner' must be a boolean",
        "'accent' must be a string",
        "Unknown config key 'rogue'",
    ]


def test_validate_overrides_without_schema_accepts_anything():
    assert validate_overrides(None, {"anything": object()}) == []
