import pytest

from app.core.exceptions import TemplateError
from app.modules.templates.renderer import TemplateRenderer


@pytest.fixture
def renderer():
    return TemplateRenderer()


def test_substitutes_config_values(renderer):
    html = renderer.render_string("<title>{{config.title}}</title>", {"title": "Acme"})

    assert html == "<title>Acme</title>"
    assert "{{config.title}}" not in html


def test_unset_field_renders_empty(renderer):
    assert renderer.render_string("<p>{{config.tagline}}</p>", {"title": "Acme"}) == "<p></p>"


def test_values_are_escaped_unless_triple_stash(renderer):
    config = {"snippet": "<script>alert(1)</script>", "attr": "a=`b`"}

    assert renderer.render_string("{{config.snippet}}", config) == "&lt;script&gt;alert(1)&lt;/script&gt;"
    assert renderer.render_string("{{{config.snippet}}}", config) == "<script>alert(1)</script>"
    escaped = renderer.render_string("{{config.attr}}", config)
    assert "=" not in escaped and "`" not in escaped


def test_if_else_blocks(renderer):
    source = "{{#if config.show_banner}}banner{{else}}plain{{/if}}"

    assert renderer.render_string(source, {"show_banner": True}) == "banner"
    assert renderer.render_string(source, {"show_banner": False}) == "plain"
    assert renderer.render_string(source, {}) == "plain"


def test_eq_helper_in_condition(renderer):
    source = '<body class="{{#if (eq config.theme "dark")}}dark{{else}}light{{/if}}">'

    assert renderer.render_string(source, {"theme": "dark"}) == '<body class="dark">'
    assert renderer.render_string(source, {"theme": "light"}) == '<body class="light">'


def test_nested_blocks(renderer):
    source = "{{#if config.a}}A{{#if config.b}}B{{/if}}{{/if}}"

    assert renderer.render_string(source, {"a": True, "b": True}) == "AB"
    assert renderer.render_string(source, {"a": True, "b": False}) == "A"
    assert renderer.render_string(source, {"a": False, "b": True}) == ""


def test_comments_are_dropped(renderer):
    assert renderer.render_string("a{{! note to self }}b", {}) == "ab"


def test_unless_and_each_blocks(renderer):
    source = "{{#unless config.hide_nav}}<ul>{{#each config.links}}<li>{{this}}</li>{{/each}}</ul>{{/unless}}"

    assert renderer.render_string(source, {"links": ["Home", "About"]}) == "<ul><li>Home</li><li>About</li></ul>"
    assert renderer.render_string(source, {"hide_nav": True, "links": ["Home"]}) == ""


@pytest.mark.parametrize("source", [
    "{{#if config.a}}open",
    "{{/if}}",
])
def test_malformed_templates_raise(renderer, source):
    with pytest.raises(TemplateError, match="Invalid template"):
        renderer.render_string(source, {})


def test_helpers_are_fixed_per_instance():
    shouting = TemplateRenderer(helpers={"eq": lambda this, a, b: a == b, "upper": lambda this, s: (s or "").upper()})

    assert shouting.render_string("{{upper config.name}}", {"name": "acme"}) == "ACME"
    assert "upper" not in TemplateRenderer().helpers
    with pytest.raises(TemplateError):
        TemplateRenderer().render_string("{{upper config.name}}", {"name": "acme"})
    with pytest.raises(TypeError):
        shouting.helpers["upper"] = str


def test_render_reads_root_document(renderer, tmp_path):
    (tmp_path / "index.html").write_text("<h1>{{config.title}}</h1>", encoding="utf-8")

    assert renderer.render(tmp_path, {"title": "Acme"}) == "<h1>Acme</h1>"


def test_render_requires_root_document(renderer, tmp_path):
    with pytest.raises(TemplateError, match="index.html not found"):
        renderer.render(tmp_path, {})


def test_render_rewrites_relative_assets_when_base_given(renderer, tmp_path):
    (tmp_path / "index.html").write_text(
        '<link href="./css/site.css"><img src=\'./img/logo.png\'><a href="https://example.com">',
        encoding="utf-8",
    )

    html = renderer.render(tmp_path, {}, asset_base_url="/api/v1/templates/t1/assets/")

    assert 'href="/api/v1/templates/t1/assets/css/site.css"' in html
    assert 'src="/api/v1/templates/t1/assets/img/logo.png"' in html
    assert 'href="https://example.com"' in html
    assert renderer.render(tmp_path, {}).startswith('<link href="./css/site.css">')

