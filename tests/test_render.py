"""Tests for template validation and page rendering."""

import pytest
import yaml

from weaver.engine.errors import ValidationError
from weaver.models.libraries import Asset, Script
from weaver.services.content import render_one, validate_content
from weaver.services.render import (
    PageParts,
    asset_tags,
    build_page_config_map,
    render_page,
    script_tags,
)


class TestContent:
    def test_valid_template(self):
        validate_content("header", "<h1>{{ values.title }}</h1>{% if values.lang %}x{% endif %}")

    def test_syntax_error(self):
        with pytest.raises(ValidationError, match="header: syntax error on line 1"):
            validate_content("header", "{% for %}")

    def test_runtime_error(self):
        with pytest.raises(ValidationError, match="footer"):
            render_one("footer", "{{ values.title.missing() }}")

    def test_values_are_escaped(self):
        data = {"values": {"title": "<b>"}}
        assert render_one("title", "{{ values.title }}", data) == "&lt;b&gt;"

    def test_empty_template(self):
        assert render_one("empty", None) == ""


class TestTags:
    def test_scripts_split_by_position(self):
        scripts = [
            Script(src="/a.js"),
            Script(script="init()", footScript=True),
            Script(),
        ]
        assert script_tags(scripts) == ['<script type="module" src="/a.js"></script>']
        assert script_tags(scripts, foot=True) == ['<script type="module">init()</script>']

    def test_assets(self):
        assets = [
            Asset(linkHref="/site.css", attributes={"media": "print", "crossorigin": ""}),
            Asset(style="body { color: red }"),
        ]
        assert asset_tags(assets) == [
            '<link rel="stylesheet" href="/site.css" crossorigin="" media="print">',
            "<style>body { color: red }</style>",
        ]


class TestRenderPage:
    @pytest.fixture
    def parts(self):
        return PageParts(
            name="home",
            label="Home",
            base_path="/",
            template=(
                "<head>{{ values.head_script }}</head>"
                "{{ values.header }}{{ values.content.main }}{{ values.content.side }}"
            ),
            header="<h1>{{ values.title }}</h1>",
            content_entries=[
                {"slot": "main", "rawHTML": "<p>{{ values.organization }}</p>"},
                {"slot": "side", "customElementName": "x-shop"},
            ],
            organization="Acme",
            head_scripts=['<script src="/a.js"></script>'],
        )

    def test_fragments_are_not_escaped_twice(self, parts):
        html = render_page(parts)
        assert html.startswith('<head><script src="/a.js"></script></head><h1>Home</h1><p>Acme</p>')
        assert '<x-shop data-date="' in html

    def test_config_map(self, parts, make_resource):
        binding = make_resource("PageBinding", "home")
        binding.metadata.uid = "1234"
        config_map = build_page_config_map(binding, parts)

        assert config_map.name == "home-page"
        assert config_map.namespace == "default"
        assert config_map.metadata.labels["weaver.dev/page-binding"] == "home"
        assert config_map.metadata.ownerReferences[0]["uid"] == "1234"
        page = yaml.safe_load(config_map.data["page.yaml"])
        assert page == {
            "basePath": "/",
            "label": "Home",
            "navigations": [],
            "parent": None,
            "slots": ["main", "side"],
        }
