"""Template validation and rendering for page content."""

import logging
from datetime import datetime, timezone

import jinja2
from markupsafe import Markup

from weaver.engine.errors import ValidationError

logger = logging.getLogger(__name__)

_environment = jinja2.Environment(
    trim_blocks=True,
    lstrip_blocks=True,
    autoescape=True,
)


def default_template_data():
    """Values available to every template, with empty page parts."""
    return {
        "values": {
            "content": {},
            "date": datetime.now(timezone.utc),
            "footer": "",
            "foot_script": "",
            "header": "",
            "head_script": "",
            "lang": "en",
            "meta": "",
            "navigation": {},
            "organization": "",
            "title": "",
            "stylesheet": "",
        }
    }


def render_one(name, template_text, data=None):
    """Render one template, raising ``ValidationError`` on any template error."""
    try:
        template = _environment.from_string(template_text or "")
        return template.render(data or default_template_data())
    except jinja2.TemplateSyntaxError as e:
        raise ValidationError(f"{name}: syntax error on line {e.lineno}: {e.message}") from e
    except jinja2.TemplateError as e:
        raise ValidationError(f"{name}: {e}") from e


def validate_content(name, template_text):
    """Check that ``template_text`` parses and renders with default values."""
    render_one(name, template_text)
    logger.debug(f"Content of {name} is valid")


def as_html(text):
    """Mark already-rendered markup as safe for inclusion in another template."""
    return Markup(text or "")
