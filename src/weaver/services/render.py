"""Rendering of page bindings into their derived ConfigMap."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

from weaver.constants import (
    KIND_CONFIG_MAP,
    MANAGED_BY,
    MANAGED_BY_LABEL,
    PAGE_BINDING_LABEL,
)
from weaver.crd.base import CRDMetadata, Resource
from weaver.services.content import as_html, default_template_data, render_one

logger = logging.getLogger(__name__)


def page_config_map_name(binding_name):
    return f"{binding_name}-page"


@dataclass
class PageParts:
    """Everything resolved for one page binding, ready to render."""

    name: str
    label: str
    base_path: str
    template: str
    organization: str = ""
    header: str = ""
    footer: str = ""
    navigations: Dict[str, str] = field(default_factory=dict)
    content_entries: List[dict] = field(default_factory=list)
    head_scripts: List[str] = field(default_factory=list)
    foot_scripts: List[str] = field(default_factory=list)
    stylesheets: List[str] = field(default_factory=list)
    parent: Optional[str] = None


def script_tags(scripts, foot=False):
    tags = []
    for script in scripts:
        if bool(script.footScript) != foot:
            continue
        if script.src:
            tags.append(f'<script type="module" src="{script.src}"></script>')
        elif script.script:
            tags.append(f"<script type=\"module\">{script.script}</script>")
    return tags


def package_script_tag(package_reference):
    return (
        f'<script type="module">import "{package_reference.name}"; '
        f"/* {package_reference.version} */</script>"
    )


def asset_tags(assets):
    tags = []
    for asset in assets:
        attributes = "".join(
            f' {key}="{value}"' for key, value in sorted(asset.attributes.items())
        )
        if asset.linkHref:
            tags.append(f'<link rel="stylesheet" href="{asset.linkHref}"{attributes}>')
        elif asset.style:
            tags.append(f"<style{attributes}>{asset.style}</style>")
    return tags


def custom_element_markup(element_name):
    return (
        f'<{element_name} data-date="{{{{ values.date.strftime("%Y-%m-%d") }}}}">'
        f"</{element_name}>"
    )


def render_page(parts: PageParts) -> str:
    """Render header, footer, navigations and content, then the archetype."""
    data = default_template_data()
    values = data["values"]
    values["title"] = parts.label
    values["organization"] = parts.organization
    values["head_script"] = as_html("\n".join(parts.head_scripts))
    values["foot_script"] = as_html("\n".join(parts.foot_scripts))
    values["stylesheet"] = as_html(render_one(f"{parts.name}-theme", "\n".join(parts.stylesheets), data))

    values["header"] = as_html(render_one(f"{parts.name}-header", parts.header, data))
    values["footer"] = as_html(render_one(f"{parts.name}-footer", parts.footer, data))
    values["navigation"] = {
        key: as_html(render_one(f"{parts.name}-navigation-{key}", text, data))
        for key, text in sorted(parts.navigations.items())
    }

    content = {}
    for entry in parts.content_entries:
        if entry.get("customElementName"):
            template = custom_element_markup(entry["customElementName"])
        else:
            template = entry.get("rawHTML") or ""
        slot = entry.get("slot") or "main"
        content[slot] = as_html(render_one(f"{parts.name}-content-{slot}", template, data))
    values["content"] = content

    return render_one(parts.name, parts.template, data)


def build_page_config_map(binding: Resource, parts: PageParts) -> Resource:
    """The ConfigMap holding a binding's rendered page and its routing metadata."""
    page = {
        "basePath": parts.base_path,
        "label": parts.label,
        "parent": parts.parent,
        "navigations": sorted(parts.navigations),
        "slots": [entry.get("slot") or "main" for entry in parts.content_entries],
    }
    metadata = CRDMetadata(
        name=page_config_map_name(binding.name),
        namespace=binding.namespace,
        labels={MANAGED_BY_LABEL: MANAGED_BY, PAGE_BINDING_LABEL: binding.name},
        ownerReferences=[
            {
                "apiVersion": binding.apiVersion,
                "kind": binding.kind,
                "name": binding.name,
                "uid": binding.metadata.uid or "",
                "controller": True,
                "blockOwnerDeletion": True,
            }
        ],
    )
    config_map = Resource(
        apiVersion="v1",
        kind=KIND_CONFIG_MAP,
        metadata=metadata,
        data={
            "index.html": render_page(parts),
            "page.yaml": yaml.safe_dump(page, sort_keys=True, default_flow_style=False),
        },
    )
    logger.debug(f"Rendered page for {binding.display_name()} at {parts.base_path}")
    return config_map
