"""Test helpers for building template documents and records.

Documents are written the way UnRAID's dockerMan writes them: an XML
declaration, a Container element with two-space indentation and one Config
element per port, path or variable.
"""
from typing import Dict, Optional, Sequence

from template_sync.models import TemplateRecord, TemplateSource
from template_sync.parsing.template_parser import TemplateParser


def config_xml(name: str, config_type: str = "Path", target: str = "", default: str = "", mode: str = "rw",
               description: str = "", required: str = "false", display: str = "always", value: str = "") -> str:
    """One Config element with the attributes dockerMan writes."""
    return (
        f'<Config Name="{name}" Target="{target}" Default="{default}" Mode="{mode}" '
        f'Description="{description}" Type="{config_type}" Display="{display}" Required="{required}">'
        f'{value}</Config>'
    )


def template_xml(name: str = "Plex", repository: str = "lscr.io/linuxserver/plex", network: str = "bridge",
                 category: Optional[str] = "MediaServer:Video", overview: Optional[str] = "Plex media server",
                 webui: Optional[str] = "http://[IP]:[PORT:32400]/web", icon: Optional[str] = "https://example.com/plex.png",
                 date: Optional[str] = None, configs: Sequence[str] = (), declaration: bool = True) -> str:
    """A container template document; None leaves an element out."""
    elements = [
        ("Name", name),
        ("Repository", repository),
        ("Network", network),
        ("Category", category),
        ("Overview", overview),
        ("WebUI", webui),
        ("Icon", icon),
        ("Date", date),
    ]
    lines = ['<?xml version="1.0"?>'] if declaration else []
    lines.append('<Container version="2">')
    for tag, value in elements:
        if value is not None:
            lines.append(f"  <{tag}>{value}</{tag}>")
    for config in configs:
        lines.append(f"  {config}")
    lines.append("</Container>")
    return "\n".join(lines) + "\n"


def make_record(xml_content: str, source: TemplateSource = TemplateSource.LOCAL,
                local_path: Optional[str] = None, **overrides) -> TemplateRecord:
    """TemplateRecord whose scalar fields are extracted from the document."""
    extracted = TemplateParser().extract(xml_content)
    fields: Dict[str, Optional[str]] = dict(extracted.fields)
    fields.update(overrides)
    not_in_community = fields.pop("not_in_community", False)
    return TemplateRecord(
        name=fields["name"],
        repository=fields["repository"],
        source=source,
        xml_content=xml_content,
        network=fields.get("network"),
        category=fields.get("category"),
        banner=fields.get("banner"),
        webui=fields.get("webui"),
        description=fields.get("description"),
        template_version=fields.get("template_version"),
        local_path=local_path,
        not_in_community=not_in_community,
    )
