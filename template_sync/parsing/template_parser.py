"""
XML parsing and field extraction for container templates.

This module turns a template document into an ExtractedTemplate: the fixed set
of scalar fields plus the ordered list of Config entries. It is shared by the
local scanner, the catalog client, record config sync and the difference
calculator.
"""

import logging
import re

from typing import Dict, List, Optional, Tuple

from lxml import etree

from ..exceptions import XMLParsingError
from ..interfaces import TemplateParserInterface
from ..models import ConfigEntry, ExtractedTemplate


CONTAINER_TAG = "Container"
CONFIG_TAG = "Config"

# Template field -> element name inside the Container element.
FIELD_ELEMENTS: Dict[str, str] = {
    "name": "Name",
    "repository": "Repository",
    "network": "Network",
    "category": "Category",
    "banner": "Icon",
    "webui": "WebUI",
    "description": "Overview",
    "template_version": "Date",
}

# Config entry attribute -> XML attribute on the Config element.
# actual_value lives in the element text, not in an attribute.
CONFIG_ATTRIBUTES: Dict[str, str] = {
    "name": "Name",
    "config_type": "Type",
    "target": "Target",
    "default_value": "Default",
    "mode": "Mode",
    "description": "Description",
    "required": "Required",
    "display": "Display",
}


# XML declaration at the start of a cleaned document, and its encoding pseudo-attribute.
XML_DECLARATION = re.compile(r"^<\?xml\b[^>]*\?>")
ENCODING_DECLARATION = re.compile(r"""^(<\?xml\b[^>]*?)\s+encoding\s*=\s*(["'])([^"']*)\2""")


def build_secure_parser() -> etree.XMLParser:
    """Strict lxml parser with entity resolution and network access disabled."""
    return etree.XMLParser(
        recover=False,
        strip_cdata=False,  # Preserve CDATA sections
        resolve_entities=False,  # Security: don't resolve external entities
        no_network=True,  # Security: disable network access
    )


def clean_xml_content(xml_content: str) -> str:
    """
    Clean template XML content for parsing.

    Removes byte order marks and leading control characters, which are common
    in templates edited on Windows and would otherwise make the XML
    declaration invalid.

    Args:
        xml_content: Raw XML content

    Returns:
        Cleaned XML content
    """
    if xml_content.startswith('\ufeff'):
        xml_content = xml_content[1:]
    # BOM decoded with the wrong codec shows up as visible characters
    if xml_content.startswith('ï»¿'):
        xml_content = xml_content[3:]

    xml_content = xml_content.lstrip()
    while xml_content and ord(xml_content[0]) < 32 and xml_content[0] not in '\t\n\r':
        xml_content = xml_content[1:]

    return xml_content.strip()


def xml_declaration(xml_content: str) -> Optional[str]:
    """The document's XML declaration as written, or None."""
    match = XML_DECLARATION.match(clean_xml_content(xml_content))
    return match.group(0) if match else None


def strip_encoding_declaration(xml_content: str) -> str:
    """
    Drop the encoding pseudo-attribute from the XML declaration.

    Template text is already decoded; it is handed to lxml as UTF-8 whatever
    encoding the declaration names.
    """
    return ENCODING_DECLARATION.sub(r"\1", xml_content, count=1)


def element_text(element) -> str:
    """All text content of an element and its descendants, stripped."""
    return "".join(element.itertext()).strip()


class TemplateParser(TemplateParserInterface):
    """
    Extracts comparable fields from container template documents.

    Scalar fields are read from the first matching element under the
    Container element; config entries from every Config element in document
    order, regardless of nesting depth. Missing elements yield None rather
    than an error.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.parse_count = 0

    def parse(self, xml_content: str, template_name: Optional[str] = None):
        """
        Parse template XML into an lxml root element.

        Args:
            xml_content: Raw XML content as string
            template_name: Optional template name for error reporting

        Returns:
            Parsed root element

        Raises:
            XMLParsingError: If the content is empty or not well-formed
        """
        if not xml_content or not xml_content.strip():
            raise XMLParsingError("XML content is empty or None", xml_content, template_name)

        self.parse_count += 1
        cleaned_xml = strip_encoding_declaration(clean_xml_content(xml_content))

        try:
            return etree.fromstring(cleaned_xml.encode('utf-8'), build_secure_parser())
        except etree.XMLSyntaxError as e:
            self.logger.debug(f"XML syntax error in template {template_name or '<unnamed>'}: {e}")
            raise XMLParsingError(f"XML syntax error: {e}", xml_content, template_name)

    @staticmethod
    def find_container(root):
        """Return the Container element (the root itself or its first descendant), or None."""
        if root is None:
            return None
        if root.tag == CONTAINER_TAG:
            return root
        return root.find(f".//{CONTAINER_TAG}")

    def extract(self, xml_content: str, template_name: Optional[str] = None) -> Optional[ExtractedTemplate]:
        """
        Extract scalar fields and config entries from a template document.

        Args:
            xml_content: Raw XML content
            template_name: Optional template name for error reporting

        Returns:
            ExtractedTemplate, or None when the document has no Container element

        Raises:
            XMLParsingError: If the document is malformed
        """
        root = self.parse(xml_content, template_name)
        container = self.find_container(root)
        if container is None:
            self.logger.debug(f"No {CONTAINER_TAG} element in template {template_name or '<unnamed>'}")
            return None

        return ExtractedTemplate(
            fields=self._extract_fields(container),
            configs=self._extract_config_elements(root),
        )

    def extract_configs(self, xml_content: str, template_name: Optional[str] = None) -> List[ConfigEntry]:
        """
        Extract config entries in document order without de-duplication.

        Raises:
            XMLParsingError: If the document is malformed
        """
        return self._extract_config_elements(self.parse(xml_content, template_name))

    def extract_for_persistence(self, xml_content: str, template_name: Optional[str] = None) -> List[ConfigEntry]:
        """
        Extract config entries for storage, keeping the last occurrence of each name.

        The number of dropped duplicates is logged as a warning.

        Raises:
            XMLParsingError: If the document is malformed
        """
        configs = self.extract_configs(xml_content, template_name)
        deduplicated, removed = self.deduplicate_configs(configs)

        if removed:
            self.logger.warning(f"Removed {removed} duplicate configs for template: {template_name}")

        return deduplicated

    @staticmethod
    def deduplicate_configs(configs: List[ConfigEntry]) -> Tuple[List[ConfigEntry], int]:
        """
        Keep only the last occurrence of each config name, preserving document order.

        Returns:
            Tuple of (deduplicated configs, number removed)
        """
        last_index = {config.name: index for index, config in enumerate(configs)}
        deduplicated = [config for index, config in enumerate(configs) if last_index[config.name] == index]
        return deduplicated, len(configs) - len(deduplicated)

    def _extract_fields(self, container) -> Dict[str, Optional[str]]:
        fields = {}
        for field_name, element_name in FIELD_ELEMENTS.items():
            element = container.find(f".//{element_name}")
            fields[field_name] = element_text(element) if element is not None else None
        return fields

    def _extract_config_elements(self, root) -> List[ConfigEntry]:
        configs = []
        for order_index, config_node in enumerate(root.iter(CONFIG_TAG)):
            name = config_node.get(CONFIG_ATTRIBUTES["name"])
            if not name:
                self.logger.debug(f"Skipping {CONFIG_TAG} element without a Name at position {order_index}")
                continue

            configs.append(ConfigEntry(
                name=name,
                config_type=config_node.get(CONFIG_ATTRIBUTES["config_type"]),
                target=config_node.get(CONFIG_ATTRIBUTES["target"]),
                default_value=config_node.get(CONFIG_ATTRIBUTES["default_value"]),
                actual_value=element_text(config_node) or None,
                mode=config_node.get(CONFIG_ATTRIBUTES["mode"]),
                description=config_node.get(CONFIG_ATTRIBUTES["description"]),
                required=config_node.get(CONFIG_ATTRIBUTES["required"]) == "true",
                display=config_node.get(CONFIG_ATTRIBUTES["display"]) or "always",
                order_index=order_index,
            ))
        return configs
