"""
Mutable handle over a parsed template document.

The merge stage parses the local template into a TemplateDocument, applies
element and attribute updates through it and serializes the result. Each
document owns its own tree, so no parsed state is shared between calls.
"""

import logging

from typing import Dict, Optional

from lxml import etree

from .template_parser import (
    CONFIG_ATTRIBUTES,
    CONFIG_TAG,
    ENCODING_DECLARATION,
    TemplateParser,
    xml_declaration,
)


class TemplateDocument:
    """Parsed template document with the element and attribute operations the merge needs."""

    def __init__(self, root, declaration: Optional[str] = None):
        """
        Args:
            root: lxml root element owned by this document
            declaration: XML declaration of the source document, written back on
                serialization; None writes no declaration
        """
        self.logger = logging.getLogger(__name__)
        self._root = root
        self._declaration = declaration

    @classmethod
    def from_string(cls, xml_content: str, parser: Optional[TemplateParser] = None,
                    template_name: Optional[str] = None) -> "TemplateDocument":
        """
        Parse XML text into a new document.

        Raises:
            XMLParsingError: If the document is malformed
        """
        parser = parser or TemplateParser()
        root = parser.parse(xml_content, template_name)
        return cls(root, declaration=xml_declaration(xml_content))

    @property
    def container(self):
        """The Container element, or None."""
        return TemplateParser.find_container(self._root)

    def find_element(self, element_name: str):
        """First element with the given tag in document order, or None."""
        return next(self._root.iter(element_name), None)

    def element_text(self, element_name: str) -> Optional[str]:
        element = self.find_element(element_name)
        if element is None:
            return None
        return "".join(element.itertext())

    def set_element_text(self, element_name: str, value: str) -> bool:
        """
        Replace the text content of the first matching element.

        No element is created when the tag is missing.

        Returns:
            True if the element existed and was updated
        """
        element = self.find_element(element_name)
        if element is None:
            self.logger.debug(f"Element {element_name} not found; update skipped")
            return False
        self._replace_content(element, value)
        return True

    def find_config(self, config_name: str):
        """First Config element whose Name matches exactly, or None."""
        for config_node in self._root.iter(CONFIG_TAG):
            if config_node.get(CONFIG_ATTRIBUTES["name"]) == config_name:
                return config_node
        return None

    def set_config_value(self, config_name: str, attribute: str, value: Optional[str]) -> bool:
        """
        Set one config entry attribute on the first matching Config element.

        ``actual_value`` is written as element text; every other attribute to
        its XML attribute. A None value removes the attribute (or clears the
        text), except ``required`` which becomes "false".

        Returns:
            True if the config element existed
        """
        config_node = self.find_config(config_name)
        if config_node is None:
            self.logger.debug(f"Config {config_name} not found; {attribute} update skipped")
            return False

        if attribute == "actual_value":
            self._replace_content(config_node, value or "")
            return True

        xml_attribute = CONFIG_ATTRIBUTES.get(attribute)
        if xml_attribute is None:
            raise ValueError(f"Unknown config attribute: {attribute}")

        if attribute == "required" and value is None:
            value = "false"
        if value is None:
            config_node.attrib.pop(xml_attribute, None)
        else:
            config_node.set(xml_attribute, str(value))
        return True

    def append_config(self, attributes: Dict[str, Optional[str]], text: Optional[str] = None) -> bool:
        """
        Append a new Config element as the last child of the Container element.

        Args:
            attributes: Config entry attribute name -> value; None values are omitted
            text: Optional inline text (actual value)

        Returns:
            True if a Container element existed to append to
        """
        container = self.container
        if container is None:
            self.logger.warning("No Container element; new config not added")
            return False

        config_node = etree.Element(CONFIG_TAG)
        for attribute, xml_attribute in CONFIG_ATTRIBUTES.items():
            value = attributes.get(attribute)
            if value is not None:
                config_node.set(xml_attribute, str(value))
        if text:
            config_node.text = text

        # Keep the indentation of the surrounding children
        if len(container):
            last_child = container[-1]
            config_node.tail = last_child.tail
            if container.text and not container.text.strip():
                last_child.tail = container.text
        container.append(config_node)
        return True

    def remove_config(self, config_name: str) -> bool:
        """
        Remove the first Config element whose Name matches exactly.

        Returns:
            True if an element was removed
        """
        config_node = self.find_config(config_name)
        if config_node is None:
            return False

        parent = config_node.getparent()
        previous = config_node.getprevious()
        # lxml drops the tail with the element; hand it to the neighbour
        if previous is not None:
            previous.tail = config_node.tail
        else:
            parent.text = config_node.tail
        parent.remove(config_node)
        return True

    def to_xml(self) -> str:
        """
        Serialize the whole document to text.

        Comments, processing instructions and the DOCTYPE around the root are
        kept. The source declaration is written back with any declared
        encoding replaced by UTF-8, the encoding template files are written in.
        """
        body = etree.tostring(self._root.getroottree(), encoding="unicode").rstrip("\n")
        if self._declaration is None:
            return body + "\n"
        return self._utf8_declaration(self._declaration) + "\n" + body + "\n"

    @staticmethod
    def _utf8_declaration(declaration: str) -> str:
        match = ENCODING_DECLARATION.match(declaration)
        if match is None or match.group(3).lower().replace("-", "").replace("_", "") == "utf8":
            return declaration
        start, end = match.span(3)
        return declaration[:start] + "UTF-8" + declaration[end:]

    @staticmethod
    def _replace_content(element, value: str) -> None:
        for child in list(element):
            element.remove(child)
        element.text = value
