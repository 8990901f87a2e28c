"""
Unit tests for TemplateDocument element and config mutations.
"""

import unittest

from lxml import etree

from template_sync.exceptions import XMLParsingError
from template_sync.parsing.template_document import TemplateDocument

from tests.helpers import config_xml, template_xml


class TestTemplateDocument(unittest.TestCase):
    """Test the parse -> mutate -> serialize handle."""

    def setUp(self):
        self.xml = template_xml(configs=[
            config_xml("WebUI", "Port", target="32400", mode="tcp", value="32400"),
            config_xml("Appdata", "Path", target="/config", value="/mnt/user/appdata/plex"),
        ])
        self.document = TemplateDocument.from_string(self.xml)

    def test_unmodified_document_round_trips(self):
        self.assertEqual(self.document.to_xml(), self.xml)

    def test_declaration_only_emitted_when_present(self):
        xml = template_xml(declaration=False)
        output = TemplateDocument.from_string(xml).to_xml()

        self.assertFalse(output.startswith("<?xml"))
        self.assertEqual(output, xml)

    def test_comments_outside_container_are_kept(self):
        xml = self.xml.replace('<Container', '<!-- my notes: keep port 32400 -->\n<Container', 1)
        document = TemplateDocument.from_string(xml)
        document.set_element_text("Network", "host")

        output = document.to_xml()

        self.assertIn("<!-- my notes: keep port 32400 -->", output)
        self.assertLess(output.index("my notes"), output.index("<Container"))
        self.assertIn("<Network>host</Network>", output)

    def test_processing_instruction_outside_container_is_kept(self):
        xml = self.xml.replace('<Container', '<?dockerman layout="compact"?>\n<Container', 1)
        output = TemplateDocument.from_string(xml).to_xml()
        self.assertIn('<?dockerman layout="compact"?>', output)

    def test_declared_encoding_is_rewritten_as_utf8(self):
        xml = template_xml(overview="Caf\u00e9 server").replace(
            '<?xml version="1.0"?>', '<?xml version="1.0" encoding="ISO-8859-1"?>'
        )
        output = TemplateDocument.from_string(xml).to_xml()

        self.assertTrue(output.startswith('<?xml version="1.0" encoding="UTF-8"?>\n'))
        self.assertIn("<Overview>Caf\u00e9 server</Overview>", output)

    def test_utf8_declaration_is_kept_as_written(self):
        xml = template_xml().replace('<?xml version="1.0"?>', "<?xml version='1.0' encoding='utf-8'?>")
        output = TemplateDocument.from_string(xml).to_xml()
        self.assertEqual(output, xml)

    def test_set_element_text(self):
        self.assertTrue(self.document.set_element_text("Network", "host"))
        self.assertIn("<Network>host</Network>", self.document.to_xml())

    def test_set_element_text_never_creates_elements(self):
        self.assertFalse(self.document.set_element_text("Support", "https://forum"))
        self.assertNotIn("Support", self.document.to_xml())

    def test_set_element_text_escapes_markup(self):
        self.document.set_element_text("Overview", "A & B <c>")
        self.assertIn("<Overview>A &amp; B &lt;c&gt;</Overview>", self.document.to_xml())

    def test_set_config_attribute(self):
        self.assertTrue(self.document.set_config_value("WebUI", "mode", "udp"))
        self.assertEqual(self.document.find_config("WebUI").get("Mode"), "udp")

    def test_set_config_actual_value_writes_text(self):
        self.document.set_config_value("Appdata", "actual_value", "/mnt/cache/appdata/plex")
        self.assertEqual(self.document.find_config("Appdata").text, "/mnt/cache/appdata/plex")

    def test_set_config_none_removes_attribute(self):
        self.document.set_config_value("WebUI", "description", None)
        self.assertIsNone(self.document.find_config("WebUI").get("Description"))

    def test_set_config_required_none_is_false(self):
        self.document.set_config_value("WebUI", "required", None)
        self.assertEqual(self.document.find_config("WebUI").get("Required"), "false")

    def test_set_config_missing_config(self):
        self.assertFalse(self.document.set_config_value("Missing", "mode", "rw"))

    def test_set_config_unknown_attribute_raises(self):
        with self.assertRaises(ValueError):
            self.document.set_config_value("WebUI", "colour", "red")

    def test_find_config_uses_first_exact_match(self):
        xml = template_xml(configs=[config_xml("A", target="/one"), config_xml("A", target="/two"), config_xml("a")])
        document = TemplateDocument.from_string(xml)
        self.assertEqual(document.find_config("A").get("Target"), "/one")

    def test_append_config_is_last_child_of_container(self):
        attributes = {"name": "Backups", "config_type": "Path", "target": "/backups", "required": "false",
                      "display": "always", "description": None}
        self.assertTrue(self.document.append_config(attributes, text="/mnt/user/backups"))

        root = etree.fromstring(self.document.to_xml().encode("utf-8"))
        last = root[-1]
        self.assertEqual(last.tag, "Config")
        self.assertEqual(last.get("Name"), "Backups")
        self.assertEqual(last.get("Target"), "/backups")
        self.assertIsNone(last.get("Description"))
        self.assertEqual(last.text, "/mnt/user/backups")

    def test_append_config_keeps_indentation(self):
        self.document.append_config({"name": "Backups", "config_type": "Path"})
        output = self.document.to_xml()

        self.assertIn('\n  <Config Name="Backups" Type="Path"/>\n</Container>', output)

    def test_append_config_without_container(self):
        document = TemplateDocument.from_string("<Plugin/>")
        self.assertFalse(document.append_config({"name": "A"}))

    def test_remove_config(self):
        self.assertTrue(self.document.remove_config("WebUI"))
        output = self.document.to_xml()

        self.assertNotIn('Name="WebUI"', output)
        self.assertIn('\n  <Config Name="Appdata"', output)

    def test_remove_last_config_keeps_closing_tag_layout(self):
        self.document.remove_config("Appdata")
        self.assertTrue(self.document.to_xml().endswith("</Config>\n</Container>\n"))

    def test_remove_missing_config(self):
        self.assertFalse(self.document.remove_config("Missing"))

    def test_malformed_document_raises(self):
        with self.assertRaises(XMLParsingError):
            TemplateDocument.from_string("<Container>")

    def test_documents_do_not_share_state(self):
        other = TemplateDocument.from_string(self.xml)
        self.document.set_element_text("Network", "host")
        self.assertIn("<Network>bridge</Network>", other.to_xml())


if __name__ == '__main__':
    unittest.main()
