"""
Unit tests for LocalTemplateScanner against temporary template directories.
"""

import os
import tempfile
import unittest

from pathlib import Path

from template_sync.exceptions import DirectoryNotFoundError
from template_sync.models import TemplateSource, TemplateStatus
from template_sync.sources.local_scanner import LocalTemplateScanner

from tests.helpers import config_xml, template_xml


class TestLocalTemplateScanner(unittest.TestCase):
    """Test scanning of a dockerMan template directory."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.directory = Path(self.temp_dir.name)
        self.scanner = LocalTemplateScanner(str(self.directory))

    def tearDown(self):
        self.temp_dir.cleanup()

    def write(self, filename, content):
        path = self.directory / filename
        path.write_text(content, encoding="utf-8")
        return path

    def test_scans_valid_templates_in_path_order(self):
        self.write("sonarr.xml", template_xml(name="Sonarr", repository="linuxserver/sonarr"))
        self.write("my-plex.xml", template_xml(date="2024-01-15", configs=[config_xml("Appdata", target="/config")]))

        templates = self.scanner.scan_templates()

        self.assertEqual([template.name for template in templates], ["Plex", "Sonarr"])
        plex = templates[0]
        self.assertIs(plex.source, TemplateSource.LOCAL)
        self.assertIs(plex.status, TemplateStatus.ACTIVE)
        self.assertEqual(plex.repository, "lscr.io/linuxserver/plex")
        self.assertEqual(plex.category, "MediaServer:Video")
        self.assertEqual(plex.template_version, "2024-01-15")
        self.assertEqual(plex.local_path, str(self.directory / "my-plex.xml"))
        self.assertIsNotNone(plex.last_updated_at)
        self.assertIn('<Config Name="Appdata"', plex.xml_content)

    def test_invalid_files_are_skipped(self):
        self.write("valid.xml", template_xml())
        self.write("empty.xml", "   \n")
        self.write("broken.xml", "<Container><Name>Broken")
        self.write("plugin.xml", '<?xml version="1.0"?>\n<PLUGIN name="x"/>\n')
        self.write("unnamed.xml", template_xml(name=""))
        self.write("notes.txt", template_xml(name="Ignored"))

        with self.assertLogs("template_sync.sources.local_scanner", level="WARNING") as logs:
            templates = self.scanner.scan_templates()

        self.assertEqual([template.name for template in templates], ["Plex"])
        output = "\n".join(logs.output)
        self.assertIn("Empty template file skipped", output)
        self.assertIn("Invalid XML", output)
        self.assertIn("No Container element", output)
        self.assertIn("no Name or Repository", output)

    def test_list_template_files_returns_text_path_and_mtime(self):
        path = self.write("plex.xml", template_xml())
        os.utime(path, (1700000000, 1700000000))

        files = self.scanner.list_template_files()

        self.assertEqual(len(files), 1)
        xml_content, file_path, modified_at = files[0]
        self.assertEqual(xml_content, template_xml())
        self.assertEqual(file_path, str(path))
        self.assertEqual(modified_at.timestamp(), 1700000000)

    def test_invalid_bytes_are_replaced(self):
        (self.directory / "plex.xml").write_bytes(template_xml(overview="caf\xe9").encode("latin-1"))

        templates = self.scanner.scan_templates()

        self.assertEqual(len(templates), 1)
        self.assertEqual(templates[0].description, "caf\ufffd")

    def test_missing_directory(self):
        scanner = LocalTemplateScanner(str(self.directory / "missing"))
        with self.assertRaises(DirectoryNotFoundError) as context:
            scanner.scan_templates()
        self.assertIn("does not exist", str(context.exception))

    def test_find_template_by_name(self):
        self.write("plex.xml", template_xml())

        self.assertEqual(self.scanner.find_template_by_name("plex").name, "Plex")
        self.assertIsNone(self.scanner.find_template_by_name("radarr"))


if __name__ == '__main__':
    unittest.main()
