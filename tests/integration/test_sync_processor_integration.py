"""
Integration tests for local sync, community sync and comparison updates.

Local templates live in a temporary directory; the Community Applications
feed is served through httpx.MockTransport.
"""

import tempfile
import unittest

from pathlib import Path

import httpx

from template_sync.comparison.comparison_service import ComparisonService
from template_sync.exceptions import DirectoryNotFoundError, FeedUnavailableError
from template_sync.models import TemplateSource, TemplateStatus
from template_sync.processing.sync_processor import TemplateSyncProcessor
from template_sync.sources.community_client import CommunityApplicationsClient
from template_sync.sources.local_scanner import LocalTemplateScanner
from template_sync.storage.file_store import LocalFileStore
from template_sync.storage.record_store import InMemoryRecordStore

from tests.helpers import config_xml, template_xml


FEED_URL = "https://feed.example/applicationFeed.json"
SONARR_URL = "https://templates.example/sonarr.xml"


class SyncTestCase(unittest.TestCase):
    """Template directory, mocked feed and a processor wired over the in-memory store."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.directory = Path(self.temp_dir.name)
        self.routes = {
            FEED_URL: lambda: httpx.Response(200, json={"applications": self.applications}),
            SONARR_URL: lambda: httpx.Response(200, text=template_xml(
                name="Sonarr", repository="linuxserver/sonarr", network="host", category="Downloaders",
            )),
        }
        self.applications = [
            {
                "Name": "Plex",
                "Repository": "linuxserver/plex:latest",
                "template": template_xml(network="host", configs=[config_xml("Appdata", target="/config")]),
            },
            {
                "Name": "Sonarr",
                "Repository": "linuxserver/sonarr",
                "TemplateURL": SONARR_URL,
            },
        ]

        self.store = InMemoryRecordStore()
        http_client = httpx.Client(transport=httpx.MockTransport(self.handle))
        self.catalog = CommunityApplicationsClient(FEED_URL, http_client=http_client)
        self.processor = TemplateSyncProcessor(
            self.store,
            LocalTemplateScanner(str(self.directory)),
            self.catalog,
            ComparisonService(self.store, LocalFileStore(), str(self.directory / "backups")),
        )

    def tearDown(self):
        self.catalog.close()
        self.temp_dir.cleanup()

    def handle(self, request):
        route = self.routes.get(str(request.url))
        return route() if route else httpx.Response(404)

    def write(self, filename, content):
        (self.directory / filename).write_text(content, encoding="utf-8")

    def local_templates(self):
        return {template.name: template for template in self.store.list_templates(TemplateSource.LOCAL)}


class TestLocalSync(SyncTestCase):
    """Test local directory sync."""

    def test_creates_records_and_configs(self):
        self.write("plex.xml", template_xml(repository="lscr.io/linuxserver/plex",
                                            configs=[config_xml("Appdata", target="/config")]))
        self.write("sonarr.xml", template_xml(name="Sonarr", repository="linuxserver/sonarr"))

        results = self.processor.sync_local_templates()

        self.assertEqual(results.to_dict(), {"created": 2, "updated": 0, "removed": 0, "errors": 0})
        plex = self.local_templates()["Plex"]
        self.assertEqual([config.name for config in self.store.list_configs(plex.id)], ["Appdata"])

        run = self.store.list_sync_runs()[0]
        self.assertEqual(run.job_type, "local_sync")
        self.assertEqual(run.status, "completed")
        self.assertEqual(run.results["created"], 2)

    def test_unchanged_files_are_not_updated(self):
        self.write("plex.xml", template_xml())
        self.processor.sync_local_templates()

        results = self.processor.sync_local_templates()

        self.assertEqual((results.created, results.updated, results.removed), (0, 0, 0))

    def test_changed_file_updates_record_and_keeps_exclusion(self):
        self.write("plex.xml", template_xml())
        self.processor.sync_local_templates()
        plex = self.local_templates()["Plex"]
        plex.not_in_community = True
        self.store.save_template(plex)

        self.write("plex.xml", template_xml(network="host"))
        results = self.processor.sync_local_templates()

        self.assertEqual(results.updated, 1)
        updated = self.local_templates()["Plex"]
        self.assertEqual(updated.id, plex.id)
        self.assertEqual(updated.network, "host")
        self.assertTrue(updated.not_in_community)

    def test_removed_file_marks_template_inactive_once(self):
        self.write("plex.xml", template_xml())
        self.write("sonarr.xml", template_xml(name="Sonarr", repository="linuxserver/sonarr"))
        self.processor.sync_local_templates()

        (self.directory / "sonarr.xml").unlink()
        self.assertEqual(self.processor.sync_local_templates().removed, 1)
        self.assertIs(self.local_templates()["Sonarr"].status, TemplateStatus.INACTIVE)
        self.assertEqual(self.processor.sync_local_templates().removed, 0)

        self.write("sonarr.xml", template_xml(name="Sonarr", repository="linuxserver/sonarr"))
        self.assertEqual(self.processor.sync_local_templates().updated, 1)
        self.assertIs(self.local_templates()["Sonarr"].status, TemplateStatus.ACTIVE)

    def test_missing_directory_fails_run(self):
        self.temp_dir.cleanup()

        with self.assertRaises(DirectoryNotFoundError):
            self.processor.sync_local_templates()

        run = self.store.list_sync_runs()[0]
        self.assertEqual(run.status, "failed")
        self.assertIn("does not exist", run.error_message)


class TestCommunitySync(SyncTestCase):
    """Test community catalog sync and comparison creation."""

    def setUp(self):
        super().setUp()
        self.write("plex.xml", template_xml(repository="lscr.io/linuxserver/plex",
                                            configs=[config_xml("Appdata", target="/config")]))
        self.write("sonarr.xml", template_xml(name="Sonarr", repository="linuxserver/sonarr"))
        self.write("radarr.xml", template_xml(name="Radarr", repository="linuxserver/radarr"))
        self.processor.sync_local_templates()

    def test_creates_community_records_and_comparisons(self):
        results = self.processor.sync_community_templates()

        self.assertEqual((results.created, results.updated, results.errors), (2, 0, 0))
        community = {template.name: template for template in self.store.list_templates(TemplateSource.COMMUNITY)}
        self.assertEqual(sorted(community), ["Plex", "Sonarr"])
        self.assertEqual(community["Sonarr"].network, "host")

        comparisons = self.store.list_comparisons()
        self.assertEqual(len(comparisons), 2)
        plex_comparison = self.store.list_comparisons(self.local_templates()["Plex"].id)[0]
        self.assertEqual(list(plex_comparison.differences), ["network"])

        run = self.store.list_sync_runs()[0]
        self.assertEqual((run.job_type, run.status), ("community_sync", "completed"))

    def test_second_run_updates(self):
        self.processor.sync_community_templates()

        results = self.processor.sync_community_templates()

        self.assertEqual((results.created, results.updated), (0, 2))
        self.assertEqual(len(self.store.list_comparisons()), 2)

    def test_excluded_templates_are_skipped(self):
        plex = self.local_templates()["Plex"]
        plex.not_in_community = True
        self.store.save_template(plex)

        results = self.processor.sync_community_templates()

        self.assertEqual(results.created, 1)
        self.assertIsNone(self.store.find_template(TemplateSource.COMMUNITY, "linuxserver/plex:latest"))

    def test_missing_template_body_falls_back_to_feed_data(self):
        self.routes[SONARR_URL] = lambda: httpx.Response(503)
        self.applications[1]["Network"] = "bridge"

        results = self.processor.sync_community_templates()

        self.assertEqual(results.errors, 0)
        sonarr = self.store.find_template(TemplateSource.COMMUNITY, "linuxserver/sonarr")
        self.assertIn('<Container version="2">', sonarr.xml_content)
        self.assertEqual(sonarr.network, "bridge")

    def test_unreachable_feed_fails_run(self):
        self.routes[FEED_URL] = lambda: httpx.Response(502)

        with self.assertRaises(FeedUnavailableError):
            self.processor.sync_community_templates()

        run = self.store.list_sync_runs()[0]
        self.assertEqual(run.status, "failed")
        self.assertEqual(self.store.list_templates(TemplateSource.COMMUNITY), [])

    def test_update_comparisons(self):
        self.processor.sync_community_templates()
        plex = self.local_templates()["Plex"]

        results = self.processor.update_comparisons(plex.id)

        self.assertEqual((results.created, results.updated, results.errors), (0, 1, 0))
        self.assertEqual(self.processor.matching_community_template(plex).repository, "linuxserver/plex:latest")

    def test_run_full_sync(self):
        local_results, community_results = self.processor.run_full_sync()

        self.assertEqual(local_results.created, 0)
        self.assertEqual(community_results.created, 2)
        self.assertEqual([run.job_type for run in self.store.list_sync_runs()][:2],
                         ["community_sync", "local_sync"])


if __name__ == '__main__':
    unittest.main()
