"""
Unit tests for the core data models.
"""

import unittest

from datetime import datetime, timedelta

from template_sync.models import (
    BasicFieldDifference,
    ComparisonStatus,
    ConfigDifference,
    ConfigEntry,
    FieldChange,
    NewConfigDifference,
    RemovedConfigDifference,
    SyncJobRun,
    TemplateComparison,
    TemplateRecord,
    TemplateSource,
    TemplateStatus,
    difference_from_dict,
    humanize,
    is_manual_edit_present,
)


class TestTemplateRecord(unittest.TestCase):
    """Test template record validation and predicates."""

    def test_enum_fields_are_coerced(self):
        record = TemplateRecord("Plex", "plex", "local", "<Container/>", status="inactive")
        self.assertIs(record.source, TemplateSource.LOCAL)
        self.assertIs(record.status, TemplateStatus.INACTIVE)

    def test_required_fields(self):
        with self.assertRaises(ValueError):
            TemplateRecord("", "plex", TemplateSource.LOCAL, "<Container/>")
        with self.assertRaises(ValueError):
            TemplateRecord("Plex", "", TemplateSource.LOCAL, "<Container/>")
        with self.assertRaises(ValueError):
            TemplateRecord("Plex", "plex", TemplateSource.LOCAL, "")

    def test_should_sync_with_community(self):
        local = TemplateRecord("Plex", "plex", TemplateSource.LOCAL, "<Container/>")
        excluded = TemplateRecord("Plex", "plex", TemplateSource.LOCAL, "<Container/>", not_in_community=True)
        community = TemplateRecord("Plex", "plex", TemplateSource.COMMUNITY, "<Container/>")

        self.assertTrue(local.should_sync_with_community)
        self.assertFalse(excluded.should_sync_with_community)
        self.assertFalse(community.should_sync_with_community)

    def test_field_value_rejects_unknown_fields(self):
        record = TemplateRecord("Plex", "plex", TemplateSource.LOCAL, "<Container/>", network="host")
        self.assertEqual(record.field_value("network"), "host")
        with self.assertRaises(ValueError):
            record.field_value("xml_content")


class TestDifferenceSerialization(unittest.TestCase):
    """Test the tagged-dict form of difference entries."""

    def test_humanize(self):
        self.assertEqual(humanize("template_version"), "Template version")
        self.assertEqual(humanize("webui"), "Webui")

    def test_basic_field(self):
        data = BasicFieldDifference("network", "bridge", "host").to_dict()
        self.assertEqual(data, {
            "type": "basic_field", "field": "network", "field_name": "Network",
            "local": "bridge", "community": "host",
        })
        self.assertEqual(difference_from_dict("network", data), BasicFieldDifference("network", "bridge", "host"))

    def test_config(self):
        difference = ConfigDifference(
            "WebUI", {"mode": FieldChange("tcp", "udp")},
            local=ConfigEntry(name="WebUI", mode="tcp"), community=ConfigEntry(name="WebUI", mode="udp"),
        )
        data = difference.to_dict()

        self.assertEqual(data["type"], "config")
        self.assertEqual(data["field_differences"], {"mode": {"local": "tcp", "community": "udp"}})
        self.assertEqual(difference_from_dict(difference.key, data), difference)

    def test_new_and_removed_config(self):
        new = NewConfigDifference("Backups", ConfigEntry(name="Backups", target="/backups", required=True))
        removed = RemovedConfigDifference("Transcode", ConfigEntry(name="Transcode", order_index=3))

        self.assertEqual(new.field_name, "New Config: Backups")
        self.assertEqual(removed.field_name, "Removed Config: Transcode")
        self.assertEqual(difference_from_dict(new.key, new.to_dict()), new)
        self.assertEqual(difference_from_dict(removed.key, removed.to_dict()), removed)

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            difference_from_dict("x", {"type": "moved_config"})


class TestTemplateComparison(unittest.TestCase):
    """Test comparison helpers."""

    def test_defaults(self):
        comparison = TemplateComparison(local_template_id=1, community_template_id=2)
        self.assertTrue(comparison.is_pending)
        self.assertFalse(comparison.has_differences)

    def test_status_is_coerced(self):
        self.assertIs(TemplateComparison(1, 2, status="reviewed").status, ComparisonStatus.REVIEWED)

    def test_choices_and_manual_edits(self):
        comparison = TemplateComparison(local_template_id=1, community_template_id=2)
        comparison.set_user_choice("network", "community")
        comparison.set_manual_edit("network", "custom")
        comparison.set_manual_edit("category", "  ")

        self.assertEqual(comparison.user_choice_for("network"), "community")
        self.assertEqual(comparison.manual_edit_for("network"), "custom")
        self.assertTrue(comparison.has_manual_edit("network"))
        self.assertFalse(comparison.has_manual_edit("category"))
        self.assertFalse(comparison.has_manual_edit("banner"))

    def test_manual_edit_presence(self):
        self.assertTrue(is_manual_edit_present("custom"))
        self.assertTrue(is_manual_edit_present(0))
        self.assertFalse(is_manual_edit_present(" \t"))
        self.assertFalse(is_manual_edit_present(None))

    def test_invalid_choice(self):
        comparison = TemplateComparison(local_template_id=1, community_template_id=2)
        with self.assertRaises(ValueError):
            comparison.set_user_choice("network", "theirs")


class TestSyncJobRun(unittest.TestCase):
    """Test sync run bookkeeping."""

    def test_complete(self):
        run = SyncJobRun(job_type="local_sync", started_at=datetime.now() - timedelta(seconds=5))
        self.assertTrue(run.is_running)
        self.assertEqual(run.duration_text, "Running...")

        run.complete({"created": 2})

        self.assertEqual(run.status, "completed")
        self.assertEqual(run.results, {"created": 2})
        self.assertTrue(run.duration_text.endswith("seconds"))

    def test_fail(self):
        run = SyncJobRun(job_type="community_sync", started_at=datetime.now())
        run.fail("feed down")

        self.assertEqual(run.status, "failed")
        self.assertEqual(run.error_message, "feed down")
        self.assertEqual(run.duration_text, "< 1 second")

    def test_job_type_is_validated(self):
        with self.assertRaises(ValueError):
            SyncJobRun(job_type="nightly", started_at=datetime.now())


if __name__ == '__main__':
    unittest.main()
