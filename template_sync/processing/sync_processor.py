"""
Template Sync Processor - keeps stored templates and comparisons in step with their sources.

Runs the three sync jobs of the system in the main process:
- Local sync: scan the template directory, create/update local records, mark
  records whose file disappeared inactive
- Community sync: look up every active local template in the catalog, upsert
  the community record and recompute its comparison
- Comparison update: re-pair local templates with stored community records

Local and community runs are recorded as SyncJobRun entries in the store.
"""

import dataclasses
import logging

from datetime import datetime
from typing import Optional, Tuple

from ..comparison.comparison_service import ComparisonService
from ..exceptions import CatalogParseError, FeedUnavailableError, TemplateSyncError
from ..interfaces import CatalogLookupInterface, RecordStoreInterface, TemplateScannerInterface
from ..models import SyncJobRun, SyncResult, TemplateRecord, TemplateSource, TemplateStatus
from ..parsing.template_parser import TemplateParser
from ..utils import ValueNormalizer


class TemplateSyncProcessor:
    """
    Single-threaded driver for local sync, community sync and comparison updates.

    Per-template failures during community sync and comparison updates are
    logged and counted; failures of the whole source (missing directory,
    unreachable feed) fail the run and are raised.
    """

    def __init__(self,
                 store: RecordStoreInterface,
                 scanner: TemplateScannerInterface,
                 catalog: CatalogLookupInterface,
                 comparison_service: ComparisonService,
                 parser: Optional[TemplateParser] = None):
        """
        Initialize the sync processor.

        Args:
            store: Record store for templates, configs, comparisons and sync runs
            scanner: Local template directory scanner
            catalog: Community catalog lookup
            comparison_service: Service that pairs and recomputes comparisons
            parser: Template parser used for config sync
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.scanner = scanner
        self.catalog = catalog
        self.comparison_service = comparison_service
        self.parser = parser or TemplateParser()

    def run_full_sync(self) -> Tuple[SyncResult, SyncResult]:
        """Local sync followed by community sync."""
        local_results = self.sync_local_templates()
        community_results = self.sync_community_templates()
        return local_results, community_results

    def sync_local_templates(self) -> SyncResult:
        """
        Bring local template records in line with the template directory.

        Returns:
            SyncResult with created, updated and removed (marked inactive) counts

        Raises:
            DirectoryNotFoundError: If the template directory is missing
        """
        self.logger.info("Starting local template sync")
        run = self.store.save_sync_run(SyncJobRun(job_type="local_sync", started_at=datetime.now()))
        results = SyncResult()

        try:
            scanned_templates = self.scanner.scan_templates()
            existing_templates = self.store.list_templates(TemplateSource.LOCAL)

            with self.store.transaction():
                for scanned in scanned_templates:
                    self._sync_local_template(scanned, results)

                current_repositories = {template.repository for template in scanned_templates}
                for template in existing_templates:
                    if template.repository in current_repositories or template.status is TemplateStatus.INACTIVE:
                        continue
                    self.store.save_template(dataclasses.replace(
                        template, status=TemplateStatus.INACTIVE, last_updated_at=datetime.now()
                    ))
                    results.removed += 1

            if results.removed:
                self.logger.info(f"Marked {results.removed} templates as inactive")
        except Exception as e:
            self.logger.error(f"Local template sync failed: {e}")
            run.fail(str(e))
            self.store.save_sync_run(run)
            raise

        run.complete(results.to_dict())
        self.store.save_sync_run(run)
        self.logger.info(
            f"Local template sync completed: {results.created} created, {results.updated} updated, "
            f"{results.removed} removed ({run.duration_text})"
        )
        return results

    def _sync_local_template(self, scanned: TemplateRecord, results: SyncResult) -> None:
        existing = self.store.find_template(TemplateSource.LOCAL, scanned.repository)

        if existing is None:
            saved = self.store.save_template(scanned)
            self._sync_configs(saved)
            results.created += 1
            self.logger.info(f"Created template: {saved.name}")
            return

        if existing.xml_content == scanned.xml_content and existing.status is TemplateStatus.ACTIVE:
            return

        saved = self.store.save_template(dataclasses.replace(
            scanned,
            id=existing.id,
            not_in_community=existing.not_in_community,
            last_updated_at=datetime.now(),
        ))
        self._sync_configs(saved)
        results.updated += 1
        self.logger.info(f"Updated template: {saved.name}")

    def sync_community_templates(self) -> SyncResult:
        """
        Fetch the community counterpart of every active local template and refresh its comparison.

        Returns:
            SyncResult with created, updated and errors counts

        Raises:
            FeedUnavailableError: If the catalog cannot be reached
            CatalogParseError: If the catalog payload is invalid
        """
        self.logger.info("Starting community template sync")
        run = self.store.save_sync_run(SyncJobRun(job_type="community_sync", started_at=datetime.now()))
        results = SyncResult()

        try:
            for local_template in self.store.list_templates(TemplateSource.LOCAL, active_only=True):
                if not local_template.should_sync_with_community:
                    self.logger.debug(f"Template {local_template.name} is excluded from community sync")
                    continue
                try:
                    self._sync_community_template(local_template, results)
                except (FeedUnavailableError, CatalogParseError):
                    raise
                except (TemplateSyncError, ValueError) as e:
                    self.logger.error(f"Failed to sync community template for {local_template.repository}: {e}")
                    results.errors += 1
        except Exception as e:
            self.logger.error(f"Community template sync failed: {e}")
            run.fail(str(e))
            self.store.save_sync_run(run)
            raise

        run.complete(results.to_dict())
        self.store.save_sync_run(run)
        self.logger.info(
            f"Community template sync completed: {results.created} created, {results.updated} updated, "
            f"{results.errors} errors ({run.duration_text})"
        )
        return results

    def _sync_community_template(self, local_template: TemplateRecord, results: SyncResult) -> None:
        app_data = self.catalog.find_by_repository(local_template.repository)
        if app_data is None:
            self.logger.debug(f"No community template found for: {local_template.repository}")
            return

        community_template = self.catalog.convert_to_template(app_data, self._template_body(app_data))
        if community_template is None:
            self.logger.warning(f"Catalog record for {local_template.repository} could not be converted")
            results.errors += 1
            return

        with self.store.transaction():
            existing = self.store.find_template(TemplateSource.COMMUNITY, community_template.repository)
            if existing is not None:
                community_template.id = existing.id
            community_template.last_updated_at = datetime.now()
            saved = self.store.save_template(community_template)
            self._sync_configs(saved)

        if existing is None:
            results.created += 1
        else:
            results.updated += 1

        self.comparison_service.find_or_create_comparison(local_template, saved)

    def _template_body(self, app_data) -> Optional[str]:
        """Template document for a catalog record: embedded body, else its TemplateURL, else None."""
        if app_data.get("template"):
            return app_data["template"]

        template_url = app_data.get("TemplateURL")
        if not template_url:
            return None
        try:
            return self.catalog.fetch_body(template_url)
        except FeedUnavailableError as e:
            self.logger.warning(f"Could not fetch template body from {template_url}; building from feed data: {e}")
            return None

    def update_comparisons(self, template_id: Optional[int] = None) -> SyncResult:
        """
        Re-pair local templates with their stored community records and recompute differences.

        Args:
            template_id: Limit the update to one local template

        Returns:
            SyncResult with created, updated and errors counts
        """
        self.logger.info("Starting template comparison updates")
        results = SyncResult()

        if template_id is not None:
            local_templates = [self.store.get_template(template_id)]
        else:
            local_templates = self.store.list_templates(TemplateSource.LOCAL, active_only=True)

        for local_template in local_templates:
            if not local_template.is_local:
                continue
            community_template = self.matching_community_template(local_template)
            if community_template is None:
                continue

            try:
                existed = self.store.find_comparison(local_template.id, community_template.id) is not None
                comparison = self.comparison_service.find_or_create_comparison(local_template, community_template)
            except TemplateSyncError as e:
                self.logger.error(f"Failed to update comparison for {local_template.name}: {e}")
                results.errors += 1
                continue

            if comparison is None:
                continue
            if existed:
                results.updated += 1
            else:
                results.created += 1

        self.logger.info(
            f"Template comparison updates completed: {results.created} created, {results.updated} updated, "
            f"{results.errors} errors"
        )
        return results

    def matching_community_template(self, local_template: TemplateRecord) -> Optional[TemplateRecord]:
        """Stored community record whose repository matches after normalization."""
        target = ValueNormalizer.normalize_repository(local_template.repository)
        for template in self.store.list_templates(TemplateSource.COMMUNITY):
            if ValueNormalizer.normalize_repository(template.repository) == target:
                return template
        return None

    def _sync_configs(self, template: TemplateRecord) -> None:
        configs = self.parser.extract_for_persistence(template.xml_content, template.name)
        self.store.replace_configs(template.id, configs)
        self.logger.debug(f"Synced {len(configs)} configs for template: {template.name}")
