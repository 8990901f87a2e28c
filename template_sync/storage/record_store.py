"""
In-memory record store for templates, template configs, comparisons and sync runs.

Records are copied on the way in and on the way out, so callers never hold a
reference into the store's state and changes only land through save calls.
"""

import copy
import logging

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from ..exceptions import DuplicateRecordError, RecordNotFoundError
from ..interfaces import RecordStoreInterface
from ..models import ConfigEntry, SyncJobRun, TemplateComparison, TemplateRecord, TemplateSource, TemplateStatus


class InMemoryRecordStore(RecordStoreInterface):
    """
    Record store backed by dictionaries.

    Enforces the same uniqueness constraints as a relational store:
    - one template per (source, repository)
    - one config per (template id, name)
    - one comparison per (local template id, community template id)

    ``transaction()`` snapshots the whole state and restores it if the block
    raises. Nested transactions join the outermost one.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._templates: Dict[int, TemplateRecord] = {}
        self._configs: Dict[int, List[ConfigEntry]] = {}
        self._comparisons: Dict[int, TemplateComparison] = {}
        self._sync_runs: Dict[int, SyncJobRun] = {}
        self._next_ids = {"template": 1, "comparison": 1, "sync_run": 1}
        self._transaction_depth = 0

    def _allocate_id(self, kind: str) -> int:
        record_id = self._next_ids[kind]
        self._next_ids[kind] += 1
        return record_id

    # Templates

    def save_template(self, template: TemplateRecord) -> TemplateRecord:
        for existing in self._templates.values():
            if (existing.id != template.id and existing.source is template.source
                    and existing.repository == template.repository):
                raise DuplicateRecordError(
                    f"A {template.source.value} template for repository {template.repository} already exists",
                    template.name,
                )

        if template.id is None:
            template.id = self._allocate_id("template")
        elif template.id not in self._templates:
            raise RecordNotFoundError(f"Template {template.id} not found", template.name)

        self._templates[template.id] = copy.deepcopy(template)
        return copy.deepcopy(template)

    def get_template(self, template_id: int) -> TemplateRecord:
        try:
            return copy.deepcopy(self._templates[template_id])
        except KeyError:
            raise RecordNotFoundError(f"Template {template_id} not found")

    def find_template(self, source: TemplateSource, repository: str) -> Optional[TemplateRecord]:
        for template in self._templates.values():
            if template.source is source and template.repository == repository:
                return copy.deepcopy(template)
        return None

    def list_templates(self, source: Optional[TemplateSource] = None, active_only: bool = False) -> List[TemplateRecord]:
        templates = []
        for template in self._templates.values():
            if source is not None and template.source is not source:
                continue
            if active_only and template.status is not TemplateStatus.ACTIVE:
                continue
            templates.append(copy.deepcopy(template))
        return templates

    # Template configs

    def replace_configs(self, template_id: int, configs: List[ConfigEntry]) -> None:
        if template_id not in self._templates:
            raise RecordNotFoundError(f"Template {template_id} not found")

        names = [config.name for config in configs]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise DuplicateRecordError(f"Duplicate config names for template {template_id}: {', '.join(duplicates)}")

        self._configs[template_id] = copy.deepcopy(configs)

    def list_configs(self, template_id: int) -> List[ConfigEntry]:
        configs = self._configs.get(template_id, [])
        return copy.deepcopy(sorted(configs, key=lambda config: (config.order_index, config.name)))

    # Comparisons

    def save_comparison(self, comparison: TemplateComparison) -> TemplateComparison:
        for template_id in (comparison.local_template_id, comparison.community_template_id):
            if template_id not in self._templates:
                raise RecordNotFoundError(f"Template {template_id} not found")

        for existing in self._comparisons.values():
            if (existing.id != comparison.id
                    and existing.local_template_id == comparison.local_template_id
                    and existing.community_template_id == comparison.community_template_id):
                raise DuplicateRecordError(
                    f"Comparison between templates {comparison.local_template_id} and "
                    f"{comparison.community_template_id} already exists"
                )

        if comparison.id is None:
            comparison.id = self._allocate_id("comparison")
        elif comparison.id not in self._comparisons:
            raise RecordNotFoundError(f"Comparison {comparison.id} not found")

        self._comparisons[comparison.id] = copy.deepcopy(comparison)
        return copy.deepcopy(comparison)

    def get_comparison(self, comparison_id: int) -> TemplateComparison:
        try:
            return copy.deepcopy(self._comparisons[comparison_id])
        except KeyError:
            raise RecordNotFoundError(f"Comparison {comparison_id} not found")

    def find_comparison(self, local_template_id: int, community_template_id: int) -> Optional[TemplateComparison]:
        for comparison in self._comparisons.values():
            if (comparison.local_template_id == local_template_id
                    and comparison.community_template_id == community_template_id):
                return copy.deepcopy(comparison)
        return None

    def list_comparisons(self, local_template_id: Optional[int] = None) -> List[TemplateComparison]:
        return [
            copy.deepcopy(comparison)
            for comparison in self._comparisons.values()
            if local_template_id is None or comparison.local_template_id == local_template_id
        ]

    # Sync runs

    def save_sync_run(self, run: SyncJobRun) -> SyncJobRun:
        if run.id is None:
            run.id = self._allocate_id("sync_run")
        self._sync_runs[run.id] = copy.deepcopy(run)
        return copy.deepcopy(run)

    def list_sync_runs(self) -> List[SyncJobRun]:
        """Sync runs, most recent first."""
        runs = sorted(self._sync_runs.values(), key=lambda run: run.started_at, reverse=True)
        return copy.deepcopy(runs)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._transaction_depth:
            self._transaction_depth += 1
            try:
                yield
            finally:
                self._transaction_depth -= 1
            return

        snapshot = copy.deepcopy((self._templates, self._configs, self._comparisons, self._sync_runs, self._next_ids))
        self._transaction_depth = 1
        try:
            yield
        except BaseException:
            self._templates, self._configs, self._comparisons, self._sync_runs, self._next_ids = snapshot
            self.logger.debug("Transaction rolled back")
            raise
        finally:
            self._transaction_depth = 0
