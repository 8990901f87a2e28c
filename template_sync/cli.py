"""
Command-line interface for the template sync system.

Sub-commands:
- config: show the configuration summary and validate it
- scan: list the templates found in the local template directory
- compare: print the difference map between a local and a community template file
- preview: print the merged document for a set of choices without writing anything
- apply: merge the chosen community values into the local template file (with backup)
"""

import argparse
import json
import logging
import sys

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from . import __version__
from .comparison.comparison_service import ComparisonService
from .comparison.difference_calculator import DifferenceCalculator
from .config.config_manager import get_config_manager
from .config.sync_defaults import SyncDefaults
from .exceptions import TemplateSyncError
from .merge.preview_builder import PreviewBuilder
from .models import TemplateRecord, TemplateSource
from .parsing.template_parser import TemplateParser
from .storage.record_store import InMemoryRecordStore


def _key_value(text: str) -> Tuple[str, str]:
    key, separator, value = text.partition("=")
    if not separator or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return key, value


def _choice(text: str) -> Tuple[str, str]:
    key, value = _key_value(text)
    if value not in ("local", "community"):
        raise argparse.ArgumentTypeError(f"choice for {key} must be 'local' or 'community', got {value!r}")
    return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="template_sync", description="Container template sync")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=SyncDefaults.LOG_LEVEL,
                        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
                        help=f"Logging level (default: {SyncDefaults.LOG_LEVEL})")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("config", help="Show and validate configuration")

    scan_parser = subparsers.add_parser("scan", help="List local templates")
    scan_parser.add_argument("--directory", help="Template directory (default: configured directory)")

    compare_parser = subparsers.add_parser("compare", help="Print the difference map of two template files as JSON")
    compare_parser.add_argument("local", help="Local template file")
    compare_parser.add_argument("community", help="Community template file")

    for name, help_text in (("preview", "Print the merged template without writing it"),
                            ("apply", "Write the merged template back to the local file")):
        merge_parser = subparsers.add_parser(name, help=help_text)
        merge_parser.add_argument("local", help="Local template file")
        merge_parser.add_argument("community", help="Community template file")
        merge_parser.add_argument("--choice", action="append", type=_choice, default=[], metavar="KEY=local|community",
                                  help="Choice for a difference key (repeatable)")
        merge_parser.add_argument("--edit", action="append", type=_key_value, default=[], metavar="KEY=VALUE",
                                  help="Manual value for a difference key (repeatable)")

    apply_parser = subparsers.choices["apply"]
    apply_parser.add_argument("--backup-directory", help="Backup directory (default: configured directory)")

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    options = build_parser().parse_args(args)

    # Set up logging without reconfiguring root if already configured
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, options.log_level))
    logger = logging.getLogger(__name__)

    commands = {
        "config": _run_config,
        "scan": _run_scan,
        "compare": _run_compare,
        "preview": _run_preview,
        "apply": _run_apply,
    }

    try:
        return commands[options.command](options)
    except TemplateSyncError as e:
        logger.error(f"{options.command} failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"{options.command} failed: {e}")
        return 1


def _run_config(options) -> int:
    config_manager = get_config_manager()
    print(json.dumps(config_manager.get_configuration_summary(), indent=2))
    config_manager.validate_configuration()
    print("Configuration Status: VALID")
    return 0


def _run_scan(options) -> int:
    if options.directory:
        from .sources.local_scanner import LocalTemplateScanner
        scanner = LocalTemplateScanner(options.directory)
    else:
        scanner = get_config_manager().create_local_scanner()

    templates = scanner.scan_templates()
    for template in templates:
        print(f"{template.name}\t{template.repository}\t{template.local_path}")
    print(f"{len(templates)} templates")
    return 0


def _run_compare(options) -> int:
    parser = TemplateParser()
    local_template = load_template_file(options.local, TemplateSource.LOCAL, parser)
    community_template = load_template_file(options.community, TemplateSource.COMMUNITY, parser)

    differences = DifferenceCalculator(local_template, community_template, parser).calculate()
    print(json.dumps({key: difference.to_dict() for key, difference in differences.items()}, indent=2))
    return 0


def _run_preview(options) -> int:
    parser = TemplateParser()
    local_template = load_template_file(options.local, TemplateSource.LOCAL, parser)
    community_template = load_template_file(options.community, TemplateSource.COMMUNITY, parser)
    differences = DifferenceCalculator(local_template, community_template, parser).calculate()

    preview = PreviewBuilder(parser).build(
        local_template.xml_content,
        differences,
        dict(options.choice),
        dict(options.edit),
        local_template.name,
    )
    if preview.xml_preview is None:
        print("No changes selected")
        return 0

    print(preview.xml_preview, end="")
    return 0


def _run_apply(options) -> int:
    parser = TemplateParser()
    config_manager = get_config_manager()
    backup_directory = options.backup_directory or str(config_manager.backup_directory)

    store = InMemoryRecordStore()
    local_template = store.save_template(load_template_file(options.local, TemplateSource.LOCAL, parser))
    community_template = store.save_template(load_template_file(options.community, TemplateSource.COMMUNITY, parser))

    service = ComparisonService(store, config_manager.create_file_store(), backup_directory, parser)
    comparison = service.find_or_create_comparison(local_template, community_template)
    comparison = service.submit_choices(comparison, dict(options.choice), dict(options.edit))
    updated = service.apply(comparison)

    print(f"Updated {updated.local_path}")
    return 0


def load_template_file(path: str, source: TemplateSource, parser: Optional[TemplateParser] = None) -> TemplateRecord:
    """
    Read a template file into a TemplateRecord.

    Raises:
        XMLParsingError: If the file is not well-formed
        TemplateSyncError: If the file has no Container element
    """
    parser = parser or TemplateParser()
    file_path = Path(path)
    xml_content = file_path.read_text(encoding=SyncDefaults.FILE_ENCODING, errors="replace")

    extracted = parser.extract(xml_content, file_path.stem)
    if extracted is None:
        raise TemplateSyncError(f"No Container element in {path}", file_path.stem)

    fields: Dict[str, Optional[str]] = extracted.fields
    return TemplateRecord(
        name=fields.get("name") or file_path.stem,
        repository=fields.get("repository") or file_path.stem,
        source=source,
        xml_content=xml_content,
        network=fields.get("network"),
        category=fields.get("category"),
        banner=fields.get("banner"),
        webui=fields.get("webui"),
        description=fields.get("description"),
        template_version=fields.get("template_version"),
        local_path=str(file_path) if source is TemplateSource.LOCAL else None,
    )


if __name__ == "__main__":
    sys.exit(main())
