"""
Client for the Community Applications catalog feed.

The feed is one JSON document listing every published application. Records are
matched to local templates by normalized repository and converted into
community TemplateRecords.
"""

import logging

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from lxml import etree

from ..config.sync_defaults import SyncDefaults
from ..exceptions import CatalogParseError, FeedUnavailableError, XMLParsingError
from ..interfaces import CatalogLookupInterface
from ..models import TemplateRecord, TemplateSource
from ..parsing.template_parser import CONFIG_TAG, CONTAINER_TAG, TemplateParser
from ..utils import ValueNormalizer


# Feed keys written as Container child elements, in document order.
FEED_ELEMENTS = (
    "Name", "Repository", "Registry", "Network", "Privileged", "Support", "Project",
    "Overview", "Category", "WebUI", "Icon", "TemplateURL", "Date",
)

# Feed keys searched by search_templates.
SEARCH_KEYS = ("Name", "Repository", "Overview", "Category")


class CommunityApplicationsClient(CatalogLookupInterface):
    """
    Fetches and queries the Community Applications feed over HTTP.

    The parsed feed is cached on the client; pass ``refresh=True`` to
    fetch_feed to reload it.
    """

    def __init__(self, feed_url: str = SyncDefaults.FEED_URL, http_client: Optional[httpx.Client] = None,
                 timeout: float = SyncDefaults.HTTP_TIMEOUT, parser: Optional[TemplateParser] = None):
        self.logger = logging.getLogger(__name__)
        self.feed_url = feed_url
        self.http_client = http_client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.parser = parser or TemplateParser()
        self._feed: Optional[Dict[str, Any]] = None

    def close(self) -> None:
        self.http_client.close()

    def fetch_feed(self, refresh: bool = False) -> Dict[str, Any]:
        """
        Download and parse the feed.

        Raises:
            FeedUnavailableError: On network failure or a non-2xx response
            CatalogParseError: If the payload is not a JSON object
        """
        if self._feed is not None and not refresh:
            return self._feed

        self.logger.info(f"Fetching Community Applications feed from {self.feed_url}")
        try:
            response = self.http_client.get(self.feed_url)
        except httpx.HTTPError as e:
            raise FeedUnavailableError(f"Network error fetching feed: {e}")

        if not response.is_success:
            raise FeedUnavailableError(
                f"Failed to fetch feed: {response.status_code} {response.reason_phrase}", response.status_code
            )

        try:
            feed = response.json()
        except ValueError as e:
            raise CatalogParseError(f"Invalid JSON in feed: {e}")
        if not isinstance(feed, dict):
            raise CatalogParseError(f"Feed must be a JSON object, got {type(feed).__name__}")

        self._feed = feed
        self.logger.info(f"Feed contains {len(self.applications(feed))} applications")
        return feed

    @staticmethod
    def applications(feed: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [app for app in feed.get("applications") or [] if isinstance(app, dict)]

    def find_by_repository(self, repository: str) -> Optional[Dict[str, Any]]:
        target = ValueNormalizer.normalize_repository(repository)
        if not target:
            return None

        for app in self.applications(self.fetch_feed()):
            if ValueNormalizer.normalize_repository(app.get("Repository")) == target:
                return app
        return None

    def search_templates(self, query: str) -> List[Dict[str, Any]]:
        """Applications whose name, repository, overview or category contains the query (case-insensitive)."""
        needle = query.lower()
        return [
            app for app in self.applications(self.fetch_feed())
            if any(isinstance(app.get(key), str) and needle in app[key].lower() for key in SEARCH_KEYS)
        ]

    def fetch_body(self, url: str) -> Optional[str]:
        """
        Download a template document.

        Returns:
            Document text, or None on 404

        Raises:
            FeedUnavailableError: On network failure or another non-2xx response
        """
        try:
            response = self.http_client.get(url)
        except httpx.HTTPError as e:
            raise FeedUnavailableError(f"Network error fetching template {url}: {e}")

        if response.status_code == 404:
            self.logger.debug(f"Template not found: {url}")
            return None
        if not response.is_success:
            raise FeedUnavailableError(
                f"Failed to fetch template {url}: {response.status_code} {response.reason_phrase}",
                response.status_code,
            )
        return response.text

    def convert_to_template(self, app_data: Optional[Dict[str, Any]],
                            xml_content: Optional[str] = None) -> Optional[TemplateRecord]:
        """
        Build a community TemplateRecord from a feed record.

        Args:
            app_data: Feed application record
            xml_content: Template document; defaults to the record's embedded
                ``template`` body, else a document built from the record

        Returns:
            TemplateRecord, or None when the record has no name or repository
        """
        if not app_data:
            return None

        name = self._text(app_data.get("Name"))
        repository = self._text(app_data.get("Repository"))
        if not name or not repository:
            self.logger.debug(f"Skipping feed record without Name or Repository: {name or repository}")
            return None

        xml_content = xml_content or self._text(app_data.get("template")) or self.build_xml_from_app_data(app_data)

        # The document is authoritative; feed values fill what it does not carry
        fields: Dict[str, Optional[str]] = {}
        try:
            extracted = self.parser.extract(xml_content, name)
        except XMLParsingError as e:
            self.logger.warning(f"Community template body for {name} is not valid XML: {e}")
            extracted = None
        if extracted is not None:
            fields = extracted.fields

        return TemplateRecord(
            name=fields.get("name") or name,
            repository=repository,
            source=TemplateSource.COMMUNITY,
            xml_content=xml_content,
            network=fields.get("network") or self._text(app_data.get("Network")),
            category=fields.get("category") or self._text(app_data.get("Category")),
            banner=fields.get("banner") or self._text(app_data.get("Icon")),
            webui=fields.get("webui") or self._text(app_data.get("WebUI")),
            description=fields.get("description") or self._text(app_data.get("Overview")),
            template_version=fields.get("template_version") or self._text(app_data.get("Date")),
            last_updated_at=self.parse_date(app_data.get("Date")),
        )

    def build_xml_from_app_data(self, app_data: Dict[str, Any]) -> str:
        """Container document with the feed's scalar values and one Config element per feed config."""
        container = etree.Element(CONTAINER_TAG, version="2")
        for key in FEED_ELEMENTS:
            value = self._text(app_data.get(key))
            if value is not None:
                etree.SubElement(container, key).text = value

        configs = app_data.get("Config") or []
        if isinstance(configs, dict):
            configs = [configs]
        for config in configs:
            if not isinstance(config, dict):
                continue
            # Feeds converted from XML nest attributes under "@attributes"
            attributes = config.get("@attributes", config)
            config_node = etree.SubElement(container, CONFIG_TAG)
            for key, value in attributes.items():
                text = self._text(value)
                if key not in ("content", "value", "@attributes") and text is not None:
                    config_node.set(key, text)
            text = self._text(config.get("value", config.get("content")))
            if text:
                config_node.text = text

        etree.indent(container, space="  ")
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + etree.tostring(container, encoding="unicode") + "\n"

    @staticmethod
    def parse_date(value: Any) -> Optional[datetime]:
        """Feed date as ISO string or unix timestamp; None when neither parses."""
        if value is None or value == "":
            return None

        text = str(value).strip()
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass

        try:
            timestamp = int(float(text))
        except ValueError:
            return None
        if timestamp <= 0:
            return None
        try:
            return datetime.fromtimestamp(timestamp)
        except (OverflowError, OSError, ValueError):
            return None

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list)):
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value).strip()
        return text or None
