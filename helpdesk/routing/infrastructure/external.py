"""
Routing External Integrations
=============================

YAML keyword file for the ticket classifier, with hot reload via watchdog.

File format::

    order: [order, shipping, refund]
    product: [product, warranty]
    tech_support: [error, login, "not working"]

Missing sets fall back to the built-in keywords.
"""

import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk.core import ConfigurationException
from helpdesk.routing.application.services import IClassifierProvider
from helpdesk.routing.domain import KeywordSets, TicketClassifier
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class KeywordFileHandler(FileSystemEventHandler):
    """Watchdog event handler for keyword file changes."""

    def __init__(self, manager: "KeywordConfigManager", path: Path):
        self.manager = manager
        self.path = path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.path.resolve():
            logger.info("Classifier keyword file changed", extra={"path": event.src_path})
            self.manager.reload()


class KeywordConfigManager(IClassifierProvider):
    """
    Thread-safe holder of the current TicketClassifier.

    The classifier is rebuilt whenever the keyword file changes; a broken
    file keeps the previous classifier in place.
    """

    def __init__(self):
        self._classifier = TicketClassifier()
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> TicketClassifier:
        """Initial load; a missing file means built-in keywords."""
        self._path = path
        classifier = TicketClassifier(self._load_from_file(path))
        with self._lock:
            self._classifier = classifier
        return classifier

    def _load_from_file(self, path: Path) -> KeywordSets:
        if not path.exists():
            logger.info("Classifier keyword file not found, using defaults", extra={"path": str(path)})
            return KeywordSets()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationException(f"Keyword file {path} must contain a mapping")

        try:
            return KeywordSets(**data)
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid keyword file {path}",
                {"errors": [err["msg"] for err in e.errors()]}
            )

    def reload(self) -> bool:
        """Reload keywords from file. Returns False and keeps the old set on error."""
        if self._path is None:
            return False

        try:
            classifier = TicketClassifier(self._load_from_file(self._path))
        except (ConfigurationException, yaml.YAMLError, OSError) as e:
            logger.error("Failed to reload classifier keywords", extra={"error": str(e)})
            return False

        with self._lock:
            self._classifier = classifier
        logger.info("Classifier keywords reloaded")
        return True

    def start_watching(self) -> None:
        """Watch the keyword file for changes. No-op if the file does not exist."""
        if self._path is None:
            raise RuntimeError("Keywords not loaded. Call load() first.")

        if not self._path.exists():
            logger.info("Keyword file doesn't exist, skipping file watch", extra={"path": str(self._path)})
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                KeywordFileHandler(self, self._path),
                str(self._path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching keyword file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static keywords", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_classifier(self) -> TicketClassifier:
        with self._lock:
            return self._classifier


keyword_manager = KeywordConfigManager()
