"""Source document client."""
import json
import logging
from pathlib import Path
from typing import Any, Dict

import requests

from config import HttpConfig
from jsonmap.exceptions import SourceLoadError

logger = logging.getLogger(__name__)


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class SourceClient:
    """Loads sample or live source documents from files and HTTP endpoints."""

    def __init__(self, config: HttpConfig):
        """Initialize client."""
        self.config = config
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": config.user_agent,
        })

        if config.auth_token:
            self.session.headers.update({"Authorization": f"Bearer {config.auth_token}"})

    def fetch(self, url: str) -> Any:
        """GET a JSON document."""
        try:
            logger.debug(f"Fetching {url}")
            response = self.session.get(url, timeout=self.config.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise SourceLoadError(f"Error fetching {url}: {e}") from e
        except ValueError as e:
            raise SourceLoadError(f"Response from {url} is not JSON: {e}") from e

    def read(self, path: Path) -> Any:
        """Read a local JSON document."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except OSError as e:
            raise SourceLoadError(f"Cannot read {path}: {e}") from e
        except ValueError as e:
            raise SourceLoadError(f"{path} is not valid JSON: {e}") from e

    def load(self, location: str) -> Any:
        """Load a document from a URL or a file path."""
        document = self.fetch(location) if is_url(location) else self.read(Path(location))
        logger.info(f"Loaded source document from {location}")
        return document

    def load_all(self, locations: Dict[str, str]) -> Dict[str, Any]:
        """Load documents keyed by source id."""
        return {source_id: self.load(location) for source_id, location in locations.items()}
