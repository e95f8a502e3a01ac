import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import yaml
from pydantic import ValidationError

from .schemas import LegacyPackage
from .upstream import fetch_text

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Origin:
    domain: str
    owner: str
    repository: str


def _origin_from_repo_url(repo_url: str) -> Optional[Origin]:
    parsed = urlparse(repo_url.strip())
    if not parsed.hostname:
        return None
    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        return None
    port = parsed.port
    if port is None or _DEFAULT_PORTS.get(parsed.scheme) == port:
        domain = parsed.hostname
    else:
        domain = f"{parsed.hostname}:{port}"
    return Origin(domain=domain, owner=parts[0], repository=parts[1])


class LegacyDatabase:
    """Read-only lookup of old `/x/<name>` package names."""

    def __init__(self, packages: Optional[Mapping[str, LegacyPackage]] = None):
        self._packages: Mapping[str, LegacyPackage] = MappingProxyType(dict(packages or {}))

    def __len__(self) -> int:
        return len(self._packages)

    def get(self, name: str) -> Optional[LegacyPackage]:
        return self._packages.get(name)

    def resolve(self, name: str) -> Optional[Origin]:
        package = self.get(name)
        if package is None:
            return None
        try:
            origin = _origin_from_repo_url(package.repo)
        except ValueError:
            origin = None
        if origin is None:
            logger.warning("Legacy package %s has an unusable repo URL: %r", name, package.repo)
        return origin


def _extract_entries(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    return {str(name): entry for name, entry in payload.items()}


def parse_legacy_database(content: str, source: str = "<memory>") -> LegacyDatabase:
    payload = yaml.safe_load(content)
    entries = _extract_entries(payload)
    if not entries:
        logger.warning("No legacy packages found in %s", source)
        return LegacyDatabase()

    packages: Dict[str, LegacyPackage] = {}
    for name, entry in entries.items():
        try:
            packages[name] = LegacyPackage.model_validate(entry)
        except ValidationError:
            logger.warning("Skipping invalid legacy package %s in %s", name, source)
    return LegacyDatabase(packages)


def load_legacy_database(
    path: Optional[str] = None,
    url: Optional[str] = None,
    timeout_seconds: float = 15,
) -> LegacyDatabase:
    source = url or path
    if source is None:
        logger.info("No legacy database configured")
        return LegacyDatabase()

    try:
        if url:
            content = fetch_text(url, timeout_seconds=timeout_seconds)
        else:
            with open(path, encoding="utf-8") as handle:
                content = handle.read()
    except Exception:
        logger.exception("Failed to read legacy database from %s", source)
        return LegacyDatabase()

    try:
        database = parse_legacy_database(content, source)
    except yaml.YAMLError:
        logger.exception("Invalid legacy database content in %s", source)
        return LegacyDatabase()

    logger.info("Loaded %d legacy packages from %s", len(database), source)
    return database
