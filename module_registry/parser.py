import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from .legacy import LegacyDatabase
from .providers import PROVIDERS, Provider

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "master"

STD_DOMAIN = "github.com"
STD_OWNER = "denoland"
STD_REPOSITORY = "deno_std"

# /std@0.3.0/fs/mod.ts
_STD_PATTERN = re.compile(r"^/std(@([^/]+))?/(.+)")
# /x/oak@v4.0.0/mod.ts
_LEGACY_PATTERN = re.compile(r"^/x/([^/@]+)(@([^/]+))?/(.+)")


@dataclass(frozen=True)
class Package:
    domain: str
    owner: str
    repository: str
    version: str
    file: str


class PathShape(Enum):
    STD = "std"
    LEGACY = "legacy"
    CANONICAL = "canonical"


def classify(path: str) -> PathShape:
    if _STD_PATTERN.match(path):
        return PathShape.STD
    if _LEGACY_PATTERN.match(path):
        return PathShape.LEGACY
    return PathShape.CANONICAL


def _canonical_path(
    domain: str, owner: str, repository: str, version: Optional[str], file: str
) -> str:
    project = f"{repository}@{version}" if version else repository
    return f"/{domain}/{owner}/{project}/{file}"


def normalize(path: str, legacy: LegacyDatabase) -> Optional[str]:
    """Rewrite the std and /x/ shorthands into the canonical path shape.

    Returns None when a /x/ package name is not in the legacy database.
    """
    shape = classify(path)
    if shape is PathShape.STD:
        match = _STD_PATTERN.match(path)
        return _canonical_path(
            STD_DOMAIN,
            STD_OWNER,
            STD_REPOSITORY,
            match.group(2) or DEFAULT_VERSION,
            match.group(3),
        )
    if shape is PathShape.LEGACY:
        match = _LEGACY_PATTERN.match(path)
        name = match.group(1)
        origin = legacy.resolve(name)
        if origin is None:
            logger.info("Legacy package %s not found", name)
            return None
        return _canonical_path(
            origin.domain, origin.owner, origin.repository, match.group(3), match.group(4)
        )
    return path


def extract(path: str, providers: Mapping[str, Provider] = PROVIDERS) -> Optional[Package]:
    segments = path.split("/")[1:]
    if len(segments) < 3:
        return None

    domain, owner, project = segments[:3]
    if domain not in providers:
        return None

    repository, _, version = project.partition("@")
    return Package(
        domain=domain,
        owner=owner,
        repository=repository,
        version=version or DEFAULT_VERSION,
        file="/".join(segments[3:]),
    )


def parse_path(
    path: str,
    legacy: LegacyDatabase,
    providers: Mapping[str, Provider] = PROVIDERS,
) -> Optional[Package]:
    canonical = normalize(path, legacy)
    if canonical is None:
        return None
    return extract(canonical, providers)
