import re
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .generator import raw_url, repository_url
from .legacy import LegacyDatabase
from .parser import Package, parse_path
from .providers import PROVIDERS, Provider

_BROWSER_PATTERN = re.compile(r"webkit|mozilla|chrome|safari", re.IGNORECASE)


@dataclass(frozen=True)
class Redirect:
    location: str


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Proxy:
    url: str
    package: Package


Plan = Union[Redirect, NotFound, Proxy]


def is_browser_user_agent(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    return _BROWSER_PATTERN.search(user_agent) is not None


def plan_request(
    path: str,
    user_agent: Optional[str],
    legacy: LegacyDatabase,
    homepage_url: str,
    providers: Mapping[str, Provider] = PROVIDERS,
    query: str = "",
) -> Plan:
    """Decide how to answer a request for `path`.

    Browsers are sent to the homepage for `/` and to the repository page when
    the path names a repository without a file. Everything else that parses
    is proxied from the raw-content URL, with `query` carried over.
    """
    from_browser = is_browser_user_agent(user_agent)

    if from_browser and path == "/":
        return Redirect(location=homepage_url)

    package = parse_path(path, legacy, providers)
    if package is None:
        return NotFound()

    if from_browser and package.file == "":
        return Redirect(location=repository_url(package, providers))

    url = raw_url(package, providers)
    if query:
        url = f"{url}?{query}"
    return Proxy(url=url, package=package)
