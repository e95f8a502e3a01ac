import re
from typing import Mapping, Sequence, Tuple

from .parser import Package
from .providers import PROVIDERS, Provider

_PLACEHOLDER_PATTERN = re.compile(r"\$\{\s*(\w+)\s*\}")


def render_template(template: str, substitutions: Sequence[Tuple[str, str]]) -> str:
    """Fill ``${name}`` placeholders in a single pass over `template`.

    Only the first occurrence of each substituted name is replaced. Inserted
    values are never rescanned, so a value that itself looks like a
    placeholder is kept as-is. Tokens without a substitution stay in place.
    """
    pending = dict(substitutions)

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in pending:
            return match.group(0)
        return pending.pop(name)

    return _PLACEHOLDER_PATTERN.sub(_replace, template)


def raw_url(package: Package, providers: Mapping[str, Provider] = PROVIDERS) -> str:
    provider = providers[package.domain]
    return render_template(
        provider.raw,
        [
            ("owner", package.owner),
            ("repository", package.repository),
            ("version", package.version),
            ("file", package.file),
        ],
    )


def repository_url(package: Package, providers: Mapping[str, Provider] = PROVIDERS) -> str:
    provider = providers[package.domain]
    return render_template(
        provider.repository,
        [
            ("owner", package.owner),
            ("repository", package.repository),
        ],
    )
