from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class Provider:
    """URL templates for one hosting service.

    `repository` points at the browsable project page and only uses the
    ``${owner}`` and ``${repository}`` placeholders; `raw` serves file bytes
    and additionally uses ``${version}`` and ``${file}``.
    """

    repository: str
    raw: str


# Raw URL layouts differ per host (`/raw/`, `/git/raw/`, a separate raw domain),
# so each one is spelled out rather than derived.
PROVIDERS: Mapping[str, Provider] = MappingProxyType(
    {
        "github.com": Provider(
            repository="https://github.com/${owner}/${repository}",
            raw="https://raw.githubusercontent.com/${owner}/${repository}/${version}/${file}",
        ),
        "gitlab.com": Provider(
            repository="https://gitlab.com/${owner}/${repository}",
            raw="https://gitlab.com/${owner}/${repository}/raw/${version}/${file}",
        ),
        "bitbucket.org": Provider(
            repository="https://bitbucket.org/${owner}/${repository}",
            raw="https://bitbucket.org/${owner}/${repository}/raw/${version}/${file}",
        ),
        "gitee.com": Provider(
            repository="https://gitee.com/${owner}/${repository}",
            raw="https://gitee.com/${owner}/${repository}/raw/${version}/${file}",
        ),
        "coding.net": Provider(
            repository="https://coding.net/u/${owner}/p/${repository}",
            raw="https://coding.net/u/${owner}/p/${repository}/raw/${version}/${file}",
        ),
        "code.aliyun.com": Provider(
            repository="https://code.aliyun.com/${owner}/${repository}",
            raw="https://code.aliyun.com/${owner}/${repository}/raw/${version}/${file}",
        ),
        "dev.tencent.com": Provider(
            repository="https://dev.tencent.com/u/${owner}/p/${repository}",
            raw="https://dev.tencent.com/u/${owner}/p/${repository}/git/raw/${version}/${file}",
        ),
        "git.code.tencent.com": Provider(
            repository="https://git.code.tencent.com/${owner}/${repository}",
            raw="https://git.code.tencent.com/${owner}/${repository}/raw/${version}/${file}",
        ),
    }
)


def lookup(domain: str, providers: Mapping[str, Provider] = PROVIDERS) -> Optional[Provider]:
    return providers.get(domain)


def supported_domains(providers: Mapping[str, Provider] = PROVIDERS) -> Tuple[str, ...]:
    return tuple(sorted(providers))
