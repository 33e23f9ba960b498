"""Repository adapters, one per endpoint type.

- base.py: shared resolution (version/tag picking) and archive download
- npm.py / edp.py: npm-compatible registries
- git.py / github.py / gitlab.py: git hosts, tags and branches as versions
- local.py: a directory or archive on disk
- url.py: an archive at a plain URL

REPOSITORY_TYPES is the static table from endpoint type to adapter class.
"""

from typing import Dict, Optional, Type

from common.errors import CompkgError
from constants import EndpointType

from .base import Repository
from .edp import EdpRepository
from .github import GithubRepository
from .gitlab import GitlabRepository
from .local import LocalRepository
from .npm import NpmRepository
from .url import UrlRepository

REPOSITORY_TYPES: Dict[EndpointType, Type[Repository]] = {
    EndpointType.NPM: NpmRepository,
    EndpointType.EDP: EdpRepository,
    EndpointType.GITHUB: GithubRepository,
    EndpointType.GITLAB: GitlabRepository,
    EndpointType.LOCAL: LocalRepository,
    EndpointType.URL: UrlRepository,
}


def create_repository(
    endpoint,
    name: Optional[str] = None,
    version: Optional[str] = None,
    resolved_url: Optional[str] = None,
) -> Repository:
    """Instantiate the adapter registered for ``endpoint.type``.

    Raises:
        CompkgError: For an endpoint type with no adapter.
    """
    repository_cls = REPOSITORY_TYPES.get(endpoint.type)
    if repository_cls is None:
        raise CompkgError(f"unknown endpoint {endpoint.type}")
    return repository_cls(
        name=name,
        version=version,
        source=endpoint.value,
        domain=endpoint.domain,
        token=endpoint.token,
        resolved_url=resolved_url,
    )


__all__ = [
    "REPOSITORY_TYPES",
    "Repository",
    "create_repository",
]
