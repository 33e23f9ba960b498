"""GitLab adapter, including self-hosted instances addressed by domain."""

import os
from typing import Dict, Optional
from urllib.parse import quote, urlparse

from constants import Constants, EndpointType
from .git import GitRepository


class GitlabRepository(GitRepository):
    """GitLab project repository.

    Supports optional authentication via ``DEFAULT_GITLAB_TOKEN`` or the
    GITLAB_TOKEN environment variable, sent as the ``PRIVATE-TOKEN`` header.
    """

    endpoint_type = EndpointType.GITLAB
    archive_extension = ".tar.gz"
    default_owner_attr = "DEFAULT_GITLAB_OWNER"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.token = (
            self.token
            or Constants.DEFAULT_GITLAB_TOKEN
            or os.environ.get(Constants.ENV_GITLAB_TOKEN)
        )
        domain = self.domain or Constants.DEFAULT_GITLAB_DOMAIN
        self.repos_domain = domain.rstrip("/") + "/"
        self.project_id = quote(f"{self.owner}/{self.pkg_name}", safe="")
        self.api_prefix = f"{self.repos_domain}api/v4/projects/{self.project_id}/repository"

    def request_headers(self) -> Dict[str, str]:
        headers = {}
        if self.token:
            headers["PRIVATE-TOKEN"] = self.token
        return headers

    @property
    def tags_url(self) -> str:
        return self.api_prefix + "/tags"

    @property
    def branches_url(self) -> str:
        return self.api_prefix + "/branches"

    def get_download_url(self, version: str) -> str:
        return f"{self.api_prefix}/archive.tar.gz?sha={quote(version, safe='')}"

    def get_install_source(self):
        source = super().get_install_source()
        default_domain = Constants.DEFAULT_GITLAB_DOMAIN.rstrip("/") + "/"
        if self.repos_domain != default_domain:
            # keep the host so the source parses back to this instance
            parsed = urlparse(self.repos_domain)
            path = f"git+{parsed.scheme}://{parsed.netloc}/{self.owner}/{self.pkg_name}.git"
            if self.pkg_version:
                path += "#" + self.pkg_version
            source.path = path
        return source

    def get_repository_url(self) -> Optional[str]:
        return f"{self.repos_domain}{self.owner}/{self.pkg_name}"
