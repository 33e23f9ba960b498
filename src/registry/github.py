"""GitHub adapter: tags/branches via the REST API, archives via codeload."""

import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import quote

from common.http_client import fetch_json
from constants import Constants, EndpointType
from .git import GitRepository

logger = logging.getLogger(__name__)


class GithubRepository(GitRepository):
    endpoint_type = EndpointType.GITHUB
    archive_extension = ".zip"
    default_owner_attr = "DEFAULT_GITHUB_OWNER"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.token = self.token or Constants.GITHUB_TOKEN or os.environ.get(Constants.ENV_GITHUB_TOKEN)
        self.api_prefix = f"{Constants.GITHUB_API_BASE}/repos/{self.owner}/{self.pkg_name}"

    def request_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    @property
    def tags_url(self) -> str:
        return self.api_prefix + "/tags"

    @property
    def branches_url(self) -> str:
        return self.api_prefix + "/branches"

    def get_download_url(self, version: str) -> str:
        # https://codeload.github.com/<owner>/<repo>/legacy.zip/<ref>
        return f"{Constants.GITHUB_CODELOAD_BASE}/{self.owner}/{self.pkg_name}/legacy.zip/{version}"

    def get_install_source(self):
        source = super().get_install_source()
        # owner/name is github shorthand, no prefix needed
        source.path = source.path[len(self.prefix()):]
        return source

    def get_repository_url(self) -> Optional[str]:
        return f"https://github.com/{self.owner}/{self.pkg_name}"

    def search(self, key: str, owner: Optional[str] = None) -> Dict[str, Any]:
        qualifiers = [quote(key), "in:name", "language:javascript"]
        if owner:
            qualifiers.append(f"user:{owner}")
        url = f"{Constants.GITHUB_API_BASE}/search/repositories?q={'+'.join(qualifiers)}"
        data = fetch_json(url, context=self.endpoint_type.value, headers=self.request_headers())
        items = [
            {
                "name": item.get("name"),
                "full_name": item.get("full_name"),
                "description": item.get("description"),
                "url": item.get("html_url"),
                "time": (item.get("updated_at") or "")[:10],
                "forks": item.get("forks_count"),
                "stars": item.get("stargazers_count"),
            }
            for item in data.get("items") or []
        ]
        return {"github": True, "count": data.get("total_count", len(items)), "list": items}
