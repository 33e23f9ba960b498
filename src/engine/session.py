"""Per-command state shared by the install and uninstall engines."""

from typing import Any, Dict, Iterable, Optional


class InstallSession:
    """State owned by one top-level command.

    Holds the versions the operator asked for by name, the nodes already
    processed keyed by their dedup key, and the version lookup cache shared
    by every repository adapter during the run.
    """

    def __init__(self):
        self.expected_versions: Dict[str, Optional[str]] = {}
        self.installed_map: Dict[str, Any] = {}
        self.version_cache: Dict[str, Any] = {}

    def init_expected_versions(self, nodes: Iterable[Any]) -> None:
        for node in nodes:
            if node.name:
                self.expected_versions[node.name] = node.version

    def get_expected_version(self, name: Optional[str]) -> Optional[str]:
        return self.expected_versions.get(name) if name else None
