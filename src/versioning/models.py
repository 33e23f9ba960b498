"""Data models for specifier parsing, version arbitration and installation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from constants import Constants, EndpointType


@dataclass(frozen=True)
class Endpoint:
    """Install source of a package: endpoint type plus addressing parameters."""
    type: EndpointType
    value: Optional[str] = None
    domain: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def default(cls) -> "Endpoint":
        """Deployment-wide default endpoint from configuration."""
        endpoint_type = EndpointType.from_value(Constants.DEFAULT_ENDPOINT_TYPE) or EndpointType.NPM
        return cls(type=endpoint_type, value=Constants.DEFAULT_ENDPOINT_VALUE)

    def with_type(self, endpoint_type: EndpointType) -> "Endpoint":
        return Endpoint(type=endpoint_type, value=self.value, domain=self.domain, token=self.token)


@dataclass(frozen=True)
class PackageDescriptor:
    """Immutable parse result of one package specifier."""
    name: Optional[str] = None
    version: Optional[str] = None
    endpoint: Optional[Endpoint] = None
    alias_name: Optional[str] = None
    explicit_endpoint: bool = False

    @property
    def is_empty(self) -> bool:
        return self.name is None and self.endpoint is None


@dataclass
class VersionInfo:
    """A concrete version picked by a repository adapter."""
    version: Optional[str] = None
    name: Optional[str] = None
    tag: Optional[str] = None
    url: Optional[str] = None
    shasum: Optional[str] = None


@dataclass
class DownloadResult:
    """Materialized package files in a temporary directory."""
    dir: str
    resolved_url: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None
    temp_dir: Optional[str] = None  # removed by the installer once placed


@dataclass
class UpdateData:
    """Available update information for an installed package."""
    latest_version: Optional[str] = None
    compat_version: Optional[str] = None
    error: Optional[str] = None


@dataclass
class InstallSource:
    """Where a package was installed from, as recorded in the manifest."""
    type: EndpointType
    path: Optional[str] = None


@dataclass
class InstallInfo:
    """Manifest/lock view of an installed package."""
    endpoint: str
    name: Optional[str]
    path: str
    version: Optional[str]
    expect_version: str
    resolved: Optional[str]


class Decision(Enum):
    """Outcome of version arbitration for one package."""
    INSTALL = "install"  # nothing installed under that name yet
    USE_EXISTING = "use_existing"
    REPLACE = "replace"
    CONFLICT_WARN_THEN_DECIDE = "conflict_warn_then_decide"

    @property
    def needs_fetch(self) -> bool:
        return self is not Decision.USE_EXISTING


class InstallState(Enum):
    """Final install state of a package node."""
    PENDING = "pending"
    INSTALLED = "installed"
    FAILED = "failed"
    SKIPPED = "skipped"


class InstallPhase(Enum):
    """Per-node progress through the installer."""
    QUEUED = "queued"
    RESOLVING = "resolving"
    FETCHING_METADATA = "fetching_metadata"
    DOWNLOADING = "downloading"
    CHECKING_CONFLICT = "checking_conflict"
    PLACING = "placing"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass
class InstallOptions:
    """Options shared by install, update and the arbiter."""
    force_latest: bool = False
    update: bool = False
    confirm: bool = True
    use_lock_info: bool = False
    save_to_dep: bool = False
    save_to_dev_dep: bool = False
    install_all_dep: bool = False
    install_all_dev_dep: bool = False


@dataclass
class UninstallOptions:
    """Options for removing installed packages."""
    remove_dep: bool = True
    confirm: bool = True
    save_to_dep: bool = False
    save_to_dev_dep: bool = False


class UninstallStatus(Enum):
    """What happened to one package during an uninstall."""
    REMOVED = "removed"
    BLOCKED = "blocked"
    NOT_INSTALLED = "not_installed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class UninstallOutcome:
    """Snapshot of one package's uninstall result.

    ``referenced_by`` is the ``name@version`` of the package whose cascade
    reached this one; it is None for a requested package.
    """
    name: str
    status: UninstallStatus
    version: Optional[str] = None
    install_version: Optional[str] = None
    reason: Optional[str] = None
    blocked_by: Optional[str] = None
    referenced_by: Optional[str] = None

    @property
    def uninstalled(self) -> bool:
        return self.status is UninstallStatus.REMOVED

    @property
    def not_existed(self) -> bool:
        return self.status is UninstallStatus.NOT_INSTALLED

    def get_name_version_info(self) -> str:
        if self.version:
            return f"{self.name}@{self.version}"
        return self.name


@dataclass
class CheckResult:
    """Working record threaded through one node's install step."""
    name: Optional[str]
    version: Optional[str]
    ignore_conflict: bool = False
    conflict: bool = False
    installed: bool = False
    new_installed: bool = False
    install_version: Optional[str] = None
    root: Optional[str] = None
    main: Optional[str] = None
    dep: Optional[Dict[str, str]] = None
    endpoint: Optional[Endpoint] = None
    resolved_url: Optional[str] = None
    temp_dir: Optional[str] = None
    meta_data: Dict[str, Any] = field(default_factory=dict)
    version_info: Optional[VersionInfo] = None


@dataclass
class SaveInfo:
    """Flags controlling which manifest lists a command writes back."""
    save_to_dep: bool = False
    save_to_dev_dep: bool = False
    all_dep: bool = False
    all_dev_dep: bool = False
    is_update: bool = False
    not_existed: List[str] = field(default_factory=list)
