"""Package specifier parsing.

Turns strings such as ``er@^3.0``, ``myer=er``, ``github:owner/repo#v1``,
``./vendor/pkg.zip`` or ``git+ssh://git@host:owner/repo.git#dev`` into an
immutable PackageDescriptor.
"""

import logging
import os
import re
from typing import Optional, Tuple

from common.errors import SpecifierError
from constants import EndpointType
from .models import Endpoint, PackageDescriptor

logger = logging.getLogger(__name__)

_LOCAL_FILE_RE = re.compile(r"^[./~\\]+")
_URI_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+\-.]+:", re.IGNORECASE)
_OWNER_PATH_RE = re.compile(r"[^=/]+/[^=]*$")
_HTTP_RE = re.compile(r"^https?://")
_GIT_RE = re.compile(r"^git://([^/]+)/([^/]+)/(.+)\.git(?:#(.*))?$")
_GIT_PLUS_RE = re.compile(
    r"^git\+(ssh|http|https)://(?:[^@/]+@)?([^/:]+)[/:](.+)/([^/]+?)\.git(?:#(.*))?$"
)


def is_local_file_scheme(value: Optional[str]) -> bool:
    """Return True for ``.``, ``/``, ``~`` or backslash prefixed paths."""
    return bool(value) and bool(_LOCAL_FILE_RE.match(value))


def is_uri_scheme(value: Optional[str]) -> bool:
    """Return True when ``value`` looks like ``scheme:...`` or an ``owner/path``."""
    if not value:
        return False
    return bool(_URI_SCHEME_RE.match(value) or _OWNER_PATH_RE.search(value))


def is_http_scheme(value: Optional[str]) -> bool:
    return bool(value) and bool(_HTTP_RE.match(value))


def _resolve_local_path(value: str) -> str:
    return os.path.abspath(os.path.expanduser(value))


def _last_separator_index(text: str, separator: str) -> int:
    """Index of the last separator not escaped by a backslash, or -1."""
    idx = text.rfind(separator)
    while idx > 0 and text[idx - 1] == "\\":
        idx = text.rfind(separator, 0, idx)
    return idx


def _split_version(text: str, separator: str) -> Tuple[Optional[str], Optional[str]]:
    """Split ``name@version``; a leading separator belongs to the (scoped) name."""
    text = text.strip()
    if not text:
        return None, None
    idx = _last_separator_index(text, separator)
    if idx > 0:
        name = text[:idx].strip()
        version = text[idx + 1:].strip()
    else:
        name, version = text, None
    name = name.replace("\\" + separator, separator)
    return name or None, version or None


def _parse_git_url(spec: str) -> Optional[PackageDescriptor]:
    match = _GIT_RE.match(spec)
    if match:
        host, owner, name, ref = match.groups()
        endpoint = Endpoint(type=EndpointType.GITLAB, value=owner, domain="http://" + host)
        return PackageDescriptor(
            name=name, version=ref or None, endpoint=endpoint, explicit_endpoint=True
        )

    match = _GIT_PLUS_RE.match(spec)
    if match:
        protocol, host, owner, name, ref = match.groups()
        if protocol == "ssh":
            protocol = "http"
        endpoint = Endpoint(
            type=EndpointType.GITLAB, value=owner, domain=f"{protocol}://{host}"
        )
        return PackageDescriptor(
            name=name, version=ref or None, endpoint=endpoint, explicit_endpoint=True
        )

    if spec.startswith("git:") or spec.startswith("git+"):
        raise SpecifierError(f"unrecognized git url: {spec}")
    return None


def _parse_endpoint_info(
    spec: str,
    endpoint_type: Optional[EndpointType],
    separator: str,
    alias_name: Optional[str],
) -> PackageDescriptor:
    if endpoint_type in (EndpointType.LOCAL, EndpointType.URL):
        # file:../a/b.zip er@2.1.0
        space_idx = spec.find(" ")
        if space_idx == -1:
            value, rest = spec, ""
        else:
            value, rest = spec[:space_idx], spec[space_idx:].strip()
        if endpoint_type is EndpointType.LOCAL:
            value = _resolve_local_path(value)
        name, version = _split_version(rest, separator)
        return PackageDescriptor(
            name=name,
            version=version,
            endpoint=Endpoint(type=endpoint_type, value=value),
            alias_name=alias_name,
            explicit_endpoint=True,
        )

    segments = spec.split("/")
    if len(segments) > 1 and not spec.startswith("@"):
        if endpoint_type is not None and endpoint_type not in (
            EndpointType.GITHUB, EndpointType.GITLAB
        ):
            raise SpecifierError(
                f"parse endpoint {endpoint_type.value} value fail: {spec}, require github/gitlab"
            )
        endpoint = Endpoint(
            type=endpoint_type or EndpointType.GITHUB, value=segments[0].strip()
        )
        rest = "/".join(segments[1:]).strip().replace("#", separator, 1)
        name, version = _split_version(rest, separator)
        return PackageDescriptor(
            name=name,
            version=version,
            endpoint=endpoint,
            alias_name=alias_name,
            explicit_endpoint=True,
        )

    name, version = _split_version(spec, separator)
    if endpoint_type is None:
        endpoint = Endpoint.default()
    else:
        endpoint = Endpoint(type=endpoint_type)
    return PackageDescriptor(
        name=name,
        version=version,
        endpoint=endpoint,
        alias_name=alias_name,
        explicit_endpoint=endpoint_type is not None,
    )


def _extract_package_info(
    spec: str, separator: str, alias_name: Optional[str]
) -> PackageDescriptor:
    segments = spec.split(":")
    if len(segments) == 1:
        return _parse_endpoint_info(spec, None, separator, alias_name)

    type_name = segments[0].strip().lower()
    endpoint_type = EndpointType.from_value(type_name)
    if endpoint_type is None:
        raise SpecifierError(f"unknown endpoint {type_name}: {spec}")
    rest = ":".join(segments[1:]).strip()
    return _parse_endpoint_info(rest, endpoint_type, separator, alias_name)


def parse(
    specifier: Optional[str], support_alias: bool = False, version_separator: str = "@"
) -> PackageDescriptor:
    """Parse a package specifier into a PackageDescriptor.

    Recognized forms, in precedence order::

        <alias>=<spec>                  (only when support_alias is set)
        ./path | ../path | ~/path | /path
        http(s)://host/archive.tgz
        git://host/owner/repo.git[#ref]
        git+ssh|http|https://[user@]host[:/]owner/repo.git[#ref]
        <endpoint>:<rest>
        <owner>/<name>[@version|#ref]   (github unless an endpoint says gitlab)
        [@scope/]<name>[@version]

    Args:
        specifier: Raw specifier string.
        support_alias: Whether ``alias=spec`` syntax is honored.
        version_separator: Separator between name and version.

    Returns:
        PackageDescriptor: An empty descriptor for an empty specifier.

    Raises:
        SpecifierError: When the endpoint prefix is unknown or does not accept
            an ``owner/name`` value.
    """
    spec = (specifier or "").strip()
    if not spec:
        return PackageDescriptor()

    alias_name = None
    if support_alias and not is_uri_scheme(spec):
        last_at = spec.rfind(version_separator)
        head = spec[:last_at] if last_at > 0 else spec
        if "=" in head:
            alias_name = head.split("=", 1)[0].strip() or None
            spec = spec.split("=", 1)[1].strip()

    if is_local_file_scheme(spec):
        return PackageDescriptor(
            endpoint=Endpoint(type=EndpointType.LOCAL, value=_resolve_local_path(spec)),
            alias_name=alias_name,
            explicit_endpoint=True,
        )
    if is_http_scheme(spec):
        return PackageDescriptor(
            endpoint=Endpoint(type=EndpointType.URL, value=spec),
            alias_name=alias_name,
            explicit_endpoint=True,
        )

    descriptor = _parse_git_url(spec)
    if descriptor is not None:
        return descriptor

    descriptor = _extract_package_info(spec, version_separator, alias_name)
    logger.debug("parsed %s -> %s", specifier, descriptor)
    return descriptor
