"""``search`` command: query an endpoint's search API."""

import logging
from typing import Any, Dict, Optional

from common.errors import CompkgError
from constants import Constants, EndpointType
from registry import REPOSITORY_TYPES
from report import format_search

logger = logging.getLogger(__name__)


def parse_search_key(key: str, owner: Optional[str] = None):
    """Split ``[type:][owner/]key`` into ``(endpoint type, owner, key)``."""
    endpoint_type = None
    if ":" in key:
        type_name, key = key.split(":", 1)
        endpoint_type = EndpointType.from_value(type_name)
        if endpoint_type is None:
            raise CompkgError(f"the search for {type_name} repository is not available")
    if "/" in key:
        owner, key = key.split("/", 1)
    if endpoint_type is None:
        endpoint_type = EndpointType.from_value(Constants.DEFAULT_ENDPOINT_TYPE)
    return endpoint_type, owner, key


def search_components(key: str, owner: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Search packages matching ``key``; returns None when the endpoint has no search."""
    try:
        endpoint_type, owner, key = parse_search_key(key, owner)
    except CompkgError as exc:
        logger.warning("%s", exc)
        return None

    repository_cls = REPOSITORY_TYPES.get(endpoint_type)
    if repository_cls is None:
        logger.warning("The search for %s repository is not available", endpoint_type.value)
        return None

    repository = repository_cls()
    try:
        result = repository.search(key, owner=owner)
    except CompkgError as exc:
        logger.warning("%s", exc)
        return None
    print(format_search(result, key))
    return result
