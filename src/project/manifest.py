"""Reading the project manifest and the metadata files of installed packages."""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import Constants

logger = logging.getLogger(__name__)

_SCRIPT_MAIN_RE = re.compile(r"\.(js|coffee|ts|dart)$", re.IGNORECASE)


@dataclass
class PackageMeta:
    """Metadata of one package directory."""
    root: str
    name: Optional[str] = None
    version: Optional[str] = None
    main: Optional[str] = None
    dep: Optional[Dict[str, str]] = None
    meta_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ManifestData:
    """Dependency information read from the project manifest."""
    file: str
    raw_data: Dict[str, Any]
    save_key: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None
    dependencies: Dict[str, Any] = field(default_factory=dict)
    dev_dependencies: Dict[str, Any] = field(default_factory=dict)
    ignore_dependencies: List[str] = field(default_factory=list)
    module_config: Dict[str, Any] = field(default_factory=dict)
    lock: Dict[str, Any] = field(default_factory=dict)


def load_json(file_path: str) -> Optional[Any]:
    """Load a JSON file, returning None when it is missing or malformed."""
    if not os.path.isfile(file_path):
        return None
    try:
        with open(file_path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as exc:
        logger.debug("read %s fail: %s", file_path, exc)
        return None


def read_manifest_file(manifest_file: str) -> ManifestData:
    """Read dependency information from the project manifest.

    A missing or malformed manifest is treated as empty, so a project can be
    initialized by its first install.
    """
    data = None
    if os.path.exists(manifest_file):
        try:
            with open(manifest_file, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("read manifest %s fail, treat it as empty: %s", manifest_file, exc)
    if not isinstance(data, dict):
        data = {}

    key = Constants.SAVE_TARGET_KEY
    dep_info = data
    if key:
        dep_info = data.get(key) if isinstance(data.get(key), dict) else {}

    def _mapping(value) -> Dict[str, Any]:
        return value if isinstance(value, dict) else {}

    return ManifestData(
        file=manifest_file,
        raw_data=data,
        save_key=key,
        name=data.get("name"),
        version=data.get("version"),
        dependencies=_mapping(dep_info.get("dependencies")),
        dev_dependencies=_mapping(dep_info.get("devDependencies")),
        ignore_dependencies=list(dep_info.get("ignoreDependencies") or []),
        module_config=_mapping(dep_info.get(Constants.MODULE_CONFIG_KEY)),
        lock=_mapping(dep_info.get(Constants.LOCK_CONFIG_KEY)),
    )


def _read_meta(root: str, meta_file: str) -> Optional[Dict[str, Any]]:
    data = load_json(os.path.join(root, meta_file))
    return data if isinstance(data, dict) else None


def _find_secondary_dep_key(data: Optional[Dict[str, Any]]) -> Optional[str]:
    """Key of the first member object carrying its own ``dependencies``."""
    for key, value in (data or {}).items():
        if isinstance(value, dict) and "dependencies" in value:
            return key
    return None


def _normalize_deps(deps: Any) -> Optional[Dict[str, str]]:
    # component.json may list dependencies as ["name@version", ...]
    if isinstance(deps, list):
        dep_map = {}
        for item in deps:
            name, _, version = str(item).partition("@")
            dep_map[name.strip()] = version.strip()
        return dep_map
    if isinstance(deps, dict):
        return deps
    return None


def _init_meta(
    root: str, data: Dict[str, Any], meta: Optional[PackageMeta] = None
) -> PackageMeta:
    deps = _normalize_deps(data.get("dependencies"))
    if meta is not None:
        meta.dep = deps
    else:
        main = data.get("main")
        if isinstance(main, list):
            main = next((item for item in main if _SCRIPT_MAIN_RE.search(str(item))), None)
        meta = PackageMeta(
            root=root,
            name=data.get("name"),
            version=data.get("version"),
            main=main,
            dep=deps,
        )
    meta.meta_data = data
    return meta


def read_package_manifest(
    pkg_dir: str, pkg_root: Optional[str] = None, find_down: bool = False
) -> Optional[PackageMeta]:
    """Read name, version, main entry and dependencies of a package directory.

    ``package.json`` comes first. A member object of it holding its own
    ``dependencies`` wins outright; otherwise ``bower.json`` and then
    ``component.json`` may supply the dependencies. With ``find_down`` set, a
    directory without metadata is searched through its first subdirectory,
    which is how extracted archives are usually laid out.

    Returns:
        None when ``pkg_root`` is not a directory; a PackageMeta named after
        the directory when no metadata file is found.
    """
    pkg_root = pkg_root or pkg_dir
    if not os.path.isdir(pkg_root):
        return None

    package_file, bower_file, component_file = Constants.PACKAGE_META_FILES

    manifest = _read_meta(pkg_root, package_file)
    dep_key = _find_secondary_dep_key(manifest)
    if dep_key:
        manifest = dict(manifest, dependencies=manifest[dep_key]["dependencies"])
        return _init_meta(pkg_root, manifest)

    meta = None
    possible_deps = None
    if manifest is not None:
        possible_deps = manifest.get("dependencies")
        meta = _init_meta(pkg_root, dict(manifest, dependencies=None))

    bower = _read_meta(pkg_root, bower_file)
    if bower is not None and (bower.get("dependencies") or meta is None):
        return _init_meta(pkg_root, bower, meta)

    if possible_deps:
        meta.dep = _normalize_deps(possible_deps)
        meta.meta_data = manifest
    else:
        component = _read_meta(pkg_root, component_file)
        if component is not None and (component.get("dependencies") or meta is None):
            return _init_meta(pkg_root, component, meta)

    if meta is None and find_down:
        for entry in sorted(os.listdir(pkg_root)):
            sub_dir = os.path.join(pkg_root, entry)
            if os.path.isdir(sub_dir):
                return read_package_manifest(pkg_dir, sub_dir, find_down)

    if meta is None:
        logger.warning("find %s manifest file fail", pkg_dir)
        return PackageMeta(root=pkg_root, name=os.path.basename(pkg_dir))
    return meta
