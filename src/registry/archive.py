"""Archive extraction for downloaded and local package files."""

import logging
import os
import tarfile
import tempfile
import zipfile
from typing import Optional

from common.errors import DownloadFailure

logger = logging.getLogger(__name__)

TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar", ".tar.bz2", ".tbz2")
ZIP_SUFFIXES = (".zip",)


def file_extension(path_or_url: str) -> str:
    """Return the archive extension of ``path_or_url`` ('.tar.gz', '.zip', ...)."""
    base = path_or_url.split("?", 1)[0].split("#", 1)[0].lower()
    for suffix in TAR_SUFFIXES + ZIP_SUFFIXES:
        if base.endswith(suffix):
            return suffix
    return os.path.splitext(base)[1]


def make_temp_dir(prefix: str = "compkg-") -> str:
    return tempfile.mkdtemp(prefix=prefix)


def _is_within(directory: str, target: str) -> bool:
    directory = os.path.abspath(directory)
    target = os.path.abspath(target)
    return os.path.commonpath([directory, target]) == directory


def _extract_tar(archive_file: str, target_dir: str) -> None:
    with tarfile.open(archive_file, "r:*") as tar:
        members = []
        for member in tar.getmembers():
            if member.issym() or member.islnk() or member.isdev():
                logger.debug("skip link/device entry %s", member.name)
                continue
            if not _is_within(target_dir, os.path.join(target_dir, member.name)):
                raise DownloadFailure(f"unsafe path in archive {archive_file}: {member.name}")
            members.append(member)
        tar.extractall(target_dir, members=members)


def _extract_zip(archive_file: str, target_dir: str) -> None:
    with zipfile.ZipFile(archive_file) as archive:
        for name in archive.namelist():
            if not _is_within(target_dir, os.path.join(target_dir, name)):
                raise DownloadFailure(f"unsafe path in archive {archive_file}: {name}")
        archive.extractall(target_dir)


def extract(archive_file: str, target_dir: str, extension: Optional[str] = None) -> str:
    """Extract ``archive_file`` into ``target_dir`` and return ``target_dir``.

    The format is taken from ``extension`` when given, otherwise from the file
    name, falling back to content sniffing.

    Raises:
        DownloadFailure: When the file is not a supported or intact archive.
    """
    extension = extension or file_extension(archive_file)
    os.makedirs(target_dir, exist_ok=True)
    logger.debug("extract %s (%s) to %s", archive_file, extension, target_dir)
    try:
        if extension in ZIP_SUFFIXES or (
            extension not in TAR_SUFFIXES and zipfile.is_zipfile(archive_file)
        ):
            _extract_zip(archive_file, target_dir)
        elif extension in TAR_SUFFIXES or tarfile.is_tarfile(archive_file):
            _extract_tar(archive_file, target_dir)
        else:
            raise DownloadFailure(f"unsupported archive format: {archive_file}")
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as exc:
        raise DownloadFailure(f"extract {archive_file} failed: {exc}") from exc
    return target_dir
