"""
Install tree management for modkeeper

This module writes verified mod files into `<install dir>/Mods/<mod name>/`,
removes previous versions, lists what is installed, and drives a complete
install run from requested names to extracted files.
"""

import os
import re
import shutil
import tempfile
import time
import zipfile
from dataclasses import dataclass, field
from typing import Collection, Iterable, List, Optional, Sequence

from modkeeper.cache import ModCache, url_filename
from modkeeper.closure import transitive_closure
from modkeeper.constants import (
    DIR_PERMISSIONS,
    DISABLED_DIR_NAME,
    DLL_EXTENSION,
    MODS_DIR_NAME,
    ZIP_EXTENSION,
)
from modkeeper.exceptions import (
    ExtractionError,
    FileSystemError,
    MissingDependencyError,
    ModkeeperError,
    PathValidationError,
    ResolutionError,
)
from modkeeper.files import safe_extract_path, sanitize_path_component
from modkeeper.log_utils import logger
from modkeeper.manifest import Manifest
from modkeeper.resolver import ResolveResult, resolve_mod_name, resolve_mods
from modkeeper.transport import Transport

_URL_RX = re.compile(r"^https?://")


@dataclass
class InstallResult:
    """Result of installing one mod."""

    name: str
    """The mod name"""

    extracted_files: List[str] = field(default_factory=list)
    """Files written into the install tree"""

    from_cache: bool = False
    """Whether the content came from the cache rather than a download"""

    error: Optional[ModkeeperError] = None
    """Why the mod could not be installed (if failed)"""

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class InstallReport:
    """Everything that happened during one install run."""

    resolutions: List[ResolveResult] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    results: List[InstallResult] = field(default_factory=list)

    @property
    def installed(self) -> List[str]:
        return [r.name for r in self.results if r.success]

    @property
    def failed(self) -> List[str]:
        return [r.name for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return (
            all(r.success for r in self.resolutions)
            and not self.missing
            and all(r.success for r in self.results)
        )


@dataclass
class YeetResult:
    """Result of removing one requested mod."""

    requested: str
    name: Optional[str] = None
    kept_user_data: bool = False
    error: Optional[ModkeeperError] = None

    @property
    def success(self) -> bool:
        return self.error is None


def mods_dir(install_dir: str) -> str:
    return os.path.join(install_dir, MODS_DIR_NAME)


def mod_dir(name: str, install_dir: str) -> str:
    """
    Return the folder a mod is installed into.

    Raises:
        PathValidationError: If the name cannot be used as a directory name.
    """
    if sanitize_path_component(name) is None:
        raise PathValidationError(
            f"cannot install {name}: contains path separator", path=name
        )
    return os.path.join(mods_dir(install_dir), name)


def _remove_previous_dlls(moddir: str) -> None:
    try:
        with os.scandir(moddir) as iterator:
            entries = list(iterator)
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileSystemError(
            f"cannot read {moddir}", path=moddir, details=str(e)
        ) from e
    for entry in entries:
        if (
            entry.is_file(follow_symlinks=False)
            and os.path.splitext(entry.name)[1].lower() == DLL_EXTENSION
        ):
            try:
                os.remove(entry.path)
            except OSError as e:
                logger.warning(f"Could not remove {entry.path}: {e}")


def remove_previous_version(
    name: str, install_dir: str, keep_user_data: Collection[str] = ()
) -> None:
    """
    Remove an installed mod's folder.

    Mods listed in `keep_user_data` keep their folder; only the top-level DLLs
    are removed so user content (such as skins) survives a reinstall. A mod that
    is not installed is not an error.

    Raises:
        PathValidationError: If the name cannot be used as a directory name.
        FileSystemError: If the folder cannot be removed.
    """
    moddir = mod_dir(name, install_dir)
    if name in keep_user_data:
        _remove_previous_dlls(moddir)
        return
    try:
        if os.path.islink(moddir):
            os.unlink(moddir)
        else:
            shutil.rmtree(moddir)
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileSystemError(
            f"yeet installed version of {name}", path=moddir, details=str(e)
        ) from e


def _set_mtime(dest: str, date_time: tuple) -> None:
    try:
        timestamp = time.mktime(date_time + (0, 0, -1))
        os.utime(dest, (timestamp, timestamp))
    except (OSError, OverflowError, ValueError) as e:
        logger.warning(f"Could not set modification time of {dest}: {e}")


def extract_mod_zip(zip_path: str, name: str, install_dir: str) -> List[str]:
    """
    Extract a mod archive into the mod's folder.

    Every member is resolved inside the destination folder first; a member that
    would land outside it fails the whole extraction.

    Returns:
        List[str]: Paths of the files written.

    Raises:
        ExtractionError: If the archive is corrupted, a member escapes the destination, or writing fails.
    """
    dest_root = mod_dir(name, install_dir)
    extracted: List[str] = []
    try:
        with zipfile.ZipFile(zip_path, "r") as archive:
            for info in archive.infolist():
                try:
                    dest = safe_extract_path(dest_root, info.filename)
                except ValueError as e:
                    raise ExtractionError(
                        f"extract mod {name}", path=info.filename, details=str(e)
                    ) from e
                if info.is_dir():
                    os.makedirs(dest, mode=DIR_PERMISSIONS, exist_ok=True)
                    continue
                os.makedirs(os.path.dirname(dest), mode=DIR_PERMISSIONS, exist_ok=True)
                with archive.open(info) as src, open(dest, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                _set_mtime(dest, info.date_time)
                extracted.append(dest)
    except zipfile.BadZipFile as e:
        raise ExtractionError(
            f"extract mod {name}: corrupted archive", path=zip_path, details=str(e)
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"extract mod {name}", path=zip_path, details=str(e)
        ) from e
    return extracted


def extract_mod_file(src_path: str, filename: str, name: str, install_dir: str) -> List[str]:
    """
    Copy a single-file mod (typically a DLL) into the mod's folder as `filename`.

    Raises:
        PathValidationError: If `filename` is not a plain file name.
        ExtractionError: If the copy fails.
    """
    if sanitize_path_component(filename) is None:
        raise PathValidationError(
            f"cannot install {name}: filename contains path separator", path=filename
        )
    dest = os.path.join(mod_dir(name, install_dir), filename)
    try:
        os.makedirs(os.path.dirname(dest), mode=DIR_PERMISSIONS, exist_ok=True)
        shutil.copyfile(src_path, dest)
    except OSError as e:
        raise ExtractionError(f"extract mod {name}", path=dest, details=str(e)) from e
    return [dest]


def install_file(src_path: str, filename: str, name: str, install_dir: str) -> List[str]:
    """Install a local file, extracting it if `filename` names a ZIP archive."""
    if os.path.splitext(filename)[1].lower() == ZIP_EXTENSION:
        return extract_mod_zip(src_path, name, install_dir)
    return extract_mod_file(src_path, filename, name, install_dir)


def install_from_source(
    name: str, source: str, install_dir: str, transport: Transport
) -> List[str]:
    """
    Install a mod from a local path or an http(s) URL, bypassing the catalog.

    Nothing is verified against a digest and the cache is not used.

    Raises:
        TransportError: If a URL cannot be downloaded.
        FileSystemError: If the source cannot be read or installed.
    """
    if not _URL_RX.match(source):
        if not os.path.isfile(source):
            raise FileSystemError(f"{source} is not a file", path=source)
        return install_file(source, os.path.basename(source), name, install_dir)

    filename = url_filename(source)
    content = transport.fetch_bytes(source)
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = os.path.join(temp_dir, "download")
        with open(temp_path, "wb") as f:
            f.write(content)
        return install_file(temp_path, filename, name, install_dir)


def installed_mods(modsdir: str) -> List[str]:
    """
    List the mods installed in a Mods directory.

    Every subdirectory counts as a mod except the `Disabled` folder.

    Raises:
        FileSystemError: If the directory cannot be read.
    """
    try:
        with os.scandir(modsdir) as iterator:
            entries = list(iterator)
    except OSError as e:
        raise FileSystemError(
            "list installed mods", path=modsdir, details=str(e)
        ) from e
    return [
        entry.name
        for entry in entries
        if entry.is_dir()
        and entry.name.strip().casefold() != DISABLED_DIR_NAME.casefold()
    ]


def install_manifest(
    manifest: Manifest,
    cache: ModCache,
    install_dir: str,
    platform: Optional[str] = None,
    keep_user_data: Collection[str] = (),
) -> InstallResult:
    """
    Fetch, verify and install one mod, returning the outcome instead of raising.

    The previous version is only removed once verified content is available.
    """
    try:
        mod_dir(manifest.name, install_dir)
        mod_file = cache.get_mod_file(manifest, platform)
        if not mod_file.is_zip and sanitize_path_component(mod_file.filename) is None:
            raise PathValidationError(
                f"cannot install {manifest.name}: filename contains path separator",
                path=mod_file.filename,
            )
        remove_previous_version(manifest.name, install_dir, keep_user_data)
        files = install_file(
            mod_file.path, mod_file.filename, manifest.name, install_dir
        )
    except ModkeeperError as e:
        logger.error(f"cannot install {manifest.name}: {e}")
        return InstallResult(manifest.name, error=e)
    return InstallResult(manifest.name, files, from_cache=mod_file.from_cache)


def install_mods(
    manifests: Sequence[Manifest],
    requested_names: Iterable[str],
    cache: ModCache,
    install_dir: str,
    platform: Optional[str] = None,
    keep_user_data: Collection[str] = (),
) -> InstallReport:
    """
    Install the requested mods and everything they depend on.

    Each request is resolved independently; unresolvable requests are reported
    and skipped. Missing dependencies are reported once, and every mod that could
    be found is still installed. A failure on one mod never stops the others.

    Returns:
        InstallReport: Per-request resolutions, missing names and per-mod results.
    """
    report = InstallReport()
    report.resolutions = resolve_mods(manifests, requested_names)
    for resolution in report.resolutions:
        if not resolution.success:
            logger.error(str(resolution.error))

    closure = transitive_closure(
        manifests, [r.name for r in report.resolutions if r.success and r.name]
    )
    report.missing = closure.missing
    if closure.missing:
        logger.error(str(MissingDependencyError(closure.missing)))

    for manifest in closure.manifests:
        report.results.append(
            install_manifest(manifest, cache, install_dir, platform, keep_user_data)
        )
    return report


def yeet_mods(
    install_dir: str,
    requested_names: Iterable[str],
    keep_user_data: Collection[str] = (),
) -> List[YeetResult]:
    """
    Uninstall mods, resolving each request against the installed mod names.

    Raises:
        FileSystemError: If the Mods directory cannot be listed.
    """
    installed = installed_mods(mods_dir(install_dir))
    results: List[YeetResult] = []
    seen = set()
    for requested in requested_names:
        try:
            name = resolve_mod_name(installed, requested)
        except ResolutionError as e:
            logger.error(str(e))
            results.append(YeetResult(requested, error=e))
            continue
        if name in seen:
            continue
        seen.add(name)
        kept = name in keep_user_data
        try:
            remove_previous_version(name, install_dir, keep_user_data)
        except ModkeeperError as e:
            logger.error(str(e))
            results.append(YeetResult(requested, name, error=e))
            continue
        if kept:
            logger.info(f"Yeeted {name} (user data kept)")
        else:
            logger.info(f"Yeeted {name}")
        results.append(YeetResult(requested, name, kept_user_data=kept))
    return results
