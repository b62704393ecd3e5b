# src/modkeeper/cli.py

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import platformdirs

from modkeeper import log_utils
from modkeeper.cache import ModCache
from modkeeper.catalog import get_modlinks
from modkeeper.config import (
    get_cache_dir,
    get_install_dir,
    get_int,
    get_modlinks_url,
    get_string_list,
    load_config,
)
from modkeeper.constants import (
    APP_NAME,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_MODLINKS_FILE,
    DEFAULT_REQUEST_TIMEOUT,
    NOT_AVAILABLE,
)
from modkeeper.exceptions import ModkeeperError
from modkeeper.install import (
    install_from_source,
    install_mods,
    installed_mods,
    mods_dir,
    yeet_mods,
)
from modkeeper.manifest import Manifest
from modkeeper.publish import build_patch, publish
from modkeeper.transport import Transport


def _make_transport(config: Dict[str, Any]) -> Transport:
    return Transport(
        connect_retries=get_int(config, "CONNECT_RETRIES", DEFAULT_CONNECT_RETRIES),
        timeout=get_int(config, "REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
    )


def _configure_logging(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    """
    Apply the log level from the command line, falling back to the configuration.

    File logging is enabled when LOG_TO_FILE is set in the configuration.
    """
    level = args.log_level or config.get("LOG_LEVEL")
    if level:
        log_utils.set_log_level(str(level))
    if config.get("LOG_TO_FILE"):
        log_utils.add_file_logging(
            Path(platformdirs.user_log_dir(APP_NAME)), str(level or "INFO")
        )


def filter_manifests(
    manifests: Sequence[Manifest],
    search: Optional[str] = None,
    installed: Optional[Sequence[str]] = None,
) -> List[Manifest]:
    """
    Select the manifests shown by `list`, sorted by name.

    Parameters:
        manifests: The catalog.
        search: Keep only names containing this term, ignoring case.
        installed: When given, keep only these names; installed mods missing from
            the catalog are included with placeholder fields.

    Returns:
        List[Manifest]: The matching manifests.
    """
    selected = list(manifests)
    if installed is not None:
        installed_set = set(installed)
        catalog_names = {m.name for m in manifests}
        selected = [m for m in selected if m.name in installed_set]
        for name in installed:
            if name not in catalog_names:
                selected.append(
                    Manifest(
                        name=name,
                        description=NOT_AVAILABLE,
                        version=NOT_AVAILABLE,
                        dependencies=[NOT_AVAILABLE],
                        repository=NOT_AVAILABLE,
                    )
                )
    if search:
        term = search.casefold()
        selected = [m for m in selected if term in m.name.casefold()]
    return sorted(selected, key=lambda m: m.name)


def format_manifest(manifest: Manifest, detailed: bool = False) -> str:
    """Render one `list` entry."""
    if not detailed:
        return manifest.name
    deps = ", ".join(manifest.dependencies) if manifest.dependencies else "none"
    description = manifest.description.replace("\n", "\n\t")
    return (
        f"{manifest.name}\n"
        f"\tVersion: {manifest.version}\n"
        f"\tRepository: {manifest.repository}\n"
        f"\tDependencies: {deps}\n"
        f"\t{description}\n"
    )


def run_list(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    with _make_transport(config) as transport:
        manifests = get_modlinks(get_modlinks_url(config), transport)
    installed = None
    if args.installed:
        installed = installed_mods(mods_dir(get_install_dir(config)))
    for manifest in filter_manifests(manifests, args.search, installed):
        print(format_manifest(manifest, args.detailed))
    return 0


def run_install(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    install_dir = get_install_dir(config)
    with _make_transport(config) as transport:
        manifests = get_modlinks(get_modlinks_url(config), transport)
        cache = ModCache(get_cache_dir(config), transport)
        report = install_mods(
            manifests,
            args.names,
            cache,
            install_dir,
            keep_user_data=get_string_list(config, "KEEP_USER_DATA"),
        )
    if report.installed:
        log_utils.logger.info(f"Installed: {', '.join(report.installed)}")
    return 0 if report.ok else 1


def run_installfile(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    install_dir = get_install_dir(config)
    with _make_transport(config) as transport:
        install_from_source(args.name, args.source, install_dir, transport)
    log_utils.logger.info(f"Installed {args.name} from {args.source}")
    return 0


def run_yeet(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    results = yeet_mods(
        get_install_dir(config),
        args.names,
        keep_user_data=get_string_list(config, "KEEP_USER_DATA"),
    )
    return 0 if all(r.success for r in results) else 1


def run_publish(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    patch = build_patch(
        args.url,
        name=args.name,
        version=args.version,
        description=args.desc,
        deps=args.deps,
        repository=args.repo,
    )
    with _make_transport(config) as transport:
        publish(args.modlinks, patch, transport)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="modkeeper - Hollow Knight mod manager"
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Command to list catalog mods
    list_parser = subparsers.add_parser("list", help="List mods in the catalog")
    list_parser.add_argument(
        "-s",
        "--search",
        metavar="TERM",
        help="Search for mods whose name contains TERM",
    )
    list_parser.add_argument(
        "-i",
        "--installed",
        action="store_true",
        help="Show only info on installed mods",
    )
    list_parser.add_argument(
        "-d",
        "--detailed",
        action="store_true",
        help="Display detailed information about mods",
    )
    list_parser.set_defaults(handler=run_list)

    # Command to install mods and their dependencies
    install_parser = subparsers.add_parser(
        "install", help="Install mods and their dependencies"
    )
    install_parser.add_argument("names", nargs="+", metavar="NAME")
    install_parser.set_defaults(handler=run_install)

    # Command to install a mod from a local file or URL
    installfile_parser = subparsers.add_parser(
        "installfile", help="Install a mod from a local file or URL"
    )
    installfile_parser.add_argument("name", metavar="NAME")
    installfile_parser.add_argument("source", metavar="PATH_OR_URL")
    installfile_parser.set_defaults(handler=run_installfile)

    # Command to uninstall mods
    yeet_parser = subparsers.add_parser("yeet", help="Uninstall mods")
    yeet_parser.add_argument("names", nargs="+", metavar="NAME")
    yeet_parser.set_defaults(handler=run_yeet)

    # Command to add or update a mod in a local catalog
    publish_parser = subparsers.add_parser(
        "publish",
        help="Add or update a mod in a local ModLinks.xml",
        description=(
            "Compute the SHA-256 of a mod file URL and write its manifest into a "
            "local catalog document, changing nothing else in the file."
        ),
    )
    publish_parser.add_argument(
        "--url", required=True, help="The mod file that will be published"
    )
    publish_parser.add_argument(
        "--modlinks",
        default=DEFAULT_MODLINKS_FILE,
        help="Path to the catalog file",
    )
    publish_parser.add_argument(
        "--name", help="The name of the mod (determined from the URL if omitted)"
    )
    publish_parser.add_argument(
        "--version",
        help="The version of the mod (determined from the URL if omitted)",
    )
    publish_parser.add_argument("--desc", default="", help="The description")
    publish_parser.add_argument(
        "--deps",
        default="",
        help="Dependencies separated by commas ('none' to remove all dependencies)",
    )
    publish_parser.add_argument(
        "--repo", default="", help="The URL of the mod's repository"
    )
    publish_parser.set_defaults(handler=run_publish)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Entry point for the modkeeper command-line interface.

    Dispatches the list, install, installfile, yeet and publish subcommands.
    Failures of individual mods are logged and the command carries on; a
    configuration or catalog document error ends the command with exit status 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(2)

    try:
        config = load_config()
        _configure_logging(args, config)
        status = args.handler(args, config)
    except ModkeeperError as e:
        log_utils.logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log_utils.logger.info("Interrupted by user.")
        sys.exit(130)

    sys.exit(status)


if __name__ == "__main__":
    main()
