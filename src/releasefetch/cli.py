# src/releasefetch/cli.py

import argparse
import importlib.metadata
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from releasefetch import log_utils
from releasefetch.checksums import normalize_sha256
from releasefetch.config import get_default_log_dir, load_config
from releasefetch.constants import APP_NAME
from releasefetch.credentials import credential_from_env
from releasefetch.exceptions import ReleaseFetchError
from releasefetch.manifest import current_platform_key, load_manifest
from releasefetch.operation import download_public_asset, download_release_asset
from releasefetch.reference import require_reference
from releasefetch.resolver import ReleaseResolver
from releasefetch.session import create_session


def get_version() -> str:
    try:
        return importlib.metadata.version(APP_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Download release assets, including from private repositories, and verify their checksums.",
    )
    parser.add_argument(
        "--log-level",
        help="Console log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--log-file-dir",
        nargs="?",
        const=str(get_default_log_dir()),
        help="Also write a rotating log file to this directory",
    )
    parser.add_argument("--config", help="Path to a configuration file")

    subparsers = parser.add_subparsers(dest="command")

    resolve_parser = subparsers.add_parser(
        "resolve", help="Print the API download URL of a release asset"
    )
    resolve_parser.add_argument("url", help="Release download URL")

    fetch_parser = subparsers.add_parser(
        "fetch", help="Download a private release asset and verify it"
    )
    fetch_parser.add_argument("url", help="Release download URL")
    fetch_parser.add_argument("-o", "--output", help="Destination file path")
    fetch_parser.add_argument("--sha256", help="Expected SHA-256 hex digest")
    fetch_parser.add_argument(
        "--retries", type=int, help="Retry transient failures this many times"
    )
    fetch_parser.add_argument(
        "--force",
        action="store_true",
        help="Download even if a verified copy is already present",
    )

    install_parser = subparsers.add_parser(
        "install", help="Download a tool's artifact for this platform from a manifest"
    )
    install_parser.add_argument("tool", help="Tool name in the manifest")
    install_parser.add_argument("--manifest", required=True, help="Manifest YAML file")
    install_parser.add_argument(
        "--platform", help="Platform key such as linux-amd64 (default: this host)"
    )
    install_parser.add_argument("-o", "--output", help="Destination file path")
    install_parser.add_argument("--retries", type=int)
    install_parser.add_argument("--force", action="store_true")

    platforms_parser = subparsers.add_parser(
        "platforms", help="List the platforms a manifest tool supports"
    )
    platforms_parser.add_argument("tool")
    platforms_parser.add_argument("--manifest", required=True)

    subparsers.add_parser("version", help="Display releasefetch version")
    return parser


def _destination(output: Optional[str], config: Dict[str, Any], filename: str) -> Path:
    if output:
        return Path(output).expanduser()
    return Path(config["DOWNLOAD_DIR"]) / Path(filename).name


def _retries(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    if args.retries is None:
        return config["RETRIES"]
    if args.retries < 0:
        raise ReleaseFetchError("--retries must not be negative")
    return args.retries


def _run_resolve(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    reference = require_reference(args.url)
    credential = credential_from_env(config["TOKEN_ENV_VAR"])
    with create_session() as session:
        resolver = ReleaseResolver(session=session, timeout=config["API_TIMEOUT"])
        descriptor = resolver.resolve_reference(reference, credential)
    print(descriptor.download_url)
    return 0


def _run_fetch(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    reference = require_reference(args.url)
    expected_sha256 = normalize_sha256(args.sha256)
    credential = credential_from_env(config["TOKEN_ENV_VAR"])
    destination = _destination(args.output, config, reference.filename)
    result = download_release_asset(
        args.url,
        credential,
        destination,
        expected_sha256=expected_sha256,
        retries=_retries(args, config),
        skip_if_verified=not args.force,
        api_timeout=config["API_TIMEOUT"],
        download_timeout=config["DOWNLOAD_TIMEOUT"],
    )
    print(result.path)
    return 0


def _run_install(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    manifest = load_manifest(args.manifest)
    tool = manifest.get_tool(args.tool)
    platform_key = args.platform or current_platform_key()
    artifact = tool.artifact_for(platform_key)
    destination = _destination(args.output, config, artifact.filename)
    retries = _retries(args, config)

    label = f"{tool.name} {tool.version}" if tool.version else tool.name
    log_utils.logger.info(f"Installing {label} for {artifact.platform}")
    if tool.private:
        credential = credential_from_env(config["TOKEN_ENV_VAR"])
        result = download_release_asset(
            artifact.url,
            credential,
            destination,
            expected_sha256=artifact.sha256,
            retries=retries,
            skip_if_verified=not args.force,
            api_timeout=config["API_TIMEOUT"],
            download_timeout=config["DOWNLOAD_TIMEOUT"],
        )
    else:
        result = download_public_asset(
            artifact.url,
            destination,
            expected_sha256=artifact.sha256,
            retries=retries,
            skip_if_verified=not args.force,
            timeout=config["DOWNLOAD_TIMEOUT"],
        )
    print(result.path)
    return 0


def _run_platforms(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    tool = load_manifest(args.manifest).get_tool(args.tool)
    for key in tool.platforms:
        print(key)
    return 0


_COMMANDS = {
    "resolve": _run_resolve,
    "fetch": _run_fetch,
    "install": _run_install,
    "platforms": _run_platforms,
}


def run(argv: Optional[List[str]] = None) -> int:
    """
    Parse `argv` and run the selected command.

    Returns:
        int: Process exit status; 0 on success, 1 on any releasefetch error,
        130 when interrupted, 2 when no command was given.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"{APP_NAME} {get_version()}")
        return 0
    if args.command is None:
        parser.print_help()
        return 2

    try:
        config = load_config(args.config)
        level = args.log_level or config["LOG_LEVEL"]
        if level:
            log_utils.set_log_level(level)
        if args.log_file_dir:
            log_utils.add_file_logging(Path(args.log_file_dir), level or "INFO")
        return _COMMANDS[args.command](args, config)
    except ReleaseFetchError as e:
        log_utils.logger.error(f"Download Failed: {e}")
        return 1
    except KeyboardInterrupt:
        log_utils.logger.error("Interrupted; partial downloads were removed.")
        return 130


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
