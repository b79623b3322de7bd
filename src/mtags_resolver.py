"""mtags-resolver - resolve presentation compiler artifacts for Scala versions.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys
from typing import Any, Dict, List

from constants import Constants, ExitCodes
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_cli_overrides, apply_config, apply_env_overrides, load_config_file
from versioning.aliases import VersionAliases
from versioning.resolver import MtagsResolver, create_default_resolver

logger = logging.getLogger(__name__)


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()
    if getattr(args, "QUIET", False):
        logging.getLogger().setLevel(logging.CRITICAL)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def resolve_versions(resolver: MtagsResolver, versions: List[str]) -> List[Dict[str, Any]]:
    """Resolve each version, returning one result record per version."""
    results = []
    for version in versions:
        artifacts = resolver.resolve(version)
        results.append({
            "requested": version,
            "supported": artifacts is not None,
            "supported_in_older_version": resolver.is_supported_in_older_version(version),
            "artifacts": artifacts.to_dict() if artifacts is not None else None,
        })
    return results


def check_older_versions(aliases: VersionAliases, versions: List[str]) -> List[Dict[str, Any]]:
    """Report removed-version aliases without touching the network."""
    return [
        {
            "requested": version,
            "supported_in_older_version": version in aliases,
            "last_supported_runtime_version": aliases.alias_for(version),
        }
        for version in versions
    ]


def export_json(results: List[Dict[str, Any]], path: str) -> None:
    """Write results to ``path`` as JSON."""
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(results, fh, indent=2)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def format_result(result: Dict[str, Any]) -> str:
    """Human readable rendering of one result record."""
    version = result["requested"]
    if "artifacts" not in result:
        runtime = result["last_supported_runtime_version"]
        if runtime:
            return f"{version}: supported up to runtime version {runtime}"
        return f"{version}: not a removed version"
    artifacts = result["artifacts"]
    if artifacts is None:
        line = f"{version}: unsupported"
        if result["supported_in_older_version"]:
            line += " (supported in an older runtime version)"
        return line
    if artifacts["builtin"]:
        return f"{version}: built-in"
    lines = [f"{version}: resolved as {artifacts['version']} ({len(artifacts['locations'])} artifacts)"]
    lines.extend(f"  {loc}" for loc in artifacts["locations"])
    return "\n".join(lines)


def main(argv=None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    apply_config(load_config_file(getattr(args, "CONFIG", None)))
    apply_env_overrides()
    apply_cli_overrides(args)

    if is_debug_enabled(logger):
        logger.debug("CLI start", extra=extra_context(
            event="function_entry", component="cli", action="main", count=len(args.versions)
        ))

    if args.CHECK_OLDER:
        results = check_older_versions(VersionAliases(Constants.REMOVED_VERSIONS), args.versions)
        exit_code = ExitCodes.SUCCESS
    else:
        resolver = create_default_resolver()
        results = resolve_versions(resolver, args.versions)
        exit_code = (
            ExitCodes.SUCCESS if all(r["supported"] for r in results)
            else ExitCodes.UNSUPPORTED_VERSION
        )

    if args.OUTPUT:
        export_json(results, args.OUTPUT)
    if not args.QUIET:
        if args.JSON:
            print(json.dumps(results, indent=2))
        else:
            for result in results:
                print(format_result(result))

    sys.exit(exit_code.value)


if __name__ == "__main__":
    main()
