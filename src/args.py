"""Argument parsing functionality for mtags-resolver."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="mtags-resolver",
        description=(
            "mtags-resolver - Resolve presentation compiler artifacts for Scala versions"
        ),
        add_help=True,
    )

    parser.add_argument("versions",
                        metavar="VERSION",
                        help="Scala version(s) to resolve, e.g. 3.3.1 or 3.2.2-RC1-bin-20221009-2052fc2-NIGHTLY",
                        nargs="+")
    parser.add_argument("--check-older",
                        dest="CHECK_OLDER",
                        help="Only report whether each version was supported by an older runtime version (no network).",
                        action="store_true")
    parser.add_argument("--json",
                        dest="JSON",
                        help="Print results as JSON.",
                        action="store_true")
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write JSON results to this file.",
                        action="store",
                        type=str)

    parser.add_argument("--runtime-version",
                        dest="RUNTIME_VERSION",
                        help="Runtime version whose artifacts are requested.",
                        action="store",
                        type=str)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Directory where downloaded jars are stored.",
                        action="store",
                        type=str)
    parser.add_argument("--repository",
                        dest="REPOSITORIES",
                        help="Maven repository URL (can be used multiple times, replaces defaults).",
                        action="append",
                        type=str)
    parser.add_argument("--snapshot-index",
                        dest="SNAPSHOT_INDEX",
                        help="URL of the snapshot directory listing used for nightly fallback.",
                        action="store",
                        type=str)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $MTAGS_RESOLVER_LOG_LEVEL or INFO)",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
