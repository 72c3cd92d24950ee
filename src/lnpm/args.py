"""Argument parsing functionality for lnpm."""

import argparse

from lnpm import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the ``lnpm`` parser with its ``install``/``i`` subcommand."""
    parser = argparse.ArgumentParser(
        prog="lnpm",
        usage="%(prog)s <command> [options]",
        description="Install npm packages with pinned versions and @types companions",
    )
    parser.add_argument("-V", "--version",
                        action="version",
                        version=__version__)

    commands = parser.add_subparsers(dest="COMMAND", metavar="<command>")
    install = commands.add_parser("install",
                                  aliases=["i"],
                                  help="install package",
                                  description="install package")
    install.add_argument("PACKAGES",
                         metavar="name",
                         nargs="*",
                         help="Package specifier: [dev:]name[@version|@range|@tag]")
    install.add_argument("-D", "--dev",
                         dest="DEV",
                         help="install devDependencies",
                         action="store_true")
    install.add_argument("--registry",
                         dest="REGISTRY",
                         help="npm registry URL (default: https://registry.npmjs.org/)",
                         action="store",
                         type=str)
    install.add_argument("-c", "--config",
                         dest="CONFIG",
                         help="Path to configuration file (YAML, YML, or JSON)",
                         action="store",
                         type=str)
    install.add_argument("--loglevel",
                         dest="LOG_LEVEL",
                         help="Set the logging level",
                         action="store",
                         type=str.upper,
                         choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    install.add_argument("--logfile",
                         dest="LOG_FILE",
                         help="Log output file",
                         action="store",
                         type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
