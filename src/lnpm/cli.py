"""CLI entry point for lnpm."""

from __future__ import annotations

import asyncio
import logging
import sys

from lnpm.args import build_parser
from lnpm.commands.install import install
from lnpm.common.logging_utils import configure_logging, extra_context, is_debug_enabled
from lnpm.config import Settings, load_settings
from lnpm.constants import ExitCodes
from lnpm.registry.npm.client import NpmRegistryClient

logger = logging.getLogger(__name__)


async def run_install_command(args, settings: Settings) -> None:
    async with NpmRegistryClient(settings.registry, timeout=settings.timeout) as client:
        await install(args.PACKAGES, client=client, is_dev_option=bool(args.DEV))


def main(argv=None) -> None:
    """Main function of the program."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.COMMAND is None:
        parser.print_help()
        sys.exit(ExitCodes.FAILURE.value)

    settings = load_settings(args)
    configure_logging(settings.log_level, settings.log_file)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(
                event="function_entry",
                component="cli",
                action=args.COMMAND,
                registry=settings.registry,
            ),
        )

    try:
        asyncio.run(run_install_command(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(ExitCodes.INTERRUPTED.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
