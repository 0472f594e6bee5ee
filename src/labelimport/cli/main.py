"""
Main entry point for the labelimport command-line interface.

Sends a series of label slabs from gzip-compressed source directories to a
volumetric store such as DVID.
"""

import sys
import logging
import pkgutil
import importlib
import timeit
from argparse import ArgumentParser
from typing import List, Optional

import labelimport.cli as cli_package

logger = logging.getLogger(__name__)


def main(commandline_arguments: Optional[List[str]] = None) -> int:
    """
    Main entry point for the labelimport CLI.

    Args:
        commandline_arguments: Command line arguments. If None, sys.argv[1:] is used.

    Returns:
        Exit code.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s - %(levelname)s: %(message)s"
    )

    parser = ArgumentParser(description=__doc__, prog="labelimport")
    subparsers = parser.add_subparsers(dest="command")

    # Each subcommand is implemented as a module in the cli subpackage.
    # It needs to implement an add_arguments() and a main() function.
    for _, module_name, _ in pkgutil.iter_modules(cli_package.__path__):
        if module_name.startswith('_') or module_name == "main":
            continue

        module = importlib.import_module("." + module_name, cli_package.__name__)
        help_text = module.__doc__.strip().split("\n", maxsplit=1)[0]
        subparser = subparsers.add_parser(
            module_name,
            help=help_text,
            description=module.__doc__
        )
        module.add_arguments(subparser)
        subparser.set_defaults(module=module)

    args = parser.parse_args(commandline_arguments)

    if not hasattr(args, "module"):
        parser.print_help()
        return 0

    module = args.module
    del args.module

    # Print settings for module
    module_name = module.__name__.split('.')[-1]
    sys.stderr.write(f"SETTINGS FOR: {module_name} \n")
    for object_variable, value in vars(args).items():
        sys.stderr.write(f" {object_variable}: {value}\n")

    tic = timeit.default_timer()
    logger.info(f"Starting {module_name}")

    exit_code = module.main(args)

    toc = timeit.default_timer()
    logger.info(f"Elapsed time ({module_name}): {round(toc - tic, 4)}s")

    if exit_code == 0:
        logger.info(f"Command {module_name} completed successfully")
    else:
        logger.error(f"Command {module_name} failed with exit code {exit_code}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
