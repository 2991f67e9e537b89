"""gitbundle CLI.

Principles:
- One verb per invocation; anything unrecognized prints help.
- Arguments after the verb are handed to the operation as-is.
- This module is the only place a failure turns into an exit status.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

from .. import __version__
from ..config import ConfigLoader
from ..core.controller import BundleController
from ..core.errors import OperationResult
from ..utils.env import is_debug_mode
from ..utils.log import configure_logging, get_logger


logger = get_logger("cli")

COMMANDS_HELP = """\
Commands:
  setup [repo] [bundles] [logs]  Initialize environment (optionally set paths)
  baseline <version>             Create baseline
  update <base_version>          Create update
  rollback [commits]             Rollback changes (default: 1 commit)
  verify <bundle_file>           Re-verify an existing bundle
  list                           List bundles in the bundle directory
  help                           Show this help
"""


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitbundle",
        description="Git Bundle Management - baseline and update bundles for air-gapped deployments",
        epilog=COMMANDS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output (git commands and their errors)",
    )
    parser.add_argument("command", nargs="?", default="help", help="Command to run")
    parser.add_argument("params", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def main(args: list[str] | None = None, config_path: Path | str | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    handler = COMMANDS.get(parsed.command)
    if handler is None:
        parser.print_help()
        return 0

    loader = ConfigLoader(config_path)
    config = loader.load()
    configure_logging(config.log_path, debug=parsed.debug or is_debug_mode())

    controller = BundleController(config, loader=loader)
    return handler(list(parsed.params), controller)


def _arg(params: list[str], index: int) -> str | None:
    return params[index] if len(params) > index else None


def _report(result: OperationResult) -> int:
    if not result.success:
        logger.error("ERROR: %s", result.error)
        return 1
    return 0


def cmd_setup(params: list[str], controller: BundleController) -> int:
    result = controller.setup(
        repo_dir=_arg(params, 0),
        bundle_dir=_arg(params, 1),
        log_dir=_arg(params, 2),
    )
    return _report(result)


def cmd_baseline(params: list[str], controller: BundleController) -> int:
    return _report(controller.create_baseline(_arg(params, 0)))


def cmd_update(params: list[str], controller: BundleController) -> int:
    return _report(controller.create_update(_arg(params, 0)))


def cmd_rollback(params: list[str], controller: BundleController) -> int:
    return _report(controller.rollback(_arg(params, 0) or "1"))


def cmd_verify(params: list[str], controller: BundleController) -> int:
    return _report(controller.verify_bundle(_arg(params, 0)))


def cmd_list(params: list[str], controller: BundleController) -> int:
    bundles = controller.list_bundles()
    if not bundles:
        print("No bundles found.")
        return 0

    print("Kind      Version   Update           Size      Script  File")
    for info in bundles:
        script = "yes" if info.script else "no"
        update_id = info.update_id or "-"
        print(f"{info.kind:<9} {info.version:<9} {update_id:<16} {info.size:<9} {script:<7} {info.path.name}")
    return 0


# "help" and anything unknown fall through to the parser's help text.
COMMANDS: dict[str, Callable[[list[str], BundleController], int]] = {
    "setup": cmd_setup,
    "baseline": cmd_baseline,
    "update": cmd_update,
    "rollback": cmd_rollback,
    "verify": cmd_verify,
    "list": cmd_list,
}


if __name__ == "__main__":
    sys.exit(main())
