"""Command line interface for swapping SSH keys around."""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.prompt import Confirm

from keyman_app.config import KeymanConfig, load_config
from keyman_app.controllers.key_controller import KeyController
from keyman_app.errors import KeyInUse, KeymanError, NotFound
from keyman_app.filesystem import ensure_folder

BIN_NAME = "keyman"

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


def usage_msg_from(*args: str) -> str:
    return " ".join((BIN_NAME,) + args)


def key_typo_msg_from(key_name: str) -> str:
    return (
        f"No key called '{key_name}' was found, typo? "
        f"Use `{usage_msg_from('list')}` to see your keys."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=BIN_NAME,
        description="SSH Key Manager for easily swapping your SSH keys around",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show log output on the console"
    )
    parser.add_argument(
        "-l", "--list", dest="list_keys", action="store_true", help="List all keys"
    )
    sub = parser.add_subparsers(dest="command")

    add = sub.add_parser(
        "add", aliases=["new"], help="Add a new SSH key with an existing private key"
    )
    add.add_argument("private_key", metavar="PRIVATE_KEY_PATH", help="Path to your private key file")
    add.add_argument(
        "-n",
        "--name",
        "--save-as",
        dest="name",
        help="A name to identify the key by, default will be the file name",
    )
    add.add_argument(
        "-u",
        "--use-key",
        action="store_true",
        help="Immediately place this key in use after adding it",
    )
    add.set_defaults(handler=cmd_add, verb="add")

    use = sub.add_parser(
        "use",
        aliases=["swap"],
        help="Symlinks the related private key file into the ~/.ssh folder",
    )
    use.add_argument("key_name")
    use.set_defaults(handler=cmd_use, verb="use")

    info = sub.add_parser(
        "info",
        aliases=["show"],
        help="Show information about a key or the currently active key",
    )
    info.add_argument("key_name", nargs="?")
    info.set_defaults(handler=cmd_info, verb="show", print_usage=info.print_help)

    rename = sub.add_parser("rename", aliases=["mv"], help="Rename a key to a new name")
    rename.add_argument("key_name")
    rename.add_argument("new_name")
    rename.set_defaults(handler=cmd_rename, verb="rename")

    remove = sub.add_parser("remove", aliases=["rm"], help="Remove a key by name")
    remove.add_argument("key_name")
    remove.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Force remove the key without confirmation when it is in use",
    )
    remove.set_defaults(handler=cmd_remove, verb="remove")

    listing = sub.add_parser("list", aliases=["ls"], help="List all keys")
    listing.set_defaults(handler=cmd_list, verb="list")
    return parser


def _setup_logging(config: KeymanConfig, verbose: bool = False) -> None:
    """Configure logging to file and, with ``--verbose``, to the console.

    Without ``--verbose`` the console only shows the messages the commands
    print themselves.
    """
    ensure_folder(config.app_dir)
    handlers: List[logging.Handler] = [logging.FileHandler(config.log_path, encoding="utf-8")]
    if verbose:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=handlers,
        force=True,
    )


# ----------------------------------------------------------------------
# Subcommands
# ----------------------------------------------------------------------
def cmd_list(controller: KeyController, args: argparse.Namespace) -> int:
    keys, active_name = controller.list_keys()
    console.print("Your SSH keys:")
    for key in keys:
        in_use = " (in use)" if key.name == active_name else ""
        console.print(f"  - {key.name}{in_use}", markup=False)
    return 0


def cmd_add(controller: KeyController, args: argparse.Namespace) -> int:
    key = controller.add_key(args.private_key, args.name, use_key=args.use_key)
    console.print(
        f"Added key '{key.name}' to list of keys, "
        f"use it with `{usage_msg_from('use', key.name)}`",
        markup=False,
    )
    if args.use_key:
        console.print(f"Using key: {key.name}", markup=False)
    return 0


def cmd_use(controller: KeyController, args: argparse.Namespace) -> int:
    key = controller.use_key(args.key_name)
    console.print(
        f"Selected and now using key '{key.name}', linked as SSH key.", markup=False
    )
    return 0


def cmd_rename(controller: KeyController, args: argparse.Namespace) -> int:
    key = controller.rename_key(args.key_name, args.new_name)
    console.print(f"Renamed key: {args.key_name} -> {key.name}", markup=False)
    return 0


def cmd_remove(controller: KeyController, args: argparse.Namespace) -> int:
    force = args.force
    if not force and controller.is_active(args.key_name):
        force = Confirm.ask(
            f"The key '{args.key_name}' is currently in use. Remove it anyway?",
            default=False,
            console=console,
        )
        if not force:
            raise KeyInUse(args.key_name)
    key = controller.remove_key(args.key_name, force=force)
    console.print(f"Removed key: {key.name}", markup=False)
    return 0


def cmd_info(controller: KeyController, args: argparse.Namespace) -> int:
    if args.key_name is not None:
        key = controller.get_key(args.key_name)
    else:
        key = controller.active_key()
        if key is None:
            args.print_usage()
            return 0

    console.print(f"Viewing Key '{key.name}':", markup=False)
    if controller.is_active(key.name):
        console.print("  In use: yes")
    if key.private_key_path is not None:
        console.print(f"  Private Key: {key.private_key_path}", markup=False)
    if key.public_key_path is not None:
        console.print(f"  Public Key: {key.public_key_path}", markup=False)
    details = controller.describe(key)
    if details is not None:
        if details.encrypted:
            console.print("  Type: encrypted (passphrase protected)")
        else:
            console.print(f"  Type: {details.key_type} ({details.bits} bits)", markup=False)
            console.print(f"  Fingerprint: {details.fingerprint}", markup=False)
    return 0


def main(argv: Optional[List[str]] = None, config: Optional[KeymanConfig] = None) -> int:
    """Entry point for the ``keyman`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        if not args.list_keys:
            parser.print_help()
            return 0
        args.command, args.handler, args.verb = "list", cmd_list, "list"

    if config is None:
        config = load_config()
    _setup_logging(config, args.verbose)
    logger = logging.getLogger(__name__)
    logger.debug("Running '%s' with %s", args.command, vars(args))

    controller = KeyController(config)
    try:
        return args.handler(controller, args)
    except NotFound as exc:
        logger.info("Key lookup failed: %s", exc)
        err_console.print(key_typo_msg_from(exc.name), markup=False)
    except KeymanError as exc:
        logger.error("Command '%s' failed: %s", args.verb, exc)
        err_console.print(f"Failed to {args.verb} key: {exc}", markup=False)
    return 1


if __name__ == "__main__":
    sys.exit(main())
