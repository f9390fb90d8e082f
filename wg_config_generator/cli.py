import argparse
import logging
from typing import Callable, Optional

from .commands.generate_cmd import add_generate_cmd
from .commands.init_cmd import add_init_cmd
from .commands.validate_cfg_cmd import add_validate_cfg_cmd

CommandHandler = Callable[[argparse.Namespace], int]


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wireguard-config-generator",
        description="Generate WireGuard configurations from VPN provider server lists.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    # Subcommands are responsible for their own --config options

    sub = p.add_subparsers(dest="command", required=True)
    add_init_cmd(sub)
    add_validate_cfg_cmd(sub)
    add_generate_cmd(sub)
    return p


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    handler: Optional[CommandHandler] = getattr(args, "func", None)
    if handler is None:
        parser.error("No subcommand handler attached")
    return handler(args)
