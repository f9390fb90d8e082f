import argparse
import os
import sys

from ..common import require_and_load_config


def add_validate_cfg_cmd(subparsers: argparse._SubParsersAction) -> None:
    v = subparsers.add_parser(
        "validate-cfg",
        help="Load and validate a settings file",
        description="Loads a YAML settings file and validates its structure and values.",
    )
    v.add_argument(
        "-c",
        "--config",
        default=os.environ.get("WGCG_CONFIG", "config.yml"),
        help="Path to settings file (env: WGCG_CONFIG). Default: config.yml",
    )
    v.set_defaults(func=run_validate_cfg_cmd)


def run_validate_cfg_cmd(args: argparse.Namespace) -> int:
    cfg, _ = require_and_load_config(args)
    if cfg is None:
        return 2

    errs = cfg.validate()
    if errs:
        print("Invalid configuration:", file=sys.stderr)
        for err in errs:
            print(f"- {err}", file=sys.stderr)
        return 2

    print("Configuration is valid.")
    return 0
