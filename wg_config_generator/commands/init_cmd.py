import argparse
import os
import sys

from ..common import add_settings_args
from ..config import CIDR, RootConfig, WireGuardKey, generate_wg_keypair
from ..errors import ConfigurationError
from ..providers import Provider

# NordLynx hands every client the same tunnel address
NORDVPN_INTERFACE_ADDRESS = "10.5.0.2/32"


def add_init_cmd(subparsers: argparse._SubParsersAction) -> None:
    init = subparsers.add_parser(
        "init",
        help="Generate an initial settings YAML",
        description="Generate a settings YAML. Values can come from env (WGCG_*) and flags.",
    )
    init.add_argument(
        "-o",
        "--output",
        default=os.environ.get("WGCG_OUTPUT", "config.yml"),
        help="Path to write the generated settings (env: WGCG_OUTPUT). Default: config.yml",
    )
    init.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite output file if it exists",
    )
    add_settings_args(init)
    init.set_defaults(func=run_init_cmd)


def run_init_cmd(args: argparse.Namespace) -> int:
    out_path = args.output
    if os.path.exists(out_path) and not args.overwrite:
        print(f"Refusing to overwrite existing file: {out_path}. Use --overwrite to replace.", file=sys.stderr)
        return 2

    cfg = RootConfig.from_env(os.environ)
    cfg.apply_args_overrides(args)

    try:
        provider = Provider.parse(cfg.provider)
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return 2
    cfg.provider = provider.value

    if provider is Provider.NORDVPN and not cfg.interface_addresses:
        cfg.interface_addresses = [CIDR(NORDVPN_INTERFACE_ADDRESS)]
    public_key = None
    if provider is Provider.MULLVAD and cfg.mullvad.private_key is None:
        priv, public_key = generate_wg_keypair()
        cfg.mullvad.private_key = WireGuardKey(priv)

    errs = cfg.validate()
    if errs:
        print("Config validation failed:", file=sys.stderr)
        for e in errs:
            print(f"- {e}", file=sys.stderr)
        return 2

    cfg.write_file(out_path, overwrite=args.overwrite)
    print(f"Config written to {out_path}")
    if public_key is not None:
        print(f"Generated a new Mullvad key. Register this public key with your account: {public_key}")
    return 0
