import argparse
import os
import sys
from typing import Optional, Tuple

import yaml  # type: ignore

from .config import ENV_PREFIX, OUTPUT_FORMATS, RootConfig

DEFAULT_CONFIG_PATH = "config.yml"


def resolve_config_path(args) -> str:
    path = getattr(args, "config", None) or os.environ.get(f"{ENV_PREFIX}CONFIG") or DEFAULT_CONFIG_PATH
    return path


def require_and_load_config(args) -> Tuple[Optional[RootConfig], Optional[str]]:
    path = resolve_config_path(args)
    if not os.path.exists(path):
        print(f"Config file not found: {path}", file=sys.stderr)
        return None, None
    cfg = _read_config(path)
    if cfg is None:
        return None, None
    return cfg, path


def load_settings(args) -> Tuple[Optional[RootConfig], Optional[str], bool]:
    """Settings file when present, otherwise the environment; flags applied last.

    Returns (config, config_path, ok). config_path is None when the
    settings came from the environment.
    """
    explicit = getattr(args, "config", None)
    path = resolve_config_path(args)
    if os.path.exists(path):
        cfg = _read_config(path)
        if cfg is None:
            return None, None, False
        loaded_from: Optional[str] = path
    elif explicit:
        print(f"Config file not found: {path}", file=sys.stderr)
        return None, None, False
    else:
        cfg = RootConfig.from_env(os.environ)
        loaded_from = None
    cfg.apply_args_overrides(args)
    return cfg, loaded_from, True


def _read_config(path: str) -> Optional[RootConfig]:
    try:
        return RootConfig.read_file(path)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        print(f"Failed to parse config: {e}", file=sys.stderr)
        return None


def add_settings_args(p: argparse.ArgumentParser) -> None:
    """Flags mirroring the settings file; all default to None so unset flags do not override."""
    p.add_argument("--provider", default=None, help="Provider: nordvpn or mullvad (env: WGCG_PROVIDER)")
    p.add_argument("--output-dir", default=None, help="Directory for generated configs (env: WGCG_OUTPUT_DIR)")
    p.add_argument("--output-format", choices=OUTPUT_FORMATS, default=None,
                   help="ini (wg-quick) or ipc (userspace API) (env: WGCG_OUTPUT_FORMAT)")
    qr = p.add_mutually_exclusive_group()
    qr.add_argument("--qr", dest="emit_qr", action="store_true", default=None, help="Emit a QR code per config")
    qr.add_argument("--no-qr", dest="emit_qr", action="store_false", help="Do not emit QR codes")
    p.set_defaults(emit_qr=None)

    net = p.add_argument_group("network")
    net.add_argument("--interface-addresses", default=None,
                     help="Comma separated interface addresses; provider dependent (env: WGCG_INTERFACE_ADDRESSES)")
    net.add_argument("--dns", default=None, help="Comma separated DNS servers (env: WGCG_DNS)")
    net.add_argument("--allowed-ips", default=None, help="Comma separated peer AllowedIPs (env: WGCG_ALLOWED_IPS)")
    net.add_argument("--persistent-keepalive", type=int, default=None,
                     help="Keepalive interval in seconds, 0 disables (env: WGCG_PERSISTENT_KEEPALIVE)")
    net.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds (env: WGCG_TIMEOUT)")

    nord = p.add_argument_group("nordvpn")
    nord.add_argument("--nordvpn-token", default=None, help="NordVPN API token (env: WGCG_NORDVPN_TOKEN)")
    nord.add_argument("--nordvpn-credentials-url", default=None)
    nord.add_argument("--nordvpn-server-list-url", default=None)

    mull = p.add_argument_group("mullvad")
    mull.add_argument("--mullvad-private-key", default=None,
                      help="Private key registered with the Mullvad account (env: WGCG_MULLVAD_PRIVATE_KEY)")
    mull.add_argument("--mullvad-server-list-url", default=None)
