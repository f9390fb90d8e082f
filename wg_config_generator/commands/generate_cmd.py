import argparse
import logging
import os
import sys
from typing import Callable, List

import qrcode
from qrcode.image.styledpil import StyledPilImage
from qrcode.image.styles.colormasks import HorizontalGradiantColorMask
from qrcode.image.styles.moduledrawers import RoundedModuleDrawer

from ..common import add_settings_args, load_settings
from ..context import Context
from ..errors import ConfigGeneratorError
from ..fetch import new_session
from ..formats import to_ini_format, to_ipc_format
from ..generator import build_generator
from ..providers import Provider
from ..wireguard import Configuration

logger = logging.getLogger(__name__)

RENDERERS: dict[str, tuple[Callable[[Configuration], str], str]] = {
    "ini": (to_ini_format, "conf"),
    "ipc": (to_ipc_format, "ipc"),
}


def add_generate_cmd(subparsers: argparse._SubParsersAction) -> None:
    c = subparsers.add_parser(
        "generate",
        help="Fetch provider servers and write one WireGuard config per server",
        description="Fetch the private key and server list of a provider and write <provider>_<index> configs.",
    )
    c.add_argument("-c", "--config", default=None,
                   help="Path to settings file (env: WGCG_CONFIG). Without one, settings come from WGCG_* env")
    add_settings_args(c)
    c.set_defaults(func=run_generate_cmd)


def run_generate_cmd(args: argparse.Namespace) -> int:
    cfg, cfg_path, ok = load_settings(args)
    if not ok or cfg is None:
        return 2

    errs = cfg.validate()
    if errs:
        print("Invalid configuration:", file=sys.stderr)
        for err in errs:
            print(f"- {err}", file=sys.stderr)
        return 2

    provider = Provider.parse(cfg.provider)
    interface_addresses, allowed_ips, keepalive, dns = cfg.network_parameters()

    ctx = Context.background()
    session = new_session()
    try:
        generator = build_generator(cfg, session)
        configs = generator.list(ctx, interface_addresses, allowed_ips, keepalive, dns)
    except ConfigGeneratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        ctx.cancel()
        print("\nCancelled.", file=sys.stderr)
        return 130
    finally:
        session.close()

    render, extension = RENDERERS[cfg.output_format]
    # Render everything before touching the output directory
    try:
        texts = [render(config) for config in configs]
    except ConfigGeneratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_dir = cfg.resolve_output_dir(cfg_path)
    os.makedirs(output_dir, exist_ok=True)
    written: List[str] = []
    for idx, text in enumerate(texts):
        out_path = os.path.join(output_dir, f"{provider.value}_{idx}.{extension}")
        _write_private(out_path, text)
        written.append(out_path)
        if cfg.emit_qr and cfg.output_format == "ini":
            _write_qr(text, os.path.join(output_dir, f"{provider.value}_{idx}.png"))

    logger.debug("wrote %s", ", ".join(written))
    print(f"Wrote {len(written)} configuration(s) to {output_dir}")
    return 0


def _write_private(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


def _write_qr(text: str, img_path: str) -> None:
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_Q)
    qr.add_data(text)
    qr.make(fit=True)
    # Left (purple) to right (blue) gradient with rounded modules
    color_mask = HorizontalGradiantColorMask(
        back_color=(255, 255, 255),
        left_color=(128, 0, 255),
        right_color=(0, 123, 255),
    )
    img = qr.make_image(
        image_factory=StyledPilImage,
        module_drawer=RoundedModuleDrawer(),
        color_mask=color_mask,
    )
    img.save(img_path)
