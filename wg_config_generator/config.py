import base64
import codecs
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, NewType, Optional, Tuple
from urllib.parse import urlparse

import yaml  # type: ignore
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from .errors import ConfigurationError, ParseError
from .netparse import IPAddress, IPPrefix, parse_addresses, parse_keepalive, parse_prefixes
from .providers import Provider
from .providers import mullvad as mullvad_provider
from .providers import nordvpn as nordvpn_provider

ENV_PREFIX = "WGCG_"

CIDR = NewType("CIDR", str)
WireGuardKey = NewType("WireGuardKey", str)

OUTPUT_FORMATS = ("ini", "ipc")


@dataclass()
class NordVPNSettings:
    token: Optional[str] = None
    credentials_url: str = nordvpn_provider.DEFAULT_CREDENTIALS_URL
    server_list_url: str = nordvpn_provider.DEFAULT_SERVER_LIST_URL

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "NordVPNSettings":
        r = EnvReader(env).with_prefix("NORDVPN_")
        return cls(
            token=r.get("TOKEN") or None,
            credentials_url=r.get("CREDENTIALS_URL") or nordvpn_provider.DEFAULT_CREDENTIALS_URL,
            server_list_url=r.get("SERVER_LIST_URL") or nordvpn_provider.DEFAULT_SERVER_LIST_URL,
        )

    def apply_args_overrides(self, args: object) -> None:
        if getattr(args, "nordvpn_token", None) is not None:
            v = getattr(args, "nordvpn_token")
            self.token = v if v else None
        if getattr(args, "nordvpn_credentials_url", None) is not None:
            self.credentials_url = str(getattr(args, "nordvpn_credentials_url"))
        if getattr(args, "nordvpn_server_list_url", None) is not None:
            self.server_list_url = str(getattr(args, "nordvpn_server_list_url"))

    def validate(self, required: bool) -> List[str]:
        errs: List[str] = []
        if required and not self.token:
            errs.append("nordvpn.token is required for provider nordvpn")
        for label, url in (
            ("nordvpn.credentials_url", self.credentials_url),
            ("nordvpn.server_list_url", self.server_list_url),
        ):
            if not _valid_http_url(url):
                errs.append(f"{label} invalid URL: {url}")
        return errs


@dataclass()
class MullvadSettings:
    private_key: Optional[WireGuardKey] = None
    server_list_url: str = mullvad_provider.DEFAULT_SERVER_LIST_URL

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "MullvadSettings":
        r = EnvReader(env).with_prefix("MULLVAD_")
        priv = r.get("PRIVATE_KEY")
        return cls(
            private_key=WireGuardKey(priv) if priv else None,
            server_list_url=r.get("SERVER_LIST_URL") or mullvad_provider.DEFAULT_SERVER_LIST_URL,
        )

    def apply_args_overrides(self, args: object) -> None:
        if getattr(args, "mullvad_private_key", None) is not None:
            v = getattr(args, "mullvad_private_key")
            self.private_key = WireGuardKey(v) if v else None
        if getattr(args, "mullvad_server_list_url", None) is not None:
            self.server_list_url = str(getattr(args, "mullvad_server_list_url"))

    def validate(self, required: bool) -> List[str]:
        errs: List[str] = []
        if required and not self.private_key:
            errs.append("mullvad.private_key is required for provider mullvad")
        if self.private_key is not None and not _looks_like_wg_key(self.private_key):
            errs.append("mullvad.private_key appears invalid format")
        if not _valid_http_url(self.server_list_url):
            errs.append(f"mullvad.server_list_url invalid URL: {self.server_list_url}")
        return errs


@dataclass()
class RootConfig:
    provider: str = Provider.NORDVPN.value
    output_dir: str = "configs"
    output_format: str = "ini"
    emit_qr: bool = False
    interface_addresses: List[CIDR] = field(default_factory=list)
    dns: List[str] = field(default_factory=lambda: ["1.1.1.1"])
    allowed_ips: List[CIDR] = field(default_factory=lambda: [CIDR("0.0.0.0/0")])
    persistent_keepalive: int = 25
    timeout: float = 30.0
    nordvpn: NordVPNSettings = field(default_factory=NordVPNSettings)
    mullvad: MullvadSettings = field(default_factory=MullvadSettings)

    # File IO
    @classmethod
    def read_file(cls, path: str) -> "RootConfig":
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        data = load_yaml(text)
        return parse_root_config(data)

    def write_file(self, path: str, overwrite: bool = False) -> None:
        if os.path.exists(path) and not overwrite:
            raise FileExistsError(f"Refusing to overwrite existing file: {path}")
        parent = os.path.dirname(os.path.abspath(path))
        if parent and not os.path.exists(parent):
            os.makedirs(parent, exist_ok=True)
        text = dump_yaml(to_yaml_dict(self))
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        # Holds the provider token / private key
        try:
            os.chmod(path, 0o600)
        except OSError:
            pass

    def resolve_output_dir(self, config_path: Optional[str]) -> str:
        if not config_path:
            return os.path.abspath(self.output_dir)
        base = os.path.dirname(os.path.abspath(config_path))
        return os.path.abspath(os.path.join(base, self.output_dir))

    def network_parameters(self) -> Tuple[List[IPPrefix], List[IPPrefix], int, List[IPAddress]]:
        """Parse the address settings; raises ParseError on the first bad entry."""
        interface_addresses = parse_prefixes(", ".join(self.interface_addresses))
        allowed_ips = parse_prefixes(", ".join(self.allowed_ips))
        keepalive = parse_keepalive(self.persistent_keepalive)
        dns = parse_addresses(", ".join(self.dns))
        return interface_addresses, allowed_ips, keepalive, dns

    # Validation
    def validate(self) -> List[str]:
        errs: List[str] = []
        provider: Optional[Provider] = None
        try:
            provider = Provider.parse(self.provider)
        except ConfigurationError as e:
            errs.append(f"provider invalid: {e}")
        if not self.output_dir:
            errs.append("output_dir must be non-empty")
        if self.output_format not in OUTPUT_FORMATS:
            errs.append(f"output_format must be one of {', '.join(OUTPUT_FORMATS)}: {self.output_format}")

        if not self.interface_addresses:
            errs.append("interface_addresses must be set")
        for label, values, parse in (
            ("interface_addresses", self.interface_addresses, parse_prefixes),
            ("allowed_ips", self.allowed_ips, parse_prefixes),
            ("dns", self.dns, parse_addresses),
        ):
            if not values:
                continue
            try:
                parse(", ".join(values))
            except ParseError as e:
                errs.append(f"{label} contains {e}")
        if not self.allowed_ips:
            errs.append("allowed_ips must be set")
        try:
            parse_keepalive(self.persistent_keepalive)
        except ParseError:
            errs.append(f"persistent_keepalive out of range: {self.persistent_keepalive}")
        if _to_float(self.timeout) is None or float(self.timeout) <= 0:
            errs.append(f"timeout must be a positive number: {self.timeout}")

        # Delegate to provider sections; only the selected provider's credentials are required
        errs.extend(self.nordvpn.validate(required=provider is Provider.NORDVPN))
        errs.extend(self.mullvad.validate(required=provider is Provider.MULLVAD))
        return errs

    def validate_or_raise(self) -> None:
        errs = self.validate()
        if errs:
            raise ConfigurationError("Config validation failed:\n- " + "\n- ".join(errs))

    # Fill from env/args
    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "RootConfig":
        r = EnvReader(env)
        return cls(
            provider=r.get("PROVIDER", Provider.NORDVPN.value) or Provider.NORDVPN.value,
            output_dir=r.get("OUTPUT_DIR", "configs") or "configs",
            output_format=(r.get("OUTPUT_FORMAT", "ini") or "ini").lower(),
            emit_qr=r.get_bool("EMIT_QR", False),
            interface_addresses=[CIDR(a) for a in _parse_list(r.get("INTERFACE_ADDRESSES", "") or "")],
            dns=_parse_list(r.get("DNS", "1.1.1.1") or "1.1.1.1"),
            allowed_ips=[CIDR(a) for a in _parse_list(r.get("ALLOWED_IPS", "0.0.0.0/0") or "0.0.0.0/0")],
            persistent_keepalive=r.get_int("PERSISTENT_KEEPALIVE", 25),
            timeout=r.get_float("TIMEOUT", 30.0),
            nordvpn=NordVPNSettings.from_env(env),
            mullvad=MullvadSettings.from_env(env),
        )

    def apply_args_overrides(self, args: object) -> None:
        if getattr(args, "provider", None) is not None:
            self.provider = str(getattr(args, "provider"))
        if getattr(args, "output_dir", None) is not None:
            self.output_dir = str(getattr(args, "output_dir"))
        if getattr(args, "output_format", None) is not None:
            self.output_format = str(getattr(args, "output_format")).lower()
        if getattr(args, "emit_qr", None) is not None:
            self.emit_qr = bool(getattr(args, "emit_qr"))
        if getattr(args, "interface_addresses", None) is not None:
            self.interface_addresses = [CIDR(a) for a in _parse_list(getattr(args, "interface_addresses"))]
        if getattr(args, "dns", None) is not None:
            self.dns = _parse_list(getattr(args, "dns"))
        if getattr(args, "allowed_ips", None) is not None:
            self.allowed_ips = [CIDR(a) for a in _parse_list(getattr(args, "allowed_ips"))]
        if getattr(args, "persistent_keepalive", None) is not None:
            self.persistent_keepalive = int(getattr(args, "persistent_keepalive"))
        if getattr(args, "timeout", None) is not None:
            self.timeout = float(getattr(args, "timeout"))
        self.nordvpn.apply_args_overrides(args)
        self.mullvad.apply_args_overrides(args)


class EnvReader:
    def __init__(self, env: Mapping[str, str], prefix: str = ENV_PREFIX) -> None:
        self._env = env
        self._prefix = prefix

    def with_prefix(self, more: str) -> "EnvReader":
        return EnvReader(self._env, self._prefix + more)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._env.get(self._prefix + key, default)

    def get_bool(self, key: str, default: bool) -> bool:
        val = self._env.get(self._prefix + key)
        if val is None:
            return default
        val_lower = val.strip().lower()
        if val_lower in {"1", "true", "yes", "y", "on"}:
            return True
        if val_lower in {"0", "false", "no", "n", "off"}:
            return False
        return default

    def get_int(self, key: str, default: int) -> int:
        val = self._env.get(self._prefix + key)
        if val is None:
            return default
        try:
            return int(val)
        except ValueError:
            return default

    def get_float(self, key: str, default: float) -> float:
        val = _to_float(self._env.get(self._prefix + key))
        return default if val is None else val


def _parse_list(value: str) -> List[str]:
    parts = [p.strip() for p in value.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def _looks_like_wg_key(value: str) -> bool:
    try:
        raw = base64.b64decode(value, validate=True)
        return len(raw) == 32
    except ValueError:
        return False


def _valid_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def generate_wg_keypair() -> tuple[str, str]:
    """Generate a WireGuard (X25519) keypair as base64 strings using cryptography.

    Matches `wg genkey | wg pubkey` semantics: 32-byte raw keys, Base64 encoded.
    """
    private_key = X25519PrivateKey.generate()
    priv_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    priv_b64 = codecs.encode(priv_bytes, "base64").decode("utf8").strip()
    return priv_b64, derive_public_key(priv_b64)


def derive_public_key(private_key: str) -> str:
    raw = base64.b64decode(private_key, validate=True)
    pub_bytes = (
        X25519PrivateKey.from_private_bytes(raw)
        .public_key()
        .public_bytes(encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw)
    )
    return codecs.encode(pub_bytes, "base64").decode("utf8").strip()


def to_yaml_dict(cfg: RootConfig) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "provider": cfg.provider,
        "output-dir": cfg.output_dir,
        "output-format": cfg.output_format,
        "emit-qr": cfg.emit_qr,
        "interface-addresses": ", ".join(cfg.interface_addresses),
        "dns": ", ".join(cfg.dns),
        "allowed-ips": ", ".join(cfg.allowed_ips),
        "persistent-keepalive": int(cfg.persistent_keepalive),
        "timeout": float(cfg.timeout),
    }
    nord: Dict[str, Any] = {
        "credentials-url": cfg.nordvpn.credentials_url,
        "server-list-url": cfg.nordvpn.server_list_url,
    }
    if cfg.nordvpn.token is not None:
        nord["token"] = cfg.nordvpn.token
    data["nordvpn"] = nord

    mull: Dict[str, Any] = {"server-list-url": cfg.mullvad.server_list_url}
    if cfg.mullvad.private_key is not None:
        mull["private-key"] = cfg.mullvad.private_key
    data["mullvad"] = mull
    return data


def dump_yaml(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def load_yaml(text: str) -> Dict[str, Any]:
    obj = yaml.safe_load(text)
    if not isinstance(obj, dict):
        raise ValueError("Invalid YAML root: expected mapping")
    return obj


def _list_value(value: Any, default: List[str]) -> List[str]:
    if value is None:
        return list(default)
    if isinstance(value, str):
        return _parse_list(value)
    return [str(x) for x in value]


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping")
    return value


def parse_root_config(data: Dict[str, Any]) -> RootConfig:
    defaults = RootConfig()

    nord_map = _section(data, "nordvpn")
    nord = NordVPNSettings(
        token=str(nord_map["token"]) if nord_map.get("token") else None,
        credentials_url=str(nord_map.get("credentials-url", nordvpn_provider.DEFAULT_CREDENTIALS_URL)),
        server_list_url=str(nord_map.get("server-list-url", nordvpn_provider.DEFAULT_SERVER_LIST_URL)),
    )

    mull_map = _section(data, "mullvad")
    mull = MullvadSettings(
        private_key=WireGuardKey(str(mull_map["private-key"])) if mull_map.get("private-key") else None,
        server_list_url=str(mull_map.get("server-list-url", mullvad_provider.DEFAULT_SERVER_LIST_URL)),
    )

    return RootConfig(
        provider=str(data.get("provider", defaults.provider)),
        output_dir=str(data.get("output-dir", defaults.output_dir)),
        output_format=str(data.get("output-format", defaults.output_format)).lower(),
        emit_qr=bool(data.get("emit-qr", defaults.emit_qr)),
        interface_addresses=[CIDR(a) for a in _list_value(data.get("interface-addresses"), [])],
        dns=_list_value(data.get("dns"), defaults.dns),
        allowed_ips=[CIDR(a) for a in _list_value(data.get("allowed-ips"), defaults.allowed_ips)],
        persistent_keepalive=int(data.get("persistent-keepalive", defaults.persistent_keepalive)),
        timeout=float(data.get("timeout", defaults.timeout)),
        nordvpn=nord,
        mullvad=mull,
    )
