"""Configuration loading for lottery tools.

Settings are read from ``config/settings.yaml`` inside the package, with an
optional, uncommitted ``settings.local.yaml`` deep-merged on top. Values of
the form ``${VAR}`` or ``${VAR:default}`` are resolved from the environment
after any ``.env`` file has been loaded. The ``lottery`` section is exposed
as an immutable ``LotterySettings``.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

_DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"
_DEFAULT_TOKEN_SYMBOL = "CAKE"
_DEFAULT_GAS_LIMIT = 500_000
_DEFAULT_RECEIPT_TIMEOUT = 120
_REQUIRED_KEYS = ("rpc_url", "lottery_address", "token_address")

_ENV_REF = re.compile(r"^\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}$")
_EMBEDDED_ENV_REF = re.compile(r"\$\{[^}]+\}")


class ConfigError(Exception):
    """Raise when configuration loading or validation fails."""


@dataclass(frozen=True)
class LotterySettings:
    """Immutable settings for talking to the lottery and token contracts.

    Attributes:
        rpc_url: JSON-RPC endpoint of the chain.
        lottery_address: Lottery contract address.
        token_address: Payment token (CAKE) contract address.
        token_symbol: Symbol shown in amounts and warnings.
        private_key: Hex-encoded signing key, or None for read-only use.
        gas_limit: Gas limit per transaction.
        receipt_timeout: Seconds to wait for each transaction receipt.

    """

    rpc_url: str
    lottery_address: str
    token_address: str
    token_symbol: str = _DEFAULT_TOKEN_SYMBOL
    private_key: str | None = None
    gas_limit: int = _DEFAULT_GAS_LIMIT
    receipt_timeout: int = _DEFAULT_RECEIPT_TIMEOUT


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open() as f:
        return cast("dict[str, Any]", yaml.safe_load(f) or {})


def _merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _merge(base[key], cast("dict[str, Any]", value))
        else:
            base[key] = value


def _resolve(value: Any) -> Any:
    """Replace ``${VAR}`` / ``${VAR:default}`` references with environment values.

    Raises:
        ConfigError: If a variable is unset and has no default, or a reference
            is embedded inside a longer string.

    """
    if isinstance(value, dict):
        return {k: _resolve(v) for k, v in cast("dict[str, Any]", value).items()}
    if isinstance(value, list):
        return [_resolve(item) for item in cast("list[Any]", value)]
    if not isinstance(value, str):
        return value

    match = _ENV_REF.match(value)
    if match is not None:
        resolved = os.getenv(match["name"], match["default"])
        if resolved is None:
            msg = f"Required environment variable ${{{match['name']}}} is not set and has no default"
            raise ConfigError(msg)
        return resolved
    if _EMBEDDED_ENV_REF.search(value):
        msg = f"Unresolved environment variable reference in: {value}"
        raise ConfigError(msg)
    return value


def _as_int(section: dict[str, Any], key: str, default: int) -> int:
    raw = section.get(key, default)
    try:
        return int(raw)
    except (TypeError, ValueError):
        msg = f"lottery.{key} must be an integer, got {raw!r}"
        raise ConfigError(msg) from None


class ConfigLoader:
    """Read the YAML settings and build typed settings objects from them.

    Args:
        config_dir: Directory holding ``settings.yaml``. Defaults to the
            package's ``config`` directory.

    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """Load ``.env``, then read and resolve the YAML settings."""
        load_dotenv()
        self.config_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
        raw = _read_yaml(self.config_dir / "settings.yaml")
        _merge(raw, _read_yaml(self.config_dir / "settings.local.yaml"))
        self._raw: dict[str, Any] = _resolve(raw)

    def lottery_settings(self) -> LotterySettings:
        """Return the ``lottery`` section as ``LotterySettings``.

        Raises:
            ConfigError: If the section is missing, is not a mapping, lacks a
                contract setting, or holds a non-integer gas or timeout value.

        """
        section: Any = self._raw.get("lottery")
        if not isinstance(section, dict):
            msg = f"lottery config must be a dict, got {type(section).__name__}"
            raise ConfigError(msg)
        section = cast("dict[str, Any]", section)
        missing = [key for key in _REQUIRED_KEYS if not section.get(key)]
        if missing:
            msg = f"lottery config is missing {', '.join(missing)}"
            raise ConfigError(msg)

        return LotterySettings(
            rpc_url=str(section["rpc_url"]),
            lottery_address=str(section["lottery_address"]),
            token_address=str(section["token_address"]),
            token_symbol=str(section.get("token_symbol") or _DEFAULT_TOKEN_SYMBOL),
            private_key=str(section["private_key"]) if section.get("private_key") else None,
            gas_limit=_as_int(section, "gas_limit", _DEFAULT_GAS_LIMIT),
            receipt_timeout=_as_int(section, "receipt_timeout", _DEFAULT_RECEIPT_TIMEOUT),
        )

    def get_private_key(self) -> str:
        """Return the hex-encoded private key used to sign transactions.

        Raises:
            ValueError: If no private key is configured.

        """
        key = self.lottery_settings().private_key
        if key is None:
            raise ValueError("lottery.private_key is not configured (set LOTTERY_PRIVATE_KEY)")
        return key


_config: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Return the global ``ConfigLoader`` singleton, creating it on first use.

    Lazy initialisation avoids side effects (file I/O, ``load_dotenv``)
    at import time and makes testing easier.
    """
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ConfigLoader()
    return _config
