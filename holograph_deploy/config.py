"""Environment-driven settings shared by the command line tools."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from eth_utils import is_address, to_checksum_address, to_hex

from .authorization import LocalSigner
from .encoding import generate_salt, to_bytes32
from .errors import ConfigurationError, EncodingError, SignatureError
from .networks import DEFAULT_ENVIRONMENT, ENVIRONMENTS, holograph_address

_LOGGER = logging.getLogger(__name__)

_PROVIDER_SCHEMES = ("http", "https", "ws", "wss")


@dataclass(frozen=True)
class Settings:
    provider_url: str
    environment: str = DEFAULT_ENVIRONMENT
    private_key: Optional[str] = field(default=None, repr=False)
    salt: Optional[bytes] = None
    hardware_wallet_enabled: bool = False
    safe_service_url: Optional[str] = None
    safe_address: Optional[str] = None

    @property
    def holograph_address(self) -> str:
        return holograph_address(self.environment)

    @property
    def multisig_enabled(self) -> bool:
        return self.safe_service_url is not None

    def deployment_salt(self, salt_file: Optional[Path] = None) -> bytes:
        """Resolve the CREATE2 descriptor salt.

        ``CUSTOM_ERC721_SALT`` always wins. Otherwise the salt saved in
        ``salt_file`` is reused, and when that file does not exist yet a new
        time-derived salt is generated and written there, so re-running a
        deployment targets the same descriptor and address. Without a
        ``salt_file`` a fresh salt is returned on every call.
        """

        if self.salt is not None:
            return self.salt
        if salt_file is None:
            return generate_salt()
        if salt_file.exists():
            try:
                salt = to_bytes32(salt_file.read_text(encoding="utf-8").strip(), label=str(salt_file))
            except EncodingError as exc:
                raise ConfigurationError(str(exc)) from exc
            _LOGGER.info("Reusing deployment salt %s from %s", to_hex(salt), salt_file)
            return salt
        salt = generate_salt()
        try:
            salt_file.write_text(to_hex(salt) + "\n", encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Unable to save deployment salt to {salt_file}: {exc}") from exc
        _LOGGER.info("Generated deployment salt %s and saved it to %s", to_hex(salt), salt_file)
        return salt

    def signer(self) -> LocalSigner:
        if not self.private_key:
            raise ConfigurationError("PRIVATE_KEY is required for commands that sign or submit transactions")
        try:
            return LocalSigner(self.private_key)
        except SignatureError as exc:
            raise ConfigurationError("PRIVATE_KEY is not a valid private key") from exc


def _parse_bool(name: str, value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered not in ("true", "false"):
        raise ConfigurationError(f"{name} must be 'true' or 'false', got {value!r}")
    return lowered == "true"


def _provider_url(value: Optional[str]) -> str:
    if not value:
        raise ConfigurationError("CUSTOM_ERC721_PROVIDER_URL is required")
    parsed = urlparse(value)
    if parsed.scheme not in _PROVIDER_SCHEMES or not parsed.netloc:
        raise ConfigurationError(f"CUSTOM_ERC721_PROVIDER_URL is not a valid URL: {value!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (``os.environ`` when omitted).

    Callers are expected to have run ``load_dotenv()`` first when a ``.env``
    file should be honoured.

    Raises
    ------
    ConfigurationError
        For missing or malformed variables, and when hardware wallet signing
        is requested.
    """

    if env is None:
        env = os.environ

    if _parse_bool("HARDWARE_WALLET_ENABLED", env.get("HARDWARE_WALLET_ENABLED")):
        raise ConfigurationError("HARDWARE_WALLET_ENABLED=true is not supported; provide PRIVATE_KEY instead")

    environment = (env.get("HOLOGRAPH_ENVIRONMENT") or DEFAULT_ENVIRONMENT).strip()
    if environment not in ENVIRONMENTS:
        raise ConfigurationError(
            f"HOLOGRAPH_ENVIRONMENT must be one of {', '.join(ENVIRONMENTS)}, got {environment!r}"
        )

    salt: Optional[bytes] = None
    raw_salt = (env.get("CUSTOM_ERC721_SALT") or "").strip()
    if raw_salt:
        try:
            salt = to_bytes32(raw_salt, label="CUSTOM_ERC721_SALT")
        except EncodingError as exc:
            raise ConfigurationError(str(exc)) from exc

    safe_service_url = (env.get("SAFE_TRANSACTION_SERVICE_URL") or "").strip() or None
    safe_address = (env.get("SAFE_ADDRESS") or "").strip() or None
    if bool(safe_service_url) != bool(safe_address):
        raise ConfigurationError("SAFE_TRANSACTION_SERVICE_URL and SAFE_ADDRESS must be set together")
    if safe_address is not None:
        if not is_address(safe_address):
            raise ConfigurationError(f"SAFE_ADDRESS is not a valid address: {safe_address!r}")
        safe_address = to_checksum_address(safe_address)

    return Settings(
        provider_url=_provider_url((env.get("CUSTOM_ERC721_PROVIDER_URL") or "").strip()),
        environment=environment,
        private_key=(env.get("PRIVATE_KEY") or "").strip() or None,
        salt=salt,
        hardware_wallet_enabled=False,
        safe_service_url=safe_service_url,
        safe_address=safe_address,
    )


__all__ = ["Settings", "load_settings"]
