import logging
import os
import re
import sys
import uuid
from typing import Optional

DEFAULT_SECRETS_PATH = os.path.expanduser("~/.web3/keys")
DEFAULT_WALLET_PATH = os.path.expanduser("~/.ethereum/keys.info")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HEX_ADDRESS = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")


def resolve_secrets_path(cli_path: Optional[str] = None) -> str:
    if cli_path: return cli_path
    env = os.getenv("ETHKEY_SECRETS_PATH")
    return env if env else DEFAULT_SECRETS_PATH


def resolve_wallet_path(cli_path: Optional[str] = None) -> str:
    if cli_path: return cli_path
    env = os.getenv("ETHKEY_WALLET_PATH")
    return env if env else DEFAULT_WALLET_PATH


def ensure_dir_for(path: str):
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def write_private(path: str, data: str):
    ensure_dir_for(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(data)
    try:
        os.chmod(path, 0o600)
    except NotImplementedError:
        pass


def from_hex(text: str) -> bytes:
    """Decode hex with an optional 0x prefix. Returns b"" when it isn't hex."""
    text = text.strip()
    if text[:2] in ("0x", "0X"):
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError:
        return b""


def parse_uuid(text: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(text.strip())
    except ValueError:
        return None


def parse_address(text: str) -> Optional[bytes]:
    if not _HEX_ADDRESS.match(text.strip()):
        return None
    return from_hex(text)


def abridged(address: bytes) -> str:
    return address.hex()[:8] + "..."


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv("ETHKEY_LOG_LEVEL") or "WARNING").upper()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("ethkey")
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level, logging.WARNING))
    root.propagate = False
