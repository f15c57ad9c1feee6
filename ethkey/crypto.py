import base64
import enum
import logging
import os
import secrets
from typing import Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.backends import default_backend
from eth_account import Account
from eth_utils import keccak

logger = logging.getLogger(__name__)

DEFAULT_KDF_ITERS = 200_000
DEFAULT_ICAP_ROUNDS = 65536
BACKEND = default_backend()
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# --kdf-param names understood as the work factor, per KDF
WORK_FACTOR_PARAMS = {
    "scrypt": ("n",),
    "pbkdf2": ("c", "iterations"),
}


class KDF(enum.Enum):
    SCRYPT = "scrypt"
    PBKDF2_SHA256 = "pbkdf2"


class KeyGenerationError(RuntimeError):
    pass


# --- Keys and addresses ---

def is_valid_secret(secret: bytes) -> bool:
    return len(secret) == 32 and 0 < int.from_bytes(secret, "big") < SECP256K1_N


def to_address(secret: bytes) -> bytes:
    """Address (20 bytes) of the account controlled by ``secret``."""
    if not is_valid_secret(secret):
        raise ValueError("Secret is not a valid secp256k1 private key.")
    checksummed = Account.from_key(secret).address
    return bytes.fromhex(checksummed[2:])


def sha3(data: bytes) -> bytes:
    return keccak(data)


def make_key(icap: bool = True, max_rounds: int = DEFAULT_ICAP_ROUNDS) -> Tuple[bytes, bytes]:
    """Generate a fresh (secret, address) pair.

    With ``icap`` set the secret is re-hashed until the address starts with a
    zero byte, which direct ICAP encoding requires.
    """
    secret = secrets.token_bytes(32)
    for _ in range(max_rounds):
        if is_valid_secret(secret):
            address = to_address(secret)
            if not icap or address[0] == 0:
                return secret, address
        secret = sha3(secret)
    raise KeyGenerationError(f"No ICAP-capable key found in {max_rounds} rounds.")


# --- Key files (Web3 secret storage v3) ---

def _valid_work_factor(kdf: KDF, value: int) -> bool:
    if kdf is KDF.SCRYPT:
        # scrypt n must be a power of two above one
        return value >= 2 and value & (value - 1) == 0
    return value >= 1


def work_factor(kdf: KDF, kdf_params: Optional[dict]) -> Optional[int]:
    """Work factor for ``kdf`` from --kdf-param values; None keeps the default."""
    if not kdf_params:
        return None
    iterations = None
    for name, value in kdf_params.items():
        if name not in WORK_FACTOR_PARAMS[kdf.value]:
            logger.warning("Ignoring KDF parameter %r, not used by %s", name, kdf.value)
            continue
        try:
            candidate = int(value)
        except ValueError:
            logger.warning("Ignoring non-integer value %r for KDF parameter %r", value, name)
            continue
        if not _valid_work_factor(kdf, candidate):
            logger.warning("Ignoring invalid value %r for %s parameter %r", value, kdf.value, name)
            continue
        iterations = candidate
    return iterations


def encrypt_secret(secret: bytes, password: str, kdf: KDF = KDF.SCRYPT,
                   kdf_params: Optional[dict] = None) -> dict:
    return Account.encrypt(secret, password, kdf=kdf.value, iterations=work_factor(kdf, kdf_params))


def decrypt_secret(keyfile: dict, password: str) -> Optional[bytes]:
    try:
        return bytes(Account.decrypt(keyfile, password))
    except (ValueError, KeyError):
        # MAC mismatch: wrong password or a corrupt file
        return None


# --- Master password sealing (wallet file) ---

def derive_key(master_password: str, salt: bytes, kdf_iters: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=kdf_iters,
        backend=BACKEND
    )
    key = kdf.derive(master_password.encode("utf-8"))
    return base64.urlsafe_b64encode(key)


def seal(payload: bytes, master_password: str, kdf_iters: int = DEFAULT_KDF_ITERS) -> dict:
    salt = os.urandom(16)
    f = Fernet(derive_key(master_password, salt, kdf_iters))
    return {
        "version": 1,
        "salt": base64.b64encode(salt).decode("ascii"),
        "kdf_iters": kdf_iters,
        "payload": f.encrypt(payload).decode("ascii"),
    }


class MalformedEnvelope(ValueError):
    pass


def unseal(envelope: dict, master_password: str) -> Optional[bytes]:
    """Payload of a sealed envelope, or None when the password is wrong.

    Raises MalformedEnvelope when ``envelope`` is not one ``seal`` wrote.
    """
    try:
        salt = base64.b64decode(envelope["salt"])
        kdf_iters = int(envelope["kdf_iters"])
        token = envelope["payload"].encode("ascii")
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedEnvelope(f"Malformed envelope: {e!r}") from e
    if kdf_iters < 1:
        raise MalformedEnvelope(f"Malformed envelope: kdf_iters={kdf_iters}")
    f = Fernet(derive_key(master_password, salt, kdf_iters))
    try:
        return f.decrypt(token)
    except InvalidToken:
        return None


def password_hash(password: str) -> str:
    return keccak(text=password).hex()
