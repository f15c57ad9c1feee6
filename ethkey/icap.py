"""Direct ICAP (Inter exchange Client Address Protocol) codec.

A direct ICAP is an IBAN with the made-up country code ``XE``: two check
digits followed by the address written in base 36 (30 characters). Only
addresses whose first byte is zero fit in 30 base-36 digits.
"""
import string

COUNTRY = "XE"
BBAN_LENGTH = 30
ALPHABET = string.digits + string.ascii_uppercase


class InvalidICAP(ValueError):
    pass


def is_icap_capable(address: bytes) -> bool:
    return len(address) == 20 and address[0] == 0


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(ALPHABET[rem])
    return "".join(reversed(digits)) or "0"


def _mod97(text: str) -> int:
    # letters count as two digits (A=10 .. Z=35)
    numeric = "".join(str(ALPHABET.index(c)) for c in text)
    return int(numeric) % 97


def checksum(country: str, bban: str) -> str:
    return f"{98 - _mod97(bban + country + '00'):02d}"


def encode(address: bytes) -> str:
    if not is_icap_capable(address):
        raise InvalidICAP("Only addresses starting with a zero byte have a direct ICAP.")
    bban = _to_base36(int.from_bytes(address, "big")).rjust(BBAN_LENGTH, "0")
    return COUNTRY + checksum(COUNTRY, bban) + bban


def decode(icap: str) -> bytes:
    icap = icap.strip().upper()
    if not icap.startswith(COUNTRY):
        raise InvalidICAP(f"Not an ICAP: country code must be {COUNTRY}.")
    if len(icap) != 4 + BBAN_LENGTH:
        raise InvalidICAP("Only direct ICAP (34 characters) is supported.")
    if any(c not in ALPHABET for c in icap):
        raise InvalidICAP("ICAP contains characters outside [0-9A-Z].")
    if _mod97(icap[4:] + icap[:4]) != 1:
        raise InvalidICAP("ICAP checksum mismatch.")
    value = int(icap[4:], 36)
    if value >= 1 << 160:
        raise InvalidICAP("ICAP value does not fit in an address.")
    return value.to_bytes(20, "big")
