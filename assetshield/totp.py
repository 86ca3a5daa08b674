# assetshield/totp.py
# TOTP utilities (RFC 6238, SHA1 / 6 digits / 30s, the authenticator-app profile)
import base64
import hashlib
import hmac
import secrets
import struct
import time
from typing import Optional
from urllib.parse import quote, urlencode

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
STEP = 30
DIGITS = 6
SECRET_BYTES = 20
VERIFY_WINDOW = 1


class InvalidSecret(ValueError):
    """Stored or supplied secret is not usable Base32 key material."""


def generate_secret() -> str:
    """Generate a 160-bit secret, Base32-encoded without padding (32 chars)."""
    return base64.b32encode(secrets.token_bytes(SECRET_BYTES)).decode("ascii").rstrip("=")


def decode_secret(secret: str) -> bytes:
    """
    Decode a Base32 secret into HMAC key bytes.

    Spaces and trailing '=' padding are ignored and lowercase is accepted.
    Bits left over after the last full byte are dropped.
    """
    if not isinstance(secret, str):
        raise InvalidSecret("secret must be a string")

    cleaned = secret.replace(" ", "").rstrip("=").upper()
    bits = 0
    value = 0
    out = bytearray()
    for ch in cleaned:
        idx = BASE32_ALPHABET.find(ch)
        if idx < 0:
            raise InvalidSecret("secret contains characters outside the Base32 alphabet")
        value = ((value << 5) | idx) & 0xFFFF
        bits += 5
        if bits >= 8:
            out.append((value >> (bits - 8)) & 0xFF)
            bits -= 8

    if not out:
        raise InvalidSecret("secret decodes to no key bytes")
    return bytes(out)


def time_counter(for_time: Optional[float] = None) -> int:
    """Number of whole 30-second steps since the Unix epoch."""
    if for_time is None:
        for_time = time.time()
    return int(for_time // STEP)


def _code_for_counter(key: bytes, counter: int) -> str:
    if counter < 0:
        raise ValueError("time counter must be non-negative")
    digest = hmac.new(key, struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[19] & 0x0F
    code_int = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(code_int % (10 ** DIGITS)).zfill(DIGITS)


def generate_code(secret: str, window_offset: int = 0, for_time: Optional[float] = None) -> str:
    """Generate the 6-digit code for the step at ``for_time`` shifted by ``window_offset`` steps."""
    key = decode_secret(secret)
    return _code_for_counter(key, time_counter(for_time) + window_offset)


def match_counter(
    secret: str,
    candidate,
    for_time: Optional[float] = None,
    window: int = VERIFY_WINDOW,
) -> Optional[int]:
    """
    Return the time counter whose code equals ``candidate``, or None.

    Checks the current step and ``window`` steps either side. Malformed
    candidates simply fail to match; an unusable secret raises InvalidSecret.
    """
    key = decode_secret(secret)
    if not isinstance(candidate, str) or not candidate:
        return None

    submitted = candidate.encode("utf-8")
    current = time_counter(for_time)
    for offset in range(-window, window + 1):
        counter = current + offset
        if counter < 0:
            continue
        expected = _code_for_counter(key, counter).encode("ascii")
        if hmac.compare_digest(expected, submitted):
            return counter
    return None


def verify_code(secret: str, candidate, for_time: Optional[float] = None) -> bool:
    """Verify a code against the previous, current and next 30-second windows."""
    return match_counter(secret, candidate, for_time=for_time) is not None


def build_provisioning_uri(secret: str, issuer: str, account: str) -> str:
    """Build the otpauth:// enrollment URI rendered as a QR code for authenticator apps."""
    if not issuer or not account:
        raise ValueError("issuer and account labels must be non-empty")

    label = quote(issuer, safe="") + ":" + quote(account, safe="")
    params = {
        "secret": secret,
        "issuer": issuer,
        "algorithm": "SHA1",
        "digits": DIGITS,
        "period": STEP,
    }
    return "otpauth://totp/{0}?{1}".format(label, urlencode(params).replace("+", "%20"))
