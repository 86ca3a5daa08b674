import base64
import string

import pytest

from assetshield import totp
from assetshield.totp import (
    InvalidSecret,
    build_provisioning_uri,
    decode_secret,
    generate_code,
    generate_secret,
    match_counter,
    verify_code,
)

# ASCII "12345678901234567890", the RFC 6238 SHA1 seed
RFC_SECRET = base64.b32encode(b"12345678901234567890").decode("ascii")

# Window start, so T .. T+29 share one counter
T = 1_700_000_010


@pytest.mark.parametrize(
    "unix_time, expected",
    [
        (59, "287082"),
        (1111111109, "081804"),
        (1111111111, "050471"),
        (1234567890, "005924"),
        (2000000000, "279037"),
        (20000000000, "353130"),
    ],
)
def test_rfc6238_sha1_vectors(unix_time, expected):
    assert generate_code(RFC_SECRET, for_time=unix_time) == expected


def test_rfc_secret_decodes_to_seed():
    assert RFC_SECRET == "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
    assert decode_secret(RFC_SECRET) == b"12345678901234567890"


def test_generate_secret_shape():
    secret = generate_secret()
    assert len(secret) == 32
    assert set(secret) <= set(totp.BASE32_ALPHABET)
    assert len(decode_secret(secret)) == 20


def test_generate_secret_is_random():
    assert len({generate_secret() for _ in range(50)}) == 50


def test_generated_secret_is_accepted():
    for _ in range(20):
        code = generate_code(generate_secret(), for_time=T)
        assert len(code) == 6


def test_code_is_deterministic():
    secret = generate_secret()
    assert generate_code(secret, for_time=T) == generate_code(secret, for_time=T)
    assert generate_code(secret, for_time=T) == generate_code(secret, for_time=T + 29)


def test_code_format():
    secret = generate_secret()
    for step in range(200):
        code = generate_code(secret, for_time=step * 30)
        assert len(code) == 6
        assert all(ch in string.digits for ch in code)


def test_window_offset_matches_neighbouring_time():
    secret = generate_secret()
    assert generate_code(secret, window_offset=1, for_time=T) == generate_code(secret, for_time=T + 30)
    assert generate_code(secret, window_offset=-1, for_time=T) == generate_code(secret, for_time=T - 30)


def test_negative_counter_rejected():
    with pytest.raises(ValueError):
        generate_code(RFC_SECRET, window_offset=-1, for_time=0)


@pytest.mark.parametrize("delta", [0, 15, 29, -30, -1, 30, 59])
def test_verify_tolerates_one_window_of_drift(delta):
    secret = generate_secret()
    code = generate_code(secret, for_time=T)
    assert verify_code(secret, code, for_time=T + delta)


@pytest.mark.parametrize("delta", [61, 90, 300, -31, -120])
def test_verify_rejects_codes_more_than_one_window_away(delta):
    code = generate_code(RFC_SECRET, for_time=T)
    assert not verify_code(RFC_SECRET, code, for_time=T + delta)


def test_match_counter_reports_matched_window():
    secret = generate_secret()
    counter = T // 30
    code = generate_code(secret, for_time=T)
    assert match_counter(secret, code, for_time=T) == counter
    assert match_counter(secret, code, for_time=T + 30) == counter
    assert match_counter(secret, "not-a-code", for_time=T) is None


def test_verify_skips_windows_before_epoch():
    code = generate_code(RFC_SECRET, for_time=0)
    assert verify_code(RFC_SECRET, code, for_time=0)


@pytest.mark.parametrize("candidate", ["", "abcdef", "12345", "1234567", None, 123456, " "])
def test_verify_rejects_garbage_without_raising(candidate):
    assert verify_code(RFC_SECRET, candidate, for_time=T) is False


def test_verify_rejects_wrong_numeric_code():
    actual = {generate_code(RFC_SECRET, window_offset=o, for_time=T) for o in (-1, 0, 1)}
    for guess in ("000000", "999999", "123456"):
        if guess not in actual:
            assert verify_code(RFC_SECRET, guess, for_time=T) is False


def test_verify_uses_current_clock_by_default():
    secret = generate_secret()
    assert verify_code(secret, generate_code(secret))


def test_lowercase_and_padded_secret_accepted():
    assert decode_secret(RFC_SECRET.lower()) == decode_secret(RFC_SECRET)
    assert decode_secret("JBSWY3DPEHPK3PXP====") == decode_secret("JBSWY3DPEHPK3PXP")
    assert decode_secret("JBSW Y3DP EHPK 3PXP") == decode_secret("JBSWY3DPEHPK3PXP")


def test_trailing_bits_are_discarded():
    # 10 chars = 50 bits -> 6 full bytes, 2 bits dropped
    assert len(decode_secret("JBSWY3DPEH")) == 6


@pytest.mark.parametrize("secret", ["NOT-BASE32!", "ABC1", "ÄBCDEFGH", "", "A", "====", None, 42])
def test_invalid_secret(secret):
    with pytest.raises(InvalidSecret):
        generate_code(secret, for_time=T)


def test_verify_with_invalid_secret_raises():
    with pytest.raises(InvalidSecret):
        verify_code("bad secret 0189", "123456", for_time=T)


def test_provisioning_uri():
    uri = build_provisioning_uri("JBSWY3DPEHPK3PXP", "AssetShield Admin", "ops@example.com")
    assert uri == (
        "otpauth://totp/AssetShield%20Admin:ops%40example.com"
        "?secret=JBSWY3DPEHPK3PXP&issuer=AssetShield%20Admin&algorithm=SHA1&digits=6&period=30"
    )


@pytest.mark.parametrize("issuer, account", [("", "ops@example.com"), ("Acme", ""), (None, "x")])
def test_provisioning_uri_requires_labels(issuer, account):
    with pytest.raises(ValueError):
        build_provisioning_uri("JBSWY3DPEHPK3PXP", issuer, account)


def test_enrollment_scenario():
    secret = generate_secret()
    t0 = 1_700_000_000

    code = generate_code(secret, for_time=t0)
    assert verify_code(secret, code, for_time=t0 + 15)
    assert not verify_code(secret, code, for_time=t0 + 95)

    uri = build_provisioning_uri(secret, "Acme", "admin@acme.test")
    assert uri.startswith("otpauth://totp/Acme:admin%40acme.test?")
    assert f"secret={secret}" in uri
