"""Hashing for one-time secrets (OTP codes, withdrawal verification codes)."""

import secrets

from passlib.context import CryptContext

from config import OTP_HASH_ROUNDS, OTP_LENGTH

secret_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=OTP_HASH_ROUNDS
)

# No 0/O or 1/I so codes read back cleanly over the phone
HUMAN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def hash_secret(value: str) -> str:
    return secret_context.hash(value)


def verify_secret(value: str, hashed: str) -> bool:
    """Constant-time check of a plain secret against its stored hash."""
    if not value or not hashed:
        return False
    return secret_context.verify(value, hashed)


def generate_otp(length: int = OTP_LENGTH) -> str:
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def generate_human_code(length: int = 8) -> str:
    """Human-shareable code such as "K7F9-X2BD"."""
    raw = "".join(secrets.choice(HUMAN_CODE_ALPHABET) for _ in range(length))
    half = length // 2
    return f"{raw[:half]}-{raw[half:]}"


def normalize_human_code(value: str) -> str:
    """Upper-case and drop hyphens and spaces, so "k7f9 x2bd" matches "K7F9-X2BD"."""
    return "".join(ch for ch in (value or "").upper() if ch not in "- \t")
