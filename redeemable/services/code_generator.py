import hashlib
import logging
import random
import string
from typing import Callable, Iterable

from sqlalchemy.orm import Session

from redeemable.exceptions import CodeSpaceExhausted
from redeemable.schemas.options import MAX_CODE_LENGTH
from redeemable.settings import DEFAULT_CODE_LENGTH, MAX_CODE_ATTEMPTS


logger = logging.getLogger(__name__)

# no "0": raw draws stay free of the 0/o confusion
CODE_ALPHABET = string.ascii_lowercase + "123456789"


# ============================================================
# GENERATION
# ============================================================

def generate_code(code_length: int = DEFAULT_CODE_LENGTH) -> str:
    """Random human-enterable code of ``code_length`` uppercase hex characters.

    A random draw from ``CODE_ALPHABET`` is MD5-hashed and truncated so even
    short codes look uniform. This is not a security token.
    """
    if code_length < 1 or code_length > MAX_CODE_LENGTH:
        raise ValueError(f"code_length must be between 1 and {MAX_CODE_LENGTH}")

    seed = "".join(random.choice(CODE_ALPHABET) for _ in range(code_length))
    return hashlib.md5(seed.encode("ascii")).hexdigest()[:code_length].upper()


def generate_unique_code(
    is_active: Callable[[str], bool],
    code_length: int = DEFAULT_CODE_LENGTH,
    *,
    max_attempts: int = MAX_CODE_ATTEMPTS,
    reserved: Iterable[str] = (),
) -> str:
    """Generate codes until one is neither active nor reserved."""
    reserved = set(reserved)

    for attempt in range(1, max_attempts + 1):
        code = generate_code(code_length)
        if code in reserved or is_active(code):
            logger.debug("code collision; retrying", extra={"attempt": attempt, "code_length": code_length})
            continue
        return code

    logger.error(
        "code space exhausted",
        extra={"code_length": code_length, "max_attempts": max_attempts},
    )
    raise CodeSpaceExhausted(code_length, max_attempts)


# ============================================================
# UNIQUENESS
# ============================================================

def active_code(db: Session, model, code: str) -> bool:
    """Whether a ``model`` row already holds exactly ``code``."""
    with db.no_autoflush:
        existing = db.query(model.code).filter(model.code == code).first()
    return existing is not None
