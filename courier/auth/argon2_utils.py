"""
Argon2 password hashing utilities for Courier.

Passwords are hashed with Argon2id. Cost parameters can be tuned through
the environment (ARGON2_TIME_COST, ARGON2_MEMORY_COST, ARGON2_PARALLELISM,
ARGON2_HASH_LENGTH); the test suite lowers them to keep hashing fast.
"""

import os

from argon2 import PasswordHasher, Type, exceptions
from argon2.exceptions import VerificationError

from ..exceptions import CourierError
from ..structured_logging.logging_config import get_logger
from ..utils.error_logging import log_and_raise

logger = get_logger(__name__)

TIME_COST = int(os.getenv("ARGON2_TIME_COST", "3"))
MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "65536"))  # KiB
PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "1"))
HASH_LENGTH = int(os.getenv("ARGON2_HASH_LENGTH", "32"))


def create_hasher_with_params(
    time_cost: int = TIME_COST,
    memory_cost: int = MEMORY_COST,
    parallelism: int = PARALLELISM,
    hash_len: int = HASH_LENGTH,
) -> PasswordHasher:
    """Create an Argon2id PasswordHasher, validating the cost parameters."""
    if time_cost < 1 or time_cost > 10:
        raise ValueError(f"time_cost must be between 1 and 10, got {time_cost}")
    if memory_cost < 1024 or memory_cost > 1048576:
        raise ValueError(f"memory_cost must be between 1024 and 1048576, got {memory_cost}")
    if parallelism < 1 or parallelism > 16:
        raise ValueError(f"parallelism must be between 1 and 16, got {parallelism}")
    if hash_len < 16 or hash_len > 64:
        raise ValueError(f"hash_len must be between 16 and 64, got {hash_len}")

    return PasswordHasher(
        type=Type.ID,
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=hash_len,
    )


_default_hasher = create_hasher_with_params()


def hash_password(password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Args:
        password: Plaintext password

    Returns:
        Argon2id hash string in format: $argon2id$v=19$m=65536,t=3,p=1$...

    Raises:
        CourierError: If hashing fails
    """
    try:
        return _default_hasher.hash(password)
    except exceptions.HashingError as e:
        log_and_raise(
            CourierError,
            f"Failed to hash password: {e}",
            details={"original_error": str(e), "error_type": type(e).__name__},
            user_friendly="Password processing failed",
        )


def verify_password(password: str, hashed: str) -> bool:
    """
    Verify a plaintext password against an Argon2 hash.

    Returns:
        True if password matches hash, False otherwise
    """
    if not hashed:
        logger.warning("Password verification failed - empty hash")
        return False

    try:
        _default_hasher.verify(hashed, password)
        return True
    except (VerificationError, exceptions.InvalidHashError) as e:
        logger.debug("Password verification failed", error_type=type(e).__name__)
        return False
