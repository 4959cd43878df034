"""
Deterministic visitor bucketing.

Hashes (experiment_id, visitor_key) to a stable point in [0, 1) so the same
visitor always lands in the same position for the same experiment, while
different experiments bucket independently.
"""

import hashlib

# 13 hex digits = 52 bits, exactly representable as a float so the
# quotient can never round up to 1.0.
HASH_HEX_DIGITS = 13
HASH_SPACE = 16 ** HASH_HEX_DIGITS


def bucket(experiment_id: str, visitor_key: str) -> float:
    """
    Map a visitor to a stable fraction in [0, 1).

    Args:
        experiment_id: Experiment identifier
        visitor_key: User id, session id, or any stable anonymous id (may be empty)

    Returns:
        float in [0, 1)
    """
    key = f"{experiment_id}:{visitor_key}"
    h = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return int(h[:HASH_HEX_DIGITS], 16) / HASH_SPACE
