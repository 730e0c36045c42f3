"""Shared embedding utilities (generation and similarity).

The generator is a deterministic hash-based fallback: it needs no model and
no network access, and captures only coarse lexical overlap.  Anything that
maps ``str -> list[float]`` of length ``EMBEDDING_DIM`` can replace it.
"""

import logging
import math
import struct

logger = logging.getLogger(__name__)

# Matches the width of the MiniLM family so a learned model can drop in.
EMBEDDING_DIM = 384


def zero_vector() -> list[float]:
    return [0.0] * EMBEDDING_DIM


def string_hash(token: str) -> int:
    """32-bit signed polynomial rolling hash (``h = h * 31 + c``).

    Iterates UTF-16 code units and wraps at every step, so the value is the
    same on every platform regardless of how the interpreter stores strings.
    """
    data = token.encode("utf-16-le", "surrogatepass")
    h = 0
    for (unit,) in struct.iter_unpack("<H", data):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return h


def _hash_embedding(text: str) -> list[float]:
    vec = zero_vector()
    # Earlier tokens weigh more than later ones.
    for i, token in enumerate(text.lower().split()):
        vec[abs(string_hash(token)) % EMBEDDING_DIM] += 1.0 / (i + 1)

    norm = math.sqrt(sum(x * x for x in vec))
    if norm > 0:
        vec = [x / norm for x in vec]
    return vec


def generate_embedding(text: str) -> list[float]:
    """Embed *text* as a unit-length ``EMBEDDING_DIM`` vector.

    Never raises: on any failure the zero vector is returned and the error is
    logged.  Empty text also yields the zero vector.
    """
    try:
        return _hash_embedding(text)
    except Exception:
        logger.exception("Embedding generation failed; returning zero vector")
        return zero_vector()


def generate_post_embedding(title: str, description: str) -> list[float]:
    """Embed a post from its title and description only."""
    return generate_embedding(f"{title} {description}".strip())


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Returns exactly ``0.0`` when the lengths differ or either vector has zero
    norm.
    """
    if len(a) != len(b):
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
