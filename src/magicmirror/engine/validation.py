"""Input validation gate shared by enrollment and recognition.

Every entry point runs its inputs through here before any arithmetic, so the
engine never coerces or truncates a malformed embedding.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from numbers import Real
from typing import TYPE_CHECKING

import numpy as np

from magicmirror.engine.errors import DimensionMismatch, InvalidThreshold, MissingEmbedding

if TYPE_CHECKING:
    from numpy.typing import NDArray

# face-api.js style descriptors.
EMBEDDING_DIM: int = 128
DEFAULT_THRESHOLD: float = 0.6
MIN_ENROLLMENT_SAMPLES: int = 3


def as_vector(value: object) -> NDArray[np.float64]:
    """Convert a sequence of real numbers into a float64 vector.

    Raises:
        MissingEmbedding: If the value is absent, empty, not a sequence, or
            holds anything other than finite real numbers.
    """
    if value is None:
        raise MissingEmbedding()

    if isinstance(value, np.ndarray):
        if value.ndim != 1 or value.dtype.kind not in "iuf":
            raise MissingEmbedding("embedding must be a flat sequence of numbers")
        items: Sequence[object] = value.tolist()
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        items = value
    else:
        raise MissingEmbedding("embedding must be a sequence of numbers")

    if len(items) == 0:
        raise MissingEmbedding("embedding is empty")

    for item in items:
        if isinstance(item, bool) or not isinstance(item, Real) or not math.isfinite(item):
            raise MissingEmbedding("embedding must contain only finite numbers")

    return np.asarray(items, dtype=np.float64)


def validate_embedding(value: object, dim: int = EMBEDDING_DIM) -> NDArray[np.float64]:
    """Return ``value`` as a vector of exactly ``dim`` numbers."""
    vector = as_vector(value)
    if vector.shape[0] != dim:
        raise DimensionMismatch(expected=dim, actual=vector.shape[0])
    return vector


def validate_threshold(value: object, default: float = DEFAULT_THRESHOLD) -> float:
    """Return a threshold in [0, 1]; ``None`` selects ``default``."""
    if value is None:
        value = default
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value):
        raise InvalidThreshold(value)
    threshold = float(value)
    if not 0.0 <= threshold <= 1.0:
        raise InvalidThreshold(value)
    return threshold
