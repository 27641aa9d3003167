"""Euclidean distance between face embeddings."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from magicmirror.engine.errors import DimensionMismatch
from magicmirror.engine.validation import as_vector

if TYPE_CHECKING:
    from numpy.typing import NDArray


def vector_distance(left: NDArray[np.float64], right: NDArray[np.float64]) -> float:
    """L2 distance between two already validated vectors of equal length."""
    if left.shape != right.shape:
        raise DimensionMismatch(expected=left.shape[0], actual=right.shape[0])
    diff = left - right
    return math.sqrt(float(np.dot(diff, diff)))


def euclidean_distance(a: object, b: object) -> float:
    """Return the L2 distance between two equal-length embeddings.

    Lower means more similar. ``distance(a, b) == distance(b, a)`` and the
    result is 0.0 only for coordinate-wise identical inputs.

    Raises:
        MissingEmbedding: If either input is not a sequence of numbers.
        DimensionMismatch: If the inputs differ in length.
    """
    return vector_distance(as_vector(a), as_vector(b))
