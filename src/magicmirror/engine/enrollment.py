"""Enrollment: turn one capture session into a canonical embedding."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from magicmirror.engine.errors import InsufficientSamples, MissingEmbedding
from magicmirror.engine.validation import EMBEDDING_DIM, MIN_ENROLLMENT_SAMPLES, validate_embedding

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrollmentSample:
    """One capture from a registration session.

    ``embedding`` is None when no face was detected in the photo.
    """

    embedding: Sequence[float] | NDArray[np.float64] | None
    face_detected: bool = True
    label: str | None = None
    captured_at: datetime | None = None

    @property
    def is_valid(self) -> bool:
        return self.face_detected and self.embedding is not None


@dataclass(frozen=True)
class EnrollmentResult:
    """Canonical embedding plus how many samples went into it."""

    embedding: NDArray[np.float64] = field(repr=False)
    sample_count: int

    def to_list(self) -> list[float]:
        return [float(x) for x in self.embedding]


def aggregate_samples(
    samples: Sequence[EnrollmentSample],
    *,
    dim: int = EMBEDDING_DIM,
    min_samples: int = MIN_ENROLLMENT_SAMPLES,
) -> EnrollmentResult:
    """Average the valid samples of a capture session into one embedding.

    Samples without a face are dropped first. The remaining embeddings must
    all have ``dim`` coordinates; the result is their coordinate-wise mean.
    Each vector is scaled by ``1/n`` before it is added, in input order, so
    repeated runs are bit-identical and large finite inputs cannot overflow
    the running sum.

    Raises:
        InsufficientSamples: Fewer than ``min_samples`` valid samples.
        DimensionMismatch: A valid sample has the wrong length.
        MissingEmbedding: A valid sample holds something other than numbers,
            or the averaged embedding is not finite.
    """
    valid = [sample for sample in samples if sample.is_valid]
    if len(valid) < min_samples:
        raise InsufficientSamples(actual=len(valid), required=min_samples)

    vectors = [validate_embedding(sample.embedding, dim) for sample in valid]

    count = len(vectors)
    mean = np.zeros(dim, dtype=np.float64)
    for vector in vectors:
        mean += vector / count
    if not np.all(np.isfinite(mean)):
        raise MissingEmbedding("aggregated embedding is not finite")

    logger.debug("Aggregated %d of %d samples", count, len(samples))
    return EnrollmentResult(embedding=mean, sample_count=count)
