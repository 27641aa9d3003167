"""Nearest-match recognition against a catalog of enrolled profiles.

The scan is a fold over the catalog with the threshold as the initial best
distance: a candidate only takes over when it is strictly closer, so nothing
at or beyond the threshold can match and the first of several equally close
candidates wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING, NamedTuple

from magicmirror.engine.distance import vector_distance
from magicmirror.engine.enrollment import aggregate_samples
from magicmirror.engine.validation import (
    DEFAULT_THRESHOLD,
    EMBEDDING_DIM,
    MIN_ENROLLMENT_SAMPLES,
    validate_embedding,
    validate_threshold,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    import numpy as np
    from numpy.typing import NDArray

    from magicmirror.engine.enrollment import EnrollmentResult, EnrollmentSample

logger = logging.getLogger(__name__)


class CatalogEntry(NamedTuple):
    """One enrolled profile as seen by the recognizer."""

    profile_id: str
    name: str
    embedding: Sequence[float] | NDArray[np.float64]


@dataclass(frozen=True)
class RecognitionResult:
    """A successful match.

    ``confidence`` is ``1 - distance``. It is a display score, not a
    probability.
    """

    profile_id: str
    name: str
    distance: float

    @property
    def confidence(self) -> float:
        return 1.0 - self.distance


@dataclass(frozen=True)
class PartialMatch:
    """Best candidate of a scan, with its position in the full catalog."""

    distance: float
    index: int | None = None
    entry: CatalogEntry | None = None

    def to_result(self) -> RecognitionResult | None:
        if self.entry is None:
            return None
        return RecognitionResult(
            profile_id=self.entry.profile_id,
            name=self.entry.name,
            distance=self.distance,
        )


def scan_catalog(
    query: NDArray[np.float64],
    catalog: Iterable[CatalogEntry],
    threshold: float,
    *,
    start: int = 0,
) -> PartialMatch:
    """Fold ``catalog`` into its best candidate under ``threshold``.

    ``query`` must already be validated. ``start`` is the catalog index of the
    first entry, so shards of one catalog report comparable positions.
    """
    dim = query.shape[0]

    def step(best: PartialMatch, item: tuple[int, CatalogEntry]) -> PartialMatch:
        index, entry = item
        embedding = validate_embedding(entry.embedding, dim)
        distance = vector_distance(query, embedding)
        if distance < best.distance:
            return PartialMatch(distance=distance, index=index, entry=entry)
        return best

    return reduce(step, enumerate(catalog, start=start), PartialMatch(distance=threshold))


def merge_matches(partials: Iterable[PartialMatch]) -> PartialMatch | None:
    """Combine per-shard results into the result of a single full scan.

    The lowest distance wins; among equal distances the lowest catalog index
    wins. Returns None when no shard found a match.
    """
    winners = [p for p in partials if p.entry is not None and p.index is not None]
    if not winners:
        return None
    return min(winners, key=lambda p: (p.distance, p.index))


def find_best_match(
    query: object,
    catalog: Iterable[CatalogEntry],
    threshold: object = DEFAULT_THRESHOLD,
    *,
    dim: int = EMBEDDING_DIM,
) -> RecognitionResult | None:
    """Return the closest catalog entry strictly under ``threshold``.

    An empty catalog, or one where every candidate is at or beyond the
    threshold, yields None. The catalog is only read.

    Raises:
        InvalidThreshold: ``threshold`` outside [0, 1].
        MissingEmbedding: The query is absent or not numeric.
        DimensionMismatch: The query or a catalog entry is not ``dim`` long.
    """
    limit = validate_threshold(threshold)
    vector = validate_embedding(query, dim)
    return scan_catalog(vector, catalog, limit).to_result()


class Recognizer:
    """Enrollment and recognition bound to one embedding configuration."""

    def __init__(
        self,
        dim: int = EMBEDDING_DIM,
        min_samples: int = MIN_ENROLLMENT_SAMPLES,
        default_threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self.dim = dim
        self.min_samples = min_samples
        self.default_threshold = validate_threshold(default_threshold)

    def enroll(self, samples: Sequence[EnrollmentSample]) -> EnrollmentResult:
        """Aggregate a capture session into a canonical embedding."""
        result = aggregate_samples(samples, dim=self.dim, min_samples=self.min_samples)
        logger.info("Enrolled from %d/%d samples", result.sample_count, len(samples))
        return result

    def check_embedding(self, embedding: object) -> NDArray[np.float64]:
        """Validate a precomputed embedding against the configured dimension."""
        return validate_embedding(embedding, self.dim)

    def recognize(
        self,
        query: object,
        catalog: Iterable[CatalogEntry],
        threshold: float | None = None,
    ) -> RecognitionResult | None:
        """Find the enrolled profile closest to ``query``."""
        limit = validate_threshold(threshold, default=self.default_threshold)
        result = find_best_match(query, catalog, limit, dim=self.dim)
        if result is None:
            logger.info("No match under threshold %.3f", limit)
        else:
            logger.info(
                "Matched %s (distance=%.3f, confidence=%.3f)",
                result.profile_id,
                result.distance,
                result.confidence,
            )
        return result
