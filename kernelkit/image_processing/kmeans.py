"""K-Means clustering over any indexable collection of vectors.

AIDEV-NOTE: Anything exposing ``length``, ``dimension_count`` and
``get(index, dimension)`` can be clustered (see the Samples protocol). An
optional ``to_matrix()`` method lets large inputs such as rasters hand over
their (length, dimension_count) array directly instead of being read one
value at a time.

The run is deterministic apart from the initial centroid draw, which uses a
numpy Generator seeded with ``random_state`` (same idea as scikit-learn's
parameter of that name).
"""

import logging
from dataclasses import replace
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from ..errors import ConfigurationError, EmptyClusterError, InsufficientSamplesError
from ..models import ClusterAssignment, KMeansOptions

logger = logging.getLogger(__name__)

# Consecutive unchanged iterations tolerated before stopping is this + 1
STABLE_ITERATIONS = 2


@runtime_checkable
class Samples(Protocol):
    """Input capability for K-Means."""

    @property
    def length(self) -> int: ...

    @property
    def dimension_count(self) -> int: ...

    def get(self, index: int, dimension: int) -> float: ...


class ArraySamples:
    """Samples backed by an (N, D) array, or an (N,) array for 1-D data."""

    def __init__(self, data: "NDArray | list"):
        matrix = np.array(data, dtype=np.float64)
        if matrix.ndim == 1:
            matrix = matrix.reshape(-1, 1)
        if matrix.ndim != 2 or matrix.shape[0] == 0 or matrix.shape[1] == 0:
            raise ConfigurationError(
                f"Samples should form a non-empty (N, D) array, got shape {matrix.shape}"
            )
        self._matrix = matrix

    @property
    def length(self) -> int:
        return self._matrix.shape[0]

    @property
    def dimension_count(self) -> int:
        return self._matrix.shape[1]

    def get(self, index: int, dimension: int) -> float:
        return float(self._matrix[index, dimension])

    def to_matrix(self) -> NDArray[np.float64]:
        return self._matrix


def sample_matrix(samples: Samples) -> NDArray[np.float64]:
    """Read samples into a (length, dimension_count) float array.

    Raises:
        ConfigurationError: If there are no samples, no dimensions, the
            matrix shape disagrees with the declared sizes or a value is not
            finite
    """
    length, dimensions = samples.length, samples.dimension_count
    if length < 1 or dimensions < 1:
        raise ConfigurationError(
            f"Need at least one sample and one dimension, got {length}x{dimensions}"
        )

    to_matrix = getattr(samples, "to_matrix", None)
    if callable(to_matrix):
        matrix = np.asarray(to_matrix(), dtype=np.float64)
    else:
        matrix = np.fromiter(
            (samples.get(i, d) for i in range(length) for d in range(dimensions)),
            dtype=np.float64,
            count=length * dimensions,
        ).reshape(length, dimensions)

    if matrix.shape != (length, dimensions):
        raise ConfigurationError(
            f"Samples report {length}x{dimensions} values but provide {matrix.shape}"
        )
    if not np.all(np.isfinite(matrix)):
        raise ConfigurationError("Samples must be finite numbers")
    return matrix


class KMeans:
    """K-Means clustering.

    Args:
        options: Cluster count, iteration cap and seed, defaults if None
    """

    def __init__(self, options: KMeansOptions | None = None):
        self._options = options or KMeansOptions()

    @property
    def options(self) -> KMeansOptions:
        return self._options

    def set_options(self, **changes) -> KMeansOptions:
        """Replace selected options; the old options stay if validation fails."""
        self._options = replace(self._options, **changes)
        return self._options

    def run(self, samples: Samples) -> ClusterAssignment:
        """Cluster ``samples``.

        Every sample starts in cluster 0. Each iteration assigns samples to
        the closest centroid (Euclidean distance, ties go to the lowest
        index) and moves every centroid to the mean of its members. The run
        stops once assignments or centroids have been exactly unchanged for
        more than two consecutive iterations, or once ``max_iterations``
        (when nonzero) is exceeded.

        Returns:
            ClusterAssignment with labels, centroids and iteration count

        Raises:
            InsufficientSamplesError: If fewer distinct sample values exist
                than clusters
            EmptyClusterError: If a centroid loses all of its members
        """
        data = sample_matrix(samples)
        cluster_count = self._options.cluster_count
        max_iterations = self._options.max_iterations
        rng = np.random.default_rng(self._options.random_state)

        centroids = initial_centroids(data, cluster_count, rng)
        labels = np.zeros(data.shape[0], dtype=np.intp)

        iterations = 0
        clusters_unchanged_for = 0
        centroids_unchanged_for = 0

        while True:
            new_labels = np.argmin(_distances(data, centroids), axis=1)
            if np.array_equal(new_labels, labels):
                clusters_unchanged_for += 1
            else:
                clusters_unchanged_for = 0
            labels = new_labels

            new_centroids = _cluster_means(data, labels, cluster_count, iterations + 1)
            if np.array_equal(new_centroids, centroids):
                centroids_unchanged_for += 1
            else:
                centroids_unchanged_for = 0
            centroids = new_centroids

            iterations += 1
            if centroids_unchanged_for > STABLE_ITERATIONS:
                reason = "centroids stable"
                break
            if clusters_unchanged_for > STABLE_ITERATIONS:
                reason = "assignments stable"
                break
            if max_iterations != 0 and iterations > max_iterations:
                reason = "iteration limit"
                break

        logger.debug(
            "K-Means finished after %d iterations (%s), %d samples, %d clusters",
            iterations,
            reason,
            data.shape[0],
            cluster_count,
        )
        return ClusterAssignment(labels=labels, centroids=centroids, iterations=iterations)


def initial_centroids(
    data: NDArray[np.float64], cluster_count: int, rng: np.random.Generator
) -> NDArray[np.float64]:
    """Draw ``cluster_count`` random samples with pairwise distinct values.

    A draw whose value equals an already chosen centroid in every dimension
    is rejected and drawn again.

    Raises:
        InsufficientSamplesError: If the data holds fewer distinct values
            than ``cluster_count``
    """
    distinct_count = np.unique(data, axis=0).shape[0]
    if distinct_count < cluster_count:
        raise InsufficientSamplesError(distinct_count, cluster_count)

    chosen: "list[NDArray[np.float64]]" = []
    while len(chosen) < cluster_count:
        candidate = data[rng.integers(data.shape[0])]
        if any(np.array_equal(candidate, centroid) for centroid in chosen):
            continue
        chosen.append(candidate.copy())
    return np.array(chosen)


def _distances(data: NDArray[np.float64], centroids: NDArray[np.float64]) -> NDArray[np.float64]:
    """(samples, clusters) matrix of Euclidean distances."""
    distances = np.empty((data.shape[0], centroids.shape[0]), dtype=np.float64)
    for idx, centroid in enumerate(centroids):
        distances[:, idx] = np.sqrt(((data - centroid) ** 2).sum(axis=1))
    return distances


def _cluster_means(
    data: NDArray[np.float64],
    labels: NDArray[np.intp],
    cluster_count: int,
    iteration: int,
) -> NDArray[np.float64]:
    counts = np.bincount(labels, minlength=cluster_count)
    empty = np.flatnonzero(counts == 0)
    if empty.size:
        raise EmptyClusterError(int(empty[0]), iteration)

    sums = np.zeros((cluster_count, data.shape[1]), dtype=np.float64)
    np.add.at(sums, labels, data)
    return sums / counts[:, np.newaxis]
