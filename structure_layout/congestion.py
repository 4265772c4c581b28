"""
Congestion Module
=================

Pairwise closeness score of unbonded atoms, the objective minimised by the
layout refiner.

Every unbonded pair (i, j) contributes ``1 / max(d², min_dist²)`` where d
is their distance, so the contribution saturates once atoms come closer
than ``min_dist``. Diagonal and bonded cells hold the sentinel -1 and are
never counted. The running total always equals the sum of the non-sentinel
upper-triangular cells.

Example:
    >>> congestion = Congestion(coords, adjacency, min_dist=0.75)
    >>> congestion.score
    >>> coords[moved] += shift
    >>> congestion.update(moved, rigid=True)
"""

import logging
from typing import Iterable, List, Sequence

import numpy as np
from scipy.spatial.distance import pdist, squareform

logger = logging.getLogger(__name__)

BONDED = -1.0


class Congestion:
    """
    Symmetric congestion matrix with an incrementally maintained total.

    The coordinates array is shared with the caller, which moves atoms in
    place and then calls :meth:`update` with the moved indices.

    Attributes:
        coords: (N, 2) coordinates (shared, not copied).
        min_dist: Distance below which contributions saturate.
        score: Running total of all unbonded contributions.
    """

    def __init__(
        self,
        coords: np.ndarray,
        adjacency: Sequence[Sequence[int]],
        min_dist: float = 0.75,
    ):
        self.coords = coords
        self.min_dist = min_dist
        self._min_dist_sq = min_dist * min_dist
        n = len(coords)
        self._bonded = np.zeros((n, n), dtype=bool)
        np.fill_diagonal(self._bonded, True)
        for u, neighbors in enumerate(adjacency):
            for v in neighbors:
                self._bonded[u, v] = True
                self._bonded[v, u] = True
        self.matrix = np.zeros((n, n))
        self.score = 0.0
        self.full()

    def __len__(self) -> int:
        return len(self.matrix)

    def _contributions(self, dist_sq: np.ndarray) -> np.ndarray:
        return 1.0 / np.maximum(dist_sq, self._min_dist_sq)

    def full(self) -> float:
        """Recompute every cell and the total from scratch."""
        n = len(self.coords)
        if n < 2:
            self.matrix = np.full((n, n), BONDED)
            self.score = 0.0
            return self.score
        dist_sq = squareform(pdist(self.coords, "sqeuclidean"))
        matrix = self._contributions(dist_sq)
        matrix[self._bonded] = BONDED
        self.matrix = matrix
        self.score = float(np.triu(np.where(self._bonded, 0.0, matrix), 1).sum())
        return self.score

    def update(self, moved: Iterable[int], rigid: bool = False) -> float:
        """
        Refresh the cells touching the moved atoms.

        Args:
            moved: Indices of atoms whose coordinates changed.
            rigid: The moved atoms were transformed together (rotation,
                reflection or translation), so distances between two moved
                atoms did not change and their cells are kept.

        Returns:
            The new total score.
        """
        idxs: List[int] = sorted(set(int(i) for i in moved))
        if not idxs:
            return self.score
        n = len(self.coords)
        in_moved = np.zeros(n, dtype=bool)
        in_moved[idxs] = True
        for i in idxs:
            diff = self.coords - self.coords[i]
            dist_sq = np.einsum("ij,ij->i", diff, diff)
            fresh = self._contributions(dist_sq)
            targets = ~self._bonded[i]
            if rigid:
                targets &= ~in_moved
            else:
                # pairs inside the moved set are visited from both ends
                targets &= ~(in_moved & (np.arange(n) < i))
            old = self.matrix[i, targets]
            new = fresh[targets]
            self.score += float(new.sum() - old.sum())
            self.matrix[i, targets] = new
            self.matrix[targets, i] = new
        return self.score

    def contribution(self, i: int, j: int) -> float:
        """Cell value for a pair, -1 for bonded or identical atoms."""
        return float(self.matrix[i, j])

    def total(self) -> float:
        return self.score

    def recomputed_total(self) -> float:
        """Sum of the non-sentinel upper-triangular cells."""
        upper = np.triu(self.matrix, 1)
        return float(upper[upper > 0].sum())
