"""
Atom Placer
===========

Placement of acyclic atoms: zigzag chains, substituents distributed around
an already placed atom, and the graph helpers that pick which chain to lay
out next.

All methods read and write the per-run :class:`LayoutState`; nothing is
stored on the molecule itself.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import shortest_path

from structure_layout.geometry import center, get_angle, normalize
from structure_layout.layout_state import LayoutState
from structure_layout.molecule import BondOrder, Molecule

logger = logging.getLogger(__name__)

_TIE_TOLERANCE = 1e-9


def adjacency_matrix(mol: Molecule) -> csr_matrix:
    """Sparse unweighted adjacency matrix of the molecule."""
    n = mol.num_atoms
    if not mol.bonds:
        return csr_matrix((n, n))
    rows = [b.begin for b in mol.bonds] + [b.end for b in mol.bonds]
    cols = [b.end for b in mol.bonds] + [b.begin for b in mol.bonds]
    return csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))


def path_from_predecessors(predecessors: np.ndarray, source: int, target: int) -> List[int]:
    """Walk a scipy predecessor row back from ``target`` to ``source``."""
    path = [target]
    current = target
    while current != source:
        current = int(predecessors[current])
        if current < 0:
            return []
        path.append(current)
    path.reverse()
    return path


class AtomPlacer:
    """
    Places chains and substituents for one layout run.

    Args:
        mol: The molecule being laid out.
        state: Per-run placement record.
        bond_length: Nominal bond length.
    """

    def __init__(self, mol: Molecule, state: LayoutState, bond_length: float = 1.5):
        self.mol = mol
        self.state = state
        self.bond_length = bond_length
        self.adjacency = mol.adjacency_list()
        self._bond_map = mol.bond_map()

    def is_colinear(self, atom: int) -> bool:
        """True for sp centres: a triple bond or two cumulated double bonds."""
        num_double = 0
        for w in self.adjacency[atom]:
            order = self.mol.bonds[self._bond_map[(atom, w)]].order
            if order is BondOrder.TRIPLE:
                return True
            if order is BondOrder.DOUBLE:
                num_double += 1
        return num_double == 2

    def partition_partners(self, atom: int):
        """Neighbours of ``atom`` split into (unplaced, placed)."""
        unplaced, placed = [], []
        for w in self.adjacency[atom]:
            (placed if self.state.placed[w] else unplaced).append(w)
        return unplaced, placed

    def populate_polygon_corners(
        self,
        atoms: Sequence[int],
        centre: np.ndarray,
        start_angle: float,
        add_angle: float,
        radius: float,
    ) -> None:
        """
        Put ``atoms`` on a circle, each ``add_angle`` further than the last.

        The first atom goes to ``start_angle + add_angle``. All atoms are
        marked placed.
        """
        theta = start_angle
        for atom in atoms:
            theta += add_angle
            point = (
                centre[0] + math.cos(theta) * radius,
                centre[1] + math.sin(theta) * radius,
            )
            self.state.place(atom, point)

    def distribute_partners(
        self,
        atom: int,
        placed_neighbors: Sequence[int],
        shared_center: np.ndarray,
        unplaced_neighbors: Sequence[int],
    ) -> None:
        """
        Spread the unplaced neighbours of a placed atom.

        Args:
            atom: The placed atom.
            placed_neighbors: Its neighbours that already have positions.
            shared_center: Centre of the structure the atom hangs off; new
                bonds point away from it.
            unplaced_neighbors: Neighbours to position.
        """
        if not unplaced_neighbors:
            return
        coords = self.state.coords
        pos = coords[atom]
        length = self.bond_length
        k = len(unplaced_neighbors)

        if not placed_neighbors:
            self.populate_polygon_corners(
                unplaced_neighbors, pos, 0.0, 2 * math.pi / k, length
            )
            return

        if len(placed_neighbors) == 1:
            placed = coords[placed_neighbors[0]]
            start = get_angle(placed[0] - pos[0], placed[1] - pos[1])
            if k == 1:
                if self.is_colinear(atom):
                    angle = start + math.pi
                else:
                    angle = self._farther_angle(
                        pos, start + 2 * math.pi / 3, start - 2 * math.pi / 3, shared_center
                    )
                self.populate_polygon_corners(unplaced_neighbors, pos, angle, 0.0, length)
                return
            self.populate_polygon_corners(
                unplaced_neighbors, pos, start, 2 * math.pi / (k + 1), length
            )
            return

        angles = sorted(
            get_angle(coords[n][0] - pos[0], coords[n][1] - pos[1])
            for n in placed_neighbors
        )
        away = pos - shared_center
        gaps = []
        for i, angle in enumerate(angles):
            nxt = angles[(i + 1) % len(angles)]
            width = (nxt - angle) % (2 * math.pi)
            if width < _TIE_TOLERANCE:
                width = 2 * math.pi if len(set(angles)) == 1 else 0.0
            gaps.append((angle, width))

        chosen = None
        if np.linalg.norm(away) > 0.001:
            target = get_angle(away[0], away[1])
            for angle, width in gaps:
                if width > 0 and (target - angle) % (2 * math.pi) < width:
                    chosen = (angle, width)
                    break
        if chosen is None:
            chosen = max(gaps, key=lambda gap: gap[1])
        start, width = chosen
        self.populate_polygon_corners(
            unplaced_neighbors, pos, start, width / (k + 1), length
        )

    def _farther_angle(
        self, pos: np.ndarray, angle1: float, angle2: float, reference: np.ndarray
    ) -> float:
        p1 = pos + (math.cos(angle1), math.sin(angle1))
        p2 = pos + (math.cos(angle2), math.sin(angle2))
        d1 = float(np.linalg.norm(p1 - reference))
        d2 = float(np.linalg.norm(p2 - reference))
        if abs(d1 - d2) < _TIE_TOLERANCE:
            return angle1 if p1[0] >= p2[0] else angle2
        return angle1 if d1 > d2 else angle2

    def next_bond_vector(
        self, atom: int, previous: int, distance_measure: np.ndarray
    ) -> np.ndarray:
        """
        Unit vector for the bond following ``previous`` → ``atom``.

        The two candidates at ±120° from the incoming bond are compared and
        the one farther from ``distance_measure`` wins, which gives a trans
        zigzag. Colinear centres continue straight.
        """
        coords = self.state.coords
        pos = coords[atom]
        prev = coords[previous]
        angle = get_angle(prev[0] - pos[0], prev[1] - pos[1])
        if self.is_colinear(atom):
            chosen = angle + math.pi
        else:
            chosen = self._farther_angle(
                pos, angle + 2 * math.pi / 3, angle + 4 * math.pi / 3, distance_measure
            )
        return np.array([math.cos(chosen), math.sin(chosen)])

    def place_linear_chain(self, chain: Sequence[int], initial_vector: np.ndarray) -> None:
        """
        Lay out a chain whose first atom is already placed.

        Args:
            chain: Atom indices in chain order, ``chain[0]`` has a position.
            initial_vector: Direction of the first bond.
        """
        coords = self.state.coords
        vector = normalize(np.asarray(initial_vector, dtype=float))
        for f in range(len(chain) - 1):
            atom = chain[f]
            nxt = chain[f + 1]
            self.state.place(nxt, coords[atom] + vector * self.bond_length)
            if f > 0:
                reference = coords[chain[f - 1]]
            else:
                reference = self._attachment_reference(atom, nxt)
            vector = self.next_bond_vector(nxt, atom, reference)

    def _attachment_reference(self, atom: int, nxt: int) -> np.ndarray:
        for w in self.adjacency[atom]:
            if w != nxt and self.state.placed[w]:
                return self.state.coords[w]
        placed = [i for i in self.state.placed_atoms() if i not in (atom, nxt)]
        if placed:
            return center(self.state.coords, placed)
        return center(self.state.coords, [atom, nxt])

    def initial_longest_chain(self) -> List[int]:
        """
        Longest shortest path between two terminal atoms.

        Used to start the layout of acyclic molecules.
        """
        n = self.mol.num_atoms
        if n == 0:
            return []
        dist, pred = shortest_path(
            adjacency_matrix(self.mol), unweighted=True, return_predecessors=True
        )
        best = (-1.0, 0, 0)
        for f in range(n):
            if len(self.adjacency[f]) != 1:
                continue
            for g in range(n):
                d = dist[f, g]
                if np.isfinite(d) and d > best[0]:
                    best = (d, f, g)
        if best[0] < 0:
            return [0]
        _, start, end = best
        return path_from_predecessors(pred[start], start, end)

    def longest_unplaced_chain(self, start: int) -> List[int]:
        """
        Longest path of unplaced atoms leading away from ``start``.

        The breadth-first search does not expand through ring atoms (other
        than ``start``), so a chain may end on the first atom of another
        ring system. Ties prefer paths with the larger degree sum.
        """
        state = self.state
        state.reset_visited()
        state.visited[start] = True
        paths = {start: [start]}
        sphere = [start]
        while sphere:
            next_sphere = []
            for atom in sphere:
                if atom != start and state.in_ring[atom]:
                    continue
                for w in self.adjacency[atom]:
                    if state.visited[w] or state.placed[w]:
                        continue
                    state.visited[w] = True
                    paths[w] = paths[atom] + [w]
                    if len(self.adjacency[w]) > 1:
                        next_sphere.append(w)
            sphere = next_sphere

        best: Optional[List[int]] = None
        best_key = None
        for path in paths.values():
            key = (len(path), sum(len(self.adjacency[a]) for a in path))
            if best_key is None or key > best_key:
                best, best_key = path, key
        return best or [start]

    def prioritise(self) -> np.ndarray:
        """
        Rank atoms by centrality, 1 being the most central.

        Extended connectivity values are relaxed (3 × own value plus the
        neighbours' values) until the number of distinct ranks stops
        changing. Ranks are dense and assigned in descending order of the
        connectivity value.
        """
        n = self.mol.num_atoms
        prev = np.ones(n, dtype=np.int64)
        if n == 0:
            self.state.priority = prev
            return prev
        adj = adjacency_matrix(self.mol)
        num_distinct = 1
        for _ in range(n):
            values = 3 * prev + np.rint(adj.dot(prev)).astype(np.int64)
            distinct = np.unique(values)
            # relax on ranks so the values stay small
            prev = np.searchsorted(distinct, values).astype(np.int64) + 1
            if len(distinct) == num_distinct:
                break
            num_distinct = len(distinct)
        priority = (prev.max() + 1 - prev).astype(int)
        self.state.priority = priority
        return priority

    def all_placed(self) -> bool:
        return self.state.all_placed()
