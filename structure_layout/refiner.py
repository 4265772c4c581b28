"""
Layout Refiner
==============

Iterative overlap resolution for an initial 2D layout.

The refiner looks for congested pairs of unbonded atoms and tries, in
order, three families of moves along the shortest path joining each pair:

1. rotate: reflect one side of an acyclic single bond across the bond axis
2. invert: flip substituents at ring fusion points or off macrocycles
3. bend or stretch: rotate one side of a bond by a small angle, or
   lengthen the bond

A move is kept only when it lowers the total congestion score
(:class:`~structure_layout.congestion.Congestion`). No global optimum is
sought; the loop stops after a fixed number of rounds or as soon as a round
brings no improvement.

Usage:
    >>> refiner = LayoutRefiner(mol, state)
    >>> refiner.refine()
"""

import functools
import logging
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional, Sequence, Set

import numpy as np
from scipy.sparse.csgraph import shortest_path

from structure_layout.atom_placer import AtomPlacer, adjacency_matrix, path_from_predecessors
from structure_layout.congestion import Congestion
from structure_layout.geometry import normalize, reflect, rotate, segments_cross
from structure_layout.layout_state import LayoutState
from structure_layout.molecule import BondOrder, Molecule
from structure_layout.parameters import RefinerParameters

logger = logging.getLogger(__name__)


@dataclass
class AtomPair:
    """
    Congested pair of atoms and the path joining them.

    Attributes:
        fst: Lower atom index of the pair.
        snd: Higher atom index of the pair.
        seq_at: Inner path atoms, from the middle outwards.
        bnd_at: Path bonds, from the middle outwards.
        bnd_code: Bit 0 is the parity of the bond count, bit i + 1 is set
            when ``bnd_at[i]`` is a ring bond.
        attempt: Bend/stretch attempt number, scales the step size.
    """

    fst: int
    snd: int
    seq_at: List[int]
    bnd_at: List[int]
    bnd_code: int = 0
    attempt: int = 1


class _Candidate(NamedTuple):
    score: float
    moved: List[int]
    points: Optional[np.ndarray]


def _percent_improvement(prev: float, curr: float) -> float:
    if prev == 0:
        return 0.0
    return (prev - curr) / prev


class LayoutRefiner:
    """
    Overlap-resolution refiner working on a placed layout.

    Args:
        mol: The laid out molecule.
        state: Layout state with a point for every atom. The refiner moves
            atoms in ``state.coords`` in place.
        params: Thresholds and step sizes, derived from the default bond
            length when omitted.
    """

    def __init__(
        self,
        mol: Molecule,
        state: LayoutState,
        params: Optional[RefinerParameters] = None,
    ):
        self.mol = mol
        self.state = state
        self.params = params or RefinerParameters()
        self.coords = state.coords
        self.adjacency = mol.adjacency_list()
        self.bond_map = mol.bond_map()
        self.bond_in_ring = np.array([b.in_ring for b in mol.bonds], dtype=bool)
        self.congestion: Optional[Congestion] = None
        self.ring_system = np.zeros(mol.num_atoms, dtype=int)
        self.probably_symmetric: Set[int] = set()
        self._predecessors: Dict[int, np.ndarray] = {}
        self._adj_matrix = None

    def _reset(self) -> None:
        if not self.state.priority.any():
            AtomPlacer(self.mol, self.state, self.params.bond_length).prioritise()
        self.congestion = Congestion(self.coords, self.adjacency, self.params.min_dist)
        self.ring_system = self._ring_systems()
        self.probably_symmetric = set()
        self._predecessors = {}
        self._adj_matrix = adjacency_matrix(self.mol)

    def _ring_systems(self) -> np.ndarray:
        """Number ring systems from 1 by flood fill over ring bonds; 0 is acyclic."""
        n = self.mol.num_atoms
        ring_system = np.zeros(n, dtype=int)
        current = 0
        for root in range(n):
            if ring_system[root] or not self._atom_in_ring(root):
                continue
            current += 1
            ring_system[root] = current
            stack = [root]
            while stack:
                u = stack.pop()
                for w in self.adjacency[u]:
                    if ring_system[w] == 0 and self.bond_in_ring[self.bond_map[(u, w)]]:
                        ring_system[w] = current
                        stack.append(w)
        return ring_system

    def _atom_in_ring(self, atom: int) -> bool:
        return any(self.bond_in_ring[self.bond_map[(atom, w)]] for w in self.adjacency[atom])

    def _shortest_path(self, source: int, target: int) -> List[int]:
        pred = self._predecessors.get(source)
        if pred is None:
            _, pred = shortest_path(
                self._adj_matrix, indices=source, unweighted=True, return_predecessors=True
            )
            self._predecessors[source] = pred
        return path_from_predecessors(pred, source, target)

    def _have_crossing_bonds(self, u: int, v: int) -> bool:
        coords = self.coords
        for u1 in self.adjacency[u]:
            if u1 == v:
                continue
            for v1 in self.adjacency[v]:
                if v1 == u or v1 == u1:
                    continue
                if segments_cross(coords[u], coords[u1], coords[v], coords[v1]):
                    return True
        return False

    def _make_pair(self, fst: int, snd: int, path: Sequence[int]) -> AtomPair:
        """Order the path atoms and bonds from the middle outwards."""
        bmap = self.bond_map
        n = len(path)
        seq: List[int] = []
        bonds: List[int] = []
        i = (n - 1) // 2
        j = i + 1
        if n & 1:
            seq.append(path[i])
            i -= 1
            bonds.append(bmap[(path[j], path[j - 1])])
        bonds.append(bmap[(path[i], path[i + 1])])
        while i > 0 and j < n - 1:
            seq.append(path[i])
            i -= 1
            seq.append(path[j])
            j += 1
            bonds.append(bmap[(path[i], path[i + 1])])
            bonds.append(bmap[(path[j], path[j - 1])])

        code = len(bonds) & 0x1
        for k, bond in enumerate(bonds):
            if self.bond_in_ring[bond]:
                code |= 0x1 << (k + 1)
        return AtomPair(fst, snd, seq, bonds, code)

    def _compare_pairs(self, a: AtomPair, b: AtomPair) -> int:
        priority = self.state.priority
        a1, a2 = priority[a.fst], priority[a.snd]
        b1, b2 = priority[b.fst], priority[b.snd]
        amin, amax = (a1, a2) if a1 < a2 else (a2, a1)
        # the second pair's bounds are taken from the first pair's values
        bmin, bmax = (a1, a2) if b1 < b2 else (a2, a1)
        if amin != bmin:
            return -1 if amin < bmin else 1
        if amax != bmax:
            return -1 if amax < bmax else 1
        return 0

    def find_congested_pairs(self) -> List[AtomPair]:
        """
        Unbonded pairs that are too close or whose bonds cross.

        Pairs inside one ring system are ignored and only the first pair
        between two ring systems is kept.
        """
        params = self.params
        congestion = self.congestion
        ring_system = self.ring_system
        priority = self.state.priority
        pairs: List[AtomPair] = []
        seen_systems = set()
        lowest = min(params.min_score, params.crossing_score)
        upper = np.triu(congestion.matrix, 1)
        for u, v in np.argwhere(upper >= lowest):
            u, v = int(u), int(v)
            contribution = congestion.contribution(u, v)
            if ring_system[u] > 0 and ring_system[u] == ring_system[v]:
                continue
            if contribution < params.min_score and not (
                contribution >= params.crossing_score and self._have_crossing_bonds(u, v)
            ):
                continue
            # pair in index order, path walked from the less central atom
            if priority[u] > priority[v]:
                path = self._shortest_path(u, v)
            else:
                path = self._shortest_path(v, u)
            if len(path) < 3:
                continue
            if ring_system[u] > 0 and ring_system[v] > 0:
                key = tuple(sorted((int(ring_system[u]), int(ring_system[v]))))
                if key in seen_systems:
                    continue
                seen_systems.add(key)
            pairs.append(self._make_pair(u, v, path))
        pairs.sort(key=functools.cmp_to_key(self._compare_pairs))
        return pairs

    def _visit(self, parent: int, start: int, include_start: bool = True) -> List[int]:
        """Atoms reachable from ``start`` without passing through ``parent``."""
        state = self.state
        state.reset_visited()
        state.visited[parent] = True
        state.visited[start] = True
        result = [start] if include_start else []
        stack = [start]
        while stack:
            u = stack.pop()
            for w in self.adjacency[u]:
                if not state.visited[w]:
                    state.visited[w] = True
                    result.append(w)
                    stack.append(w)
        return result

    def _restore(self, moved: Sequence[int], backup: np.ndarray, score: float) -> None:
        self.coords[moved] = backup
        self.congestion.update(moved, rigid=True)
        self.congestion.score = score

    def _rotate(self, pairs: Sequence[AtomPair]) -> None:
        params = self.params
        tried: Set[int] = set()
        for pair in pairs:
            self._rotate_pair(pair, tried, params)

    def _rotate_pair(self, pair: AtomPair, tried: Set[int], params: RefinerParameters) -> bool:
        congestion = self.congestion
        priority = self.state.priority
        for bond_idx in pair.bnd_at:
            if bond_idx in tried:
                continue
            tried.add(bond_idx)
            if bond_idx in self.probably_symmetric:
                continue
            bond = self.mol.bonds[bond_idx]
            if bond.order is not BondOrder.SINGLE or self.bond_in_ring[bond_idx]:
                continue
            beg, end = bond.begin, bond.end
            if len(self.adjacency[beg]) == 1 or len(self.adjacency[end]) == 1:
                continue
            if priority[beg] < priority[end]:
                moved = self._visit(beg, end, include_start=False)
            else:
                moved = self._visit(end, beg, include_start=False)
            if not moved:
                continue

            min_score = congestion.score
            backup = self.coords[moved].copy()
            reflect(self.coords, moved, self.coords[beg].copy(), self.coords[end].copy())
            congestion.update(moved, rigid=True)
            delta = min_score - congestion.score

            if delta > params.rotate_delta_threshold or (
                delta > 1 and congestion.contribution(pair.fst, pair.snd) < params.min_score
            ):
                logger.debug("Reflected bond %d, score %.3f", bond_idx, congestion.score)
                return True
            if abs(delta) < params.symmetric_delta:
                self.probably_symmetric.add(bond_idx)
            self._restore(moved, backup, min_score)
        return False

    def _fusion_point_inversion(self, pair: AtomPair) -> bool:
        bonds = pair.bnd_at
        if len(bonds) != 3:
            return False
        if not self.bond_in_ring[bonds[0]] or self.bond_in_ring[bonds[1]] or self.bond_in_ring[bonds[2]]:
            return False
        if len(self.adjacency[pair.fst]) > 1 or len(self.adjacency[pair.snd]) > 1:
            return False
        # hydrogens are moved in preference
        atom = pair.fst if self.mol.atoms[pair.fst].atomic_number == 1 else pair.snd
        axis = self.mol.bonds[bonds[0]]
        reflect(self.coords, [atom], self.coords[axis.begin].copy(), self.coords[axis.end].copy())
        self.congestion.update([atom])
        return True

    def _macrocycle_inversion(self, pair: AtomPair) -> bool:
        congestion = self.congestion
        for v in pair.seq_at:
            if not self._atom_in_ring(v) or len(self.adjacency[v]) == 2:
                continue
            if not self.state.macrocycle_hint[v]:
                continue
            cyclic, acyclic = [], []
            for w in self.adjacency[v]:
                (cyclic if self.bond_in_ring[self.bond_map[(v, w)]] else acyclic).append(w)
            if len(cyclic) > 2:
                continue
            for w in acyclic:
                moved = self._visit(v, w)
                a = self.coords[v].copy()
                perp = normalize(self.coords[w] - a)
                score = congestion.score
                backup = self.coords[moved].copy()
                reflect(
                    self.coords,
                    moved,
                    np.array([a[0] - perp[1], a[1] + perp[0]]),
                    np.array([a[0] + perp[1], a[1] - perp[0]]),
                )
                congestion.update(moved, rigid=True)
                if _percent_improvement(score, congestion.score) >= self.params.improvement_pct_threshold:
                    return True
                self._restore(moved, backup, score)
        return False

    def _invert(self, pairs: Sequence[AtomPair]) -> None:
        for pair in pairs:
            if self.congestion.contribution(pair.fst, pair.snd) < self.params.min_score:
                continue
            if not self._fusion_point_inversion(pair):
                self._macrocycle_inversion(pair)

    def _common_atom(self, bond_a: int, bond_b: int) -> Optional[int]:
        a = self.mol.bonds[bond_a]
        b = self.mol.bonds[bond_b]
        for atom in a.atoms:
            if b.contains(atom):
                return atom
        return None

    def _bend(self, pair: AtomPair) -> _Candidate:
        params = self.params
        congestion = self.congestion
        coords = self.coords
        score = congestion.score
        best = _Candidate(score, [], None)
        threshold = params.improvement_pct_threshold

        if len(pair.bnd_at) > 4 and (pair.bnd_code & 0x1F) == 0x6:
            # two substituents on either side of a ring path bend apart
            bond_a, bond_b = pair.bnd_at[2], pair.bnd_at[3]
            pivot_a = self._common_atom(bond_a, pair.bnd_at[1])
            pivot_b = self._common_atom(bond_b, pair.bnd_at[0])
            if pivot_a is None or pivot_b is None:
                return _Candidate(float("inf"), [], None)
            side_a = self._visit(pivot_a, self.mol.bonds[bond_a].other(pivot_a))
            side_b = [
                a
                for a in self._visit(pivot_b, self.mol.bonds[bond_b].other(pivot_b))
                if a not in side_a
            ]
            moved = side_a + side_b
            backup = coords[moved].copy()
            for sign in (1, -1):
                rotate(coords, side_a, coords[pivot_a].copy(), -sign * params.bend_step)
                rotate(coords, side_b, coords[pivot_b].copy(), sign * params.bend_step)
                congestion.update(moved)
                current = congestion.score
                if _percent_improvement(score, current) >= threshold and current < best.score:
                    best = _Candidate(current, list(moved), coords[moved].copy())
                coords[moved] = backup
                congestion.update(moved)
                congestion.score = score
            return best

        priority = self.state.priority
        for bond_idx in pair.bnd_at:
            if self.bond_in_ring[bond_idx]:
                continue
            bond = self.mol.bonds[bond_idx]
            if priority[bond.begin] < priority[bond.end]:
                pivot, moved = bond.begin, self._visit(bond.begin, bond.end)
            else:
                pivot, moved = bond.end, self._visit(bond.end, bond.begin)
            backup = coords[moved].copy()
            for sign in (1, -1):
                rotate(coords, moved, coords[pivot].copy(), -sign * pair.attempt * params.bend_step)
                congestion.update(moved, rigid=True)
                current = congestion.score
                if _percent_improvement(score, current) >= threshold and current < best.score:
                    best = _Candidate(current, list(moved), coords[moved].copy())
                self._restore(moved, backup, score)
        return best

    def _stretch(self, pair: AtomPair) -> _Candidate:
        params = self.params
        congestion = self.congestion
        coords = self.coords
        score = congestion.score
        best = _Candidate(score, [], None)
        priority = self.state.priority
        amount = pair.attempt * params.stretch_step
        for bond_idx in pair.bnd_at:
            if self.bond_in_ring[bond_idx]:
                continue
            bond = self.mol.bonds[bond_idx]
            if priority[bond.begin] < priority[bond.end]:
                fixed, free = bond.begin, bond.end
            else:
                fixed, free = bond.end, bond.begin
            vector = coords[free] - coords[fixed]
            if np.linalg.norm(vector) + amount > params.max_bond_length:
                continue
            moved = self._visit(fixed, free)
            backup = coords[moved].copy()
            coords[moved] = coords[moved] + normalize(vector) * amount
            congestion.update(moved, rigid=True)
            current = congestion.score
            if _percent_improvement(score, current) >= params.improvement_pct_threshold and current < best.score:
                best = _Candidate(current, list(moved), coords[moved].copy())
            self._restore(moved, backup, score)
        return best

    def _apply(self, candidate: _Candidate) -> None:
        self.coords[candidate.moved] = candidate.points
        self.congestion.update(candidate.moved)

    def _bend_or_stretch(self, pairs: Sequence[AtomPair]) -> None:
        for pair in pairs:
            score = self.congestion.score
            for attempt in range(1, self.params.max_attempts + 1):
                pair.attempt = attempt
                bend = self._bend(pair)
                stretch = self._stretch(pair)
                if bend.score < stretch.score and bend.score < score and bend.moved:
                    self._apply(bend)
                    break
                if bend.score > stretch.score and stretch.score < score and stretch.moved:
                    self._apply(stretch)
                    break

    def refine(self) -> float:
        """
        Run the refinement rounds.

        Returns:
            The final congestion score.
        """
        if self.mol.num_atoms < 3:
            return 0.0
        self._reset()
        congestion = self.congestion
        logger.debug("Refining layout, initial congestion %.3f", congestion.score)
        for _ in range(self.params.max_iterations):
            pairs = self.find_congested_pairs()
            if not pairs:
                break
            score = congestion.score
            self._rotate(pairs)
            if congestion.score < score:
                continue
            self._invert(pairs)
            if congestion.score < score:
                continue
            self._bend_or_stretch(pairs)
            if congestion.score < score:
                continue
            break
        logger.debug("Refinement finished, congestion %.3f", congestion.score)
        self.state.write_back(self.mol)
        return congestion.score
