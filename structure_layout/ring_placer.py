"""
Ring Placer
===========

Regular-polygon placement of rings and their substituents.

A ring is placed relative to what it shares with already placed rings:

- nothing shared: standalone polygon around a given centre
- one atom (spiro): polygon tangent at the shared atom
- one bond (fused): polygon on the far side of the shared bond
- more atoms (bridged): polygon through the two bridgehead atoms

Usage:
    >>> placer = RingPlacer(mol, state, atom_placer)
    >>> placer.place_ring(ring, shared_atoms, shared_center, ring_center_vector)
"""

import logging
import math
from typing import Dict, List, Sequence

import numpy as np

from structure_layout.atom_placer import AtomPlacer
from structure_layout.geometry import center, get_angle, normalize, vector_angle
from structure_layout.layout_state import LayoutState
from structure_layout.molecule import Molecule
from structure_layout.rings import Ring, connected_rings

logger = logging.getLogger(__name__)

FUSED = 0
BRIDGED = 1
SPIRO = 2

# start angles for standalone rings, other sizes start at 2π/n
START_ANGLES: Dict[int, float] = {
    3: math.pi * 0.1666667,
    4: math.pi * 0.25,
    5: math.pi * 0.3,
    7: math.pi * 0.07,
    8: math.pi * 0.125,
}


def ring_radius(size: int, bond_length: float) -> float:
    """
    Circumradius of a regular polygon with ``size`` sides of ``bond_length``.

    Example:
        >>> round(ring_radius(6, 1.5), 6)
        1.5
    """
    return bond_length / (2 * math.sin(math.pi / size))


def perpendicular(a: np.ndarray, b: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """Vector perpendicular to a-b, flipped to point along ``reference``."""
    vec = np.array([-(a[1] - b[1]), a[0] - b[0]], dtype=float)
    if np.dot(vec, reference) < 0:
        vec = -vec
    return vec


class RingPlacer:
    """
    Places rings of a ring system one after another.

    Args:
        mol: The molecule being laid out.
        state: Per-run placement record.
        atom_placer: Placer used for substituents and polygon corners.
    """

    def __init__(self, mol: Molecule, state: LayoutState, atom_placer: AtomPlacer):
        self.mol = mol
        self.state = state
        self.atom_placer = atom_placer
        self.bond_length = atom_placer.bond_length

    def place_first_bond(self, bond_idx: int, bond_vector: np.ndarray) -> List[int]:
        """
        Seed a ring system: bond begin at the origin, end along ``bond_vector``.

        Returns:
            The two atoms of the bond, begin first.
        """
        bond = self.mol.bonds[bond_idx]
        self.state.place(bond.begin, (0.0, 0.0))
        self.state.place(bond.end, normalize(np.asarray(bond_vector, dtype=float)) * self.bond_length)
        return [bond.begin, bond.end]

    def ring_center_of_first_ring(self, ring: Ring, bond_vector: np.ndarray) -> np.ndarray:
        """Vector from the first bond midpoint to the centre of its ring."""
        radius = ring_radius(ring.size, self.bond_length)
        distance = math.sqrt(radius * radius - (self.bond_length / 2) ** 2)
        angle = get_angle(bond_vector[0], bond_vector[1]) + math.pi / 2
        return np.array([math.cos(angle) * distance, math.sin(angle) * distance])

    def place_ring(
        self,
        ring: Ring,
        shared_atoms: Sequence[int],
        shared_center: np.ndarray,
        ring_center_vector: np.ndarray,
    ) -> None:
        """
        Place a ring against the atoms it shares with placed rings.

        Raises:
            ValueError: If no atoms are shared.
        """
        n_shared = len(shared_atoms)
        if n_shared == 0:
            raise ValueError("a ring sharing no atoms must be placed standalone")
        if n_shared == 1:
            self._place_spiro_ring(ring, shared_atoms[0], ring_center_vector)
        elif n_shared == 2:
            self._place_fused_ring(ring, shared_atoms, ring_center_vector)
        else:
            self._place_bridged_ring(ring, shared_atoms, shared_center, ring_center_vector)

    def place_standalone_ring(self, ring: Ring, ring_center: np.ndarray) -> None:
        """Regular polygon around ``ring_center`` with a flat bottom edge."""
        radius = ring_radius(ring.size, self.bond_length)
        add_angle = 2 * math.pi / ring.size
        start_angle = START_ANGLES.get(ring.size, add_angle)
        order = list(ring.atoms[1:]) + [ring.atoms[0]]
        self.atom_placer.populate_polygon_corners(
            order, np.asarray(ring_center, dtype=float), start_angle, add_angle, radius
        )

    def _place_spiro_ring(self, ring: Ring, shared: int, ring_center_vector: np.ndarray) -> None:
        coords = self.state.coords
        radius = ring_radius(ring.size, self.bond_length)
        ring_center = coords[shared] + normalize(ring_center_vector) * radius
        add_angle = 2 * math.pi / ring.size
        rel = coords[shared] - ring_center
        start_angle = get_angle(rel[0], rel[1])
        neighbors = ring.neighbors_in_ring(shared)
        atoms = ring.walk(shared, away_from=neighbors[0])
        self.atom_placer.populate_polygon_corners(
            atoms, ring_center, start_angle, add_angle, radius
        )

    def _start_and_direction(self, beg: int, end: int, reference: np.ndarray):
        """
        Pick the atom the polygon walk starts at and the walk direction.

        The walk always starts at the atom with the larger x (larger y for a
        vertical bond) and turns towards ``reference``.
        """
        coords = self.state.coords
        bx, by = coords[beg]
        ex, ey = coords[end]
        x_diff = bx - ex
        y_diff = by - ey
        if x_diff == 0:
            start = beg if by > ey else end
            direction = 1 if reference[0] < bx else -1
        else:
            start = beg if bx > ex else end
            direction = 1 if (reference[1] - by) > (reference[0] - bx) * y_diff / x_diff else -1
        return start, direction

    def _place_fused_ring(
        self, ring: Ring, shared_atoms: Sequence[int], ring_center_vector: np.ndarray
    ) -> None:
        coords = self.state.coords
        beg, end = shared_atoms[0], shared_atoms[1]
        radius = ring_radius(ring.size, self.bond_length)
        mid = (coords[beg] + coords[end]) / 2
        perp = perpendicular(coords[beg], coords[end], ring_center_vector)
        distance = math.sqrt(max(radius * radius - (self.bond_length / 2) ** 2, 0.0))
        ring_center = mid + normalize(perp) * distance

        occupied = vector_angle(coords[beg] - ring_center, coords[end] - ring_center)
        add_angle = (2 * math.pi - occupied) / (ring.size - 1)

        start, direction = self._start_and_direction(beg, end, ring_center)
        other = end if start == beg else beg
        rel = coords[start] - ring_center
        start_angle = get_angle(rel[0], rel[1])
        atoms = [a for a in ring.walk(start, away_from=other) if a not in (beg, end)]
        self.atom_placer.populate_polygon_corners(
            atoms, ring_center, start_angle, add_angle * direction, radius
        )

    def _bridgeheads(self, ring: Ring, shared_atoms: Sequence[int], placed_ring_bonds) -> List[int]:
        shared = set(shared_atoms)
        heads = []
        for atom in shared_atoms:
            count = 0
            for w in ring.neighbors_in_ring(atom):
                if w in shared and self.mol.get_bond(atom, w) in placed_ring_bonds:
                    count += 1
            if count == 1:
                heads.append(atom)
        return heads

    def _place_bridged_ring(
        self,
        ring: Ring,
        shared_atoms: Sequence[int],
        shared_center: np.ndarray,
        ring_center_vector: np.ndarray,
    ) -> None:
        coords = self.state.coords
        radius = ring_radius(ring.size, self.bond_length)
        shared_bonds = {
            self.mol.get_bond(a, b)
            for a in shared_atoms
            for b in shared_atoms
            if a < b and self.mol.get_bond(a, b) in ring.bond_set
        }
        heads = self._bridgeheads(ring, shared_atoms, shared_bonds)
        if len(heads) != 2:
            logger.warning("bridged ring without two bridgeheads, placing standalone")
            unplaced = [a for a in ring.atoms if not self.state.placed[a]]
            self.atom_placer.populate_polygon_corners(
                unplaced, shared_center, 0.0, 2 * math.pi / max(len(unplaced), 1), radius
            )
            return
        head1, head2 = heads

        offset = 0.0
        ring_center = np.asarray(shared_center, dtype=float).copy()
        vector = np.asarray(ring_center_vector, dtype=float)
        if ring.snap:
            mid = (coords[head1] + coords[head2]) / 2
            vector = perpendicular(coords[head1], coords[head2], mid - shared_center)
            ring_center = mid
            for atom in shared_atoms:
                if atom not in heads:
                    offset = max(offset, float(np.linalg.norm(coords[atom] - mid)))
        ring_center = ring_center + normalize(vector) * (radius - offset)

        occupied = vector_angle(coords[head1] - ring_center, coords[head2] - ring_center)
        add_angle = (2 * math.pi - occupied) / (ring.size - len(shared_atoms) + 1)

        start, direction = self._start_and_direction(head1, head2, shared_center)
        shared = set(shared_atoms)
        away = next(w for w in ring.neighbors_in_ring(start) if w in shared)
        atoms = [a for a in ring.walk(start, away_from=away) if a not in shared]
        rel = coords[start] - ring_center
        start_angle = get_angle(rel[0], rel[1])
        self.atom_placer.populate_polygon_corners(
            atoms, ring_center, start_angle, add_angle * direction, radius
        )

    def place_connected_rings(self, ring_set: Sequence[Ring], ring: Ring, handle_type: int) -> None:
        """
        Place every unplaced ring reachable from ``ring`` by one kind of
        connection (fused, bridged or spiro), depth first.
        """
        stack = [iter(connected_rings(ring, ring_set))]
        parents = [ring]
        while stack:
            parent = parents[-1]
            connected = next(stack[-1], None)
            if connected is None:
                stack.pop()
                parents.pop()
                continue
            if connected.placed:
                continue
            shared = parent.shared_atoms(connected)
            n_shared = len(shared)
            if not (
                (handle_type == FUSED and n_shared == 2)
                or (handle_type == SPIRO and n_shared == 1)
                or (handle_type == BRIDGED and n_shared > 2)
            ):
                continue
            shared_center = center(self.state.coords, shared)
            old_center = center(self.state.coords, parent.atoms)
            self.place_ring(connected, shared, shared_center, shared_center - old_center)
            connected.placed = True
            stack.append(iter(connected_rings(connected, ring_set)))
            parents.append(connected)

    def place_ring_substituents(self, ring_set: Sequence[Ring]) -> List[int]:
        """
        Place the first atom of every substituent of a placed ring system.

        Returns:
            The substituent atoms that were placed.
        """
        treated: List[int] = []
        coords = self.state.coords
        for ring in ring_set:
            for atom in ring.atoms:
                unplaced, placed = self.atom_placer.partition_partners(atom)
                if not unplaced:
                    continue
                self.state.mark_placed(unplaced, False)
                treated.extend(unplaced)
                if self.state.macrocycle_hint[atom]:
                    shared_center = center(coords, placed)
                else:
                    centres = [
                        center(coords, r.atoms) for r in ring_set if atom in r
                    ]
                    shared_center = np.mean(centres, axis=0)
                self.atom_placer.distribute_partners(atom, placed, shared_center, unplaced)
        return treated

    def check_and_mark_placed(self, ring_set: Sequence[Ring]) -> None:
        """Flag rings whose atoms all have positions."""
        for ring in ring_set:
            if self.state.all_placed(ring.atoms):
                ring.placed = True
