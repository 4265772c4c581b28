"""
Macrocycle Layout
=================

Places large rings on outline templates instead of regular polygons.

A regular 12-gon or larger leaves a big empty hole and makes fused rings
look distorted. Instead, the macrocycle is drawn along the outline of a
polycyclic hydrocarbon (naphthalene, phenalene, anthracene, ...). Every
rotation of every outline is scored, rewarding placements where fused rings
sit on convex corners and heteroatoms sit on concave ones.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from structure_layout.geometry import turn_determinant
from structure_layout.layout_state import LayoutState
from structure_layout.molecule import Molecule
from structure_layout.parameters import DEFAULT_BOND_LENGTH
from structure_layout.rings import Ring
from structure_layout.templates import TemplateLibrary, default_macrocycle_templates

logger = logging.getLogger(__name__)

CLOCKWISE = -1
ANTICLOCKWISE = 1


def winding(coords: np.ndarray) -> Tuple[int, np.ndarray]:
    """
    Turn direction at every vertex of a closed polygon.

    Args:
        coords: (N, 2) polygon vertices in order.

    Returns:
        Tuple of (overall, per_vertex). ``per_vertex[i]`` is +1 for an
        anticlockwise turn at vertex i and -1 for a clockwise one. The
        overall direction is the majority; it is 0 when a vertex is
        straight or the counts are equal.
    """
    n = len(coords)
    turns = np.zeros(n, dtype=int)
    for i in range(n):
        det = turn_determinant(coords[i - 1], coords[i], coords[(i + 1) % n])
        turns[i] = int(np.sign(round(det, 6)))
    if (turns == 0).any():
        return 0, turns
    num_cw = int((turns == CLOCKWISE).sum())
    num_ccw = n - num_cw
    if num_cw == num_ccw:
        return 0, turns
    return (CLOCKWISE if num_cw > num_ccw else ANTICLOCKWISE), turns


class MacrocycleLayout:
    """
    Template based placement of a macrocycle and its fused neighbours.

    Args:
        mol: The molecule being laid out.
        state: Per-run placement record.
        bond_length: Nominal bond length.
        templates: Outline library, the bundled one by default.
    """

    def __init__(
        self,
        mol: Molecule,
        state: LayoutState,
        bond_length: float = DEFAULT_BOND_LENGTH,
        templates: Optional[TemplateLibrary] = None,
    ):
        self.mol = mol
        self.state = state
        self.bond_length = bond_length
        self.templates = templates if templates is not None else default_macrocycle_templates()

    def _anonymous_ring(self, ring: Ring) -> Molecule:
        anon = Molecule()
        for _ in ring.atoms:
            anon.add_atom("C")
        n = ring.size
        last = n if n % 2 == 0 else n - 1
        for i in range(last):
            anon.add_bond(i, (i + 1) % n)
        if n % 2 == 1:
            # odd rings borrow the outline of the next even size
            dummy = anon.add_atom("C")
            anon.add_bond(n - 1, dummy)
            anon.add_bond(dummy, 0)
        return anon

    def _attachments(self, ring: Ring, ring_set: Sequence[Ring]) -> List[List[int]]:
        """Positions (in ring order) of atoms shared with each fused ring."""
        attachments = []
        for other in ring_set:
            if other is ring:
                continue
            positions = sorted(ring.atoms.index(a) for a in ring.atom_set & other.atom_set)
            if not 2 <= len(positions) <= 4:
                continue
            # rotate so the run of shared atoms is contiguous across the seam
            for k in range(len(positions)):
                if positions[k] - positions[k - 1] != 1 and positions[k - 1] - positions[k] != ring.size - 1:
                    positions = positions[k:] + positions[:k]
                    break
            attachments.append(positions)
        return attachments

    def _score(
        self,
        ring: Ring,
        turns: np.ndarray,
        wind: int,
        offset: int,
        attachments: List[List[int]],
    ) -> Tuple[int, int]:
        m = len(turns)

        def turn_at(pos: int) -> int:
            return int(turns[(offset + pos) % m])

        clicks = 0
        for positions in attachments:
            pattern = [turn_at(p) == wind for p in positions]
            if len(pattern) == 2:
                if turn_at(positions[0]) == turn_at(positions[1]):
                    clicks += 5 if pattern[0] else 1
            elif len(pattern) == 3:
                if pattern == [True, False, True]:
                    clicks += 5
                elif pattern == [False, True, False]:
                    clicks += 1
            elif pattern in ([True, False, False, True], [False, True, True, False]):
                clicks += 1

        hetero = sum(
            1
            for pos, atom in enumerate(ring.atoms)
            if self.mol.atoms[atom].atomic_number != 6 and turn_at(pos) == -wind
        )
        return clicks, hetero

    def layout(self, ring: Ring, ring_set: Sequence[Ring]) -> bool:
        """
        Place ``ring`` on the best scoring outline.

        Args:
            ring: The macrocycle.
            ring_set: Its ring system, used to find fused neighbours.

        Returns:
            False when no outline exists for the ring size.
        """
        point_sets = self.templates.get_coordinates(self._anonymous_ring(ring))
        if not point_sets:
            logger.debug("No macrocycle outline for ring size %d", ring.size)
            return False
        attachments = self._attachments(ring, ring_set)
        scale = self.bond_length / DEFAULT_BOND_LENGTH

        best = None
        best_key = None
        for points in point_sets:
            wind, turns = winding(points)
            if wind == 0:
                continue
            for offset in range(len(turns)):
                key = self._score(ring, turns, wind, offset, attachments)
                if best_key is None or key > best_key:
                    best, best_key = (points, offset), key
        if best is None:
            return False

        points, offset = best
        m = len(points)
        for i, atom in enumerate(ring.atoms):
            self.state.place(atom, points[(offset + i) % m] * scale)
            self.state.macrocycle_hint[atom] = True
        logger.debug("Macrocycle of %d atoms placed, score %s", ring.size, best_key)
        return True
