"""
Non-planar Bonds
================

Assigns wedge, hatch and wavy depiction labels from the stereo descriptors
of a laid out molecule.

- tetrahedral centres get one wedge or hatch bond (the focus is the narrow
  end, the bond begin atom)
- extended tetrahedral (allene-like) centres get two labels on one end
- double bonds without a configuration get a wavy neighbour bond, or are
  drawn crossed when no neighbour bond can carry the wave

Bond choice prefers bonds to atoms that are not stereocentres themselves,
then acyclic bonds, then non-pseudo atoms, fewer neighbours and lower
atomic numbers.

Usage:
    >>> from structure_layout.nonplanar import assign_nonplanar_labels
    >>> assign_nonplanar_labels(mol)
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from structure_layout.molecule import (
    BondOrder,
    BondStereo,
    DoubleBondStereo,
    ExtendedTetrahedral,
    Molecule,
    TetrahedralStereo,
    Winding,
)
from structure_layout.rings import ring_membership

logger = logging.getLogger(__name__)


def _index_parity(i: int) -> int:
    return -1 if i & 0x1 else 1


def _winding_parity(winding: Winding) -> int:
    if winding == Winding.CLOCKWISE:
        return -1
    if winding == Winding.ANTICLOCKWISE:
        return 1
    return 0


def less(i: int, j: int, points: Sequence[np.ndarray], focus: np.ndarray) -> bool:
    """True if point ``i`` comes before point ``j`` clockwise around ``focus``."""
    a = points[i]
    b = points[j]
    ax, ay = a[0] - focus[0], a[1] - focus[1]
    bx, by = b[0] - focus[0], b[1] - focus[1]
    if ax >= 0 and bx < 0:
        return True
    if ax < 0 and bx >= 0:
        return False
    if ax == 0 and bx == 0:
        if ay >= 0 or by >= 0:
            return a[1] > b[1]
        return b[1] > a[1]
    det = ax * by - bx * ay
    if det < 0:
        return True
    if det > 0:
        return False
    # same line from the focus, the farther point first
    return ax * ax + ay * ay > bx * bx + by * by


def sort_clockwise(
    indices: List[int], focus: np.ndarray, points: Sequence[np.ndarray], n: int
) -> int:
    """
    Insertion sort of ``indices`` clockwise around ``focus``, in place.

    Returns:
        Parity of the permutation: 1 for an even number of swaps, else -1.
    """
    swaps = 0
    for j in range(1, n):
        v = indices[j]
        i = j - 1
        while i >= 0 and less(v, indices[i], points, focus):
            indices[i + 1] = indices[i]
            i -= 1
            swaps += 1
        indices[i + 1] = v
    return _index_parity(swaps)


class NonplanarBonds:
    """
    Labels bonds of a molecule with 2D coordinates.

    Args:
        mol: Molecule with a point for every atom.

    Raises:
        ValueError: If an atom has no point.
    """

    def __init__(self, mol: Molecule):
        self.mol = mol
        self.coords = mol.coordinates()
        self.adjacency = mol.adjacency_list()
        self.bond_map = mol.bond_map()
        self.atom_in_ring, self.bond_in_ring = ring_membership(mol)
        n = mol.num_atoms
        self.tetrahedral: List[Optional[TetrahedralStereo]] = [None] * n
        self.double_bonds: List[Optional[DoubleBondStereo]] = [None] * n
        self.extended: List[ExtendedTetrahedral] = []
        self.stereo_bonds = set()
        for element in mol.stereo:
            if isinstance(element, TetrahedralStereo):
                self.tetrahedral[element.focus] = element
            elif isinstance(element, ExtendedTetrahedral):
                self.extended.append(element)
            elif isinstance(element, DoubleBondStereo):
                bond = mol.bonds[element.bond]
                self.double_bonds[bond.begin] = element
                self.double_bonds[bond.end] = element
                self.stereo_bonds.add(element.bond)

    def assign(self) -> Molecule:
        """Clear wedge and hatch labels and assign new ones."""
        for bond in self.mol.bonds:
            if bond.stereo in (BondStereo.UP, BondStereo.DOWN):
                bond.stereo = BondStereo.NONE

        foci = [i for i, element in enumerate(self.tetrahedral) if element is not None]
        foci.sort(key=lambda f: -self._num_adjacent_centres(f))
        for focus in foci:
            self._label_tetrahedral(self.tetrahedral[focus])
        for element in self.extended:
            self._label_extended(element)
        for bond_idx in self.find_unspecified_double_bonds():
            self._label_unspecified(bond_idx)
        return self.mol

    def _num_adjacent_centres(self, focus: int) -> int:
        return sum(1 for w in self.adjacency[focus] if self.tetrahedral[w] is not None)

    def _is_cyclic(self, focus: int, atom: int) -> bool:
        if focus < 0:
            return bool(self.atom_in_ring[atom])
        return bool(self.bond_in_ring[self.bond_map[(focus, atom)]])

    def _has_priority(self, focus: int, i: int, j: int) -> bool:
        # bonds to atoms that are not stereocentres
        if self.tetrahedral[i] is None and self.tetrahedral[j] is not None:
            return True
        if self.tetrahedral[i] is not None and self.tetrahedral[j] is None:
            return False
        if self.double_bonds[i] is None and self.double_bonds[j] is not None:
            return True
        if self.double_bonds[i] is not None and self.double_bonds[j] is None:
            return False
        i_cyclic = self._is_cyclic(focus, i)
        j_cyclic = self._is_cyclic(focus, j)
        if not i_cyclic and j_cyclic:
            return True
        if i_cyclic and not j_cyclic:
            return False
        i_pseudo = self.mol.atoms[i].atomic_number == 0
        j_pseudo = self.mol.atoms[j].atomic_number == 0
        if not i_pseudo and j_pseudo:
            return True
        if i_pseudo and not j_pseudo:
            return False
        i_degree = len(self.adjacency[i])
        j_degree = len(self.adjacency[j])
        if i_degree != j_degree:
            return i_degree < j_degree
        return self.mol.atoms[i].atomic_number < self.mol.atoms[j].atomic_number

    def _priority(self, focus: int, atoms: Sequence[int], n: int) -> List[int]:
        rank = list(range(n))
        for j in range(1, n):
            v = rank[j]
            i = j - 1
            while i >= 0 and self._has_priority(focus, atoms[v], atoms[rank[i]]):
                rank[i + 1] = rank[i]
                i -= 1
            rank[i + 1] = v
        return rank

    def _set_label(self, bond_idx: int, begin: int, label: BondStereo) -> None:
        bond = self.mol.bonds[bond_idx]
        if bond.begin != begin:
            bond.begin, bond.end = bond.end, bond.begin
        bond.stereo = label

    def _label_tetrahedral(self, element: TetrahedralStereo) -> None:
        focus = element.focus
        p = _winding_parity(element.winding)
        if p == 0:
            return

        atoms: List[int] = []
        bonds: List[int] = []
        for i, ligand in enumerate(element.ligands):
            if ligand == focus:
                # implicit hydrogen
                p *= _index_parity(i)
                continue
            bond = self.bond_map.get((focus, ligand))
            if bond is None:
                raise ValueError(
                    f"inconsistent stereo: atom {ligand} is not bonded to centre {focus}"
                )
            atoms.append(ligand)
            bonds.append(bond)
        n = len(atoms)

        points = [self.coords[a] for a in atoms]
        centre = self.coords[focus]
        rank = list(range(n))
        p *= sort_clockwise(rank, centre, points, n)

        invert = -1
        if n == 3:
            # an acute angle between two ligands flips the one in between
            for i in range(n):
                a = points[rank[i]]
                c = points[rank[(i + 2) % n]]
                det = (a[0] - c[0]) * (centre[1] - c[1]) - (a[1] - c[1]) * (centre[0] - c[0])
                if det > 0:
                    invert = rank[(i + 1) % n]
                    break

        labels = [BondStereo.NONE] * n
        for i in range(n):
            v = rank[i]
            if n == 4:
                p *= -1
            if invert == v:
                labels[v] = BondStereo.DOWN if p > 0 else BondStereo.UP
            else:
                labels[v] = BondStereo.UP if p > 0 else BondStereo.DOWN

        for v in self._priority(focus, atoms, n):
            bond = self.mol.bonds[bonds[v]]
            if bond.stereo is not BondStereo.NONE or bond.order is not BondOrder.SINGLE:
                continue
            self._set_label(bonds[v], focus, labels[v])
            return
        raise ValueError("could not assign non-planar (up/down) labels")

    def _is_cumulated(self, atom: int) -> bool:
        if len(self.adjacency[atom]) != 2:
            return False
        return all(
            self.mol.bonds[self.bond_map[(atom, w)]].order is BondOrder.DOUBLE
            for w in self.adjacency[atom]
        )

    def _terminals(self, focus: int) -> List[int]:
        terminals = []
        for start in self.adjacency[focus]:
            prev, curr = focus, start
            while self._is_cumulated(curr):
                nxt = next(w for w in self.adjacency[curr] if w != prev)
                prev, curr = curr, nxt
            terminals.append(curr)
        return terminals

    def _label_extended(self, element: ExtendedTetrahedral) -> None:
        focus = element.focus
        p = _winding_parity(element.winding)
        if p == 0 or len(self.adjacency[focus]) != 2:
            return
        terminals = self._terminals(focus)
        if len(terminals) != 2:
            return
        periph = list(element.peripherals)
        left, right = terminals
        if periph[0] != left and self.bond_map.get((left, periph[0])) is None:
            left, right = right, left

        bonds: List[Optional[int]] = [
            None if periph[0] == left else self.bond_map.get((left, periph[0])),
            None if periph[1] == left else self.bond_map.get((left, periph[1])),
            None if periph[2] == right else self.bond_map.get((right, periph[2])),
            None if periph[3] == right else self.bond_map.get((right, periph[3])),
        ]

        points = [self.coords[a] for a in periph]
        rank = list(range(4))
        p *= sort_clockwise(rank, self.coords[focus], points, 4)
        labels = [BondStereo.NONE] * 4
        for v in rank:
            p *= -1
            labels[v] = BondStereo.UP if p > 0 else BondStereo.DOWN

        priority = [5] * 4
        i = 0
        for v in self._priority(-1, periph, 4):
            bond_idx = bonds[v]
            if bond_idx is None:
                continue
            bond = self.mol.bonds[bond_idx]
            if bond.stereo is BondStereo.NONE and bond.order is BondOrder.SINGLE:
                priority[v] = i
                i += 1

        if priority[0] + priority[1] < priority[2] + priority[3]:
            chosen, terminal = (0, 1), left
        else:
            chosen, terminal = (2, 3), right
        for v in chosen:
            if priority[v] < 5:
                self._set_label(bonds[v], terminal, labels[v])

    def _hydrogen_count(self, atom: int) -> int:
        count = self.mol.atoms[atom].implicit_h or 0
        for w in self.adjacency[atom]:
            if self.mol.atoms[w].atomic_number == 1 and len(self.adjacency[w]) == 1:
                count += 1
        return count

    def _same_atom(self, a: int, b: int) -> bool:
        atom_a = self.mol.atoms[a]
        atom_b = self.mol.atoms[b]
        return (
            atom_a.atomic_number == atom_b.atomic_number
            and atom_a.charge == atom_b.charge
            and atom_a.mass == atom_b.mass
            and self._hydrogen_count(a) == self._hydrogen_count(b)
        )

    def _next_heavy(self, atom: int, prev: int) -> List[int]:
        return [
            w
            for w in self.adjacency[atom]
            if w != prev
            and not (self.mol.atoms[w].atomic_number == 1 and len(self.adjacency[w]) == 1)
        ]

    def has_linear_equal_paths(self, start: int, prev: int) -> bool:
        """
        True if the two substituents of ``start`` (other than ``prev``) are
        identical unbranched chains, which makes the double bond symmetric.
        """
        others = [w for w in self.adjacency[start] if w != prev]
        if len(others) != 2:
            return False
        a, b = others
        if self.atom_in_ring[a] or self.atom_in_ring[b]:
            return False
        prev_a = prev_b = start
        while True:
            if not self._same_atom(a, b):
                return False
            next_a = self._next_heavy(a, prev_a)
            next_b = self._next_heavy(b, prev_b)
            if len(next_a) > 1 or len(next_b) > 1:
                return False
            if not next_a and not next_b:
                return True
            if len(next_a) != len(next_b):
                return False
            prev_a, a = a, next_a[0]
            prev_b, b = b, next_b[0]

    def _has_only_plain_bonds(self, atom: int, double_bond: int) -> bool:
        count = 0
        for w in self.adjacency[atom]:
            bond_idx = self.bond_map[(atom, w)]
            if bond_idx == double_bond:
                continue
            bond = self.mol.bonds[bond_idx]
            if bond.order is not BondOrder.SINGLE:
                return False
            if bond.stereo is BondStereo.UP_OR_DOWN:
                return False
            count += 1
        return count > 0

    def find_unspecified_double_bonds(self) -> List[int]:
        """Acyclic double bonds that could be E or Z but have no configuration."""
        unspecified = []
        for idx, bond in enumerate(self.mol.bonds):
            if bond.order is not BondOrder.DOUBLE or self.bond_in_ring[idx]:
                continue
            if idx in self.stereo_bonds:
                continue
            beg, end = bond.begin, bond.end
            if self.tetrahedral[beg] is not None or self.tetrahedral[end] is not None:
                continue
            if not self._has_only_plain_bonds(beg, idx) or not self._has_only_plain_bonds(end, idx):
                continue
            if self.has_linear_equal_paths(beg, end) or self.has_linear_equal_paths(end, beg):
                continue
            unspecified.append(idx)
        return unspecified

    def _label_unspecified(self, double_bond: int) -> None:
        bond = self.mol.bonds[double_bond]
        candidates: List[Tuple[int, int, int]] = []
        for focus in (bond.begin, bond.end):
            for w in self.adjacency[focus]:
                bond_idx = self.bond_map[(focus, w)]
                if bond_idx == double_bond:
                    continue
                if self.mol.bonds[bond_idx].stereo is BondStereo.UP_OR_DOWN:
                    return
                candidates.append((focus, w, bond_idx))
        if len(candidates) > 4:
            return

        neighbors = [w for _, w, _ in candidates]
        for v in self._priority(-1, neighbors, len(neighbors)):
            focus, w, bond_idx = candidates[v]
            if self.double_bonds[w] is not None or self.tetrahedral[w] is not None:
                continue
            if self.mol.bonds[bond_idx].stereo is not BondStereo.NONE:
                continue
            self._set_label(bond_idx, focus, BondStereo.UP_OR_DOWN)
            return
        bond.stereo = BondStereo.E_OR_Z


def assign_nonplanar_labels(mol: Molecule) -> Molecule:
    """
    Assign wedge, hatch, wavy and crossed labels to a molecule in place.

    Args:
        mol: Molecule with 2D coordinates and stereo descriptors.

    Returns:
        The same molecule.

    Raises:
        ValueError: If an atom has no coordinates or a tetrahedral centre
            has no bond that can carry a label.
    """
    return NonplanarBonds(mol).assign()
