"""
Sgroup Layout
=============

Finalises the layout of special groups once every atom has a point.

- multiple groups: the hidden copies of a repeated unit are stacked on the
  displayed unit, and the fragment hanging off the last copy is moved so it
  attaches to the displayed unit
- positional variation: a substituent that may sit on any atom of a ring
  is drawn crossing the middle of one ring bond
- brackets: polymer, repeat-unit and similar groups get a pair of brackets
  across their crossing bonds, or around their atoms
"""

import logging
import math
from collections import OrderedDict
from typing import Dict, FrozenSet, List, Sequence, Set

import numpy as np
from rdkit import Chem

from structure_layout.geometry import center, get_angle, normalize, rotate, translate
from structure_layout.molecule import Molecule, Sgroup, SgroupBracket, SgroupType

logger = logging.getLogger(__name__)


def _fragment(adjacency: Sequence[Sequence[int]], start: int, blocked: Set[int]) -> List[int]:
    """Atoms reachable from ``start`` without entering ``blocked``."""
    seen = set(blocked) | {start}
    stack = [start]
    found = [start]
    while stack:
        u = stack.pop()
        for w in adjacency[u]:
            if w not in seen:
                seen.add(w)
                found.append(w)
                stack.append(w)
    return found


def _query_rdkit(mol: Molecule) -> Chem.Mol:
    from structure_layout.io import to_rdkit

    rdmol = to_rdkit(mol, conformer=False)
    rdmol.UpdatePropertyCache(strict=False)
    Chem.FastFindRings(rdmol)
    return rdmol


class SgroupLayout:
    """
    Special group finalisation for one molecule.

    Args:
        mol: Molecule with special groups.
        coords: (N, 2) coordinates, modified in place.
        bond_length: Nominal bond length.
    """

    def __init__(self, mol: Molecule, coords: np.ndarray, bond_length: float = 1.5):
        self.mol = mol
        self.coords = coords
        self.bond_length = bond_length
        self.adjacency = mol.adjacency_list()

    def _same_atom(self, a: int, b: int) -> bool:
        atom_a = self.mol.atoms[a]
        atom_b = self.mol.atoms[b]
        return (
            atom_a.atomic_number == atom_b.atomic_number
            and atom_a.charge == atom_b.charge
            and atom_a.mass == atom_b.mass
            and (atom_a.implicit_h or 0) == (atom_b.implicit_h or 0)
        )

    def place_multiple_groups(self) -> None:
        """Stack repeated units on their displayed parent unit."""
        groups = [
            sg
            for sg in self.mol.sgroups
            if sg.type is SgroupType.MULTIPLE_GROUP
            and sg.parent_atoms
            and len(sg.bonds) in (0, 2)
        ]
        if not groups:
            return
        target = _query_rdkit(self.mol)
        for sg in groups:
            self._place_multiple_group(sg, target)

    def _place_multiple_group(self, sg: Sgroup, target: Chem.Mol) -> None:
        parent = list(sg.parent_atoms)
        members = set(sg.atoms)
        query = _query_rdkit(self.mol.subgraph(parent, include_stereo=False))
        before = self.coords.copy()
        counterpart: Dict[int, int] = {}
        seen: Set[FrozenSet[int]] = set()
        for match in target.GetSubstructMatches(query, uniquify=True, maxMatches=10000):
            key = frozenset(match)
            if key in seen or key == frozenset(parent):
                continue
            if not all(idx in members for idx in match):
                continue
            if not all(self._same_atom(idx, parent[i]) for i, idx in enumerate(match)):
                continue
            seen.add(key)
            for i, idx in enumerate(match):
                self.coords[idx] = before[parent[i]]
                counterpart[idx] = parent[i]

        if len(sg.bonds) != 2:
            return
        parent_set = set(parent)
        for bond_idx in sg.bonds:
            bond = self.mol.bonds[bond_idx]
            if bond.in_ring:
                continue
            inner, outer = (bond.begin, bond.end) if bond.begin in members else (bond.end, bond.begin)
            if inner in parent_set or inner not in counterpart:
                continue
            self._reattach(inner, outer, counterpart[inner], members, parent_set, before)

    def _reattach(
        self,
        inner: int,
        outer: int,
        displayed: int,
        members: Set[int],
        parent_set: Set[int],
        before: np.ndarray,
    ) -> None:
        old_vector = before[outer] - before[inner]
        # the bond leaving the displayed unit towards the next copy
        best = None
        best_angle = None
        for w in self.adjacency[displayed]:
            if w in members and w not in parent_set:
                vec = before[w] - before[displayed]
                angle = abs(math.atan2(
                    old_vector[0] * vec[1] - old_vector[1] * vec[0],
                    float(np.dot(old_vector, vec)),
                ))
                if best_angle is None or angle < best_angle:
                    best, best_angle = vec, angle
        new_vector = normalize(best if best is not None else old_vector) * self.bond_length

        fragment = _fragment(self.adjacency, outer, members)
        new_end = self.coords[inner] + new_vector
        translate(self.coords, fragment, new_end - before[outer])
        theta = math.atan2(
            old_vector[0] * new_vector[1] - old_vector[1] * new_vector[0],
            float(np.dot(new_vector, old_vector)),
        )
        rotate(self.coords, fragment, new_end.copy(), theta)

    def place_positional_variation(self) -> None:
        """Draw positional-variation substituents across a ring bond."""
        groups = [sg for sg in self.mol.sgroups if sg.type is SgroupType.MULTICENTER]
        mapping: Dict[FrozenSet[int], List[int]] = OrderedDict()
        for sg in groups:
            if len(sg.bonds) != 1:
                logger.warning("Skipping multicenter group without exactly one bond")
                continue
            bond = self.mol.bonds[sg.bonds[0]]
            atoms = set(sg.atoms)
            sub = bond.end if bond.begin in atoms and bond.end not in atoms else bond.begin
            ends = frozenset(a for a in atoms if a != sub)
            mapping.setdefault(ends, []).append(sg.bonds[0])

        for ends, bonds in mapping.items():
            ring_bonds = [
                idx
                for idx, b in enumerate(self.mol.bonds)
                if b.begin in ends and b.end in ends
            ]
            if len(ring_bonds) < len(bonds):
                logger.warning("Positional variation not yet handled")
                continue
            ring_bonds = [
                idx
                for idx in ring_bonds
                if not (self._ring_degree(self.mol.bonds[idx].begin) > 2
                        and self._ring_degree(self.mol.bonds[idx].end) > 2)
            ] or ring_bonds
            centre = center(self.coords, ends)
            for bond_idx, ring_bond in zip(bonds, ring_bonds):
                self._place_variation(bond_idx, ring_bond, ends, centre)

    def _ring_degree(self, atom: int) -> int:
        return sum(1 for b in self.mol.bonds if b.in_ring and b.contains(atom))

    def _place_variation(
        self, bond_idx: int, ring_bond: int, ends: FrozenSet[int], centre: np.ndarray
    ) -> None:
        bond = self.mol.bonds[bond_idx]
        attach, sub = (bond.begin, bond.end) if bond.begin in ends else (bond.end, bond.begin)
        fragment = _fragment(self.adjacency, sub, {attach})
        if any(a in ends for a in fragment):
            logger.warning("Positional variation not yet handled")
            return

        rb = self.mol.bonds[ring_bond]
        a = self.coords[rb.begin]
        b = self.coords[rb.end]
        direction = normalize(b - a)
        perp = np.array([-direction[1], direction[0]])
        mid = (a + b) / 2
        if np.dot(perp, mid - centre) < 0:
            perp = -perp
        new_end = mid + perp * (3 * self.bond_length / 5)

        old_vector = self.coords[sub] - self.coords[attach]
        translate(self.coords, fragment, new_end - self.coords[sub])
        theta = get_angle(perp[0], perp[1]) - get_angle(old_vector[0], old_vector[1])
        rotate(self.coords, fragment, new_end.copy(), theta)

    def place_sgroup_brackets(self) -> None:
        """Compute brackets for every group type that is drawn with them."""
        groups = [sg for sg in self.mol.sgroups if sg.type.has_brackets]
        # nested groups first so enclosing brackets are pushed outwards
        groups.sort(key=lambda sg: -len(sg.parents))
        used: Dict[int, int] = {}
        for sg in groups:
            sg.brackets.clear()
            crossing = [b for b in sg.bonds if 0 <= b < self.mol.num_bonds]
            if len(crossing) >= 2:
                self._crossing_brackets(sg, crossing, used)
            else:
                self._enclosing_brackets(sg)

    def _crossing_brackets(self, sg: Sgroup, crossing: List[int], used: Dict[int, int]) -> None:
        members = set(sg.atoms)
        vertical = True
        for bond_idx in crossing:
            bond = self.mol.bonds[bond_idx]
            vec = self.coords[bond.end] - self.coords[bond.begin]
            angle = abs(math.degrees(math.atan2(vec[1], vec[0])))
            if 40 < angle < 140:
                vertical = False
        half = self.bond_length / 2
        for bond_idx in crossing:
            bond = self.mol.bonds[bond_idx]
            inner, outer = (bond.begin, bond.end) if bond.begin in members else (bond.end, bond.begin)
            outward = normalize(self.coords[outer] - self.coords[inner])
            count = used.get(bond_idx, 0)
            used[bond_idx] = count + 1
            mid = (self.coords[inner] + self.coords[outer]) / 2 + outward * count * 0.15 * self.bond_length
            if vertical:
                sg.brackets.append(SgroupBracket(mid[0], mid[1] - half, mid[0], mid[1] + half))
            else:
                sg.brackets.append(SgroupBracket(mid[0] - half, mid[1], mid[0] + half, mid[1]))

    def _enclosing_brackets(self, sg: Sgroup) -> None:
        if not sg.atoms:
            return
        pts = self.coords[list(sg.atoms)]
        pad = 0.7 * self.bond_length
        min_x, min_y = pts.min(axis=0) - pad
        max_x, max_y = pts.max(axis=0) + pad
        sg.brackets.append(SgroupBracket(min_x, min_y, min_x, max_y))
        sg.brackets.append(SgroupBracket(max_x, max_y, max_x, min_y))

    def finalize(self) -> None:
        """Multiple groups, then positional variation, then brackets."""
        if not self.mol.sgroups:
            return
        self.place_multiple_groups()
        self.place_positional_variation()
        self.place_sgroup_brackets()


def finalize_layout(mol: Molecule, coords: np.ndarray, bond_length: float = 1.5) -> None:
    """Apply the special group layout steps to ``coords`` in place."""
    SgroupLayout(mol, coords, bond_length).finalize()
