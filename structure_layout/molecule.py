"""
Molecule Module
===============

Lightweight molecular graph used as the input and output contract of the
layout code.

The model keeps only what a 2D depiction needs:
- atoms with element, charge, hydrogen count and an optional 2D point
- bonds with order, ring membership and a depiction (stereo) label
- stereo descriptors (tetrahedral, extended tetrahedral, double bond)
- special groups (multiple groups, positional variation, polymer brackets)

Atoms and bonds are addressed by index. Conversion from and to RDKit
molecules lives in :mod:`structure_layout.io`.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from rdkit import Chem

Point = Tuple[float, float]

_PSEUDO_SYMBOLS = {"*", "R", "R#", "A", "Q", "X"}


@lru_cache(maxsize=None)
def atomic_number(symbol: str) -> int:
    """Atomic number for an element symbol, 0 for pseudo atoms."""
    if symbol in _PSEUDO_SYMBOLS:
        return 0
    try:
        return Chem.GetPeriodicTable().GetAtomicNumber(symbol)
    except RuntimeError:
        return 0


@lru_cache(maxsize=None)
def atomic_weight(number: int) -> float:
    """Average atomic weight for an atomic number, 0 for pseudo atoms."""
    if number <= 0:
        return 0.0
    return Chem.GetPeriodicTable().GetAtomicWeight(number)


class BondOrder(Enum):
    """Bond orders understood by the layout."""

    SINGLE = 1
    DOUBLE = 2
    TRIPLE = 3
    QUADRUPLE = 4
    AROMATIC = 5

    @property
    def numeric(self) -> int:
        """Contribution to the bonded valence (aromatic counts as single)."""
        if self is BondOrder.AROMATIC:
            return 1
        return self.value


class BondStereo(Enum):
    """
    Depiction labels for bonds.

    UP and DOWN are wedge and hatch bonds with the narrow end at the bond
    begin atom. UP_OR_DOWN is a wavy bond and E_OR_Z a crossed double bond.
    """

    NONE = 0
    UP = 1
    DOWN = 2
    UP_OR_DOWN = 3
    E_OR_Z = 4


class Winding(IntEnum):
    """Configuration of a tetrahedral centre, seen from the first ligand."""

    UNSPECIFIED = 0
    CLOCKWISE = 1
    ANTICLOCKWISE = 2


class Configuration(IntEnum):
    """Double bond configuration relative to the two stored ligands."""

    UNSPECIFIED = 0
    TOGETHER = 1
    OPPOSITE = 2


class SgroupType(Enum):
    """Special group types that influence the layout."""

    MULTIPLE_GROUP = "MUL"
    MULTICENTER = "MULTICENTER"
    STRUCTURE_REPEAT_UNIT = "SRU"
    ANY_POLYMER = "ANY"
    CROSS_LINK = "CRO"
    COMPONENT = "COM"
    MIXTURE = "MIX"
    FORMULATION = "FOR"
    GRAFT = "GRA"
    MODIFIED = "MOD"
    MONOMER = "MON"
    COPOLYMER = "COP"
    GENERIC = "GEN"
    SUPERATOM = "SUP"
    DATA = "DAT"

    @property
    def has_brackets(self) -> bool:
        return self not in (
            SgroupType.MULTICENTER,
            SgroupType.SUPERATOM,
            SgroupType.DATA,
        )


@dataclass(eq=False)
class Atom:
    """
    Atom of the layout graph.

    Attributes:
        symbol: Element symbol, ``*`` or ``R`` for pseudo atoms.
        charge: Formal charge.
        implicit_h: Implicit hydrogen count, None if unknown.
        mass: Isotope mass number, None for natural abundance.
        point: 2D coordinates or None if not yet placed.
        aromatic: Aromaticity flag.
        attach_point: Attachment point number of a pseudo atom (0 = none).
    """

    symbol: str = "C"
    charge: int = 0
    implicit_h: Optional[int] = None
    mass: Optional[int] = None
    point: Optional[Point] = None
    aromatic: bool = False
    attach_point: int = 0

    @property
    def atomic_number(self) -> int:
        return atomic_number(self.symbol)

    @property
    def weight(self) -> float:
        """Mass used when weighing molecule parts, including hydrogens."""
        total = float(self.mass) if self.mass else atomic_weight(self.atomic_number)
        if self.implicit_h:
            total += self.implicit_h * atomic_weight(1)
        return total


@dataclass(eq=False)
class Bond:
    """Bond between the atoms at indices ``begin`` and ``end``."""

    begin: int
    end: int
    order: BondOrder = BondOrder.SINGLE
    stereo: BondStereo = BondStereo.NONE
    in_ring: bool = False

    def other(self, idx: int) -> int:
        """Index of the atom at the other end of the bond."""
        if idx == self.begin:
            return self.end
        if idx == self.end:
            return self.begin
        raise ValueError(f"atom {idx} is not part of bond {self.begin}-{self.end}")

    def contains(self, idx: int) -> bool:
        return idx == self.begin or idx == self.end

    @property
    def atoms(self) -> Tuple[int, int]:
        return self.begin, self.end


@dataclass(eq=False)
class TetrahedralStereo:
    """
    Tetrahedral centre.

    The ligands are looked at from the first one; the remaining three are
    arranged clockwise or anticlockwise. An implicit hydrogen (or lone pair)
    is written as the focus atom itself.
    """

    focus: int
    ligands: Tuple[int, int, int, int]
    winding: Winding = Winding.UNSPECIFIED


@dataclass(eq=False)
class ExtendedTetrahedral:
    """
    Axial (allene-like) centre.

    The focus is the central atom of a cumulated system. The first two
    peripherals are attached to one terminal atom, the last two to the
    other. A peripheral equal to its terminal atom is an implicit hydrogen.
    """

    focus: int
    peripherals: Tuple[int, int, int, int]
    winding: Winding = Winding.UNSPECIFIED


@dataclass(eq=False)
class DoubleBondStereo:
    """
    Double bond configuration.

    ``ligands[0]`` is attached to the bond begin atom and ``ligands[1]`` to
    the bond end atom.
    """

    bond: int
    ligands: Tuple[int, int]
    configuration: Configuration = Configuration.UNSPECIFIED


StereoElement = Union[TetrahedralStereo, ExtendedTetrahedral, DoubleBondStereo]


@dataclass
class SgroupBracket:
    """Bracket drawn from (x1, y1) to (x2, y2)."""

    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(eq=False)
class Sgroup:
    """
    Special group annotation.

    Attributes:
        type: The group type.
        atoms: Atoms contained in the group.
        bonds: Bonds crossing the group boundary (for multicenter groups,
            the single positional-variation bond).
        parent_atoms: For multiple groups, the atoms of the displayed unit.
        brackets: Brackets computed by the layout.
        parents: Enclosing groups.
        subscript: Optional label such as ``n`` for repeat units.
    """

    type: SgroupType
    atoms: List[int] = field(default_factory=list)
    bonds: List[int] = field(default_factory=list)
    parent_atoms: List[int] = field(default_factory=list)
    brackets: List[SgroupBracket] = field(default_factory=list)
    parents: List["Sgroup"] = field(default_factory=list)
    subscript: str = ""


@dataclass(eq=False)
class Molecule:
    """
    Molecular graph with 2D layout fields.

    Example:
        >>> mol = Molecule()
        >>> a = mol.add_atom("C")
        >>> b = mol.add_atom("O")
        >>> mol.add_bond(a, b, BondOrder.DOUBLE)
        0
    """

    atoms: List[Atom] = field(default_factory=list)
    bonds: List[Bond] = field(default_factory=list)
    stereo: List[StereoElement] = field(default_factory=list)
    sgroups: List[Sgroup] = field(default_factory=list)
    name: str = ""

    def add_atom(self, symbol: str = "C", **kwargs) -> int:
        """Append an atom and return its index."""
        self.atoms.append(Atom(symbol=symbol, **kwargs))
        return len(self.atoms) - 1

    def add_bond(
        self,
        begin: int,
        end: int,
        order: BondOrder = BondOrder.SINGLE,
        **kwargs,
    ) -> int:
        """Append a bond and return its index."""
        n = len(self.atoms)
        if not (0 <= begin < n and 0 <= end < n) or begin == end:
            raise ValueError(f"invalid bond {begin}-{end} for {n} atoms")
        self.bonds.append(Bond(begin, end, order, **kwargs))
        return len(self.bonds) - 1

    @property
    def num_atoms(self) -> int:
        return len(self.atoms)

    @property
    def num_bonds(self) -> int:
        return len(self.bonds)

    def adjacency_list(self) -> List[List[int]]:
        """Neighbour indices per atom, in bond order."""
        adj: List[List[int]] = [[] for _ in self.atoms]
        for bond in self.bonds:
            adj[bond.begin].append(bond.end)
            adj[bond.end].append(bond.begin)
        return adj

    def bond_map(self) -> Dict[Tuple[int, int], int]:
        """Map from ordered and reversed atom pairs to bond indices."""
        bmap: Dict[Tuple[int, int], int] = {}
        for idx, bond in enumerate(self.bonds):
            bmap[(bond.begin, bond.end)] = idx
            bmap[(bond.end, bond.begin)] = idx
        return bmap

    def get_bond(self, u: int, v: int) -> Optional[int]:
        """Index of the bond joining ``u`` and ``v`` or None."""
        for idx, bond in enumerate(self.bonds):
            if bond.contains(u) and bond.contains(v) and u != v:
                return idx
        return None

    def connected_bonds(self, idx: int) -> List[int]:
        return [b for b, bond in enumerate(self.bonds) if bond.contains(idx)]

    def neighbors(self, idx: int) -> List[int]:
        return [bond.other(idx) for bond in self.bonds if bond.contains(idx)]

    def degree(self, idx: int) -> int:
        return sum(1 for bond in self.bonds if bond.contains(idx))

    def connected_components(
        self, extra_bonds: Iterable[Tuple[int, int]] = ()
    ) -> List[List[int]]:
        """
        Partition the atoms into connected components.

        Args:
            extra_bonds: Additional (u, v) edges treated as bonds, used for
                provisional ionic pairing.

        Returns:
            Sorted atom index lists, ordered by their lowest atom index.
        """
        adj = self.adjacency_list()
        for u, v in extra_bonds:
            adj[u].append(v)
            adj[v].append(u)
        seen = [False] * len(self.atoms)
        components = []
        for root in range(len(self.atoms)):
            if seen[root]:
                continue
            seen[root] = True
            stack = [root]
            component = []
            while stack:
                u = stack.pop()
                component.append(u)
                for w in adj[u]:
                    if not seen[w]:
                        seen[w] = True
                        stack.append(w)
            components.append(sorted(component))
        return components

    def is_connected(self) -> bool:
        return len(self.connected_components()) <= 1

    def subgraph(
        self,
        atom_indices: Sequence[int],
        extra_bonds: Iterable[Tuple[int, int]] = (),
        include_stereo: bool = True,
    ) -> "Molecule":
        """
        Copy the atoms in ``atom_indices`` (in that order) into a new molecule.

        Bonds between the selected atoms are copied, plus the provisional
        ``extra_bonds`` (added as single bonds). Stereo descriptors whose
        atoms are all selected are remapped.
        """
        remap = {old: new for new, old in enumerate(atom_indices)}
        sub = Molecule(name=self.name)
        for old in atom_indices:
            atom = self.atoms[old]
            sub.atoms.append(
                Atom(
                    symbol=atom.symbol,
                    charge=atom.charge,
                    implicit_h=atom.implicit_h,
                    mass=atom.mass,
                    point=atom.point,
                    aromatic=atom.aromatic,
                    attach_point=atom.attach_point,
                )
            )
        bond_remap = {}
        for idx, bond in enumerate(self.bonds):
            if bond.begin in remap and bond.end in remap:
                bond_remap[idx] = len(sub.bonds)
                sub.bonds.append(
                    Bond(
                        remap[bond.begin],
                        remap[bond.end],
                        bond.order,
                        bond.stereo,
                        bond.in_ring,
                    )
                )
        for u, v in extra_bonds:
            if u in remap and v in remap:
                sub.bonds.append(Bond(remap[u], remap[v]))
        if include_stereo:
            for element in self.stereo:
                mapped = _remap_stereo(element, remap, bond_remap)
                if mapped is not None:
                    sub.stereo.append(mapped)
        return sub

    def has_coordinates(self) -> bool:
        """True if every atom has a 2D point."""
        return all(atom.point is not None for atom in self.atoms)

    def coordinates(self) -> np.ndarray:
        """
        Atom coordinates as an (N, 2) array.

        Raises:
            ValueError: If an atom has no 2D point.
        """
        coords = np.zeros((len(self.atoms), 2))
        for idx, atom in enumerate(self.atoms):
            if atom.point is None:
                raise ValueError(f"atom {idx} had unset coordinates")
            coords[idx] = atom.point
        return coords

    def set_coordinates(self, coords: np.ndarray) -> None:
        """Store an (N, 2) array of coordinates on the atoms; NaN rows unset."""
        for idx, atom in enumerate(self.atoms):
            x, y = coords[idx]
            if np.isnan(x) or np.isnan(y):
                atom.point = None
            else:
                atom.point = (float(x), float(y))

    def clear_coordinates(self) -> None:
        for atom in self.atoms:
            atom.point = None


def _remap_stereo(
    element: StereoElement, remap: Dict[int, int], bond_remap: Dict[int, int]
) -> Optional[StereoElement]:
    if isinstance(element, TetrahedralStereo):
        if element.focus not in remap or any(a not in remap for a in element.ligands):
            return None
        return TetrahedralStereo(
            remap[element.focus],
            tuple(remap[a] for a in element.ligands),
            element.winding,
        )
    if isinstance(element, ExtendedTetrahedral):
        if element.focus not in remap or any(
            a not in remap for a in element.peripherals
        ):
            return None
        return ExtendedTetrahedral(
            remap[element.focus],
            tuple(remap[a] for a in element.peripherals),
            element.winding,
        )
    if element.bond not in bond_remap or any(a not in remap for a in element.ligands):
        return None
    return DoubleBondStereo(
        bond_remap[element.bond],
        tuple(remap[a] for a in element.ligands),
        element.configuration,
    )
