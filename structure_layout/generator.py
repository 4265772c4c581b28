"""
Structure Diagram Generator
===========================

Generates 2D coordinates (a structure diagram) for a molecule given only
its connectivity.

The layout proceeds in stages:

1. trivial cases (one atom, one bond) and disconnected structures, which
   are laid out fragment by fragment and tiled on a grid
2. the largest ring system, from a template if one matches, else ring by
   ring from the most complex ring outwards
3. alternating chain extension and placement of the next ring system
   until every atom has a point
4. double bond geometry correction, overlap refinement and the choice of
   the final orientation
5. wedge/hatch labels and special group finalisation

Usage:
    >>> from structure_layout import StructureDiagramGenerator, from_smiles
    >>> mol = from_smiles("c1ccccc1CCO")
    >>> StructureDiagramGenerator().generate_coordinates(mol)
    >>> mol.atoms[0].point
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from structure_layout.atom_placer import AtomPlacer
from structure_layout.geometric import correct_geometric_configuration
from structure_layout.geometry import bounds, bounds_center, center, get_angle, rotate, translate
from structure_layout.layout_state import LayoutState
from structure_layout.macrocycle import MacrocycleLayout
from structure_layout.molecule import Molecule
from structure_layout.nonplanar import assign_nonplanar_labels
from structure_layout.parameters import (
    DEFAULT_BOND_LENGTH,
    OrientationParameters,
    RefinerParameters,
)
from structure_layout.refiner import LayoutRefiner
from structure_layout.ring_placer import BRIDGED, FUSED, SPIRO, RingPlacer
from structure_layout.rings import (
    Ring,
    find_rings,
    is_macrocycle,
    most_complex_ring,
    partition_rings,
    ring_system_atoms,
    ring_system_bonds,
)
from structure_layout.sgroup_layout import finalize_layout
from structure_layout.templates import (
    TemplateLibrary,
    default_macrocycle_templates,
    default_templates,
)

logger = logging.getLogger(__name__)

DEFAULT_BOND_VECTOR = (0.0, 1.0)


def count_aligned_bonds(coords: np.ndarray, bonds: Iterable[Tuple[int, int]], params: OrientationParameters) -> int:
    """Number of bonds drawn at the aligned angle (±30° by default) to the x axis."""
    count = 0
    for u, v in bonds:
        a, b = coords[u], coords[v]
        if a[0] > b[0]:
            a, b = b, a
        angle = math.degrees(math.atan2(b[1] - a[1], b[0] - a[0]))
        if abs(abs(angle) - params.aligned_angle) < params.aligned_tolerance:
            count += 1
    return count


def _width(coords: np.ndarray) -> float:
    min_x, _, max_x, _ = bounds(coords)
    return max_x - min_x


def select_orientation(
    coords: np.ndarray,
    bonds: Sequence[Tuple[int, int]],
    params: Optional[OrientationParameters] = None,
) -> None:
    """
    Rotate a layout in place to a wide orientation with many aligned bonds.

    Rotations in steps of 30° are compared: a clearly wider layout wins;
    among layouts of comparable width the one with more bonds at ±30° wins.
    The chosen layout is never narrower than the unrotated one.
    """
    params = params or OrientationParameters()
    if len(coords) < 2:
        return
    pivot = bounds_center(coords)
    work = coords.copy()
    best = coords.copy()
    initial_width = max_width = _width(coords)
    max_aligned = count_aligned_bonds(coords, bonds, params)

    for _ in range(params.num_steps):
        rotate(work, None, pivot, params.step)
        width = _width(work)
        delta = abs(width - max_width)
        accept = False
        aligned = None
        if delta > params.width_diff and width > max_width:
            accept = True
        elif delta <= params.width_diff and width >= initial_width:
            aligned = count_aligned_bonds(work, bonds, params)
            if aligned - max_aligned > params.alignment_diff or (
                aligned == max_aligned and width > max_width
            ):
                accept = True
        if accept:
            max_aligned = aligned if aligned is not None else count_aligned_bonds(work, bonds, params)
            max_width = width
            best = work.copy()
    coords[:] = best


def merge_atomic_ions(mol: Molecule, fragments: List[List[int]]) -> List[List[int]]:
    """
    Group identical single-atom ions (same element, charge and hydrogens).

    The merged groups are only used to count charges when pairing ions.
    """
    merged: List[List[int]] = []
    for frag in fragments:
        if len(frag) == 1:
            atom = mol.atoms[frag[0]]
            for other in merged:
                if len(other) and all(
                    mol.degree(a) == 0
                    and mol.atoms[a].charge == atom.charge
                    and mol.atoms[a].atomic_number == atom.atomic_number
                    and (mol.atoms[a].implicit_h or 0) == (atom.implicit_h or 0)
                    for a in other
                ) and mol.degree(frag[0]) == 0:
                    other.append(frag[0])
                    break
            else:
                merged.append(list(frag))
        else:
            merged.append(list(frag))
    return merged


def select_ions(mol: Molecule, fragment: Sequence[int], sign: int) -> List[int]:
    """
    Atoms of a fragment that carry its net charge, one entry per unit.

    Atoms in charge-separated pairs (a neighbour with the opposite charge)
    are used only when the other charged atoms do not cover the net charge.
    """
    remaining = abs(sum(mol.atoms[a].charge for a in fragment))
    adjacency = mol.adjacency_list()
    used = {a: 0 for a in fragment}
    ions: List[int] = []
    for skip_separated in (True, False):
        for atom in fragment:
            if remaining == 0:
                break
            charge = mol.atoms[atom].charge
            if sign * charge <= 0:
                continue
            if skip_separated and any(
                sign * mol.atoms[w].charge < 0 for w in adjacency[atom]
            ):
                continue
            while remaining > 0 and used[atom] < abs(charge):
                ions.append(atom)
                used[atom] += 1
                remaining -= 1
    return ions


def make_ionic_bonds(mol: Molecule, fragments: List[List[int]]) -> List[Tuple[int, int]]:
    """
    Provisional bonds pairing cations with anions of a neutral salt.

    Returns:
        Unique (cation, anion) atom pairs, empty when the structure is not
        overall neutral or pairing is impossible.
    """
    merged = merge_atomic_ions(mol, fragments)
    charges = [sum(mol.atoms[a].charge for a in frag) for frag in merged]
    if sum(charges) != 0 or len(merged) == 1:
        return []
    positive = [f for f, q in zip(merged, charges) if q > 0]
    negative = [f for f, q in zip(merged, charges) if q < 0]

    def num_bonds(frag):
        members = set(frag)
        return sum(1 for b in mol.bonds if b.begin in members)

    if len(positive) == 1 and len(negative) == 1:
        cations = select_ions(mol, positive[0], 1)
        anions = select_ions(mol, negative[0], -1)
    else:
        positive.sort(key=lambda f: (abs(sum(mol.atoms[a].charge for a in f)), -num_bonds(f)))
        negative.sort(key=lambda f: (abs(sum(mol.atoms[a].charge for a in f)), -num_bonds(f)))
        cations = [a for frag in positive for a in select_ions(mol, frag, 1)]
        anions = [a for frag in negative for a in select_ions(mol, frag, -1)]
    if len(cations) != len(anions) and not cations:
        return []
    pairs: List[Tuple[int, int]] = []
    for pair in zip(cations, anions):
        if pair not in pairs:
            pairs.append(pair)
    return pairs


def ring_set_core(ring_set: Sequence[Ring]) -> List[Ring]:
    """Peel rings attached to at most one other ring until none is left to peel."""
    core = list(ring_set)
    changed = True
    while changed:
        changed = False
        for ring in list(core):
            attachments = sum(
                1
                for bond in ring.bonds
                for other in core
                if other is not ring and bond in other.bond_set
            )
            if attachments <= 1:
                core.remove(ring)
                changed = True
    return core


class _Layout:
    """State and steps of one generation run on one molecule."""

    def __init__(
        self,
        generator: "StructureDiagramGenerator",
        mol: Molecule,
        sublayout: bool = False,
        first_bond_vector: Sequence[float] = DEFAULT_BOND_VECTOR,
    ):
        self.generator = generator
        self.mol = mol
        self.sublayout = sublayout
        self.bond_length = generator.bond_length
        self.first_bond_vector = np.asarray(first_bond_vector, dtype=float)
        self.select_orientation = generator.select_orientation
        self.rings: List[Ring] = []
        self.ring_systems: List[List[Ring]] = []
        self.state = LayoutState.for_molecule(mol)
        self.adjacency = mol.adjacency_list()
        self.atom_placer = AtomPlacer(mol, self.state, self.bond_length)
        self.ring_placer = RingPlacer(mol, self.state, self.atom_placer)
        self.macrocycle = MacrocycleLayout(
            mol, self.state, self.bond_length, generator.macrocycle_templates
        )

    def run(self) -> None:
        mol = self.mol
        n = mol.num_atoms
        if n == 0:
            logger.debug("Empty molecule, nothing to lay out")
            return
        if n == 1:
            self.state.place(0, (0.0, 0.0))
            self._finish(refine=False, orient=False)
            return
        if not mol.is_connected():
            self._layout_fragments()
            return
        if n == 2 and mol.num_bonds == 1:
            self.state.place(0, (0.0, 0.0))
            self.state.place(1, (self.bond_length, 0.0))
            self._finish(refine=False, orient=False)
            return

        self._perceive_rings()
        expected_rings = mol.num_bonds - n + 1
        if expected_rings > 0 and self.rings:
            self._layout_first_ring_system()
        else:
            self._layout_first_chain()

        safety = 0
        while not self.state.all_placed() and safety <= n:
            safety += 1
            self.handle_aliphatics()
            self.layout_next_ring_system()
        if not self.state.all_placed():
            logger.debug("Placement loop exhausted, placing leftover atoms")
            self._place_leftovers()
        self._finish()

    def _perceive_rings(self) -> None:
        self.rings = find_rings(self.mol)
        ring_bonds = set()
        for ring in self.rings:
            self.state.in_ring[list(ring.atoms)] = True
            ring_bonds.update(ring.bonds)
        for idx, bond in enumerate(self.mol.bonds):
            bond.in_ring = idx in ring_bonds
        self.state.bond_in_ring = np.array(
            [b.in_ring for b in self.mol.bonds], dtype=bool
        )

    def _layout_first_ring_system(self) -> None:
        self.ring_placer.check_and_mark_placed(self.rings)
        systems = partition_rings(self.rings)
        systems.sort(key=lambda s: -len(ring_system_bonds(s)))
        self.ring_systems = systems

        largest = systems[0]
        for system in systems:
            if len(system) > len(largest):
                largest = system
        num_complex = sum(1 for s in systems if len(s) > 1)

        respect = self.layout_ring_set(self.first_bond_vector, largest)
        if (respect == 1 and num_complex == 1) or respect == 2:
            self.select_orientation = False
        self.ring_placer.place_ring_substituents(largest)

    def _layout_first_chain(self) -> None:
        self.ring_systems = []
        chain = self.atom_placer.initial_longest_chain()
        self.state.place(chain[0], (0.0, 0.0))
        if np.allclose(self.first_bond_vector, DEFAULT_BOND_VECTOR):
            angle = math.radians(-30)
            vector = np.array([math.cos(angle), math.sin(angle)])
        else:
            vector = self.first_bond_vector
        self.state.aliphatic[chain] = True
        self.atom_placer.place_linear_chain(chain, vector)

    def lookup_ring_system(self, ring_set: Sequence[Ring], anonymous: bool) -> bool:
        """
        Copy a stored layout onto a ring system.

        Three increasingly general keys are tried: the skeleton with the
        first atom of every substituent, the bare skeleton, and (when
        ``anonymous``) the all-carbon skeleton.
        """
        library = self.generator.templates
        if library is None or not len(library):
            return False
        atoms = ring_system_atoms(ring_set)
        atom_set = set(atoms)
        bonds = [(self.mol.bonds[b].begin, self.mol.bonds[b].end) for b in ring_system_bonds(ring_set)]
        stubs: List[int] = []
        stub_bonds: List[Tuple[int, int]] = []
        for atom in atoms:
            for w in self.adjacency[atom]:
                if w in atom_set or self.mol.atoms[w].atomic_number == 1:
                    continue
                stub_bonds.append((atom, len(atoms) + len(stubs)))
                stubs.append(w)

        levels = [
            self._skeleton(atoms + stubs, bonds, stub_bonds, anonymous=False),
            self._skeleton(atoms, bonds, [], anonymous=False),
        ]
        if anonymous:
            levels.append(self._skeleton(atoms, bonds, [], anonymous=True))
        scale = self.bond_length / DEFAULT_BOND_LENGTH
        for skeleton in levels:
            matches = library.get_coordinates(skeleton)
            if not matches:
                continue
            points = matches[0]
            for i, atom in enumerate(atoms):
                self.state.place(atom, points[i] * scale)
            logger.debug("Ring system of %d atoms placed from a template", len(atoms))
            return True
        logger.debug("No template for ring system of %d atoms", len(atoms))
        return False

    def _skeleton(
        self,
        atoms: Sequence[int],
        bonds: Sequence[Tuple[int, int]],
        stub_bonds: Sequence[Tuple[int, int]],
        anonymous: bool,
    ) -> Molecule:
        index = {a: i for i, a in enumerate(atoms[: len(atoms) - len(stub_bonds)])}
        skeleton = Molecule()
        for atom in atoms:
            skeleton.add_atom("C" if anonymous else self.mol.atoms[atom].symbol, implicit_h=0)
        for u, v in bonds:
            skeleton.add_bond(index[u], index[v])
        for u, stub in stub_bonds:
            skeleton.add_bond(index[u], stub)
        return skeleton

    def layout_ring_set(self, bond_vector: np.ndarray, ring_set: List[Ring]) -> int:
        """
        Place one ring system.

        Returns:
            0 for a regular layout, 1 when a template placed the whole
            system and 2 when a macrocycle outline was used; in the last
            two cases the orientation should be kept.
        """
        first = most_complex_ring(ring_set)
        macro = is_macrocycle(first, ring_set)
        if self.lookup_ring_system(ring_set, anonymous=not macro or len(ring_set) > 1):
            for ring in ring_set:
                ring.placed = True
            return 2 if macro else 1

        result = 0
        core = ring_set_core(ring_set)
        if core and len(core) < len(ring_set) and self.lookup_ring_system(core, anonymous=True):
            for ring in core:
                ring.placed = True

        if not first.placed:
            shared = self.ring_placer.place_first_bond(first.bonds[0], bond_vector)
            if not macro or not self.macrocycle.layout(first, ring_set):
                center_vector = self.ring_placer.ring_center_of_first_ring(first, bond_vector)
                self.ring_placer.place_ring(
                    first, shared, center(self.state.coords, shared), center_vector
                )
            else:
                result = 2
            first.placed = True

        if macro:
            for ring in ring_set:
                ring.snap = True

        steps = 0
        limit = len(ring_set) * len(ring_set) + 1
        while not all(r.placed for r in ring_set) and steps < limit:
            ring = ring_set[steps % len(ring_set)]
            if ring.placed:
                for handle_type in (FUSED, BRIDGED, SPIRO):
                    self.ring_placer.place_connected_rings(ring_set, ring, handle_type)
            steps += 1
        return result

    def _first_open_atom(self) -> Optional[int]:
        placed = self.state.placed
        for bond in self.mol.bonds:
            if placed[bond.begin] and not placed[bond.end]:
                return bond.begin
            if placed[bond.end] and not placed[bond.begin]:
                return bond.end
        return None

    def handle_aliphatics(self) -> None:
        """Extend chains from placed atoms until no chain is left to grow."""
        state = self.state
        coords = state.coords
        safety = 0
        while safety <= self.mol.num_atoms:
            safety += 1
            atom = self._first_open_atom()
            if atom is None:
                break
            chain = self.atom_placer.longest_unplaced_chain(atom)
            if len(chain) <= 1:
                break
            unplaced, placed = self.atom_placer.partition_partners(atom)
            if len(placed) > 1:
                self.atom_placer.distribute_partners(
                    atom, placed, center(coords, placed), unplaced
                )
                direction = coords[chain[1]] - coords[atom]
            elif placed:
                direction = self.atom_placer.next_bond_vector(
                    atom, placed[0], center(coords, state.placed_atoms())
                )
            else:
                angle = math.radians(-30)
                direction = np.array([math.cos(angle), math.sin(angle)])
            state.mark_placed(chain[1:], False)
            state.aliphatic[chain] = True
            self.atom_placer.place_linear_chain(chain, direction)

    def _reset_unplaced_rings(self) -> None:
        for ring in self.rings:
            if not ring.placed:
                self.state.mark_placed(ring.atoms, False)

    def _system_of(self, atom: int) -> Optional[List[Ring]]:
        for system in self.ring_systems:
            if any(atom in ring for ring in system):
                return system
        return None

    def layout_next_ring_system(self) -> None:
        """
        Lay out the ring system attached to a placed chain and align it
        with the bond that joins them.
        """
        if not self.rings:
            return
        state = self.state
        coords = state.coords
        self._reset_unplaced_rings()
        placed_atoms = state.placed_atoms()
        for bond in self.mol.bonds:
            a, b = bond.begin, bond.end
            if not (state.has_point(a) and state.has_point(b)):
                continue
            if state.placed[a] and not state.placed[b] and state.in_ring[b]:
                chain_atom, ring_atom = a, b
            elif state.placed[b] and not state.placed[a] and state.in_ring[a]:
                chain_atom, ring_atom = b, a
            else:
                continue
            system = self._system_of(ring_atom)
            if system is None:
                continue
            old_ring = coords[ring_atom].copy()
            old_chain = coords[chain_atom].copy()

            self.layout_ring_set(self.first_bond_vector, system)
            state.mark_placed(placed_atoms, False)
            substituents = self.ring_placer.place_ring_substituents(system)
            state.mark_placed(placed_atoms, True)

            new_ring = coords[ring_atom]
            new_chain = coords[chain_atom].copy()
            old_angle = get_angle(*(old_ring - old_chain))
            new_angle = get_angle(*(new_ring - new_chain))
            moved = ring_system_atoms(system) + list(substituents)
            translate(coords, moved, old_chain - new_chain)
            rotate(coords, moved, old_chain, old_angle - new_angle)
            return

    def _place_leftovers(self) -> None:
        state = self.state
        changed = True
        while changed:
            changed = False
            for atom in range(self.mol.num_atoms):
                if state.has_point(atom):
                    continue
                anchor = next((w for w in self.adjacency[atom] if state.has_point(w)), None)
                if anchor is None:
                    continue
                others = [w for w in self.adjacency[anchor] if state.has_point(w)]
                self.atom_placer.distribute_partners(
                    anchor, others, center(state.coords, others or [anchor]), [atom]
                )
                changed = True
        for atom in range(self.mol.num_atoms):
            if not state.has_point(atom):
                state.place(atom, (0.0, 0.0))
        state.placed[:] = True

    def _bond_pairs(self) -> List[Tuple[int, int]]:
        return [(b.begin, b.end) for b in self.mol.bonds]

    def _orient(self) -> None:
        coords = self.state.coords
        attach = next(
            (i for i, atom in enumerate(self.mol.atoms)
             if atom.atomic_number == 0 and atom.attach_point == 1),
            None,
        )
        if attach is None:
            select_orientation(coords, self._bond_pairs(), self.generator.orientation)
            return
        if len(self.adjacency[attach]) != 1:
            return
        # attachment bond horizontal, bulk of the fragment above it
        other = self.adjacency[attach][0]
        pivot = bounds_center(coords)
        vec = coords[other] - coords[attach]
        rotate(coords, None, pivot, -math.atan2(vec[1], vec[0]))
        offsets = coords[:, 1] - coords[attach][1]
        weights = np.array([atom.weight for atom in self.mol.atoms])
        if weights[offsets < 0].sum() > weights[offsets > 0].sum():
            coords[:, 1] = -coords[:, 1]
        rotate(coords, None, bounds_center(coords), math.radians(-30))

    def _finish(self, refine: bool = True, orient: bool = True) -> None:
        state = self.state
        mol = self.mol
        if not self.sublayout:
            correct_geometric_configuration(mol, state.coords)
        if refine and self.generator.refine and mol.num_atoms > 2:
            self.atom_placer.prioritise()
            LayoutRefiner(mol, state, self.generator.refiner_parameters).refine()
        if orient and self.select_orientation:
            self._orient()
        state.write_back(mol)
        if not self.sublayout:
            assign_nonplanar_labels(mol)
            finalize_layout(mol, state.coords, self.bond_length)
            state.write_back(mol)

    def _layout_fragments(self) -> None:
        mol = self.mol
        fragments = mol.connected_components()
        ionic = make_ionic_bonds(mol, fragments)
        if ionic:
            fragments = mol.connected_components(ionic)
        self.generator.log(f"Laying out {len(fragments)} fragments")

        coords = self.state.coords
        limits = []
        for frag in fragments:
            members = set(frag)
            extra = [(u, v) for u, v in ionic if u in members and v in members]
            sub = mol.subgraph(frag, extra_bonds=extra, include_stereo=False)
            _Layout(self.generator, sub, sublayout=True).run()
            coords[frag] = sub.coordinates()
            limits.append(bounds(coords, frag))

        n = len(fragments)
        n_row = int(math.floor(math.sqrt(n)))
        n_col = int(math.ceil(n / n_row))
        spacing = 1.5 * self.bond_length
        x_offsets = np.zeros(n_col + 1)
        y_offsets = np.zeros(n_row + 1)
        for i, (min_x, min_y, max_x, max_y) in enumerate(limits):
            row = n_row - i // n_col - 1
            col = i % n_col
            x_offsets[col + 1] = max(x_offsets[col + 1], max_x - min_x + spacing)
            y_offsets[row + 1] = max(y_offsets[row + 1], max_y - min_y + spacing)
        x_offsets = np.cumsum(x_offsets)
        y_offsets = np.cumsum(y_offsets)
        for i, (frag, (min_x, min_y, max_x, max_y)) in enumerate(zip(fragments, limits)):
            row = n_row - i // n_col - 1
            col = i % n_col
            dest = np.array([
                (x_offsets[col] + x_offsets[col + 1]) / 2,
                (y_offsets[row] + y_offsets[row + 1]) / 2,
            ])
            translate(coords, frag, dest - np.array([(min_x + max_x) / 2, (min_y + max_y) / 2]))
        self.state.placed[:] = True
        self._finish(refine=False, orient=False)


class StructureDiagramGenerator:
    """
    Generates 2D structure diagrams.

    Template libraries are loaded once and shared between runs; every call
    to :meth:`generate_coordinates` works on its own layout state.

    Attributes:
        bond_length: Nominal bond length of the diagrams.
        templates: Ring system template library (None disables lookups).
        macrocycle_templates: Macrocycle outline library.
        refine: Run the overlap refiner.
        select_orientation: Rotate the result to a preferred orientation.
        verbose: Print progress messages.

    Example:
        >>> generator = StructureDiagramGenerator(bond_length=1.5)
        >>> generator.generate_coordinates(mol)
    """

    def __init__(
        self,
        bond_length: float = DEFAULT_BOND_LENGTH,
        templates: Optional[TemplateLibrary] = None,
        macrocycle_templates: Optional[TemplateLibrary] = None,
        use_templates: bool = True,
        refine: bool = True,
        select_orientation: bool = True,
        verbose: bool = False,
    ):
        """
        Initialize the generator.

        Args:
            bond_length: Nominal bond length, must be positive.
            templates: Ring system templates, the bundled library by default.
            macrocycle_templates: Macrocycle outlines, the bundled library
                by default.
            use_templates: If False, ring systems are never looked up.
            refine: If False, skip the overlap refinement.
            select_orientation: If False, keep the initial orientation.
            verbose: If True, print progress messages.

        Raises:
            ValueError: If ``bond_length`` is not positive.
        """
        self.refiner_parameters = RefinerParameters.for_bond_length(bond_length)
        self.bond_length = bond_length
        self.orientation = OrientationParameters(width_diff=2 * bond_length)
        if use_templates:
            self.templates = templates if templates is not None else default_templates()
        else:
            self.templates = None
        self.macrocycle_templates = (
            macrocycle_templates
            if macrocycle_templates is not None
            else default_macrocycle_templates()
        )
        self.refine = refine
        self.select_orientation = select_orientation
        self.verbose = verbose

    def log(self, message: str) -> None:
        """Print message if verbose mode is enabled."""
        if self.verbose:
            print(f"[INFO] {message}")

    def generate_coordinates(
        self,
        mol: Molecule,
        first_bond_vector: Sequence[float] = DEFAULT_BOND_VECTOR,
    ) -> Molecule:
        """
        Assign 2D coordinates and depiction labels to a molecule in place.

        Args:
            mol: The molecule; existing coordinates are replaced.
            first_bond_vector: Direction of the first ring bond placed.

        Returns:
            The same molecule.

        Raises:
            ValueError: If a stereocentre cannot be given a wedge or hatch.
        """
        self.log(f"Generating coordinates for {mol.name or 'molecule'} ({mol.num_atoms} atoms)")
        _Layout(self, mol, first_bond_vector=first_bond_vector).run()
        return mol

    def generate_all(
        self, molecules: Sequence[Molecule], show_progress: bool = True
    ) -> List[Molecule]:
        """Lay out several molecules, with an optional progress bar."""
        iterator = molecules
        if show_progress and self.verbose:
            iterator = tqdm(molecules, desc="Generating layouts", unit="mol")
        return [self.generate_coordinates(mol) for mol in iterator]


def generate_coordinates(mol: Molecule, **kwargs) -> Molecule:
    """
    Lay out a molecule with a generator built from ``kwargs``.

    Example:
        >>> from structure_layout import from_smiles, generate_coordinates
        >>> mol = generate_coordinates(from_smiles("CCO"))
    """
    return StructureDiagramGenerator(**kwargs).generate_coordinates(mol)
