"""
Structure Layout
================

A Python package for generating 2D coordinates of chemical structure
diagrams from connectivity alone.

The layout follows the approach of classic structure diagram generators:
ring systems are drawn as regular polygons (or taken from a template
library), chains as zigzags, and the result is refined to remove
overlapping atoms and crossing bonds before wedge/hatch labels are
assigned to stereocentres.

Key Features:
    - Fused, bridged and spiro ring system placement
    - Identity templates keyed by canonical SMILES (RDKit)
    - Macrocycle layout from pre-computed outlines
    - Congestion-driven refinement by rotation, inversion, bending and
      stretching
    - Non-planar (wedge/hatch) labels for tetrahedral and extended
      tetrahedral centres, crossed bonds for unspecified double bonds
    - Salt layout with ion pairing and fragment tiling
    - Special group finalisation (multiple groups, positional variation,
      brackets)
    - Export to CSV, JSON and SDF
    - Command-line interface

Example:
    >>> from structure_layout import StructureDiagramGenerator, from_smiles
    >>> mol = from_smiles("C[C@H](N)C(=O)O")
    >>> StructureDiagramGenerator().generate_coordinates(mol)
    >>> [atom.point for atom in mol.atoms]

    >>> # One-off layout with default settings
    >>> from structure_layout import generate_coordinates
    >>> mol = generate_coordinates(from_smiles("c1ccc2ccccc2c1"))

Author:
    Research Team, UCT Prague

License:
    MIT License
"""

import importlib

__version__ = "1.0.0"
__author__ = "Research Team, UCT Prague"
__email__ = "research@vscht.cz"
__license__ = "MIT"

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__email__",
    "__license__",
    # Generator
    "StructureDiagramGenerator",
    "generate_coordinates",
    "select_orientation",
    # Model
    "Molecule",
    "Atom",
    "Bond",
    "BondOrder",
    "BondStereo",
    "Sgroup",
    "SgroupType",
    "TetrahedralStereo",
    "ExtendedTetrahedral",
    "DoubleBondStereo",
    # Configuration
    "RefinerParameters",
    "OrientationParameters",
    "DEFAULT_BOND_LENGTH",
    # Templates
    "TemplateLibrary",
    "default_templates",
    "default_macrocycle_templates",
    # Layout steps
    "LayoutRefiner",
    "Congestion",
    "assign_nonplanar_labels",
    "correct_geometric_configuration",
    "finalize_layout",
    # I/O
    "from_rdkit",
    "from_smiles",
    "to_rdkit",
    "to_molblock",
    "load_smiles_file",
    "load_molecules",
    "layout_to_dataframe",
    "export_to_csv",
    "export_to_json",
    "export_to_sdf",
]

# Lazy import mapping: name -> (module_path, attribute_name)
_LAZY_IMPORTS = {
    # Generator
    "StructureDiagramGenerator": (
        "structure_layout.generator",
        "StructureDiagramGenerator",
    ),
    "generate_coordinates": ("structure_layout.generator", "generate_coordinates"),
    "select_orientation": ("structure_layout.generator", "select_orientation"),
    # Model
    "Molecule": ("structure_layout.molecule", "Molecule"),
    "Atom": ("structure_layout.molecule", "Atom"),
    "Bond": ("structure_layout.molecule", "Bond"),
    "BondOrder": ("structure_layout.molecule", "BondOrder"),
    "BondStereo": ("structure_layout.molecule", "BondStereo"),
    "Sgroup": ("structure_layout.molecule", "Sgroup"),
    "SgroupType": ("structure_layout.molecule", "SgroupType"),
    "TetrahedralStereo": ("structure_layout.molecule", "TetrahedralStereo"),
    "ExtendedTetrahedral": ("structure_layout.molecule", "ExtendedTetrahedral"),
    "DoubleBondStereo": ("structure_layout.molecule", "DoubleBondStereo"),
    # Configuration
    "RefinerParameters": ("structure_layout.parameters", "RefinerParameters"),
    "OrientationParameters": ("structure_layout.parameters", "OrientationParameters"),
    "DEFAULT_BOND_LENGTH": ("structure_layout.parameters", "DEFAULT_BOND_LENGTH"),
    # Templates
    "TemplateLibrary": ("structure_layout.templates", "TemplateLibrary"),
    "default_templates": ("structure_layout.templates", "default_templates"),
    "default_macrocycle_templates": (
        "structure_layout.templates",
        "default_macrocycle_templates",
    ),
    # Layout steps
    "LayoutRefiner": ("structure_layout.refiner", "LayoutRefiner"),
    "Congestion": ("structure_layout.congestion", "Congestion"),
    "assign_nonplanar_labels": (
        "structure_layout.nonplanar",
        "assign_nonplanar_labels",
    ),
    "correct_geometric_configuration": (
        "structure_layout.geometric",
        "correct_geometric_configuration",
    ),
    "finalize_layout": ("structure_layout.sgroup_layout", "finalize_layout"),
    # I/O
    "from_rdkit": ("structure_layout.io", "from_rdkit"),
    "from_smiles": ("structure_layout.io", "from_smiles"),
    "to_rdkit": ("structure_layout.io", "to_rdkit"),
    "to_molblock": ("structure_layout.io", "to_molblock"),
    "load_smiles_file": ("structure_layout.io", "load_smiles_file"),
    "load_molecules": ("structure_layout.io", "load_molecules"),
    "layout_to_dataframe": ("structure_layout.io", "layout_to_dataframe"),
    "export_to_csv": ("structure_layout.io", "export_to_csv"),
    "export_to_json": ("structure_layout.io", "export_to_json"),
    "export_to_sdf": ("structure_layout.io", "export_to_sdf"),
}


def __getattr__(name):
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        val = getattr(module, attr_name)
        globals()[name] = val  # Cache for subsequent access
        return val
    raise AttributeError(f"module 'structure_layout' has no attribute {name!r}")
