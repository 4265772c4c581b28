#!/usr/bin/env python3
"""
Layout Single Molecule
======================

This example demonstrates how to generate a 2D structure diagram for a
single SMILES string using the structure-layout package.

Usage:
    python layout_single_molecule.py "<SMILES>" [output.sdf]
"""

import sys
from pathlib import Path

from structure_layout import StructureDiagramGenerator, from_smiles
from structure_layout.io import bonds_to_dataframe, export_to_sdf, layout_to_dataframe


def main():
    if len(sys.argv) < 2:
        print('Usage: python layout_single_molecule.py "<SMILES>" [output.sdf]')
        print('\nExample: python layout_single_molecule.py "C[C@H](N)C(=O)O" alanine.sdf')
        sys.exit(1)

    smiles = sys.argv[1]
    output_file = Path(sys.argv[2]) if len(sys.argv) > 2 else Path("layout.sdf")

    print("Structure Layout - Single Molecule")
    print("=" * 50)
    print(f"SMILES: {smiles}")
    print(f"Output file: {output_file}")
    print()

    try:
        mol = from_smiles(smiles, name="example")
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    generator = StructureDiagramGenerator(verbose=True)
    generator.generate_coordinates(mol)

    print("\nAtom coordinates:")
    print(layout_to_dataframe(mol).to_string(index=False))

    bonds = bonds_to_dataframe(mol)
    labelled = bonds[bonds["stereo"] != "NONE"]
    if not labelled.empty:
        print("\nLabelled bonds:")
        print(labelled.to_string(index=False))

    export_to_sdf([mol], output_file)
    print(f"\nSaved layout to {output_file}")


if __name__ == "__main__":
    main()
