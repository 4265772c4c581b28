"""
Layout Parameters
=================

Frozen parameter sets used by the layout refiner and the orientation step.

All distances scale with the nominal bond length. The defaults are tuned
for a bond length of 1.5 units; :meth:`RefinerParameters.for_bond_length`
derives a consistent set for any other length.

Usage:
    >>> from structure_layout.parameters import RefinerParameters
    >>> params = RefinerParameters.for_bond_length(1.5)
    >>> params.min_dist
    0.75
    >>> round(params.min_score, 4)
    1.7778
"""

import math
from dataclasses import dataclass

DEFAULT_BOND_LENGTH = 1.5


@dataclass(frozen=True)
class RefinerParameters:
    """
    Thresholds and step sizes of the overlap-resolution refiner.

    Attributes:
        bond_length: Nominal bond length the values were derived for.
        min_dist: Minimum allowed distance between unbonded atoms.
        min_score: Congestion contribution of a pair at ``min_dist``.
        stretch_step: Length added to a bond per stretch attempt.
        bend_step: Angle (radians) a bond is bent per bend attempt.
        max_bond_length: Upper bound for stretched bonds.
        improvement_pct_threshold: Relative improvement required for
            bend, stretch and macrocycle inversion (fraction of the score).
        rotate_delta_threshold: Absolute improvement that accepts a
            reflection outright.
        symmetric_delta: Reflections changing the score by less than this
            mark the bond as probably symmetric.
        crossing_score: Minimum contribution of a pair with crossing
            incident bonds to count as congested.
        max_iterations: Upper bound on refinement rounds.
        max_attempts: Increasingly aggressive bend/stretch attempts per pair.
    """

    bond_length: float = DEFAULT_BOND_LENGTH
    min_dist: float = DEFAULT_BOND_LENGTH / 2
    min_score: float = 1 / (DEFAULT_BOND_LENGTH / 2) ** 2
    stretch_step: float = 0.32 * DEFAULT_BOND_LENGTH
    bend_step: float = math.radians(10)
    max_bond_length: float = 2 * DEFAULT_BOND_LENGTH
    improvement_pct_threshold: float = 0.02
    rotate_delta_threshold: float = 5.0
    symmetric_delta: float = 0.1
    crossing_score: float = 1 / (4 * DEFAULT_BOND_LENGTH / 3) ** 2
    max_iterations: int = 10
    max_attempts: int = 3

    @classmethod
    def for_bond_length(cls, bond_length: float) -> "RefinerParameters":
        """
        Derive the distance dependent values from a bond length.

        Raises:
            ValueError: If ``bond_length`` is not positive.
        """
        if bond_length <= 0:
            raise ValueError(f"bond length must be positive, got {bond_length}")
        min_dist = bond_length / 2
        return cls(
            bond_length=bond_length,
            min_dist=min_dist,
            min_score=1 / (min_dist * min_dist),
            stretch_step=0.32 * bond_length,
            max_bond_length=2 * bond_length,
            crossing_score=1 / (4 * bond_length / 3) ** 2,
        )


@dataclass(frozen=True)
class OrientationParameters:
    """
    Settings for choosing the final rotation of a diagram.

    Attributes:
        width_diff: Widths closer than this are considered equal and the
            alignment count decides.
        alignment_diff: Required gain in aligned bonds to prefer a
            rotation of comparable width.
        step: Rotation increment in radians.
        num_steps: Number of rotations tried after the initial one.
        aligned_angle: Bond angle (degrees from horizontal) counted as
            aligned.
        aligned_tolerance: Tolerance (degrees) of the alignment test.
    """

    width_diff: float = 2 * DEFAULT_BOND_LENGTH
    alignment_diff: int = 1
    step: float = math.radians(30)
    num_steps: int = 11
    aligned_angle: float = 30.0
    aligned_tolerance: float = 1.0
