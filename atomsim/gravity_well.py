"""
Timed, staged attractor used to crunch a set of atoms into bonding range.

A well pulls every target atom toward its centre with a spring force and
multiplies its velocity by a damping factor. The strength of both depends on
how far the countdown has progressed: gather, then compress, then crunch.
Also holds the helpers that feed it: clearing space before a recipe spawns
and the lasso point-in-polygon test.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Set

from atomsim.bonds import connected_group
from atomsim.entities import Atom
from atomsim.vectors import (
    Vector,
    unit_or_default,
    vector_add,
    vector_length,
    vector_scale,
    vector_sub,
)


@dataclass(frozen=True)
class WellRegime:
    name: str
    pull: float
    damping: float


GATHER = WellRegime("gather", pull=0.05, damping=0.90)
COMPRESS = WellRegime("compress", pull=0.15, damping=0.80)
CRUNCH = WellRegime("crunch", pull=0.8, damping=0.3)
COMPRESS_AFTER = 0.5
CRUNCH_AFTER = 0.85


def regime_for(progress: float) -> WellRegime:
    if progress > CRUNCH_AFTER:
        return CRUNCH
    if progress > COMPRESS_AFTER:
        return COMPRESS
    return GATHER


@dataclass
class GravityWell:
    target_ids: List[int]
    center: Vector
    life: float
    max_life: float
    start_radius: float = 130.0
    last_regime: Optional[WellRegime] = field(default=None, compare=False)

    @classmethod
    def create(cls, target_ids: Sequence[int], center: Vector, duration: float, start_radius: float) -> "GravityWell":
        return cls(
            target_ids=list(target_ids),
            center=center,
            life=duration,
            max_life=duration,
            start_radius=start_radius,
        )

    @property
    def progress(self) -> float:
        if self.max_life <= 0.0:
            return 1.0
        return 1.0 - self.life / self.max_life

    @property
    def expired(self) -> bool:
        return self.life <= 0.0

    def step(self, atoms: Mapping[int, Atom], substeps: int) -> WellRegime:
        """Apply one substep of pull and damping, then count down."""
        regime = regime_for(self.progress)
        for atom_id in self.target_ids:
            atom = atoms.get(atom_id)
            if atom is None:
                continue
            pull = vector_scale(vector_sub(self.center, atom.position), regime.pull)
            atom.velocity = vector_scale(vector_add(atom.velocity, pull), regime.damping)
        self.life -= 1.0 / substeps
        self.last_regime = regime
        return regime


def clear_spawn_zone(
    atoms: Mapping[int, Atom],
    center: Vector,
    clear_radius: float = 250.0,
    margin: float = 50.0,
    kick: float = 8.0,
) -> List[Set[int]]:
    """
    Push every molecule touching the spawn zone radially outward.

    Each connected group with at least one atom inside ``clear_radius`` is
    translated so its centroid lands at ``clear_radius + margin`` from the
    centre, and its velocity is set to ``kick`` along the outward direction.
    Returns the groups that were moved.
    """
    visited: Set[int] = set()
    moved: List[Set[int]] = []
    for atom in list(atoms.values()):
        if atom.id in visited:
            continue
        group_ids = connected_group(atoms, atom.id)
        visited |= group_ids
        members = [atoms[atom_id] for atom_id in group_ids if atom_id in atoms]
        if not members:
            continue
        if not any(vector_length(vector_sub(m.position, center)) < clear_radius for m in members):
            continue

        centroid = vector_scale(
            (sum(m.position[0] for m in members), sum(m.position[1] for m in members)),
            1.0 / len(members),
        )
        offset = vector_sub(centroid, center)
        distance = vector_length(offset)
        if distance < 0.1:
            outward = (1.0, 0.0)
        else:
            outward, _ = unit_or_default(offset)
        push = max(0.0, clear_radius + margin - distance)
        shift = vector_scale(outward, push)
        for member in members:
            member.position = vector_add(member.position, shift)
            member.velocity = vector_scale(outward, kick)
        moved.append(group_ids)
    return moved


def point_in_polygon(point: Vector, polygon: Sequence[Vector]) -> bool:
    """Ray casting test with a bounding-box early out."""
    if len(polygon) < 3:
        return False
    xs = [p[0] for p in polygon]
    ys = [p[1] for p in polygon]
    x, y = point
    if x < min(xs) or x > max(xs) or y < min(ys) or y > max(ys):
        return False

    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside
