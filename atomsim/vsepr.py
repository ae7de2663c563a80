"""
Angular geometry constraints derived from VSEPR electron-domain counts.

Forces are accumulated from one consistent snapshot of positions and
velocities into a per-atom buffer, then applied in a single pass. Each angular
pair is driven by a torque about the centre atom; the tangential force on each
neighbour is torque / lever arm, so both sides of a pair carry equal and
opposite torque and the centre takes the negated force sum.
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Tuple

from atomsim.elements import is_covalent, valence_electrons
from atomsim.entities import Atom
from atomsim.vectors import (
    Vector,
    perpendicular,
    vector_add,
    vector_length,
    vector_scale,
    vector_sub,
)

TWO_PI = 2.0 * math.pi
ForceBuffer = Dict[int, Vector]


def target_geometry(neighbor_count: int, lone_pairs: int) -> Tuple[float, bool]:
    """Return ``(ideal_angle_rad, closed_loop)`` for a centre atom."""
    domains = neighbor_count + lone_pairs
    if domains == 2:
        return math.pi, True
    if domains == 3:
        if lone_pairs == 0:
            return TWO_PI / 3.0, True
        return math.radians(118.0), False
    if domains == 4:
        if lone_pairs == 0:
            # tetrahedral projected onto the plane
            return math.pi / 2.0, True
        if lone_pairs == 1:
            return math.radians(107.0), False
        return math.radians(104.5), False
    if domains == 5:
        return math.radians(72.0), True
    if domains == 6:
        return math.pi / 3.0, True
    return TWO_PI / (neighbor_count or 1), True


def lone_pairs(atom: Atom) -> Optional[int]:
    electrons = valence_electrons(atom.element.z)
    if electrons is None:
        return None
    return max(0, electrons - atom.bond_count) // 2


def ideal_angle(atom: Atom) -> float:
    """Ideal neighbour angle for ``atom`` in its current bonding state."""
    pairs = lone_pairs(atom) or 0
    angle, _ = target_geometry(len(atom.bonds), pairs)
    return angle


def normalize_angle(value: float) -> float:
    """Wrap into (-pi, pi]."""
    while value > math.pi:
        value -= TWO_PI
    while value <= -math.pi:
        value += TWO_PI
    return value


def is_vsepr_eligible(atom: Atom) -> bool:
    return is_covalent(atom.element) and len(atom.bonds) >= 2


def accumulate_vsepr_forces(atoms: Mapping[int, Atom], stiffness: float) -> ForceBuffer:
    """Compute corrective forces for every eligible centre without touching any atom."""
    buffer: ForceBuffer = {}
    for center in atoms.values():
        if not is_vsepr_eligible(center):
            continue
        pairs = lone_pairs(center)
        if pairs is None:
            continue
        neighbors = [atoms[n_id] for n_id in center.bonds if n_id in atoms]
        if len(neighbors) < 2:
            continue
        target, closed = target_geometry(len(neighbors), pairs)

        predicted_center = vector_add(center.position, center.velocity)
        arranged: List[Tuple[float, Atom, Vector, float]] = []
        for neighbor in neighbors:
            offset = vector_sub(vector_add(neighbor.position, neighbor.velocity), predicted_center)
            distance = vector_length(offset) or 1.0
            arranged.append((math.atan2(offset[1], offset[0]), neighbor, offset, distance))
        arranged.sort(key=lambda item: item[0])

        count = len(arranged)
        for index in range(count):
            if not closed and index == count - 1:
                continue
            curr_angle, curr, curr_offset, curr_dist = arranged[index]
            next_angle, nxt, next_offset, next_dist = arranged[(index + 1) % count]

            gap = next_angle - curr_angle
            if gap < 0.0:
                gap += TWO_PI
            torque = normalize_angle(gap - target) * stiffness

            # tangential force = torque / lever arm, along the CCW normal
            force_curr = vector_scale(perpendicular(curr_offset), torque / (curr_dist * curr_dist))
            force_next = vector_scale(perpendicular(next_offset), -torque / (next_dist * next_dist))
            reaction = vector_scale(vector_add(force_curr, force_next), -1.0)

            _accumulate(buffer, curr.id, force_curr)
            _accumulate(buffer, nxt.id, force_next)
            _accumulate(buffer, center.id, reaction)
    return buffer


def apply_force_buffer(
    atoms: Mapping[int, Atom], buffer: ForceBuffer, anchor_id: Optional[int] = None
) -> None:
    for atom_id, force in buffer.items():
        atom = atoms.get(atom_id)
        if atom is None or atom_id == anchor_id:
            continue
        atom.velocity = vector_add(atom.velocity, vector_scale(force, 1.0 / atom.mass))


def apply_vsepr(
    atoms: Mapping[int, Atom], stiffness: float, anchor_id: Optional[int] = None
) -> ForceBuffer:
    buffer = accumulate_vsepr_forces(atoms, stiffness)
    apply_force_buffer(atoms, buffer, anchor_id)
    return buffer


def _accumulate(buffer: ForceBuffer, atom_id: int, force: Vector) -> None:
    current = buffer.get(atom_id)
    buffer[atom_id] = force if current is None else vector_add(current, force)
