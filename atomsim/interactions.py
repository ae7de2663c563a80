"""
Pairwise forces and the reaction rule set.

Every unordered atom pair is visited once per substep. Bonded pairs get a
damped spring whose rest length shrinks with bond order; overlapping unbonded
pairs get a repulsive spring. Pairs inside the reaction range may then form a
bond, undergo kinetic insertion, or dissociate on violent impact. Pairs that
touch the active drag group keep their forces but skip bond breaking and
chemistry.
"""

from __future__ import annotations

import logging
import math
import random
from typing import AbstractSet, List, Mapping, Optional

from atomsim.bonds import add_bond, bond_order, break_bond, decrement_bond
from atomsim.entities import Atom, Particle, emit_burst
from atomsim.settings import PhysicsSettings
from atomsim.vectors import (
    Vector,
    perpendicular,
    vector_add,
    vector_dot,
    vector_length_sq,
    vector_scale,
    vector_sub,
)
from atomsim.vsepr import ideal_angle

logger = logging.getLogger("atomsim")

HYDROGEN_Z = 1
OXYGEN_Z = 8
MAX_BOND_ORDER = 3
INTERACTION_RANGE_FACTOR = 3.0
STRETCH_BREAK_FACTOR = 12.0
REACTION_RANGE_FACTOR = 1.5
REST_LENGTH_BASE = 0.9
REST_LENGTH_PER_ORDER = 0.12
PARTNER_SEARCH_RADIUS_FACTOR = 8.0
PARTNER_SEARCH_RADIUS_MIN = 100.0
HIGH_CAPACITY = 5
RING_STRAIN_LIMIT = math.radians(85.0)
INSERTION_REACH_FACTOR = 3.0
INSERTION_DAMPING = 0.1
DISSOCIATION_DAMPING = 0.3
INSERTION_COLOR = "#FFFFFF"
DISSOCIATION_COLOR = "#FFA500"


def resolve_interactions(
    atoms: Mapping[int, Atom],
    particles: List[Particle],
    rng: random.Random,
    physics: PhysicsSettings,
    anchor_id: Optional[int] = None,
    drag_group: Optional[AbstractSet[int]] = None,
) -> None:
    ordered = list(atoms.values())
    count = len(ordered)
    for i in range(count):
        atom_a = ordered[i]
        for j in range(i + 1, count):
            _resolve_pair(atoms, particles, rng, physics, atom_a, ordered[j], anchor_id, drag_group)


def rest_length(combined_radius: float, order: int) -> float:
    return combined_radius * (REST_LENGTH_BASE - REST_LENGTH_PER_ORDER * (order - 1))


def _resolve_pair(
    atoms: Mapping[int, Atom],
    particles: List[Particle],
    rng: random.Random,
    physics: PhysicsSettings,
    a: Atom,
    b: Atom,
    anchor_id: Optional[int],
    drag_group: Optional[AbstractSet[int]],
) -> None:
    delta = vector_sub(b.position, a.position)
    dist_sq = vector_length_sq(delta)
    combined = a.radius + b.radius
    order = bond_order(a, b.id)
    bonded = order > 0

    if not bonded and dist_sq > (combined * INTERACTION_RANGE_FACTOR) ** 2:
        return
    distance = math.sqrt(dist_sq) or 0.001
    protected = bool(drag_group) and (a.id in drag_group or b.id in drag_group)

    if bonded and not protected and distance > combined * STRETCH_BREAK_FACTOR:
        break_bond(atoms, a, b.id)
        logger.debug("Bond %d-%d overstretched (%.1f), severed", a.id, b.id, distance)
        return
    if bonded and (a.bond_count > a.capacity or b.bond_count > b.capacity):
        break_bond(atoms, a, b.id)
        logger.debug("Bond %d-%d severed to restore valence", a.id, b.id)
        return

    normal = (delta[0] / distance, delta[1] / distance)
    inv_mass_a = 0.0 if a.id == anchor_id else 1.0 / a.mass
    inv_mass_b = 0.0 if b.id == anchor_id else 1.0 / b.mass
    if inv_mass_a + inv_mass_b == 0.0:
        return

    if bonded:
        _apply_bond_force(physics, a, b, normal, distance, combined, order, inv_mass_a, inv_mass_b)
    elif distance < combined:
        _apply_collision_force(physics, a, b, normal, combined - distance, inv_mass_a, inv_mass_b)

    if not protected and distance < combined * REACTION_RANGE_FACTOR:
        _react(atoms, particles, rng, physics, a, b, order)


def _apply_bond_force(
    physics: PhysicsSettings,
    a: Atom,
    b: Atom,
    normal: Vector,
    distance: float,
    combined: float,
    order: int,
    inv_mass_a: float,
    inv_mass_b: float,
) -> None:
    displacement = distance - rest_length(combined, order)
    relative = vector_sub(b.velocity, a.velocity)
    tangent = perpendicular(normal)

    normal_total = displacement * physics.bond_stiffness * order
    normal_total += vector_dot(relative, normal) * physics.bond_damping
    tangent_total = vector_dot(relative, tangent) * physics.tangential_damping

    force = vector_add(vector_scale(normal, normal_total), vector_scale(tangent, tangent_total))
    _exchange(a, b, force, inv_mass_a, inv_mass_b)


def _apply_collision_force(
    physics: PhysicsSettings,
    a: Atom,
    b: Atom,
    normal: Vector,
    overlap: float,
    inv_mass_a: float,
    inv_mass_b: float,
) -> None:
    approach = vector_dot(vector_sub(b.velocity, a.velocity), normal)
    total = overlap * physics.collision_stiffness
    if approach < 0.0:
        total += approach * physics.collision_damping
    _exchange(a, b, vector_scale(normal, -total), inv_mass_a, inv_mass_b)


def _exchange(a: Atom, b: Atom, force: Vector, inv_mass_a: float, inv_mass_b: float) -> None:
    a.velocity = vector_add(a.velocity, vector_scale(force, inv_mass_a))
    b.velocity = vector_sub(b.velocity, vector_scale(force, inv_mass_b))


def _react(
    atoms: Mapping[int, Atom],
    particles: List[Particle],
    rng: random.Random,
    physics: PhysicsSettings,
    a: Atom,
    b: Atom,
    order: int,
) -> None:
    relative = vector_sub(b.velocity, a.velocity)
    energetic = vector_length_sq(relative) > physics.reaction_threshold_sq

    if order < MAX_BOND_ORDER and a.free_valence > 0 and b.free_valence > 0:
        if _formation_blocked(atoms, a, b, order) or _ring_strained(atoms, a, b):
            return
        add_bond(a, b)
        logger.debug(
            "Bond %s#%d-%s#%d now order %d",
            a.element.symbol, a.id, b.element.symbol, b.id, order + 1,
        )
    elif order == 0 and energetic:
        if a.free_valence >= 2 or b.free_valence >= 2:
            if not _kinetic_insertion(atoms, particles, rng, a, b):
                _kinetic_insertion(atoms, particles, rng, b, a)
        else:
            _impact_dissociation(atoms, particles, rng, a, b)


def _formation_blocked(atoms: Mapping[int, Atom], a: Atom, b: Atom, order: int) -> bool:
    """True when either atom should hold out for a better partner nearby."""
    if order > 0:
        # new connections outrank upgrading an existing bond
        return _has_better_option(atoms, a, b.id, 1) or _has_better_option(atoms, b, a.id, 1)

    if a.element.z == b.element.z:
        if _has_better_option(atoms, a, b.id, b.capacity + 1):
            return True
        if _has_better_option(atoms, b, a.id, a.capacity + 1):
            return True
        return False
    if a.element.z == HYDROGEN_Z and b.capacity >= HIGH_CAPACITY:
        return _has_better_option(atoms, a, b.id, 1, required_z=OXYGEN_Z)
    if b.element.z == HYDROGEN_Z and a.capacity >= HIGH_CAPACITY:
        return _has_better_option(atoms, b, a.id, 1, required_z=OXYGEN_Z)
    return _has_better_option(atoms, a, b.id, 1) or _has_better_option(atoms, b, a.id, 1)


def _has_better_option(
    atoms: Mapping[int, Atom],
    subject: Atom,
    ignore_id: int,
    min_capacity: int,
    required_z: Optional[int] = None,
) -> bool:
    # TODO: replace the linear scan with a spatial hash once scenes routinely exceed ~200 atoms.
    radius = max(subject.radius * PARTNER_SEARCH_RADIUS_FACTOR, PARTNER_SEARCH_RADIUS_MIN)
    radius_sq = radius * radius
    for candidate in atoms.values():
        if candidate.id in (subject.id, ignore_id) or candidate.id in subject.bonds:
            continue
        if required_z is not None and candidate.element.z != required_z:
            continue
        if candidate.is_full or candidate.capacity < min_capacity:
            continue
        if vector_length_sq(vector_sub(candidate.position, subject.position)) < radius_sq:
            return True
    return False


def _ring_strained(atoms: Mapping[int, Atom], a: Atom, b: Atom) -> bool:
    """A 3-ring through a shared neighbour is rejected when that neighbour wants a wide angle."""
    for common_id in a.bonds:
        if common_id not in b.bonds:
            continue
        common = atoms.get(common_id)
        if common is not None and ideal_angle(common) > RING_STRAIN_LIMIT:
            return True
    return False


def _kinetic_insertion(
    atoms: Mapping[int, Atom],
    particles: List[Particle],
    rng: random.Random,
    incoming: Atom,
    target: Atom,
) -> bool:
    if incoming.free_valence < 2 or len(target.bonds) != 1:
        return False
    partner = atoms.get(next(iter(target.bonds)))
    if partner is None or partner.id == incoming.id:
        return False
    if bond_order(incoming, partner.id) >= MAX_BOND_ORDER:
        return False
    reach = (incoming.radius + partner.radius) * INSERTION_REACH_FACTOR
    if vector_length_sq(vector_sub(partner.position, incoming.position)) >= reach * reach:
        return False

    break_bond(atoms, target, partner.id)
    add_bond(incoming, target)
    add_bond(incoming, partner)
    emit_burst(particles, rng, incoming.position, INSERTION_COLOR, 5)
    for atom in (incoming, target, partner):
        atom.velocity = vector_scale(atom.velocity, INSERTION_DAMPING)
    logger.debug(
        "Insertion: %s#%d split %s#%d-%s#%d",
        incoming.element.symbol, incoming.id,
        target.element.symbol, target.id, partner.element.symbol, partner.id,
    )
    return True


def _impact_dissociation(
    atoms: Mapping[int, Atom],
    particles: List[Particle],
    rng: random.Random,
    a: Atom,
    b: Atom,
) -> bool:
    broken_a = _dissociate_one(atoms, rng, a)
    broken_b = _dissociate_one(atoms, rng, b)
    if not (broken_a or broken_b):
        return False
    midpoint = vector_scale(vector_add(a.position, b.position), 0.5)
    emit_burst(particles, rng, midpoint, DISSOCIATION_COLOR, 6)
    a.velocity = vector_scale(a.velocity, DISSOCIATION_DAMPING)
    b.velocity = vector_scale(b.velocity, DISSOCIATION_DAMPING)
    logger.debug("Impact dissociation between %d and %d", a.id, b.id)
    return True


def _dissociate_one(atoms: Mapping[int, Atom], rng: random.Random, atom: Atom) -> bool:
    if atom.bond_count == 0 or atom.bond_count < atom.capacity:
        return False
    # weighted by bond order
    partner_id = rng.choice(list(atom.bonds.elements()))
    return decrement_bond(atoms, atom, partner_id)
