"""
Heuristic bond-graph corrections run at the start of every substep.

Pairwise bonding alone can lock atoms into implausible arrangements (H-H next
to a free oxygen, hydrogens stuck on sulfur instead of forming hydroxyls).
These rules break such bonds and throw the freed atom toward a better partner
so the interaction pass can form the preferred bond.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Mapping, Optional

from atomsim.bonds import break_bond
from atomsim.entities import Atom
from atomsim.vectors import unit_or_default, vector_add, vector_scale, vector_length_sq, vector_sub

logger = logging.getLogger("atomsim")

HYDROGEN_Z = 1
OXYGEN_Z = 8
HUB_SEARCH_RADIUS_FACTOR = 4.5
HUB_KICK = 10.0
OLD_PARTNER_PUSH = 5.0
ACID_PARTNER_MIN_CAPACITY = 5
ACID_SEARCH_RADIUS_FACTOR = 10.0
ACID_SEARCH_RADIUS_MIN = 120.0


def anneal_atoms(
    atoms: Mapping[int, Atom],
    drag_group: Optional[AbstractSet[int]],
    max_speed: float,
) -> int:
    """Apply both correction rules; returns the number of bonds rearranged."""
    corrections = 0
    for atom in list(atoms.values()):
        if not atom.bonds:
            continue
        if drag_group and atom.id in drag_group:
            continue
        if _migrate_homonuclear(atoms, atom):
            corrections += 1
            continue
        if _correct_acidic_hydrogen(atoms, atom, max_speed):
            corrections += 1
    return corrections


def _migrate_homonuclear(atoms: Mapping[int, Atom], atom: Atom) -> bool:
    if atom.capacity > 2:
        return False
    partner_id = next(
        (
            pid
            for pid in atom.bonds
            if pid in atoms and atoms[pid].element.z == atom.element.z
        ),
        None,
    )
    if partner_id is None:
        return False

    hub = _find_better_hub(atoms, atom, partner_id)
    if hub is None:
        return False

    break_bond(atoms, atom, partner_id)
    toward_hub, _ = unit_or_default(vector_sub(hub.position, atom.position))
    atom.velocity = vector_add(atom.velocity, vector_scale(toward_hub, HUB_KICK))
    old_partner = atoms.get(partner_id)
    if old_partner is not None:
        away, _ = unit_or_default(vector_sub(atom.position, old_partner.position))
        atom.velocity = vector_add(atom.velocity, vector_scale(away, OLD_PARTNER_PUSH))
    logger.debug(
        "Anneal: %s#%d left %s#%d for hub %s#%d",
        atom.element.symbol, atom.id, atom.element.symbol, partner_id, hub.element.symbol, hub.id,
    )
    return True


def _find_better_hub(atoms: Mapping[int, Atom], atom: Atom, partner_id: int) -> Optional[Atom]:
    search_sq = (atom.radius * HUB_SEARCH_RADIUS_FACTOR) ** 2
    for candidate in atoms.values():
        if candidate.id in (atom.id, partner_id) or candidate.id in atom.bonds:
            continue
        if candidate.element.z == atom.element.z:
            continue
        if candidate.capacity <= atom.capacity or candidate.is_full:
            continue
        if vector_length_sq(vector_sub(candidate.position, atom.position)) < search_sq:
            return candidate
    return None


def _correct_acidic_hydrogen(atoms: Mapping[int, Atom], atom: Atom, max_speed: float) -> bool:
    if atom.element.z != HYDROGEN_Z:
        return False
    partner_id = next(iter(atom.bonds))
    partner = atoms.get(partner_id)
    if partner is None or partner.capacity < ACID_PARTNER_MIN_CAPACITY:
        return False

    oxygen = _find_free_oxygen(atoms, atom, partner_id)
    if oxygen is None:
        return False

    break_bond(atoms, atom, partner_id)
    direction, _ = unit_or_default(vector_sub(oxygen.position, atom.position))
    atom.velocity = vector_scale(direction, max_speed)
    logger.debug(
        "Anneal: H#%d moved off %s#%d toward O#%d",
        atom.id, partner.element.symbol, partner_id, oxygen.id,
    )
    return True


def _find_free_oxygen(atoms: Mapping[int, Atom], hydrogen: Atom, partner_id: int) -> Optional[Atom]:
    oxygens = [
        o
        for o in atoms.values()
        if o.element.z == OXYGEN_Z and o.id != partner_id and not o.is_full
    ]
    # prefer an oxygen already on the same partner (hydroxyl bridge)
    for oxygen in oxygens:
        if partner_id in oxygen.bonds:
            return oxygen
    radius = max(hydrogen.radius * ACID_SEARCH_RADIUS_FACTOR, ACID_SEARCH_RADIUS_MIN)
    for oxygen in oxygens:
        if vector_length_sq(vector_sub(oxygen.position, hydrogen.position)) < radius * radius:
            return oxygen
    return None
