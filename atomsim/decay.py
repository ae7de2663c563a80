"""
Stochastic isotope decay, sampled once per tick.

The per-tick probability follows the half-life law
``P = 1 - 2 ** (-dt / half_life)``. A decaying atom is transmuted in place
into its product (element looked up by atomic number, isotope by mass), loses
every bond and receives a recoil kick. Atoms whose product cannot be resolved
are removed from the simulation.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from atomsim.bonds import clear_bonds
from atomsim.elements import Element, ElementTable, Isotope
from atomsim.entities import Atom, Particle, emit_burst
from atomsim.vectors import vector_add

logger = logging.getLogger("atomsim")

MODE_COLORS = {"alpha": "#FFE066", "beta": "#66E0FF"}
DEFAULT_DECAY_COLOR = "#FFFFFF"
DECAY_BURST_COUNT = 12
RECOIL_IMPULSE = 200.0


@dataclass
class DecayEvent:
    atom_id: int
    parent: str
    product: Optional[str]

    @property
    def removed(self) -> bool:
        return self.product is None


def decay_probability(dt: float, half_life: float) -> float:
    if dt <= 0.0:
        return 0.0
    return 1.0 - math.pow(2.0, -dt / half_life)


def resolve_product(table: ElementTable, isotope: Isotope) -> Optional[Tuple[Element, int]]:
    """Product element and isotope index; falls back to isotope 0 when no mass matches."""
    if isotope.product is None:
        return None
    element = table.get(isotope.product.z)
    if element is None:
        return None
    index = element.find_isotope_index(isotope.product.mass)
    if index == -1:
        index = 0
    return element, index


def process_decay(
    atoms: Dict[int, Atom],
    particles: List[Particle],
    table: ElementTable,
    rng: random.Random,
    dt: float,
) -> List[DecayEvent]:
    """Sample every unstable atom once; mutates ``atoms`` and returns what happened."""
    events: List[DecayEvent] = []
    if dt <= 0.0:
        return events
    for atom in list(atoms.values()):
        isotope = atom.isotope
        if isotope.is_stable:
            continue
        if rng.random() >= decay_probability(dt, float(isotope.half_life)):
            continue
        events.append(_decay_atom(atoms, particles, table, rng, atom, isotope))
    return events


def _decay_atom(
    atoms: Dict[int, Atom],
    particles: List[Particle],
    table: ElementTable,
    rng: random.Random,
    atom: Atom,
    isotope: Isotope,
) -> DecayEvent:
    parent = _label(atom.element, isotope)
    emit_burst(
        particles,
        rng,
        atom.position,
        MODE_COLORS.get(isotope.mode or "", DEFAULT_DECAY_COLOR),
        DECAY_BURST_COUNT,
    )
    clear_bonds(atoms, atom)

    product = resolve_product(table, isotope)
    if product is None:
        del atoms[atom.id]
        logger.info("Decay: %s#%d has no resolvable product, removed", parent, atom.id)
        return DecayEvent(atom_id=atom.id, parent=parent, product=None)

    element, index = product
    atom.transmute(element, index)
    angle = rng.random() * math.pi * 2.0
    recoil = RECOIL_IMPULSE / atom.mass
    atom.velocity = vector_add(atom.velocity, (math.cos(angle) * recoil, math.sin(angle) * recoil))
    child = _label(element, element.isotopes[index])
    logger.debug("Decay: %s#%d -> %s (%s)", parent, atom.id, child, isotope.mode)
    return DecayEvent(atom_id=atom.id, parent=parent, product=child)


def _label(element: Element, isotope: Isotope) -> str:
    return isotope.name or f"{element.symbol}-{round(isotope.mass)}"
