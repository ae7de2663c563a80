"""
Mutable simulation entities: atoms and the visual-only particles the engine emits.

Unit conventions: positions are canvas pixels, velocities are pixels per
substep, masses are isotope masses in u (used directly as inertial mass).
"""

from __future__ import annotations

import math
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import List

from atomsim.elements import Element, Isotope, valence_capacity
from atomsim.vectors import Vector, vector_add, vector_zero

PARTICLE_LIFE_STEP = 0.02


def atom_radius(mass: float) -> float:
    return 10.0 + math.pow(mass, 0.33) * 3.0


@dataclass(eq=False)
class Atom:
    id: int
    element: Element
    isotope_index: int
    position: Vector
    velocity: Vector = field(default_factory=vector_zero)
    # partner id -> bond order
    bonds: "Counter[int]" = field(default_factory=Counter)
    mass: float = 0.0
    radius: float = 0.0

    def __post_init__(self) -> None:
        self.refresh_derived()

    @property
    def isotope(self) -> Isotope:
        return self.element.isotopes[self.isotope_index]

    @property
    def bond_count(self) -> int:
        return sum(self.bonds.values())

    @property
    def capacity(self) -> int:
        return valence_capacity(self.element)

    @property
    def free_valence(self) -> int:
        return self.capacity - self.bond_count

    @property
    def is_full(self) -> bool:
        return self.bond_count >= self.capacity

    def refresh_derived(self) -> None:
        self.mass = self.isotope.mass
        self.radius = atom_radius(self.mass)

    def transmute(self, element: Element, isotope_index: int) -> None:
        """Swap identity in place; callers are responsible for clearing bonds."""
        self.element = element
        self.isotope_index = isotope_index
        self.refresh_derived()


@dataclass(eq=False)
class Particle:
    position: Vector
    velocity: Vector
    color: str
    size: float
    life: float = 1.0
    max_life: float = 1.0

    def advance(self) -> None:
        self.position = vector_add(self.position, self.velocity)
        self.life -= PARTICLE_LIFE_STEP

    @property
    def alive(self) -> bool:
        return self.life > 0.0


def emit_burst(
    particles: List[Particle],
    rng: random.Random,
    position: Vector,
    color: str,
    count: int,
) -> None:
    """Append ``count`` particles flying out of ``position`` in random directions."""
    for _ in range(count):
        angle = rng.random() * math.pi * 2.0
        speed = rng.random() * 5.0 + 2.0
        particles.append(
            Particle(
                position=position,
                velocity=(math.cos(angle) * speed, math.sin(angle) * speed),
                color=color,
                size=rng.random() * 3.0 + 1.0,
            )
        )
