"""
AtomSim simulation engine.

Unit conventions:
    - Positions: canvas pixels, origin top-left
    - Velocities: pixels per substep
    - Mass: isotope mass in u, used directly as inertial mass
    - Time: one ``tick()`` per rendered frame; decay uses
      ``frame_dt * time_scale`` seconds of simulated time per tick

Per tick the engine ages particles, samples decay once, re-validates the drag
anchor, then runs ``substeps`` iterations of:

    annealing -> drag force -> gravity well -> VSEPR -> interactions -> integration

Outside code drives the engine through the command methods below and reads
state back through ``snapshot()``; it never mutates atoms or bonds directly.
"""

from __future__ import annotations

import itertools
import logging
import math
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from atomsim.annealing import anneal_atoms
from atomsim.bonds import add_bond, bond_order, clear_bonds, connected_group
from atomsim.decay import DecayEvent, process_decay
from atomsim.elements import ElementTable, load_element_table
from atomsim.entities import Atom, Particle, emit_burst
from atomsim.gravity_well import GravityWell, clear_spawn_zone, point_in_polygon
from atomsim.interactions import MAX_BOND_ORDER, resolve_interactions
from atomsim.settings import SimulationSettings
from atomsim.vectors import (
    Vector,
    vector_add,
    vector_length,
    vector_length_sq,
    vector_scale,
    vector_sub,
)
from atomsim.vsepr import apply_vsepr

logger = logging.getLogger("atomsim")

SPAWN_JITTER = 0.5
RANDOM_SPAWN_SPREAD = 100.0
DELETE_BURST_COLOR = "#FFFFFF"
DELETE_BURST_COUNT = 10
LASSO_MIN_RADIUS = 100.0
LASSO_RADIUS_MARGIN = 50.0
PICK_SCALE = 1.5


@dataclass
class AtomState:
    id: int
    symbol: str
    atomic_number: int
    isotope_index: int
    color: str
    position: Vector
    velocity: Vector
    radius: float
    mass: float
    bonds: Dict[int, int]


@dataclass
class BondState:
    atom_i: int
    atom_j: int
    order: int = 1


@dataclass
class ParticleState:
    position: Vector
    color: str
    size: float
    life: float


@dataclass
class OverlayState:
    well_target_ids: List[int] = field(default_factory=list)
    well_center: Optional[Vector] = None
    well_progress: float = 0.0
    well_start_radius: float = 0.0
    lasso_points: List[Vector] = field(default_factory=list)
    drag_anchor_id: Optional[int] = None
    drag_group: Set[int] = field(default_factory=set)


@dataclass
class SimulationSnapshot:
    tick_index: int
    time_elapsed: float
    time_scale: float
    atom_states: List[AtomState]
    bonds: List[BondState] = field(default_factory=list)
    particles: List[ParticleState] = field(default_factory=list)
    overlay: OverlayState = field(default_factory=OverlayState)


@dataclass
class DragState:
    anchor_id: Optional[int] = None
    goal: Optional[Vector] = None
    group: Set[int] = field(default_factory=set)

    @property
    def active(self) -> bool:
        return self.anchor_id is not None

    def clear(self) -> None:
        self.anchor_id = None
        self.goal = None
        self.group = set()


@dataclass
class LassoState:
    active: bool = False
    points: List[Vector] = field(default_factory=list)

    def clear(self) -> None:
        self.active = False
        self.points = []


class Simulation:
    """
    Owns the atom set, bond graph, particles and interaction state, and advances
    them one frame per ``tick()``.
    """

    def __init__(
        self,
        settings: Optional[SimulationSettings] = None,
        element_table: Optional[ElementTable] = None,
    ):
        self.settings = settings or SimulationSettings()
        self.element_table = element_table or load_element_table()
        self.atoms: Dict[int, Atom] = {}
        self.particles: List[Particle] = []
        self.random = random.Random(self.settings.seed)
        self.time_scale: float = max(0.0, self.settings.time_scale)
        self.current_tick: int = 0
        self.time_elapsed: float = 0.0
        self.gravity_well: Optional[GravityWell] = None
        self.drag = DragState()
        self.lasso = LassoState()
        self.last_decay_events: List[DecayEvent] = []
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------ commands

    def spawn(
        self,
        position: Vector,
        atomic_number: int,
        isotope_index: int = 0,
        velocity: Optional[Vector] = None,
    ) -> Optional[int]:
        """Create an atom; unknown elements or isotope indices are ignored."""
        element = self.element_table.get(atomic_number)
        if element is None:
            logger.debug("Spawn ignored: unknown atomic number %s", atomic_number)
            return None
        if not 0 <= isotope_index < len(element.isotopes):
            logger.debug("Spawn ignored: %s has no isotope %s", element.symbol, isotope_index)
            return None
        if velocity is None:
            velocity = (
                (self.random.random() - 0.5) * SPAWN_JITTER,
                (self.random.random() - 0.5) * SPAWN_JITTER,
            )
        atom = Atom(
            id=next(self._ids),
            element=element,
            isotope_index=isotope_index,
            position=(float(position[0]), float(position[1])),
            velocity=(float(velocity[0]), float(velocity[1])),
        )
        self.atoms[atom.id] = atom
        logger.debug("Spawned %s#%d at (%.1f, %.1f)", element.symbol, atom.id, *atom.position)
        return atom.id

    def spawn_random(self, atomic_number: int, isotope_index: int = 0) -> Optional[int]:
        """Spawn near the canvas centre with a little scatter."""
        cx, cy = self.settings.center
        position = (
            cx + (self.random.random() - 0.5) * RANDOM_SPAWN_SPREAD,
            cy + (self.random.random() - 0.5) * RANDOM_SPAWN_SPREAD,
        )
        return self.spawn(position, atomic_number, isotope_index)

    def seed_bond(self, atom_a: int, atom_b: int) -> bool:
        """Pre-bond two atoms when building a scenario; respects valence and order limits."""
        a = self.atoms.get(atom_a)
        b = self.atoms.get(atom_b)
        if a is None or b is None or a is b:
            return False
        if bond_order(a, b.id) >= MAX_BOND_ORDER or a.free_valence <= 0 or b.free_valence <= 0:
            return False
        add_bond(a, b)
        return True

    def delete(self, atom_id: int) -> bool:
        atom = self.atoms.get(atom_id)
        if atom is None:
            return False
        emit_burst(self.particles, self.random, atom.position, DELETE_BURST_COLOR, DELETE_BURST_COUNT)
        clear_bonds(self.atoms, atom)
        del self.atoms[atom_id]
        logger.info("Deleted %s#%d", atom.element.symbol, atom_id)
        return True

    def clear_all(self) -> None:
        self.atoms.clear()
        self.particles.clear()
        self.gravity_well = None
        self.drag.clear()
        self.lasso.clear()
        logger.info("Cleared simulation")

    def set_time_scale(self, factor: float) -> None:
        self.time_scale = max(0.0, float(factor))

    def set_drag_target(self, atom_id: Optional[int], release_velocity: Optional[Vector] = None) -> bool:
        """
        Anchor a drag on ``atom_id`` or release the current one with ``None``.

        When a drag is released with ``release_velocity`` the whole group is
        thrown: every member's velocity is overwritten with the release velocity
        spread across the substeps.
        """
        if self.drag.active and release_velocity is not None:
            scale = 1.0 / self.settings.substeps
            thrown = vector_scale(release_velocity, scale)
            for member_id in self.drag.group:
                member = self.atoms.get(member_id)
                if member is not None:
                    member.velocity = thrown
        self.drag.clear()
        if atom_id is None:
            return True
        atom = self.atoms.get(atom_id)
        if atom is None:
            logger.debug("Drag ignored: atom %s does not exist", atom_id)
            return False
        self.drag.anchor_id = atom_id
        self.drag.goal = atom.position
        self.drag.group = connected_group(self.atoms, atom_id)
        return True

    def set_drag_goal(self, position: Vector) -> None:
        if self.drag.active:
            self.drag.goal = (float(position[0]), float(position[1]))

    def begin_lasso(self, point: Vector) -> None:
        self.lasso.active = True
        self.lasso.points = [point]

    def extend_lasso(self, point: Vector) -> None:
        if self.lasso.active:
            self.lasso.points.append(point)

    def end_lasso(self, polygon: Optional[Sequence[Vector]] = None) -> List[int]:
        """Close the lasso; two or more enclosed atoms get crunched together."""
        points = list(polygon) if polygon is not None else list(self.lasso.points)
        self.lasso.clear()
        if len(points) <= 2:
            return []
        selected = [atom for atom in self.atoms.values() if point_in_polygon(atom.position, points)]
        if len(selected) <= 1:
            return []
        center = (
            sum(atom.position[0] for atom in selected) / len(selected),
            sum(atom.position[1] for atom in selected) / len(selected),
        )
        max_distance = max(vector_length(vector_sub(atom.position, center)) for atom in selected)
        ids = [atom.id for atom in selected]
        self.trigger_well(
            ids,
            center,
            start_radius=max(LASSO_MIN_RADIUS, max_distance + LASSO_RADIUS_MARGIN),
        )
        logger.info("Lasso captured %d atoms", len(ids))
        return ids

    def trigger_well(
        self,
        atom_ids: Iterable[int],
        center: Vector,
        duration: Optional[float] = None,
        start_radius: Optional[float] = None,
    ) -> bool:
        ids = [atom_id for atom_id in atom_ids if atom_id in self.atoms]
        if not ids:
            return False
        well_settings = self.settings.gravity_well
        self.gravity_well = GravityWell.create(
            ids,
            center,
            duration if duration is not None else well_settings.duration,
            start_radius if start_radius is not None else well_settings.recipe_start_radius,
        )
        return True

    def trigger_recipe(
        self,
        ingredients: Iterable[Tuple[int, int]],
        center: Optional[Vector] = None,
    ) -> List[int]:
        """Clear the zone, spawn ``(atomic_number, count)`` ingredients and crunch them."""
        well_settings = self.settings.gravity_well
        if center is None:
            center = self.settings.center
        clear_spawn_zone(
            self.atoms,
            center,
            well_settings.clear_radius,
            well_settings.clear_margin,
            well_settings.clear_kick,
        )
        spawned: List[int] = []
        for atomic_number, count in ingredients:
            for _ in range(count):
                angle = self.random.random() * math.pi * 2.0
                radius = self.random.random() * well_settings.spawn_radius
                position = (center[0] + math.cos(angle) * radius, center[1] + math.sin(angle) * radius)
                atom_id = self.spawn(position, atomic_number, 0)
                if atom_id is not None:
                    spawned.append(atom_id)
        if spawned:
            self.trigger_well(spawned, center, start_radius=well_settings.recipe_start_radius)
        logger.info("Recipe spawned %d atoms", len(spawned))
        return spawned

    # ------------------------------------------------------------------ loop

    def tick(self) -> None:
        """Advance one frame. A time scale of zero pauses the whole engine."""
        if self.time_scale <= 0.0:
            return
        dt = self.settings.frame_dt * self.time_scale
        self._advance_particles()
        self.last_decay_events = process_decay(
            self.atoms, self.particles, self.element_table, self.random, dt
        )
        self._refresh_drag()
        for _ in range(self.settings.substeps):
            self._substep()
        if self.gravity_well is not None and self.gravity_well.expired:
            self.gravity_well = None
        self.current_tick += 1
        self.time_elapsed += dt

    def run(self, ticks: int) -> None:
        for _ in range(ticks):
            self.tick()

    def _substep(self) -> None:
        physics = self.settings.physics
        drag_group = self.drag.group if self.drag.active else None
        anneal_atoms(self.atoms, drag_group, physics.max_speed)
        self._apply_drag()
        if self.gravity_well is not None and not self.gravity_well.expired:
            self.gravity_well.step(self.atoms, self.settings.substeps)
        apply_vsepr(self.atoms, physics.angular_stiffness, self.drag.anchor_id)
        resolve_interactions(
            self.atoms, self.particles, self.random, physics, self.drag.anchor_id, drag_group
        )
        self._integrate()

    def _advance_particles(self) -> None:
        for particle in self.particles:
            particle.advance()
        self.particles = [particle for particle in self.particles if particle.alive]

    def _refresh_drag(self) -> None:
        if not self.drag.active:
            return
        if self.drag.anchor_id not in self.atoms:
            logger.debug("Drag anchor %s vanished, releasing drag", self.drag.anchor_id)
            self.drag.clear()
            return
        self.drag.group = connected_group(self.atoms, self.drag.anchor_id)

    def _apply_drag(self) -> None:
        if not self.drag.active or self.drag.goal is None:
            return
        anchor = self.atoms.get(self.drag.anchor_id)
        if anchor is None:
            return
        physics = self.settings.physics
        pull = vector_scale(vector_sub(self.drag.goal, anchor.position), physics.drag_stiffness)
        # the same pull on every member moves the molecule as one rigid body
        for member_id in self.drag.group:
            member = self.atoms.get(member_id)
            if member is not None:
                member.velocity = vector_scale(vector_add(member.velocity, pull), physics.drag_damping)

    def _integrate(self) -> None:
        physics = self.settings.physics
        width, height = self.settings.bounds
        restitution = physics.wall_restitution
        max_speed_sq = physics.max_speed * physics.max_speed
        for atom in self.atoms.values():
            vx, vy = vector_scale(atom.velocity, physics.drag_coeff)
            speed_sq = vx * vx + vy * vy
            if speed_sq > max_speed_sq:
                scale = physics.max_speed / math.sqrt(speed_sq)
                vx *= scale
                vy *= scale
            x = atom.position[0] + vx
            y = atom.position[1] + vy

            r = atom.radius
            if x < r:
                x, vx = r, abs(vx) * restitution
            elif x > width - r:
                x, vx = width - r, -abs(vx) * restitution
            if y < r:
                y, vy = r, abs(vy) * restitution
            elif y > height - r:
                y, vy = height - r, -abs(vy) * restitution

            atom.position = (x, y)
            atom.velocity = (vx, vy)

    # ------------------------------------------------------------------ queries

    def get_atom(self, atom_id: int) -> Optional[Atom]:
        return self.atoms.get(atom_id)

    def pick_atom(self, position: Vector, scale: float = PICK_SCALE) -> Optional[int]:
        """Topmost (most recently spawned) atom within ``scale`` radii of ``position``."""
        for atom in reversed(list(self.atoms.values())):
            if vector_length_sq(vector_sub(atom.position, position)) < (atom.radius * scale) ** 2:
                return atom.id
        return None

    def snapshot(self) -> SimulationSnapshot:
        atom_states = [
            AtomState(
                id=atom.id,
                symbol=atom.element.symbol,
                atomic_number=atom.element.z,
                isotope_index=atom.isotope_index,
                color=atom.element.color,
                position=atom.position,
                velocity=atom.velocity,
                radius=atom.radius,
                mass=atom.mass,
                bonds=dict(atom.bonds),
            )
            for atom in self.atoms.values()
        ]
        bonds = [
            BondState(atom.id, partner_id, order)
            for atom in self.atoms.values()
            for partner_id, order in atom.bonds.items()
            if atom.id < partner_id
        ]
        particles = [
            ParticleState(p.position, p.color, p.size, p.life) for p in self.particles
        ]
        overlay = OverlayState(
            lasso_points=list(self.lasso.points),
            drag_anchor_id=self.drag.anchor_id,
            drag_group=set(self.drag.group),
        )
        if self.gravity_well is not None:
            overlay.well_target_ids = list(self.gravity_well.target_ids)
            overlay.well_center = self.gravity_well.center
            overlay.well_progress = self.gravity_well.progress
            overlay.well_start_radius = self.gravity_well.start_radius
        return SimulationSnapshot(
            tick_index=self.current_tick,
            time_elapsed=self.time_elapsed,
            time_scale=self.time_scale,
            atom_states=atom_states,
            bonds=bonds,
            particles=particles,
            overlay=overlay,
        )
