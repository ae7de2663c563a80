"""Tunable engine constants, populated from YAML by ``atomsim.config_loader``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass
class PhysicsSettings:
    max_speed: float = 20.0
    drag_coeff: float = 0.95
    bond_stiffness: float = 0.6
    bond_damping: float = 0.1
    tangential_damping: float = 0.05
    collision_stiffness: float = 0.15
    collision_damping: float = 0.1
    reaction_threshold_sq: float = 20.0
    # torque per radian of angular deviation
    angular_stiffness: float = 25.0
    wall_restitution: float = 0.5
    drag_stiffness: float = 0.2
    drag_damping: float = 0.9


@dataclass
class GravityWellSettings:
    duration: float = 30.0
    clear_radius: float = 250.0
    clear_margin: float = 50.0
    clear_kick: float = 8.0
    spawn_radius: float = 80.0
    recipe_start_radius: float = 130.0


@dataclass
class SimulationSettings:
    width: float = 1280.0
    height: float = 720.0
    substeps: int = 8
    # seconds of simulated time per tick at time_scale 1.0
    frame_dt: float = 0.016
    time_scale: float = 1.0
    seed: Optional[int] = None
    physics: PhysicsSettings = None  # type: ignore[assignment]
    gravity_well: GravityWellSettings = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.physics is None:
            self.physics = PhysicsSettings()
        if self.gravity_well is None:
            self.gravity_well = GravityWellSettings()
        if self.substeps < 1:
            raise ValueError(f"substeps must be >= 1, got {self.substeps}.")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas bounds must be positive, got {self.width}x{self.height}.")

    @property
    def bounds(self) -> Tuple[float, float]:
        return self.width, self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2.0, self.height / 2.0
