"""
Utilities for loading AtomSim simulations and recipe catalogs from YAML files.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from atomsim.elements import ElementTable, load_element_table
from atomsim.engine import Simulation
from atomsim.settings import GravityWellSettings, PhysicsSettings, SimulationSettings

DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    "level": "INFO",
    "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
    "log_dir": None,
}


@dataclass
class SimulationBundle:
    """Container returned by configuration loader."""

    simulation: Simulation
    metadata: Dict[str, Any]
    logging: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_LOGGING_CONFIG))


@dataclass
class Recipe:
    id: str
    name: str
    formula: str
    ingredients: List[Tuple[int, int]]


def load_simulation_from_yaml(
    path: Path,
    *,
    element_table: Optional[ElementTable] = None,
) -> SimulationBundle:
    """Load a Simulation object plus associated metadata from a YAML config."""
    data = _load_yaml(path)
    settings = build_settings(data)
    simulation = Simulation(settings, element_table or load_element_table())
    _populate_atoms(simulation, data.get("system", {}).get("atoms", []), path)

    logging_config = dict(DEFAULT_LOGGING_CONFIG)
    logging_config.update(data.get("logging") or {})
    return SimulationBundle(
        simulation=simulation,
        metadata=data.get("metadata", {}),
        logging=logging_config,
    )


def load_recipes(path: Path) -> List[Recipe]:
    data = _load_yaml(path)
    recipes: List[Recipe] = []
    for entry in data.get("recipes", []):
        try:
            ingredients = [(int(item["z"]), int(item["count"])) for item in entry["ingredients"]]
            recipes.append(
                Recipe(
                    id=str(entry["id"]),
                    name=str(entry.get("name", entry["id"])),
                    formula=str(entry.get("formula", "")),
                    ingredients=ingredients,
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid recipe entry {entry!r} in {path}: {exc}") from exc
    return recipes


def build_settings(data: Dict[str, Any]) -> SimulationSettings:
    sim_config = data.get("simulation", {}) or {}
    seed = sim_config.get("seed")
    return SimulationSettings(
        width=float(sim_config.get("width", 1280.0)),
        height=float(sim_config.get("height", 720.0)),
        substeps=int(sim_config.get("substeps", 8)),
        frame_dt=float(sim_config.get("frame_dt", 0.016)),
        time_scale=float(sim_config.get("time_scale", 1.0)),
        seed=int(seed) if seed is not None else None,
        physics=_build_dataclass(PhysicsSettings, data.get("physics", {}), "physics"),
        gravity_well=_build_dataclass(GravityWellSettings, data.get("gravity_well", {}), "gravity_well"),
    )


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if not isinstance(content, dict):
        raise ValueError(f"YAML file {path} must contain a mapping at the root.")
    return content


def _build_dataclass(cls, config: Optional[Dict[str, Any]], section: str):
    config = config or {}
    known = {f.name for f in fields(cls)}
    unknown = set(config) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{section}' section: {sorted(unknown)}")
    return cls(**{key: float(value) for key, value in config.items()})


def _populate_atoms(simulation: Simulation, atom_list: List[Dict[str, Any]], path: Path) -> None:
    spawned: List[int] = []
    for index, atom in enumerate(atom_list):
        if "atomic_number" not in atom or "position" not in atom:
            raise ValueError(f"Atom #{index} in {path} requires atomic_number and position.")
        position = _tuple2(atom["position"])
        velocity = _tuple2(atom["velocity"]) if atom.get("velocity") is not None else None
        atom_id = simulation.spawn(
            position,
            int(atom["atomic_number"]),
            int(atom.get("isotope_index", 0)),
            velocity=velocity,
        )
        if atom_id is None:
            raise ValueError(f"Atom #{index} in {path} references unknown element or isotope.")
        spawned.append(atom_id)

    for atom_index, atom in enumerate(atom_list):
        for partner_index in atom.get("bonds", []) or []:
            if not 0 <= partner_index < len(spawned):
                raise ValueError(f"Atom #{atom_index} in {path} bonds to missing atom #{partner_index}.")
            if partner_index <= atom_index:
                continue
            if not simulation.seed_bond(spawned[atom_index], spawned[partner_index]):
                raise ValueError(
                    f"Bond #{atom_index}-#{partner_index} in {path} exceeds valence or bond order."
                )


def _tuple2(value: Any) -> Tuple[float, float]:
    if not isinstance(value, Iterable):
        raise ValueError("Vector field must be iterable with 2 numbers.")
    values = list(value)
    if len(values) != 2:
        raise ValueError("Vector field must contain exactly 2 entries.")
    return float(values[0]), float(values[1])
