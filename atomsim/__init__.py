"""AtomSim: interactive 2D atom sandbox with bonding, VSEPR geometry and decay."""

from atomsim.elements import Element, ElementTable, Isotope, load_element_table
from atomsim.engine import Simulation, SimulationSnapshot
from atomsim.settings import GravityWellSettings, PhysicsSettings, SimulationSettings

__version__ = "0.1.0"

__all__ = [
    "Element",
    "ElementTable",
    "GravityWellSettings",
    "Isotope",
    "PhysicsSettings",
    "Simulation",
    "SimulationSettings",
    "SimulationSnapshot",
    "load_element_table",
]
