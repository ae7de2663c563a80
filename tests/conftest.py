"""
Shared pytest fixtures for AtomSim.

Atoms are built straight from the bundled element table so tests exercise the
same masses, radii and valences the sandbox uses.
"""

from __future__ import annotations

import itertools
import pathlib
import sys
from typing import Callable, Dict, Optional

import pytest

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from atomsim.elements import ElementTable, load_element_table  # noqa: E402
from atomsim.engine import Simulation  # noqa: E402
from atomsim.entities import Atom  # noqa: E402
from atomsim.settings import SimulationSettings  # noqa: E402


@pytest.fixture(scope="session")
def project_root() -> pathlib.Path:
    """Return repository root directory."""
    return REPO_ROOT


@pytest.fixture(scope="session")
def element_table() -> ElementTable:
    return load_element_table()


@pytest.fixture
def atoms() -> Dict[int, Atom]:
    """Empty insertion-ordered atom map; ``make_atom`` registers into it."""
    return {}


@pytest.fixture
def make_atom(element_table: ElementTable, atoms: Dict[int, Atom]) -> Callable[..., Atom]:
    ids = itertools.count(1)

    def factory(z: int, position=(0.0, 0.0), velocity=(0.0, 0.0), isotope_index: int = 0) -> Atom:
        element = element_table.get(z)
        assert element is not None, f"no element {z} in table"
        atom = Atom(
            id=next(ids),
            element=element,
            isotope_index=isotope_index,
            position=(float(position[0]), float(position[1])),
            velocity=(float(velocity[0]), float(velocity[1])),
        )
        atoms[atom.id] = atom
        return atom

    return factory


@pytest.fixture
def make_simulation(element_table: ElementTable) -> Callable[..., Simulation]:
    def factory(seed: Optional[int] = 1234, **overrides) -> Simulation:
        settings = SimulationSettings(seed=seed, **overrides)
        return Simulation(settings, element_table)

    return factory
