"""Element and isotope reference data used by the bonding, geometry and decay rules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import yaml


DEFAULT_ELEMENTS_PATH = Path(__file__).resolve().parent / "data" / "elements.yaml"

# Atomic numbers treated as covalent non-metals (the rest use METAL_VALENCE_CAPACITY).
COVALENT_Z = frozenset(
    {
        1, 2,
        5, 6, 7, 8, 9, 10,
        14, 15, 16, 17, 18,
        33, 34, 35, 36,
        52, 53, 54,
        85, 86,
    }
)
METAL_VALENCE_CAPACITY = 6
ISOTOPE_MASS_TOLERANCE = 0.1

HalfLife = Union[float, str]


@dataclass(frozen=True)
class DecayProduct:
    z: int
    mass: float


@dataclass(frozen=True)
class Isotope:
    mass: float
    half_life: HalfLife = "stable"
    mode: Optional[str] = None
    product: Optional[DecayProduct] = None
    name: Optional[str] = None

    @property
    def is_stable(self) -> bool:
        return self.half_life == "stable"


@dataclass(frozen=True)
class Element:
    z: int
    symbol: str
    name: str
    color: str
    valence: int
    isotopes: Tuple[Isotope, ...]

    @property
    def color_rgb(self) -> Tuple[int, int, int]:
        return hex_to_rgb(self.color)

    def find_isotope_index(self, mass: float, tolerance: float = ISOTOPE_MASS_TOLERANCE) -> int:
        """Index of the isotope whose mass matches within ``tolerance``, else -1."""
        for index, isotope in enumerate(self.isotopes):
            if abs(isotope.mass - mass) < tolerance:
                return index
        return -1


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    value = color.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def is_covalent(element: Element) -> bool:
    return element.z in COVALENT_Z


def valence_capacity(element: Element) -> int:
    """Maximum bond order sum an atom of ``element`` may hold."""
    if element.z in COVALENT_Z:
        return element.valence
    return METAL_VALENCE_CAPACITY


def valence_electrons(z: int) -> Optional[int]:
    """Outer-shell electron count for main-group elements, None elsewhere."""
    if z == 1:
        return 1
    if z == 2:
        return 2
    if 3 <= z <= 10:
        return z - 2
    if 11 <= z <= 18:
        return z - 10
    if 19 <= z <= 20:
        return z - 18
    if 31 <= z <= 36:
        return z - 28
    if 37 <= z <= 38:
        return z - 36
    if 49 <= z <= 54:
        return z - 46
    if 55 <= z <= 56:
        return z - 54
    return None


class ElementTable:
    """
    Immutable lookup of elements keyed by atomic number.
    """

    def __init__(self, elements: Iterable[Element], version: str = "", source: str = ""):
        self._by_z: Dict[int, Element] = {}
        for element in elements:
            self._by_z[element.z] = element
        self.version = version
        self.source = source

    def get(self, z: int) -> Optional[Element]:
        return self._by_z.get(z)

    def by_symbol(self, symbol: str) -> Optional[Element]:
        for element in self._by_z.values():
            if element.symbol == symbol:
                return element
        return None

    def __contains__(self, z: object) -> bool:
        return z in self._by_z

    def __iter__(self) -> Iterator[Element]:
        return iter(sorted(self._by_z.values(), key=lambda element: element.z))

    def __len__(self) -> int:
        return len(self._by_z)


def load_element_table(path: Optional[Path] = None) -> ElementTable:
    """Load the element table from YAML (defaults to the bundled dataset)."""
    data_path = path or DEFAULT_ELEMENTS_PATH
    with data_path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if not isinstance(content, dict):
        raise ValueError(f"Element file {data_path} must contain a mapping at the root.")
    elements = [_build_element(entry) for entry in content.get("elements", [])]
    return ElementTable(
        elements,
        version=str(content.get("version", "")),
        source=str(content.get("source", "")),
    )


def _build_element(entry: Dict[str, Any]) -> Element:
    for key in ("z", "symbol", "valence", "isotopes"):
        if key not in entry:
            raise ValueError(f"Element entry {entry!r} is missing required field '{key}'.")
    isotopes = tuple(_build_isotope(entry["symbol"], iso) for iso in entry["isotopes"])
    if not isotopes:
        raise ValueError(f"Element '{entry['symbol']}' must define at least one isotope.")
    return Element(
        z=int(entry["z"]),
        symbol=str(entry["symbol"]),
        name=str(entry.get("name", entry["symbol"])),
        color=str(entry.get("color", "#C8C8C8")),
        valence=int(entry["valence"]),
        isotopes=isotopes,
    )


def _build_isotope(symbol: str, entry: Dict[str, Any]) -> Isotope:
    half_life_raw = entry.get("half_life", "stable")
    half_life: HalfLife
    if half_life_raw == "stable":
        half_life = "stable"
    else:
        half_life = float(half_life_raw)
        if half_life <= 0.0:
            raise ValueError(f"Isotope of '{symbol}' has non-positive half-life {half_life_raw!r}.")
        if entry.get("mode") not in ("alpha", "beta"):
            raise ValueError(f"Unstable isotope of '{symbol}' needs mode 'alpha' or 'beta'.")

    product = None
    product_raw = entry.get("product")
    if product_raw is not None:
        product = DecayProduct(z=int(product_raw["z"]), mass=float(product_raw["mass"]))

    return Isotope(
        mass=float(entry["mass"]),
        half_life=half_life,
        mode=entry.get("mode"),
        product=product,
        name=entry.get("name"),
    )


def elements_from_dicts(entries: List[Dict[str, Any]]) -> ElementTable:
    """Build a table from already-parsed mappings (scenario overrides, tests)."""
    return ElementTable(_build_element(entry) for entry in entries)
