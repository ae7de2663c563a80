"""
Controllers connecting pygame input to the simulation command surface.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from .viewport import SandboxViewport

if TYPE_CHECKING:  # pragma: no cover
    from atomsim.config_loader import Recipe
    from atomsim.elements import Element, ElementTable
    from atomsim.engine import Simulation, SimulationSnapshot

logger = logging.getLogger("atomsim")

SLIDER_MIDPOINT = 50.0
SLIDER_MAX = 100.0
SLIDER_DECADE = 12.5
SLIDER_STEP = 5.0
FLING_HISTORY = 4
DEFAULT_PALETTE: Tuple[int, ...] = (1, 6, 7, 8, 15, 16, 17, 11, 26)


def time_scale_from_slider(value: float) -> float:
    """
    Map a 0-100 slider to a time scale.

    0-50 is linear from paused to real time; 50-100 is logarithmic from
    1x up to 10,000x (four decades over 50 units).
    """
    value = min(SLIDER_MAX, max(0.0, float(value)))
    if value <= SLIDER_MIDPOINT:
        return value / SLIDER_MIDPOINT
    return 10.0 ** ((value - SLIDER_MIDPOINT) / SLIDER_DECADE)


def slider_from_time_scale(time_scale: float) -> float:
    """Inverse of ``time_scale_from_slider``, clamped to the slider range."""
    if time_scale <= 1.0:
        return max(0.0, time_scale) * SLIDER_MIDPOINT
    return min(SLIDER_MAX, SLIDER_MIDPOINT + SLIDER_DECADE * math.log10(time_scale))


@dataclass
class SimulationController:
    simulation: "Simulation"
    is_running: bool = True
    slider_value: float = SLIDER_MIDPOINT

    def __post_init__(self) -> None:
        self.simulation.set_time_scale(time_scale_from_slider(self.slider_value))

    @property
    def time_scale(self) -> float:
        return self.simulation.time_scale

    def toggle_running(self) -> None:
        self.is_running = not self.is_running

    def set_slider(self, value: float) -> None:
        self.slider_value = min(SLIDER_MAX, max(0.0, float(value)))
        self.simulation.set_time_scale(time_scale_from_slider(self.slider_value))

    def nudge_slider(self, delta: float) -> None:
        self.set_slider(self.slider_value + delta)

    def step(self, ticks: int = 1) -> None:
        self.simulation.run(ticks)

    def update(self) -> None:
        if self.is_running:
            self.simulation.tick()

    def snapshot(self) -> "SimulationSnapshot":
        return self.simulation.snapshot()


@dataclass
class PointerState:
    dragging: bool = False
    lassoing: bool = False
    recent: List[Tuple[float, float]] = field(default_factory=list)

    def remember(self, position: Tuple[float, float]) -> None:
        self.recent.append(position)
        del self.recent[:-FLING_HISTORY]

    def release_velocity(self) -> Tuple[float, float]:
        """Average per-frame pointer motion over the last few samples."""
        if len(self.recent) < 2:
            return (0.0, 0.0)
        (x0, y0), (x1, y1) = self.recent[0], self.recent[-1]
        frames = len(self.recent) - 1
        return ((x1 - x0) / frames, (y1 - y0) / frames)

    def reset(self) -> None:
        self.dragging = False
        self.lassoing = False
        self.recent = []


def default_isotope_index(element: "Element") -> int:
    """First stable isotope, or the first listed when none is stable."""
    for index, isotope in enumerate(element.isotopes):
        if isotope.is_stable:
            return index
    return 0


class PaletteState:
    """Selected palette element and the isotope chosen for each entry."""

    def __init__(self, element_table: "ElementTable", palette: Sequence[int] = DEFAULT_PALETTE):
        self.elements: List["Element"] = []
        for z in palette:
            element = element_table.get(z)
            if element is None:
                logger.warning("Palette element %s is not in the element table", z)
                continue
            if all(existing.z != z for existing in self.elements):
                self.elements.append(element)
        self.isotope_indices: Dict[int, int] = {
            element.z: default_isotope_index(element) for element in self.elements
        }
        self.selected_z = self.elements[0].z if self.elements else 1

    @property
    def selected_element(self) -> Optional["Element"]:
        for element in self.elements:
            if element.z == self.selected_z:
                return element
        return None

    @property
    def isotope_index(self) -> int:
        return self.isotope_indices.get(self.selected_z, 0)

    def select(self, z: int) -> bool:
        if z not in self.isotope_indices:
            return False
        self.selected_z = z
        return True

    def cycle_isotope(self, step: int = 1) -> int:
        """Move the selected element to its next isotope, wrapping around."""
        element = self.selected_element
        if element is None:
            return 0
        index = (self.isotope_index + step) % len(element.isotopes)
        self.isotope_indices[element.z] = index
        logger.debug("Palette %s now spawns %s", element.symbol, self.label())
        return index

    def label(self) -> str:
        element = self.selected_element
        if element is None:
            return "-"
        isotope = element.isotopes[self.isotope_index]
        text = f"{element.symbol}-{round(isotope.mass)}"
        if not isotope.is_stable:
            text += f" ({isotope.mode})"
        return text


class UIController:
    """
    Routes pygame events onto simulation commands.

    Left button on an atom drags its molecule and flings it on release; on
    empty space it draws a lasso. Right button deletes the atom under the
    pointer. Number keys spawn recipes, letter keys spawn the palette element
    under the pointer with its chosen isotope and ``Tab`` cycles that isotope.
    ``Backspace`` clears and ``Up``/``Down`` move the time slider.
    """

    def __init__(
        self,
        simulation_controller: SimulationController,
        viewport: SandboxViewport,
        recipes: Sequence["Recipe"] = (),
        palette: Sequence[int] = DEFAULT_PALETTE,
    ):
        if pygame is None:
            raise RuntimeError("pygame must be installed to use UIController.")
        self.simulation_controller = simulation_controller
        self.viewport = viewport
        self.recipes = list(recipes)
        self.palette = PaletteState(self.simulation.element_table, palette)
        self.pointer = PointerState()
        self._palette_keys: Dict[int, int] = self._build_palette_keys()

    @property
    def simulation(self) -> "Simulation":
        return self.simulation_controller.simulation

    def handle_event(self, event: "pygame.event.Event") -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and self.viewport.rect.collidepoint(event.pos):
            self._on_mouse_down(event.button, self.viewport.screen_to_world(event.pos))
        elif event.type == pygame.MOUSEMOTION:
            self._on_mouse_motion(self.viewport.screen_to_world(event.pos))
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self._on_mouse_up()
        elif event.type == pygame.KEYDOWN:
            self._on_key(event.key)

    def update(self) -> "SimulationSnapshot":
        self.simulation_controller.update()
        return self.simulation_controller.snapshot()

    def render(self, screen: "pygame.Surface", snapshot: "SimulationSnapshot") -> None:
        self.viewport.render(screen, snapshot)

    def _on_mouse_down(self, button: int, position: Tuple[float, float]) -> None:
        atom_id = self.simulation.pick_atom(position)
        if button == 3:
            if atom_id is not None:
                self.simulation.delete(atom_id)
            return
        if button != 1:
            return
        self.pointer.reset()
        self.pointer.remember(position)
        if atom_id is not None:
            self.pointer.dragging = self.simulation.set_drag_target(atom_id)
            self.simulation.set_drag_goal(position)
        else:
            self.pointer.lassoing = True
            self.simulation.begin_lasso(position)

    def _on_mouse_motion(self, position: Tuple[float, float]) -> None:
        if self.pointer.dragging:
            self.pointer.remember(position)
            self.simulation.set_drag_goal(position)
        elif self.pointer.lassoing:
            self.simulation.extend_lasso(position)

    def _on_mouse_up(self) -> None:
        if self.pointer.dragging:
            self.simulation.set_drag_target(None, release_velocity=self.pointer.release_velocity())
        elif self.pointer.lassoing:
            self.simulation.end_lasso()
        self.pointer.reset()

    def _on_key(self, key: int) -> None:
        if key == pygame.K_BACKSPACE:
            self.simulation.clear_all()
        elif key == pygame.K_UP:
            self.simulation_controller.nudge_slider(SLIDER_STEP)
        elif key == pygame.K_DOWN:
            self.simulation_controller.nudge_slider(-SLIDER_STEP)
        elif pygame.K_1 <= key <= pygame.K_9:
            index = key - pygame.K_1
            if index < len(self.recipes):
                recipe = self.recipes[index]
                logger.info("Recipe %s (%s)", recipe.name, recipe.formula)
                self.simulation.trigger_recipe(recipe.ingredients)
        elif key == pygame.K_TAB:
            self.palette.cycle_isotope()
        elif key in self._palette_keys:
            self.palette.select(self._palette_keys[key])
            z, isotope_index = self.palette.selected_z, self.palette.isotope_index
            mouse = pygame.mouse.get_pos()
            if self.viewport.rect.collidepoint(mouse):
                self.simulation.spawn(self.viewport.screen_to_world(mouse), z, isotope_index)
            else:
                self.simulation.spawn_random(z, isotope_index)

    def _build_palette_keys(self) -> Dict[int, int]:
        """First letter of each palette symbol, first come first served."""
        keys: Dict[int, int] = {}
        for element in self.palette.elements:
            key = pygame.key.key_code(element.symbol[0].lower())
            keys.setdefault(key, element.z)
        return keys
