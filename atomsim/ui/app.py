"""
pygame application for the AtomSim sandbox.
"""

from __future__ import annotations

import argparse
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from atomsim.config_loader import (
    DEFAULT_LOGGING_CONFIG,
    Recipe,
    SimulationBundle,
    load_recipes,
    load_simulation_from_yaml,
)
from atomsim.engine import Simulation, SimulationSnapshot
from atomsim.logging_setup import setup_logging
from .controllers import SimulationController, UIController, slider_from_time_scale
from .viewport import SandboxViewport

logger = logging.getLogger("atomsim")

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "default.yaml"
DEFAULT_RECIPES_PATH = PROJECT_ROOT / "config" / "recipes.yaml"


@dataclass
class AppConfig:
    title: str = "AtomSim Sandbox"
    target_fps: int = 60
    hud_height: int = 28


@dataclass
class AppState:
    running: bool = True
    clock: Optional["pygame.time.Clock"] = field(default=None, repr=False)


class AtomSimApp:
    """
    Owns the pygame window and drives one simulation tick per rendered frame.
    """

    def __init__(
        self,
        simulation: Simulation,
        recipes: Sequence[Recipe] = (),
        config: Optional[AppConfig] = None,
    ):
        if pygame is None:
            raise RuntimeError("pygame is not installed. Install it to run the sandbox.")
        self.config = config or AppConfig()
        self.state = AppState()
        self.simulation = simulation
        self.recipes: List[Recipe] = list(recipes)
        self.sim_controller = SimulationController(
            simulation, slider_value=slider_from_time_scale(simulation.time_scale)
        )
        self.screen: Optional["pygame.Surface"] = None
        self.viewport: Optional[SandboxViewport] = None
        self.ui_controller: Optional[UIController] = None
        self.font: Optional["pygame.font.Font"] = None
        self._latest_snapshot: Optional[SimulationSnapshot] = None

    def setup(self) -> None:
        pygame.init()
        width, height = (int(v) for v in self.simulation.settings.bounds)
        self.screen = pygame.display.set_mode((width, height + self.config.hud_height))
        pygame.display.set_caption(self.config.title)
        self.state.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("Helvetica", 16)

        self.viewport = SandboxViewport(pygame.Rect(0, 0, width, height))
        self.ui_controller = UIController(self.sim_controller, self.viewport, self.recipes)
        self._latest_snapshot = self.sim_controller.snapshot()
        logger.info("Sandbox ready: %dx%d, %d recipes", width, height, len(self.recipes))

    def handle_event(self, event: "pygame.event.Event") -> None:
        if event.type == pygame.QUIT:
            self.state.running = False
            return
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self.state.running = False
                return
            if event.key == pygame.K_SPACE:
                self.sim_controller.toggle_running()
                return
            if event.key == pygame.K_PERIOD:
                self.sim_controller.step(1)
                return
        if self.ui_controller:
            self.ui_controller.handle_event(event)

    def update(self) -> None:
        if self.ui_controller:
            self._latest_snapshot = self.ui_controller.update()

    def render(self) -> None:
        if self.screen is None or self._latest_snapshot is None or self.ui_controller is None:
            return
        self.screen.fill((10, 10, 30))
        self.ui_controller.render(self.screen, self._latest_snapshot)
        self._render_hud(self._latest_snapshot)
        pygame.display.flip()

    def run(self) -> None:
        if self.screen is None or self.state.clock is None:
            self.setup()

        assert self.state.clock is not None
        while self.state.running:
            self.state.clock.tick(self.config.target_fps)
            for event in pygame.event.get():
                self.handle_event(event)
            self.update()
            self.render()

        pygame.quit()

    def _render_hud(self, snapshot: SimulationSnapshot) -> None:
        assert self.screen is not None and self.font is not None
        status = "running" if self.sim_controller.is_running else "paused"
        text = (
            f"{status}  x{snapshot.time_scale:.2f}  atoms {len(snapshot.atom_states)}"
            f"  bonds {len(snapshot.bonds)}  t={snapshot.time_elapsed:.1f}s"
        )
        if self.ui_controller is not None:
            text += f"  spawn {self.ui_controller.palette.label()} [Tab]"
        label = self.font.render(text, True, (220, 220, 240))
        self.screen.blit(label, (8, self.screen.get_height() - self.config.hud_height + 6))


def load_bundle(config_path: Path) -> SimulationBundle:
    if config_path.exists():
        return load_simulation_from_yaml(config_path)
    logger.warning("Config %s not found, starting with defaults", config_path)
    return SimulationBundle(simulation=Simulation(), metadata={}, logging=dict(DEFAULT_LOGGING_CONFIG))


def load_recipe_catalog(recipes_path: Path) -> List[Recipe]:
    if recipes_path.exists():
        return load_recipes(recipes_path)
    logger.warning("Recipe catalog %s not found, number keys are disabled", recipes_path)
    return []


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Interactive 2D atom sandbox.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Scenario YAML file.")
    parser.add_argument("--recipes", type=Path, default=DEFAULT_RECIPES_PATH, help="Recipe catalog YAML file.")
    args = parser.parse_args(argv)

    bundle = load_bundle(args.config)
    setup_logging(bundle.logging, run_id=time.strftime("%Y%m%d-%H%M%S"))
    logger.info("Loaded scenario %r from %s", bundle.metadata.get("name", "untitled"), args.config)
    recipes = load_recipe_catalog(args.recipes)
    app = AtomSimApp(bundle.simulation, recipes)
    app.run()


if __name__ == "__main__":
    main()
