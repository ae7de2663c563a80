"""
Sandbox viewport rendering for the pygame UI.

The viewport only consumes ``SimulationSnapshot`` objects; canvas pixels map
one-to-one onto the viewport rect, offset by its top-left corner.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, TYPE_CHECKING

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from atomsim.elements import hex_to_rgb

if TYPE_CHECKING:  # pragma: no cover
    from atomsim.engine import AtomState, BondState, OverlayState, SimulationSnapshot

Color = Tuple[int, int, int]


@dataclass
class ViewportConfig:
    width: int
    height: int
    background_color: Color = (15, 15, 30)
    bond_color: Color = (180, 180, 180)
    bond_spacing: int = 4
    well_color: Color = (120, 80, 255)
    lasso_color: Color = (255, 255, 255)
    drag_color: Color = (255, 255, 0)
    label_color: Color = (10, 10, 10)


class SandboxViewport:
    """Draws bonds, atoms, particles and interaction overlays."""

    def __init__(self, rect: "pygame.Rect", config: Optional[ViewportConfig] = None):
        if pygame is None:
            raise RuntimeError("pygame must be installed to use SandboxViewport.")
        self.rect = rect
        self.config = config or ViewportConfig(width=rect.width, height=rect.height)
        self.font: Optional["pygame.font.Font"] = None

    def world_to_screen(self, position: Tuple[float, float]) -> Tuple[int, int]:
        return int(position[0]) + self.rect.left, int(position[1]) + self.rect.top

    def screen_to_world(self, position_px: Tuple[int, int]) -> Tuple[float, float]:
        return float(position_px[0] - self.rect.left), float(position_px[1] - self.rect.top)

    def render(self, surface: "pygame.Surface", snapshot: "SimulationSnapshot") -> None:
        surface.fill(self.config.background_color, self.rect)
        if self.font is None:
            self.font = pygame.font.SysFont("Helvetica", 14, bold=True)

        self._draw_well(surface, snapshot.overlay)

        atoms: Dict[int, "AtomState"] = {atom.id: atom for atom in snapshot.atom_states}
        # bonds first so atoms sit on top
        for bond in snapshot.bonds:
            atom_i = atoms.get(bond.atom_i)
            atom_j = atoms.get(bond.atom_j)
            if atom_i is None or atom_j is None:
                continue
            self._draw_bond(
                surface,
                self.world_to_screen(atom_i.position),
                self.world_to_screen(atom_j.position),
                bond,
            )

        for atom in snapshot.atom_states:
            pos_px = self.world_to_screen(atom.position)
            pygame.draw.circle(surface, hex_to_rgb(atom.color), pos_px, int(atom.radius))
            if atom.id in snapshot.overlay.drag_group:
                width = 3 if atom.id == snapshot.overlay.drag_anchor_id else 1
                pygame.draw.circle(surface, self.config.drag_color, pos_px, int(atom.radius) + 3, width=width)
            label = self.font.render(atom.symbol, True, self.config.label_color)
            surface.blit(label, label.get_rect(center=pos_px))

        for particle in snapshot.particles:
            color = tuple(int(c * max(0.0, particle.life)) for c in hex_to_rgb(particle.color))
            pygame.draw.circle(
                surface, color, self.world_to_screen(particle.position), max(1, int(particle.size))
            )

        points = snapshot.overlay.lasso_points
        if len(points) >= 2:
            pygame.draw.lines(
                surface,
                self.config.lasso_color,
                False,
                [self.world_to_screen(point) for point in points],
                1,
            )

    def _draw_well(self, surface: "pygame.Surface", overlay: "OverlayState") -> None:
        if overlay.well_center is None:
            return
        radius = int(overlay.well_start_radius * (1.0 - overlay.well_progress))
        if radius > 1:
            pygame.draw.circle(
                surface, self.config.well_color, self.world_to_screen(overlay.well_center), radius, width=2
            )

    def _draw_bond(
        self, surface: "pygame.Surface", start: Tuple[int, int], end: Tuple[int, int], bond: "BondState"
    ) -> None:
        dx = end[0] - start[0]
        dy = end[1] - start[1]
        length = math.hypot(dx, dy)
        if length == 0:
            return
        color = self.config.bond_color
        order = max(1, int(bond.order))
        if order == 1:
            pygame.draw.line(surface, color, start, end, width=2)
            return

        ux = -dy / length
        uy = dx / length
        center_index = (order - 1) / 2.0
        for idx in range(order):
            offset = (idx - center_index) * self.config.bond_spacing
            pygame.draw.line(
                surface,
                color,
                (int(start[0] + ux * offset), int(start[1] + uy * offset)),
                (int(end[0] + ux * offset), int(end[1] + uy * offset)),
                width=2,
            )
