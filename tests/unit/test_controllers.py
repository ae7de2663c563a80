"""Tests for the pygame-independent parts of the sandbox controllers."""

from __future__ import annotations

import pytest

from atomsim.elements import elements_from_dicts
from atomsim.ui.controllers import (
    PaletteState,
    PointerState,
    SimulationController,
    default_isotope_index,
    slider_from_time_scale,
    time_scale_from_slider,
)


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, 0.0), (25.0, 0.5), (50.0, 1.0), (62.5, 10.0), (75.0, 100.0), (100.0, 10000.0)],
)
def test_time_scale_from_slider(value, expected):
    assert time_scale_from_slider(value) == pytest.approx(expected)


def test_slider_is_clamped():
    assert time_scale_from_slider(-10.0) == 0.0
    assert time_scale_from_slider(250.0) == pytest.approx(10000.0)


@pytest.mark.parametrize("scale", [0.0, 0.3, 1.0, 42.0, 10000.0])
def test_slider_mapping_round_trips(scale):
    assert time_scale_from_slider(slider_from_time_scale(scale)) == pytest.approx(scale)


def test_controller_drives_time_scale_and_pause(make_simulation):
    sim = make_simulation()
    controller = SimulationController(sim)
    assert sim.time_scale == pytest.approx(1.0)

    controller.set_slider(75.0)
    assert controller.time_scale == pytest.approx(100.0)

    controller.toggle_running()
    controller.update()
    assert sim.current_tick == 0

    controller.toggle_running()
    controller.update()
    controller.step(2)
    assert sim.current_tick == 3


def test_pointer_release_velocity_averages_recent_motion():
    pointer = PointerState()
    assert pointer.release_velocity() == (0.0, 0.0)
    for x in (0.0, 10.0, 20.0, 30.0, 40.0, 50.0):
        pointer.remember((x, 5.0))
    assert pointer.release_velocity() == pytest.approx((10.0, 0.0))
    assert len(pointer.recent) == 4


def test_default_isotope_is_first_stable_one():
    table = elements_from_dicts(
        [
            {
                "z": 6,
                "symbol": "C",
                "valence": 4,
                "isotopes": [
                    {"mass": 11.011, "half_life": 1220.0, "mode": "beta", "product": {"z": 5, "mass": 11.009}},
                    {"mass": 12.0},
                ],
            },
            {
                "z": 84,
                "symbol": "Po",
                "valence": 2,
                "isotopes": [
                    {"mass": 209.983, "half_life": 1.196e7, "mode": "alpha"},
                    {"mass": 218.009, "half_life": 186.0, "mode": "alpha"},
                ],
            },
        ]
    )
    assert default_isotope_index(table.get(6)) == 1
    assert default_isotope_index(table.get(84)) == 0


def test_palette_skips_unknown_and_repeated_elements(element_table):
    palette = PaletteState(element_table, (1, 84, 6, 999, 1))

    assert [element.z for element in palette.elements] == [1, 84, 6]
    assert palette.selected_z == 1
    assert palette.label() == "H-1"
    assert not palette.select(999)
    assert palette.selected_z == 1

    assert palette.select(84)
    assert palette.isotope_index == 0
    assert palette.label() == "Po-210 (alpha)"


def test_cycling_isotopes_wraps_and_is_kept_per_element(element_table):
    palette = PaletteState(element_table, (1, 6))
    palette.select(6)

    assert palette.cycle_isotope() == 1
    assert palette.label() == "C-13"
    assert palette.cycle_isotope() == 2
    assert palette.label() == "C-14 (beta)"
    assert palette.cycle_isotope() == 0

    palette.cycle_isotope(-1)
    palette.select(1)
    assert palette.isotope_index == 0
    palette.select(6)
    assert palette.isotope_index == 2


def test_cycled_isotope_reaches_the_spawned_atom(make_simulation):
    sim = make_simulation()
    palette = PaletteState(sim.element_table, (6,))
    palette.cycle_isotope()
    palette.cycle_isotope()

    atom_id = sim.spawn_random(palette.selected_z, palette.isotope_index)

    atom = sim.get_atom(atom_id)
    assert atom.isotope_index == 2
    assert not atom.isotope.is_stable
