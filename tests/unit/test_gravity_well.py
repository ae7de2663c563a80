"""Tests for the gravity well, spawn-zone clearing and lasso geometry."""

from __future__ import annotations

import math

import pytest

from atomsim.bonds import add_bond
from atomsim.gravity_well import (
    COMPRESS,
    CRUNCH,
    GATHER,
    GravityWell,
    clear_spawn_zone,
    point_in_polygon,
    regime_for,
)


@pytest.mark.parametrize(
    "progress, regime",
    [(0.0, GATHER), (0.5, GATHER), (0.51, COMPRESS), (0.85, COMPRESS), (0.86, CRUNCH), (1.0, CRUNCH)],
)
def test_regime_thresholds(progress, regime):
    assert regime_for(progress) is regime


def test_short_well_reaches_crunch_and_expires(make_atom, atoms):
    h = make_atom(1, (300.0, 200.0))
    well = GravityWell.create([h.id], (200.0, 200.0), duration=1.0, start_radius=130.0)

    regimes = [well.step(atoms, substeps=8) for _ in range(8)]

    assert regimes[0] is GATHER
    assert regimes[-1] is CRUNCH
    assert well.expired
    assert well.progress == pytest.approx(1.0)


def test_well_pulls_targets_toward_centre(make_atom, atoms):
    target = make_atom(1, (300.0, 200.0))
    bystander = make_atom(1, (100.0, 200.0))
    well = GravityWell.create([target.id], (200.0, 200.0), duration=30.0, start_radius=130.0)

    well.step(atoms, substeps=8)

    assert target.velocity[0] == pytest.approx(-100.0 * 0.05 * 0.90)
    assert bystander.velocity == (0.0, 0.0)


def test_well_skips_deleted_targets(make_atom, atoms):
    well = GravityWell.create([999], (0.0, 0.0), duration=2.0, start_radius=100.0)
    well.step(atoms, substeps=4)
    assert well.life == pytest.approx(1.75)


def test_clear_spawn_zone_pushes_molecules_out(make_atom, atoms):
    o = make_atom(8, (410.0, 300.0))
    h = make_atom(1, (430.0, 300.0))
    far = make_atom(6, (900.0, 300.0))
    add_bond(o, h)

    moved = clear_spawn_zone(atoms, (400.0, 300.0), clear_radius=250.0, margin=50.0, kick=8.0)

    assert moved == [{o.id, h.id}]
    centroid_x = (o.position[0] + h.position[0]) / 2.0
    assert centroid_x - 400.0 == pytest.approx(300.0)
    assert o.velocity == pytest.approx((8.0, 0.0))
    assert h.velocity == pytest.approx((8.0, 0.0))
    assert far.position == (900.0, 300.0)


def test_clear_spawn_zone_handles_atom_at_centre(make_atom, atoms):
    c = make_atom(6, (400.0, 300.0))
    clear_spawn_zone(atoms, (400.0, 300.0))
    assert math.hypot(c.position[0] - 400.0, c.position[1] - 300.0) == pytest.approx(300.0)


def test_point_in_polygon():
    square = [(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)]
    assert point_in_polygon((50.0, 50.0), square)
    assert not point_in_polygon((150.0, 50.0), square)
    assert not point_in_polygon((50.0, 50.0), square[:2])

    concave = [(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (50.0, 40.0), (0.0, 100.0)]
    assert point_in_polygon((50.0, 20.0), concave)
    assert not point_in_polygon((50.0, 80.0), concave)
