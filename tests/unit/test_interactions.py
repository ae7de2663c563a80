"""Tests for pairwise forces and the reaction rules."""

from __future__ import annotations

import random

import pytest

from atomsim.bonds import add_bond, bond_order
from atomsim.interactions import (
    DISSOCIATION_COLOR,
    INSERTION_COLOR,
    MAX_BOND_ORDER,
    rest_length,
    resolve_interactions,
)
from atomsim.settings import PhysicsSettings


def run_pass(atoms, particles=None, anchor_id=None, drag_group=None, seed=7):
    particles = [] if particles is None else particles
    resolve_interactions(atoms, particles, random.Random(seed), PhysicsSettings(), anchor_id, drag_group)
    return particles


def test_rest_length_shrinks_with_order():
    assert rest_length(30.0, 1) == pytest.approx(27.0)
    assert rest_length(30.0, 2) == pytest.approx(30.0 * 0.78)
    assert rest_length(30.0, 3) > 0.0


def test_hydrogen_and_oxygen_bond_when_close(make_atom, atoms):
    h = make_atom(1, (100.0, 100.0))
    o = make_atom(8, (100.0, 100.0))
    o.position = (100.0 + 1.2 * (h.radius + o.radius), 100.0)

    run_pass(atoms)

    assert bond_order(h, o.id) == 1
    assert bond_order(o, h.id) == 1


def test_ring_strain_blocks_three_membered_ring(make_atom, atoms):
    c1 = make_atom(6, (100.0, 100.0))
    c2 = make_atom(6, (130.0, 100.0))
    o = make_atom(8, (115.0, 112.0))
    add_bond(o, c1)
    add_bond(o, c2)

    run_pass(atoms)

    assert c2.id not in c1.bonds
    assert o.bond_count == 2


def test_hydrogen_prefers_free_oxygen_over_sulfur(make_atom, atoms):
    h = make_atom(1, (100.0, 100.0))
    s = make_atom(16, (130.0, 100.0))
    o = make_atom(8, (100.0, 160.0))

    run_pass(atoms)

    assert s.id not in h.bonds
    assert o.id not in h.bonds


def test_overstretched_bond_breaks(make_atom, atoms):
    h = make_atom(1, (0.0, 100.0))
    o = make_atom(8, (600.0, 100.0))
    add_bond(h, o)

    run_pass(atoms)

    assert not h.bonds and not o.bonds


def test_drag_group_keeps_overstretched_bond(make_atom, atoms):
    h = make_atom(1, (0.0, 100.0))
    o = make_atom(8, (600.0, 100.0))
    add_bond(h, o)

    run_pass(atoms, drag_group={h.id, o.id})

    assert bond_order(h, o.id) == 1


def test_drag_group_suppresses_bond_formation(make_atom, atoms):
    h = make_atom(1, (100.0, 100.0))
    o = make_atom(8, (130.0, 100.0))

    run_pass(atoms, drag_group={h.id})

    assert not h.bonds and not o.bonds


def test_over_valence_is_corrected(make_atom, atoms):
    h = make_atom(1, (100.0, 100.0))
    o1 = make_atom(8, (130.0, 100.0))
    o2 = make_atom(8, (70.0, 100.0))
    add_bond(h, o1)
    add_bond(h, o2)
    assert h.bond_count > h.capacity

    run_pass(atoms, drag_group={h.id, o1.id, o2.id})

    assert h.bond_count == 1
    assert o1.id not in h.bonds and h.id not in o1.bonds
    assert bond_order(o2, h.id) == 1


def test_bond_order_never_exceeds_three(make_atom, atoms):
    n1 = make_atom(7, (100.0, 100.0))
    n2 = make_atom(7, (125.0, 100.0))

    for _ in range(6):
        run_pass(atoms)

    assert bond_order(n1, n2.id) == MAX_BOND_ORDER
    assert n1.is_full and n2.is_full


def test_kinetic_insertion_splits_diatomic(make_atom, atoms):
    h1 = make_atom(1, (100.0, 100.0))
    h2 = make_atom(1, (120.0, 100.0))
    o = make_atom(8, (75.0, 100.0), velocity=(10.0, 0.0))
    add_bond(h1, h2)

    particles = run_pass(atoms)

    assert h2.id not in h1.bonds
    assert dict(o.bonds) == {h1.id: 1, h2.id: 1}
    assert len(particles) == 5
    assert all(p.color == INSERTION_COLOR for p in particles)


def test_violent_impact_dissociates_saturated_atoms(make_atom, atoms):
    h1 = make_atom(1, (100.0, 100.0))
    h2 = make_atom(1, (120.0, 100.0))
    h3 = make_atom(1, (145.0, 100.0), velocity=(-10.0, 0.0))
    h4 = make_atom(1, (165.0, 100.0), velocity=(-10.0, 0.0))
    add_bond(h1, h2)
    add_bond(h3, h4)

    particles = run_pass(atoms)

    assert h2.id not in h1.bonds
    assert h1.id not in h2.bonds
    assert any(p.color == DISSOCIATION_COLOR for p in particles)


def test_bonds_stay_symmetric_after_many_passes(make_atom, atoms):
    rng = random.Random(3)
    for index in range(12):
        z = (1, 1, 6, 7, 8)[index % 5]
        make_atom(z, (200.0 + rng.random() * 80.0, 200.0 + rng.random() * 80.0))

    for seed in range(20):
        run_pass(atoms, seed=seed)

    for atom in atoms.values():
        assert atom.bond_count <= atom.capacity
        for partner_id, order in atom.bonds.items():
            assert atoms[partner_id].bonds[atom.id] == order
            assert 1 <= order <= MAX_BOND_ORDER


@pytest.mark.parametrize("with_bystander, expected", [(False, 1), (True, 0)])
def test_unbonded_pair_waits_for_free_partner_in_reach(make_atom, atoms, with_bystander, expected):
    c = make_atom(6, (100.0, 100.0))
    o = make_atom(8, (130.0, 100.0))
    if with_bystander:
        # within search reach of both, outside reaction range of either
        make_atom(7, (100.0, 170.0))

    run_pass(atoms)

    assert bond_order(c, o.id) == expected
    assert bond_order(o, c.id) == expected


@pytest.mark.parametrize("with_bystander, expected", [(False, 2), (True, 1)])
def test_bond_upgrade_yields_to_free_unbonded_partner(make_atom, atoms, with_bystander, expected):
    c = make_atom(6, (100.0, 100.0))
    o = make_atom(8, (130.0, 100.0))
    add_bond(c, o)
    if with_bystander:
        n = make_atom(7, (100.0, 170.0))

    run_pass(atoms)

    assert bond_order(c, o.id) == expected
    if with_bystander:
        assert not n.bonds
