"""Tests for the bond multigraph primitives."""

from __future__ import annotations

from atomsim.bonds import add_bond, bond_order, break_bond, clear_bonds, connected_group, decrement_bond


def test_add_bond_is_symmetric_and_raises_order(make_atom, atoms):
    c1 = make_atom(6)
    c2 = make_atom(6, (30.0, 0.0))
    add_bond(c1, c2)
    add_bond(c1, c2)

    assert bond_order(c1, c2.id) == 2
    assert bond_order(c2, c1.id) == 2
    assert c1.bond_count == 2
    assert c1.free_valence == 2


def test_break_bond_removes_every_order_and_is_idempotent(make_atom, atoms):
    c1 = make_atom(6)
    c2 = make_atom(6, (30.0, 0.0))
    for _ in range(3):
        add_bond(c1, c2)

    break_bond(atoms, c1, c2.id)
    break_bond(atoms, c1, c2.id)

    assert c2.id not in c1.bonds
    assert c1.id not in c2.bonds
    assert c1.bond_count == 0


def test_decrement_bond_lowers_order_on_both_sides(make_atom, atoms):
    o = make_atom(8)
    c = make_atom(6, (30.0, 0.0))
    add_bond(o, c)
    add_bond(o, c)

    assert decrement_bond(atoms, o, c.id)
    assert bond_order(o, c.id) == 1
    assert bond_order(c, o.id) == 1

    assert decrement_bond(atoms, c, o.id)
    assert o.id not in c.bonds and c.id not in o.bonds
    assert not decrement_bond(atoms, o, c.id)


def test_missing_key_lookup_does_not_create_entries(make_atom):
    h = make_atom(1)
    assert bond_order(h, 99) == 0
    assert 99 not in h.bonds


def test_connected_group_walks_the_molecule(make_atom, atoms):
    o = make_atom(8)
    h1 = make_atom(1, (20.0, 0.0))
    h2 = make_atom(1, (-20.0, 0.0))
    lone = make_atom(2, (300.0, 0.0))
    add_bond(o, h1)
    add_bond(o, h2)

    assert connected_group(atoms, h1.id) == {o.id, h1.id, h2.id}
    assert connected_group(atoms, lone.id) == {lone.id}
    assert connected_group(atoms, 12345) == {12345}


def test_clear_bonds_detaches_all_partners(make_atom, atoms):
    o = make_atom(8)
    h1 = make_atom(1, (20.0, 0.0))
    h2 = make_atom(1, (-20.0, 0.0))
    add_bond(o, h1)
    add_bond(o, h2)

    clear_bonds(atoms, o)

    assert not o.bonds
    assert not h1.bonds
    assert not h2.bonds
