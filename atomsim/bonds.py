"""
Primitive operations on the bond multigraph.

Each atom stores ``bonds`` as a Counter of partner id -> bond order. Every
function here updates both endpoints so the graph stays symmetric; none of
them enforce valence limits (callers do).
"""

from __future__ import annotations

from collections import deque
from typing import Dict, Mapping, Set

from atomsim.entities import Atom

AtomMap = Dict[int, Atom]


def add_bond(a: Atom, b: Atom) -> None:
    a.bonds[b.id] += 1
    b.bonds[a.id] += 1


def break_bond(atoms: Mapping[int, Atom], a: Atom, b_id: int) -> None:
    """Sever every order of the a-b bond."""
    a.bonds.pop(b_id, None)
    b = atoms.get(b_id)
    if b is not None:
        b.bonds.pop(a.id, None)


def decrement_bond(atoms: Mapping[int, Atom], a: Atom, b_id: int) -> bool:
    """Lower the a-b bond order by one. Returns False when the atoms were not bonded."""
    if a.bonds[b_id] <= 0:
        return False
    _decrement(a, b_id)
    b = atoms.get(b_id)
    if b is not None and b.bonds[a.id] > 0:
        _decrement(b, a.id)
    return True


def bond_order(a: Atom, b_id: int) -> int:
    return a.bonds[b_id]


def clear_bonds(atoms: Mapping[int, Atom], a: Atom) -> None:
    for partner_id in list(a.bonds):
        break_bond(atoms, a, partner_id)


def connected_group(atoms: Mapping[int, Atom], start_id: int) -> Set[int]:
    """Breadth-first traversal; the result always contains ``start_id``."""
    group = {start_id}
    queue = deque([start_id])
    while queue:
        current = atoms.get(queue.popleft())
        if current is None:
            continue
        for neighbor_id in current.bonds:
            if neighbor_id not in group:
                group.add(neighbor_id)
                queue.append(neighbor_id)
    return group


def _decrement(atom: Atom, partner_id: int) -> None:
    atom.bonds[partner_id] -= 1
    if atom.bonds[partner_id] <= 0:
        del atom.bonds[partner_id]
