"""Sanity checks for the bundled element table and shipped configuration files."""

from __future__ import annotations

import re

import pytest
import yaml

from atomsim.elements import (
    METAL_VALENCE_CAPACITY,
    elements_from_dicts,
    valence_capacity,
    valence_electrons,
)

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def test_element_table_is_well_formed(element_table):
    assert len(element_table) >= 20
    zs = [element.z for element in element_table]
    assert zs == sorted(zs)
    for element in element_table:
        assert HEX_COLOR.match(element.color), element.symbol
        assert element.isotopes
        for isotope in element.isotopes:
            assert isotope.mass > 0.0
            if not isotope.is_stable:
                assert isotope.mode in ("alpha", "beta")
                assert isotope.product is not None


def test_noble_gases_do_not_bond(element_table):
    for symbol in ("He", "Ne", "Ar", "Xe", "Rn"):
        assert valence_capacity(element_table.by_symbol(symbol)) == 0


def test_capacity_for_covalent_and_metallic_elements(element_table):
    assert valence_capacity(element_table.get(1)) == 1
    assert valence_capacity(element_table.get(6)) == 4
    assert valence_capacity(element_table.get(16)) == 6
    assert valence_capacity(element_table.get(26)) == METAL_VALENCE_CAPACITY


def test_valence_electrons_for_main_group():
    assert valence_electrons(1) == 1
    assert valence_electrons(8) == 6
    assert valence_electrons(17) == 7
    assert valence_electrons(26) is None


def test_find_isotope_by_mass(element_table):
    hydrogen = element_table.get(1)
    assert hydrogen.find_isotope_index(2.014) == 1
    assert hydrogen.find_isotope_index(50.0) == -1
    assert element_table.get(8).color_rgb == (255, 13, 13)


def test_unstable_isotope_requires_mode():
    with pytest.raises(ValueError, match="mode"):
        elements_from_dicts(
            [{"z": 1, "symbol": "H", "valence": 1, "isotopes": [{"mass": 3.0, "half_life": 10.0}]}]
        )


def test_non_positive_half_life_is_rejected():
    with pytest.raises(ValueError, match="half-life"):
        elements_from_dicts(
            [{"z": 1, "symbol": "H", "valence": 1, "isotopes": [{"mass": 3.0, "half_life": 0, "mode": "beta"}]}]
        )


def test_element_without_isotopes_is_rejected():
    with pytest.raises(ValueError, match="isotope"):
        elements_from_dicts([{"z": 1, "symbol": "H", "valence": 1, "isotopes": []}])


def test_recipes_reference_known_elements(project_root, element_table):
    with (project_root / "config" / "recipes.yaml").open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    for recipe in data["recipes"]:
        for ingredient in recipe["ingredients"]:
            assert ingredient["z"] in element_table, recipe["id"]
            assert ingredient["count"] > 0
