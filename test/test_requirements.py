"""
Requirement trees evaluated against province traits.
"""

import pytest

from realm.engine.definitions import GroupNode, TraitNode, requirement_node_from_dict
from realm.engine.requirements import evaluate_requirement
from realm.engine.state import Province


@pytest.fixture
def province():
    return Province(
        id="p1",
        climate_id="temperate",
        landscape_id="hills",
        culture_id="riverfolk",
        religion_id="old_faith",
    )


TEMPERATE = TraitNode("climate", "temperate")
ARID = TraitNode("climate", "arid")
HILLS = TraitNode("landscape", "hills")
MOUNTAINS = TraitNode("landscape", "mountains")


def test_no_tree_is_satisfied(province):
    assert evaluate_requirement(None, province) is True


def test_trait_leaf(province):
    assert evaluate_requirement(TEMPERATE, province) is True
    assert evaluate_requirement(ARID, province) is False
    assert evaluate_requirement(TraitNode("religion", "old_faith"), province) is True


def test_trait_leaf_on_missing_trait():
    bare = Province(id="p0")
    assert evaluate_requirement(TraitNode("culture", "riverfolk"), bare) is False


@pytest.mark.parametrize("op, children, expected", [
    ("and", [TEMPERATE, HILLS], True),
    ("and", [TEMPERATE, MOUNTAINS], False),
    ("or", [ARID, HILLS], True),
    ("or", [ARID, MOUNTAINS], False),
    ("not", [ARID], True),
    ("not", [TEMPERATE], False),
    ("xor", [TEMPERATE, MOUNTAINS], True),
    ("xor", [TEMPERATE, HILLS], False),
    ("nand", [TEMPERATE, HILLS], False),
    ("nand", [TEMPERATE, MOUNTAINS], True),
    ("nor", [ARID, MOUNTAINS], True),
    ("nor", [ARID, HILLS], False),
    ("eq", [ARID, MOUNTAINS], True),
    ("eq", [TEMPERATE, HILLS], True),
    ("eq", [TEMPERATE, MOUNTAINS], False),
])
def test_combinators(province, op, children, expected):
    assert evaluate_requirement(GroupNode(op, children), province) is expected


def test_implies(province):
    # hills -> temperate holds, hills -> arid does not, mountains -> anything holds
    assert evaluate_requirement(GroupNode("implies", [HILLS, TEMPERATE]), province) is True
    assert evaluate_requirement(GroupNode("implies", [HILLS, ARID]), province) is False
    assert evaluate_requirement(GroupNode("implies", [MOUNTAINS, ARID]), province) is True


def test_implies_ignores_children_past_the_second(province):
    node = GroupNode("implies", [HILLS, TEMPERATE, ARID])
    assert evaluate_requirement(node, province) is True


@pytest.mark.parametrize("op, expected", [
    ("and", True),
    ("or", False),
    ("xor", False),
    ("nand", False),
    ("implies", True),
    ("eq", True),
])
def test_empty_groups(province, op, expected):
    assert evaluate_requirement(GroupNode(op, []), province) is expected


@pytest.mark.parametrize("op", ["not", "nor"])
def test_empty_negations_are_vacuously_true(province, op):
    # Kept as-is: an empty not/nor admits every province
    assert evaluate_requirement(GroupNode(op, []), province) is True


def test_single_child_implies_and_eq_are_true(province):
    assert evaluate_requirement(GroupNode("implies", [ARID]), province) is True
    assert evaluate_requirement(GroupNode("eq", [ARID]), province) is True


def test_unknown_operator_is_satisfied(province):
    assert evaluate_requirement(GroupNode("majority", [ARID, MOUNTAINS]), province) is True


def test_nested_tree_from_dict(province):
    node = requirement_node_from_dict({
        "type": "group",
        "op": "and",
        "children": [
            {"type": "trait", "category": "religion", "id": "old_faith"},
            {
                "type": "group",
                "op": "implies",
                "children": [
                    {"type": "trait", "category": "landscape", "id": "mountains"},
                    {"type": "trait", "category": "climate", "id": "continental"},
                ],
            },
        ],
    })
    assert evaluate_requirement(node, province) is True
    province.landscape_id = "mountains"
    assert evaluate_requirement(node, province) is False
    province.climate_id = "continental"
    assert evaluate_requirement(node, province) is True


def test_evaluation_is_deterministic_and_read_only(province):
    node = GroupNode("or", [GroupNode("not", [ARID]), GroupNode("xor", [HILLS, MOUNTAINS])])
    before = province.to_dict()
    results = {evaluate_requirement(node, province) for _ in range(5)}
    assert results == {True}
    assert province.to_dict() == before


def test_only_trait_categories_are_looked_up():
    province = Province(id="p9", owner_country_id="north")
    assert province.trait("owner_country") is None
    assert evaluate_requirement(TraitNode("owner_country", "north"), province) is False
