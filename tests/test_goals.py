"""Tests for the goal catalog and LTL label matching."""

import logging

import numpy as np
import pytest

from ltl_gridworld.environment.goals import (
    ZONE_VECTOR_SIZE,
    GoalType,
    goals_in_label,
    one_hot,
    parse_ltl_goal,
)


class TestGoalType:

    def test_codes_follow_declaration_order(self):
        assert [g.code for g in GoalType] == [0, 1, 2]
        assert GoalType.from_code(0) is GoalType.GreenPlus
        assert GoalType.from_code(1) is GoalType.RedEx
        assert GoalType.from_code(2) is GoalType.YellowStar

    def test_tags_and_colors(self):
        assert GoalType.GreenPlus.tag == "plus"
        assert GoalType.RedEx.tag == "ex"
        assert GoalType.YellowStar.tag == "star"
        assert GoalType.RedEx.color == "red"

    @pytest.mark.parametrize("bad", [3, -1, True, "1", 1.0, None])
    def test_from_code_rejects_invalid(self, bad):
        with pytest.raises(ValueError):
            GoalType.from_code(bad)

    def test_from_code_accepts_numpy_ints(self):
        assert GoalType.from_code(np.int32(2)) is GoalType.YellowStar

    def test_from_name_accepts_name_or_tag(self):
        assert GoalType.from_name("RedEx") is GoalType.RedEx
        assert GoalType.from_name("star") is GoalType.YellowStar
        with pytest.raises(ValueError):
            GoalType.from_name("BlueCircle")

    def test_zone_vectors_are_disjoint_blocks(self):
        vectors = [g.zone_vector for g in GoalType]
        for vec in vectors:
            assert vec.shape == (ZONE_VECTOR_SIZE,)
            assert vec.sum() == 8
        assert np.all(vectors[0][:8] == 1)
        assert np.all(vectors[1][8:16] == 1)
        assert np.all(vectors[2][16:] == 1)
        assert np.all(sum(vectors) == 1)


class TestLTLLabels:

    def test_single_color_maps_to_goal(self):
        assert parse_ltl_goal("F green") is GoalType.GreenPlus
        assert parse_ltl_goal("eventually(red)") is GoalType.RedEx
        assert parse_ltl_goal("yellow") is GoalType.YellowStar

    def test_matching_is_case_sensitive(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_ltl_goal("F GREEN") is None
        assert "names no known goal" in caplog.text

    def test_multiple_colors_are_ambiguous(self, caplog):
        assert goals_in_label("F (green & F red)") == [GoalType.GreenPlus, GoalType.RedEx]
        with caplog.at_level(logging.WARNING):
            assert parse_ltl_goal("F (green & F red)") is None
        assert "Ambiguous" in caplog.text


def test_one_hot():
    assert one_hot(None).tolist() == [0, 0, 0]
    assert one_hot(GoalType.RedEx).tolist() == [0, 1, 0]
    assert one_hot({GoalType.GreenPlus, GoalType.YellowStar}).tolist() == [1, 0, 1]
