"""Tests for name-based navigation routing."""

from askbase.resolver.intent_router import (
    INTENT_NONE,
    INTENT_PANO,
    INTENT_PROJECT,
    route_intent,
)

PANOS = ["Main Gate", "Library", "Science Lab"]
PROJECTS = ["Solar Car", "Library Drive"]


def test_pano_match_keeps_original_spelling():
    routed = route_intent("show me the  main   GATE please", PANOS, PROJECTS)
    assert routed.intent == INTENT_PANO
    assert routed.target == "Main Gate"
    assert routed.is_routed


def test_project_match():
    routed = route_intent("tell me about the solar car", PANOS, PROJECTS)
    assert routed.intent == INTENT_PROJECT
    assert routed.target == "Solar Car"


def test_panoramas_win_over_projects():
    routed = route_intent("library drive", PANOS, PROJECTS)
    assert routed.intent == INTENT_PANO
    assert routed.target == "Library"


def test_longest_name_wins_within_a_list():
    routed = route_intent("open the science lab", ["Science", "Science Lab"], [])
    assert routed.target == "Science Lab"


def test_word_boundaries_required():
    routed = route_intent("libraryish things", PANOS, PROJECTS)
    assert routed.intent == INTENT_NONE
    assert routed.target is None


def test_no_names_or_blank_question():
    assert not route_intent("main gate").is_routed
    assert not route_intent("   ", PANOS, PROJECTS).is_routed


def test_non_string_names_are_ignored():
    routed = route_intent("library", [None, 42, "", "Library"], [])
    assert routed.target == "Library"
