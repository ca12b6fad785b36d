"""Tests for the classbook text normalizer."""

import pytest

from src.portfolio.normalize import DEFAULT_RULES, TextNormalizer, normalize


class TestNormalize:
    """Single rules and their interaction."""

    @pytest.mark.parametrize("raw,expected", [
        ("- SQL Grundlagen.", "SQL Grundlagen"),
        ("-Joins", "Joins"),
        ("§ Datenschutzgrundverordnung", "Datenschutzgrundverordnung"),
        ("· Schleifen", "Schleifen"),
        ("Krank", "Selbstlernphase"),
        ("Übung , Aufgabe", "Übung, Aufgabe"),
        ("Datenbanken,,Joins", "Datenbanken, Joins"),
        ("Datenbanken,", "Datenbanken"),
        ("hemen und Lernziele", "Themen und Lernziele"),
        ("Fragen?", "Fragen?"),
    ])
    def test_single_rules(self, raw, expected):
        assert normalize(raw).strip() == expected

    def test_chapter_reference_and_bullet(self):
        # (3.2.1) goes first, then the empty parentheses, then the bullet
        assert normalize("o Normalisierung (3.2.1)").strip() == "Normalisierung"

    def test_leading_day_number(self):
        assert normalize("05 Einführung in Python").strip() == "Einführung in Python"

    def test_jargon_phrase_removed(self):
        assert normalize("Inhalte: Variablen").strip() == "Variablen"

    def test_shadowed_phrase_still_cleaned_by_spacing_rules(self):
        # "Prüfungen" wins over "Prüfungen:", the colon is cleaned up later
        assert normalize("Prüfungen: Java").strip() == "Java"

    def test_day_marker_removed_after_colon_rule(self):
        # "Tag N" is stripped in the last stage, after the leading ": " rule ran
        assert normalize("Tag 03: HTML Formulare") == ": HTML Formulare"

    def test_slide_ranges_removed(self):
        assert normalize("6 CSS_Teil 2 Folien 1 bis 50").strip() == ""
        assert normalize("HTML_Teil 2 Folien 1 bis 33 Tabellen").strip() == "Tabellen"

    def test_whitespace_collapsed(self):
        assert normalize("Relationale\tDatenbanken\n  und   SQL") == (
            "Relationale Datenbanken und SQL"
        )

    @pytest.mark.parametrize("raw", [
        "1.2",
        "...",
        "(1)",
        "- 12 -",
        "§ 3",
        "1.2.3 ...",
        "Wiederholung des Vortags",
        "Tag 02",
    ])
    def test_noise_becomes_empty(self, raw):
        assert normalize(raw).strip() == ""

    @pytest.mark.parametrize("raw", [
        "SQL Grundlagen",
        "Normalisierung",
        "Datenbanken, Joins",
        "Was ist ein Primärschlüssel?",
    ])
    def test_stable_output_is_idempotent(self, raw):
        once = normalize(raw)
        assert normalize(once) == once

    def test_default_normalizer_matches_module_function(self):
        normalizer = TextNormalizer(DEFAULT_RULES)
        raw = "o Normalisierung (3.2.1)"
        assert normalizer.normalize(raw) == normalize(raw)
