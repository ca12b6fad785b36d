"""Canonicalize free-text classbook activities.

Instructors write classbook entries as free-form notes with their own
conventions (chapter references, slide ranges, bullet characters, headings
like "Inhalte:"). normalize() maps such a fragment to a clean activity label
by running a fixed rewrite pipeline:

  1. literal phrase substitutions (jargon removal)
  2. literal whitespace/punctuation substitutions
  3. pattern rules (chapter numbers, brackets, leading bullets, ...)
  4. boilerplate patterns ("Kap. 3", "Tag 2", slide ranges)

Stages and the rules inside them are not commutative. Keep the order and the
duplicated rules as they are.
"""

import re
import unicodedata
from dataclasses import dataclass, field

# Stage 1: institution jargon
PHRASE_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("1 & 2", " "),
    (", 2, 3", " "),
    ("_Aufg_9_", " "),
    ("1, Kap.", " "),
    ("Kap.", " "),
    ("-Auf_6-1_Lernsituation-6…", " "),
    ("_Aufg_7-Kreuzworträtsel relationales Datenmodell…", " "),
    ("-591_Lehrbuch_Auf_4_", " "),
    ("-590_Lehrbuch_Auf_2_", " "),
    ("siehe Übungsdatei 5.1.2_....", " "),
    ("Einführung, Kap.", " "),
    ("Einzel-/Gruppenarbeit", " "),
    ("Gruppenarbeit und Besprechung", " "),
    ("Inhalte:", "  "),
    ("Tagesinhalte:", " "),
    ("Übungen:", " "),
    ("Prüfungen", " "),
    ("Prüfungen:", " "),
    ("Handlungsaufgabe:", " "),
    ("Grammar:", " "),
    ("IT-Milestone:", " "),
    ("Your English skills:", " "),
    ("Communication:", " "),
    ("Wiederholung des Vortags", " "),
    ("alles Folienpräsentation", " "),
    ("Informationen beschaffen und verwerten", " "),
    ("Lehrgespräche in den folgenden Themen:", " "),
    ("(Lehrgespräche)", " "),
    ("EXCEL", " "),
    ("Lernmethode: Workshop in", " "),
    ("Praktische Übung:", " "),
    ("Lernmethoden:", " "),
    ("Krank", "Selbstlernphase"),
    ("hemen und Lernziele", "Themen und Lernziele"),
)

# Stage 2: whitespace and punctuation
SPACING_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("\t", " "),
    ("\n", " "),
    (" , ", ", "),
    (" +", " "),
    ("--", "-"),
    ("- -", "-"),
    (" :", ": "),
    (":-", ": -"),
)

# Marker for the "only punctuation, separators and digits" rule. It has no
# stdlib regex equivalent (needs Unicode categories P*, Z*, N*).
PUNCTUATION_ONLY = "<punctuation-only>"

# Stage 3, in order: (pattern, replacement)
PATTERN_RULES: tuple[tuple[str, str], ...] = (
    (r"\b(\d+)(\s-\s\w+)\b", r"\2"),  # "3 - Intro" -> " - Intro"
    (r"\s+", " "),
    (r"\s{2,}", " "),
    (r"\d+\.\d+\.\d+", ""),  # (X.X.X)
    (r"\.{3,}", ""),
    (r"\(\s*\)", ""),
    (r",\s*,", ", "),
    (r",$", ""),
    (r"\d+\.\d+", ""),  # (X.X)
    (r"[()]", ""),
    (PUNCTUATION_ONLY, ""),
    (r"^o ", ""),
    (r"^§ ", ""),
    (r"^- ?", ""),
    (r"^· ", ""),
    (r"\[$", ""),
    (r"^(0[0-9]|10)\b", ""),
    (r"^: ", ""),
    (r"\.$", ""),
)

# Stage 4: platform boilerplate
BOILERPLATE_RULES: tuple[str, ...] = (
    r"Kap\.\s*\d+",
    r"Tag \d+",
    r"\b\d+\sCSS_Teil\s\d+\sFolien\s\d+\sbis\s\d+\b",  # "6 CSS_Teil 2 Folien 1 bis 50"
    r"\b\d+\sCSS_Teil\s\d+\sFolien\s\d+\sbis\s\d+\b",
    r"\bHTML_Teil\s\d+\sFolien\s\d+\sbis\s\d+\b",  # "HTML_Teil 2 Folien 1 bis 33"
)

DAY_LABELS: tuple[str, ...] = tuple(f"Tag {i:02d}" for i in range(1, 8))


def _is_punctuation_only(text: str) -> bool:
    """True for a non-empty string made only of punctuation, separators and digits."""
    return bool(text) and all(
        unicodedata.category(char)[0] in ("P", "Z", "N") for char in text
    )


@dataclass(frozen=True)
class RuleSet:
    """Compiled rewrite rules. Built once, shared read-only."""

    phrases: tuple[tuple[str, str], ...]
    spacing: tuple[tuple[str, str], ...]
    patterns: tuple[tuple[re.Pattern[str] | None, str], ...]
    boilerplate: tuple[re.Pattern[str], ...]
    day_labels: tuple[str, ...] = field(default=DAY_LABELS)

    @classmethod
    def compile(cls) -> "RuleSet":
        patterns = tuple(
            (None if pattern == PUNCTUATION_ONLY else re.compile(pattern), repl)
            for pattern, repl in PATTERN_RULES
        )
        return cls(
            phrases=PHRASE_REPLACEMENTS,
            spacing=SPACING_REPLACEMENTS,
            patterns=patterns,
            boilerplate=tuple(re.compile(pattern) for pattern in BOILERPLATE_RULES),
        )


class TextNormalizer:
    """Applies a RuleSet to raw classbook text."""

    def __init__(self, rules: RuleSet) -> None:
        self.rules = rules

    def normalize(self, raw: str) -> str:
        text = raw

        for old, new in self.rules.phrases:
            text = text.replace(old, new)

        for old, new in self.rules.spacing:
            text = text.replace(old, new)

        for pattern, repl in self.rules.patterns:
            if pattern is None:
                if _is_punctuation_only(text):
                    text = repl
            else:
                text = pattern.sub(repl, text)

        for pattern in self.rules.boilerplate:
            text = pattern.sub("", text)

        for label in self.rules.day_labels:
            text = text.replace(label, "")

        return text


DEFAULT_RULES = RuleSet.compile()
_default_normalizer = TextNormalizer(DEFAULT_RULES)


def normalize(raw: str) -> str:
    """Map a raw classbook text fragment to its canonical activity label.

    The result may be empty and may carry surrounding whitespace; callers strip it.
    """
    return _default_normalizer.normalize(raw)
