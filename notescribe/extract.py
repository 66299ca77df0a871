"""
Heuristic field extraction from generated note markdown.

Extraction is an ordered list of small extractor functions. The first one
that returns something wins, so new rules are added by inserting a function
into the list rather than by editing the compiler.
"""

import re
from typing import Callable, Iterable, List, Optional

ProcedureExtractor = Callable[[str], Optional[str]]
TagExtractor = Callable[[str], List[str]]

DEFAULT_PROCEDURE = "Medical Procedure"
MAX_TAGS = 5

PROCEDURE_VOCABULARY = [
    "appendectomy", "cholecystectomy", "colonoscopy", "endoscopy",
    "laparoscopy", "biopsy", "catheterization", "angiogram",
    "appendicitis", "pneumonia", "fracture", "hypertension",
]

TAG_VOCABULARY = [
    "acute", "chronic", "hypertension", "diabetes", "fracture",
    "infection", "pain", "examination", "follow-up", "surgery",
]

# Words of context kept on each side of a vocabulary hit
CONTEXT_WORDS = 5

_MARKDOWN_EDGES = " \t*_#`>-"


def _clean(value: str) -> Optional[str]:
    """Strip whitespace and markdown emphasis; None if nothing is left."""
    value = value.strip(_MARKDOWN_EDGES).strip()
    return value or None


def _label_pattern(label: str, value: str) -> "re.Pattern":
    # "Diagnosis:", "**Diagnosis:**", "PROCEDURE/ASSESSMENT:" all match
    return re.compile(rf"\b{label}[^:\n]{{0,30}}:[*_ \t]*({value})", re.IGNORECASE)


def labelled(label: str) -> ProcedureExtractor:
    """Extractor for the text after "<label>...:" up to the end of the sentence."""
    pattern = _label_pattern(label, r"[^.\n]+")

    def extract(content: str) -> Optional[str]:
        for match in pattern.finditer(content):
            value = _clean(match.group(1))
            if value:
                return value
        return None

    extract.__name__ = f"labelled_{label.replace(' ', '_')}"
    return extract


_PHRASE = re.compile(
    r"(?:is|for|with)\s+(?:a|an)\s+([^.\n]+?(?:surgery|procedure|examination|assessment))",
    re.IGNORECASE,
)


def procedure_phrase(content: str) -> Optional[str]:
    """'... for a laparoscopic surgery' -> 'laparoscopic surgery'."""
    match = _PHRASE.search(content)
    return _clean(match.group(1)) if match else None


def procedure_vocabulary(content: str) -> Optional[str]:
    """
    Known procedure names, scanned case-insensitively in vocabulary order.
    Returns the hit with a few words of context when it isn't the first word.
    """
    lowered = content.lower()
    for term in PROCEDURE_VOCABULARY:
        if term not in lowered:
            continue

        sentence = next(
            (s for s in re.split(r"[.!?]+", content) if term in s.lower()), "",
        )
        words = sentence.split()
        index = next((i for i, w in enumerate(words) if term in w.lower()), -1)
        if index > 0:
            start = max(0, index - CONTEXT_WORDS)
            return _clean(" ".join(words[start:index + CONTEXT_WORDS]))
        return term.capitalize()
    return None


PROCEDURE_EXTRACTORS: List[ProcedureExtractor] = [
    labelled("procedure"),
    labelled("diagnosis"),
    labelled("assessment"),
    labelled("chief complaint"),
    procedure_phrase,
    procedure_vocabulary,
]


def extract_procedure_type(
    content: str,
    extractors: Iterable[ProcedureExtractor] = PROCEDURE_EXTRACTORS,
) -> str:
    """First extractor hit, or "Medical Procedure"."""
    for extractor in extractors:
        value = extractor(content)
        if value:
            return value
    return DEFAULT_PROCEDURE


_TAG_LABELS = ["diagnosis", "assessment", "procedure", "medication"]
_TAG_PATTERNS = [_label_pattern(label, r"[\w \t,'/-]+") for label in _TAG_LABELS]


def labelled_tags(content: str) -> List[str]:
    """First value after each of Diagnosis/Assessment/Procedure/Medication labels."""
    tags = []
    for pattern in _TAG_PATTERNS:
        match = pattern.search(content)
        value = _clean(match.group(1)) if match else None
        if value:
            tags.append(value)
    return tags


def vocabulary_tags(content: str) -> List[str]:
    lowered = content.lower()
    return [term.capitalize() for term in TAG_VOCABULARY if term in lowered]


TAG_EXTRACTORS: List[TagExtractor] = [
    labelled_tags,
    vocabulary_tags,
]


def extract_tags(
    content: str,
    extractors: Iterable[TagExtractor] = TAG_EXTRACTORS,
    limit: int = MAX_TAGS,
) -> List[str]:
    """Tags from the first extractor that finds any, deduplicated and capped."""
    for extractor in extractors:
        seen = set()
        tags = []
        for tag in extractor(content):
            if tag.lower() not in seen:
                seen.add(tag.lower())
                tags.append(tag)
        if tags:
            return tags[:limit]
    return []
