"""
Field detection against the GETS schema.

This module maps arbitrarily named source columns onto the canonical GETS
fields. Only the first row of a dataset is inspected: rows of one upload are
assumed to share a structure. For every canonical field the detector looks
for the best source column by:

1. Type gating: the sampled value must be compatible with the field's type
2. Exact variant match: a column whose normalized name equals a known variant
   wins immediately with confidence 1.0
3. Fuzzy match: otherwise the highest Dice similarity against the variants,
   kept only above the close-match floor

The outcome is a three-way partition: matched, close (with confidence) and
missing.
"""

import re
from collections import Counter
from typing import Any, Mapping, NamedTuple, Optional

from .config import CLOSE_MATCH_THRESHOLD, LINE_ITEM_HINTS, MATCH_THRESHOLD, logger
from .gets import GETS_SCHEMA, LINES_PREFIX, CanonicalField, GetsSchema, normalize_field_name
from .inference import InferredType, infer_type, is_type_compatible
from .rows import nested_lines
from .schemas import CloseMatch, CoverageResult
from .scoring import round_half_up

_WHITESPACE = re.compile(r"\s+")


# ============================================================================
# String Similarity
# ============================================================================

def compare_two_strings(first: str, second: str) -> float:
    """
    Sørensen-Dice coefficient over character bigrams.

    Whitespace is ignored. Identical strings score 1.0; strings shorter than
    two characters share no bigrams and score 0.0. Repeated bigrams are
    counted as a multiset, so "aaaa" vs "aa" is not a perfect match.

    Args:
        first: First string
        second: Second string

    Returns:
        Similarity in [0, 1]
    """
    first = _WHITESPACE.sub("", first)
    second = _WHITESPACE.sub("", second)

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i:i + 2] for i in range(len(first) - 1))

    intersection = 0
    for i in range(len(second) - 1):
        bigram = second[i:i + 2]
        if first_bigrams[bigram] > 0:
            first_bigrams[bigram] -= 1
            intersection += 1

    return 2.0 * intersection / (len(first) + len(second) - 2)


# ============================================================================
# Sample Flattening
# ============================================================================

def looks_like_line_field(name: str) -> bool:
    """True when a flat column name hints at line-item data (qty, price, ...)."""
    normalized = normalize_field_name(name)
    return any(hint in normalized for hint in LINE_ITEM_HINTS)


def flatten_sample_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """
    Expose every column of a sample row as a candidate for matching.

    Object-valued columns expand to ``parent.child``. Line-item columns are
    exposed as ``lines[].<key>``: taken from the first element of a ``lines``
    array when there is one, otherwise guessed from flat column names. A flat
    column may therefore appear twice, once under its own name and once under
    the ``lines[].`` prefix.
    """
    candidates: dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                candidates[f"{key}.{sub_key}"] = sub_value
        else:
            candidates[key] = value

    lines = nested_lines(row)
    if lines:
        for key, value in lines[0].items():
            candidates[f"{LINES_PREFIX}{key}"] = value
    else:
        for key, value in row.items():
            if looks_like_line_field(key):
                candidates[f"{LINES_PREFIX}{key}"] = value

    return candidates


# ============================================================================
# Matching
# ============================================================================

class _Candidate(NamedTuple):
    name: str
    normalized: str
    inferred: InferredType


class FieldMatch(NamedTuple):
    """Best source column found for one canonical field."""
    candidate: Optional[str]
    score: float
    exact: bool


def _prepare_candidates(sample: Mapping[str, Any]) -> list[_Candidate]:
    return [
        _Candidate(name, normalize_field_name(name), infer_type(value))
        for name, value in sample.items()
    ]


def _best_match(canonical: CanonicalField, candidates: list[_Candidate]) -> FieldMatch:
    variants = canonical.normalized_variants()
    best_candidate: Optional[str] = None
    best_score = 0.0

    for candidate in candidates:
        if not is_type_compatible(candidate.inferred, canonical.type):
            continue

        if candidate.normalized in variants:
            return FieldMatch(candidate.name, 1.0, exact=True)

        similarity = max(
            (compare_two_strings(candidate.normalized, variant) for variant in variants),
            default=0.0,
        )
        # Strictly greater: earlier columns win ties
        if similarity > best_score and similarity > CLOSE_MATCH_THRESHOLD:
            best_candidate = candidate.name
            best_score = similarity

    return FieldMatch(best_candidate, best_score, exact=False)


def match_field(
    canonical: CanonicalField,
    sample: Mapping[str, Any],
) -> FieldMatch:
    """
    Find the best source column for one canonical field.

    Args:
        canonical: The GETS field to look for
        sample: Flattened sample row (see flatten_sample_row)

    Returns:
        FieldMatch with the winning column (or None), its score and whether
        it was an exact variant match
    """
    return _best_match(canonical, _prepare_candidates(sample))


def detect_fields(
    rows: list[Mapping[str, Any]],
    schema: GetsSchema = GETS_SCHEMA,
) -> CoverageResult:
    """
    Classify every canonical field as matched, close or missing.

    Args:
        rows: Source rows; only rows[0] is inspected
        schema: Canonical schema to match against

    Returns:
        CoverageResult partitioning all schema fields
    """
    if not isinstance(rows, list) or not rows or not isinstance(rows[0], Mapping):
        logger.warning("Field detection called without a usable sample row")
        return CoverageResult(missing=schema.paths)

    candidates = _prepare_candidates(flatten_sample_row(rows[0]))

    matched: list[str] = []
    close: list[CloseMatch] = []
    missing: list[str] = []

    for canonical in schema:
        found = _best_match(canonical, candidates)

        if found.exact or found.score >= MATCH_THRESHOLD:
            matched.append(canonical.path)
        elif found.candidate is not None and found.score >= CLOSE_MATCH_THRESHOLD:
            close.append(CloseMatch(
                target=canonical.path,
                candidate=found.candidate,
                confidence=round_half_up(found.score * 100) / 100,
            ))
        else:
            missing.append(canonical.path)

        logger.debug(
            f"{canonical.path}: candidate={found.candidate} "
            f"score={found.score:.2f} exact={found.exact}"
        )

    logger.info(
        f"Field detection: {len(matched)} matched, {len(close)} close, {len(missing)} missing"
    )

    return CoverageResult(matched=matched, close=close, missing=missing)
