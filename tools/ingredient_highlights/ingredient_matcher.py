#!/usr/bin/env python3
"""Match recipe instruction steps to the ingredient lines they mention.

Ingredient lines are reduced to weighted token profiles (head noun, 2-3 word
phrases, inverse line-frequency weights) and steps to token and synonym sets.
Every (step, ingredient) pair gets a feature vector and a confidence; pairs that
clear an adaptive threshold are ranked per step, and steps with no accepted
pair fall back to a relaxed token-overlap pass.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from highlight_config import DEFAULT_MIN_CONFIDENCE, FALLBACK_LIMIT, FALLBACK_MIN_RATIO
from highlight_lexicon import (
    FRACTION_MAP,
    GENERIC_INGREDIENT_SECTIONS,
    GENERIC_INSTRUCTION_SECTIONS,
    HEAD_NOUN_IGNORE_WORDS,
    PREP_WORDS,
    SEASONING_TOKENS,
    STOP_WORDS,
    SYNONYM_MAP,
    UNIT_TOKENS,
)
from highlight_scoring import (
    CandidateFeatures,
    CandidateMatch,
    ConfidenceScorer,
    LearnedModel,
    resolve_scorer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngredientGroup:
    section: Optional[str]
    items: List[str]


@dataclass(frozen=True)
class InstructionGroup:
    section: Optional[str]
    steps: List[str]


@dataclass(frozen=True)
class MatcherOptions:
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    use_learned_model: bool = False
    learned_model: Optional[LearnedModel] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "MatcherOptions":
        if not payload:
            return cls()
        if not isinstance(payload, Mapping):
            raise ValueError("Matcher options must be a JSON object")
        min_confidence = payload.get("minConfidence", payload.get("min_confidence", DEFAULT_MIN_CONFIDENCE))
        use_learned = payload.get("useLearnedModel", payload.get("use_learned_model", False))
        return cls(min_confidence=float(min_confidence), use_learned_model=bool(use_learned))


@dataclass(frozen=True)
class ProcessedIngredient:
    id: str
    original: str
    clean_label: str
    tokens: Tuple[str, ...]
    token_set: FrozenSet[str]
    head_noun: Optional[str]
    phrases: Tuple[str, ...]
    section: Optional[str]
    token_weights: Mapping[str, float]
    total_weight: float


@dataclass(frozen=True)
class StepFeatures:
    id: str
    text: str
    tokens: Tuple[str, ...]
    token_set: FrozenSet[str]
    synonym_set: FrozenSet[str]
    phrases: Tuple[str, ...]
    section: Optional[str]


# ---------------------------------------------------------------------------
# Group normalization


_SECTION_PREFIX_RE = re.compile(r"^section\s*:\s*", re.IGNORECASE)
_TRAILING_LABEL_PUNCT_RE = re.compile(r"[:.]+\s*$")


def clean_section_label(section: str | None) -> str:
    label = _SECTION_PREFIX_RE.sub("", (section or "").strip()).strip()
    return _TRAILING_LABEL_PUNCT_RE.sub("", label).strip()


def normalize_ingredient_groups(groups: Sequence[IngredientGroup]) -> List[IngredientGroup]:
    normalized: List[IngredientGroup] = []
    for group in groups:
        section = clean_section_label(group.section)
        if section.lower() in GENERIC_INGREDIENT_SECTIONS:
            section = ""

        items: List[str] = []
        for item in group.items or []:
            trimmed = (item or "").strip()
            if not trimmed:
                continue
            # Repeated section headers sometimes leak into the item list.
            if section and clean_section_label(trimmed).lower() == section.lower():
                continue
            items.append(trimmed)

        normalized.append(IngredientGroup(section=section, items=items))
    return normalized


def looks_like_heading(value: str) -> str | None:
    """Return the heading text if a step line reads like an inline section heading."""
    trimmed = value.strip()
    if not trimmed:
        return None
    stem = re.sub(r"[.:]+$", "", trimmed).strip()
    words = stem.split()
    if not words:
        return None
    all_caps = stem == stem.upper() and any(char.isalpha() for char in stem)
    if (all_caps and len(words) <= 6) or trimmed.endswith(":"):
        return stem
    return None


def normalize_instruction_groups(groups: Sequence[InstructionGroup]) -> List[InstructionGroup]:
    normalized: List[InstructionGroup] = []

    for group in groups:
        group_label = clean_section_label(group.section)
        current_section = "" if group_label.lower() in GENERIC_INSTRUCTION_SECTIONS else group_label
        echo_label = current_section
        buffer: List[str] = []

        for step in group.steps or []:
            trimmed = (step or "").strip()
            if not trimmed:
                continue
            if echo_label and clean_section_label(trimmed).lower() == echo_label.lower():
                continue

            heading = looks_like_heading(trimmed)
            if heading is not None:
                if buffer:
                    normalized.append(InstructionGroup(section=current_section, steps=buffer))
                    buffer = []
                current_section = "" if heading.lower() in GENERIC_INSTRUCTION_SECTIONS else heading
                continue

            buffer.append(trimmed)

        if buffer:
            normalized.append(InstructionGroup(section=current_section, steps=buffer))

    return normalized


# ---------------------------------------------------------------------------
# Cleaning and tokenizing


def _word_alternation(words: Sequence[str]) -> re.Pattern[str]:
    ordered = sorted(words, key=lambda word: (-len(word), word))
    alternatives = (r"\W+".join(re.escape(part) for part in word.split()) for word in ordered)
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b")


_FRACTION_RE = re.compile("[" + "".join(re.escape(char) for char in FRACTION_MAP) + "]")
_PARENTHETICAL_RE = re.compile(r"\([^)]*\)")
_FRACTION_RANGE_RE = re.compile(r"\b\d+\s+\d/\d\b|\b\d+/\d+\b")
_QUANTITY_RE = re.compile(r"(^|\s)\d+[\d/.]*\s*")
_UNIT_RE = _word_alternation(UNIT_TOKENS)
_PREP_RE = _word_alternation(sorted(PREP_WORDS))
_STOP_RE = _word_alternation(sorted(STOP_WORDS))
_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")


def replace_unicode_fractions(text: str) -> str:
    return _FRACTION_RE.sub(lambda match: FRACTION_MAP[match.group(0)], text)


def clean_ingredient_text(text: str) -> str:
    cleaned = replace_unicode_fractions(text.lower())
    cleaned = _PARENTHETICAL_RE.sub(" ", cleaned)
    cleaned = _FRACTION_RANGE_RE.sub(" ", cleaned)
    cleaned = _QUANTITY_RE.sub(" ", cleaned)
    cleaned = _UNIT_RE.sub(" ", cleaned)
    cleaned = _PREP_RE.sub(" ", cleaned)
    cleaned = _STOP_RE.sub(" ", cleaned)
    cleaned = _PUNCT_RE.sub(" ", cleaned)
    return _SPACE_RE.sub(" ", cleaned).strip()


def clean_step_text(text: str) -> str:
    return _SPACE_RE.sub(" ", _PUNCT_RE.sub(" ", text.lower())).strip()


def singularize(word: str) -> str:
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("ves"):
        return word[:-3] + "f"
    if word.endswith("es") and not word.endswith("ses"):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def tokenize(text: str) -> List[str]:
    return [singularize(token) for token in text.split() if len(token) > 1]


def get_head_noun(tokens: Sequence[str]) -> str | None:
    for candidate in reversed(tokens):
        if len(candidate) <= 1 or candidate in HEAD_NOUN_IGNORE_WORDS:
            continue
        return candidate
    return tokens[-1] if tokens else None


def build_phrases(tokens: Sequence[str]) -> List[str]:
    phrases: List[str] = []
    for size in range(2, min(3, len(tokens)) + 1):
        for start in range(len(tokens) - size + 1):
            phrases.append(" ".join(tokens[start : start + size]))
    return phrases


def expand_synonyms(token: str) -> Tuple[str, ...]:
    return SYNONYM_MAP.get(token, ())


# ---------------------------------------------------------------------------
# Feature building


def build_processed_ingredients(groups: Sequence[IngredientGroup]) -> List[ProcessedIngredient]:
    drafts: List[Tuple[str, str, str, List[str], Optional[str]]] = []
    line_frequency: Counter[str] = Counter()

    for group_index, group in enumerate(groups):
        for item_index, item in enumerate(group.items or []):
            clean_label = clean_ingredient_text(item or "")
            tokens = tokenize(clean_label)
            if not tokens:
                logger.debug("Ingredient %d-%d has no tokens after cleaning: %r", group_index, item_index, item)
                continue
            line_frequency.update(set(tokens))
            drafts.append((f"{group_index}-{item_index}", item, clean_label, tokens, group.section))

    processed: List[ProcessedIngredient] = []
    for ingredient_id, original, clean_label, tokens, section in drafts:
        weights = {token: 1.0 / line_frequency[token] for token in tokens}
        total_weight = sum(weights[token] for token in tokens)
        processed.append(
            ProcessedIngredient(
                id=ingredient_id,
                original=original,
                clean_label=clean_label,
                tokens=tuple(tokens),
                token_set=frozenset(tokens),
                head_noun=get_head_noun(tokens),
                phrases=tuple(build_phrases(tokens)),
                section=section,
                token_weights=weights,
                total_weight=total_weight or float(len(tokens)),
            )
        )
    return processed


def build_step_features(groups: Sequence[InstructionGroup]) -> List[StepFeatures]:
    steps: List[StepFeatures] = []
    for group in groups:
        for text in group.steps or []:
            tokens = tokenize(clean_step_text(text or ""))
            synonyms = {variant for token in tokens for variant in expand_synonyms(token)}
            steps.append(
                StepFeatures(
                    id=f"step-{len(steps)}",
                    text=text or "",
                    tokens=tuple(tokens),
                    token_set=frozenset(tokens),
                    synonym_set=frozenset(synonyms),
                    phrases=tuple(build_phrases(tokens)),
                    section=group.section,
                )
            )
    return steps


def head_noun_counts(ingredients: Sequence[ProcessedIngredient]) -> Counter[str]:
    return Counter(ingredient.head_noun for ingredient in ingredients if ingredient.head_noun)


# ---------------------------------------------------------------------------
# Matching


def sections_align(step_section: str | None, ingredient_section: str | None) -> bool:
    step_key = (step_section or "").strip().lower()
    ingredient_key = (ingredient_section or "").strip().lower()
    if not step_key or not ingredient_key or step_key == ingredient_key:
        return True
    step_words = [word for word in step_key.split() if len(word) > 3]
    ingredient_words = [word for word in ingredient_key.split() if len(word) > 3]
    return any(word in ingredient_key for word in step_words) or any(word in step_key for word in ingredient_words)


@lru_cache(maxsize=65536)
def _within_one_edit(left: str, right: str) -> bool:
    return Levenshtein.distance(left, right, score_cutoff=1) <= 1


def fuzzy_token_hit(token: str, step_tokens: Sequence[str]) -> bool:
    if len(token) <= 3:
        return False
    for candidate in step_tokens:
        if abs(len(candidate) - len(token)) > 2:
            continue
        if len(token) >= 5 and token in candidate:
            return True
        if len(candidate) >= 5 and candidate in token:
            return True
        if _within_one_edit(token, candidate):
            return True
    return False


@lru_cache(maxsize=4096)
def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(phrase) + r"\b")


def match_candidate(
    ingredient: ProcessedIngredient,
    step: StepFeatures,
    head_counts: Mapping[str, int],
) -> CandidateMatch:
    """Compute the match statistics and feature vector for one pair, without section gating."""
    head = ingredient.head_noun
    matched_tokens = 0
    matched_weight = 0.0
    has_head_noun = False
    used_synonym = False
    used_fuzzy = False

    for token in ingredient.tokens:
        # A step-side synonym satisfies the direct branch and earns no synonym bonus.
        if token in step.token_set or token in step.synonym_set:
            pass
        elif any(variant in step.token_set for variant in expand_synonyms(token)):
            used_synonym = True
        elif token not in SEASONING_TOKENS and fuzzy_token_hit(token, step.tokens):
            used_fuzzy = True
        else:
            continue

        matched_tokens += 1
        matched_weight += ingredient.token_weights.get(token, 0.0)
        if token == head or token in SEASONING_TOKENS:
            has_head_noun = True

    if not has_head_noun and head:
        if head in step.token_set or head in step.synonym_set:
            has_head_noun = True
        elif any(variant in step.token_set for variant in expand_synonyms(head)):
            has_head_noun = True
            used_synonym = True

    step_text = step.text.lower()
    phrase_hit = any(_phrase_pattern(phrase).search(step_text) for phrase in ingredient.phrases)
    if matched_tokens == 0 and phrase_hit:
        matched_tokens = 1
        matched_weight += ingredient.token_weights.get(ingredient.tokens[0], 0.0)

    token_count = len(ingredient.tokens)
    features = CandidateFeatures(
        overlap_ratio=matched_tokens / token_count if token_count else 0.0,
        weight_coverage=matched_weight / ingredient.total_weight if ingredient.total_weight else 0.0,
        has_head_noun=has_head_noun,
        phrase_hit=phrase_hit,
        synonym_hit=used_synonym,
        fuzzy_hit=used_fuzzy,
        unique_head=bool(head) and head_counts.get(head, 0) == 1,
        token_count=token_count,
        section_align=sections_align(step.section, ingredient.section),
        seasoning=any(token in SEASONING_TOKENS for token in ingredient.tokens),
    )
    return CandidateMatch(
        ingredient_id=ingredient.id,
        matched_tokens=matched_tokens,
        matched_weight=matched_weight,
        features=features,
    )


def adaptive_threshold(min_confidence: float, token_count: int, seasoning: bool, phrase_hit: bool) -> float:
    if seasoning:
        threshold = min_confidence * 0.5
    elif token_count <= 3:
        threshold = max(0.2, min_confidence - 0.15)
    elif token_count <= 5:
        threshold = min_confidence - 0.05
    else:
        threshold = min_confidence
    if phrase_hit:
        threshold -= 0.05
    return threshold


def rank_step_candidates(
    step: StepFeatures,
    ingredients: Sequence[ProcessedIngredient],
    head_counts: Mapping[str, int],
    scorer: ConfidenceScorer,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> List[Tuple[str, float]]:
    """Accepted (ingredient id, confidence) pairs for one step, most confident first."""
    accepted: List[Tuple[str, float]] = []
    for ingredient in ingredients:
        if not sections_align(step.section, ingredient.section):
            continue
        match = match_candidate(ingredient, step, head_counts)
        if match.matched_tokens == 0:
            continue
        confidence = scorer.score(match)
        threshold = adaptive_threshold(
            min_confidence,
            match.features.token_count,
            match.features.seasoning,
            match.features.phrase_hit,
        )
        if confidence >= threshold:
            accepted.append((ingredient.id, confidence))

    # sorted() is stable with reverse=True too: equal confidences keep ingredient order.
    return sorted(accepted, key=lambda item: item[1], reverse=True)


def fallback_candidates(step: StepFeatures, ingredients: Sequence[ProcessedIngredient]) -> List[str]:
    scored: List[Tuple[str, float]] = []
    for ingredient in ingredients:
        overlap = sum(1 for token in ingredient.tokens if len(token) > 2 and token in step.token_set)
        ratio = overlap / len(ingredient.tokens) if ingredient.tokens else 0.0
        if ratio >= FALLBACK_MIN_RATIO:
            scored.append((ingredient.id, ratio))
    scored.sort(key=lambda item: item[1], reverse=True)
    return [ingredient_id for ingredient_id, _ in scored[:FALLBACK_LIMIT]]


def map_ingredients_to_steps(
    ingredients: Sequence[IngredientGroup],
    instructions: Sequence[InstructionGroup],
    options: MatcherOptions | None = None,
) -> Dict[str, List[str]]:
    options = options or MatcherOptions()
    processed = build_processed_ingredients(ingredients)
    head_counts = head_noun_counts(processed)
    steps = build_step_features(instructions)
    scorer = resolve_scorer(options.use_learned_model, options.learned_model)

    mapping: Dict[str, List[str]] = {}
    for step in steps:
        ranked = rank_step_candidates(step, processed, head_counts, scorer, options.min_confidence)
        if ranked:
            mapping[step.id] = [ingredient_id for ingredient_id, _ in ranked]
            continue
        mapping[step.id] = fallback_candidates(step, processed)
        logger.debug("%s: no primary candidates, fallback kept %d", step.id, len(mapping[step.id]))

    logger.debug(
        "Mapped %d steps against %d ingredients using %s scoring",
        len(steps),
        len(processed),
        scorer.name,
    )
    return mapping
