from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from ..errors import IntentValidationError
from ..taxonomy.tags import is_known, tags_in, to_tag
from .models import IntentVector, QuestionAnswer, RawAnswer

logger = logging.getLogger(__name__)

# question id -> (taxonomy category, multi-select)
QUESTIONS: dict[str, tuple[str | None, bool]] = {
    "mood": ("mood", False),
    "flavor": ("flavor", True),
    "portion": ("portion", False),
    "price": ("price", False),
    "dietary": (None, True),
}

# ---------------------------------------------------------------------------
# Dietary vocabulary
# ---------------------------------------------------------------------------

_DIET_ALIASES: dict[str, str] = {
    "vegetarian": "diet_vegetarian",
    "veggie": "diet_vegetarian",
    "vegan": "diet_vegan",
    "plant_based": "diet_vegan",
    "gluten_free": "diet_gluten_free",
    "coeliac": "diet_gluten_free",
    "celiac": "diet_gluten_free",
    "dairy_free": "diet_dairy_free",
    "lactose_free": "diet_dairy_free",
    "halal": "diet_halal",
    "no_pork": "diet_no_pork",
    "pork_free": "diet_no_pork",
}

_ALLERGEN_ALIASES: dict[str, str] = {
    "nut": "allergy_nuts",
    "nuts": "allergy_nuts",
    "tree_nut": "allergy_nuts",
    "tree_nuts": "allergy_nuts",
    "almond": "allergy_nuts",
    "almonds": "allergy_nuts",
    "cashew": "allergy_nuts",
    "cashews": "allergy_nuts",
    "walnut": "allergy_nuts",
    "walnuts": "allergy_nuts",
    "hazelnut": "allergy_nuts",
    "hazelnuts": "allergy_nuts",
    "pistachio": "allergy_nuts",
    "pistachios": "allergy_nuts",
    "pecan": "allergy_nuts",
    "pecans": "allergy_nuts",
    "peanut": "allergy_peanuts",
    "peanuts": "allergy_peanuts",
    "gluten": "allergy_gluten",
    "wheat": "allergy_gluten",
    "dairy": "allergy_dairy",
    "milk": "allergy_dairy",
    "lactose": "allergy_dairy",
    "egg": "allergy_egg",
    "eggs": "allergy_egg",
    "shellfish": "allergy_shellfish",
    "crustacean": "allergy_shellfish",
    "crustaceans": "allergy_shellfish",
    "prawn": "allergy_shellfish",
    "prawns": "allergy_shellfish",
    "shrimp": "allergy_shellfish",
    "fish": "allergy_fish",
    "soy": "allergy_soy",
    "soya": "allergy_soy",
    "sesame": "allergy_sesame",
}

_ALLERGY_PREFIXES = ("allergy_", "allergic_to_", "no_", "without_", "avoid_")
_ALLERGY_SUFFIXES = ("_allergy", "_intolerance", "_free")
_SLUG_RE = re.compile(r"[\s\-/]+")


def _slug(value: str) -> str:
    return _SLUG_RE.sub("_", value.strip().lower()).strip("_")


def _strip_affixes(slug: str) -> str:
    changed = True
    while changed:
        changed = False
        for prefix in _ALLERGY_PREFIXES:
            if slug.startswith(prefix) and len(slug) > len(prefix):
                slug = slug[len(prefix):]
                changed = True
        for suffix in _ALLERGY_SUFFIXES:
            if slug.endswith(suffix) and len(slug) > len(suffix):
                slug = slug[: -len(suffix)]
                changed = True
    return slug


def parse_dietary_value(value: str) -> tuple[str, str] | None:
    """Classify one dietary answer.

    Returns ``("diet", tag)`` for a diet the item must satisfy,
    ``("allergy", tag)`` for an allergen the item must not contain, or
    ``None`` when the value is not understood.
    """
    slug = _slug(value)
    if slug in tags_in("diet"):
        return "diet", slug
    if slug in _DIET_ALIASES:
        return "diet", _DIET_ALIASES[slug]
    if slug in tags_in("allergy"):
        return "allergy", slug

    base = _strip_affixes(slug)
    if base in _ALLERGEN_ALIASES:
        return "allergy", _ALLERGEN_ALIASES[base]
    if f"allergy_{base}" in tags_in("allergy"):
        return "allergy", f"allergy_{base}"
    if base in _DIET_ALIASES:
        return "diet", _DIET_ALIASES[base]
    return None


# ---------------------------------------------------------------------------
# Answer validation
# ---------------------------------------------------------------------------


def _coerce_answer(raw: Any) -> QuestionAnswer:
    if isinstance(raw, QuestionAnswer):
        return raw
    if not isinstance(raw, Mapping):
        raise IntentValidationError(
            f"Each answer must be an object with 'question' and 'answer', got {type(raw).__name__}"
        )
    try:
        return QuestionAnswer.model_validate(dict(raw))
    except ValidationError as exc:
        question = raw.get("question") if isinstance(raw.get("question"), str) else None
        raise IntentValidationError(f"Malformed answer: {exc.errors()[0]['msg']}", question) from exc


def _values_for(qa: QuestionAnswer, multi: bool) -> list[str]:
    answer = qa.answer
    if answer is None:
        return []
    if isinstance(answer, str):
        values = [answer]
    else:
        values = list(answer)
        if not multi and len(values) > 1:
            raise IntentValidationError(
                f"Question '{qa.question}' accepts a single answer, got {len(values)}",
                qa.question,
            )
    return [v for v in values if v.strip()]


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------


def _soft_tags(question: str, category: str, values: list[str]) -> list[str]:
    tags: list[str] = []
    for value in values:
        tag = to_tag(value, category)
        if is_known(tag):
            tags.append(tag)
        else:
            logger.warning("Ignoring unknown %s answer %r", question, value)
    return tags


def build_intent_vector(answers: Iterable[Any]) -> IntentVector:
    """Fold an ordered sequence of question/answer pairs into an IntentVector.

    Single-select answers: the last one wins. Multi-select answers are unioned
    in first-seen order. Dietary answers only accumulate, so a later answer can
    never drop an exclusion given earlier.
    """
    if isinstance(answers, (str, bytes, Mapping)) or not isinstance(answers, Iterable):
        raise IntentValidationError("Answers must be a list of question/answer objects")

    state: dict[str, Any] = {
        "mood": None,
        "flavors": [],
        "portion": None,
        "price": None,
        "diet": [],
        "allergy": [],
        "unresolved": [],
    }
    raw_log: list[RawAnswer] = []

    for raw in answers:
        qa = _coerce_answer(raw)
        question = qa.question.strip().lower()
        answer = tuple(qa.answer) if isinstance(qa.answer, list) else qa.answer
        raw_log.append(RawAnswer(question=question, answer=answer))

        spec = QUESTIONS.get(question)
        if spec is None:
            logger.debug("Recording unknown question %r without scoring effect", question)
            continue

        category, multi = spec
        values = _values_for(qa, multi)

        if question == "dietary":
            for value in values:
                parsed = parse_dietary_value(value)
                if parsed is None:
                    logger.warning("Dietary answer %r not understood; flagging for confirmation", value)
                    bucket, item = "unresolved", value.strip()
                else:
                    bucket, item = parsed
                if item not in state[bucket]:
                    state[bucket].append(item)
            continue

        tags = _soft_tags(question, category, values)
        if question == "flavor":
            for tag in tags:
                if tag not in state["flavors"]:
                    state["flavors"].append(tag)
        elif values:
            # An unrecognised replacement clears the earlier pick.
            state[question] = tags[0] if tags else None

    return IntentVector(
        mood=state["mood"],
        flavors=tuple(state["flavors"]),
        portion=state["portion"],
        price=state["price"],
        required_diet_tags=frozenset(state["diet"]),
        excluded_allergen_tags=frozenset(state["allergy"]),
        unresolved_constraints=tuple(state["unresolved"]),
        raw_answers=tuple(raw_log),
    )
