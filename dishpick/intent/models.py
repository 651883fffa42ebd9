from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

# Declaration order is also the reason priority.
AXES: tuple[str, ...] = ("mood", "flavor", "portion", "price")

_WORD_RE = re.compile(r"[a-z0-9]+")
_NOISE_WORDS = frozenset({
    "no", "not", "non", "without", "avoid", "free", "allergy", "allergic",
    "intolerance", "intolerant", "and", "the", "any", "contains", "diet",
})


class QuestionAnswer(BaseModel):
    question: str = Field(..., min_length=1, description="Question id, e.g. 'mood'")
    answer: str | list[str] | None = None


class RawAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str | tuple[str, ...] | None = None


class IntentVector(BaseModel):
    """A guest's folded questionnaire answers.

    Soft preferences (mood, flavors, portion, price) only ever add score.
    ``required_diet_tags`` and ``excluded_allergen_tags`` are hard exclusions.
    ``unresolved_constraints`` holds dietary answers that could not be
    understood; they are applied conservatively and flag the intent for
    confirmation.
    """

    model_config = ConfigDict(frozen=True)

    mood: str | None = None
    flavors: tuple[str, ...] = ()
    portion: str | None = None
    price: str | None = None
    required_diet_tags: frozenset[str] = frozenset()
    excluded_allergen_tags: frozenset[str] = frozenset()
    unresolved_constraints: tuple[str, ...] = ()
    raw_answers: tuple[RawAnswer, ...] = ()

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.unresolved_constraints)

    def axis_preferences(self) -> dict[str, tuple[str, ...]]:
        """Return preferred tags per answered axis, in axis order."""
        values = {
            "mood": (self.mood,) if self.mood else (),
            "flavor": self.flavors,
            "portion": (self.portion,) if self.portion else (),
            "price": (self.price,) if self.price else (),
        }
        return {axis: values[axis] for axis in AXES if values[axis]}

    def unresolved_terms(self) -> frozenset[str]:
        """Meaningful words from unresolved dietary answers, e.g. 'kiwi' from 'no kiwi'."""
        terms: set[str] = set()
        for value in self.unresolved_constraints:
            for word in _WORD_RE.findall(value.lower()):
                if len(word) >= 3 and word not in _NOISE_WORDS:
                    terms.add(word)
        return frozenset(terms)
