"""
Ordered (predicate, score) rules for match sub-scores.

Each sub-score is a list of rules evaluated in priority order. A first-match
rule set returns the score of the first rule whose predicate holds; an
additive rule set sums every rule that fires and caps the total. Keeping the
policy as data makes each rule testable on its own and lets a match
breakdown name exactly which rule produced a score.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Union

from ..catalog.models import CatalogEntry
from ..normalize.text_normalizer import ListingText


@dataclass(frozen=True)
class ScoringContext:
    """Everything a rule may look at when scoring one listing against one entry."""

    listing: ListingText
    entry: CatalogEntry
    brand_key: str
    model_name: str
    source: str = ""


Predicate = Callable[[ScoringContext], bool]
ScoreFn = Callable[[ScoringContext], float]


@dataclass(frozen=True)
class Rule:
    """A named rule: when ``predicate`` holds, the rule yields ``score``."""

    name: str
    predicate: Predicate
    score: Union[float, ScoreFn]

    def apply(self, ctx: ScoringContext) -> Optional[float]:
        """Score for this context, or None if the rule does not fire."""
        if not self.predicate(ctx):
            return None
        value = self.score(ctx) if callable(self.score) else self.score
        return value if value > 0 else None


@dataclass(frozen=True)
class RuleOutcome:
    """Score produced by a rule set and the rule(s) that produced it."""

    score: float
    fired: Tuple[str, ...] = ()

    @property
    def rule(self) -> Optional[str]:
        return self.fired[0] if self.fired else None

    def to_dict(self) -> dict:
        return {'score': round(self.score, 4), 'rules': list(self.fired)}


NO_MATCH = RuleOutcome(score=0.0)


@dataclass(frozen=True)
class RuleSet:
    """Rules evaluated in priority order."""

    name: str
    rules: Tuple[Rule, ...]
    additive: bool = False
    cap: float = 1.0

    def evaluate(self, ctx: ScoringContext) -> RuleOutcome:
        """
        Evaluate the rules against a context.

        First-match sets stop at the first rule that fires; additive sets
        sum all firing rules and cap the result at ``cap``.
        """
        if not self.additive:
            for rule in self.rules:
                value = rule.apply(ctx)
                if value is not None:
                    return RuleOutcome(score=min(value, self.cap), fired=(rule.name,))
            return NO_MATCH

        total = 0.0
        fired = []
        for rule in self.rules:
            value = rule.apply(ctx)
            if value is not None:
                total += value
                fired.append(rule.name)

        if not fired:
            return NO_MATCH
        return RuleOutcome(score=min(total, self.cap), fired=tuple(fired))

    def describe(self) -> Tuple[Tuple[str, Any], ...]:
        """(rule name, fixed score or 'computed') in priority order."""
        return tuple(
            (rule.name, 'computed' if callable(rule.score) else rule.score)
            for rule in self.rules
        )
