"""
Weapon features and their effect on damage rolls.

A feature string such as "Scharf 2, Kritisch 1" lists named modifiers with
optional magnitudes. Three of them change how damage is scored:

- Exakt N: roll N extra dice per dice group and keep the best ones
  (handled when the roll formula is built)
- Scharf N: every die below N counts as N
- Kritisch N: every die showing its maximum adds N

Any other feature is kept for display and ignored during evaluation.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

FEATURE_PATTERN = re.compile(r'([^0-9 ]+)\s*([0-9]*)')


class FeatureKind(Enum):
    """Features with evaluation semantics."""
    EXAKT = "exakt"
    SCHARF = "scharf"
    KRITISCH = "kritisch"

    @classmethod
    def from_key(cls, key: str) -> Optional['FeatureKind']:
        try:
            return cls(key)
        except ValueError:
            return None


@dataclass
class FeatureEntry:
    """
    One named feature.

    Attributes:
        name: Name as the user typed it
        value: Magnitude, 1 when omitted
        active: Whether the feature changed the outcome of the last evaluation
    """
    name: str
    value: int = 1
    active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'value': self.value, 'active': self.active}

    def __str__(self) -> str:
        return f"{self.name} {self.value}"


def parse_feature_expression(feature_string: Optional[str]) -> Dict[str, FeatureEntry]:
    """
    Parse a comma separated feature string.

    Examples:
        "Scharf"          → {'scharf': Scharf 1}
        "kritisch2"       → {'kritisch': kritisch 2}
        "Scharf 1, Exakt 3" → {'scharf': Scharf 1, 'exakt': Exakt 3}

    Segments without a name are skipped. Later duplicates win.
    """
    features: Dict[str, FeatureEntry] = {}
    for segment in (feature_string or '').split(','):
        match = FEATURE_PATTERN.search(segment.strip())
        if not match or not match.group(1):
            continue
        name = match.group(1)
        try:
            value = int(match.group(2) or 0) or 1
        except ValueError:
            logger.warning(f"Feature {name} has an unreadable value, using 1")
            value = 1
        features[name.lower()] = FeatureEntry(name=name, value=value)
    return features


def format_features(features: Dict[str, FeatureEntry]) -> str:
    """Render features as "Name value" pairs joined by ", " in insertion order."""
    return ', '.join(str(feature) for feature in features.values())


def is_die_group(term: Any) -> bool:
    """True for roll terms that carry a face count and individual results."""
    return hasattr(term, 'faces') and hasattr(term, 'results')


def die_groups(roll: Any) -> List[Any]:
    return [term for term in roll.terms if is_die_group(term)]


def _active_results(die: Any) -> Iterable[Any]:
    return (r for r in die.results if r.active)


def _no_correction(feature: FeatureEntry, roll: Any) -> int:
    return 0


def _scharf_bonus(feature: FeatureEntry, roll: Any) -> int:
    bonus = 0
    for die in die_groups(roll):
        for r in _active_results(die):
            if r.result < feature.value:
                feature.active = True
                bonus += feature.value - r.result
    return bonus


def _kritisch_bonus(feature: FeatureEntry, roll: Any) -> int:
    bonus = 0
    for die in die_groups(roll):
        for r in _active_results(die):
            if r.result == die.faces:
                feature.active = True
                bonus += feature.value
    return bonus


# Every kind needs an entry; exakt acts on the formula instead of the result
CORRECTIONS: Dict[FeatureKind, Callable[[FeatureEntry, Any], int]] = {
    FeatureKind.EXAKT: _no_correction,
    FeatureKind.SCHARF: _scharf_bonus,
    FeatureKind.KRITISCH: _kritisch_bonus,
}

CORRECTION_ORDER = (FeatureKind.SCHARF, FeatureKind.KRITISCH, FeatureKind.EXAKT)


def apply_corrections(features: Dict[str, FeatureEntry], roll: Any) -> Any:
    """
    Adjust roll.total in place for every feature present, Scharf before Kritisch.

    Individual die results are left untouched.
    """
    for kind in CORRECTION_ORDER:
        feature = features.get(kind.value)
        if feature is None:
            continue
        bonus = CORRECTIONS[kind](feature, roll)
        if bonus:
            logger.debug(f"{feature.name} adds {bonus} to {roll.total}")
        roll.total += bonus
    return roll
