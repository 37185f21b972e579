"""
DamageRoll - a parsed damage string plus weapon features, ready to be rolled.

Usage:
    damage = DamageRoll.parse("2W6+1", "Scharf 2, Kritisch 1")
    damage.get_damage_formula()   # "2W6+1"
    damage.get_feature_string()   # "Scharf 2, Kritisch 1"
    result = await damage.evaluate()
    result.total                  # includes Scharf/Kritisch bonuses
    damage.active_features()      # features that fired, e.g. ["Kritisch"]

Evaluation mutates the feature entries (their `active` flag) and reads the
modifier and features once the roll has resolved. Callers evaluating the same
instance concurrently must serialize those calls themselves.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Protocol

import jsonschema

from src.modules.rng import get_roller

from .dice import DiceTerm, parse_damage_expression
from .features import (
    FeatureEntry,
    FeatureKind,
    apply_corrections,
    format_features,
    parse_feature_expression
)

logger = logging.getLogger(__name__)


class RollHandleLike(Protocol):
    async def evaluate(self) -> Any: ...


class Roller(Protocol):
    """Anything that turns a formula into an awaitable roll."""

    def roll(self, formula: str, options: Dict[str, Any]) -> RollHandleLike: ...


class DamageRollDataError(ValueError):
    """Raised when a plain damage roll snapshot does not match the schema."""
    pass


DICE_TERM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "n_dice": {"type": "integer", "minimum": 0},
        "n_faces": {"type": "integer", "minimum": 0},
        "sign": {"enum": [1, -1]}
    },
    "required": ["n_dice", "n_faces"]
}

DAMAGE_ROLL_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "n_dice": {
            "type": "integer",
            "minimum": 0,
            "description": "Dice in the main damage group"
        },
        "n_faces": {
            "enum": [0, 6, 10],
            "description": "Faces of the main damage dice, 0 for no dice"
        },
        "damage_modifier": {
            "type": "integer",
            "description": "Flat bonus or penalty"
        },
        "features": {
            "type": "object",
            "description": "Features keyed by lower-cased name",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "value": {"type": "integer", "minimum": 1},
                    "active": {"type": "boolean", "default": False}
                },
                "required": ["name", "value"]
            }
        },
        "other_dice": {
            "type": "array",
            "items": DICE_TERM_SCHEMA,
            "default": []
        }
    },
    "required": ["n_dice", "n_faces", "damage_modifier", "features"]
}


class DamageRoll:
    """
    Damage dice, flat modifier and features of one attack.

    Attributes:
        main_die: Main damage dice (6 or 10 faced, or none)
        damage_modifier: Flat bonus or penalty
        other_dice: Additional signed dice groups
        features: FeatureEntry per lower-cased feature name
    """

    @staticmethod
    def parse(damage_string: Optional[str], feature_string: Optional[str] = "") -> 'DamageRoll':
        """
        Build a damage roll from free text. Never raises.

        Args:
            damage_string: Damage notation like "1W6+2"
            feature_string: Features like "Exakt 1" or "Scharf 2, Kritisch 1"

        Returns:
            New DamageRoll
        """
        features = parse_feature_expression(feature_string)
        damage = parse_damage_expression(damage_string)

        ignored = [f.name for key, f in features.items() if FeatureKind.from_key(key) is None]
        if ignored:
            logger.debug(f"Features without effect on damage rolls: {', '.join(ignored)}")

        return DamageRoll(
            n_dice=damage.main_die.n_dice,
            n_faces=damage.main_die.n_faces,
            damage_modifier=damage.damage_modifier,
            features=features,
            other_dice=damage.other_dice
        )

    @staticmethod
    def from_object(data: Dict[str, Any]) -> 'DamageRoll':
        """
        Build a damage roll from a to_object() snapshot.

        Raises:
            DamageRollDataError: If the snapshot does not match DAMAGE_ROLL_SCHEMA
        """
        try:
            jsonschema.validate(data, DAMAGE_ROLL_SCHEMA)
        except jsonschema.ValidationError as e:
            raise DamageRollDataError(f"Invalid damage roll data: {e.message}") from e

        return DamageRoll(
            n_dice=data['n_dice'],
            n_faces=data['n_faces'],
            damage_modifier=data['damage_modifier'],
            features={
                key: FeatureEntry(
                    name=feature['name'],
                    value=feature['value'],
                    active=feature.get('active', False)
                )
                for key, feature in data['features'].items()
            },
            other_dice=[
                DiceTerm(die['n_dice'], die['n_faces'], die.get('sign', 1))
                for die in data.get('other_dice', [])
            ]
        )

    def __init__(
        self,
        n_dice: int,
        n_faces: int,
        damage_modifier: int,
        features: Dict[str, FeatureEntry],
        other_dice: Optional[List[DiceTerm]] = None
    ):
        self.main_die = DiceTerm(n_dice, n_faces)
        self.damage_modifier = damage_modifier
        # Owned copies, callers keep their own objects
        self.features = copy.deepcopy(features)
        self.other_dice = copy.deepcopy(other_dice or [])

    def increase_damage(self, amount: int) -> None:
        self.damage_modifier += amount

    def decrease_damage(self, amount: int) -> None:
        self.damage_modifier -= amount

    def _feature(self, kind: FeatureKind) -> Optional[FeatureEntry]:
        return self.features.get(kind.value)

    def get_roll_formula_for_die(self, die: DiceTerm) -> str:
        """Formula for one dice group; Exakt rolls extra dice and keeps the highest."""
        exakt = self._feature(FeatureKind.EXAKT)
        if exakt is not None:
            exakt.active = True
            return f"{die.n_dice + exakt.value}d{die.n_faces}kh{die.n_dice}"
        return f"{die.n_dice}d{die.n_faces}"

    def build_formula(self) -> str:
        """
        Roll formula for the roller, e.g. "2d6kh1+1d10-3".

        The flat modifier is always appended, "+0" included.
        """
        formula = self.get_roll_formula_for_die(self.main_die)
        for die in self.other_dice:
            formula += _sign(die.sign) + self.get_roll_formula_for_die(die)
        return f"{formula}{_sign(self.damage_modifier)}{abs(self.damage_modifier)}"

    async def evaluate(self, roller: Optional[Roller] = None) -> Any:
        """
        Roll the damage and apply Scharf and Kritisch to the total.

        Args:
            roller: Roller to use, the default roller when omitted

        Returns:
            The roller's result with an adjusted total

        Raises:
            Whatever the roller raises; nothing is caught or retried here
        """
        roller = roller or get_roller()
        formula = self.build_formula()
        logger.debug(f"Rolling damage {self.get_damage_formula()} as {formula}")

        result = await roller.roll(formula, {}).evaluate()

        apply_corrections(self.features, result)
        return result

    def active_features(self) -> List[str]:
        """Names of the features that changed the last evaluation."""
        return [f.name for f in self.features.values() if f.active]

    def get_damage_formula(self) -> str:
        """
        Display formula like "2W6+1". Additional dice only show up as "+?".
        """
        damage_formula = f"{self.main_die.n_dice}W{self.main_die.n_faces}"
        if self.damage_modifier:
            damage_formula += f"{_sign(self.damage_modifier)}{abs(self.damage_modifier)}"
        if self.other_dice:
            damage_formula += "+?"
        return damage_formula

    def get_feature_string(self) -> str:
        return format_features(self.features)

    def to_object(self) -> Dict[str, Any]:
        """Plain snapshot for storage, accepted by from_object()."""
        return {
            'n_dice': self.main_die.n_dice,
            'n_faces': self.main_die.n_faces,
            'damage_modifier': self.damage_modifier,
            'features': {key: f.to_dict() for key, f in self.features.items()},
            'other_dice': [die.to_dict() for die in self.other_dice]
        }

    def __str__(self) -> str:
        feature_string = self.get_feature_string()
        if feature_string:
            return f"{self.get_damage_formula()} ({feature_string})"
        return self.get_damage_formula()

    def __repr__(self) -> str:
        return f"DamageRoll({self.to_object()!r})"


def _sign(number: int) -> str:
    return "+" if number >= 0 else "-"
