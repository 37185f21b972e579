"""
Roll formula parser for the dice roller.

Supports the formulas the damage evaluator produces:
- 2d6 (dice group)
- 3d6kh2 / 3d6kl1 (keep highest / keep lowest)
- 2d6kh1+1d10-1d6+3 (signed dice groups and flat terms)

Unlike damage strings, roll formulas are machine generated, so anything that
does not fit raises RollFormulaError instead of being silently dropped.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional


# Upper bounds per dice group
MAX_DICE = 999
MAX_SIDES = 1000


@dataclass
class DiceExpression:
    """One dice group of a formula."""
    count: int                        # Number of dice rolled
    sides: int                        # Faces per die
    keep_mode: Optional[str] = None   # 'kh' or 'kl'
    keep_count: Optional[int] = None  # How many dice the keep modifier keeps

    @property
    def modifiers(self) -> List[str]:
        if self.keep_mode is None:
            return []
        return [f"{self.keep_mode}{self.keep_count}"]

    def __str__(self) -> str:
        return f"{self.count}d{self.sides}" + ''.join(self.modifiers)


@dataclass
class FormulaPart:
    """A signed dice group or flat number, in formula order."""
    sign: int
    dice: Optional[DiceExpression] = None
    number: int = 0

    @property
    def is_dice(self) -> bool:
        return self.dice is not None


@dataclass
class ParsedFormula:
    """Complete parsed roll formula."""
    parts: List[FormulaPart] = field(default_factory=list)
    original_formula: str = ''

    @property
    def dice_groups(self) -> List[DiceExpression]:
        return [part.dice for part in self.parts if part.is_dice]

    @property
    def static_modifier(self) -> int:
        return sum(part.sign * part.number for part in self.parts if not part.is_dice)

    def __str__(self) -> str:
        return self.original_formula


class RollFormulaError(ValueError):
    """Raised when a roll formula cannot be rolled."""
    pass


class FormulaParser:
    """Parser for roll formulas."""

    TERM_PATTERN = re.compile(
        r'(?P<sign>[+-])?'
        r'(?:(?P<count>\d*)d(?P<sides>\d+)(?:(?P<keep_mode>kh|kl)(?P<keep_count>\d+))?'
        r'|(?P<number>\d+))'
    )

    @classmethod
    def parse(cls, formula: str) -> ParsedFormula:
        """
        Parse a roll formula into ordered, signed parts.

        Examples:
            "2d6kh1+0" → parts [+2d6kh1, +0]
            "1d6-1d10+2" → parts [+1d6, -1d10, +2]

        Args:
            formula: Roll formula

        Returns:
            ParsedFormula object

        Raises:
            RollFormulaError: If the formula is empty or contains anything but
                dice groups and flat numbers joined by + and -
        """
        if not formula or not isinstance(formula, str):
            raise RollFormulaError("Formula must be a non-empty string")

        normalized = formula.replace(' ', '').lower()
        if not normalized:
            raise RollFormulaError("Formula cannot be empty")

        parts = []
        position = 0
        while position < len(normalized):
            match = cls.TERM_PATTERN.match(normalized, position)
            if not match or match.end() == position:
                raise RollFormulaError(
                    f"Unexpected input at position {position} in formula '{formula}'"
                )
            if parts and match.group('sign') is None:
                raise RollFormulaError(
                    f"Missing operator before '{match.group(0)}' in formula '{formula}'"
                )
            parts.append(cls._to_part(match, formula))
            position = match.end()

        return ParsedFormula(parts=parts, original_formula=normalized)

    @classmethod
    def _to_part(cls, match: re.Match, formula: str) -> FormulaPart:
        sign = -1 if match.group('sign') == '-' else 1

        if match.group('number') is not None:
            return FormulaPart(sign=sign, number=int(match.group('number')))

        count = int(match.group('count') or 1)
        sides = int(match.group('sides'))

        if count > MAX_DICE:
            raise RollFormulaError(f"Dice count too large (max {MAX_DICE}), got {count} in '{formula}'")
        if sides > MAX_SIDES:
            raise RollFormulaError(f"Dice sides too large (max {MAX_SIDES}), got {sides} in '{formula}'")

        keep_mode = match.group('keep_mode')
        keep_count = int(match.group('keep_count')) if keep_mode else None

        return FormulaPart(
            sign=sign,
            dice=DiceExpression(count, sides, keep_mode, keep_count)
        )

    @classmethod
    def validate(cls, formula: str) -> bool:
        """
        Check if a formula can be rolled.

        Args:
            formula: Roll formula

        Returns:
            True if valid, False otherwise
        """
        try:
            cls.parse(formula)
            return True
        except RollFormulaError:
            return False
