"""
Damage string parser.

Damage strings come from user-editable text fields, so parsing never raises:
anything it cannot make sense of degrades to the zero term and is reported as
a warning.

Accepted notations (all equivalent):
- 1W6+1 (legacy "W" for Würfel)
- 1d6 + 1
- 1_d_6_+_1 (legacy underscore spacing)
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

# Dice other than 6 or 10 faced do not occur in damage calculation
VALID_MAIN_FACES = (0, 6, 10)

TERM_PATTERN = re.compile(r'[+-]?\d*d\d+|[+-]\d+')
# More than 999 dice cannot be rolled
DIE_PATTERN = re.compile(r'(?P<sign>[+-])?(?P<n_dice>\d{0,3})d(?P<n_faces>\d+)')


@dataclass
class DiceTerm:
    """One group of same-faced dice. `sign` only matters for additional dice."""
    n_dice: int = 0
    n_faces: int = 0
    sign: int = 1

    def to_dict(self) -> dict:
        return {'n_dice': self.n_dice, 'n_faces': self.n_faces, 'sign': self.sign}


@dataclass
class ParsedDamage:
    """Structured damage string."""
    main_die: DiceTerm = field(default_factory=DiceTerm)
    damage_modifier: int = 0
    other_dice: List[DiceTerm] = field(default_factory=list)


def sanitize_damage_string(damage_string: str) -> str:
    """Lower-case and strip whitespace, underscores and the legacy die letter."""
    return re.sub(r'\s', '', damage_string.lower()).replace('w', 'd').replace('_', '')


def _segment(sanitized: str):
    first_die = '0d0'
    other_dice: List[str] = []
    modifiers: List[str] = []

    first_die_found = False
    for term in TERM_PATTERN.findall(sanitized):
        if 'd' in term and not first_die_found:
            first_die_found = True
            first_die = term
        elif 'd' in term:
            other_dice.append(term)
        else:
            modifiers.append(term)
    return first_die, other_dice, modifiers


def parse_die(die_term: str) -> DiceTerm:
    """
    Parse a single die token like "2d6" or "-1d10".

    Tokens that do not fit (e.g. a dice count beyond three digits) yield the
    zero term.
    """
    match = DIE_PATTERN.fullmatch(die_term)
    if not match:
        logger.warning(f"Discarded die term {die_term}, because it could not be parsed")
        return DiceTerm()
    try:
        n_faces = int(match.group('n_faces'))
    except ValueError:
        # face count too long for int()
        logger.warning(f"Discarded die term {die_term[:20]}..., because its face count is too long")
        return DiceTerm()
    return DiceTerm(
        n_dice=int(match.group('n_dice') or 0),
        n_faces=n_faces,
        sign=-1 if match.group('sign') == '-' else 1
    )


def parse_modifiers(modifier_terms: List[str]) -> int:
    """Sum flat damage terms, skipping the ones that are not integers."""
    total = 0
    for term in modifier_terms:
        try:
            total += int(term)
        except ValueError:
            logger.warning(f"Discarded flat damage term {term}, because it could not be parsed")
    return total


def parse_damage_expression(damage_string: Optional[str]) -> ParsedDamage:
    """
    Parse a damage string into main die, flat modifier and additional dice.

    Examples:
        "2W6+1"        → main 2d6, modifier 1
        "2d6+1+1"      → main 2d6, modifier 2
        "2d6+2+1-2d10" → main 2d6, modifier 3, other dice [-2d10]
        "20W12+200"    → zero term (12 faced main die)
        "garbage"      → zero term

    Args:
        damage_string: Free-text damage notation

    Returns:
        ParsedDamage, never raises
    """
    first_die, other_dice, modifiers = _segment(sanitize_damage_string(damage_string or ''))

    main_die = parse_die(first_die)
    if main_die.n_faces not in VALID_MAIN_FACES:
        logger.warning(
            f"Discarded damage string {damage_string}, because it uses dice with an invalid number of faces."
        )
        return ParsedDamage()

    return ParsedDamage(
        main_die=DiceTerm(main_die.n_dice, main_die.n_faces),
        damage_modifier=parse_modifiers(modifiers),
        other_dice=[parse_die(term) for term in other_dice]
    )
