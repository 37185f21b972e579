"""
Damage module - damage strings, weapon features and damage evaluation.

Provides:
- Tolerant damage string parsing (2W6+1, 1d10 - 1, 1_d_6_+_1)
- Feature string parsing (Scharf 2, Kritisch 1, Exakt 1)
- Display strings for both
- Roll formula construction (Exakt becomes keep-highest)
- Post-roll Scharf and Kritisch adjustments

Usage:
    damage = DamageRoll.parse("1W6+2", "Exakt 1")
    result = await damage.evaluate()
"""

from .dice import DiceTerm, ParsedDamage, parse_damage_expression, VALID_MAIN_FACES
from .features import (
    FeatureEntry,
    FeatureKind,
    parse_feature_expression,
    format_features,
    apply_corrections,
    is_die_group
)
from .damage_roll import DamageRoll, DamageRollDataError, DAMAGE_ROLL_SCHEMA, Roller

__all__ = [
    'DiceTerm', 'ParsedDamage', 'parse_damage_expression', 'VALID_MAIN_FACES',
    'FeatureEntry', 'FeatureKind', 'parse_feature_expression', 'format_features',
    'apply_corrections', 'is_die_group',
    'DamageRoll', 'DamageRollDataError', 'DAMAGE_ROLL_SCHEMA', 'Roller'
]
