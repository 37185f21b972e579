"""
RNG Module - rolls the formulas built by the damage evaluator.

Provides:
- Roll formula parsing (2d6kh1+1d10-1)
- Keep highest / keep lowest dice groups
- Per-die results with an active flag
- A process-wide default roller, seeded from DICE_SEED

Usage:
    roller = get_roller()
    result = await roller.roll("2d6kh1+0", {}).evaluate()
    print(result.get_breakdown())  # "2d6kh1 → [5,~2] = 5 + 0 = 5"
"""

import logging
from typing import Optional

from src.core.config import get_config

from .dice_parser import (
    FormulaParser,
    ParsedFormula,
    FormulaPart,
    DiceExpression,
    RollFormulaError
)
from .roller import (
    DiceRoller,
    RollHandle,
    RollResult,
    DieTerm,
    DieResult,
    OperatorTerm,
    NumericTerm
)

logger = logging.getLogger(__name__)

_roller: Optional[DiceRoller] = None


def get_roller() -> DiceRoller:
    """
    Get the default roller, creating it on first use.

    The roller is seeded with DICE_SEED when configured.
    """
    global _roller
    if _roller is None:
        seed = get_config().dice_seed
        _roller = DiceRoller(seed=seed)
        logger.debug(f"Created default dice roller (seed={seed})")
    return _roller


def set_roller(roller: Optional[DiceRoller]) -> None:
    """Replace the default roller. None resets it to a fresh configured roller on next use."""
    global _roller
    _roller = roller


__all__ = [
    'FormulaParser', 'ParsedFormula', 'FormulaPart', 'DiceExpression', 'RollFormulaError',
    'DiceRoller', 'RollHandle', 'RollResult', 'DieTerm', 'DieResult',
    'OperatorTerm', 'NumericTerm',
    'get_roller', 'set_roller'
]
