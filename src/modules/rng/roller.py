"""
Core dice rolling logic: seeded rolls, keep-highest/keep-lowest and
per-die results that later stages can inspect.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Union

from .dice_parser import FormulaParser, ParsedFormula, DiceExpression

logger = logging.getLogger(__name__)


@dataclass
class DieResult:
    """One rolled die. Inactive results were discarded by a keep modifier."""
    result: int
    active: bool = True


@dataclass
class DieTerm:
    """Result from rolling a group of dice."""
    number: int                              # Dice rolled
    faces: int                               # Sides per die
    modifiers: List[str] = field(default_factory=list)
    results: List[DieResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(r.result for r in self.results if r.active)

    @property
    def expression(self) -> str:
        return f"{self.number}d{self.faces}" + ''.join(self.modifiers)

    def __str__(self) -> str:
        rolls_str = ','.join(
            str(r.result) if r.active else f"~{r.result}" for r in self.results
        )
        return f"{self.expression} → [{rolls_str}] = {self.total}"


@dataclass
class OperatorTerm:
    """A + or - between two terms."""
    operator: str

    def __str__(self) -> str:
        return self.operator


@dataclass
class NumericTerm:
    """A flat number."""
    number: int

    def __str__(self) -> str:
        return str(self.number)


RollTerm = Union[DieTerm, OperatorTerm, NumericTerm]


@dataclass
class RollResult:
    """Complete result of a rolled formula. `total` may be adjusted after the roll."""
    formula: str
    terms: List[RollTerm]
    total: int
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def dice(self) -> List[DieTerm]:
        """Die groups of this roll, in formula order."""
        return [term for term in self.terms if isinstance(term, DieTerm)]

    @property
    def rolled_total(self) -> int:
        """Total as rolled, before any later adjustment of `total`."""
        total = 0
        sign = 1
        for term in self.terms:
            if isinstance(term, OperatorTerm):
                sign = -1 if term.operator == '-' else 1
            elif isinstance(term, DieTerm):
                total += sign * term.total
            else:
                total += sign * term.number
        return total

    def get_breakdown(self) -> str:
        """Human-readable breakdown of the roll."""
        parts = [str(term) for term in self.terms]
        adjustment = self.total - self.rolled_total
        if adjustment:
            parts.append(f"(adjusted {adjustment:+d})")
        parts.append(f"= {self.total}")
        return ' '.join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for event data or storage."""
        return {
            'formula': self.formula,
            'total': self.total,
            'breakdown': self.get_breakdown(),
            'dice': [
                {
                    'expression': die.expression,
                    'faces': die.faces,
                    'results': [
                        {'result': r.result, 'active': r.active} for r in die.results
                    ],
                    'total': die.total
                }
                for die in self.dice
            ],
            'options': self.options
        }


class RollHandle:
    """
    A roll that has been requested but not evaluated yet.

    evaluate() is a coroutine so callers treat local and remote rollers alike.
    Evaluating twice returns the same result.
    """

    def __init__(self, roller: 'DiceRoller', formula: str, options: Dict[str, Any]):
        self.roller = roller
        self.formula = formula
        self.options = options
        self._result: Optional[RollResult] = None

    @property
    def evaluated(self) -> bool:
        return self._result is not None

    async def evaluate(self) -> RollResult:
        """
        Roll the formula.

        Raises:
            RollFormulaError: If the formula is invalid
        """
        if self._result is None:
            self._result = self.roller.evaluate_formula(self.formula, self.options)
        return self._result


class DiceRoller:
    """
    Rolls formulas produced by the damage evaluator.

    Supports:
    - Signed dice groups and flat numbers (2d6+1d10-2)
    - Keep highest / keep lowest (3d6kh2, 2d10kl1)
    - Seeded random for determinism
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize roller.

        Args:
            seed: Random seed for deterministic rolls (testing/replay)
        """
        self.rng = random.Random(seed)
        self.seed = seed

    def roll(self, formula: str, options: Optional[Dict[str, Any]] = None) -> RollHandle:
        """
        Prepare a roll. Nothing is rolled until the handle is evaluated.

        Args:
            formula: Roll formula (e.g., "2d6kh1+0", "1d6+1d10-1")
            options: Free-form options carried into the result

        Returns:
            RollHandle whose evaluate() coroutine yields the RollResult
        """
        return RollHandle(self, formula, dict(options or {}))

    def evaluate_formula(self, formula: str, options: Optional[Dict[str, Any]] = None) -> RollResult:
        """
        Roll a formula synchronously.

        Raises:
            RollFormulaError: If the formula is invalid
        """
        parsed = FormulaParser.parse(formula)
        terms = self._roll_terms(parsed)

        result = RollResult(
            formula=parsed.original_formula,
            terms=terms,
            total=0,
            options=dict(options or {})
        )
        result.total = result.rolled_total
        logger.debug(f"Rolled {formula}: {result.get_breakdown()}")
        return result

    def _roll_terms(self, parsed: ParsedFormula) -> List[RollTerm]:
        terms: List[RollTerm] = []
        for i, part in enumerate(parsed.parts):
            if i > 0 or part.sign < 0:
                terms.append(OperatorTerm('-' if part.sign < 0 else '+'))
            if part.is_dice:
                terms.append(self._roll_group(part.dice))
            else:
                terms.append(NumericTerm(part.number))
        return terms

    def _roll_group(self, expression: DiceExpression) -> DieTerm:
        # Dice without faces are blank and add nothing
        results = []
        if expression.sides > 0:
            results = [DieResult(r) for r in self.roll_simple(expression.count, expression.sides)]

        if expression.keep_mode is not None:
            keep = min(expression.keep_count, len(results))
            # Stable ordering so equal values keep the earlier die
            ranked = sorted(
                range(len(results)),
                key=lambda i: results[i].result,
                reverse=(expression.keep_mode == 'kh')
            )
            for index in ranked[keep:]:
                results[index].active = False

        return DieTerm(
            number=expression.count,
            faces=expression.sides,
            modifiers=expression.modifiers,
            results=results
        )

    def roll_simple(self, count: int, sides: int) -> List[int]:
        """
        Roll dice without parsing a formula.

        Args:
            count: Number of dice
            sides: Number of sides per die

        Returns:
            List of individual rolls
        """
        return [self._roll_die(sides) for _ in range(count)]

    def _roll_die(self, sides: int) -> int:
        """Roll a single die."""
        return self.rng.randint(1, sides)

    def set_seed(self, seed: int):
        """Change random seed (for testing/replay)."""
        self.seed = seed
        self.rng = random.Random(seed)
