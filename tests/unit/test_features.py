"""
Unit tests for feature parsing, display and roll corrections.
"""

from types import SimpleNamespace

from src.modules.damage import (
    DamageRoll,
    FeatureEntry,
    FeatureKind,
    apply_corrections,
    format_features,
    is_die_group,
    parse_feature_expression
)
from src.modules.damage.features import CORRECTIONS, CORRECTION_ORDER
from src.modules.rng.roller import DieResult, DieTerm, NumericTerm, OperatorTerm, RollResult


def features_of(feature_string: str) -> dict:
    return DamageRoll.parse("", feature_string).to_object()['features']


class TestFeatureParsing:
    """Test parsing of feature strings."""

    def test_single_features(self):
        """Test name and value extraction."""
        cases = [
            ("Scharf", {'scharf': {'name': "Scharf", 'value': 1, 'active': False}}),
            ("Scharf1", {'scharf': {'name': "Scharf", 'value': 1, 'active': False}}),
            ("Kritisch 2", {'kritisch': {'name': "Kritisch", 'value': 2, 'active': False}}),
            ("kritisch2", {'kritisch': {'name': "kritisch", 'value': 2, 'active': False}}),
            ("Exakt 3", {'exakt': {'name': "Exakt", 'value': 3, 'active': False}}),
            ("eXakT     25", {'exakt': {'name': "eXakT", 'value': 25, 'active': False}}),
        ]
        for feature_string, result in cases:
            assert features_of(feature_string) == result, feature_string

    def test_several_features(self):
        """Test a comma separated list."""
        assert features_of("Scharf 1, Kritisch 2, Exakt 3") == {
            'scharf': {'name': "Scharf", 'value': 1, 'active': False},
            'kritisch': {'name': "Kritisch", 'value': 2, 'active': False},
            'exakt': {'name': "Exakt", 'value': 3, 'active': False},
        }

    def test_empty_and_nameless_segments_skipped(self):
        """Test that segments without a name are ignored."""
        assert parse_feature_expression("") == {}
        assert parse_feature_expression(None) == {}
        assert list(parse_feature_expression(" , 12,Scharf 2,,").keys()) == ['scharf']

    def test_zero_value_defaults_to_one(self):
        """Test that a zero magnitude counts as omitted."""
        assert parse_feature_expression("Scharf 0")['scharf'].value == 1

    def test_huge_value_defaults_to_one(self):
        """Test that a value too long to convert counts as omitted."""
        features = parse_feature_expression("Scharf " + "1" * 5000 + ", Kritisch 2")
        assert features['scharf'] == FeatureEntry("Scharf", 1)
        assert features['kritisch'].value == 2

    def test_last_duplicate_wins(self):
        """Test that a repeated feature overwrites the earlier one."""
        features = parse_feature_expression("Scharf 1, Wuchtig, SCHARF 3")
        assert list(features.keys()) == ['scharf', 'wuchtig']
        assert features['scharf'] == FeatureEntry("SCHARF", 3, False)

    def test_unknown_features_kept(self):
        """Test that features without evaluation semantics are stored."""
        features = parse_feature_expression("Wuchtig, Durchdringung 2")
        assert features['wuchtig'] == FeatureEntry("Wuchtig", 1)
        assert features['durchdringung'] == FeatureEntry("Durchdringung", 2)


class TestFeatureString:
    """Test feature display strings."""

    def test_stringify_single(self):
        """Test one feature."""
        for key, name, value in [("scharf", "Scharf", 1), ("kritisch", "Kritisch", 2), ("exakt", "Exakt", 3)]:
            damage = DamageRoll(
                n_dice=0, n_faces=0, damage_modifier=0,
                features={key: FeatureEntry(name, value)}
            )
            assert damage.get_feature_string() == f"{name} {value}"

    def test_stringify_all(self):
        """Test that insertion order is kept."""
        features = {
            'scharf': FeatureEntry("Scharf", 1),
            'kritisch': FeatureEntry("Kritisch", 2),
            'exakt': FeatureEntry("Exakt", 3),
        }
        assert format_features(features) == "Scharf 1, Kritisch 2, Exakt 3"

    def test_round_trip(self):
        """Test that parse then format keeps names and values."""
        damage = DamageRoll.parse("1W6", "scharf, Kritisch3, Lange Waffe")
        assert damage.get_feature_string() == "scharf 1, Kritisch 3, Lange 1"


class TestFeatureKinds:
    """Test the closed set of evaluated features."""

    def test_every_kind_has_a_correction(self):
        """Test that the correction table is exhaustive."""
        assert set(CORRECTIONS) == set(FeatureKind)
        assert set(CORRECTION_ORDER) == set(FeatureKind)

    def test_scharf_before_kritisch(self):
        """Test the fixed correction order."""
        assert CORRECTION_ORDER.index(FeatureKind.SCHARF) < CORRECTION_ORDER.index(FeatureKind.KRITISCH)

    def test_from_key(self):
        """Test looking up kinds by feature key."""
        assert FeatureKind.from_key('exakt') is FeatureKind.EXAKT
        assert FeatureKind.from_key('wuchtig') is None


class TestCorrections:
    """Test post-roll corrections on roll results."""

    def _roll(self, *dice, total) -> RollResult:
        terms = []
        for die in dice:
            if terms:
                terms.append(OperatorTerm('+'))
            terms.append(die)
        terms += [OperatorTerm('+'), NumericTerm(0)]
        return RollResult(formula="", terms=terms, total=total)

    def test_is_die_group(self):
        """Test the capability check on roll terms."""
        assert is_die_group(DieTerm(number=1, faces=6))
        assert is_die_group(SimpleNamespace(faces=6, results=[]))
        assert not is_die_group(OperatorTerm('+'))
        assert not is_die_group(NumericTerm(3))
        assert not is_die_group(SimpleNamespace(faces=6))

    def test_scharf_raises_low_results(self):
        """Test that results below the value count as the value."""
        roll = self._roll(DieTerm(2, 6, results=[DieResult(1), DieResult(1)]), total=2)
        features = {'scharf': FeatureEntry("Scharf", 2)}

        apply_corrections(features, roll)

        assert roll.total == 4
        assert [r.result for r in roll.dice[0].results] == [1, 1]
        assert features['scharf'].active

    def test_scharf_ignores_results_at_value(self):
        """Test that only results strictly below the value are raised."""
        roll = self._roll(DieTerm(2, 6, results=[DieResult(2), DieResult(5)]), total=7)
        features = {'scharf': FeatureEntry("Scharf", 2)}

        apply_corrections(features, roll)

        assert roll.total == 7
        assert not features['scharf'].active

    def test_scharf_ignores_discarded_dice(self):
        """Test that inactive results are skipped."""
        roll = self._roll(
            DieTerm(2, 6, modifiers=['kh1'], results=[DieResult(1, active=False), DieResult(4)]),
            total=4
        )
        features = {'scharf': FeatureEntry("Scharf", 3)}

        apply_corrections(features, roll)

        assert roll.total == 4
        assert not features['scharf'].active

    def test_kritisch_adds_per_maximum(self):
        """Test that each maximum result adds the value."""
        roll = self._roll(
            DieTerm(2, 6, results=[DieResult(6), DieResult(6)]),
            DieTerm(1, 10, results=[DieResult(6)]),
            total=18
        )
        features = {'kritisch': FeatureEntry("Kritisch", 2)}

        apply_corrections(features, roll)

        assert roll.total == 22
        assert features['kritisch'].active

    def test_kritisch_ignores_discarded_dice(self):
        """Test that a discarded maximum does not count."""
        roll = self._roll(
            DieTerm(2, 10, modifiers=['kh1'], results=[DieResult(10, active=False), DieResult(10)]),
            total=10
        )
        features = {'kritisch': FeatureEntry("Kritisch", 1)}

        apply_corrections(features, roll)

        assert roll.total == 11

    def test_scharf_and_kritisch_add_up(self):
        """Test both corrections on one roll."""
        roll = self._roll(DieTerm(3, 6, results=[DieResult(1), DieResult(6), DieResult(3)]), total=10)
        features = {
            'kritisch': FeatureEntry("Kritisch", 1),
            'scharf': FeatureEntry("Scharf", 2),
        }

        apply_corrections(features, roll)

        assert roll.total == 12
        assert features['scharf'].active
        assert features['kritisch'].active

    def test_exakt_and_unknown_features_leave_total(self):
        """Test that Exakt and unknown features do nothing after the roll."""
        roll = self._roll(DieTerm(1, 6, results=[DieResult(1)]), total=1)
        features = {
            'exakt': FeatureEntry("Exakt", 2),
            'wuchtig': FeatureEntry("Wuchtig", 1),
        }

        apply_corrections(features, roll)

        assert roll.total == 1
        assert not features['exakt'].active
        assert not features['wuchtig'].active

    def test_duck_typed_terms(self):
        """Test corrections on terms from another roller."""
        die = SimpleNamespace(faces=6, results=[SimpleNamespace(result=6, active=True)])
        roll = SimpleNamespace(terms=[die, SimpleNamespace(operator='+')], total=6)

        apply_corrections({'kritisch': FeatureEntry("Kritisch", 3)}, roll)

        assert roll.total == 9
