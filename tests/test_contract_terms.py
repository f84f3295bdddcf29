import datetime as _dt
import unittest

from auction.points import bid_points, multiplier, outbids, validate_bid_terms
from contracts.models import (
    Arbitration,
    Fixed,
    TeamControl,
    TeamOption,
    UnrestrictedFreeAgent,
    format_contract_map,
    format_term,
    parse_contract_map,
    parse_term,
    with_amount,
)
from contracts.payroll import dfa_release_charges
from errors import INVALID_AAV, INVALID_CONTRACT_TERM, INVALID_YEARS, ValidationError
from trades.retention import compute_retention, retention_pct


class TestContractTerms(unittest.TestCase):
    def test_parse_display_strings(self):
        self.assertEqual(parse_term("$1,000,000"), Fixed(1_000_000.0))
        self.assertEqual(parse_term("$2,000,000(TO)"), TeamOption(2_000_000.0))
        self.assertEqual(parse_term("tc"), TeamControl())
        self.assertEqual(parse_term("UFA"), UnrestrictedFreeAgent())
        self.assertEqual(parse_term("ARB 2"), Arbitration("ARB 2"))
        self.assertEqual(parse_term(750000), Fixed(750_000.0))
        self.assertIsNone(parse_term("  "))

    def test_unknown_value_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_term("maybe")
        self.assertEqual(ctx.exception.code, INVALID_CONTRACT_TERM)

    def test_format_matches_storage(self):
        self.assertEqual(format_term(Fixed(15_000_000)), "$15,000,000")
        self.assertEqual(format_term(TeamOption(8_000_000)), "$8,000,000(TO)")
        self.assertEqual(format_term(Arbitration("ARB 3")), "ARB 3")

    def test_contract_map_skips_blank_years(self):
        contract = parse_contract_map({"2026": "$5,000,000", "2027": "", "2028": "UFA"})
        self.assertEqual(sorted(contract), [2026, 2028])
        self.assertEqual(format_contract_map(contract), {"2026": "$5,000,000", "2028": "UFA"})

    def test_year_outside_contract_range_rejected(self):
        with self.assertRaises(ValidationError):
            parse_contract_map({"1999": "$1"})

    def test_with_amount_keeps_option_kind(self):
        self.assertEqual(with_amount(TeamOption(1.0), 3.0), TeamOption(3.0))
        self.assertEqual(with_amount(Fixed(1.0), 3.0), Fixed(3.0))


class TestBidPoints(unittest.TestCase):
    def test_points_formula(self):
        self.assertEqual(multiplier(1), 2.0)
        self.assertAlmostEqual(bid_points(3, 2_000_000), 9.6)
        self.assertAlmostEqual(bid_points(5, 1_000_000), 6.0)

    def test_outbid_needs_a_full_point(self):
        self.assertTrue(outbids(10.6, 9.6, increment=1.0))
        self.assertFalse(outbids(10.0, 9.6, increment=1.0))
        # Float noise must not block an exact one-point raise.
        self.assertTrue(outbids(4.8 + 1.0, 4.8, increment=1.0))

    def test_invalid_terms(self):
        cases = [
            ((0, 2_000_000), INVALID_YEARS),
            ((6, 2_000_000), INVALID_YEARS),
            ((2.5, 2_000_000), INVALID_YEARS),
            ((1, 999_999), INVALID_AAV),
            ((1, float("nan")), INVALID_AAV),
            ((1, float("inf")), INVALID_AAV),
            ((1, "inf"), INVALID_AAV),
        ]
        for (years, aav), code in cases:
            with self.subTest(years=years, aav=aav):
                with self.assertRaises(ValidationError) as ctx:
                    validate_bid_terms(years, aav)
                self.assertEqual(ctx.exception.code, code)


class TestRetentionAndDeadCap(unittest.TestCase):
    def test_retention_bands(self):
        opening = _dt.date(2026, 3, 30)
        self.assertEqual(retention_pct(_dt.date(2026, 3, 1), opening), 0.0)
        self.assertEqual(retention_pct(_dt.date(2026, 4, 30), opening), 0.10)
        self.assertEqual(retention_pct(_dt.date(2026, 5, 31), opening), 0.25)
        self.assertEqual(retention_pct(_dt.date(2026, 6, 1), opening), 0.5)

    def test_volunteered_retention_stacks(self):
        r = compute_retention(10_000_000, 0.25, retain_salary=True)
        self.assertEqual(r.retained, 2_500_000 + 3_750_000)
        self.assertEqual(r.new_salary, 3_750_000)
        self.assertIn("Retained", r.note)
        self.assertIsNone(compute_retention(10_000_000, 0.0))

    def test_dfa_release_charges(self):
        contract = {
            2025: Fixed(5_000_000),
            2026: Fixed(10_000_000),
            2027: Fixed(8_000_000),
            2028: TeamOption(9_000_000),
            2029: Arbitration(),
        }
        charges = dfa_release_charges(contract, 2026)
        self.assertEqual(charges, [(2026, 7_500_000.0, 0.75), (2027, 4_000_000.0, 0.5)])


if __name__ == "__main__":
    unittest.main()
