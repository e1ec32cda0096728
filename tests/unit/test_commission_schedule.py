"""
Tests for commission schedule snapshots.

Covers:
- Rule lookup and commission calculation
- Skipping malformed entries with integrity warnings
- Immutability of the snapshot
"""

from decimal import Decimal

import pytest

from app.models.enums import CommissionType
from app.services.referral.commission_schedule import (
    CommissionRule,
    CommissionSchedule,
)


class TestCommissionRule:
    """Test commission calculation of a single rule."""

    def test_percentage_scales_linearly(self):
        """Test PERCENTAGE doubles when the base doubles."""
        rule = CommissionRule(1, CommissionType.PERCENTAGE, Decimal("10"))

        assert rule.raw_commission(Decimal("100")) == Decimal("10")
        assert rule.raw_commission(Decimal("200")) == Decimal("20")

    def test_flat_rate_ignores_base(self):
        """Test FLAT_RATE is invariant to the base amount."""
        rule = CommissionRule(2, CommissionType.FLAT_RATE, Decimal("5"))

        assert rule.raw_commission(Decimal("50")) == Decimal("5")
        assert rule.raw_commission(Decimal("100000")) == Decimal("5")

    def test_label(self):
        """Test human readable labels."""
        assert CommissionRule(
            1, CommissionType.PERCENTAGE, Decimal("10.0000")
        ).label() == "10%"
        assert CommissionRule(
            1, CommissionType.FLAT_RATE, Decimal("2.5")
        ).label() == "2.5 flat"


class TestScheduleSnapshot:
    """Test CommissionSchedule.from_entries."""

    def test_rule_lookup(self, make_entry):
        """Test rules are keyed by level."""
        schedule = CommissionSchedule.from_entries(
            3,
            [
                make_entry(1, "PERCENTAGE", Decimal("10")),
                make_entry(2, "FLAT_RATE", Decimal("5")),
            ],
        )

        assert schedule.version == 3
        assert schedule.rule_at(1).commission_type == CommissionType.PERCENTAGE
        assert schedule.rule_at(2).value == Decimal("5")
        assert schedule.rule_at(3) is None
        assert schedule.warnings == ()

    def test_inactive_rule_is_kept(self, make_entry):
        """Test inactive entries stay in the snapshot, flagged inactive."""
        schedule = CommissionSchedule.from_entries(
            1, [make_entry(1, is_active=False)]
        )

        assert schedule.rule_at(1) is not None
        assert schedule.rule_at(1).is_active is False

    def test_malformed_entries_skipped(self, make_entry):
        """Test one bad row does not spoil the rest of the schedule."""
        schedule = CommissionSchedule.from_entries(
            1,
            [
                make_entry(1, "PERCENTAGE", Decimal("150")),
                make_entry(2, "FLAT_RATE", Decimal("5")),
                make_entry(11, "FLAT_RATE", Decimal("5")),
                make_entry(3, "BOGUS", Decimal("5")),
                make_entry(4, "FLAT_RATE", Decimal("-1")),
            ],
        )

        assert list(schedule.rules) == [2]
        assert len(schedule.warnings) == 4
        assert "level 1" in schedule.warnings[0]

    def test_duplicate_level_keeps_first(self, make_entry):
        """Test a repeated level is skipped with a warning."""
        schedule = CommissionSchedule.from_entries(
            1,
            [
                make_entry(1, "PERCENTAGE", Decimal("10")),
                make_entry(1, "PERCENTAGE", Decimal("50")),
            ],
        )

        assert schedule.rule_at(1).value == Decimal("10")
        assert len(schedule.warnings) == 1
        assert "duplicate level" in schedule.warnings[0]

    def test_empty_schedule(self):
        """Test a schedule without entries."""
        schedule = CommissionSchedule.from_entries(None, [])

        assert schedule.is_empty
        assert schedule.version is None
        assert schedule.rule_at(1) is None

    def test_snapshot_is_read_only(self, make_entry):
        """Test rules cannot be changed after the snapshot is built."""
        schedule = CommissionSchedule.from_entries(1, [make_entry(1)])

        with pytest.raises(TypeError):
            schedule.rules[2] = schedule.rules[1]

    def test_active_percentage_total(self, make_entry):
        """Test only active PERCENTAGE entries are summed."""
        schedule = CommissionSchedule.from_entries(
            1,
            [
                make_entry(1, "PERCENTAGE", Decimal("60")),
                make_entry(2, "PERCENTAGE", Decimal("50")),
                make_entry(3, "PERCENTAGE", Decimal("30"), is_active=False),
                make_entry(4, "FLAT_RATE", Decimal("500")),
            ],
        )

        assert schedule.active_percentage_total() == Decimal("110")
