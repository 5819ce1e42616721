"""
Tests for membership status derivation and due-date arithmetic.
"""
from datetime import date, datetime, timedelta

import pytest

from mastergym.core.membership import (
    DisplayStatus,
    MembershipTerm,
    add_months,
    add_term,
    days_until_due,
    derive_status,
    initial_due_date,
    renew_due_date,
)
from mastergym.db.models import ClientStatus

NOW = datetime(2024, 3, 13, 12, 0)
TODAY = NOW.date()


class TestDeriveStatus:
    """Display status from lifecycle state and due date."""

    @pytest.mark.parametrize("due", [None, TODAY - timedelta(days=30), TODAY + timedelta(days=3), TODAY + timedelta(days=90)])
    def test_inactive_lifecycle_is_always_inactive(self, due):
        assert derive_status(ClientStatus.INACTIVE, due, NOW) is DisplayStatus.INACTIVE

    @pytest.mark.parametrize("due", [None, TODAY - timedelta(days=30), TODAY + timedelta(days=3), TODAY + timedelta(days=90)])
    def test_delinquent_lifecycle_is_always_expired(self, due):
        assert derive_status(ClientStatus.DELINQUENT, due, NOW) is DisplayStatus.EXPIRED

    def test_active_without_due_date_is_inactive(self):
        assert derive_status(ClientStatus.ACTIVE, None, NOW) is DisplayStatus.INACTIVE

    def test_due_in_ten_days_is_active(self):
        assert derive_status(ClientStatus.ACTIVE, TODAY + timedelta(days=10), NOW) is DisplayStatus.ACTIVE

    def test_due_in_three_days_is_expiring_soon(self):
        assert derive_status(ClientStatus.ACTIVE, TODAY + timedelta(days=3), NOW) is DisplayStatus.EXPIRING_SOON

    def test_due_yesterday_is_expired(self):
        assert derive_status(ClientStatus.ACTIVE, TODAY - timedelta(days=1), NOW) is DisplayStatus.EXPIRED

    def test_due_today_is_expired_once_the_day_started(self):
        # the due date counts from midnight
        assert derive_status(ClientStatus.ACTIVE, TODAY, NOW) is DisplayStatus.EXPIRED
        assert derive_status(ClientStatus.ACTIVE, TODAY, datetime(2024, 3, 13, 0, 0)) is DisplayStatus.EXPIRED

    def test_seven_day_boundary(self):
        # 7 days ahead at midnight is ceil(6.5) = 7 days away
        assert derive_status(ClientStatus.ACTIVE, TODAY + timedelta(days=7), NOW) is DisplayStatus.EXPIRING_SOON
        # 8 days ahead rounds up to 8
        assert derive_status(ClientStatus.ACTIVE, TODAY + timedelta(days=8), NOW) is DisplayStatus.ACTIVE

    def test_accepts_plain_date_as_now(self):
        assert derive_status(ClientStatus.ACTIVE, TODAY + timedelta(days=1), TODAY) is DisplayStatus.EXPIRING_SOON

    def test_rejects_raw_lifecycle_string(self):
        with pytest.raises(TypeError):
            derive_status("ACTIVO", TODAY, NOW)

    def test_rejects_malformed_due_date(self):
        with pytest.raises(TypeError):
            derive_status(ClientStatus.ACTIVE, "2024-03-20", NOW)

    def test_rejects_malformed_now(self):
        with pytest.raises(TypeError):
            derive_status(ClientStatus.ACTIVE, TODAY, "now")


class TestDaysUntilDue:

    def test_partial_day_rounds_up(self):
        assert days_until_due(date(2024, 3, 14), NOW) == 1

    def test_exact_midnight(self):
        assert days_until_due(date(2024, 3, 20), datetime(2024, 3, 13)) == 7

    def test_past_due_is_negative(self):
        assert days_until_due(date(2024, 3, 10), NOW) == -3


class TestAddMonths:

    def test_plain_month(self):
        assert add_months(date(2024, 1, 15), 1) == date(2024, 2, 15)

    def test_crosses_year(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 3, 2)
        assert add_months(date(2024, 12, 5), 1) == date(2025, 1, 5)

    def test_end_of_month_rolls_over(self):
        assert add_months(date(2023, 1, 31), 1) == date(2023, 3, 3)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 3, 2)

    def test_twelve_months(self):
        assert add_months(date(2024, 2, 29), 12) == date(2025, 3, 1)


class TestTerms:

    @pytest.mark.parametrize(
        "term,expected",
        [
            (MembershipTerm.DAILY, date(2024, 3, 14)),
            (MembershipTerm.MONTHLY, date(2024, 4, 13)),
            (MembershipTerm.QUARTERLY, date(2024, 6, 13)),
            (MembershipTerm.SEMIANNUAL, date(2024, 9, 13)),
            (MembershipTerm.ANNUAL, date(2025, 3, 13)),
        ],
    )
    def test_add_term(self, term, expected):
        assert add_term(TODAY, term) == expected

    def test_initial_due_date_from_datetime(self):
        assert initial_due_date(NOW, MembershipTerm.MONTHLY) == date(2024, 4, 13)


class TestRenewDueDate:

    def test_lapsed_membership_counts_from_today(self):
        assert renew_due_date(date(2024, 1, 15), MembershipTerm.MONTHLY, date(2024, 3, 1)) == date(2024, 4, 1)

    def test_early_renewal_extends_current_due_date(self):
        assert renew_due_date(date(2024, 6, 1), MembershipTerm.QUARTERLY, date(2024, 5, 1)) == date(2024, 9, 1)

    def test_due_today_counts_from_today(self):
        assert renew_due_date(date(2024, 3, 1), MembershipTerm.MONTHLY, date(2024, 3, 1)) == date(2024, 4, 1)

    def test_no_due_date_counts_from_today(self):
        assert renew_due_date(None, MembershipTerm.ANNUAL, date(2024, 3, 1)) == date(2025, 3, 1)

    def test_daily_pass(self):
        assert renew_due_date(date(2024, 3, 20), MembershipTerm.DAILY, NOW) == date(2024, 3, 21)

    def test_rejects_malformed_today(self):
        with pytest.raises(TypeError):
            renew_due_date(None, MembershipTerm.MONTHLY, "2024-03-01")
