"""Unit tests for PayrollEngine."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from caregiver_payroll.calculators.engine import PayrollEngine
from caregiver_payroll.calculators.settings import InvalidSettingsError, PayrollSettings
from caregiver_payroll.calculators.types import (
    CaregiverPayrollInput,
    MileageEntry,
    PTOEntry,
    PTOStatus,
    PTOType,
)

from tests.conftest import PERIOD_END, PERIOD_START


class TestCalculationIdGeneration:
    """Test deterministic calculation ID generation."""

    def test_same_inputs_produce_same_id(self, payroll_engine):
        caregiver_id = uuid4()

        id1 = payroll_engine._generate_calculation_id(
            caregiver_id, PERIOD_START, PERIOD_END, "abc123", "def456"
        )
        id2 = payroll_engine._generate_calculation_id(
            caregiver_id, PERIOD_START, PERIOD_END, "abc123", "def456"
        )

        assert id1 == id2

    def test_different_inputs_produce_different_id(self, payroll_engine):
        caregiver_id = uuid4()

        id1 = payroll_engine._generate_calculation_id(
            caregiver_id, PERIOD_START, PERIOD_END, "abc123", "def456"
        )
        id2 = payroll_engine._generate_calculation_id(
            caregiver_id, PERIOD_START, PERIOD_END, "xyz789", "def456"
        )

        assert id1 != id2

    def test_engine_version_changes_id(self, settings):
        caregiver_id = uuid4()
        args = (caregiver_id, PERIOD_START, PERIOD_END, "abc123", "def456")

        assert PayrollEngine(settings, engine_version="1.0.0")._generate_calculation_id(
            *args
        ) != PayrollEngine(settings, engine_version="1.0.1")._generate_calculation_id(*args)


class TestCalculateCaregiver:
    """Test the per-caregiver pipeline."""

    def test_overtime_week(self, payroll_engine, make_week):
        caregiver = make_week([8, 8, 8, 8, 8, 6])

        result = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        f = result.figures
        assert f.total_hours == Decimal("46")
        assert f.regular_pay == Decimal("800.00")
        assert f.overtime_pay == Decimal("180.00")
        assert f.net_pay == Decimal("614.46")
        assert len(result.reconciliations) == 6

    def test_default_hourly_rate(self, make_week):
        settings = PayrollSettings(default_hourly_rate=Decimal("15"))
        caregiver = make_week([4], hourly_rate=None)

        result = PayrollEngine(settings, engine_version="test").calculate_caregiver(
            caregiver, PERIOD_START, PERIOD_END
        )

        assert result.figures.hourly_rate == Decimal("15")
        assert result.figures.regular_pay == Decimal("60.00")

    def test_mileage_filtered_to_period(self, payroll_engine, make_week):
        caregiver = make_week([])
        cid = caregiver.caregiver_id
        caregiver.mileage = [
            MileageEntry(caregiver_id=cid, date=date(2026, 3, 3), miles=Decimal("60")),
            MileageEntry(caregiver_id=cid, date=date(2026, 3, 8), miles=Decimal("40")),
            MileageEntry(caregiver_id=cid, date=date(2026, 3, 9), miles=Decimal("500")),
        ]

        result = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert result.figures.total_miles == Decimal("100")
        assert result.figures.mileage_reimbursement == Decimal("67.00")
        assert result.figures.net_pay == Decimal("67.00")

    def test_pto_must_lie_inside_period(self, payroll_engine, make_week):
        caregiver = make_week([])
        cid = caregiver.caregiver_id
        caregiver.pto = [
            PTOEntry(cid, PTOType.VACATION, date(2026, 3, 3), date(2026, 3, 4), Decimal("16")),
            PTOEntry(cid, PTOType.SICK, date(2026, 3, 8), date(2026, 3, 9), Decimal("16")),
        ]

        result = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert result.figures.pto_hours == Decimal("16")
        assert result.figures.pto_pay == Decimal("320.00")

    def test_only_approved_pto_is_paid(self, payroll_engine, make_week):
        caregiver = make_week([])
        cid = caregiver.caregiver_id
        caregiver.pto = [
            PTOEntry(
                cid, PTOType.VACATION, date(2026, 3, 3), date(2026, 3, 4), Decimal("16"),
                status=PTOStatus.PENDING,
            ),
            PTOEntry(
                cid, PTOType.SICK, date(2026, 3, 5), date(2026, 3, 5), Decimal("8"),
                status=PTOStatus.DENIED,
            ),
        ]

        result = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert result.figures.pto_hours == Decimal("0")
        assert result.figures.pto_pay == Decimal("0.00")
        assert result.figures.net_pay == Decimal("0.00")

        caregiver.pto[0] = PTOEntry(
            cid, PTOType.VACATION, date(2026, 3, 3), date(2026, 3, 4), Decimal("16")
        )
        approved = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert approved.figures.pto_hours == Decimal("16")
        assert approved.calculation_id != result.calculation_id

    def test_incomplete_shifts_reported(self, payroll_engine, make_week):
        caregiver = make_week([8, 8])
        caregiver.shifts[1].actual_clock_out = None

        result = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert result.figures.total_hours == Decimal("8")
        assert result.incomplete_shifts == [caregiver.shifts[1]]

    def test_deterministic(self, payroll_engine, make_week):
        caregiver = make_week([8, 7, 9])

        first = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)
        second = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert first.calculation_id == second.calculation_id
        assert first.inputs_fingerprint == second.inputs_fingerprint
        assert first.figures == second.figures

    def test_input_change_changes_fingerprint(self, payroll_engine, make_week):
        caregiver = make_week([8, 7, 9])
        first = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        caregiver.shifts[0].actual_clock_out += timedelta(minutes=30)
        second = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert first.inputs_fingerprint != second.inputs_fingerprint
        assert first.calculation_id != second.calculation_id

    def test_settings_change_changes_id(self, make_week):
        caregiver = make_week([8])

        a = PayrollEngine(PayrollSettings(), engine_version="test").calculate_caregiver(
            caregiver, PERIOD_START, PERIOD_END
        )
        b = PayrollEngine(
            PayrollSettings(mileage_rate=Decimal("0.70")), engine_version="test"
        ).calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

        assert a.settings_fingerprint != b.settings_fingerprint
        assert a.calculation_id != b.calculation_id


class TestCalculateBatch:
    """Test whole-period calculation."""

    def test_batch_results_and_totals(self, payroll_engine, make_week):
        inputs = [make_week([8, 8, 8, 8, 8, 6]), make_week([5])]

        batch = payroll_engine.calculate_batch(inputs, PERIOD_START, PERIOD_END)

        assert len(batch.results) == 2
        assert batch.error_count == 0
        assert batch.totals.total_hours == Decimal("51")
        assert batch.totals.overtime_hours == Decimal("6")

    def test_one_bad_caregiver_does_not_stop_batch(self, payroll_engine, make_week):
        good = make_week([8])
        bad = make_week([8], hourly_rate=Decimal("-5"))

        batch = payroll_engine.calculate_batch([good, bad], PERIOD_START, PERIOD_END)

        assert set(batch.results) == {good.caregiver_id}
        assert batch.error_count == 1
        assert batch.failures[0].caregiver_id == bad.caregiver_id
        assert "hourly_rate" in batch.failures[0].reason

    def test_clock_out_before_clock_in_is_isolated(self, payroll_engine, make_week):
        good = make_week([8])
        bad = make_week([8])
        shift = bad.shifts[0]
        shift.actual_clock_out = shift.actual_clock_in - timedelta(minutes=1)

        batch = payroll_engine.calculate_batch([good, bad], PERIOD_START, PERIOD_END)

        assert list(batch.results) == [good.caregiver_id]
        assert [f.caregiver_id for f in batch.failures] == [bad.caregiver_id]

    def test_duplicate_caregiver_input_rejected(self, payroll_engine, make_week):
        first = make_week([8])
        second = make_week([4, 4, 4], caregiver=first.caregiver_id)

        batch = payroll_engine.calculate_batch([first, second], PERIOD_START, PERIOD_END)

        assert batch.results[first.caregiver_id].figures.total_hours == Decimal("8")
        assert batch.error_count == 1
        assert batch.failures[0].caregiver_id == first.caregiver_id
        assert "Duplicate" in batch.failures[0].reason

    def test_invalid_settings_abort_before_any_result(self, make_week):
        engine = PayrollEngine(
            PayrollSettings(federal_tax_rate=Decimal("1.5")), engine_version="test"
        )

        with pytest.raises(InvalidSettingsError):
            engine.calculate_batch([make_week([8])], PERIOD_START, PERIOD_END)

    def test_inverted_period_rejected(self, payroll_engine):
        with pytest.raises(ValueError):
            payroll_engine.calculate_batch([], PERIOD_END, PERIOD_START)

    def test_thread_pool_matches_serial(self, payroll_engine, make_week):
        inputs = [make_week([8, 9, 10, 8, 7, 3]) for _ in range(6)]

        serial = payroll_engine.calculate_batch(inputs, PERIOD_START, PERIOD_END)
        pooled = payroll_engine.calculate_batch(inputs, PERIOD_START, PERIOD_END, max_workers=4)

        assert set(serial.results) == set(pooled.results)
        for caregiver_id, result in serial.results.items():
            assert pooled.results[caregiver_id].figures == result.figures
            assert pooled.results[caregiver_id].calculation_id == result.calculation_id

    def test_empty_batch(self, payroll_engine):
        batch = payroll_engine.calculate_batch([], PERIOD_START, PERIOD_END)

        assert batch.results == {}
        assert batch.totals.net_pay == Decimal("0")

    def test_caregiver_without_shifts_gets_zero_record(self, payroll_engine):
        caregiver = CaregiverPayrollInput(caregiver_id=uuid4(), hourly_rate=Decimal("18"))

        batch = payroll_engine.calculate_batch([caregiver], PERIOD_START, PERIOD_END)

        figures = batch.results[caregiver.caregiver_id].figures
        assert figures.total_hours == Decimal("0")
        assert figures.net_pay == Decimal("0")


def test_shift_on_period_boundary_counts(payroll_engine, make_shift, caregiver_id):
    last_day = datetime(2026, 3, 8, 9, 0)
    caregiver = CaregiverPayrollInput(
        caregiver_id=caregiver_id,
        hourly_rate=Decimal("20"),
        shifts=[make_shift(last_day, 60)],
    )

    result = payroll_engine.calculate_caregiver(caregiver, PERIOD_START, PERIOD_END)

    assert result.figures.total_hours == Decimal("1")
