from datetime import date

import pytest

from tabular_partitions.executor import PartitionOperationExecutor
from tabular_partitions.rollover import (
    CreateStep,
    RolloverScheduler,
    SafeDeleteStep,
    YearState,
    describe_step,
    plan_year,
    plan_year_month,
    year_state,
)

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _names(policy, steps):
    return [describe_step(policy, step)["partition"] for step in steps]


def _scheduler(fake_service, settings, policy) -> RolloverScheduler:
    executor = PartitionOperationExecutor(fake_service, settings)
    executor.ensure_connected()
    return RolloverScheduler(executor, policy)


@pytest.mark.parametrize(
    "today, state",
    [
        (date(2020, 1, 1), YearState.GRACE_WINDOW),
        (date(2020, 1, 7), YearState.GRACE_WINDOW),
        (date(2020, 1, 8), YearState.NORMAL),
        (date(2020, 2, 3), YearState.NORMAL),
    ],
)
def test_year_state(today, state):
    assert year_state(today) is state


def test_year_plan_in_grace_window_includes_previous_year(policy):
    steps = plan_year(policy, date(2020, 1, 5))
    assert _names(policy, steps) == ["Fact_2020", "Fact_2019"]
    assert steps[1].window.start == date(2019, 1, 1)
    assert steps[1].window.end == date(2020, 1, 1)
    assert all(step.refresh_mode == "automatic" for step in steps)


def test_year_plan_after_grace_window_is_current_year_only(policy):
    steps = plan_year(policy, date(2020, 1, 8))
    assert _names(policy, steps) == ["Fact_2020"]
    assert steps[0].window.start == date(2020, 1, 1)
    assert steps[0].window.end == date(2021, 1, 1)


def test_create_only_suppresses_processing(policy):
    create_only = policy.model_copy(update={"create_only": True})
    assert all(step.refresh_mode is None for step in plan_year(create_only, date(2020, 1, 2)))
    assert all(
        step.refresh_mode is None
        for step in plan_year_month(create_only, date(2020, 1, 1))
        if isinstance(step, CreateStep)
    )


def test_year_month_plan_mid_month(policy):
    steps = plan_year_month(policy, date(2020, 3, 15))
    assert _names(policy, steps) == ["Fact_Mar-2020"]


def test_year_month_plan_first_of_month_reprocesses_previous_month(policy):
    steps = plan_year_month(policy, date(2020, 3, 1))
    assert _names(policy, steps) == ["Fact_Mar-2020", "Fact_Feb-2020"]
    assert steps[1].window.start == date(2020, 2, 1)
    assert steps[1].window.end == date(2020, 3, 1)


def test_year_month_plan_on_january_first_consolidates(policy):
    steps = plan_year_month(policy, date(2020, 1, 1))
    names = _names(policy, steps)

    assert names[0] == "Fact_Jan-2020"
    assert steps[0].window.end == date(2020, 2, 1)
    assert names[1] == "Fact_2019"
    assert isinstance(steps[1], CreateStep)
    assert steps[1].refresh_mode == "full"
    assert steps[1].window.start == date(2019, 1, 1)
    assert steps[1].window.end == date(2020, 1, 1)
    assert names[2:] == [f"Fact_{month}-2019" for month in MONTHS]
    assert all(isinstance(step, SafeDeleteStep) for step in steps[2:])
    assert "Fact_Dec-2019" not in names[:2]


def test_january_first_run_creates_then_retires_months(fake_service, settings, policy):
    report = _scheduler(fake_service, settings, policy).run_year_month(date(2020, 1, 1))

    assert report.ok
    expected = [
        ("createOrReplace", "Fact_Jan-2020"),
        ("process", "Sales/FactSales/Fact_Jan-2020", "automatic"),
        ("createOrReplace", "Fact_2019"),
        ("process", "Sales/FactSales/Fact_2019", "full"),
    ]
    for month in MONTHS:
        expected.append(("createOrReplace", f"Fact_{month}-2019"))
        expected.append(("delete", f"Fact_{month}-2019"))
    assert fake_service.steps() == expected
    assert fake_service.existing("Sales", "FactSales") == {"Fact_Jan-2020", "Fact_2019"}


def test_recreated_month_uses_month_window_query(fake_service, settings, policy):
    steps = plan_year_month(policy, date(2020, 1, 1))
    row = describe_step(policy, steps[7])
    assert row["partition"] == "Fact_Jun-2019"
    assert row["action"] == "safe-delete"
    assert (row["start"], row["end"]) == ("2019-06-01", "2019-07-01")


def test_failed_month_does_not_block_remaining_months(fake_service, settings, policy):
    fake_service.fail_delete.add("Fact_Jun-2019")
    report = _scheduler(fake_service, settings, policy).run_year_month(date(2020, 1, 1))

    assert not report.ok
    assert [(r.target, r.step) for r in report.failed] == [
        ("Sales/FactSales/Fact_Jun-2019", "delete")
    ]
    deletes = [call[1] for call in fake_service.steps() if call[0] == "delete"]
    assert deletes == [f"Fact_{month}-2019" for month in MONTHS]
    assert fake_service.existing("Sales", "FactSales") == {
        "Fact_Jan-2020",
        "Fact_2019",
        "Fact_Jun-2019",
    }


def test_failed_consolidation_still_attempts_month_deletes(fake_service, settings, policy):
    fake_service.fail_process.add("Sales/FactSales/Fact_2019")
    report = _scheduler(fake_service, settings, policy).run_year_month(date(2020, 1, 1))

    assert [(r.target, r.step) for r in report.failed] == [
        ("Sales/FactSales/Fact_2019", "process")
    ]
    assert len([call for call in fake_service.steps() if call[0] == "delete"]) == 12


def test_year_run_in_grace_window(fake_service, settings, policy):
    report = _scheduler(fake_service, settings, policy).run_year(date(2021, 1, 5))
    assert report.ok
    assert [call[1] for call in fake_service.steps() if call[0] == "createOrReplace"] == [
        "Fact_2021",
        "Fact_2020",
    ]
    assert report.today == date(2021, 1, 5)
    assert report.policy == "Sales/FactSales"
