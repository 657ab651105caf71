from tabular_partitions.executor import PartitionOperationExecutor
from tabular_partitions.safe_delete import (
    PartitionIdentity,
    PlainDelete,
    RecreateSpec,
    SafeDelete,
    delete_partition,
)

IDENTITY = PartitionIdentity(database="Sales", table="FactSales", name="Fact_Jan-2019")


def _executor(fake_service, settings) -> PartitionOperationExecutor:
    executor = PartitionOperationExecutor(fake_service, settings)
    executor.ensure_connected()
    return executor


def test_safe_delete_of_never_created_partition_succeeds(fake_service, settings):
    reports = delete_partition(
        _executor(fake_service, settings),
        IDENTITY,
        SafeDelete(RecreateSpec(query="SELECT 1", data_source="SqlDW")),
    )
    assert [(r.step, r.ok) for r in reports] == [("create", True), ("delete", True)]
    assert fake_service.steps() == [
        ("createOrReplace", "Fact_Jan-2019"),
        ("delete", "Fact_Jan-2019"),
    ]
    assert fake_service.existing("Sales", "FactSales") == set()


def test_plain_delete_of_missing_partition_reports_failure(fake_service, settings):
    reports = delete_partition(_executor(fake_service, settings), IDENTITY, PlainDelete())
    assert len(reports) == 1
    assert reports[0].step == "delete"
    assert not reports[0].ok


def test_plain_delete_is_the_default_mode(fake_service, settings):
    fake_service.partitions[("Sales", "FactSales")] = {"Fact_Jan-2019"}
    reports = delete_partition(_executor(fake_service, settings), IDENTITY)
    assert [(r.step, r.ok) for r in reports] == [("delete", True)]


def test_failed_recreate_aborts_delete(fake_service, settings):
    fake_service.fail_create.add("Fact_Jan-2019")
    reports = delete_partition(
        _executor(fake_service, settings),
        IDENTITY,
        SafeDelete(RecreateSpec(query="SELECT 1", data_source="SqlDW")),
    )
    assert [(r.step, r.ok) for r in reports] == [("create", False)]
    assert ("delete", "Fact_Jan-2019") not in fake_service.calls


def test_failed_recreate_refresh_still_deletes(fake_service, settings):
    # The recreate's refresh failing does not block the delete; only a failed create does.
    fake_service.fail_process.add("Sales/FactSales/Fact_Jan-2019")
    reports = delete_partition(
        _executor(fake_service, settings),
        IDENTITY,
        SafeDelete(RecreateSpec(query="SELECT 1", data_source="SqlDW", refresh_mode="full")),
    )
    assert [(r.step, r.ok) for r in reports] == [
        ("create", True),
        ("process", False),
        ("delete", True),
    ]
