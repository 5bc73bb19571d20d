import pytest

import crud
import ledger
from errors import ConflictError, NotFoundError
from models import AssetStatus


def test_lend_marks_asset_lent_and_opens_record(coordinator, db_session, make_asset, make_borrower):
    asset = make_asset()
    borrower = make_borrower()

    result = coordinator.lend(asset.id, borrower.id, "scratch on the lens")

    assert result.asset.status == AssetStatus.LENT
    assert result.record.asset_id == asset.id
    assert result.record.borrower_id == borrower.id
    assert result.record.borrower_name_snapshot == "Alice"
    assert result.record.borrower_contact_snapshot == "alice@example.com"
    assert result.record.lent_at is not None
    assert result.record.returned_at is None
    assert result.record.notes == "scratch on the lens"

    assert crud.get_asset(db_session, asset.id).status == AssetStatus.LENT
    open_records = ledger.get_open_records(db_session, asset.id)
    assert [r.id for r in open_records] == [result.record.id]


def test_return_closes_the_open_record(coordinator, db_session, make_asset, make_borrower):
    asset = make_asset()
    borrower = make_borrower()
    lent = coordinator.lend(asset.id, borrower.id, "boxed")

    returned = coordinator.return_asset(asset.id, "lens cap missing")

    assert returned.asset.status == AssetStatus.AVAILABLE
    assert returned.record.id == lent.record.id
    assert returned.record.returned_at is not None
    assert returned.record.returned_at >= returned.record.lent_at
    assert returned.record.notes == "boxed\nlens cap missing"
    assert returned.record.duration_days is not None

    assert crud.get_asset(db_session, asset.id).status == AssetStatus.AVAILABLE
    assert ledger.get_open_records(db_session, asset.id) == []
    assert ledger.count_records(db_session, asset.id) == 1


def test_lend_while_lent_is_a_conflict(coordinator, db_session, make_asset, make_borrower):
    asset = make_asset()
    alice = make_borrower()
    bob = make_borrower(name="Bob", contact="bob@example.com")
    coordinator.lend(asset.id, alice.id)

    with pytest.raises(ConflictError) as exc_info:
        coordinator.lend(asset.id, bob.id)

    assert exc_info.value.reason == "already lent"
    assert ledger.count_records(db_session, asset.id) == 1
    assert crud.get_asset(db_session, asset.id).status == AssetStatus.LENT
    assert ledger.get_active_record(db_session, asset.id).borrower_id == alice.id


def test_return_while_available_is_a_conflict(coordinator, db_session, make_asset, make_borrower):
    asset = make_asset()
    borrower = make_borrower()
    coordinator.lend(asset.id, borrower.id)
    first = coordinator.return_asset(asset.id)

    with pytest.raises(ConflictError) as exc_info:
        coordinator.return_asset(asset.id, "again")

    assert exc_info.value.reason == "not currently lent"
    history = ledger.list_history(db_session, asset.id)
    assert len(history) == 1
    assert history[0].returned_at == first.record.returned_at
    assert history[0].notes is None


def test_maintenance_blocks_lend_and_return(coordinator, db_session, make_asset, make_borrower):
    asset = make_asset()
    borrower = make_borrower()

    assert coordinator.begin_maintenance(asset.id).status == AssetStatus.MAINTENANCE

    with pytest.raises(ConflictError) as lend_exc:
        coordinator.lend(asset.id, borrower.id)
    assert lend_exc.value.reason == "unavailable"

    with pytest.raises(ConflictError) as return_exc:
        coordinator.return_asset(asset.id)
    assert return_exc.value.reason == "cannot return from maintenance"

    assert ledger.count_records(db_session, asset.id) == 0

    assert coordinator.end_maintenance(asset.id).status == AssetStatus.AVAILABLE
    assert coordinator.lend(asset.id, borrower.id).asset.status == AssetStatus.LENT


def test_maintenance_refused_while_lent(coordinator, make_asset, make_borrower):
    asset = make_asset()
    coordinator.lend(asset.id, make_borrower().id)

    with pytest.raises(ConflictError) as exc_info:
        coordinator.begin_maintenance(asset.id)
    assert exc_info.value.reason == "currently lent"

    with pytest.raises(ConflictError) as end_exc:
        coordinator.end_maintenance(asset.id)
    assert end_exc.value.reason == "currently lent"


def test_unknown_asset_and_borrower_are_not_found(coordinator, db_session, make_asset, make_borrower):
    borrower = make_borrower()
    with pytest.raises(NotFoundError) as asset_exc:
        coordinator.lend("no-such-asset", borrower.id)
    assert asset_exc.value.kind == "asset"

    with pytest.raises(NotFoundError):
        coordinator.return_asset("no-such-asset")

    asset = make_asset()
    with pytest.raises(NotFoundError) as borrower_exc:
        coordinator.lend(asset.id, "no-such-borrower")
    assert borrower_exc.value.kind == "borrower"

    # the status flip done before the borrower lookup was rolled back
    assert crud.get_asset(db_session, asset.id).status == AssetStatus.AVAILABLE
    assert ledger.count_records(db_session, asset.id) == 0


def test_blank_notes_are_ignored(coordinator, make_asset, make_borrower):
    asset = make_asset()
    lent = coordinator.lend(asset.id, make_borrower().id, "   ")
    assert lent.record.notes is None

    returned = coordinator.return_asset(asset.id, "ok")
    assert returned.record.notes == "ok"


def test_current_and_active_read_models(coordinator, db_session, make_asset, make_borrower):
    camera = make_asset(name="Camera")
    tripod = make_asset(name="Tripod")
    make_asset(name="Laptop")
    borrower = make_borrower()

    coordinator.lend(tripod.id, borrower.id)
    coordinator.lend(camera.id, borrower.id)

    assert [a.name for a in crud.list_lent_assets(db_session)] == ["Camera", "Tripod"]
    assert [r.asset_id for r in ledger.list_open_records(db_session)] == [camera.id, tripod.id]

    coordinator.return_asset(camera.id)
    assert [a.name for a in crud.list_lent_assets(db_session)] == ["Tripod"]
    assert [r.asset_id for r in ledger.list_open_records(db_session)] == [tripod.id]
