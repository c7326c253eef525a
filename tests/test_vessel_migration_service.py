from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from app.core.config import settings
from app.models.migration_run import MigrationRun
from app.models.shipment import Shipment
from app.models.vessel import Vessel
from app.services import vessel_migration_service as migration_module
from app.services.migration_run_service import MigrationFailure
from app.services.vessel_migration_service import (
    VERIFY_ISSUES_FOUND,
    VERIFY_PASSED,
    VesselMigrationService,
)

_counter = {"n": 0}


def _shipment(db, vessel_name=None, job_number=None, pod=None, **kwargs) -> Shipment:
    _counter["n"] += 1
    row = Shipment(
        chassis_number=kwargs.pop("chassis_number", f"CH-{_counter['n']:05d}"),
        gate_in_date=kwargs.pop("gate_in_date", datetime(2024, 1, 15, 8, 30)),
        vessel_name=vessel_name,
        job_number=job_number,
        pod=pod,
        **kwargs,
    )
    db.add(row)
    return row


def _ever_given_yard(db):
    s1 = _shipment(db, "EVER GIVEN", "J1")
    s2 = _shipment(db, "EVER GIVEN", "J1")
    s3 = _shipment(db, "EVER GIVEN", None)
    db.commit()
    return s1, s2, s3


def test_analyze_then_execute_normalizes_ever_given(db_session):
    s1, s2, s3 = _ever_given_yard(db_session)
    service = VesselMigrationService(db_session, actor_email="operator@example.com")

    analysis = service.analyze()
    assert analysis.unmigrated_shipments == 3
    assert analysis.migrated_shipments == 0
    assert analysis.existing_vessels == 0
    assert len(analysis.groups) == 2
    assert [(g.vessel_name, g.job_number, g.shipment_count) for g in analysis.groups] == [
        ("EVER GIVEN", "J1", 2),
        ("EVER GIVEN", "", 1),
    ]

    log = service.execute()
    assert log.vessels_created == 2
    assert log.shipments_updated == 3
    assert log.errors == []
    assert set(log.vessel_map) == {"EVER GIVEN_J1_", "EVER GIVEN__"}

    db_session.expire_all()
    assert s1.vessel_id is not None
    assert s1.vessel_id == s2.vessel_id
    assert s1.vessel_id != s3.vessel_id
    assert db_session.query(Vessel).count() == 2

    created_by = {v.created_by for v in db_session.query(Vessel).all()}
    assert created_by == {"operator@example.com"}


def test_grouping_normalizes_case_and_whitespace(db_session):
    _shipment(db_session, " ever given ", "j1 ", "jebel ali")
    _shipment(db_session, "EVER GIVEN", "J1", " JEBEL ALI ")
    _shipment(db_session, "Ever Given", "J1", "KARACHI")
    db_session.commit()

    groups = VesselMigrationService(db_session).group_unmigrated_counts()
    assert [(g.vessel_name, g.job_number, g.pod, g.shipment_count) for g in groups] == [
        ("EVER GIVEN", "J1", "JEBEL ALI", 2),
        ("EVER GIVEN", "J1", "KARACHI", 1),
    ]


def test_null_empty_and_blank_job_numbers_form_one_group(db_session):
    rows = [
        _shipment(db_session, "EVER GIVEN", None, "JEBEL ALI"),
        _shipment(db_session, "EVER GIVEN", "", "JEBEL ALI"),
        _shipment(db_session, " ever given ", "   ", "jebel ali"),
    ]
    db_session.commit()

    service = VesselMigrationService(db_session)
    groups = service.analyze().groups
    assert [(g.vessel_name, g.job_number, g.pod, g.shipment_count) for g in groups] == [
        ("EVER GIVEN", "", "JEBEL ALI", 3),
    ]

    log = service.execute()
    assert log.vessels_created == 1
    assert log.shipments_updated == 3
    assert list(log.vessel_map) == ["EVER GIVEN__JEBEL ALI"]

    db_session.expire_all()
    assert len({r.vessel_id for r in rows}) == 1
    assert rows[0].vessel_id is not None
    assert db_session.query(Vessel).count() == 1
    vessel = db_session.get(Vessel, rows[0].vessel_id)
    assert vessel.job_number is None


def test_execute_reuses_one_vessel_for_groups_differing_only_by_pod(db_session):
    a = _shipment(db_session, "EVER GIVEN", "J1", "JEBEL ALI")
    b = _shipment(db_session, "EVER GIVEN", "J1", "KARACHI")
    db_session.commit()

    log = VesselMigrationService(db_session).execute()
    assert log.vessels_created == 1
    assert log.shipments_updated == 2
    assert log.vessel_map["EVER GIVEN_J1_JEBEL ALI"] == log.vessel_map["EVER GIVEN_J1_KARACHI"]

    db_session.expire_all()
    assert a.vessel_id == b.vessel_id


def test_vessel_free_shipments_are_out_of_scope(db_session):
    _shipment(db_session, None)
    _shipment(db_session, "   ")
    _shipment(db_session, "MSC OSCAR")
    db_session.commit()

    service = VesselMigrationService(db_session)
    assert service.count_unmigrated() == 1

    log = service.execute()
    assert log.shipments_updated == 1
    assert db_session.query(Shipment).filter(Shipment.vessel_id.is_(None)).count() == 2


def test_execute_is_idempotent(db_session):
    _ever_given_yard(db_session)
    service = VesselMigrationService(db_session)
    service.execute()

    second = service.execute()
    assert second.vessels_created == 0
    assert second.shipments_updated == 0
    assert second.vessel_map == {}
    assert db_session.query(Vessel).count() == 2


def test_dry_run_reports_plan_without_writing(db_session):
    _ever_given_yard(db_session)
    _shipment(db_session, "MSC OSCAR", "M7", "DUBAI")
    existing = Vessel(vessel_name="MSC OSCAR", job_number="M7", identity_key="MSC OSCAR|M7")
    db_session.add(existing)
    db_session.commit()

    service = VesselMigrationService(db_session)
    result = service.dry_run()

    assert len(result.groups) == 3
    assert result.total_shipments == 4
    assert result.vessels_to_create == 2
    assert result.existing_vessel_ids == {"MSC OSCAR|M7": existing.id}

    db_session.expire_all()
    assert db_session.query(Vessel).count() == 1
    assert db_session.query(MigrationRun).count() == 0
    assert service.count_migrated() == 0


def test_execute_links_existing_vessel_without_creating(db_session):
    existing = Vessel(vessel_name="EVER GIVEN", job_number="J1", identity_key="EVER GIVEN|J1")
    db_session.add(existing)
    s1 = _shipment(db_session, "ever given", "j1")
    db_session.commit()

    log = VesselMigrationService(db_session).execute()
    assert log.vessels_created == 0
    assert log.shipments_updated == 1

    db_session.expire_all()
    assert s1.vessel_id == existing.id


def test_execute_records_failed_group_and_continues(db_session, monkeypatch):
    bad = _shipment(db_session, "BROKEN SHIP", "B1", "NOWHERE")
    good = _shipment(db_session, "EVER GIVEN", "J1")
    db_session.commit()

    real_resolve = migration_module.resolve_vessel

    def _resolve(db, vessel_name, job_number=None, pod=None, **kwargs):
        if vessel_name == "BROKEN SHIP":
            raise RuntimeError("simulated write failure")
        return real_resolve(db, vessel_name, job_number, pod, **kwargs)

    monkeypatch.setattr(migration_module, "resolve_vessel", _resolve)

    log = VesselMigrationService(db_session).execute()
    assert log.vessels_created == 1
    assert log.shipments_updated == 1
    assert log.errors == [
        {
            "vessel_name": "BROKEN SHIP",
            "job_number": "B1",
            "pod": "NOWHERE",
            "error": "simulated write failure",
        }
    ]

    db_session.expire_all()
    assert bad.vessel_id is None
    assert good.vessel_id is not None

    run = db_session.query(MigrationRun).one()
    assert run.phase == "execute"
    assert run.status == "SUCCEEDED"


def test_small_update_chunks_still_link_every_shipment(db_session, monkeypatch):
    monkeypatch.setattr(settings, "MIGRATION_UPDATE_CHUNK_SIZE", 2)
    rows = [_shipment(db_session, "EVER GIVEN", "J1") for _ in range(5)]
    db_session.commit()

    log = VesselMigrationService(db_session).execute()
    assert log.shipments_updated == 5

    db_session.expire_all()
    assert len({r.vessel_id for r in rows}) == 1


def test_verify_passes_after_full_migration(db_session):
    _ever_given_yard(db_session)
    service = VesselMigrationService(db_session)
    service.execute()

    result = service.verify()
    assert result.status == VERIFY_PASSED
    assert result.unmigrated_shipments == 0
    assert result.migrated_shipments == 3
    assert result.orphaned_vessel_ids == []
    assert len(result.samples) == 3
    assert all(s["match"] for s in result.samples)


def test_verify_sample_is_capped_by_setting(db_session, monkeypatch):
    monkeypatch.setattr(settings, "MIGRATION_VERIFY_SAMPLE_SIZE", 2)
    _ever_given_yard(db_session)
    service = VesselMigrationService(db_session)
    service.execute()

    assert len(service.verify().samples) == 2


def test_verify_flags_unmigrated_and_orphaned_references(db_session):
    _shipment(db_session, "EVER GIVEN", "J1")
    orphan = _shipment(db_session, "GHOST SHIP", "G1")
    db_session.commit()
    orphan.vessel_id = 999
    db_session.commit()

    result = VesselMigrationService(db_session).verify()
    assert result.status == VERIFY_ISSUES_FOUND
    assert result.unmigrated_shipments == 1
    assert result.orphaned_vessel_ids == [999]
    assert result.mismatches == 1
    assert result.samples[0]["vessel_vessel_name"] is None


def test_verify_detects_name_mismatch(db_session):
    vessel = Vessel(vessel_name="MSC OSCAR", identity_key="MSC OSCAR|")
    db_session.add(vessel)
    db_session.commit()
    wrong = _shipment(db_session, "EVER GIVEN", vessel_id=vessel.id)
    db_session.commit()

    result = VesselMigrationService(db_session).verify()
    assert result.status == VERIFY_ISSUES_FOUND
    assert result.samples == [
        {
            "shipment_id": wrong.id,
            "shipment_vessel_name": "EVER GIVEN",
            "vessel_id": vessel.id,
            "vessel_vessel_name": "MSC OSCAR",
            "match": False,
        }
    ]


def test_rollback_clears_links_but_keeps_vessels(db_session):
    s1, s2, s3 = _ever_given_yard(db_session)
    service = VesselMigrationService(db_session)
    service.execute()
    assert service.rollback_preview() == 3

    rolled_back, run = service.rollback()
    assert rolled_back == 3
    assert run.phase == "rollback"
    assert run.status == "SUCCEEDED"

    db_session.expire_all()
    assert [s.vessel_id for s in (s1, s2, s3)] == [None, None, None]
    assert db_session.query(Vessel).count() == 2
    assert s1.vessel_name == "EVER GIVEN"

    # Re-running after a rollback reuses the kept vessels.
    again = service.execute()
    assert again.vessels_created == 0
    assert again.shipments_updated == 3


def test_cleanup_refuses_while_shipments_are_unmigrated(db_session):
    _ever_given_yard(db_session)
    service = VesselMigrationService(db_session)

    with pytest.raises(MigrationFailure) as exc_info:
        service.ensure_cleanup_allowed()

    failure = exc_info.value
    assert failure.code == "PRECONDITION_FAILED"
    assert failure.status_code == 400
    assert failure.to_detail()["unmigratedShipments"] == 3

    db_session.expire_all()
    assert db_session.query(Shipment).filter(Shipment.vessel_name.is_not(None)).count() == 3


def test_confirmed_cleanup_checks_completeness_inside_its_run(db_session):
    _ever_given_yard(db_session)
    service = VesselMigrationService(db_session, actor_email="operator@example.com")

    with pytest.raises(MigrationFailure) as exc_info:
        service.cleanup()

    assert exc_info.value.code == "PRECONDITION_FAILED"

    db_session.expire_all()
    run = db_session.query(MigrationRun).one()
    assert run.phase == "cleanup"
    assert run.status == "FAILED"
    assert run.actor_email == "operator@example.com"
    assert "not yet migrated" in run.error_message
    assert db_session.query(Shipment).filter(Shipment.vessel_name.is_not(None)).count() == 3


def test_cleanup_completeness_check_respects_run_guard(db_session):
    _ever_given_yard(db_session)
    db_session.add(MigrationRun(phase="execute", status="RUNNING", started_at=datetime.utcnow()))
    db_session.commit()

    with pytest.raises(MigrationFailure) as exc_info:
        VesselMigrationService(db_session).cleanup(verify_first=False)

    assert exc_info.value.code == "RUN_CONFLICT"
    db_session.expire_all()
    assert db_session.query(Shipment).filter(Shipment.vessel_name.is_not(None)).count() == 3


def test_cleanup_without_verification_strips_unmigrated_rows(db_session):
    _ever_given_yard(db_session)

    cleaned, run = VesselMigrationService(db_session).cleanup(verify_first=False)
    assert cleaned == 3
    assert run.status == "SUCCEEDED"

    db_session.expire_all()
    assert db_session.query(Shipment).filter(Shipment.vessel_name.is_not(None)).count() == 0


def test_cleanup_strips_legacy_columns(db_session):
    _shipment(db_session, "EVER GIVEN", "J1", "JEBEL ALI")
    _shipment(db_session, "EVER GIVEN", None, "JEBEL ALI")
    # Orphan pod without a name: not migratable but still cleaned.
    _shipment(db_session, None, None, "DUBAI")
    db_session.commit()

    service = VesselMigrationService(db_session)
    service.execute()
    service.ensure_cleanup_allowed()

    preview = service.cleanup_preview()
    assert preview.with_vessel_name == 2
    assert preview.with_job_number == 1
    assert preview.with_pod == 3

    cleaned, run = service.cleanup()
    assert cleaned == 3
    assert run.phase == "cleanup"

    db_session.expire_all()
    remaining = db_session.query(Shipment).filter(
        (Shipment.vessel_name.is_not(None)) | (Shipment.job_number.is_not(None)) | (Shipment.pod.is_not(None))
    )
    assert remaining.count() == 0
    assert db_session.query(Shipment).filter(Shipment.vessel_id.is_not(None)).count() == 2


def test_active_run_blocks_a_second_mutating_phase(db_session):
    _ever_given_yard(db_session)
    db_session.add(
        MigrationRun(
            phase="execute",
            status="RUNNING",
            actor_email="someone@example.com",
            started_at=datetime.utcnow(),
        )
    )
    db_session.commit()

    with pytest.raises(MigrationFailure) as exc_info:
        VesselMigrationService(db_session).rollback()

    assert exc_info.value.code == "RUN_CONFLICT"
    assert exc_info.value.status_code == 409
    assert exc_info.value.extra["startedBy"] == "someone@example.com"


def test_stale_run_does_not_block(db_session, monkeypatch):
    monkeypatch.setattr(settings, "MIGRATION_RUN_STALE_SECONDS", 60)
    _ever_given_yard(db_session)
    stale = MigrationRun(
        phase="execute",
        status="RUNNING",
        started_at=datetime.utcnow() - timedelta(hours=2),
    )
    db_session.add(stale)
    db_session.commit()

    log = VesselMigrationService(db_session).execute()
    assert log.shipments_updated == 3

    db_session.expire_all()
    assert stale.status == "FAILED"
    assert stale.error_message == "stale"


def test_guard_can_be_disabled(db_session, monkeypatch):
    monkeypatch.setattr(settings, "MIGRATION_RUN_GUARD_ENABLED", False)
    db_session.add(MigrationRun(phase="execute", status="RUNNING", started_at=datetime.utcnow()))
    db_session.commit()

    rolled_back, _run = VesselMigrationService(db_session).rollback()
    assert rolled_back == 0
