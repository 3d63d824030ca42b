from app.models.audit_log import AuditLog
from app.services.audit import AuditService


def test_audit_entry_commits_with_the_change(db_session, gm_user):
    gm_user.full_name = "Gopal Renamed"
    entry = AuditService.log(db_session, "rename_user", "user", gm_user.id, gm_user.id, gm_user.role,
                             {"field": "full_name"})
    assert entry is not None
    db_session.commit()

    row = db_session.query(AuditLog).filter(AuditLog.action == "rename_user").one()
    assert row.user_role == "system_admin"
    assert row.details == {"field": "full_name"}


def test_failed_audit_write_keeps_caller_transaction(db_session, gm_user):
    gm_user.full_name = "Gopal Renamed"
    # Not JSON serializable: the insert fails at flush time
    entry = AuditService.log(db_session, "rename_user", "user", gm_user.id, gm_user.id, gm_user.role,
                             {"payload": object()})
    assert entry is None

    db_session.commit()
    db_session.refresh(gm_user)
    assert gm_user.full_name == "Gopal Renamed"
    assert db_session.query(AuditLog).filter(AuditLog.action == "rename_user").count() == 0
