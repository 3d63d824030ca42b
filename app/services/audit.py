import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _sanitize(obj: Any) -> Any:
    """Make nested pydantic models, enums and dates JSON friendly."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    if hasattr(obj, "value"):
        return obj.value
    return obj


class AuditService:
    def __init__(self, db: Session):
        self.db = db

    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        user_id: Optional[int],
        user_role: Optional[str],
        details: dict,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ) -> Optional[AuditLog]:
        """
        Create an audit log entry. Strictly append-only.

        The row joins the caller's transaction and the caller's commit persists
        it together with the change it describes. It is written inside a
        SAVEPOINT so a failed insert leaves that transaction usable.
        """
        self.db.flush()
        try:
            with self.db.begin_nested():
                db_log = AuditLog(
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    user_id=user_id,
                    user_role=user_role.value if hasattr(user_role, "value") else user_role,
                    details=_sanitize(details),
                    before_state=_sanitize(before_state),
                    after_state=_sanitize(after_state)
                )
                self.db.add(db_log)
            return db_log
        except Exception as e:
            logger.error(f"FAILED TO AUDIT LOG: {e}", exc_info=True)
            return None

    @staticmethod
    def log(db: Session, *args, **kwargs) -> Optional[AuditLog]:
        return AuditService(db).log_action(*args, **kwargs)
