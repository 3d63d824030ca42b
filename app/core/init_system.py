import logging
from app.core.config import settings
from app.database import SessionLocal
from app.models.user import User, UserRole
from app.services import auth as auth_service

logger = logging.getLogger(__name__)

def init_system_data():
    """
    Creates the first super admin from BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD
    when both are set and no super admin exists yet.
    """
    email = settings.bootstrap_admin_email
    password = settings.bootstrap_admin_password
    if not email or not password:
        logger.info("System initialization check: no bootstrap admin configured.")
        return

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.role == UserRole.SUPER_ADMIN).count()
        if existing:
            logger.info(f"System initialization check: {existing} super admin(s) found.")
            return

        if db.query(User).filter(User.email == email.lower()).first():
            logger.warning(f"Bootstrap admin {email} exists with a different role; leaving it unchanged")
            return

        db.add(User(
            email=email.lower(),
            hashed_password=auth_service.get_password_hash(password),
            full_name="Super Admin",
            role=UserRole.SUPER_ADMIN,
            is_active=True,
        ))
        db.commit()
        logger.info(f"✓ Created bootstrap super admin: {email}")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
        raise
    finally:
        db.close()
