"""
Configuration de la session SQLAlchemy - Connexion PostgreSQL
Fournit l'engine, la factory de sessions, la dependency FastAPI et le
context manager utilisé par les workers.

Les verrous de ligne (SELECT ... FOR UPDATE) posés par la numérotation et
l'application des changements sont bornés par lock_timeout : au-delà,
PostgreSQL lève une OperationalError que les services convertissent en
conflit de concurrence rejouable.
"""
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from typing import Generator, Optional
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


# === 1. ENGINE ===

def _connect_args() -> dict:
    if not settings.DATABASE_URL.startswith("postgresql"):
        return {}
    return {
        "application_name": "civiclink-billing",
        "options": f"-c timezone=UTC -c lock_timeout={settings.DB_LOCK_TIMEOUT_MS}",
    }


engine = create_engine(
    settings.DATABASE_URL,
    poolclass=QueuePool,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_recycle=1800,        # 30 min
    pool_pre_ping=True,
    echo=settings.DEBUG and settings.is_development,
    connect_args=_connect_args(),
)


# === 2. SESSION LOCAL ===

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    # Les réponses API sérialisent les objets après le commit du service
    expire_on_commit=False,
)


# === 3. DEPENDENCY FASTAPI ===

def get_db() -> Generator[Session, None, None]:
    """
    Dépendance FastAPI : une session par requête.

    Les services commitent eux-mêmes la fin de chaque opération métier ;
    le commit final ne fait que clore d'éventuelles lectures.

    Example:
        @router.get("/tenants/{tenant_id}/ledger")
        def get_ledger(tenant_id: int, db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class db_session:
    """
    Context manager pour utiliser une session hors FastAPI (workers, CLI).

    Commit à la sortie si aucune exception, rollback sinon ; l'exception
    est toujours propagée.

    Usage:
        with db_session() as db:
            BillingChangeService(db).apply_due_changes(date.today())
    """

    def __init__(self, commit_on_exit: bool = True):
        self.db: Optional[Session] = None
        self.commit_on_exit = commit_on_exit

    def __enter__(self) -> Session:
        self.db = SessionLocal()
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None and self.commit_on_exit:
                self.db.commit()
            else:
                self.db.rollback()
        finally:
            self.db.close()
        return False


# === 4. VÉRIFICATION DE CONNEXION ===

def check_database_connection() -> bool:
    """True si un SELECT 1 passe ; utilisé au démarrage des workers et par init_db."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Base de données injoignable : {e}")
        return False


# === 5. EVENT LISTENERS ===

if settings.is_development:
    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        logger.debug("🔌 Nouvelle connexion PostgreSQL (lock_timeout=%sms)", settings.DB_LOCK_TIMEOUT_MS)
