from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from rendezvous.core import config


DATABASE_URL = config.DATABASE_URL

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'rendezvous' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('rendezvous')}
        migration_steps = [
            ('created_at', 'ALTER TABLE rendezvous ADD COLUMN created_at TIMESTAMP'),
            ('updated_at', 'ALTER TABLE rendezvous ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_rendezvous_date_status ON rendezvous(appointment_date, status)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_rendezvous_user_date ON rendezvous(user_id, appointment_date)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_rendezvous_confirmed_slot '
                    "ON rendezvous(appointment_date, appointment_time) WHERE status = 'confirmed'"
                )
            )

        _appointment_schema_checked = True
