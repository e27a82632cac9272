import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from rendezvous.database import Base  # noqa: E402
from rendezvous.models.appointment import Appointment  # noqa: E402
from rendezvous.models.user import Profile  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[Profile.__table__, Appointment.__table__])
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, Profile.__table__])
        engine.dispose()


@pytest.fixture
def appointment_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def add_appointment(appointment_db):
    def _add(user_id, appointment_date, appointment_time, status='pending'):
        appointment = Appointment(
            user_id=user_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            status=status,
        )
        appointment_db.add(appointment)
        appointment_db.commit()
        appointment_db.refresh(appointment)
        return appointment

    return _add


@pytest.fixture
def add_profile(appointment_db):
    def _add(user_id, email, full_name=None, role='customer'):
        profile = Profile(id=user_id, email=email, full_name=full_name, role=role)
        appointment_db.add(profile)
        appointment_db.commit()
        return profile

    return _add
