"""
Test configuration and shared fixtures for the clinic allocation test suite.

Each test gets its own in-memory SQLite database, so application code may
commit freely without leaking state between tests.
"""

import pytest
from datetime import date, datetime, time, timedelta
from typing import Generator, List, Optional, Sequence, Tuple

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import create_tables
from models import (
    Appointment,
    AppointmentAllocation,
    PhysicalResource,
    Professional,
    ProfessionalSchedule,
    ScheduleException,
    Service,
    ServicePhase,
)
from utils.datetime_utils import clinic_datetime

# Monday, far enough in the future that bookings are never rejected as past
TEST_DAY = date(2030, 1, 7)

PhaseRow = Tuple[int, float, Optional[str]]  # (duration_minutes, fraction, resource_type)


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory database for one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # One shared connection keeps the in-memory database alive
        echo=False,
    )
    create_tables(bind=engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session configured like the application's SessionLocal."""
    TestSession = sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestSession()

    yield session

    session.close()


# ===== Time helpers =====

def local_dt(hour: int, minute: int = 0, day: date = TEST_DAY) -> datetime:
    """UTC instant for a clinic wall-clock time."""
    return clinic_datetime(day, time(hour, minute))


def local_window(start: Tuple[int, int], end: Tuple[int, int], day: date = TEST_DAY) -> Tuple[datetime, datetime]:
    return local_dt(*start, day=day), local_dt(*end, day=day)


# ===== Seeding helpers =====

def create_professional(
    db: Session,
    full_name: str,
    schedules: Sequence[Tuple[int, time, time]] = ((0, time(8, 0), time(21, 0)),),
    is_active: bool = True
) -> Professional:
    """Create a professional with weekly duty intervals (default: Mondays 08:00-21:00)."""
    professional = Professional(full_name=full_name, is_active=is_active)
    db.add(professional)
    db.flush()

    for day_of_week, start_time, end_time in schedules:
        db.add(ProfessionalSchedule(
            professional_id=professional.id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
        ))
    db.commit()
    return professional


def create_resource(db: Session, name: str, resource_type: str, is_active: bool = True) -> PhysicalResource:
    resource = PhysicalResource(name=name, type=resource_type, is_active=is_active)
    db.add(resource)
    db.commit()
    return resource


def create_service(
    db: Session,
    name: str,
    phases: Sequence[PhaseRow] = (),
    duration_minutes: Optional[int] = None,
    fraction: float = 1.0,
    resource_type: Optional[str] = None,
    is_active: bool = True
) -> Service:
    """
    Create a service.

    With phases, one ServicePhase row is created per (duration, fraction,
    resource_type) tuple. Without phases, the service-level fields describe a
    simple single-phase service.
    """
    service = Service(
        name=name,
        is_active=is_active,
        duration_minutes=duration_minutes,
        required_professional_fraction=fraction,
        required_resource_type=resource_type,
    )
    db.add(service)
    db.flush()

    for order, (phase_minutes, phase_fraction, phase_resource) in enumerate(phases, start=1):
        db.add(ServicePhase(
            service_id=service.id,
            phase_order=order,
            duration_minutes=phase_minutes,
            requires_professional_fraction=phase_fraction,
            requires_resource_type=phase_resource,
        ))
    db.commit()
    return service


def create_occupancy(
    db: Session,
    service: Service,
    professional: Professional,
    starts_at: datetime,
    ends_at: datetime,
    fraction: float = 1.0,
    resource: Optional[PhysicalResource] = None,
    status: str = "scheduled"
) -> Appointment:
    """Insert an appointment holding a single allocation record, bypassing the planner."""
    appointment = Appointment(
        service_id=service.id,
        starts_at=starts_at,
        ends_at=ends_at,
        status=status,
    )
    db.add(appointment)
    db.flush()

    db.add(AppointmentAllocation(
        appointment_id=appointment.id,
        professional_id=professional.id,
        physical_resource_id=resource.id if resource else None,
        starts_at=starts_at,
        ends_at=ends_at,
        fraction_consumed=fraction,
    ))
    db.commit()
    return appointment


def create_exception(
    db: Session,
    starts_at: datetime,
    ends_at: datetime,
    professional: Optional[Professional] = None,
    resource: Optional[PhysicalResource] = None,
    reason: Optional[str] = None
) -> ScheduleException:
    exception = ScheduleException(
        professional_id=professional.id if professional else None,
        physical_resource_id=resource.id if resource else None,
        starts_at=starts_at,
        ends_at=ends_at,
        reason=reason,
    )
    db.add(exception)
    db.commit()
    return exception


def allocation_rows(db: Session, appointment_id: int) -> List[AppointmentAllocation]:
    return db.query(AppointmentAllocation).filter(
        AppointmentAllocation.appointment_id == appointment_id
    ).order_by(AppointmentAllocation.starts_at).all()


def assert_ledger_invariants(db: Session) -> None:
    """Check capacity and exclusivity at every allocation boundary in the ledger."""
    rows = db.query(AppointmentAllocation).join(Appointment).filter(
        Appointment.status != "cancelled"
    ).all()

    instants = sorted({row.starts_at for row in rows})
    for instant in instants:
        active = [row for row in rows if row.starts_at <= instant < row.ends_at]

        load_by_professional = {}
        for row in active:
            load_by_professional[row.professional_id] = (
                load_by_professional.get(row.professional_id, 0.0) + row.fraction_consumed
            )
        for professional_id, load in load_by_professional.items():
            assert load <= 1.0 + 1e-9, f"Professional {professional_id} overcommitted ({load}) at {instant}"

        held = [row.physical_resource_id for row in active if row.physical_resource_id is not None]
        assert len(held) == len(set(held)), f"Resource double-booked at {instant}"

    by_appointment = {}
    for row in rows:
        by_appointment.setdefault(row.appointment_id, set()).add(row.professional_id)
    for appointment_id, professionals in by_appointment.items():
        assert len(professionals) == 1, f"Appointment {appointment_id} split across professionals"


def next_day(day: date = TEST_DAY, days: int = 1) -> date:
    return day + timedelta(days=days)
