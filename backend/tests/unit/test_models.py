"""
Unit tests for database models.
"""

import pytest
from datetime import datetime, time, timezone

from sqlalchemy.exc import IntegrityError, StatementError

from core.constants import MAX_STRING_LENGTH
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
from tests.conftest import create_professional, create_resource, create_service, local_dt


class TestServiceModel:
    """Test cases for Service and ServicePhase models."""

    def test_phases_are_ordered(self, db_session):
        """Test that phases load in phase_order regardless of insert order."""
        service = Service(name="Kinesiology + chamber")
        db_session.add(service)
        db_session.flush()
        db_session.add(ServicePhase(service_id=service.id, phase_order=2, duration_minutes=30,
                                    requires_professional_fraction=0.5, requires_resource_type="chamber"))
        db_session.add(ServicePhase(service_id=service.id, phase_order=1, duration_minutes=30,
                                    requires_professional_fraction=1.0, requires_resource_type="box"))
        db_session.commit()
        db_session.expire(service, ["phases"])

        assert [p.phase_order for p in service.phases] == [1, 2]
        assert service.created_at is not None
        assert service.created_at.tzinfo == timezone.utc

    def test_duplicate_phase_order_rejected(self, db_session):
        service = create_service(db_session, "Chamber", phases=[(30, 1.0, None)])

        db_session.add(ServicePhase(service_id=service.id, phase_order=1, duration_minutes=15,
                                    requires_professional_fraction=1.0))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    @pytest.mark.parametrize("fraction", [0.0, 1.5])
    def test_phase_fraction_range(self, db_session, fraction):
        service = create_service(db_session, "Chamber", duration_minutes=30)

        db_session.add(ServicePhase(service_id=service.id, phase_order=1, duration_minutes=30,
                                    requires_professional_fraction=fraction))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_phase_duration_positive(self, db_session):
        service = create_service(db_session, "Chamber", duration_minutes=30)

        db_session.add(ServicePhase(service_id=service.id, phase_order=1, duration_minutes=0,
                                    requires_professional_fraction=1.0))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_name_columns_share_string_length(self):
        columns = [
            Service.__table__.c.name,
            ServicePhase.__table__.c.label,
            Professional.__table__.c.full_name,
            PhysicalResource.__table__.c.name,
            ScheduleException.__table__.c.reason,
        ]

        assert {column.type.length for column in columns} == {MAX_STRING_LENGTH}


class TestScheduleModels:
    """Test cases for ProfessionalSchedule and ScheduleException."""

    def test_schedule_day_name(self, db_session):
        professional = create_professional(db_session, "Dr. Vera", schedules=[(2, time(9, 0), time(13, 0))])
        schedule = db_session.query(ProfessionalSchedule).filter(
            ProfessionalSchedule.professional_id == professional.id
        ).one()

        assert schedule.day_name == "Wednesday"

    def test_exception_single_scope(self, db_session):
        """An exception may block a professional or a resource, not both."""
        professional = create_professional(db_session, "Dr. Vera")
        resource = create_resource(db_session, "Chamber 1", "chamber")

        db_session.add(ScheduleException(
            professional_id=professional.id,
            physical_resource_id=resource.id,
            starts_at=local_dt(9, 0),
            ends_at=local_dt(10, 0),
        ))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_clinic_wide_exception(self, db_session):
        exception = ScheduleException(starts_at=local_dt(9, 0), ends_at=local_dt(10, 0), reason="Holiday")
        db_session.add(exception)
        db_session.commit()

        assert exception.is_clinic_wide


class TestAppointmentModels:
    """Test cases for Appointment and AppointmentAllocation."""

    def test_timestamps_round_trip_as_utc(self, db_session):
        service = create_service(db_session, "Chamber", duration_minutes=60)
        appointment = Appointment(service_id=service.id, starts_at=local_dt(9, 0), ends_at=local_dt(10, 0))
        db_session.add(appointment)
        db_session.commit()
        db_session.expire_all()

        loaded = db_session.get(Appointment, appointment.id)
        assert loaded.starts_at == datetime(2030, 1, 7, 12, 0, tzinfo=timezone.utc)
        assert loaded.status == "scheduled"

    def test_naive_timestamp_rejected(self, db_session):
        service = create_service(db_session, "Chamber", duration_minutes=60)
        db_session.add(Appointment(
            service_id=service.id,
            starts_at=datetime(2030, 1, 7, 12, 0),
            ends_at=datetime(2030, 1, 7, 13, 0),
        ))

        with pytest.raises((StatementError, ValueError)):
            db_session.commit()
        db_session.rollback()

    def test_invalid_status_rejected(self, db_session):
        service = create_service(db_session, "Chamber", duration_minutes=60)
        db_session.add(Appointment(service_id=service.id, starts_at=local_dt(9, 0), ends_at=local_dt(10, 0),
                                   status="postponed"))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_allocation_fraction_range(self, db_session):
        service = create_service(db_session, "Chamber", duration_minutes=60)
        professional = create_professional(db_session, "Dr. Vera")
        appointment = Appointment(service_id=service.id, starts_at=local_dt(9, 0), ends_at=local_dt(10, 0))
        db_session.add(appointment)
        db_session.flush()

        db_session.add(AppointmentAllocation(
            appointment_id=appointment.id,
            professional_id=professional.id,
            starts_at=local_dt(9, 0),
            ends_at=local_dt(10, 0),
            fraction_consumed=1.25,
        ))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()
