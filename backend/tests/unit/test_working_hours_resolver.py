"""
Unit tests for WorkingHoursResolver.
"""

from datetime import time

from services.working_hours_resolver import WorkingHoursResolver
from shared_types import TimeWindow
from tests.conftest import local_dt
from tests.fakes import InMemoryCatalogStore, InMemoryExceptionStore


def _resolver():
    catalog = InMemoryCatalogStore()
    exceptions = InMemoryExceptionStore()
    catalog.add_professional(1, duty=[(0, time(9, 0), time(13, 0)), (0, time(14, 0), time(18, 0))])
    return WorkingHoursResolver(catalog, exceptions), catalog, exceptions


class TestProfessionalDuty:
    def test_window_inside_interval(self):
        resolver, _, _ = _resolver()

        assert resolver.is_within_duty(1, TimeWindow(local_dt(9, 0), local_dt(13, 0)))

    def test_window_spanning_break(self):
        resolver, _, _ = _resolver()

        assert not resolver.is_within_duty(1, TimeWindow(local_dt(12, 30), local_dt(14, 30)))

    def test_unknown_professional_has_no_duty(self):
        resolver, _, _ = _resolver()

        assert not resolver.is_within_duty(2, TimeWindow(local_dt(9, 0), local_dt(10, 0)))

    def test_professional_exception_blocks(self):
        resolver, _, exceptions = _resolver()
        exceptions.block_professional(1, local_dt(9, 30), local_dt(9, 45))

        assert not resolver.is_within_duty(1, TimeWindow(local_dt(9, 0), local_dt(10, 0)))
        assert resolver.is_within_duty(1, TimeWindow(local_dt(10, 0), local_dt(11, 0)))

    def test_other_professional_exception_ignored(self):
        resolver, _, exceptions = _resolver()
        exceptions.block_professional(2, local_dt(9, 0), local_dt(18, 0))

        assert resolver.is_within_duty(1, TimeWindow(local_dt(9, 0), local_dt(10, 0)))

    def test_clinic_exception_blocks_professional(self):
        resolver, _, exceptions = _resolver()
        exceptions.block_clinic(local_dt(9, 0), local_dt(18, 0))

        assert not resolver.is_within_duty(1, TimeWindow(local_dt(9, 0), local_dt(10, 0)))


class TestClinicHours:
    def test_within_business_hours(self):
        resolver, _, _ = _resolver()

        assert resolver.is_within_duty(None, TimeWindow(local_dt(8, 0), local_dt(21, 0)))

    def test_outside_business_hours(self):
        resolver, _, _ = _resolver()

        assert not resolver.is_within_duty(None, TimeWindow(local_dt(7, 30), local_dt(8, 30)))
        assert not resolver.is_within_duty(None, TimeWindow(local_dt(20, 30), local_dt(21, 30)))

    def test_clinic_exception(self):
        resolver, _, exceptions = _resolver()
        exceptions.block_clinic(local_dt(12, 0), local_dt(13, 0))

        assert not resolver.is_within_duty(None, TimeWindow(local_dt(11, 0), local_dt(12, 30)))
        assert resolver.is_within_duty(None, TimeWindow(local_dt(13, 0), local_dt(14, 0)))
