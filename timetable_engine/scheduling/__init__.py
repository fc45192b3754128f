# timetable_engine/scheduling/__init__.py

from .initial_builder import InitialScheduleBuilder, room_order

__all__ = ["InitialScheduleBuilder", "room_order"]
