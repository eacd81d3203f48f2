from app.models.timetable import CohortTimetable, PersonalTimetable  # noqa: F401
