"""
Column types that keep dates and times as ISO text.

SQLite has no native date or time storage, and files written by earlier
versions of the desk hold values such as "10:00" that SQLAlchemy's own
SQLite Time type refuses to parse, so values are parsed leniently with
the fromisoformat constructors instead.
"""

from datetime import date, datetime, time

from sqlalchemy.types import String, TypeDecorator


class IsoDate(TypeDecorator):
    """A date stored as YYYY-MM-DD."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = date.fromisoformat(value)
        if isinstance(value, datetime):
            value = value.date()
        return value.isoformat()

    def process_result_value(self, value, dialect):
        if not value:
            return None
        return date.fromisoformat(value)


class IsoTime(TypeDecorator):
    """A time of day stored as HH:MM, or HH:MM:SS when it has seconds."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = time.fromisoformat(value)
        return value.isoformat(timespec="seconds" if value.second else "minutes")

    def process_result_value(self, value, dialect):
        if not value:
            return None
        return time.fromisoformat(value)


class IsoDateTime(TypeDecorator):
    """A naive local timestamp stored as 'YYYY-MM-DD HH:MM:SS.ffffff'."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return value.isoformat(sep=" ", timespec="microseconds")

    def process_result_value(self, value, dialect):
        if not value:
            return None
        return datetime.fromisoformat(value)
