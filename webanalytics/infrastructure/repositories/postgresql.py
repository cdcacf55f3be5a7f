# ==============================================================================
# PostgreSQL Store Implementations
# ==============================================================================
"""
PostgreSQL implementations of the store interfaces.

Provides:
- PostgreSQLEventStore: append-only events with retention purge
- PostgreSQLGoalStore: goal CRUD (soft delete)
- PostgreSQLConversionStore: insert-only conversions guarded by
  UNIQUE (goal_id, session_id, event_id)
- PostgreSQLStatStore: daily rollups upserted on (website_id, date)
- PostgreSQLWebsiteStore: tracked websites

Connection errors are retried (light retry) and then surfaced as
TransientStoreError.
"""

import functools
import json
import logging
from contextlib import contextmanager
from datetime import date, datetime

import psycopg2
import psycopg2.errors
from psycopg2.extras import RealDictCursor

from webanalytics.base.repositories import (
    ConversionStore,
    EventStore,
    GoalStore,
    StatStore,
    WebsiteStore,
)
from webanalytics.core.errors import StorageConflict, TransientStoreError
from webanalytics.core.models import (
    Conversion,
    ConversionDayStat,
    DailyStat,
    Event,
    Goal,
    Website,
)
from webanalytics.utils.config import Settings, get_settings
from webanalytics.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_light

logger = logging.getLogger(__name__)

# Connection timeout
CONNECT_TIMEOUT = 10


def _add_connect_timeout(conn_string: str) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={CONNECT_TIMEOUT}"
    return conn_string


def _range_clause(
    column: str, start: datetime | date | None, end: datetime | date | None
) -> tuple[str, list]:
    """SQL fragment restricting column to [start, end]; either bound optional."""
    sql = ""
    params: list = []
    if start is not None:
        sql += f" AND {column} >= %s"
        params.append(start)
    if end is not None:
        sql += f" AND {column} <= %s"
        params.append(end)
    return sql, params


def _store_call(func):
    """Retry connection errors, then raise them as TransientStoreError."""
    retried = retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)(func)

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return retried(self, *args, **kwargs)
        except POSTGRES_RETRY_EXCEPTIONS as e:
            raise TransientStoreError(
                f"{type(self).__name__}.{func.__name__} failed: {e}"
            ) from e

    return wrapper


class PostgreSQLStore:
    """
    Connection handling shared by the PostgreSQL stores.

    Each store owns one connection. A connection found closed (for example
    after a network error) is reopened before the next statement.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the store.

        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._conn: psycopg2.extensions.connection | None = None
        self._schema = self._settings.postgres.schema_name

    @property
    def schema(self) -> str:
        """Get the database schema name."""
        return self._schema

    def connect(self) -> None:
        """Establish connection to PostgreSQL."""
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        self._conn = psycopg2.connect(conn_string)
        logger.info("%s connected (schema=%s)", type(self).__name__, self._schema)

    def rollback(self) -> None:
        """Rollback current transaction."""
        if self._conn and not self._conn.closed:
            try:
                self._conn.rollback()
            except psycopg2.Error as e:
                logger.debug("Rollback failed: %s", e)

    def reconnect(self) -> None:
        """Attempt to reconnect to the database."""
        if self._conn and not self._conn.closed:
            try:
                self._conn.close()
            except psycopg2.Error as e:
                logger.debug("Error closing stale connection: %s", e)
        self._conn = None
        self.connect()
        logger.info("%s reconnected", type(self).__name__)

    def close(self) -> None:
        """Close connection and release resources."""
        if self._conn:
            try:
                self._conn.close()
                logger.info("%s connection closed", type(self).__name__)
            except psycopg2.Error as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._conn = None

    @contextmanager
    def _cursor(self):
        """Cursor returning dict rows, committed on success and rolled back on error."""
        if self._conn is None:
            raise RuntimeError("PostgreSQL connection not established. Call connect() first.")
        if self._conn.closed:
            self.reconnect()

        try:
            with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            self._conn.commit()
        except psycopg2.Error:
            self.rollback()
            raise


class PostgreSQLEventStore(PostgreSQLStore, EventStore):
    """PostgreSQL implementation of EventStore."""

    @_store_call
    def save(self, event: Event) -> bool:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._schema}.events (
                    id, website_id, event_type, url, referrer, session_id, user_id,
                    duration_seconds, device_type, device_os, device_browser,
                    custom_data, user_agent, ip_address, viewport_width,
                    viewport_height, event_time
                ) VALUES (
                    %(id)s, %(website_id)s, %(event_type)s, %(url)s, %(referrer)s,
                    %(session_id)s, %(user_id)s, %(duration_seconds)s, %(device_type)s,
                    %(device_os)s, %(device_browser)s, %(custom_data)s::jsonb,
                    %(user_agent)s, %(ip_address)s, %(viewport_width)s,
                    %(viewport_height)s, %(event_time)s
                )
                ON CONFLICT (id) DO NOTHING
                """,
                event.to_db_record(),
            )
            inserted = cur.rowcount == 1
        if inserted:
            logger.debug("Inserted event %s", event.id)
        else:
            logger.debug("Event %s already stored", event.id)
        return inserted

    @_store_call
    def get(self, event_id: str) -> Event | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT * FROM {self._schema}.events WHERE id = %s", (event_id,))
            row = cur.fetchone()
        return Event.from_db_record(row) if row else None

    @_store_call
    def find_between(self, website_id: str, start: datetime, end: datetime) -> list[Event]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT * FROM {self._schema}.events
                WHERE website_id = %s AND event_time >= %s AND event_time <= %s
                ORDER BY event_time, id
                """,
                (website_id, start, end),
            )
            rows = cur.fetchall()
        return [Event.from_db_record(row) for row in rows]

    @_store_call
    def websites_with_events(self, start: datetime, end: datetime) -> list[str]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT DISTINCT website_id FROM {self._schema}.events
                WHERE event_time >= %s AND event_time <= %s
                ORDER BY website_id
                """,
                (start, end),
            )
            return [row["website_id"] for row in cur.fetchall()]

    @_store_call
    def count_sessions(
        self, website_id: str, start: datetime | None = None, end: datetime | None = None
    ) -> int:
        clause, params = _range_clause("event_time", start, end)
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT COUNT(DISTINCT session_id) AS sessions FROM {self._schema}.events
                WHERE website_id = %s{clause}
                """,
                [website_id, *params],
            )
            return cur.fetchone()["sessions"]

    @_store_call
    def purge_before(self, cutoff: datetime) -> int:
        with self._cursor() as cur:
            cur.execute(
                f"DELETE FROM {self._schema}.events WHERE event_time < %s",
                (cutoff,),
            )
            deleted = cur.rowcount
        logger.info("Purged %d events older than %s", deleted, cutoff.isoformat())
        return deleted


class PostgreSQLGoalStore(PostgreSQLStore, GoalStore):
    """PostgreSQL implementation of GoalStore. Deleted goals keep their row."""

    _COLUMNS = (
        "website_id, owner_id, name, description, goal_type, conditions, value, "
        "is_active, created_at, updated_at, deleted_at"
    )

    @staticmethod
    def _params(goal: Goal) -> dict:
        return {
            "id": goal.id,
            "website_id": goal.website_id,
            "owner_id": goal.owner_id,
            "name": goal.name,
            "description": goal.description,
            "goal_type": goal.goal_type.value,
            "conditions": json.dumps(goal.conditions),
            "value": goal.value,
            "is_active": goal.is_active,
            "created_at": goal.created_at,
            "updated_at": goal.updated_at,
            "deleted_at": goal.deleted_at,
        }

    @_store_call
    def add(self, goal: Goal) -> Goal:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._schema}.goals ({self._COLUMNS})
                VALUES (
                    %(website_id)s, %(owner_id)s, %(name)s, %(description)s, %(goal_type)s,
                    %(conditions)s::jsonb, %(value)s, %(is_active)s, %(created_at)s,
                    %(updated_at)s, %(deleted_at)s
                )
                RETURNING id
                """,
                self._params(goal),
            )
            goal_id = cur.fetchone()["id"]
        logger.info("Created goal %d for website %s", goal_id, goal.website_id)
        return goal.model_copy(update={"id": goal_id})

    @_store_call
    def get(self, goal_id: int) -> Goal | None:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT * FROM {self._schema}.goals WHERE id = %s AND deleted_at IS NULL",
                (goal_id,),
            )
            row = cur.fetchone()
        return Goal.model_validate(dict(row)) if row else None

    @_store_call
    def update(self, goal: Goal) -> Goal:
        with self._cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._schema}.goals SET
                    name = %(name)s,
                    description = %(description)s,
                    goal_type = %(goal_type)s,
                    conditions = %(conditions)s::jsonb,
                    value = %(value)s,
                    is_active = %(is_active)s,
                    updated_at = %(updated_at)s,
                    deleted_at = %(deleted_at)s
                WHERE id = %(id)s
                """,
                self._params(goal),
            )
        return goal

    @_store_call
    def list_for_website(self, website_id: str) -> list[Goal]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT * FROM {self._schema}.goals
                WHERE website_id = %s AND deleted_at IS NULL
                ORDER BY created_at, id
                """,
                (website_id,),
            )
            rows = cur.fetchall()
        return [Goal.model_validate(dict(row)) for row in rows]

    @_store_call
    def find_active(self, website_id: str) -> list[Goal]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT * FROM {self._schema}.goals
                WHERE website_id = %s AND is_active AND deleted_at IS NULL
                ORDER BY created_at, id
                """,
                (website_id,),
            )
            rows = cur.fetchall()
        return [Goal.model_validate(dict(row)) for row in rows]

    @_store_call
    def websites_with_active_goals(self) -> list[str]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT DISTINCT website_id FROM {self._schema}.goals
                WHERE is_active AND deleted_at IS NULL
                ORDER BY website_id
                """
            )
            return [row["website_id"] for row in cur.fetchall()]


class PostgreSQLConversionStore(PostgreSQLStore, ConversionStore):
    """
    PostgreSQL implementation of ConversionStore.

    The goal_conversions table carries UNIQUE (goal_id, session_id, event_id).
    An insert that violates it raises StorageConflict.
    """

    @_store_call
    def exists(self, goal_id: int, session_id: str, event_id: str) -> bool:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT 1 FROM {self._schema}.goal_conversions
                WHERE goal_id = %s AND session_id = %s AND event_id = %s
                """,
                (goal_id, session_id, event_id),
            )
            return cur.fetchone() is not None

    @_store_call
    def insert(self, conversion: Conversion) -> Conversion:
        try:
            with self._cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO {self._schema}.goal_conversions (
                        goal_id, website_id, session_id, event_id, user_agent,
                        ip_address, referrer, page_url, conversion_value,
                        custom_data, converted_at
                    ) VALUES (
                        %(goal_id)s, %(website_id)s, %(session_id)s, %(event_id)s,
                        %(user_agent)s, %(ip_address)s, %(referrer)s, %(page_url)s,
                        %(conversion_value)s, %(custom_data)s::jsonb, %(converted_at)s
                    )
                    RETURNING id
                    """,
                    conversion.to_db_record(),
                )
                conversion_id = cur.fetchone()["id"]
        except psycopg2.errors.UniqueViolation as e:
            raise StorageConflict(
                "Conversion already recorded for goal %s, session %s, event %s"
                % conversion.key
            ) from e
        return conversion.model_copy(update={"id": conversion_id})

    @staticmethod
    def _from_row(row: dict) -> Conversion:
        data = dict(row)
        data["value"] = data.pop("conversion_value")
        return Conversion.model_validate(data)

    @_store_call
    def find(
        self,
        goal_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Conversion]:
        clause, params = _range_clause("converted_at", start, end)
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT * FROM {self._schema}.goal_conversions
                WHERE goal_id = %s{clause}
                ORDER BY converted_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                [goal_id, *params, limit, offset],
            )
            rows = cur.fetchall()
        return [self._from_row(row) for row in rows]

    @_store_call
    def daily_summary(
        self, goal_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[ConversionDayStat]:
        clause, params = _range_clause("converted_at", start, end)
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT
                    (converted_at AT TIME ZONE 'UTC')::date AS conversion_date,
                    COUNT(*) AS total_conversions,
                    COALESCE(SUM(conversion_value), 0) AS total_value,
                    COALESCE(AVG(conversion_value), 0) AS avg_value,
                    COUNT(DISTINCT session_id) AS unique_sessions
                FROM {self._schema}.goal_conversions
                WHERE goal_id = %s{clause}
                GROUP BY 1
                ORDER BY 1 DESC
                """,
                [goal_id, *params],
            )
            rows = cur.fetchall()
        return [
            ConversionDayStat(
                conversion_date=row["conversion_date"],
                total_conversions=row["total_conversions"],
                total_value=float(row["total_value"]),
                avg_value=float(row["avg_value"]),
                unique_sessions=row["unique_sessions"],
            )
            for row in rows
        ]

    @_store_call
    def totals(
        self, goal_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> tuple[int, int, float]:
        clause, params = _range_clause("converted_at", start, end)
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT
                    COUNT(*) AS conversions,
                    COUNT(DISTINCT session_id) AS sessions,
                    COALESCE(SUM(conversion_value), 0) AS total_value
                FROM {self._schema}.goal_conversions
                WHERE goal_id = %s{clause}
                """,
                [goal_id, *params],
            )
            row = cur.fetchone()
        return row["conversions"], row["sessions"], float(row["total_value"])


class PostgreSQLStatStore(PostgreSQLStore, StatStore):
    """PostgreSQL implementation of StatStore using ON CONFLICT ... DO UPDATE."""

    @_store_call
    def upsert(self, stat: DailyStat) -> None:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._schema}.daily_stats (
                    website_id, date, total_visits, unique_visitors, page_views,
                    avg_duration, bounce_rate, top_page, top_referrer,
                    device_stats, browser_stats
                ) VALUES (
                    %(website_id)s, %(date)s, %(total_visits)s, %(unique_visitors)s,
                    %(page_views)s, %(avg_duration)s, %(bounce_rate)s, %(top_page)s,
                    %(top_referrer)s, %(device_stats)s::jsonb, %(browser_stats)s::jsonb
                )
                ON CONFLICT (website_id, date) DO UPDATE SET
                    total_visits = EXCLUDED.total_visits,
                    unique_visitors = EXCLUDED.unique_visitors,
                    page_views = EXCLUDED.page_views,
                    avg_duration = EXCLUDED.avg_duration,
                    bounce_rate = EXCLUDED.bounce_rate,
                    top_page = EXCLUDED.top_page,
                    top_referrer = EXCLUDED.top_referrer,
                    device_stats = EXCLUDED.device_stats,
                    browser_stats = EXCLUDED.browser_stats,
                    updated_at = NOW()
                """,
                stat.to_db_record(),
            )
        logger.debug("Upserted daily stat %s %s", stat.website_id, stat.date)

    @_store_call
    def get(self, website_id: str, day: date) -> DailyStat | None:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT * FROM {self._schema}.daily_stats WHERE website_id = %s AND date = %s",
                (website_id, day),
            )
            row = cur.fetchone()
        return DailyStat.model_validate(dict(row)) if row else None

    @_store_call
    def find_range(self, website_id: str, start: date, end: date) -> list[DailyStat]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT * FROM {self._schema}.daily_stats
                WHERE website_id = %s AND date >= %s AND date <= %s
                ORDER BY date
                """,
                (website_id, start, end),
            )
            rows = cur.fetchall()
        return [DailyStat.model_validate(dict(row)) for row in rows]


class PostgreSQLWebsiteStore(PostgreSQLStore, WebsiteStore):
    """PostgreSQL implementation of WebsiteStore."""

    @_store_call
    def add(self, website: Website) -> None:
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._schema}.websites (id, owner_id, name, domain, created_at)
                VALUES (%(id)s, %(owner_id)s, %(name)s, %(domain)s, %(created_at)s)
                ON CONFLICT (id) DO NOTHING
                """,
                website.model_dump(),
            )

    @_store_call
    def get(self, website_id: str) -> Website | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT * FROM {self._schema}.websites WHERE id = %s", (website_id,))
            row = cur.fetchone()
        return Website.model_validate(dict(row)) if row else None


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if PostgreSQL is reachable.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    settings = settings or get_settings()
    try:
        conn = psycopg2.connect(_add_connect_timeout(settings.postgres.connection_string))
        conn.close()
        return True
    except psycopg2.Error:
        return False
