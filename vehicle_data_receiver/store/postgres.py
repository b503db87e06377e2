"""
PostgreSQL Failed Event Store
Persists dead-lettered telemetry events using async psycopg
"""

from typing import Any, List, Optional, Sequence, Tuple

import psycopg
import structlog
from psycopg import AsyncConnection
from psycopg.rows import dict_row

from vehicle_data_receiver.models.failed_event import FailedEvent, QuarantineReason
from vehicle_data_receiver.store.base import BaseFailedEventStore, NotFoundError, StorageError

logger = structlog.get_logger(__name__)

TABLE_NAME = "failed_event"

SCHEMA_STATEMENTS = (
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        id                BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        "timestamp"       BIGINT NOT NULL,
        attempted_at      BIGINT NOT NULL,
        event_data        TEXT NOT NULL,
        handler_name      VARCHAR(191) NOT NULL,
        imei              VARCHAR(20) NOT NULL,
        attempt_count     INTEGER NOT NULL DEFAULT 1,
        quarantined_at    BIGINT NULL,
        quarantine_reason VARCHAR(32) NULL,
        CONSTRAINT failed_event_attempted_after_origin CHECK (attempted_at >= "timestamp")
    )
    """,
    f'CREATE INDEX IF NOT EXISTS idx_failed_event_timestamp ON {TABLE_NAME} ("timestamp")',
)

_COLUMNS = (
    'id, "timestamp", attempted_at, event_data, handler_name, imei, '
    "attempt_count, quarantined_at, quarantine_reason"
)


class PostgresFailedEventStore(BaseFailedEventStore):
    """
    Failed event store backed by a PostgreSQL table

    The connection runs in autocommit mode: every operation is a single
    INSERT, UPDATE, DELETE or SELECT statement and therefore atomic on its
    own. psycopg serializes concurrent use of one connection, so live
    ingestion workers and the retry coordinator may share a store.
    """

    def __init__(self, connection_url: str, connect_timeout: float = 10.0):
        """
        Initialize Postgres store

        Args:
            connection_url: Postgres connection URL
            connect_timeout: Connection timeout in seconds
        """
        super().__init__()
        self.connection_url = connection_url
        self.connect_timeout = connect_timeout
        self._conn: Optional[AsyncConnection] = None

    async def connect(self) -> None:
        """
        Establish async connection to Postgres

        Raises:
            StorageError: If connection fails
        """
        try:
            self._conn = await AsyncConnection.connect(
                self.connection_url,
                row_factory=dict_row,
                autocommit=True,
                connect_timeout=int(self.connect_timeout),
            )
            self.is_connected = True
            logger.info("Connected to Postgres failed event store")

        except psycopg.Error as e:
            raise StorageError(f"Failed to connect to Postgres: {e}") from e

    async def ensure_connected(self) -> None:
        """Reconnect if the connection was closed by the server"""
        if self._conn is not None and self._conn.closed:
            logger.warning("Postgres connection was closed, reconnecting")
            self._conn = None
            self.is_connected = False
        await super().ensure_connected()

    async def disconnect(self) -> None:
        """Close Postgres connection"""
        if self._conn:
            await self._conn.close()
            self._conn = None
            self.is_connected = False
            logger.info("Disconnected from Postgres failed event store")

    async def create_schema(self) -> None:
        """
        Create the failed_event table and its timestamp index if missing

        Raises:
            StorageError: If the DDL fails
        """
        for statement in SCHEMA_STATEMENTS:
            await self._execute(statement)
        logger.info("Failed event schema ensured", table=TABLE_NAME)

    async def record(
        self,
        event_data: str,
        handler_name: str,
        imei: str,
        timestamp: int,
        attempted_at: int,
    ) -> int:
        # A device clock ahead of ours would otherwise violate attempted_at >= timestamp
        attempted_at = max(attempted_at, timestamp)

        row = await self._fetchone(
            f"""
            INSERT INTO {TABLE_NAME} ("timestamp", attempted_at, imei, handler_name, event_data)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
            """,
            (timestamp, attempted_at, imei, handler_name, event_data),
        )
        if row is None:
            raise StorageError("Insert into failed_event returned no id")

        failed_event_id = int(row["id"])
        logger.debug(
            "Failed event persisted",
            failed_event_id=failed_event_id,
            handler_name=handler_name,
            imei=imei,
        )
        return failed_event_id

    async def list_pending(
        self,
        limit: Optional[int] = None,
        before: Optional[int] = None,
        *,
        after: Optional[Tuple[int, int]] = None,
        imei: Optional[str] = None,
    ) -> List[FailedEvent]:
        if limit is not None and limit <= 0:
            return []

        conditions = ["quarantined_at IS NULL"]
        params: List[Any] = []

        if before is not None:
            conditions.append('"timestamp" < %s')
            params.append(before)

        if after is not None:
            conditions.append('("timestamp", id) > (%s, %s)')
            params.extend(after)

        if imei is not None:
            conditions.append("imei = %s")
            params.append(imei)

        query = f"""
            SELECT {_COLUMNS}
            FROM {TABLE_NAME}
            WHERE {' AND '.join(conditions)}
            ORDER BY "timestamp" ASC, id ASC
            """
        if limit is not None:
            query += "LIMIT %s"
            params.append(limit)

        rows = await self._fetchall(query, params)
        return [FailedEvent.from_row(row) for row in rows]

    async def get(self, failed_event_id: int) -> Optional[FailedEvent]:
        row = await self._fetchone(
            f"SELECT {_COLUMNS} FROM {TABLE_NAME} WHERE id = %s",
            (failed_event_id,),
        )
        return FailedEvent.from_row(row) if row else None

    async def mark_retried(self, failed_event_id: int, attempted_at: int) -> None:
        logger.debug("Updating attempted_at for failed event", failed_event_id=failed_event_id)

        rowcount = await self._execute(
            f"""
            UPDATE {TABLE_NAME}
            SET attempted_at = GREATEST(%s, "timestamp"),
                attempt_count = attempt_count + 1
            WHERE id = %s
            """,
            (attempted_at, failed_event_id),
        )
        if rowcount == 0:
            raise NotFoundError(failed_event_id)

    async def remove(self, failed_event_id: int) -> None:
        logger.debug("Deleting failed event", failed_event_id=failed_event_id)

        await self._execute(f"DELETE FROM {TABLE_NAME} WHERE id = %s", (failed_event_id,))

    async def quarantine(
        self,
        failed_event_id: int,
        reason: QuarantineReason,
        quarantined_at: int,
    ) -> None:
        rowcount = await self._execute(
            f"""
            UPDATE {TABLE_NAME}
            SET quarantined_at = %s, quarantine_reason = %s
            WHERE id = %s
            """,
            (quarantined_at, QuarantineReason(reason).value, failed_event_id),
        )
        if rowcount == 0:
            raise NotFoundError(failed_event_id)

        logger.warning(
            "Failed event quarantined",
            failed_event_id=failed_event_id,
            reason=QuarantineReason(reason).value,
        )

    async def release(self, failed_event_id: int) -> None:
        rowcount = await self._execute(
            f"""
            UPDATE {TABLE_NAME}
            SET quarantined_at = NULL, quarantine_reason = NULL
            WHERE id = %s
            """,
            (failed_event_id,),
        )
        if rowcount == 0:
            raise NotFoundError(failed_event_id)

        logger.info("Failed event released from quarantine", failed_event_id=failed_event_id)

    async def list_quarantined(self, limit: int) -> List[FailedEvent]:
        rows = await self._fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM {TABLE_NAME}
            WHERE quarantined_at IS NOT NULL
            ORDER BY "timestamp" ASC, id ASC
            LIMIT %s
            """,
            (limit,),
        )
        return [FailedEvent.from_row(row) for row in rows]

    async def count_pending(self) -> int:
        row = await self._fetchone(
            f"SELECT COUNT(*) AS total FROM {TABLE_NAME} WHERE quarantined_at IS NULL"
        )
        return int(row["total"]) if row else 0

    async def count_quarantined(self) -> int:
        row = await self._fetchone(
            f"SELECT COUNT(*) AS total FROM {TABLE_NAME} WHERE quarantined_at IS NOT NULL"
        )
        return int(row["total"]) if row else 0

    async def next_failed_imei(self) -> Optional[str]:
        row = await self._fetchone(
            f"""
            SELECT imei FROM {TABLE_NAME}
            WHERE quarantined_at IS NULL
            ORDER BY attempted_at DESC
            LIMIT 1
            """
        )
        return row["imei"] if row else None

    async def health_check(self) -> bool:
        """
        Check Postgres health

        Returns:
            True if healthy, False otherwise
        """
        try:
            if not self._conn:
                return False

            async with self._conn.cursor() as cur:
                await cur.execute("SELECT 1")
                return True

        except psycopg.Error as e:
            logger.warning("Postgres health check failed", error=str(e))
            return False

    def _connection(self) -> AsyncConnection:
        if self._conn is None or self._conn.closed:
            self.is_connected = False
            raise StorageError("Not connected to Postgres")
        return self._conn

    async def _execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        conn = self._connection()
        try:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return cur.rowcount
        except psycopg.Error as e:
            raise StorageError(f"Postgres statement failed: {e}") from e

    async def _fetchone(self, query: str, params: Optional[Sequence[Any]] = None):
        conn = self._connection()
        try:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Postgres query failed: {e}") from e

    async def _fetchall(self, query: str, params: Optional[Sequence[Any]] = None):
        conn = self._connection()
        try:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()
        except psycopg.Error as e:
            raise StorageError(f"Postgres query failed: {e}") from e
