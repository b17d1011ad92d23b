from datetime import date
from typing import Any, Dict

import clickhouse_connect

from post_metrics.domain.errors import StoreQueryError
from shared.utils.concurrency import run_blocking

METRICS_TABLE = "post_metrics_daily"
REQUIRED_TABLES = (METRICS_TABLE, "analytics_events")

POST_METRICS_QUERY = f"""
SELECT
    sum(views) AS total_views,
    sum(sessions) AS total_sessions
FROM {METRICS_TABLE}
WHERE post_id = %(post_id)s
AND date >= %(start_date)s
AND date <= %(end_date)s
"""


class ClickHousePrimaryStore:
    """Exact per-post daily metrics kept in ClickHouse.

    The store counts as available only while every required table exists;
    that is checked on each call and never remembered.
    """

    def __init__(self, client: Any):
        self.client = client

    @classmethod
    def connect(
        cls, host: str, port: int, database: str, username: str, password: str
    ) -> "ClickHousePrimaryStore":
        client = clickhouse_connect.get_client(
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            interface="http",
        )
        return cls(client)

    def _tables_exist(self) -> bool:
        for table in REQUIRED_TABLES:
            if not int(self.client.command(f"EXISTS TABLE {table}")):
                return False
        return True

    async def tables_exist(self) -> bool:
        return await run_blocking(self._tables_exist)

    def _get_post_metrics(
        self, subject_id: int, start_date: date, end_date: date
    ) -> Dict[str, int]:
        try:
            result = self.client.query(
                POST_METRICS_QUERY,
                parameters={
                    "post_id": subject_id,
                    "start_date": start_date,
                    "end_date": end_date,
                },
            )
        except Exception as e:
            raise StoreQueryError(f"post metrics query failed: {e}") from e

        row = result.result_rows[0] if result.result_rows else (None, None)
        return {"views": int(row[0] or 0), "sessions": int(row[1] or 0)}

    async def get_post_metrics(
        self, subject_id: int, start_date: date, end_date: date
    ) -> Dict[str, int]:
        return await run_blocking(
            self._get_post_metrics, subject_id, start_date, end_date
        )

    def close(self) -> None:
        self.client.close()
