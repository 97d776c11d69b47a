from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import SiteStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import Site
from .repository import SiteRepository

_COLUMNS = "site_id, site_name, status, start_date, end_date, is_deleted"


def _to_site(row: Dict[str, Any]) -> Site:
    try:
        status = SiteStatus(row.get("status"))
    except ValueError:
        status = SiteStatus.PRE_CONTRACT
    return Site(
        site_id=row["site_id"],
        site_name=row["site_name"],
        status=status,
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        is_deleted=as_bool(row.get("is_deleted")),
    )


class MySQLSiteRepository(SiteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self) -> Sequence[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sites WHERE is_deleted=0 ORDER BY site_name")
            return [_to_site(r) for r in fetchall(cur)]

    def get(self, site_id: str) -> Optional[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sites WHERE site_id=%s", (site_id,))
            row = fetchone(cur)
            return _to_site(row) if row else None

    def latest_id_with_prefix(self, prefix: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT site_id FROM sites WHERE site_id LIKE %s ORDER BY site_id DESC LIMIT 1",
                (f"{prefix}%",),
            )
            row = fetchone(cur)
            return row["site_id"] if row else None

    def create(self, site: Site) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sites(site_id, site_name, status, start_date, end_date, is_deleted)
                VALUES(%s,%s,%s,%s,%s,0)
                """,
                (site.site_id, site.site_name, site.status.value, site.start_date, site.end_date),
            )

    def update(
        self,
        site_id: str,
        *,
        site_name: str,
        start_date: Optional[date],
        end_date: Optional[date],
        status: SiteStatus,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE sites SET site_name=%s, start_date=%s, end_date=%s, status=%s
                WHERE site_id=%s
                """,
                (site_name, start_date, end_date, status.value, site_id),
            )
            return cur.rowcount > 0

    def soft_delete(self, site_id: str, *, deleted_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sites SET is_deleted=1, deleted_at=%s WHERE site_id=%s",
                (deleted_at, site_id),
            )
            return cur.rowcount > 0
