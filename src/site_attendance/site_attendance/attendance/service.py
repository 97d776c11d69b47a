from __future__ import annotations

import dataclasses
import logging
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..common.validators import require_non_empty
from ..core.exceptions import ValidationError
from ..guests.service import GuestAccessPolicy
from ..naming.normalizer import NameNormalizer, default_normalizer
from ..users.identity import Identity
from .memo_codec import ExternalMemoCodec
from .model import DayEntryView, DesiredRow, ExternalRow, ReconcilePlan, RosterRow
from .reconciler import EntryReconciler
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _text(payload: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def parse_desired_rows(
    items: Iterable[Mapping[str, Any]],
    *,
    normalizer: Optional[NameNormalizer] = None,
) -> List[DesiredRow]:
    """Build DesiredRow values from the JSON payload of the day form.

    A line with workerId is a roster row. A line with externalIdentity or
    externalName is an external row (identity defaults to the normalized name).
    Anything else is an empty placeholder.
    """
    normalizer = normalizer or default_normalizer
    rows: List[DesiredRow] = []
    for item in items or []:
        if not isinstance(item, Mapping):
            raise ValidationError("入力形式が不正です。")
        entry_id = _text(item, "entryId", "entry_id")
        work_type_id = _text(item, "workTypeId", "work_type_id")
        memo = _text(item, "memo")
        worker_id = _text(item, "workerId", "worker_id")
        external_name = _text(item, "externalName", "external_name")
        external_identity = _text(item, "externalIdentity", "external_identity")

        identity = None
        if worker_id:
            identity = RosterRow(worker_id=worker_id, contractor_id=_text(item, "contractorId", "contractor_id"))
        elif external_name or external_identity:
            display_name = external_name or external_identity
            identity = ExternalRow(
                external_identity=external_identity or normalizer.normalize(display_name),
                display_name=display_name,
                memo=memo,
            )
            memo = None
        rows.append(DesiredRow(identity=identity, entry_id=entry_id, work_type_id=work_type_id, memo=memo))
    return rows


class AttendanceService:
    """Use case: the day form of one site (load / save / clear)."""

    def __init__(
        self,
        entries: AttendanceRepository,
        access: GuestAccessPolicy,
        *,
        codec: ExternalMemoCodec,
        reconciler: Optional[EntryReconciler] = None,
        normalizer: Optional[NameNormalizer] = None,
    ):
        self._entries = entries
        self._access = access
        self._codec = codec
        self._reconciler = reconciler or EntryReconciler(codec)
        self._normalizer = normalizer or default_normalizer

    def save_day_entries(
        self,
        site_id: str,
        entry_date: date,
        rows: Sequence[DesiredRow],
        actor: Optional[Identity],
    ) -> ReconcilePlan:
        self._access.ensure_authenticated(actor)
        site_id = require_non_empty(site_id, "現場")
        if entry_date is None:
            raise ValidationError("日付を入力してください。")
        # malformed worker ids are rejected before any permission lookup or write
        self._reconciler.validate_worker_ids(rows)
        self._access.ensure_can_write(actor, site_id)

        previous = self._entries.list_day(site_id, entry_date)
        plan = self._reconciler.plan(site_id, entry_date, rows, previous, actor_id=actor.user_id)
        self._entries.apply_day_plan(plan)

        logger.info(
            "attendance saved site=%s date=%s deleted=%d upserted=%d unchanged=%d clear=%s",
            site_id, entry_date, len(plan.delete_ids), len(plan.upserts), len(plan.unchanged_ids), plan.clear_day,
        )
        return plan

    def load_day_entries(self, site_id: str, entry_date: date, actor: Optional[Identity]) -> List[DayEntryView]:
        site_id = require_non_empty(site_id, "現場")
        self._access.ensure_can_read(actor, site_id)
        views = []
        for view in self._entries.list_day_views(site_id, entry_date):
            decoded = self._codec.decode(view.entry.memo) if view.entry.is_external else None
            views.append(
                dataclasses.replace(
                    view,
                    contractor_name=(
                        self._normalizer.strip_legal_suffix(view.contractor_name) if view.contractor_name else None
                    ),
                    external_name=decoded.name if decoded else None,
                    free_memo=decoded.memo if decoded else (view.entry.memo or ""),
                )
            )
        return views

    def clear_day(self, site_id: str, entry_date: date, actor: Optional[Identity]) -> int:
        self._access.ensure_authenticated(actor)
        site_id = require_non_empty(site_id, "現場")
        self._access.ensure_can_write(actor, site_id)
        removed = self._entries.delete_day(site_id, entry_date)
        logger.info("attendance cleared site=%s date=%s removed=%d", site_id, entry_date, removed)
        return removed
