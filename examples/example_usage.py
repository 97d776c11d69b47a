"""Example: the reconciliation and reporting core without Flask or a database.

Controllers are thin; the rules live in plain classes that can be used directly.
"""

from datetime import date

from src.site_attendance.site_attendance.attendance.memo_codec import ExternalMemoCodec
from src.site_attendance.site_attendance.attendance.model import DesiredRow, ExternalRow, RosterRow
from src.site_attendance.site_attendance.attendance.reconciler import EntryReconciler
from src.site_attendance.site_attendance.core.enums import ReportMode
from src.site_attendance.site_attendance.imports.resolver import resolve_import_row
from src.site_attendance.site_attendance.masters.model import Contractor
from src.site_attendance.site_attendance.reports.aggregator import Aggregator
from src.site_attendance.site_attendance.reports.model import ReportEntry


def main():
    codec = ExternalMemoCodec("ネクサス")
    day = date(2025, 1, 10)

    plan = EntryReconciler(codec).plan(
        "202501001",
        day,
        [
            DesiredRow(identity=RosterRow(worker_id="8a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c01", contractor_id="C0001")),
            DesiredRow(identity=ExternalRow(external_identity="yamada", display_name="Yamada", memo="cleanup")),
        ],
        previous=[],
    )
    print("upserts:", len(plan.upserts), "deletes:", len(plan.delete_ids))

    entries = [
        ReportEntry(entry_date=day, contractor_id="C0001", contractor_name="株式会社山田工業",
                    worker_id="8a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c01", worker_name="山田 太郎"),
        ReportEntry(entry_date=day, memo=codec.encode("Yamada", "cleanup")),
    ]
    report = Aggregator(codec).aggregate(entries, ReportMode.MONTH, month=(2025, 1))
    for total in report.contractor_totals:
        print(total.name, total.man_days)

    print(resolve_import_row("Acme Corp", {}, [Contractor(contractor_id="C9", name="Acme Corporation")]))


if __name__ == "__main__":
    main()
