from __future__ import annotations

from datetime import datetime, timezone

from bakery.domain.analytics.revenue import load_timezone
from bakery.export.documents import CSV_COLUMNS, order_document, orders_frame, orders_to_csv

from conftest import make_order


def test_csv_date_uses_display_timezone():
    # 15:00 UTC on 1 May is 2 May in Melbourne.
    order = make_order("o-1", created_at=datetime(2024, 5, 1, 15, 0, tzinfo=timezone.utc), total="12.5")
    frame = orders_frame([order])
    assert list(frame.columns) == CSV_COLUMNS
    assert frame.loc[0, "Date"] == "2024-05-02"
    assert frame.loc[0, "Total"] == "12.50"

    utc_csv = orders_to_csv([order], tz=timezone.utc)
    assert "2024-05-01" in utc_csv.splitlines()[1]

    local_csv = orders_to_csv([order], tz=load_timezone("Australia/Melbourne"))
    assert "2024-05-02" in local_csv.splitlines()[1]


def test_order_document_is_raw_order():
    document = order_document(make_order("o-1", total="10.00"))
    assert document["id"] == "o-1"
    assert document["order_number"] == "o-1"
    assert document["total_amount"] == "10.00"
