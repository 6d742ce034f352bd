"""Read-time aggregation of ledger rows.

Duplicate rows for one merge key are expected; callers that display stock per
location read these summaries instead of raw rows.
"""

from warehouse.ledger.queries import all_entries


def location_summaries(rows=None):
    """Group rows by merge key: quantities summed, latest ``last_updated`` kept.

    Returns a list of dicts sorted by location, shelf and name.
    """
    rows = all_entries() if rows is None else rows
    groups = {}
    for row in rows:
        key = row.merge_key
        summary = groups.get(key)
        if summary is None:
            groups[key] = {
                "name": row.name,
                "asin": row.asin,
                "barcode": row.barcode,
                "location_code": row.location_code,
                "shelf_number": row.shelf_number,
                "quantity": row.quantity,
                "last_updated": row.last_updated,
                "stock_entry_ids": [str(row.id)],
            }
            continue
        summary["quantity"] += row.quantity
        summary["stock_entry_ids"].append(str(row.id))
        if row.last_updated and (summary["last_updated"] is None or row.last_updated > summary["last_updated"]):
            summary["last_updated"] = row.last_updated

    return [groups[key] for key in sorted(groups, key=lambda k: (k[3], k[4], k[0]))]


def total_quantity(barcode, rows=None):
    rows = all_entries() if rows is None else rows
    return sum(row.quantity for row in rows if row.barcode == barcode)
