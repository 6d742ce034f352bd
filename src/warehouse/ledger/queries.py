"""Ledger lookups shared by the command handlers and the read side."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from warehouse.errors import NotFoundError
from warehouse.ledger.stock_entry import StockEntry, normalize

# Upper bound for a single ledger scan; the default query page is too small
# for a whole warehouse.
QUERY_LIMIT = 10_000


def _query():
    return current_domain.repository_for(StockEntry)._dao.query.limit(QUERY_LIMIT)


def get_entry(stock_entry_id):
    try:
        return current_domain.repository_for(StockEntry).get(str(stock_entry_id))
    except ObjectNotFoundError:
        raise NotFoundError({"stock_entry_id": [f"Stock entry {stock_entry_id} does not exist"]})


def all_entries():
    return _query().all().items


def find_by_barcode(barcode):
    return _query().filter(barcode=barcode).all().items


def find_by_location(location_code, shelf_number=None):
    rows = _query().filter(location_code=location_code).all().items
    if shelf_number is None:
        return rows
    return [row for row in rows if normalize(row.shelf_number) == normalize(shelf_number)]


def find_by_status(status):
    return _query().filter(status=status).all().items


def search_by_name_prefix(prefix):
    prefix = (prefix or "").strip().upper()
    return sorted(
        (row for row in all_entries() if row.name.startswith(prefix)),
        key=lambda row: (row.name, row.location_code, normalize(row.shelf_number)),
    )


def stock_at(barcode, location_code, shelf_number):
    """Rows holding ``barcode`` at a location/shelf, largest quantity first."""
    rows = [
        row
        for row in find_by_location(location_code, shelf_number)
        if normalize(row.barcode) == normalize(barcode)
    ]
    return sorted(rows, key=lambda row: row.quantity, reverse=True)


def find_merge_candidates(key):
    """Rows whose merge key equals ``key``."""
    _, _, _, location_code, shelf_number = key
    return [row for row in find_by_location(location_code, shelf_number or None) if row.merge_key == key]


def hidden_products(barcode):
    """Zero-quantity rows for ``barcode``; superseded once new stock arrives."""
    if not barcode:
        return []
    return [row for row in find_by_barcode(barcode) if row.quantity == 0]
