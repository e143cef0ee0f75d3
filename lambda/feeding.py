"""
Feeding Handlers Module

List, add, undo and clear feeding records. Ids are epoch milliseconds unless
the caller supplies one, and double as the record's sort key.
"""

import re
import time

import storage

INTEGER_ID = re.compile(r'-?\d+', re.ASCII)
DECIMAL_ID = re.compile(r'-?\d+(\.\d+)?([eE][-+]?\d+)?', re.ASCII)


def parse_feeding_id(sort_key):
    """Turn a stored sort key back into a numeric id.

    Plain decimal integers become int, other decimal numbers (as written by
    str() of a float id) become float. Anything else is returned unchanged.
    """
    if not isinstance(sort_key, str):
        return sort_key
    if INTEGER_ID.fullmatch(sort_key):
        return int(sort_key)
    if DECIMAL_ID.fullmatch(sort_key):
        return float(sort_key)
    return sort_key


def normalize_timestamp(timestamp):
    """Default a missing timestamp to now; store any other value as a string."""
    if timestamp is None or timestamp == '':
        return storage.utc_now_iso()
    return timestamp if isinstance(timestamp, str) else str(timestamp)


def normalize_feeding_id(feeding_id):
    """Default a missing id to the current epoch milliseconds.

    Whole-number floats (e.g. 1700000000000.0) are narrowed to int so the sort
    key keeps its plain decimal form.
    """
    if not feeding_id:
        return int(time.time() * 1000)
    if isinstance(feeding_id, float) and feeding_id.is_integer():
        return int(feeding_id)
    return feeding_id


def get_feedings():
    """Get up to 50 feedings, newest first, as [{timestamp, id}]."""
    items = storage.query_feedings(limit=storage.MAX_FEEDINGS)
    return [
        {
            'timestamp': item.get('timestamp'),
            'id': parse_feeding_id(item['sk'])
        }
        for item in items
    ]


def add_feeding(body):
    """Record a feeding. Re-adding an existing id overwrites that record."""
    feeding_id = normalize_feeding_id(body.get('id'))
    timestamp = normalize_timestamp(body.get('timestamp'))

    storage.put_feeding(feeding_id, timestamp)

    return {'timestamp': timestamp, 'id': feeding_id}


def delete_feeding(feeding_id):
    """Delete one feeding (undo). Succeeds whether or not the id exists."""
    storage.delete_feeding(str(feeding_id))
    return {'deleted': feeding_id}


def clear_feedings():
    """Delete every feeding record."""
    storage.delete_all_feedings()
    return {'cleared': True}
