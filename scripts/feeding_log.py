#!/usr/bin/env python3
"""
Feeding Log - command-line client

Shows when bp was last fed, records a feeding, undoes a feeding recorded in
the last 30 seconds, or clears the whole history.

Usage:
    python feeding_log.py [status]
    python feeding_log.py feed
    python feeding_log.py undo
    python feeding_log.py clear [--yes]

Requirements:
    pip install requests python-dotenv
"""

import sys
import time
import argparse
from datetime import datetime, timezone
from typing import Optional

import requests

from tracker_api import TrackerApi, TrackerApiError

MAX_HISTORY = 50
UNDO_WINDOW_SECONDS = 30


def parse_timestamp(timestamp: str) -> datetime:
    """Parse an ISO-8601 timestamp (with or without a Z suffix) as aware UTC."""
    parsed = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(moment: datetime) -> str:
    """Format like JavaScript's Date.toISOString()."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def format_time_ago(moment: datetime, now: datetime) -> str:
    diff_seconds = (now - moment).total_seconds()
    minutes = int(diff_seconds // 60)
    hours = int(diff_seconds // 3600)
    days = int(diff_seconds // 86400)

    if minutes < 1:
        return 'Just now'
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    if hours < 24:
        return f"{hours} hour{'' if hours == 1 else 's'} ago"
    return f"{days} day{'' if days == 1 else 's'} ago"


def feeding_indicator(moment: datetime, now: datetime) -> str:
    """Status message based on hours since the last feeding."""
    hours_ago = (now - moment).total_seconds() / 3600
    if hours_ago < 8:
        return 'Recently fed'
    if hours_ago < 16:
        return 'May need feeding soon'
    return 'Time to feed bp!'


def format_date_time(moment: datetime) -> str:
    """e.g. 'Tue, Nov 14, 10:13 PM' in local time."""
    local = moment.astimezone()
    hour = local.hour % 12 or 12
    return f"{local:%a, %b} {local.day}, {hour}:{local:%M %p}"


class FeedingLog:
    """View-model for the feeding history.

    Owns the local history cache (newest first, capped at 50) and the id of
    the feeding that may still be undone. State only changes through the
    methods below; ``close()`` drops it.
    """

    def __init__(self, api: TrackerApi, clock=time.time):
        self.api = api
        self.clock = clock
        self.history = []
        self.last_feeding_id = None
        self.last_recorded_at = None

    def load(self) -> list:
        self.history = list(self.api.list_feedings() or [])[:MAX_HISTORY]
        return self.history

    def record(self) -> dict:
        now = self.clock()
        feeding = {
            'timestamp': to_iso(datetime.fromtimestamp(now, timezone.utc)),
            'id': int(now * 1000)
        }
        self.api.add_feeding(feeding['id'], feeding['timestamp'])

        self.history.insert(0, feeding)
        del self.history[MAX_HISTORY:]

        self.last_feeding_id = feeding['id']
        self.last_recorded_at = now
        return feeding

    def resume_undo(self) -> bool:
        """Make the newest loaded feeding undoable if it is recent enough.

        Lets a fresh process undo a feeding another process just recorded.
        """
        if not self.history:
            return False
        newest_id = self.history[0]['id']
        if not isinstance(newest_id, int):
            return False
        recorded_at = newest_id / 1000
        if self.clock() - recorded_at > UNDO_WINDOW_SECONDS:
            return False
        self.last_feeding_id = newest_id
        self.last_recorded_at = recorded_at
        return True

    def can_undo(self) -> bool:
        if self.last_feeding_id is None:
            return False
        if self.clock() - self.last_recorded_at > UNDO_WINDOW_SECONDS:
            self.last_feeding_id = None
            self.last_recorded_at = None
            return False
        return True

    def undo(self) -> Optional[int]:
        """Delete the last recorded feeding. Returns its id, or None if nothing can be undone."""
        if not self.can_undo():
            return None

        feeding_id = self.last_feeding_id
        self.api.delete_feeding(feeding_id)

        self.history = [item for item in self.history if item['id'] != feeding_id]
        self.last_feeding_id = None
        self.last_recorded_at = None
        return feeding_id

    def clear(self):
        self.api.clear_feedings()
        self.history = []
        self.last_feeding_id = None
        self.last_recorded_at = None

    def close(self):
        self.history = []
        self.last_feeding_id = None
        self.last_recorded_at = None

    def summary(self) -> str:
        if not self.history:
            return 'Last fed: Never recorded'

        now = datetime.fromtimestamp(self.clock(), timezone.utc)
        last_fed = parse_timestamp(self.history[0]['timestamp'])
        lines = [
            f"Last fed: {format_date_time(last_fed)} ({format_time_ago(last_fed, now)})",
            feeding_indicator(last_fed, now),
            '',
            'History:'
        ]
        for item in self.history:
            moment = parse_timestamp(item['timestamp'])
            lines.append(f"  {format_date_time(moment):<28} {format_time_ago(moment, now)}")
        return '\n'.join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Record and review bp feedings')
    parser.add_argument(
        'command',
        nargs='?',
        default='status',
        choices=['status', 'feed', 'undo', 'clear'],
        help='What to do (default: status)'
    )
    parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Skip the confirmation prompt for clear'
    )
    args = parser.parse_args(argv)

    try:
        log = FeedingLog(TrackerApi())
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        if args.command == 'feed':
            log.load()
            feeding = log.record()
            print(f"Recorded feeding at {format_date_time(parse_timestamp(feeding['timestamp']))}")
            print(f"Run 'feeding_log.py undo' within {UNDO_WINDOW_SECONDS}s to undo")

        elif args.command == 'undo':
            log.load()
            log.resume_undo()
            feeding_id = log.undo()
            if feeding_id is None:
                print(f"Nothing to undo (only feedings from the last {UNDO_WINDOW_SECONDS}s can be undone)")
                return 1
            print('Feeding undone')

        elif args.command == 'clear':
            if not args.yes:
                answer = input('Are you sure you want to clear all feeding history? [y/N] ')
                if answer.strip().lower() not in ('y', 'yes'):
                    print('Cancelled')
                    return 1
            log.clear()
            print('History cleared')
            return 0

        else:
            log.load()

        print(log.summary())
        return 0

    except (TrackerApiError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    except requests.RequestException as e:
        print(f"Error: could not reach the API: {e}")
        return 1
    finally:
        log.close()


if __name__ == '__main__':
    sys.exit(main())
