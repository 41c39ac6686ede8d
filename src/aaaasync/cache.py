#  aaaasync - AAAA record synchronizer for dynamic IPv6 hosts
#  Copyright (C) 2023 Dominick C. Pastore
#
#  This program is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  This program is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Per-run cache of each zone's AAAA records"""

import logging
from typing import Dict, List

from .directory import DirectoryClient, DnsRecord
from .exceptions import DirectoryUnavailable

log = logging.getLogger('aaaasync.reconciler')


class ZoneRecordCache:
    """Memoizes the AAAA record listing of each zone for the duration of one
    reconciliation pass, so that all domains sharing a zone cost a single
    listing call.

    A cache must belong to exactly one pass. It is never refreshed, so
    reusing it in a later pass would serve stale records.

    :param client: The :class:`~aaaasync.directory.DirectoryClient` to list
                   records with
    """

    def __init__(self, client: DirectoryClient):
        self._client = client
        self._records: Dict[str, List[DnsRecord]] = dict()
        self._failures: Dict[str, DirectoryUnavailable] = dict()

    def records_for(self, zone_id: str) -> List[DnsRecord]:
        """Get the AAAA records for a zone, listing them on first use

        :param zone_id: The zone to get records for
        :return: The zone's record snapshot (do not modify it)
        :raises DirectoryUnavailable: if listing failed, now or earlier in
                                      this pass
        """
        if zone_id in self._failures:
            log.debug("Zone %s already failed to list this run", zone_id)
            raise self._failures[zone_id]
        try:
            return self._records[zone_id]
        except KeyError:
            pass

        log.debug("Listing AAAA records for zone %s", zone_id)
        try:
            records = self._client.list_aaaa(zone_id)
        except DirectoryUnavailable as e:
            self._failures[zone_id] = e
            raise
        self._records[zone_id] = list(records)
        return self._records[zone_id]

    def record_created(self, zone_id: str, record: DnsRecord):
        """Add a record that was just created to the zone's snapshot. No
        effect if the zone has not been listed."""
        if zone_id in self._records:
            self._records[zone_id].append(record)

    def record_updated(self, zone_id: str, record: DnsRecord):
        """Replace the snapshot's copy of a record that was just updated"""
        try:
            records = self._records[zone_id]
        except KeyError:
            return
        for i, existing in enumerate(records):
            if existing.id == record.id:
                records[i] = record
                return
        records.append(record)
