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

"""Reconciler: brings each configured domain's AAAA records in line with the
addresses currently assigned to the host"""

import dataclasses
import enum
import ipaddress
import logging
from typing import List, Optional, Sequence

from .addresses import AddressSource
from .cache import ZoneRecordCache
from .configuration import DomainSpec
from .directory import DirectoryClient, DnsRecord
from .exceptions import DirectoryUnavailable, RecordWriteFailed


class Outcome(enum.Enum):
    """What happened to a single sub-domain during a pass"""
    NOOP = 'unchanged'
    CREATED = 'created'
    UPDATED = 'updated'
    FAILED = 'failed'
    SKIPPED = 'skipped'


@dataclasses.dataclass(frozen=True)
class SubdomainResult:
    """The outcome for one sub-domain of one domain"""

    #: Domain name (from config section heading)
    domain: str

    #: FQDN of the sub-domain
    fqdn: str

    outcome: Outcome

    #: The address that was (or would have been) published
    address: Optional[ipaddress.IPv6Address] = None

    #: Error message for :attr:`Outcome.FAILED`
    reason: Optional[str] = None


def find_record(records: Sequence[DnsRecord],
                fqdn: str) -> Optional[DnsRecord]:
    """Find the first record with the given name

    :param records: Records to search
    :param fqdn: Name to look for
    :return: The record, or ``None`` if there is none
    """
    for record in records:
        if record.matches_name(fqdn):
            return record
    return None


class Reconciler:
    """Brings DNS in line with the local addresses, one domain at a time.

    Domains, and the labels within each domain, are processed strictly in
    configuration order. Nothing is kept between calls to :meth:`update`.
    Callers must not run :meth:`update` concurrently with itself.

    :param domains: The configured domains
    :param client: Directory client for the DNS provider
    :param address_source: Source of the local addresses
    """

    def __init__(self,
                 domains: Sequence[DomainSpec],
                 client: DirectoryClient,
                 address_source: AddressSource):
        #: Logger (see standard :mod:`logging` module)
        self.log: logging.Logger = logging.getLogger('aaaasync.reconciler')

        self.domains: List[DomainSpec] = list(domains)
        self.client: DirectoryClient = client
        self.address_source: AddressSource = address_source

    def update(self) -> List[SubdomainResult]:
        """Do one reconciliation pass over all domains.

        A failed create or update only fails that sub-domain. A zone whose
        records cannot be listed fails every domain in that zone, but the
        remaining zones are still processed; the error is raised once the
        pass is over. Any other error aborts the pass immediately.

        :return: The result for every sub-domain, in processing order
        :raises DirectoryUnavailable: if any zone could not be listed
        """
        self.log.info("Starting update of %d domain(s)", len(self.domains))
        cache = ZoneRecordCache(self.client)
        results: List[SubdomainResult] = []
        error: Optional[DirectoryUnavailable] = None

        for domain in self.domains:
            try:
                results += self._update_domain(domain, cache)
            except DirectoryUnavailable as e:
                self.log.error("Could not get records for zone %s. Skipping "
                               "domain %s this run: %s",
                               domain.zone_id, domain.name, e)
                results += [
                    SubdomainResult(domain.name, fqdn, Outcome.FAILED,
                                    reason=str(e))
                    for fqdn in domain.fqdns
                ]
                if error is None:
                    error = e
            except Exception as e:
                self.log.error("Update aborted while processing domain %s: "
                               "%s", domain.name, e)
                raise

        counts = {o: sum(r.outcome is o for r in results) for o in Outcome}
        self.log.info("Update finished: %d created, %d updated, %d unchanged, "
                      "%d failed, %d skipped",
                      counts[Outcome.CREATED], counts[Outcome.UPDATED],
                      counts[Outcome.NOOP], counts[Outcome.FAILED],
                      counts[Outcome.SKIPPED])

        if error is not None:
            raise error
        return results

    def _update_domain(self, domain: DomainSpec,
                       cache: ZoneRecordCache) -> List[SubdomainResult]:
        """Reconcile all labels of a single domain

        :raises DirectoryUnavailable: if the domain's zone cannot be listed
        """
        self.log.info("Processing domain %s (%s)", domain.name,
                      domain.base_name)

        # Lack of an address is not a reason to remove anything from DNS
        resolved = self.address_source.addresses_for(domain.iface)
        if resolved is None:
            if domain.iface is None:
                self.log.info("No interface has a qualifying IPv6 address. "
                              "Skipping domain %s", domain.name)
            else:
                self.log.info("Interface %s has no qualifying IPv6 address. "
                              "Skipping domain %s", domain.iface, domain.name)
            return [SubdomainResult(domain.name, fqdn, Outcome.SKIPPED)
                    for fqdn in domain.fqdns]

        address = resolved.target
        if len(resolved.addresses) > 1:
            self.log.debug("%d qualifying addresses found, using the first "
                           "(%s)", len(resolved.addresses), address.compressed)
        self.log.info("Current IPv6 address for domain %s: %s", domain.name,
                      address.compressed)

        records = cache.records_for(domain.zone_id)

        return [self._update_subdomain(domain, label, address, records, cache)
                for label in domain.labels]

    def _update_subdomain(self, domain: DomainSpec, label: str,
                          address: ipaddress.IPv6Address,
                          records: List[DnsRecord],
                          cache: ZoneRecordCache) -> SubdomainResult:
        """Create, update, or leave alone the record for one label"""
        fqdn = domain.fqdn_for(label)
        record = find_record(records, fqdn)

        if record is None:
            self.log.info("No AAAA record found for %s. Creating one.", fqdn)
            try:
                created = self.client.create_aaaa(domain.zone_id, fqdn,
                                                  address)
            except RecordWriteFailed as e:
                self.log.error("Failed to create AAAA record for %s: %s",
                               fqdn, e)
                return SubdomainResult(domain.name, fqdn, Outcome.FAILED,
                                       address, str(e))
            cache.record_created(domain.zone_id, created)
            self.log.info("Created AAAA record for %s with address %s",
                          fqdn, address.compressed)
            return SubdomainResult(domain.name, fqdn, Outcome.CREATED, address)

        if record.has_address(address):
            self.log.info("Address for %s unchanged (%s)", fqdn,
                          address.compressed)
            return SubdomainResult(domain.name, fqdn, Outcome.NOOP, address)

        self.log.info("Address for %s needs update: %s -> %s", fqdn,
                      record.content, address.compressed)
        try:
            updated = self.client.update_aaaa(domain.zone_id, record.id,
                                              record.name, address)
        except RecordWriteFailed as e:
            self.log.error("Failed to update AAAA record for %s: %s", fqdn, e)
            return SubdomainResult(domain.name, fqdn, Outcome.FAILED,
                                   address, str(e))
        cache.record_updated(domain.zone_id, updated)
        self.log.info("Updated AAAA record for %s", fqdn)
        return SubdomainResult(domain.name, fqdn, Outcome.UPDATED, address)
