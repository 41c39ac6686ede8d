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

"""Directory client for the Cloudflare v4 API"""

import ipaddress
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..configuration import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT, USER_AGENT
from ..exceptions import DirectoryUnavailable, RecordWriteFailed
from .directory import RECORD_TYPE, DirectoryClient, DnsRecord


#: Page size for listings (the zones API caps it at 50)
PER_PAGE = 50


class CloudflareClient(DirectoryClient):
    """Directory client for the Cloudflare v4 API

    :param api_token: API token with DNS edit permission for the zones
    :param endpoint: Base URL of the API. Normally not needed, but can be
                     pointed at a test server.
    :param timeout: Timeout for each HTTP request, in seconds
    """

    def __init__(self, api_token: str,
                 endpoint: str = DEFAULT_ENDPOINT,
                 timeout: float = DEFAULT_TIMEOUT):
        super().__init__('cloudflare')
        self.api_token = api_token
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout

    def _api_request(self, method: str, api: str,
                     params: Optional[Dict[str, Any]] = None,
                     data: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """Issue a Cloudflare API request.

        :param method: HTTP method, e.g. ``'GET'`` or ``'PATCH'``
        :param api: Specific API to access, e.g. ``'/zones'``
        :param params: A dict of URL parameters (i.e. the key=values that go
                       after the question mark in the URL)
        :param data: A JSON-serializable dict to become the request body.

        :return: The decoded response envelope, or `None` if there was an
                 error (which will be logged)
        """
        headers = {'Authorization': "Bearer " + self.api_token,
                   'User-Agent': USER_AGENT}
        url = self.endpoint + api
        try:
            r = requests.request(method, url, headers=headers, params=params,
                                 json=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.log.error("Could not %s %s: %s", method, url, e)
            return None

        try:
            obj = r.json()
        except ValueError:
            self.log.error("Could not parse JSON response (HTTP %d) from "
                           "%s %s:\n%s", r.status_code, method, url, r.text)
            return None

        # Cloudflare reports errors in the body as well as the status code,
        # and the body is the more descriptive of the two
        if not isinstance(obj, dict) or not obj.get('success', False):
            errors = obj.get('errors') if isinstance(obj, dict) else obj
            self.log.error("Received HTTP %d when trying to %s %s: %s",
                           r.status_code, method, url, errors)
            return None
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError:
            self.log.error("Received HTTP %d when trying to %s %s:\n%s",
                           r.status_code, method, url, r.text)
            return None

        return obj

    def _get_all_pages(self, api: str,
                       params: Dict[str, Any]) -> Optional[List[Any]]:
        """Fetch every page of a paginated listing

        :return: The concatenated results, or ``None`` on error (logged)
        """
        results: List[Any] = []
        page = 1
        while True:
            page_params = dict(params, page=page, per_page=PER_PAGE)
            response = self._api_request('GET', api, params=page_params)
            if response is None:
                return None
            result = response.get('result')
            if not isinstance(result, list):
                self.log.error("Unknown response structure from %s:\n%s",
                               api, response)
                return None
            results += result

            total_pages = (response.get('result_info') or {}).get(
                'total_pages', 1)
            if page >= total_pages or len(result) == 0:
                return results
            page += 1

    def _parse_record(self, rec: Any) -> DnsRecord:
        """Convert a record object from the API into a :class:`DnsRecord`

        :raises KeyError: if a required key is missing
        :raises TypeError: if the object is not a dict
        """
        return DnsRecord(
            id=rec['id'],
            name=rec['name'],
            content=rec['content'],
            proxied=bool(rec.get('proxied', False)),
            type=rec.get('type', RECORD_TYPE),
        )

    def list_zones(self) -> List[Tuple[str, str]]:
        """Get every zone the API token can see

        :return: A list of ``(zone_name, zone_id)`` tuples
        :raises DirectoryUnavailable: if the zones could not be listed
        """
        response = self._get_all_pages('/zones', {})
        if response is None:
            raise DirectoryUnavailable("Could not fetch zones")
        try:
            return [(zone['name'], zone['id']) for zone in response]
        except (KeyError, TypeError):
            self.log.error("Unknown response structure from /zones:\n%s",
                           response)
            raise DirectoryUnavailable("Unknown response structure from "
                                       "/zones") from None

    def list_aaaa(self, zone_id: str) -> List[DnsRecord]:
        api = f'/zones/{zone_id}/dns_records'
        response = self._get_all_pages(api, {'type': RECORD_TYPE})
        if response is None:
            raise DirectoryUnavailable(f"Could not fetch {RECORD_TYPE} "
                                       f"records for zone '{zone_id}'")
        try:
            records = [self._parse_record(rec) for rec in response]
        except (KeyError, TypeError):
            self.log.error("Unknown response structure from %s:\n%s",
                           api, response)
            raise DirectoryUnavailable("Unknown response structure from "
                                       f"{api}") from None
        # The type filter is applied server side, but don't trust it blindly
        return [rec for rec in records if rec.type == RECORD_TYPE]

    def _write_record(self, method: str, api: str, name: str,
                      address: ipaddress.IPv6Address) -> DnsRecord:
        data = {
            'type': RECORD_TYPE,
            'name': name,
            'content': address.compressed,
            'proxied': True,
        }
        response = self._api_request(method, api, data=data)
        if response is None:
            raise RecordWriteFailed(f"Could not {method} {api}")
        try:
            return self._parse_record(response['result'])
        except (KeyError, TypeError):
            self.log.error("Unknown response structure from %s:\n%s",
                           api, response)
            raise RecordWriteFailed("Unknown response structure from "
                                    f"{api}") from None

    def create_aaaa(self, zone_id: str, name: str,
                    address: ipaddress.IPv6Address) -> DnsRecord:
        return self._write_record('POST', f'/zones/{zone_id}/dns_records',
                                  name, address)

    def update_aaaa(self, zone_id: str, record_id: str, name: str,
                    address: ipaddress.IPv6Address) -> DnsRecord:
        return self._write_record(
            'PATCH', f'/zones/{zone_id}/dns_records/{record_id}',
            name, address,
        )
