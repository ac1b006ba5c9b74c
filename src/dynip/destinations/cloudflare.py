"""dynip destination for DNS records hosted at Cloudflare"""

import ipaddress
from json import JSONDecodeError
from typing import Any, Dict, List, Optional

import requests

from ..configuration import USER_AGENT
from ..exceptions import (ConfigError, RecordNotFoundError, UpdateError,
                          ZoneNotFoundError)
from .destination import BaseDestination

DEFAULT_ENDPOINT = 'https://api.cloudflare.com/client/v4'
DEFAULT_TIMEOUT = 30.0


class CloudflareAPI:
    """Thin wrapper around the parts of the Cloudflare v4 API that the
    :class:`CloudflareDestination` needs. Any object with the same three
    public methods can be used in its place.

    Authenticates with an API token if one is given, otherwise with the
    global API key and account email.

    :param api_token: Cloudflare API token
    :param api_key: Cloudflare global API key
    :param email: Email address of the account owning ``api_key``
    :param endpoint: Base URL of the API
    :param timeout: Seconds to wait for each request
    """

    def __init__(self, api_token: Optional[str] = None,
                 api_key: Optional[str] = None,
                 email: Optional[str] = None,
                 endpoint: str = DEFAULT_ENDPOINT,
                 timeout: float = DEFAULT_TIMEOUT):
        if api_token is not None:
            self._headers = {'Authorization': 'Bearer ' + api_token}
        elif api_key is not None and email is not None:
            self._headers = {'X-Auth-Key': api_key, 'X-Auth-Email': email}
        else:
            raise ValueError("Cloudflare API requires a token or a key and "
                             "email")
        self._headers['User-Agent'] = USER_AGENT
        self.endpoint: str = endpoint
        self.timeout: float = timeout

    def _api_request(self, method: str, api: str,
                     params: Optional[Dict[str, Any]] = None,
                     data: Optional[Dict[str, Any]] = None) -> Any:
        """Issue an API request and return the decoded response envelope (a
        dict with ``success``, ``errors`` and ``result`` members)

        :raises UpdateError: if the request failed at any level
        """
        url = self.endpoint + api
        try:
            r = requests.request(method, url, headers=self._headers,
                                 params=params, json=data,
                                 timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpdateError(f"Could not {method} {url}: {e}") from e
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise UpdateError(f"Received HTTP {r.status_code} when trying to "
                              f"{method} {url}: {r.text}") from e

        try:
            response = r.json()
        except (JSONDecodeError, ValueError) as e:
            raise UpdateError(f"Could not parse JSON response from {method} "
                              f"{url}: {r.text}") from e
        if not isinstance(response, dict) or not response.get('success'):
            raise UpdateError(f"Unsuccessful response from {method} {url}: "
                              f"{response}")
        return response

    def zone_id_by_name(self, name: str) -> Optional[str]:
        """Look up the ID of the named zone

        :return: The zone ID, or ``None`` if there is no such zone
        """
        response = self._api_request('GET', '/zones', params={'name': name})
        try:
            for zone in response['result']:
                if zone['name'] == name:
                    return zone['id']
        except (KeyError, TypeError) as e:
            raise UpdateError("Unknown response structure from /zones") from e
        return None

    def dns_records(self, zone_id: str, rec_type: str) -> List[Dict[str, Any]]:
        """List all records of the given type in a zone

        :param zone_id: The zone ID
        :param rec_type: ``'A'`` or ``'AAAA'``
        """
        api = f'/zones/{zone_id}/dns_records'
        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = self._api_request(
                'GET', api,
                params={'type': rec_type, 'page': page, 'per_page': 100},
            )
            try:
                records += response['result']
                total_pages = response.get('result_info', {}).get(
                    'total_pages', 1)
            except (KeyError, TypeError, AttributeError) as e:
                raise UpdateError("Unknown response structure from "
                                  f"{api}") from e
            if page >= total_pages:
                return records
            page += 1

    def update_dns_record(self, zone_id: str, record_id: str,
                          record: Dict[str, Any]) -> None:
        """Overwrite a record

        :param zone_id: The zone ID
        :param record_id: The record ID
        :param record: The new record, as returned by :meth:`dns_records`
                       with modifications
        """
        data = {key: record[key]
                for key in ('type', 'name', 'content', 'ttl', 'proxied')
                if key in record}
        self._api_request('PUT', f'/zones/{zone_id}/dns_records/{record_id}',
                          data=data)


class CloudflareDestination(BaseDestination):
    """dynip destination for DNS records hosted at Cloudflare. Rewrites one
    address record per configured zone.

    :param name: Name of the destination (from config section heading)
    :param config: Dict of config options for this destination
    :param api: API object to use instead of a :class:`CloudflareAPI` built
                from the config
    :param log: Logger to use

    :raises ConfigError: if the configuration is invalid
    """

    def __init__(self, name, config, api=None, log=None):
        super().__init__(name, log)

        # Zones and records to update, as a whitespace-separated list of
        # "zone:record" entries. The record part may be left off to update
        # the record at the zone apex.
        try:
            zones = config['zones']
        except KeyError:
            self.log.critical("'zones' config option is required")
            raise ConfigError(f"{self.name} destination requires 'zones' "
                              "config option") from None
        self.zones: Dict[str, Optional[str]] = self._parse_zones(zones)

        # Seconds to wait for each API request
        try:
            self.timeout = float(config.get('timeout', str(DEFAULT_TIMEOUT)))
        except ValueError:
            self.log.critical("'timeout' config option must be a number")
            raise ConfigError(f"'timeout' option for {self.name} destination "
                              "must be a number") from None

        if api is not None:
            self.api = api
            return

        api_token = config.get('api_token')
        api_key = config.get('api_key')
        email = config.get('email')
        if api_token is None and (api_key is None or email is None):
            self.log.critical("'api_token' or both 'api_key' and 'email' "
                              "config options are required")
            raise ConfigError(f"{self.name} destination requires 'api_token'"
                              " or 'api_key' and 'email' config options")
        self.api = CloudflareAPI(
            api_token=api_token,
            api_key=api_key,
            email=email,
            endpoint=config.get('endpoint', DEFAULT_ENDPOINT),
            timeout=self.timeout,
        )

    def _parse_zones(self, zones: str) -> Dict[str, Optional[str]]:
        result: Dict[str, Optional[str]] = dict()
        for entry in zones.split():
            zone, _, record = entry.partition(':')
            zone = zone.strip('.')
            if zone == '':
                self.log.critical("Zone with no name in 'zones' config option")
                raise ConfigError(f"'zones' option for {self.name} destination"
                                  " has a zone with no name")
            if zone in result:
                self.log.critical("Zone %s listed twice", zone)
                raise ConfigError(f"'zones' option for {self.name} destination"
                                  f" lists zone {zone} twice")
            result[zone] = record if record != '' else None
        if not result:
            self.log.critical("'zones' config option must list at least one "
                              "zone")
            raise ConfigError(f"'zones' option for {self.name} destination "
                              "must list at least one zone")
        return result

    @staticmethod
    def target_name(zone: str, record: Optional[str]) -> str:
        """The FQDN of the record to rewrite in a zone"""
        if record:
            return f"{record}.{zone}"
        return zone

    def update(self, address: str) -> None:
        try:
            rec_type = 'A' if ipaddress.ip_address(address).version == 4 \
                else 'AAAA'
        except ValueError:
            self.log.error("Not an IP address: %s", address)
            raise UpdateError(f"Destination {self.name} got an invalid "
                              f"address: {address}") from None

        for zone, record in self.zones.items():
            self._update_zone(zone, record, rec_type, address)
        self.log.info("Updated %d zone(s) to %s", len(self.zones), address)

    def _update_zone(self, zone: str, record: Optional[str],
                     rec_type: str, address: str) -> None:
        self.log.debug("Updating Cloudflare zone %s", zone)
        zone_id = self.api.zone_id_by_name(zone)
        if zone_id is None:
            self.log.error("Zone %s does not exist", zone)
            raise ZoneNotFoundError(f"Zone {zone} not found by destination "
                                    f"{self.name}")

        target = self.target_name(zone, record)
        for rec in self.api.dns_records(zone_id, rec_type):
            if rec.get('type') != rec_type or rec.get('name') != target:
                continue
            if rec.get('content') == address:
                self.log.debug("%s record %s already set to %s",
                               rec_type, target, address)
                return
            self.api.update_dns_record(zone_id, rec['id'],
                                       dict(rec, content=address))
            self.log.debug("Updated %s record %s to %s",
                           rec_type, target, address)
            return

        self.log.error("No %s record named %s in zone %s",
                       rec_type, target, zone)
        raise RecordNotFoundError(f"{rec_type} record {target} not found by "
                                  f"destination {self.name}")
