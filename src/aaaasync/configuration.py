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

"""aaaasync configuration parsing"""

import configparser
import dataclasses
import os.path
import pathlib
import sys

from typing import Dict, List, Optional, TextIO, Tuple, Union

if sys.version_info < (3, 10):
    from importlib_metadata import version
else:
    from importlib.metadata import version

from .exceptions import ConfigError


USER_AGENT = f"aaaasync/{version('aaaasync')}"

#: Name of the global config section
MAIN_SECTION = 'aaaasync'

DEFAULT_LOGDIR = '/var/log/aaaasync'
DEFAULT_INTERVAL = 300
DEFAULT_TIMEOUT = 10.0
DEFAULT_ENDPOINT = 'https://api.cloudflare.com/client/v4'

#: Sub-domain label standing for the base domain itself
ROOT_LABEL = '@'

#: Sub-domain label for wildcard records
WILDCARD_LABEL = '*'


@dataclasses.dataclass(frozen=True)
class DomainSpec:
    """A configured domain: a base name inside a provider zone and the
    sub-domain labels under it that should track the local addresses"""

    #: Domain name (from config section heading)
    name: str

    #: Provider-assigned zone identifier
    zone_id: str

    #: Base domain name, e.g. ``example.com``
    base_name: str

    #: Sub-domain labels in configured order. Each is a literal label,
    #: :data:`WILDCARD_LABEL`, or :data:`ROOT_LABEL`.
    labels: Tuple[str, ...]

    #: Interface whose address should be published, or ``None`` to use any
    #: qualifying interface
    iface: Optional[str] = None

    def fqdn_for(self, label: str) -> str:
        """Return the fully-qualified name for one of this domain's labels

        :param label: A sub-domain label
        :return: The base name for :data:`ROOT_LABEL`, otherwise
                 ``label.base_name``
        """
        if label == ROOT_LABEL:
            return self.base_name
        return f'{label}.{self.base_name}'

    @property
    def fqdns(self) -> List[str]:
        return [self.fqdn_for(label) for label in self.labels]


class Config:
    """aaaasync configuration data"""

    def __init__(self,
                 main: Dict[str, str],
                 domains: Dict[str, Dict[str, str]]):
        #: Dict containing global configuration (from the ``[aaaasync]``
        #: section)
        self._main: Dict[str, str] = main

        #: Raw domain configurations (from ``[domain.<name>]`` sections)
        self._domain_configs: Dict[str, Dict[str, str]] = domains

        #: Domains built from the raw configurations by :meth:`finalize`
        self._domains: List[DomainSpec] = []

        self._interval: int = DEFAULT_INTERVAL
        self._timeout: float = DEFAULT_TIMEOUT

        #: Whether the config has been finalized yet
        self._finalized = False

    def _check_finalized(self):
        """Raise an exception if the config is not finalized"""
        if not self._finalized:
            raise ConfigError("Tried to access config before it was finalized")

    @property
    def main(self) -> Dict[str, str]:
        self._check_finalized()
        return self._main

    @property
    def domains(self) -> List[DomainSpec]:
        self._check_finalized()
        return self._domains

    @property
    def api_token(self) -> str:
        return self.main['api_token']

    @property
    def logdir(self) -> str:
        return self.main['logdir']

    @property
    def endpoint(self) -> str:
        return self.main['endpoint']

    @property
    def interval(self) -> int:
        self._check_finalized()
        return self._interval

    @property
    def timeout(self) -> float:
        self._check_finalized()
        return self._timeout

    def _fill_defaults(self):
        """Fill in defaults if they are not yet set"""
        self._main.setdefault('logdir', DEFAULT_LOGDIR)
        self._main.setdefault('endpoint', DEFAULT_ENDPOINT)
        logdir = self._main['logdir']
        if logdir not in ('stderr', 'syslog') and not os.path.isabs(logdir):
            raise ConfigError("Config option 'logdir' cannot be a relative "
                              "path")

    def _validate_main(self):
        """Check the global options and convert the numeric ones

        :raises ConfigError: if an option is missing or invalid
        """
        if not self._main.get('api_token'):
            raise ConfigError("Config option 'api_token' is required")

        try:
            self._interval = int(self._main.get('interval',
                                                str(DEFAULT_INTERVAL)))
        except ValueError:
            raise ConfigError("Config option 'interval' must be an "
                              "integer > 0") from None
        if self._interval <= 0:
            raise ConfigError("Config option 'interval' must be an "
                              "integer > 0")

        try:
            self._timeout = float(self._main.get('timeout',
                                                 str(DEFAULT_TIMEOUT)))
        except ValueError:
            raise ConfigError("Config option 'timeout' must be a "
                              "number > 0") from None
        if self._timeout <= 0:
            raise ConfigError("Config option 'timeout' must be a number > 0")

    @staticmethod
    def _build_domain(name: str, config: Dict[str, str]) -> DomainSpec:
        """Build a :class:`DomainSpec` from one ``[domain.<name>]`` section

        :param name: Domain name (from config section heading)
        :param config: The options in that section
        :raises ConfigError: if a required option is missing or empty
        """
        zone_id = config.get('zone_id', '').strip()
        if zone_id == '':
            raise ConfigError(f"Domain {name} requires a 'zone_id'")

        base_name = config.get('base_name', '').strip().rstrip('.')
        if base_name == '':
            raise ConfigError(f"Domain {name} requires a 'base_name'")

        labels = tuple(config.get('names', '').split())
        if len(labels) == 0:
            raise ConfigError(f"Domain {name} requires at least one entry in "
                              "'names'")

        iface = config.get('iface', '').strip()
        if iface == '':
            iface = None

        return DomainSpec(name, zone_id, base_name, labels, iface)

    def _validate_and_build_domains(self) -> None:
        """Build the list of domains and make sure no FQDN is configured more
        than once

        :raises ConfigError: if the domain configuration is invalid
        """
        if len(self._domain_configs) == 0:
            raise ConfigError("At least one [domain.<name>] section is "
                              "required")

        seen: Dict[str, str] = dict()
        domains = []
        for name, config in self._domain_configs.items():
            domain = self._build_domain(name, config)
            for fqdn in domain.fqdns:
                key = fqdn.lower()
                if key in seen:
                    raise ConfigError(f"{fqdn} is listed more than once (in "
                                      f"domains {seen[key]} and {name})")
                seen[key] = name
            domains.append(domain)
        self._domains = domains

    def finalize(self):
        """Fill default values and validate the configuration. Must be called
        before the configuration is used (:class:`~aaaasync.SyncManager` does
        this itself).

        :raises ConfigError: if the configuration is invalid
        """
        if self._finalized:
            return

        self._fill_defaults()
        self._validate_main()
        self._validate_and_build_domains()

        self._finalized = True


def _new_parser() -> configparser.ConfigParser:
    # No interpolation: API tokens may legitimately contain '%'
    return configparser.ConfigParser(interpolation=None,
                                     inline_comment_prefixes=(';',))


def _process_config(config: configparser.ConfigParser) -> Config:
    """Process the given :class:`~configparser.ConfigParser` into a
    :class:`Config`

    :param config: The configuration to process
    :raises ConfigError: if the configuration is invalid
    :returns: the processed configuration (not yet finalized)
    """
    # Note: ConfigParser already handles catching duplicate sections and
    #   duplicate keys within a single file

    main: Dict[str, str] = dict()
    domains: Dict[str, Dict[str, str]] = dict()

    for section in config.sections():
        if section == MAIN_SECTION:
            main.update(config[section])
            continue

        kind, _, name = section.partition('.')
        if kind == 'domain' and name != '':
            domains[name] = dict(config[section])
        else:
            raise ConfigError("Config section %s is not a domain section"
                              % section)

    return Config(main, domains)


def overlay_paths(filename: Union[str, pathlib.Path],
                  env: Optional[str] = None) -> List[pathlib.Path]:
    """Get the optional override files for a config file, lowest priority
    first. For ``/etc/aaaasync.conf`` and env ``prod``, that is
    ``/etc/aaaasync.prod.conf`` followed by ``/etc/aaaasync.local.conf``.

    :param filename: The base config file
    :param env: Environment name, or ``None``
    :return: The override paths (which may or may not exist)
    """
    path = pathlib.Path(filename)
    paths = []
    if env:
        paths.append(path.with_name(f'{path.stem}.{env}{path.suffix}'))
    paths.append(path.with_name(f'{path.stem}.local{path.suffix}'))
    return paths


def _read_into(parser: configparser.ConfigParser, configfile: TextIO,
               source: Optional[str] = None):
    try:
        parser.read_file(configfile, source)
    except configparser.Error as e:
        raise ConfigError("Error in config file: %s" % e) from e


def read_config_from_path(filename: Union[str, pathlib.Path],
                          env: Optional[str] = None) -> Config:
    """Read configuration from the named file or :class:`~pathlib.Path`,
    then apply any override files that exist (see :func:`overlay_paths`).
    Later files override individual keys of earlier ones.

    :param filename: Filename or path to read from
    :param env: Optional environment name selecting an extra override file
    :raises ConfigError: if the config file cannot be read or is invalid
    :return: A :class:`Config` ready to be passed to
             :class:`~aaaasync.SyncManager`
    """
    parser = _new_parser()
    try:
        with open(filename, 'r') as f:
            _read_into(parser, f, str(filename))
    except OSError as e:
        raise ConfigError("Could not read config file %s: %s" %
                          (filename, e.strerror)) from e

    for overlay in overlay_paths(filename, env):
        try:
            with open(overlay, 'r') as f:
                _read_into(parser, f, str(overlay))
        except FileNotFoundError:
            continue
        except OSError as e:
            raise ConfigError("Could not read config file %s: %s" %
                              (overlay, e.strerror)) from e

    return _process_config(parser)


def read_config(configfile: TextIO) -> Config:
    """Read configuration in from the given file-like object

    :param configfile: Filelike object to read the config from
    :raises ConfigError: if the config file cannot be read or is invalid
    :return: A :class:`Config` ready to be passed to
             :class:`~aaaasync.SyncManager`
    """
    parser = _new_parser()
    try:
        _read_into(parser, configfile)
    except OSError as e:
        raise ConfigError("Could not read config: %s" % e.strerror) from e
    return _process_config(parser)
