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

"""All aaaasync exceptions"""


class AAAASyncException(Exception):
    """Base class for all aaaasync exceptions"""


class SetupError(AAAASyncException):
    """Base class for aaaasync exceptions that happen during startup"""


class ConfigError(SetupError):
    """Raised when the configuration is malformed or has other errors"""


class NotStartedError(AAAASyncException):
    """Raised when requesting an on-demand run before starting the
    scheduler"""


class AddressUnavailable(AAAASyncException):
    """Raised when no qualifying IPv6 address could be found for an interface
    (or for the host as a whole)"""


class DirectoryUnavailable(AAAASyncException):
    """Directory clients should raise when the AAAA records of a zone cannot
    be listed. Domains in that zone are abandoned for the current run."""


class RecordWriteFailed(AAAASyncException):
    """Directory clients should raise when creating or updating a record
    fails. Only the affected sub-domain is marked as failed."""
