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

import socket
import threading
from typing import List

import pytest

import doubles


class VirtualTimer:
    """Drop-in for :class:`threading.Timer` that uses a virtual clock
    instead of wall time and isn't actually threaded. This allows for
    deterministic behavior: the function runs immediately when
    :meth:`start` or :meth:`advance` is called if the virtual time has
    exceeded the interval time."""

    def __init__(self, interval, function, args=None, kwargs=None):
        super().__init__()
        self._function = function
        self._args = args if args is not None else []
        self._kwargs = kwargs if kwargs is not None else {}
        self._interval = interval
        self._lock = threading.Lock()
        self._complete = False
        self._elapsed = 0.0

        self._started = False
        self.daemon = False

    def cancel(self):
        """Stop the timer if it hasn't finished yet."""
        with self._lock:
            self._elapsed = self._interval
            self._complete = True

    def advance(self, seconds):
        """Advance the virtual clock"""
        with self._lock:
            self._elapsed += seconds
            self._try_run()

    @property
    def remaining(self):
        """Number of seconds remaining, or None if timer is complete"""
        with self._lock:
            if self._complete:
                return None
            return max(self._interval - self._elapsed, 0)

    def _try_run(self):
        if self._complete:
            return
        if self._elapsed < self._interval:
            return
        self._complete = True
        self._function(*self._args, **self._kwargs)

    def start(self):
        with self._lock:
            if self._started:
                raise RuntimeError("Already started")
            self._started = True
            self._try_run()


@pytest.fixture
def advance():
    """Patch threading.Timer to give us total control of time"""

    class Advancer:
        def __init__(self):
            self.timers: List[VirtualTimer] = []

        def new_timer(self, *args, **kwargs):
            """Create a new virtual timer under the control of this Advancer"""
            timer = VirtualTimer(*args, **kwargs)
            self.timers.append(timer)
            return timer

        def by_minimum_or(self, seconds: float):
            """Advance virtual time just long enough for at least one timer
            to expire or by the given number of seconds, whichever is less, and
            return the number of seconds leftover"""
            remaining_times = [seconds] + [t.remaining for t in self.timers
                                           if t.remaining is not None]
            to_advance = min(remaining_times)
            # Make copy of self.timers so newly created timers aren't advanced
            for timer in list(self.timers):
                timer.advance(to_advance)
            return seconds - to_advance

        def by(self, seconds: float):
            """Advance virtual time by the given number of seconds"""
            while seconds > 0:
                seconds = self.by_minimum_or(seconds)

        def count_running(self):
            """Count the number of timers that have not completed"""
            return sum(t.remaining is not None for t in self.timers)

    advancer = Advancer()

    orig_timer = threading.Timer
    threading.Timer = advancer.new_timer

    yield advancer

    threading.Timer = orig_timer


@pytest.fixture
def interfaces():
    """Fixture creating a fake interface lister with one global address on
    eth0 plus the usual loopback and link-local noise"""
    return doubles.FakeInterfaces([
        ('lo', socket.AF_INET, '127.0.0.1'),
        ('lo', socket.AF_INET6, '::1'),
        ('eth0', socket.AF_INET, '192.0.2.10'),
        ('eth0', socket.AF_INET6, 'fe80::1%eth0'),
        ('eth0', socket.AF_INET6, '2001:db8::1'),
    ])


@pytest.fixture
def client():
    """Fixture creating an empty fake directory client"""
    return doubles.FakeDirectoryClient()


@pytest.fixture
def domain_factory():
    """Fixture creating a factory for :class:`~aaaasync.DomainSpec` with
    sensible defaults"""
    class DomainFactory:
        def __init__(self):
            self._count = 0

        def __call__(self, *labels, zone_id='zone1', base_name='example.com',
                     iface=None):
            self._count += 1
            if not labels:
                labels = ('www',)
            return doubles.make_domain(f'domain_{self._count}', zone_id,
                                       base_name, labels, iface)
    return DomainFactory()
