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

"""Runs the reconciler at startup and then on a fixed interval"""

import logging
import threading
from typing import Optional

from .exceptions import ConfigError, NotStartedError
from .reconciler import Reconciler


class Scheduler:
    """Runs :meth:`Reconciler.update() <aaaasync.reconciler.Reconciler.update>`
    once immediately when started, then every ``interval`` seconds until
    stopped. On-demand runs (see :meth:`run_now`) restart the interval.

    Runs never overlap: scheduled, startup, and on-demand runs all take the
    same lock. A failed run is logged and the next one happens on schedule
    as usual.

    :param reconciler: The reconciler to run
    :param interval: Seconds between the end of one run and the start of the
                     next
    :raises ConfigError: if the interval is not positive
    """

    def __init__(self, reconciler: Reconciler, interval: int):
        self.log = logging.getLogger('aaaasync.scheduler')
        self.reconciler = reconciler

        if interval <= 0:
            self.log.critical("Update interval must be > 0")
            raise ConfigError("Update interval must be > 0")
        self.interval: int = interval

        self._lock: threading.RLock = threading.RLock()

        # Ensure can't run_now when not started, or start when already
        # started. Must lock to access.
        self._started: bool = False

        # Used for the next scheduled run. Must lock to access.
        self._timer: Optional[threading.Timer] = None
        self._seq: int = 0

        # For tests to join the thread doing the first run
        self.first_run: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start running updates. The first update happens right away in a
        background thread; this returns without waiting for it."""
        with self._lock:
            if self._started:
                self.log.warning("Not starting scheduler: Already started")
                return
            self._started = True

        self.log.info("Scheduler started. Updating every %d secs.",
                      self.interval)

        def first_run():
            try:
                self.run_now()
            except NotStartedError:
                self.log.info("Scheduler stopped before the first run")
        self.first_run = threading.Thread(target=first_run)
        self.first_run.start()

    def stop(self) -> None:
        """Cancel the next scheduled run. A run in progress is allowed to
        finish. Does not raise any exceptions, even if not started."""
        self.log.info("Stopping scheduler")
        with self._lock:
            if not self._started:
                self.log.warning("Not stopping scheduler: Already stopped")
                return

            self.log.debug("Canceling pending runs")
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._started = False

    def run_now(self) -> None:
        """Run an update immediately (waiting for any run in progress to
        finish first) and restart the interval timer.

        :raises NotStartedError: if the scheduler is not started
        """
        self.log.debug("On-demand run waiting for lock")
        with self._lock:
            if not self._started:
                self.log.error("Tried to run_now when not started")
                raise NotStartedError("Scheduler cannot run_now when not "
                                      "started")
            if self._timer is not None:
                self._timer.cancel()
            self._seq += 1
            self.log.debug("(run seq: %d)", self._seq)
            self._run_and_schedule(self._seq)

    def _scheduled_run(self, seq: int):
        """Do a scheduled run, verifying that no other run has happened
        meanwhile"""
        with self._lock:
            if not self._started:
                # Scheduler stopped before we could lock. Abort.
                self.log.debug("(run for seq %d aborted due to scheduler "
                               "stopping)", seq)
            elif self._seq != seq:
                # An on-demand run happened since this one was scheduled
                self.log.debug("(run for seq %d aborted due to newer run)",
                               seq)
            else:
                self.log.debug("(scheduled run for seq: %d)", seq)
                self._run_and_schedule(seq)

    def _run_and_schedule(self, seq: int):
        """Do a run, then schedule the next one. Do not call without holding
        the lock."""
        self.run_once()
        self.log.debug("(seq %d complete, next run in %d secs)",
                       seq, self.interval)
        self._timer = threading.Timer(self.interval, self._scheduled_run,
                                      args=(seq,))
        self._timer.start()

    def run_once(self) -> bool:
        """Run a single update, logging rather than raising any error

        :return: ``True`` if the update finished without a terminal error
        """
        with self._lock:
            self.log.info("Running scheduled DNS update")
            try:
                self.reconciler.update()
            except Exception:
                # The next run starts from scratch either way
                self.log.exception("DNS update failed")
                return False
            self.log.info("DNS update complete")
            return True
