"""
Request Sequencer for the Pipeline Report drill engine.

Guards against stale-response races when the user drills faster than the
data provider answers. Every fetch carries the request version of the frame
it was issued for. A response is applied only if, when it arrives:

1. its version is still the current version for its axis, and
2. the session epoch has not moved since it was issued.

The epoch moves on global events (tenant change, search text change, date
range change, reset) and makes every in-flight request irrelevant at once.
Cancellation is logical only: the request still completes, its result is
thrown away.

Loading flags are keyed by (axis, depth) so loading one branch never grays
out an unrelated, already-rendered branch.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, FrozenSet, Tuple, TypeVar

from pipeline_report.core.errors import StaleResponseError
from pipeline_report.models.enums import Axis
from pipeline_report.models.schemas import NavigationFrame


logger = logging.getLogger(__name__)

T = TypeVar('T')

LoadingKey = Tuple[Axis, int]


@dataclass(frozen=True)
class RequestTicket:
    """Identity of one issued fetch."""
    axis: Axis
    depth: int
    version: int
    epoch: int


class RequestSequencer:
    """
    Versioned fetch issuer.

    Attributes:
        epoch: Current session epoch.
    """

    def __init__(self) -> None:
        self._version = 0
        self._epoch = 0
        self._current: Dict[Axis, int] = {}
        self._loading: Dict[LoadingKey, int] = {}

    @property
    def epoch(self) -> int:
        return self._epoch

    def next_version(self) -> int:
        """Return a new, strictly increasing request version."""
        self._version += 1
        return self._version

    def current_version(self, axis: Axis) -> int:
        return self._current.get(axis, 0)

    def supersede(self, axis: Axis) -> None:
        """Make every in-flight request for `axis` stale."""
        self._current[axis] = self.next_version()
        for key in [key for key in self._loading if key[0] == axis]:
            del self._loading[key]

    def bump_epoch(self) -> int:
        """Make every in-flight request stale, whatever its axis."""
        self._epoch += 1
        self._loading.clear()
        logger.debug(f"Session epoch advanced to {self._epoch}")
        return self._epoch

    def is_current(self, ticket: RequestTicket) -> bool:
        return (
            ticket.epoch == self._epoch
            and self._current.get(ticket.axis) == ticket.version
        )

    # =========================================================================
    # Loading Flags
    # =========================================================================

    def is_loading(self, axis: Axis, depth: int) -> bool:
        return (axis, depth) in self._loading

    def loading_flags(self) -> FrozenSet[LoadingKey]:
        return frozenset(self._loading)

    # =========================================================================
    # Issue
    # =========================================================================

    async def issue(
        self,
        frame: NavigationFrame,
        depth: int,
        fetch: Callable[[NavigationFrame], Awaitable[T]],
    ) -> T:
        """
        Run `fetch(frame)` as the current request for the frame's axis.

        Args:
            frame: Frame stamped with a version from next_version().
            depth: Depth used for the loading flag.
            fetch: Coroutine function performing the provider call.

        Returns:
            The fetch result, if it is still current on arrival.

        Raises:
            StaleResponseError: If a newer request or an epoch change
                superseded this one, whether it succeeded or failed.
            Exception: Whatever `fetch` raised, if the request is current.
        """
        ticket = RequestTicket(
            axis=frame.axis,
            depth=depth,
            version=frame.request_version,
            epoch=self._epoch,
        )
        self._current[ticket.axis] = ticket.version
        self._loading[(ticket.axis, depth)] = ticket.version

        try:
            result = await fetch(frame)
        except Exception as exc:
            if not self.is_current(ticket):
                raise self._stale(ticket) from exc
            raise
        finally:
            if self._loading.get((ticket.axis, depth)) == ticket.version:
                del self._loading[(ticket.axis, depth)]

        if not self.is_current(ticket):
            raise self._stale(ticket)
        return result

    def _stale(self, ticket: RequestTicket) -> StaleResponseError:
        return StaleResponseError(
            version=ticket.version,
            current_version=self._current.get(ticket.axis),
            epoch=ticket.epoch,
            current_epoch=self._epoch,
        )


__all__ = [
    'RequestTicket',
    'RequestSequencer',
]
