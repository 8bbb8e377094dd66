"""
Error taxonomy for the drill-down engine.

Nothing in this subsystem is fatal to the process; every failure is scoped to
the current view. The classes below name the four failure kinds and carry the
context the engine needs to scope them.

- TransientFetchError: network/5xx failure from the data provider. No retry;
  the affected level shows an empty row set and an error flag, the navigation
  stack is left unchanged.
- IllegalTransitionError: a drill the metric registry or axis does not permit.
  Public transitions turn it into a logged no-op.
- EditFailure: the edit sink rejected an update. The displayed value reverts
  to the last server-confirmed value.
- StaleResponseError: raised by the request sequencer for a response that
  lost the race to a newer request. Discarded silently.
"""

from typing import Any, Optional


class PipelineReportError(Exception):
    """Base class for all engine errors."""


class TransientFetchError(PipelineReportError):
    """
    A data provider fetch failed.

    Attributes:
        axis: Axis value of the affected level, when known.
        depth: Depth of the affected level, when known.
    """

    def __init__(
        self,
        message: str,
        axis: Optional[Any] = None,
        depth: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.axis = axis
        self.depth = depth


class IllegalTransitionError(PipelineReportError):
    """A transition that is not permitted from the current view."""


class EditFailure(PipelineReportError):
    """
    The edit sink rejected a metric update.

    Attributes:
        entity_key: Key of the edited entity (customer code).
        metric: Metric key that was being edited.
    """

    def __init__(self, message: str, entity_key: str = "", metric: str = "") -> None:
        super().__init__(message)
        self.entity_key = entity_key
        self.metric = metric


class StaleResponseError(PipelineReportError):
    """
    A response arrived for a request that is no longer current.

    Attributes:
        version: Request version of the discarded response.
        current_version: Version that is current for the same axis.
        epoch: Session epoch the request was issued under.
        current_epoch: Session epoch at arrival time.
    """

    def __init__(
        self,
        version: int,
        current_version: Optional[int],
        epoch: int,
        current_epoch: int,
    ) -> None:
        super().__init__(
            f"Discarding response v{version} (current v{current_version}, "
            f"epoch {epoch} vs {current_epoch})"
        )
        self.version = version
        self.current_version = current_version
        self.epoch = epoch
        self.current_epoch = current_epoch
