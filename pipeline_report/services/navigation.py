"""
Navigation Stack for the Pipeline Report drill engine.

Ordered history of NavigationFrames. It is the only component that decides
where "back" goes: the previous view is whatever frame sits below the current
one, never something re-derived from which selections happen to be set.

Contract:
- push(frame): always appends, never merges or dedupes
- current(): top frame, or None when empty
- back(): pops the top frame and returns the new top, or ROOT when empty
- reset_to_root(): drops every frame
"""

import logging
from typing import Iterator, List, Optional, Tuple, Union

from pipeline_report.models.schemas import NavigationFrame


logger = logging.getLogger(__name__)


class RootSentinel:
    """The axis-selector (tabbed) view reached when the stack is empty."""

    _instance: Optional['RootSentinel'] = None

    def __new__(cls) -> 'RootSentinel':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ROOT"

    def __bool__(self) -> bool:
        return False


ROOT = RootSentinel()


class NavigationStack:
    """
    LIFO history of navigation frames.

    Example:
        stack = NavigationStack()
        stack.push(frame)
        stack.back()  # -> ROOT
    """

    def __init__(self, frames: Tuple[NavigationFrame, ...] = ()) -> None:
        self._frames: List[NavigationFrame] = list(frames)

    def push(self, frame: NavigationFrame) -> None:
        self._frames.append(frame)
        logger.debug(f"Pushed frame for {frame.axis.value} (stack size {len(self._frames)})")

    def current(self) -> Optional[NavigationFrame]:
        return self._frames[-1] if self._frames else None

    def back(self) -> Union[NavigationFrame, RootSentinel]:
        """
        Pop the current frame.

        Returns:
            The new top frame, or ROOT if the stack is now empty. Calling
            back() on an empty stack is a no-op that returns ROOT.
        """
        if self._frames:
            self._frames.pop()
        return self._frames[-1] if self._frames else ROOT

    def reset_to_root(self) -> None:
        self._frames.clear()

    def frames(self) -> Tuple[NavigationFrame, ...]:
        """Copy of the stack, bottom first."""
        return tuple(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[NavigationFrame]:
        return iter(tuple(self._frames))


__all__ = [
    'RootSentinel',
    'ROOT',
    'NavigationStack',
]
