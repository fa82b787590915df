"""
Learning mode derived from the navigation path.

The mode is never stored: it is a pure function of the current path.
Switching modes on a university "learn" route is expressed as a navigation
to the matching route; elsewhere it is a plain local state change.

Learn routes have a fixed shape:

    /student/learn/{university_id}/{understand|apply}/{item_id}

UNDERSTAND -> APPLY reuses the trailing item id for the apply route. That
id names study material, while apply routes expect a topic, so the target
may not resolve; the switch is best-effort.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from aptivo.enums.learning import LearningMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LearnRoute:
    university_id: str
    item_id: Optional[str] = None


@dataclass(frozen=True)
class ModeSwitch:
    """Result of a mode switch request."""

    mode: LearningMode
    navigate_to: Optional[str] = None


def derive_mode(path: str) -> LearningMode:
    if "/understand/" in path:
        return LearningMode.UNDERSTAND
    if "/apply/" in path:
        return LearningMode.APPLY
    return LearningMode.NEUTRAL


def parse_learn_route(path: str) -> Optional[LearnRoute]:
    """
    Extract the university and item from a learn route.

    Segments are counted after splitting on "/", so the leading empty
    segment is index 0: index 2 must be "learn", index 3 is the university
    and index 5 the item.
    """
    segments = path.split("/")
    if len(segments) < 4 or segments[2] != "learn" or not segments[3]:
        return None
    item_id = segments[5] if len(segments) > 5 and segments[5] else None
    return LearnRoute(university_id=segments[3], item_id=item_id)


def resolve_mode_switch(
    path: str,
    current: LearningMode,
    requested: LearningMode,
) -> ModeSwitch:
    """
    Decide how to carry out a switch from current to requested mode.

    Outside learn routes the mode simply changes. On a learn route a switch
    is always a navigation and the resulting mode is the one derived from
    the target path; a switch with no navigation rule leaves the mode as is.
    """
    if requested == current:
        return ModeSwitch(mode=current)

    route = parse_learn_route(path)
    if route is None:
        return ModeSwitch(mode=requested)

    target = None
    if current == LearningMode.UNDERSTAND and requested == LearningMode.APPLY:
        if route.item_id is not None:
            target = f"/student/learn/{route.university_id}/apply/{route.item_id}"
    elif (current == LearningMode.APPLY and requested == LearningMode.UNDERSTAND) or (
        requested == LearningMode.NEUTRAL
    ):
        target = f"/student/university/{route.university_id}"

    if target is None:
        return ModeSwitch(mode=current)
    return ModeSwitch(mode=derive_mode(target), navigate_to=target)


class ModeContext:
    """
    Current path and mode for one client.

    Navigations go through the injected navigator; the mode follows the
    path whenever it changes.
    """

    def __init__(self, path: str = "/", navigator: Optional[Callable[[str], None]] = None):
        self.navigator = navigator
        self.path = path
        self.mode = derive_mode(path)

    def navigate(self, path: str) -> LearningMode:
        self.path = path
        self.mode = derive_mode(path)
        return self.mode

    def set_mode(self, requested: LearningMode) -> ModeSwitch:
        switch = resolve_mode_switch(self.path, self.mode, requested)
        if switch.navigate_to is None:
            self.mode = switch.mode
            return switch

        logger.debug(f"Mode switch {self.mode.value} -> {requested.value} via {switch.navigate_to}")
        if self.navigator is not None:
            self.navigator(switch.navigate_to)
        self.navigate(switch.navigate_to)
        return switch
