"""Navigation helpers: learning mode derivation and switching."""

from aptivo.services.navigation.mode import (
    LearnRoute,
    ModeContext,
    ModeSwitch,
    derive_mode,
    parse_learn_route,
    resolve_mode_switch,
)

__all__ = [
    "LearnRoute",
    "ModeContext",
    "ModeSwitch",
    "derive_mode",
    "parse_learn_route",
    "resolve_mode_switch",
]
