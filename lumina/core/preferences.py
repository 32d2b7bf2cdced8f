"""
FILE: lumina/core/preferences.py
PURPOSE: Small UI preferences kept on the durable store
EXPORTS:
  - ThemePreference: light/dark theme under "lumina-theme"
  - WheelOptions: decision wheel labels under "lumina-wheel-options"
  - FocusTimer: focus/break timer state under "zen-timer"
  - WheelOption, TimerState (dataclasses)
  - format_seconds(seconds) -> "MM:SS"
DEPENDENCIES:
  - lumina.core.storage (JsonStore, PersistentValue)
NOTES:
  - These never touch the database; each lives under its own store key
  - Stored documents use camelCase field names (isRunning)
  - The timer stores state only; counting down is up to the caller
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional

from .constants import (
    BREAK_DURATION,
    DEFAULT_WHEEL_OPTIONS,
    FOCUS_DURATION,
    THEME_DARK,
    THEME_KEY,
    THEME_LIGHT,
    THEMES,
    TIMER_BREAK,
    TIMER_FOCUS,
    TIMER_KEY,
    WHEEL_KEY,
)
from .exceptions import InvalidInputError, WheelOptionNotFoundError
from .storage import JsonStore, PersistentValue

logger = logging.getLogger(__name__)


def format_seconds(seconds: int) -> str:
    """Render a second count as MM:SS."""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes:02d}:{secs:02d}"


class ThemePreference:
    """Light or dark theme, light by default."""

    def __init__(self, store: JsonStore) -> None:
        self._value = PersistentValue(store, THEME_KEY, THEME_LIGHT)

    @property
    def theme(self) -> str:
        value = self._value.value
        return value if value in THEMES else THEME_LIGHT

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise InvalidInputError(
                f"Invalid theme '{theme}'. Valid values: {', '.join(THEMES)}"
            )
        self._value.set(theme)
        return theme

    def toggle(self) -> str:
        return self.set_theme(THEME_DARK if self.theme == THEME_LIGHT else THEME_LIGHT)

    def close(self) -> None:
        self._value.close()


@dataclass
class WheelOption:
    id: str
    label: str
    color: str

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label, "color": self.color}


def default_wheel_options() -> List[WheelOption]:
    return [WheelOption(*option) for option in DEFAULT_WHEEL_OPTIONS]


class WheelOptions:
    """
    The labelled segments of the decision wheel.

    Only labels are editable; ids and colors come from the defaults.
    """

    def __init__(self, store: JsonStore) -> None:
        self._value = PersistentValue(
            store, WHEEL_KEY, [o.to_dict() for o in default_wheel_options()]
        )

    @property
    def options(self) -> List[WheelOption]:
        stored = self._value.value
        try:
            return [
                WheelOption(id=o["id"], label=o["label"], color=o["color"])
                for o in stored
            ]
        except (KeyError, TypeError) as e:
            logger.warning("Ignoring malformed wheel options in store: %s", e)
            return default_wheel_options()

    def update_label(self, option_id: str, label: str) -> WheelOption:
        """
        Rename one segment.

        Raises:
            WheelOptionNotFoundError: If option_id is not on the wheel
            InvalidInputError: If label is empty
        """
        label = (label or "").strip()
        if not label:
            raise InvalidInputError("Wheel label cannot be empty")

        options = self.options
        if not any(o.id == option_id for o in options):
            raise WheelOptionNotFoundError(option_id)

        options = [replace(o, label=label) if o.id == option_id else o for o in options]
        self._value.set([o.to_dict() for o in options])
        return next(o for o in options if o.id == option_id)

    def reset(self) -> List[WheelOption]:
        options = default_wheel_options()
        self._value.set([o.to_dict() for o in options])
        return options

    def close(self) -> None:
        self._value.close()


@dataclass
class TimerState:
    duration: int = FOCUS_DURATION
    remaining: int = FOCUS_DURATION
    is_running: bool = False
    sessions: int = 0
    mode: str = TIMER_FOCUS

    @property
    def formatted(self) -> str:
        return format_seconds(self.remaining)

    def to_dict(self) -> dict:
        return {
            "duration": self.duration,
            "remaining": self.remaining,
            "isRunning": self.is_running,
            "sessions": self.sessions,
            "mode": self.mode,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TimerState":
        if not isinstance(data, dict):
            return cls()
        mode = data.get("mode", TIMER_FOCUS)
        if mode not in (TIMER_FOCUS, TIMER_BREAK):
            mode = TIMER_FOCUS
        try:
            return cls(
                duration=int(data.get("duration", FOCUS_DURATION)),
                remaining=int(data.get("remaining", FOCUS_DURATION)),
                is_running=bool(data.get("isRunning", False)),
                sessions=int(data.get("sessions", 0)),
                mode=mode,
            )
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring malformed timer state in store: %s", e)
            return cls()


def mode_duration(mode: str) -> int:
    return FOCUS_DURATION if mode == TIMER_FOCUS else BREAK_DURATION


class FocusTimer:
    """
    Focus/break timer state.

    A focus session is 25 minutes and a break is 5. Completing a focus
    session counts it and switches to a break; completing a break
    switches back to focus.
    """

    def __init__(self, store: JsonStore) -> None:
        self._value = PersistentValue(store, TIMER_KEY, TimerState().to_dict())

    @property
    def state(self) -> TimerState:
        return TimerState.from_dict(self._value.value)

    def _save(self, state: TimerState) -> TimerState:
        self._value.set(state.to_dict())
        return state

    def start(self) -> TimerState:
        return self._save(replace(self.state, is_running=True))

    def pause(self, remaining: Optional[int] = None) -> TimerState:
        """Stop the timer, keeping remaining (or what was stored)."""
        state = self.state
        if remaining is not None:
            state = replace(state, remaining=max(0, min(int(remaining), state.duration)))
        return self._save(replace(state, is_running=False))

    def reset(self) -> TimerState:
        """Back to the full length of the current mode, stopped."""
        state = self.state
        duration = mode_duration(state.mode)
        return self._save(
            replace(state, duration=duration, remaining=duration, is_running=False)
        )

    def skip(self) -> TimerState:
        """Switch mode without counting a session."""
        return self._save(self._switch(self.state, count_session=False))

    def complete_session(self) -> TimerState:
        """Finish the current session; a finished focus session is counted."""
        return self._save(self._switch(self.state, count_session=True))

    @staticmethod
    def _switch(state: TimerState, count_session: bool) -> TimerState:
        mode = TIMER_BREAK if state.mode == TIMER_FOCUS else TIMER_FOCUS
        sessions = state.sessions
        if count_session and state.mode == TIMER_FOCUS:
            sessions += 1
        duration = mode_duration(mode)
        return TimerState(
            duration=duration,
            remaining=duration,
            is_running=False,
            sessions=sessions,
            mode=mode,
        )

    def close(self) -> None:
        self._value.close()
