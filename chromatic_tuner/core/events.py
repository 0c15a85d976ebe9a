"""Event system for Chromatic Tuner components."""

from typing import Dict, List, Callable, Any, Optional
from enum import Enum, auto

from ..logger import get_logger
from ..note_types import Result

logger = get_logger(__name__)


class TunerEventType(Enum):
    """Event types emitted by the tuner."""

    RESULT_PUBLISHED = auto()
    NOTE_CHANGED = auto()


class EventEmitter:
    """Event emitter for Chromatic Tuner components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        Listener errors are logged and do not stop other listeners.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        if event_type not in self._listeners:
            return

        for callback in self._listeners[event_type]:
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}")

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class NoteChangeFilter:
    """Passes a Result through only when its note name differs from the last one.

    The tracker publishes every analysis; this filter is for callers that only
    care about note changes, such as a log of played notes.
    """

    def __init__(self, include_unknown: bool = False):
        """Initialize the filter.

        Args:
            include_unknown: If False, 'Unknown' results are never reported
        """
        self._include_unknown = include_unknown
        self._previous: Optional[str] = None

    @property
    def previous_note(self) -> Optional[str]:
        return self._previous

    def accept(self, result: Result) -> bool:
        """Return True if result starts a new note."""
        if not self._include_unknown and not result.is_known:
            return False
        if result.nearest_note_name == self._previous:
            return False
        self._previous = result.nearest_note_name
        return True

    def reset(self) -> None:
        self._previous = None


class TunerEvents:
    """Event emitter specifically for tuner results."""

    def __init__(self, note_filter: Optional[NoteChangeFilter] = None):
        """Initialize the tuner events.

        Args:
            note_filter: Filter deciding which results count as note changes
        """
        self._emitter = EventEmitter()
        self._filter = note_filter or NoteChangeFilter()

    def on_result(self, callback: Callable[[Result], None]) -> None:
        """Register a callback for every published result."""
        self._emitter.on(TunerEventType.RESULT_PUBLISHED, callback)

    def on_note_changed(self, callback: Callable[[Result], None]) -> None:
        """Register a callback for note changes.

        Args:
            callback: Function to call with the Result that introduced a new note
        """
        self._emitter.on(TunerEventType.NOTE_CHANGED, callback)

    def emit_result(self, result: Result) -> None:
        """Emit a published result and, if the note changed, a note change event."""
        self._emitter.emit(TunerEventType.RESULT_PUBLISHED, result)
        if self._filter.accept(result):
            self._emitter.emit(TunerEventType.NOTE_CHANGED, result)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
        self._filter.reset()
