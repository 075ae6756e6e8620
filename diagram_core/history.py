"""
Linear undo/redo history.

The manager keeps two stacks of commands. A new action after an undo
discards the redo branch; the undo stack is capped and evicts its oldest
entry once the cap is exceeded.
"""

from __future__ import annotations

from typing import Optional

from .commands import Command
from .events import CommandEvent, DiagramModifiedEvent, EventDispatcher, EventType, HistoryState
from .logging import get_logger

logger = get_logger("history")

DEFAULT_MAX_HISTORY = 50


class CommandManager:
    """
    Executes commands and records them for undo/redo.

    Every state change emits ``history:changed`` (with a ``HistoryState``)
    and ``diagram:modified``, so toolbars and "unsaved changes" indicators
    can follow along without polling.
    """

    def __init__(
        self,
        events: Optional[EventDispatcher] = None,
        max_history: int = DEFAULT_MAX_HISTORY,
        diagram_id: Optional[str] = None,
    ):
        self._events = events
        self._undo_stack: list[Command] = []
        self._redo_stack: list[Command] = []
        self._max_history = max_history
        self.diagram_id = diagram_id

    # --- Properties ---

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def undo_stack(self) -> tuple[Command, ...]:
        """Snapshot of the undo stack, oldest first."""
        return tuple(self._undo_stack)

    @property
    def redo_stack(self) -> tuple[Command, ...]:
        """Snapshot of the redo stack; the last entry is redone next."""
        return tuple(self._redo_stack)

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    def get_state(self) -> HistoryState:
        return HistoryState(
            can_undo=self.can_undo(),
            can_redo=self.can_redo(),
            undo_description=self._undo_stack[-1].description if self._undo_stack else None,
            redo_description=self._redo_stack[-1].description if self._redo_stack else None,
            length=len(self._undo_stack),
        )

    # --- Operations ---

    def execute(self, command: Command) -> None:
        """
        Run a command and push it onto the undo stack.

        A failing command is logged and re-raised; it never reaches either
        stack.
        """
        try:
            command.execute()
        except Exception:
            logger.exception("Error executing command: %s", command.description)
            raise

        self._push(command)
        logger.debug("Executed %s", command.description)
        self._emit(EventType.COMMAND_EXECUTED, CommandEvent(command.description, command.kind))
        self._notify()

    def add_to_history(self, command: Command) -> None:
        """
        Record a command whose effect is already applied.

        Used when a gesture mutated the model live (drag, resize) and only
        needs an undo record.
        """
        self._push(command)
        logger.debug("Recorded %s", command.description)
        self._notify()

    def undo(self) -> bool:
        """Undo the last command. Returns False if nothing was undone."""
        if not self._undo_stack:
            return False

        command = self._undo_stack.pop()
        try:
            command.undo()
        except Exception:
            logger.exception("Error undoing command: %s", command.description)
            self._undo_stack.append(command)
            return False

        self._redo_stack.append(command)
        logger.debug("Undid %s", command.description)
        self._emit(EventType.COMMAND_UNDONE, CommandEvent(command.description, command.kind))
        self._notify()
        return True

    def redo(self) -> bool:
        """Redo the last undone command. Returns False if nothing was redone."""
        if not self._redo_stack:
            return False

        command = self._redo_stack.pop()
        try:
            command.execute()
        except Exception:
            logger.exception("Error redoing command: %s", command.description)
            self._redo_stack.append(command)
            return False

        self._undo_stack.append(command)
        logger.debug("Redid %s", command.description)
        self._emit(EventType.COMMAND_REDONE, CommandEvent(command.description, command.kind))
        self._notify()
        return True

    def clear(self) -> None:
        """Forget all history (e.g. after loading another diagram)."""
        self._undo_stack = []
        self._redo_stack = []
        self._emit(EventType.HISTORY_CHANGED, self.get_state())

    # --- Internals ---

    def _push(self, command: Command) -> None:
        self._undo_stack.append(command)
        self._redo_stack = []
        while len(self._undo_stack) > self._max_history:
            evicted = self._undo_stack.pop(0)
            logger.debug("History full, dropped %s", evicted.description)

    def _notify(self) -> None:
        self._emit(EventType.HISTORY_CHANGED, self.get_state())
        self._emit(EventType.DIAGRAM_MODIFIED, DiagramModifiedEvent(self.diagram_id))

    def _emit(self, event_type: EventType, payload) -> None:
        if self._events is not None:
            self._events.emit(event_type, payload)
