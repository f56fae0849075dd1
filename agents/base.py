"""
Capability Provider Base

Every provider ("agent") exposes one uniform contract:

    await agent.execute(action, params) -> StepResult

Providers that report bulk sub-progress override `supports_progress()`
and call `report_progress()`; the executor installs the callback right
before `execute` and removes it right after.

The progress callback lives in a ContextVar, so two steps running
concurrently on the same provider instance each see their own callback.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from schemas.plan import AgentType
from schemas.progress import BulkProgressUpdate, UICommand
from schemas.result import StepResult

ProgressCallback = Callable[[BulkProgressUpdate], None]

# Set by the executor around each step; collects UI commands emitted by that step
_ui_command_sink: ContextVar[Optional[List[UICommand]]] = ContextVar("ui_command_sink", default=None)


@contextmanager
def capture_ui_commands() -> Iterator[List[UICommand]]:
    """Collect every UI command emitted in the current context."""
    commands: List[UICommand] = []
    token = _ui_command_sink.set(commands)
    try:
        yield commands
    finally:
        _ui_command_sink.reset(token)


class BaseAgent(ABC):
    agent_type: AgentType

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id
        self._progress_callback: ContextVar[Optional[ProgressCallback]] = ContextVar(
            f"{type(self).__name__}_progress_callback", default=None
        )
        self._pending_commands: List[UICommand] = []

    @abstractmethod
    async def execute(self, action: str, params: Dict[str, Any]) -> StepResult:
        """
        Execute one action.

        Args:
            action: Provider-specific operation name
            params: Fully resolved parameters

        Returns:
            StepResult: success flag, data for later steps, error, token usage
        """
        pass

    # --- Bulk progress ---

    def supports_progress(self) -> bool:
        return False

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._progress_callback.set(callback)

    def report_progress(self, update: BulkProgressUpdate) -> None:
        callback = self._progress_callback.get()
        if callback:
            callback(update)

    # --- UI commands ---

    def emit_ui_command(self, command: Union[UICommand, Dict[str, Any]]) -> UICommand:
        """
        Queue a command for the client.

        Inside a step the command goes to that step's collector; outside
        one it waits in the provider's own queue until drained.
        """
        if not isinstance(command, UICommand):
            command = UICommand(**command)
        sink = _ui_command_sink.get()
        if sink is not None:
            sink.append(command)
        else:
            self._pending_commands.append(command)
        return command

    def drain_ui_commands(self) -> List[UICommand]:
        commands = list(self._pending_commands)
        self._pending_commands.clear()
        return commands

    # --- Result helpers ---

    def format_error(self, error: Union[Exception, str], action: Optional[str] = None) -> StepResult:
        message = error if isinstance(error, str) else str(error)
        return StepResult.fail(message, message=f"Failed to {action or 'execute action'}")

    def format_success(self, message: str, data: Any = None, tokens_used: int = 0) -> StepResult:
        return StepResult.ok(message, data=data, tokens_used=tokens_used)
