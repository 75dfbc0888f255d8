"""
Annotation session: tool selection and the pending instruction batch.

One session lives per open editor view. It exclusively owns the ordered
batch; insertion order is the order in which the service applies the
instructions. Each instruction is stamped with the page the preview
controller shows at the moment it is added, not with anything held by the
tool that built it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from .builders import InstructionBuilder, create_builder
from .errors import BuilderInputError
from .gateway import ProcessingGateway, SubmissionResult
from .models import InstructionBase, ToolKind
from .preview import PagePreviewController
from .validation import validate_batch

logger = logging.getLogger(__name__)

DEFAULT_DISCARD_PROMPT = "Discard pending changes? Unsaved instructions will be lost."


class SessionState(str, Enum):
    IDLE = "idle"
    TOOL_ACTIVE = "tool_active"


class DiscardOutcome(str, Enum):
    CLEARED = "cleared"
    KEPT = "kept"
    LEAVE_VIEW = "leave_view"


def never_confirm(prompt: str) -> bool:
    return False


class AnnotationSession:
    """
    Editor state machine: Idle ↔ ToolActive(tool).

    Attributes:
        document_id: Document the batch will be applied to
        preview: Controller whose current page stamps new instructions
        gateway: Submission lifecycle shared with the save button
        builder_error: Last input error of the active tool, cleared on success
        validation_errors: Errors found by the last save attempt
    """

    def __init__(
        self,
        document_id: str,
        preview: PagePreviewController,
        gateway: ProcessingGateway,
        confirm: Callable[[str], bool] = never_confirm,
        discard_prompt: str = DEFAULT_DISCARD_PROMPT,
    ) -> None:
        self.document_id = document_id
        self.preview = preview
        self.gateway = gateway
        self._confirm = confirm
        self._discard_prompt = discard_prompt

        self._selected_tool: Optional[ToolKind] = None
        self._builder: Optional[InstructionBuilder] = None
        self._instructions: List[InstructionBase] = []
        self.builder_error: Optional[BuilderInputError] = None
        self.validation_errors: List[str] = []

    @property
    def state(self) -> SessionState:
        return SessionState.IDLE if self._selected_tool is None else SessionState.TOOL_ACTIVE

    @property
    def selected_tool(self) -> Optional[ToolKind]:
        return self._selected_tool

    @property
    def builder(self) -> Optional[InstructionBuilder]:
        return self._builder

    @property
    def instructions(self) -> Tuple[InstructionBase, ...]:
        return tuple(self._instructions)

    @property
    def dirty(self) -> bool:
        return len(self._instructions) > 0

    @property
    def can_save(self) -> bool:
        return self.dirty and not self.gateway.is_pending

    def select_tool(self, tool: Optional[Union[ToolKind, str]]) -> Optional[ToolKind]:
        """
        Activate a tool; selecting the active tool again deactivates it.

        Returns:
            The tool active after the call, None when the session is Idle
        """
        if tool is None:
            self.cancel_tool()
            return None

        kind = ToolKind(tool)
        if kind is self._selected_tool:
            self.cancel_tool()
            return None

        self._selected_tool = kind
        self._builder = create_builder(kind)
        self.builder_error = None
        logger.debug(f"Tool {kind.value} active")
        return kind

    def cancel_tool(self) -> None:
        if self._builder is not None:
            self._builder.cancel()
        self._selected_tool = None
        self._builder = None
        self.builder_error = None

    def add_instruction(self, candidate: InstructionBase) -> Optional[InstructionBase]:
        """
        Append a built instruction, stamped with the page currently previewed.

        Rejected, with no state change, unless a tool is active.

        Returns:
            The stored instruction, or None if rejected
        """
        if self._selected_tool is None:
            logger.debug("Instruction ignored: no tool active")
            return None

        instruction = candidate.on_page(self.preview.page)
        self._instructions.append(instruction)
        logger.info(f"Added {instruction.type} instruction on page {instruction.page} ({len(self._instructions)} pending)")
        self.cancel_tool()
        return instruction

    async def submit_tool(self) -> Optional[InstructionBase]:
        """
        Build an instruction from the active tool's form and add it.

        An input error keeps the tool active with its form intact and is
        exposed as ``builder_error``.
        """
        builder = self._builder
        if builder is None:
            return None

        try:
            candidate = await builder.submit()
        except BuilderInputError as exc:
            if builder is self._builder:
                self.builder_error = exc
            logger.debug(f"Tool input rejected: {exc}")
            return None

        if builder is not self._builder:
            # The tool was cancelled or switched while the image was encoding.
            logger.debug("Built instruction dropped: tool no longer active")
            return None
        return self.add_instruction(candidate)

    def request_discard(self) -> DiscardOutcome:
        """
        Drop the pending batch after explicit confirmation.

        Returns:
            LEAVE_VIEW if nothing is pending, CLEARED if the user confirmed,
            KEPT if the user declined
        """
        if not self.dirty:
            return DiscardOutcome.LEAVE_VIEW
        if not self._confirm(self._discard_prompt):
            return DiscardOutcome.KEPT

        discarded = len(self._instructions)
        self._instructions.clear()
        self.cancel_tool()
        logger.info(f"Discarded {discarded} pending instruction(s)")
        return DiscardOutcome.CLEARED

    async def request_save(self) -> Optional[SubmissionResult]:
        """
        Validate the pending batch and hand it to the gateway.

        No-op (returns None) when nothing is pending, when a save is already
        in flight, or when validation finds errors.
        """
        if not self.can_save:
            return None

        snapshot = list(self._instructions)
        self.validation_errors = validate_batch(snapshot)
        if self.validation_errors:
            logger.debug(f"Save blocked by {len(self.validation_errors)} validation error(s)")
            return None

        result = await self.gateway.submit(self.document_id, snapshot)
        if result is not None and result.succeeded:
            # Drop exactly the submitted instructions; anything added while the
            # request was in flight stays pending, even after a discard.
            submitted = {id(instruction) for instruction in snapshot}
            self._instructions[:] = [i for i in self._instructions if id(i) not in submitted]
            self.cancel_tool()
        return result
