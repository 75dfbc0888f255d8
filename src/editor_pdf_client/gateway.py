"""
Submission lifecycle for annotation batches.

This module manages sending one accumulated batch to the document service:
- Guarding against overlapping submissions for the same editor
- Recording state transitions as a timestamped event log
- Invalidating cached document representations after a successful mutation
- Surfacing success and failure notices to the user

The ProcessingGateway never retries on its own; every retry is a fresh,
user-initiated save.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence

from .cache import InvalidationRegistry
from .errors import ApiError
from .models import Document, InstructionBase, ProcessDocumentRequest, ProcessDocumentResponse
from .notifications import Notifier
from .validation import ensure_valid_batch

logger = logging.getLogger(__name__)


class GatewayState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class GatewayEvent:
    timestamp: datetime
    state: GatewayState
    message: str


@dataclass
class SubmissionResult:
    """
    Outcome of one completed submission.

    Attributes:
        succeeded: True if the service accepted and applied the batch
        message: Text shown to the user (server-supplied or default)
        document: Updated document returned by the service on success
    """

    succeeded: bool
    message: str
    document: Optional[Document] = None


class ProcessingBackend(Protocol):
    async def process_document(self, document_id: str, request: ProcessDocumentRequest) -> ProcessDocumentResponse:
        ...


class ProcessingGateway:
    """
    Owns the Idle → Pending → Succeeded/Failed → Idle cycle of one editor.

    Single-flight: the Pending check and transition happen before the first
    suspension point, so a second ``submit`` issued while one is in flight
    observes Pending and returns without touching the network.

    Attributes:
        events: Chronological list of state transitions
    """

    def __init__(
        self,
        backend: ProcessingBackend,
        cache: InvalidationRegistry,
        notifier: Notifier,
        success_message: str = "Document processed successfully",
        error_title: str = "Could not process document",
        retry_hint: str = "Please try again",
    ) -> None:
        """
        Initialize the gateway.

        Args:
            backend: Object exposing ``process_document`` (normally DocumentService)
            cache: Registry whose document and list entries are invalidated on success
            notifier: Receives the success or error notice of each submission
            success_message: Notice used when the service sends no message
            error_title: Title of the error notice
            retry_hint: Error description used when the failure carries no message
        """
        self._backend = backend
        self._cache = cache
        self._notifier = notifier
        self._success_message = success_message
        self._error_title = error_title
        self._retry_hint = retry_hint
        self._state = GatewayState.IDLE
        self.events: List[GatewayEvent] = []
        self.last_result: Optional[SubmissionResult] = None

    @classmethod
    def from_config(
        cls, config: Any, backend: ProcessingBackend, cache: InvalidationRegistry, notifier: Notifier
    ) -> "ProcessingGateway":
        return cls(
            backend,
            cache,
            notifier,
            success_message=str(config.notices.process_success),
            error_title=str(config.notices.process_error),
            retry_hint=str(config.notices.retry_hint),
        )

    @property
    def state(self) -> GatewayState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state is GatewayState.PENDING

    def _transition(self, state: GatewayState, message: str) -> None:
        self._state = state
        self.events.append(GatewayEvent(timestamp=datetime.utcnow(), state=state, message=message))
        logger.info(f"Gateway {state.value}: {message}")

    async def submit(
        self, document_id: str, instructions: Sequence[InstructionBase]
    ) -> Optional[SubmissionResult]:
        """
        Send a batch, in insertion order, to the document's process endpoint.

        Args:
            document_id: Target document
            instructions: Batch snapshot; it is never modified here

        Returns:
            SubmissionResult once the request settles, or None if another
            submission was already pending

        Raises:
            BatchValidationError: If the batch fails validation; nothing is sent
        """
        if self._state is GatewayState.PENDING:
            logger.debug(f"Submission for {document_id} ignored: already pending")
            return None

        request = ensure_valid_batch(instructions)
        self._transition(GatewayState.PENDING, f"Submitting {len(request.instructions)} instruction(s) for {document_id}")

        try:
            try:
                response = await self._backend.process_document(document_id, request)
            except ApiError as exc:
                result = self._fail(exc.message or self._retry_hint)
            except Exception:
                # Any other backend failure is retryable like an API error
                logger.exception(f"Submission for {document_id} failed unexpectedly")
                result = self._fail(self._retry_hint)
            else:
                message = response.message or self._success_message
                self._transition(GatewayState.SUCCEEDED, message)
                self._cache.invalidate_document(document_id)
                self._cache.invalidate_document_lists()
                self._notifier.success(message)
                result = SubmissionResult(succeeded=True, message=message, document=response.document)
        finally:
            # Also reached on cancellation, which propagates after this
            self._transition(GatewayState.IDLE, "Ready")

        self.last_result = result
        return result

    def _fail(self, description: str) -> SubmissionResult:
        self._transition(GatewayState.FAILED, description)
        self._notifier.error(self._error_title, description)
        return SubmissionResult(succeeded=False, message=description)
