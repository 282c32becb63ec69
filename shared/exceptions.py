"""
shared/exceptions.py

Exception hierarchy for the WhatsApp agent service.

Which of these are recovered and which are fatal is decided by the caller:
- DurableStoreError is recovered by the thread store (in-memory fallback) and by the
  user registry (logged and ignored).
- GatewaySendError, InvalidChannelParametersError and EmailGenerationError propagate
  to the webhook, which answers with HTTP 500. The default-reply workflow is the
  only place that turns a GatewaySendError into an apology message.
"""


class AgentServiceError(Exception):
    """Base exception for all service errors."""


# Storage
class DurableStoreError(AgentServiceError):
    """The durable store could not be initialized or a call to it failed."""


# Outbound delivery
class OutboundError(AgentServiceError):
    """Base exception for outbound message delivery."""


class InvalidChannelParametersError(OutboundError):
    """The thread type requires a thread id or sender number that was not provided."""


class GatewaySendError(OutboundError):
    """The messaging gateway rejected a send or could not be reached."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


# Generation
class GenerationError(AgentServiceError):
    """Base exception for content generation."""


class EmailGenerationError(GenerationError):
    """Email generation returned no usable subject/body."""
