"""Error taxonomy for generation submissions."""

from __future__ import annotations


class GenerationError(RuntimeError):
    kind = "GenerationError"
    hint = "Please try again."

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        if hint is not None:
            self.hint = hint

    def describe(self) -> str:
        return f"{self.kind}: {self} {self.hint}".strip()


class ValidationError(GenerationError):
    """Rejected input. Never surfaced to the user."""

    kind = "ValidationError"
    hint = ""


class ProtocolError(GenerationError):
    kind = "ProtocolError"
    hint = "Unexpected response format from workflow. Check the n8n workflow output."


class NetworkError(GenerationError):
    kind = "NetworkError"
    hint = "Please check your webhook URL, your connection and the n8n workflow."


class GenerationTimeout(GenerationError):
    kind = "Timeout"
    hint = "The workflow may still finish in the background; resubmit to try again."


class ConfigurationError(GenerationError):
    kind = "ConfigurationError"
    hint = "Set FCINQ_WEBHOOK_URL (or pass --webhook) to your n8n webhook URL."
