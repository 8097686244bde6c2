# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# infra/service_hub/errors.py

from enum import Enum
from typing import Optional, Any, Dict
from pydantic import BaseModel, Field


class ServiceKind(str, Enum):
    llm = "llm"
    vision = "vision"
    datastore = "datastore"
    mutation = "mutation"
    other = "other"


class ServiceError(BaseModel):
    """
    Canonical error object for any backend service (model, data store, mutation endpoints).
    This is what you propagate up to the chat pipeline / API layer.
    """
    kind: ServiceKind = Field(..., description="Service type: llm, vision, datastore, ...")

    # Where the error came from
    service_name: str = Field(
        ...,
        description="Logical service name (e.g. 'response_assembler', 'photo_diagnosis', 'context_aggregator')"
    )
    provider: Optional[str] = Field(
        None,
        description="Provider identifier (e.g. 'anthropic', 'gateway', 'postgres')."
    )
    model_name: Optional[str] = Field(
        None,
        description="Model name or endpoint identifier, when applicable."
    )

    # What happened
    error_type: str = Field(
        ...,
        description="Short classifier, usually Exception.__class__.__name__ or a domain code."
    )
    message: str = Field(
        ...,
        description="Human-readable error message, safe to log/return."
    )
    stage: Optional[str] = Field(
        None,
        description="Phase in which it happened (e.g. 'handshake', 'stream_loop', 'parse', 'dispatch')."
    )
    http_status: Optional[int] = Field(
        None,
        description="HTTP status code, for HTTP-backed services."
    )
    code: Optional[str] = Field(
        None,
        description="Domain code, e.g. 'rate_limit', 'not_found', 'stream_interrupted'."
    )

    # How to treat it
    retryable: Optional[bool] = Field(
        None,
        description="Whether a retry might succeed (best-effort guess)."
    )

    # Extra context (do not put secrets here)
    context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form extra data (tank id, session id, attempt, etc)."
    )


class AquabotError(Exception):
    """Base for every error the pipeline raises. Carries a ServiceError for the API layer."""
    code: str = "error"
    kind: ServiceKind = ServiceKind.other
    retryable: bool = False

    def __init__(self, message: str, *, stage: Optional[str] = None,
                 http_status: Optional[int] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.http_status = http_status
        self.context = dict(context or {})

    def to_service_error(self, service_name: str, provider: Optional[str] = None,
                         model_name: Optional[str] = None) -> ServiceError:
        return ServiceError(
            kind=self.kind,
            service_name=service_name,
            provider=provider,
            model_name=model_name,
            error_type=self.__class__.__name__,
            message=self.message,
            stage=self.stage,
            http_status=self.http_status,
            code=self.code,
            retryable=self.retryable,
            context=self.context,
        )


class TankNotFoundError(AquabotError):
    code = "not_found"
    kind = ServiceKind.datastore

    def __init__(self, tank_id: str, user_id: Optional[str] = None):
        super().__init__(f"Tank {tank_id} not found", stage="fetch_tank",
                         context={"tank_id": tank_id, "user_id": user_id})
        self.tank_id = tank_id


class TransportError(AquabotError):
    """Model request failed before a usable body was read."""
    kind = ServiceKind.llm
    retryable = True

    RATE_LIMIT = "rate_limit"
    FAILURE = "failure"

    def __init__(self, message: str, *, reason: str = "failure",
                 http_status: Optional[int] = None, stage: str = "handshake",
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, stage=stage, http_status=http_status, context=context)
        self.reason = reason if reason in (self.RATE_LIMIT, self.FAILURE) else self.FAILURE

    @property
    def code(self) -> str:  # type: ignore[override]
        return self.reason

    @property
    def is_rate_limited(self) -> bool:
        return self.reason == self.RATE_LIMIT


class StreamInterruptedError(AquabotError):
    """The event stream ended (or broke) before a terminating record."""
    code = "stream_interrupted"
    kind = ServiceKind.llm
    retryable = True

    def __init__(self, message: str = "Stream interrupted", *, partial_text: str = "",
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, stage="stream_loop", context=context)
        self.partial_text = partial_text


class RetryExhaustedError(AquabotError):
    code = "retry_exhausted"
    kind = ServiceKind.vision

    def __init__(self, attempts: int, last_cause: Optional[BaseException]):
        super().__init__(
            f"Maximum number of retries ({attempts}) exceeded: {last_cause}",
            stage="request",
            context={"attempts": attempts},
        )
        self.attempts = attempts
        self.last_cause = last_cause


class ActionRejectedError(AquabotError):
    code = "action_rejected"
    kind = ServiceKind.mutation


class ProposalPendingError(AquabotError):
    code = "proposal_pending"
    kind = ServiceKind.mutation


class ProposalStateError(AquabotError):
    code = "invalid_state"
    kind = ServiceKind.mutation


class MutationError(AquabotError):
    """Mutation endpoint refused or failed a dispatched action."""
    code = "mutation_failed"
    kind = ServiceKind.mutation


def mk_service_error(
        exc: Exception,
        stage: str,
        service_name: str,
        kind: ServiceKind = ServiceKind.llm,
        provider: Optional[str] = None,
        model_name: Optional[str] = None,
) -> ServiceError:
    """Wrap any exception (domain or foreign) into a ServiceError."""
    if isinstance(exc, AquabotError):
        return exc.to_service_error(service_name, provider=provider, model_name=model_name)

    http_status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    code = None
    if http_status == 429:
        code = "rate_limit"
    return ServiceError(
        kind=kind,
        service_name=service_name,
        provider=provider,
        model_name=model_name,
        error_type=exc.__class__.__name__,
        message=str(exc),
        stage=stage,
        http_status=http_status if isinstance(http_status, int) else None,
        code=code,
        retryable=code == "rate_limit" or (isinstance(http_status, int) and http_status >= 500),
    )
