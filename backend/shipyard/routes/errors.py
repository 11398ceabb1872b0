from __future__ import annotations

from fastapi import HTTPException, status

from shipyard.exceptions import (
    DeployTriggerFailed,
    InvalidSignature,
    InvalidWebhookPayload,
    MissingCredential,
    NotFoundError,
    ProviderError,
    ShipyardError,
    UpstreamUnavailable,
)


def to_http_exception(exc: ShipyardError) -> HTTPException:
    """Translate an orchestration error into the response shown to the caller."""
    if isinstance(exc, DeployTriggerFailed):
        return to_http_exception(exc.cause)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidSignature):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    if isinstance(exc, (MissingCredential, InvalidWebhookPayload)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, ProviderError):
        code = exc.status_code
        # Our own Vercel token being rejected is not the caller's auth problem.
        if code is None or code in (401, 403) or not 400 <= code < 500:
            code = status.HTTP_502_BAD_GATEWAY
        return HTTPException(status_code=code, detail=exc.message)
    if isinstance(exc, UpstreamUnavailable):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
