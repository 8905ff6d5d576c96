"""
Procedure dispatch and access control.

Every procedure is bound to exactly one access tier:

- public_procedure: no checks, the context passes through unchanged
- protected_procedure: requires a verified identity
- admin_procedure: requires a verified identity whose user record is admin

A middleware takes the ExecutionContext and returns it (possibly enriched) or
raises, which halts the pipeline before the procedure body runs. Procedures
are immutable chains of middlewares; `.use()` returns a longer chain.

Usage:
    @router.post("/plans.create")
    def create(
        ctx: ExecutionContext = Depends(admin_procedure),
        body: PlanCreateRequest = Depends(json_body(PlanCreateRequest)),
    ):
        # ctx.identity is set, ctx.is_admin is True
        ...
"""
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from planhub.core.database import get_db
from planhub.core.errors import UnauthenticatedError, UnauthorizedError
from planhub.core.logging import log_event
from planhub.core.session import clear_tokens
from planhub.core.tokens import Identity, TokenVerifier, extract_credentials
from planhub.features.plans.store import PlanStore, SqlPlanStore
from planhub.features.users.store import SqlUserStore, UserLookup


@dataclass(frozen=True)
class ExecutionContext:
    """Per-invocation context: raw credentials, collaborators, and what the access checks established."""
    credentials: Optional[str]
    verifier: TokenVerifier
    users: UserLookup
    plans: PlanStore
    invalidate_session: Callable[[], None]
    identity: Optional[Identity] = None
    is_admin: bool = False


Middleware = Callable[[ExecutionContext], ExecutionContext]


def is_user(ctx: ExecutionContext) -> ExecutionContext:
    try:
        identity = ctx.verifier.verify(ctx.credentials)
    except UnauthenticatedError as e:
        ctx.invalidate_session()
        log_event("warning", "access.denied", event_type="protected", error_code="unauthorized",
                  reason=e.message)
        raise UnauthorizedError() from e
    return replace(ctx, identity=identity)


def is_admin(ctx: ExecutionContext) -> ExecutionContext:
    # Unknown user, non-admin and bad token all surface as the same error and
    # the same cleared session
    try:
        identity = ctx.verifier.verify(ctx.credentials)
    except UnauthenticatedError as e:
        ctx.invalidate_session()
        log_event("warning", "access.denied", event_type="admin", error_code="unauthorized",
                  reason=e.message)
        raise UnauthorizedError() from e

    user = ctx.users.find_by_id(identity.user_id)
    if user is None or not user.is_admin:
        ctx.invalidate_session()
        log_event("warning", "access.denied", user_id=identity.user_id, event_type="admin",
                  error_code="unauthorized",
                  reason="unknown user" if user is None else "not admin")
        raise UnauthorizedError()
    return replace(ctx, identity=identity, is_admin=True)


def get_token_verifier() -> TokenVerifier:
    return TokenVerifier.from_settings()


def create_context(
    request: Request,
    db: Session = Depends(get_db),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> ExecutionContext:
    """FastAPI dependency building the context for one procedure call."""
    return ExecutionContext(
        credentials=extract_credentials(request),
        verifier=verifier,
        users=SqlUserStore(db),
        plans=SqlPlanStore(db),
        invalidate_session=lambda: clear_tokens(request),
    )


class Procedure:
    """An ordered chain of access middlewares, usable as a FastAPI dependency."""

    def __init__(self, middlewares: Tuple[Middleware, ...] = ()):
        self.middlewares = tuple(middlewares)

    def use(self, middleware: Middleware) -> "Procedure":
        return Procedure(self.middlewares + (middleware,))

    def run(self, ctx: ExecutionContext) -> ExecutionContext:
        for middleware in self.middlewares:
            ctx = middleware(ctx)
        return ctx

    def __call__(self, ctx: ExecutionContext = Depends(create_context)) -> ExecutionContext:
        return self.run(ctx)


public_procedure = Procedure()
protected_procedure = public_procedure.use(is_user)
admin_procedure = public_procedure.use(is_admin)
