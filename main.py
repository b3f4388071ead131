"""
Ballot Ledger Gateway

HTTP host for the GovernanceService. The gateway supplies the two
trusted inputs the ledger core expects from its host: the caller
identity (``X-Actor-Id`` header) and the current time (the service's
clock). Every ledger error is returned as ``{"error": kind, "msg": ...}``
so clients can branch on the kind tag.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ballot.config import LedgerConfig
from ballot.errors import ErrorKind, InvalidInput, LedgerError
from ballot.models import ANONYMOUS, ProposalView
from ballot.service import GovernanceService

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.NOT_AUTHORIZED: 403,
    ErrorKind.VOTING_ENDED: 409,
    ErrorKind.VOTING_NOT_STARTED: 409,
    ErrorKind.INVALID_INPUT: 422,
    ErrorKind.PROPOSAL_ALREADY_STARTED: 409,
    ErrorKind.INSUFFICIENT_TOKENS: 402,
}

# ---------------------------------------------------------------------------
# App + shared services
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Ballot Ledger Gateway",
    version="1.0.0",
)

config = LedgerConfig.from_env()
service = GovernanceService.from_config(config)

# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class ProposalPayload(BaseModel):
    title: str
    description: str
    start_date: str  # DD-MM-YYYY
    end_date: str    # DD-MM-YYYY


class UpdatePayload(BaseModel):
    title: str
    description: str


class VotePayload(BaseModel):
    is_for: bool
    tokens: int


class GrantPayload(BaseModel):
    amount: int


class ProposalOut(BaseModel):
    id: int
    title: str
    description: str
    creator: str
    created_at: int
    start_date: int
    end_date: int
    start_date_text: str
    end_date_text: str
    votes_for: int
    votes_against: int
    status: str


class ResultsOut(BaseModel):
    proposal_id: int
    votes_for: int
    votes_against: int


class VoteOut(BaseModel):
    voter: str
    proposal_id: int
    vote_power: int
    is_for: bool


class BalanceOut(BaseModel):
    owner: str
    balance: int


def _proposal_out(view: ProposalView) -> ProposalOut:
    p = view.proposal
    return ProposalOut(
        **view.to_dict(),
        start_date_text=service.dates.format(p.start_date),
        end_date_text=service.dates.format(p.end_date),
    )


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.kind.value)
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 400),
        content=exc.to_dict(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "error": ErrorKind.INVALID_INPUT.value,
            "msg": f"Malformed request: {fields}",
        },
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "operational", "service": "ballot-ledger", "now": service.now()}


@app.post("/proposals", status_code=201)
def create_proposal(
    payload: ProposalPayload,
    x_actor_id: str = Header(ANONYMOUS),
) -> ProposalOut:
    view = service.create_proposal(
        x_actor_id,
        payload.title,
        payload.description,
        payload.start_date,
        payload.end_date,
    )
    return _proposal_out(view)


@app.get("/proposals")
def list_proposals(which: str = Query("all", alias="filter")) -> list[ProposalOut]:
    """List proposals: ``filter`` is one of all, active, inactive."""
    listings = {
        "all": service.list_all,
        "active": service.list_active,
        "inactive": service.list_inactive,
    }
    if which not in listings:
        raise InvalidInput(f"Unknown filter '{which}'. Use all, active or inactive.")
    return [_proposal_out(v) for v in listings[which]()]


@app.get("/proposals/{proposal_id}")
def get_proposal(proposal_id: int) -> ProposalOut:
    return _proposal_out(service.get_proposal(proposal_id))


@app.put("/proposals/{proposal_id}")
def update_proposal(
    proposal_id: int,
    payload: UpdatePayload,
    x_actor_id: str = Header(ANONYMOUS),
) -> ProposalOut:
    view = service.update_proposal(
        x_actor_id, proposal_id, payload.title, payload.description
    )
    return _proposal_out(view)


@app.delete("/proposals/{proposal_id}")
def delete_proposal(proposal_id: int, x_actor_id: str = Header(ANONYMOUS)):
    service.delete_proposal(x_actor_id, proposal_id)
    return {"deleted": proposal_id}


@app.post("/proposals/{proposal_id}/vote")
def vote(
    proposal_id: int,
    payload: VotePayload,
    x_actor_id: str = Header(ANONYMOUS),
):
    message, balance = service.cast_vote(
        x_actor_id, proposal_id, payload.is_for, payload.tokens
    )
    return {
        "message": message,
        "proposal_id": proposal_id,
        "balance": balance,
    }


@app.get("/proposals/{proposal_id}/vote")
def get_vote(proposal_id: int, x_actor_id: str = Header(ANONYMOUS)) -> Optional[VoteOut]:
    cast = service.get_vote(x_actor_id, proposal_id)
    if cast is None:
        return None
    return VoteOut(**cast.to_dict())


@app.get("/proposals/{proposal_id}/results")
def get_results(proposal_id: int) -> ResultsOut:
    votes_for, votes_against = service.get_results(proposal_id)
    return ResultsOut(
        proposal_id=proposal_id,
        votes_for=votes_for,
        votes_against=votes_against,
    )


@app.post("/tokens/grant")
def grant_tokens(payload: GrantPayload, x_actor_id: str = Header(ANONYMOUS)) -> BalanceOut:
    balance = service.grant_tokens(x_actor_id, payload.amount)
    return BalanceOut(owner=x_actor_id, balance=balance)


@app.get("/tokens/balance")
def get_balance(x_actor_id: str = Header(ANONYMOUS)) -> BalanceOut:
    return BalanceOut(owner=x_actor_id, balance=service.get_balance(x_actor_id))
