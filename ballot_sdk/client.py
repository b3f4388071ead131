"""
Ballot SDK: Client
Thin synchronous wrapper over the ballot ledger gateway.
"""

from __future__ import annotations

from typing import Optional

import httpx

from ballot_sdk.models import Balance, ProposalResult, Results, VoteReceipt, VoteRecord


class LedgerAPIError(Exception):
    """Error response from the gateway; branch on ``kind``."""

    def __init__(self, kind: str, msg: str, status_code: int):
        super().__init__(f"{kind}: {msg}")
        self.kind = kind
        self.msg = msg
        self.status_code = status_code


class LedgerClient:
    """
    Client for the ballot ledger gateway.

    Every request is sent as ``actor_id``; the gateway trusts that header
    as the caller identity.
    """

    def __init__(
        self,
        gateway_url: str,
        actor_id: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        """
        Args:
            gateway_url: Base URL of the gateway (e.g. "http://localhost:8000")
            actor_id: Caller identity sent in the X-Actor-Id header
            timeout: HTTP request timeout in seconds
            client: Existing httpx.Client to reuse (e.g. a FastAPI TestClient)
        """
        self.gateway_url = gateway_url.rstrip("/")
        self.actor_id = actor_id
        self._client = client or httpx.Client(timeout=timeout)

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        resp = self._client.request(
            method,
            f"{self.gateway_url}{path}",
            headers={"X-Actor-Id": self.actor_id},
            **kwargs,
        )
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise LedgerAPIError(
                kind=body.get("error", "Unknown"),
                msg=body.get("msg", resp.text),
                status_code=resp.status_code,
            )
        return resp

    # --- Proposals ---------------------------------------------------------

    def create_proposal(
        self,
        title: str,
        description: str,
        start_date: str,
        end_date: str,
    ) -> ProposalResult:
        """Create a proposal; dates are DD-MM-YYYY."""
        resp = self._request(
            "POST",
            "/proposals",
            json={
                "title": title,
                "description": description,
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        return ProposalResult(**resp.json())

    def get_proposal(self, proposal_id: int) -> ProposalResult:
        return ProposalResult(**self._request("GET", f"/proposals/{proposal_id}").json())

    def list_proposals(self, which: str = "all") -> list[ProposalResult]:
        """List proposals; ``which`` is all, active or inactive."""
        resp = self._request("GET", "/proposals", params={"filter": which})
        return [ProposalResult(**item) for item in resp.json()]

    def update_proposal(self, proposal_id: int, title: str, description: str) -> ProposalResult:
        resp = self._request(
            "PUT",
            f"/proposals/{proposal_id}",
            json={"title": title, "description": description},
        )
        return ProposalResult(**resp.json())

    def delete_proposal(self, proposal_id: int) -> None:
        self._request("DELETE", f"/proposals/{proposal_id}")

    # --- Voting ------------------------------------------------------------

    def vote(self, proposal_id: int, is_for: bool, tokens: int) -> VoteReceipt:
        resp = self._request(
            "POST",
            f"/proposals/{proposal_id}/vote",
            json={"is_for": is_for, "tokens": tokens},
        )
        return VoteReceipt(**resp.json())

    def my_vote(self, proposal_id: int) -> Optional[VoteRecord]:
        body = self._request("GET", f"/proposals/{proposal_id}/vote").json()
        return VoteRecord(**body) if body else None

    def results(self, proposal_id: int) -> Results:
        return Results(**self._request("GET", f"/proposals/{proposal_id}/results").json())

    # --- Tokens ------------------------------------------------------------

    def grant_tokens(self, amount: int) -> Balance:
        resp = self._request("POST", "/tokens/grant", json={"amount": amount})
        return Balance(**resp.json())

    def balance(self) -> Balance:
        return Balance(**self._request("GET", "/tokens/balance").json())

    def health(self) -> dict:
        """Check gateway health via GET /health."""
        return self._request("GET", "/health").json()
