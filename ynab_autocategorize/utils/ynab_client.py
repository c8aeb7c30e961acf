"""
YNAB API client

Thin wrapper over the YNAB REST API for the three calls a run needs:
categories, transactions, and a bulk category update.
"""
import os
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..core.models import CategorizationDecision, Transaction
from .logging_setup import get_logger

logger = get_logger(__name__)

YNAB_API_URL = "https://api.ynab.com/v1"


class YNABError(RuntimeError):
    """A YNAB request failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class YNABClient:
    """
    Minimal YNAB client
    """

    def __init__(self,
                 access_token: Optional[str] = None,
                 base_url: str = YNAB_API_URL,
                 session: Optional[requests.Session] = None,
                 timeout: float = 30):
        """
        Args:
            access_token: Personal access token (default: YNAB_ACCESS_TOKEN env var)
            base_url: API root
            session: Optional requests session (for connection reuse or tests)
            timeout: Per-request timeout in seconds
        """
        self.access_token = access_token or os.getenv('YNAB_ACCESS_TOKEN')
        if not self.access_token:
            raise YNABError("A YNAB access token is required")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {self.access_token}',
            'Accept': 'application/json',
        })

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise YNABError(f"YNAB request failed: {e}") from e

        if not response.ok:
            detail = response.reason
            try:
                detail = response.json()['error']['detail']
            except (ValueError, KeyError, TypeError):
                pass
            raise YNABError(
                f"YNAB API error {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise YNABError("YNAB returned a non-JSON response") from e

        return body.get('data') or {}

    def get_category_groups(self, budget_id: str) -> List[Dict[str, Any]]:
        """Fetch all category groups (with their categories) for a budget"""
        data = self._request('GET', f"/budgets/{budget_id}/categories")
        return data.get('category_groups') or []

    def get_transactions(self,
                         budget_id: str,
                         since_date: Optional[str] = None,
                         type: Optional[str] = None) -> List[Transaction]:
        """
        Fetch transactions for a budget

        Args:
            budget_id: Budget id
            since_date: Only transactions on or after this YYYY-MM-DD date
            type: 'uncategorized' or 'unapproved' to filter server-side
        """
        params = {}
        if since_date:
            params['since_date'] = since_date
        if type:
            params['type'] = type

        data = self._request('GET', f"/budgets/{budget_id}/transactions", params=params)
        return [Transaction.from_api(t) for t in data.get('transactions') or []]

    def update_transactions(self,
                            budget_id: str,
                            decisions: Sequence[CategorizationDecision]) -> Dict[str, Any]:
        """Send the accepted category assignments in one request"""
        payload = {
            'transactions': [
                {'id': d.transaction.id, 'category_id': d.match.category_id}
                for d in decisions
            ]
        }
        return self._request('PATCH', f"/budgets/{budget_id}/transactions", json=payload)
