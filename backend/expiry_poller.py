"""
expiry_poller.py

Client for the external scheduler (cron) that checks for expired stock.

What it provides:
- A tiny API client for GET /api/records/expired, authenticated with the
  shared x-api-key header (no login or cookies involved)
- A main() that prints one line per expired record of the active stocktaking

Environment variables expected:
- STOCKTAKE_API_URL: e.g. "https://your-domain.com"
- CRON_API_KEY: must match the backend's CRON_API_KEY
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

import requests
from dotenv import load_dotenv


class ApiError(RuntimeError):
    pass


@dataclass
class ExpiryPollerClient:
    base_url: str
    api_key: str
    timeout: float = 30
    session: requests.Session = field(default_factory=requests.Session)

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "x-api-key": self.api_key}

    def fetch_expired(self) -> List[Dict[str, Any]]:
        """
        Calls: GET /api/records/expired
        Returns the expired records of the active stocktaking, soonest expiry first.
        """
        url = f"{self.base_url.rstrip('/')}/api/records/expired"
        resp = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        if resp.status_code >= 400:
            raise ApiError(f"GET /api/records/expired failed ({resp.status_code}): {resp.text}")
        return resp.json()


def describe(record: Dict[str, Any]) -> str:
    item = (record.get("item") or {}).get("name") or f"item {record.get('item_id')}"
    location = (record.get("storage_location") or {}).get("name") or "?"
    unit = (record.get("unit") or {}).get("name") or ""
    qty = f"{record.get('quantity')} {unit}".strip()
    return f"{record.get('expiry_date')}  {item} x {qty} @ {location}"


def make_client_from_env() -> ExpiryPollerClient:
    load_dotenv()
    base_url = os.getenv("STOCKTAKE_API_URL", "").strip()
    api_key = os.getenv("CRON_API_KEY", "").strip()

    if not base_url:
        raise RuntimeError("Missing STOCKTAKE_API_URL")
    if not api_key:
        raise RuntimeError("Missing CRON_API_KEY")

    return ExpiryPollerClient(base_url=base_url, api_key=api_key)


def main() -> int:
    client = make_client_from_env()
    records = client.fetch_expired()
    if not records:
        print("No expired records.")
        return 0
    print(f"{len(records)} expired record(s):")
    for record in records:
        print(describe(record))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
