# cli/verification.py
"""
Checks against a running intake API.
All functions return a VerificationResult (success, message, data).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import httpx


@dataclass
class VerificationResult:
    """Structured result from verification functions."""
    success: bool
    message: str
    data: Dict = None

    def __post_init__(self):
        if self.data is None:
            self.data = {}


async def check_api_health(api_url: str = "http://localhost:8000", timeout: float = 5.0) -> VerificationResult:
    """Hit the liveness probe and the intake status endpoint."""
    endpoints = ["/api/health/live", "/api/intake/lead"]
    results: Dict[str, int] = {}

    async with httpx.AsyncClient(base_url=api_url, timeout=timeout) as client:
        for endpoint in endpoints:
            try:
                response = await client.get(endpoint)
            except httpx.RequestError as e:
                return VerificationResult(
                    success=False,
                    message=f"API not accessible at {api_url}: {e}",
                    data={"error": str(e), "url": api_url},
                )
            results[endpoint] = response.status_code

    failures = [endpoint for endpoint, code in results.items() if code != 200]
    if failures:
        return VerificationResult(
            success=False,
            message=f"{len(failures)}/{len(endpoints)} endpoints failed",
            data={"results": results, "failures": failures},
        )

    return VerificationResult(
        success=True,
        message="API health check passed",
        data={"results": results},
    )
