"""Client for the external payroll narrative service.

The service receives the period label plus a JSON string of per-employee
figures and answers with human-readable explanations. Its output is advisory
text; amounts always come from the deduction engine.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import requests

from ..core.exceptions import NarrativeServiceError

logger = logging.getLogger(__name__)


class NarrativePayrollAssistant:
    def __init__(self, url: Optional[str], *, api_key: Optional[str] = None, timeout: float = 30):
        self._url = (url or "").strip() or None
        self._api_key = api_key or None
        self._timeout = float(timeout)

    @property
    def configured(self) -> bool:
        return self._url is not None

    def explain(self, period_label: str, employee_records: Sequence[dict[str, Any]]) -> Any:
        if not self.configured:
            raise NarrativeServiceError("Narrative payroll service is not configured")

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        payload = {
            "payrollPeriod": period_label,
            "employeeRecords": json.dumps(list(employee_records), ensure_ascii=False),
        }

        try:
            resp = requests.post(self._url, json=payload, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.error("Narrative service request failed: %s", e)
            raise NarrativeServiceError("Narrative payroll service is unreachable") from e

        if resp.status_code != 200:
            logger.error("Narrative service error %s: %s", resp.status_code, resp.text[:500])
            raise NarrativeServiceError(f"Narrative payroll service returned HTTP {resp.status_code}")

        try:
            body = resp.json()
            details = body.get("payrollDetails", body) if isinstance(body, dict) else body
            # The service may hand the details back as a JSON string.
            if isinstance(details, str):
                details = json.loads(details)
        except ValueError as e:
            logger.error("Narrative service returned malformed JSON: %s", e)
            raise NarrativeServiceError("Narrative payroll service returned malformed JSON") from e

        logger.info("Narrative payroll generated for %s (%d employees)", period_label, len(employee_records))
        return details
