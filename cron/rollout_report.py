#!/usr/bin/env python3
"""Rollout report: per-tenant fleet sync health from the control plane API.

For each tenant in TENANTS, GET /tenants/{tenant}/sync-health?freshness_minutes=N.
Logs one summary line per tenant and one warning per agent that is not current.

Exit code 1 if any tenant could not be fetched (inconclusive), else 0. Agents being
stale or erroring is reported, not failed on: a rollout in progress is expected to have them.

Run with: python -m cron.rollout_report
"""

import sys
from pathlib import Path
from typing import Any

import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from cron.config import config
from cron.logging import get_logger

logger = get_logger("rollout_report")


def _fetch_health(
    session: requests.Session,
    base_url: str,
    tenant_id: str,
    freshness_minutes: int,
    timeout: float,
) -> dict[str, Any] | None:
    """GET sync-health for one tenant. Returns the JSON body, or None if the request failed."""
    url = f"{base_url.rstrip('/')}/tenants/{tenant_id}/sync-health"
    try:
        resp = session.get(url, params={"freshness_minutes": freshness_minutes}, timeout=timeout)
    except requests.RequestException as e:
        logger.warning("sync-health error tenant=%s: %s", tenant_id, e)
        return None
    if resp.status_code != 200:
        logger.warning("sync-health HTTP %s tenant=%s", resp.status_code, tenant_id)
        return None
    return resp.json()


def summarize(report: dict[str, Any]) -> dict[str, Any]:
    """Reduce a sync-health body to what the log line needs."""
    counts = report.get("counts") or {}
    lagging = [a for a in report.get("agents") or [] if a.get("state") != "current"]
    return {
        "tenant_id": report.get("tenant_id"),
        "latest_version": report.get("latest_version"),
        "in_sync": bool(report.get("in_sync")),
        "agents": sum(counts.values()),
        "counts": counts,
        "lagging": lagging,
    }


def _report_tenant(summary: dict[str, Any]) -> None:
    logger.info(
        "tenant=%s latest=v%s in_sync=%s agents=%s counts=%s",
        summary["tenant_id"],
        summary["latest_version"],
        summary["in_sync"],
        summary["agents"],
        summary["counts"],
    )
    for agent in summary["lagging"]:
        logger.warning(
            "tenant=%s agent=%s state=%s applied=%s last_status=%s error=%s",
            summary["tenant_id"],
            agent.get("agent_key"),
            agent.get("state"),
            agent.get("applied_version"),
            agent.get("last_status"),
            agent.get("error_message"),
        )


def main() -> int:
    tenants = config.TENANTS
    if not tenants:
        logger.warning("TENANTS env empty, nothing to run")
        return 0

    logger.info("rollout_report start tenants=%s", tenants)
    any_failed = False
    with requests.Session() as session:
        for tenant_id in tenants:
            report = _fetch_health(
                session,
                config.API_BASE,
                tenant_id,
                config.HEALTH_FRESHNESS_MINUTES,
                config.REQUEST_TIMEOUT_SECONDS,
            )
            if report is None:
                logger.error("tenant=%s inconclusive (API error)", tenant_id)
                any_failed = True
                continue
            _report_tenant(summarize(report))

    logger.info("rollout_report done")
    return 1 if any_failed else 0


if __name__ == "__main__":
    sys.exit(main())
