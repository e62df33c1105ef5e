"""
Readiness check across every registered connection.
"""
import asyncio
from typing import Any, Optional

from mongo_registry.database.registry import DatabaseRegistry, get_registry


async def readiness_check(
    registry: Optional[DatabaseRegistry] = None,
    timeout: float = 5.0,
) -> dict[str, Any]:
    """
    Ping every registered connection.

    Args:
        registry: Registry to check, the process-wide one when omitted
        timeout: Seconds to wait for each ping

    Returns:
        Dict with overall status ("healthy" or "degraded"), the default
        connection name and a per-connection check result
    """
    if registry is None:
        registry = get_registry()
    checks: dict[str, str] = {}

    for name in registry.connections():
        connection = registry.connection(name)
        if connection is None:
            continue

        try:
            await asyncio.wait_for(connection.ping(), timeout)
            checks[name] = "healthy"
        except asyncio.TimeoutError:
            checks[name] = f"unhealthy: ping timed out after {timeout}s"
        except Exception as e:
            checks[name] = f"unhealthy: {str(e)}"

    # An empty registry can't serve anything
    all_healthy = bool(checks) and all(v == "healthy" for v in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "default": registry.get_default(),
        "checks": checks,
    }
