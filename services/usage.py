# services/usage.py
import asyncio
import logging
import time
from typing import Optional

import httpx

log = logging.getLogger(__name__)

PER_MILLION = 1_000_000


class ModelCatalog:
    """
    Public model price/limit catalog, fetched lazily and cached for ttl_seconds.
    A failed fetch returns whatever was cached before (possibly None).
    """

    def __init__(self, url: str, ttl_seconds: int, timeout: float = 10.0):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self._catalog: Optional[dict] = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    async def get(self) -> Optional[dict]:
        async with self._lock:
            fresh = self._catalog is not None and time.monotonic() - self._fetched_at < self.ttl_seconds
            if fresh:
                return self._catalog
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(self.url)
                    resp.raise_for_status()
                    self._catalog = resp.json()
                    self._fetched_at = time.monotonic()
            except (httpx.HTTPError, ValueError) as e:
                log.warning("Model catalog fetch failed, using raw usage: %s", e)
            return self._catalog


def normalize_usage(usage_metadata: Optional[dict]) -> dict:
    """LangChain usage_metadata -> camelCase usage counts."""
    usage_metadata = usage_metadata or {}
    input_tokens = int(usage_metadata.get("input_tokens") or 0)
    output_tokens = int(usage_metadata.get("output_tokens") or 0)
    return {
        "inputTokens": input_tokens,
        "outputTokens": output_tokens,
        "totalTokens": int(usage_metadata.get("total_tokens") or input_tokens + output_tokens),
    }


def add_usage(total: Optional[dict], step: Optional[dict]) -> Optional[dict]:
    if not step:
        return total
    if total is None:
        return dict(step)
    return {
        key: int(total.get(key) or 0) + int(step.get(key) or 0)
        for key in ("input_tokens", "output_tokens", "total_tokens")
    }


def summarize_usage(model_id: str, usage: dict, catalog: dict) -> dict:
    """
    Cost and context window for model_id ("<provider>/<model>").
    Raises KeyError when the catalog has no entry for the model.
    """
    provider, _, model = model_id.partition("/")
    info = catalog[provider]["models"][model]
    cost = info.get("cost") or {}
    input_usd = usage["inputTokens"] * float(cost.get("input") or 0) / PER_MILLION
    output_usd = usage["outputTokens"] * float(cost.get("output") or 0) / PER_MILLION
    summary = {
        "costUSD": {
            "inputUSD": input_usd,
            "outputUSD": output_usd,
            "totalUSD": input_usd + output_usd,
        },
    }
    limit = info.get("limit") or {}
    if limit.get("context"):
        summary["context"] = {
            "totalMax": limit["context"],
            "remaining": max(limit["context"] - usage["totalTokens"], 0),
        }
    return summary


async def enrich_usage(catalog: ModelCatalog, model_id: Optional[str], usage: dict) -> dict:
    """
    Best effort: returns usage merged with cost data, or the raw usage on
    any failure. Never raises.
    """
    try:
        providers = await catalog.get()
        if not model_id or not providers:
            return usage
        return {**usage, **summarize_usage(model_id, usage, providers), "modelId": model_id}
    except Exception as e:
        log.warning("Usage enrichment failed for %s: %s", model_id, e)
        return usage
