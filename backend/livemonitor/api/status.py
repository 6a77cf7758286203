"""
Status API - read-only view of the cluster registry

Endpoints:
- GET /api/status           registry counts and per-cluster summary
- GET /api/clusters/{key}   snapshot + current classification of one cluster
                            (key may be any known language version)
"""
import time

from fastapi import APIRouter, FastAPI, HTTPException

from ..services.breaking_news import BreakingNewsThresholds, classify
from ..services.cluster_registry import ClusterRegistry


def create_router(registry: ClusterRegistry, thresholds: BreakingNewsThresholds) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["monitor"])

    @router.get("/status")
    async def get_status():
        return registry.get_status(now=int(time.time() * 1000))

    @router.get("/clusters/{key:path}")
    async def get_cluster(key: str):
        canonical = registry.resolve(key)
        cluster = registry.get(canonical)
        if cluster is None:
            raise HTTPException(status_code=404, detail=f"No cluster for {key}")

        classification = classify(cluster, thresholds)
        snapshot = cluster.to_snapshot()
        snapshot['isBreakingNewsCandidate'] = classification.is_candidate
        snapshot['breakingNewsConditions'] = classification.conditions()
        return snapshot

    return router


def create_app(registry: ClusterRegistry, thresholds: BreakingNewsThresholds) -> FastAPI:
    app = FastAPI(title="Wikipedia Live Monitor")
    app.include_router(create_router(registry, thresholds))
    return app
