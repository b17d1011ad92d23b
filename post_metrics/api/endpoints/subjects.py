from typing import Any, Dict, List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from post_metrics.api.dependencies import get_resolver
from post_metrics.domain.models import MetricName, MetricSet
from post_metrics.services.resolver import MetricsResolver

router = APIRouter(prefix="/v1")

MAX_LISTING_IDS = 100


def _render(result: MetricSet) -> Dict[str, Any]:
    """Every metric is present in the payload; unresolved ones read as 0."""
    return {
        "subject_id": result.subject_id,
        "metrics": {
            m.value: {
                "value": result.value_or_zero(m),
                "source": result.sources[m].value if m in result.sources else "none",
            }
            for m in MetricName.all()
        },
    }


def _parse_ids(raw: str) -> List[int]:
    try:
        ids = [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="ids must be integers")
    if not ids:
        raise HTTPException(status_code=400, detail="ids must not be empty")
    if len(ids) > MAX_LISTING_IDS:
        raise HTTPException(
            status_code=400, detail=f"at most {MAX_LISTING_IDS} ids per request"
        )
    return ids


@router.get("/subjects/metrics")
async def subjects_metrics(
    ids: str = Query(..., description="Comma-separated subject ids"),
    resolver: MetricsResolver = Depends(get_resolver),
):
    results = await resolver.resolve_many(_parse_ids(ids))
    return {"subjects": [_render(r) for r in results.values()]}


@router.get("/subjects/{subject_id}/metrics")
async def subject_metrics(
    subject_id: int, resolver: MetricsResolver = Depends(get_resolver)
):
    return _render(await resolver.resolve(subject_id))


@router.post("/subjects/{subject_id}/metrics/refresh")
async def refresh_subject_metrics(
    subject_id: int, resolver: MetricsResolver = Depends(get_resolver)
):
    return _render(await resolver.force_refresh(subject_id))


@router.get("/rankings/{metric}")
async def ranking(
    metric: MetricName,
    limit: int = Query(20, ge=1, le=500),
    order: Literal["asc", "desc"] = "desc",
    resolver: MetricsResolver = Depends(get_resolver),
):
    rows = await resolver.ranking(metric, limit, descending=order == "desc")
    return {
        "metric": metric.value,
        "order": order,
        "subjects": [{"subject_id": r.subject_id, "value": r.value} for r in rows],
    }
