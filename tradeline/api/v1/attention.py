"""GET /v1/attention - the acting business's prioritized worklist"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from tradeline.api.dependencies import get_business_id, get_views
from tradeline.api.v1.schemas import AttentionItemResponse, AttentionResponse
from tradeline.services.views import RelationshipViews

router = APIRouter()


@router.get("/attention", response_model=AttentionResponse)
def get_attention_items(
    limit: Optional[int] = Query(None, gt=0, le=1000, description="Maximum items to return"),
    business_id: str = Depends(get_business_id),
    views: RelationshipViews = Depends(get_views),
):
    """
    Attention items across every relationship of the caller.

    Returns:
        Items sorted by priority, then oldest friction first. total_count and
        truncated tell the caller whether limit cut the list short.
    """
    items = views.get_attention_items(business_id)
    shown = items[:limit] if limit is not None else items
    return AttentionResponse(
        business_id=business_id,
        total_count=len(items),
        truncated=len(shown) < len(items),
        items=[AttentionItemResponse.from_domain(item) for item in shown],
    )
