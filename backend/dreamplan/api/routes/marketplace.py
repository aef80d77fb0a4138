"""Template marketplace routes."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from dreamplan.api.routes.plans import run_provisioning
from dreamplan.api.schemas.marketplace import TemplatePayload, UseTemplateRequest
from dreamplan.api.schemas.plan import PlanResponse
from dreamplan.db.deps import get_db
from dreamplan.observability.metrics import log_metric
from dreamplan.services.marketplace import get_template, search_templates

router = APIRouter(prefix="/marketplace", tags=["marketplace"])


@router.get("/templates", response_model=List[TemplatePayload])
def list_templates(q: Optional[str] = Query(default=None, max_length=100)) -> List[TemplatePayload]:
    matches = search_templates(q)
    log_metric("marketplace.search.results", len(matches), metadata={"has_query": bool(q)})
    return [
        TemplatePayload(
            index=index,
            title=template.title,
            description=template.description,
            tags=list(template.tags),
            rating=template.rating,
            users=template.users,
        )
        for index, template in matches
    ]


@router.post("/templates/{index}/use", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def use_template(
    index: int,
    payload: UseTemplateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> PlanResponse:
    """Provision a plan from a template, using its title as the goal."""
    template = get_template(index)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")

    return run_provisioning(
        db,
        http_request,
        user_id=payload.user_id,
        title=template.title,
        description=template.description,
        plan_metadata={"source": "marketplace", "template_index": index},
    )
