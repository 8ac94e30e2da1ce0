"""HTTP API for PromptOp entitlements.

Exposes the entitlement resolver and usage gate to the web application.

Design principles:
- Stateless: the catalog is loaded once; nothing is persisted here
- The caller has already authenticated the user and passes the plan string
- Optional service token: when PROMPTOP_API_TOKEN (or server.api_token) is
  set, every endpoint except /health requires it as a Bearer token

Usage:
    pip install "promptop-entitlements[http]"
    promptop-serve

Or programmatically:
    from promptop.http_server import app
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from promptop.entitlements import (
    EntitlementResolver,
    get_default_catalog,
    normalize_plan,
)
from promptop.unified_config import get_config
from promptop.usage import (
    UsageKind,
    UsageSnapshot,
    authorize_request,
    check_usage,
    get_plan_quota,
)

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_api_token() -> Optional[str]:
    """Get the configured service token.

    Returns None if no token is configured, meaning auth is optional.
    """
    token = get_config().server.api_token
    return token if token else None


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> None:
    """Verify the Bearer token if a service token is configured.

    Raises:
        HTTPException: 401 if token is required but missing/invalid
    """
    api_token = get_api_token()

    if api_token is None:
        return

    if credentials is None or credentials.credentials != api_token:
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API token. Provide Authorization: Bearer <token>",
        )


auth_dependency = Depends(verify_token)


def get_resolver() -> EntitlementResolver:
    """Resolver bound to the process-wide catalog."""
    return EntitlementResolver(get_default_catalog())


app = FastAPI(
    title="PromptOp Entitlements",
    description="Plan-tiered model entitlements and usage quotas for PromptOp",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    catalog_size: int


class ModelListResponse(BaseModel):
    """Models available to a plan."""

    plan: str
    tiers: List[str]
    models: List[Dict[str, Any]]


class AvailabilityResponse(BaseModel):
    """Point availability answer for one model and plan."""

    model_id: str
    plan: str
    available: bool


class QuotaResponse(BaseModel):
    """Quota limits for a plan. Null limits are unlimited."""

    plan: str
    prompts_per_month: Optional[int]
    enhancements_per_month: Optional[int]
    prompt_slots: Optional[int]


class UsageCheckRequest(BaseModel):
    """Request body for a usage quota check."""

    plan: Optional[str] = Field(default="free", description="Subscriber plan name")
    prompts_used: int = Field(default=0, ge=0)
    enhancements_used: int = Field(default=0, ge=0)
    prompts_saved: int = Field(default=0, ge=0)
    kind: UsageKind = Field(default=UsageKind.PROMPTS, description="Metered action to check")

    def snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            plan=self.plan,
            prompts_used=self.prompts_used,
            enhancements_used=self.enhancements_used,
            prompts_saved=self.prompts_saved,
        )


class AccessCheckRequest(UsageCheckRequest):
    """Request body for a combined model, quota and prompt length check."""

    model_id: str = Field(..., description="Catalog model id")
    prompt: str = Field(default="", description="Prompt text to be sent")


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        service="promptop-entitlements",
        catalog_size=len(get_default_catalog()),
    )


@app.get(
    "/v1/models",
    response_model=ModelListResponse,
    tags=["Models"],
    dependencies=[auth_dependency],
)
async def list_models(
    plan: Optional[str] = Query(default=None, description="Subscriber plan name"),
    resolver: EntitlementResolver = Depends(get_resolver),
) -> ModelListResponse:
    """List the models a plan can use, in catalog order."""
    tiers = sorted(resolver.tiers_for(plan))
    return ModelListResponse(
        plan=normalize_plan(plan).value,
        tiers=[tier.value for tier in tiers],
        models=[entry.to_dict() for entry in resolver.available_models(plan)],
    )


@app.get("/v1/models/{model_id}", tags=["Models"], dependencies=[auth_dependency])
async def get_model(
    model_id: str,
    resolver: EntitlementResolver = Depends(get_resolver),
) -> Dict[str, Any]:
    """Get one catalog record, enabled or not."""
    entry = resolver.lookup(model_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Unknown model: {model_id}")
    return entry.to_dict()


@app.get(
    "/v1/models/{model_id}/availability",
    response_model=AvailabilityResponse,
    tags=["Models"],
    dependencies=[auth_dependency],
)
async def model_availability(
    model_id: str,
    plan: Optional[str] = Query(default=None, description="Subscriber plan name"),
    resolver: EntitlementResolver = Depends(get_resolver),
) -> AvailabilityResponse:
    """Check whether a plan may use a model. Unknown models are unavailable."""
    return AvailabilityResponse(
        model_id=model_id,
        plan=normalize_plan(plan).value,
        available=resolver.is_available(model_id, plan),
    )


@app.get(
    "/v1/plans/{plan}/quota",
    response_model=QuotaResponse,
    tags=["Usage"],
    dependencies=[auth_dependency],
)
async def plan_quota(plan: str) -> QuotaResponse:
    """Get the quota limits for a plan."""
    quota = get_plan_quota(plan, get_config().get_plan_quotas())
    return QuotaResponse(
        plan=normalize_plan(plan).value,
        prompts_per_month=quota.prompts_per_month,
        enhancements_per_month=quota.enhancements_per_month,
        prompt_slots=quota.prompt_slots,
    )


@app.post("/v1/usage/check", tags=["Usage"], dependencies=[auth_dependency])
async def usage_check(request: UsageCheckRequest) -> Dict[str, Any]:
    """Check one metered action against the plan quota."""
    decision = check_usage(request.snapshot(), request.kind, get_config().get_plan_quotas())
    if not decision.allowed:
        logger.info(
            f"Usage denied: plan={decision.plan} kind={decision.kind.value} "
            f"used={decision.used} limit={decision.limit}"
        )
    return decision.to_dict()


@app.post("/v1/access/check", tags=["Usage"], dependencies=[auth_dependency])
async def access_check(
    request: AccessCheckRequest,
    resolver: EntitlementResolver = Depends(get_resolver),
) -> Dict[str, Any]:
    """Gate a prompt test or enhancement: model, quota, then prompt length."""
    decision = authorize_request(
        request.snapshot(),
        request.model_id,
        request.prompt,
        resolver.catalog,
        kind=request.kind,
        quotas=get_config().get_plan_quotas(),
    )
    if not decision.allowed:
        logger.info(
            f"Access denied: plan={decision.plan} model={decision.model_id} reason={decision.reason}"
        )
    return decision.to_dict()


def configure_logging(level: str) -> None:
    """Configure root logging for the server process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    """Entry point for the promptop-serve command."""
    import uvicorn

    config = get_config()
    configure_logging(config.logging.level)
    # Load the catalog up front so a bad catalog fails at startup
    get_default_catalog()
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
