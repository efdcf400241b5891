# endpoints/api_newsletter.py
from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from config import Settings
from containers import Container
from dtos import SubscribeDTO
from services.newsletter_service import NewsletterService

router = APIRouter(prefix="/api")


@router.get("/feature-flags")
@inject
async def get_feature_flags(settings: Settings = Depends(Provide[Container.settings])):
    return settings.flags.serialize()


@router.post("/newsletter/subscribe")
@inject
async def subscribe(
        payload: SubscribeDTO,
        ns: NewsletterService = Depends(Provide[Container.newsletter_service]),
):
    return {"status": await ns.subscribe(payload.email)}


@router.get("/newsletter/confirm", response_class=PlainTextResponse)
@inject
async def confirm(
        token: Optional[str] = Query(None),
        ns: NewsletterService = Depends(Provide[Container.newsletter_service]),
):
    if not token:
        return PlainTextResponse("Missing token", status_code=400)
    status = await ns.confirm(token)
    if status in ("confirmed", "already"):
        return PlainTextResponse("Subscription confirmed. You may close this window.")
    return PlainTextResponse("Invalid token", status_code=400)


@router.get("/newsletter/unsubscribe", response_class=PlainTextResponse)
@inject
async def unsubscribe(
        token: Optional[str] = Query(None),
        ns: NewsletterService = Depends(Provide[Container.newsletter_service]),
):
    if not token:
        return PlainTextResponse("Missing token", status_code=400)
    if await ns.unsubscribe(token) == "unsubscribed":
        return PlainTextResponse("You have been unsubscribed.")
    return PlainTextResponse("Invalid token", status_code=400)
