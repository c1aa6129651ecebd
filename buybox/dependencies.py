from fastapi import Request

from buybox.core.config import Settings
from buybox.scheduler import TrackingScheduler
from buybox.services.buybox_tracker import BuyBoxDiffEngine
from buybox.services.notification_service import WebhookNotificationService
from buybox.services.rainforest import RainforestClient
from buybox.services.state_store import StateStore


def build_tracker(settings: Settings) -> TrackingScheduler:
    """Wire one provider (and so one rate limiter) into the whole tracker"""
    store = StateStore()
    engine = BuyBoxDiffEngine(
        provider=RainforestClient(settings),
        store=store,
        notifier=WebhookNotificationService(settings),
    )
    return TrackingScheduler(engine=engine, store=store, settings=settings)


def get_tracker(request: Request) -> TrackingScheduler:
    """The application's single TrackingScheduler, created in the lifespan"""
    return request.app.state.tracker
