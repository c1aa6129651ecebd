"""Discord-style webhook notifications for BuyBox events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from buybox.core.config import Settings, get_settings
from buybox.core.enums import AlertLevel, EventKind
from buybox.core.exceptions import NotifyFailureError
from buybox.schemas.events import OwnershipChangeEvent, SaleEstimateEvent, TrackingEvent

logger = logging.getLogger(__name__)

GAIN_COLOUR = 0x00FF00
LOSS_COLOUR = 0xFF0000
CHANGE_COLOUR = 0x0099FF
SALE_COLOUR = 0xFFA500

LEVEL_EMOJI = {
    AlertLevel.INFO: "ℹ️",
    AlertLevel.WARNING: "⚠️",
    AlertLevel.ERROR: "❌",
    AlertLevel.SUCCESS: "✅",
}


def _field(name: str, value: Any, inline: bool = True) -> Dict[str, Any]:
    return {"name": name, "value": str(value), "inline": inline}


def _describe_item(item_id: str, label: Optional[str]) -> str:
    description = f"**ASIN:** {item_id}"
    if label:
        description += f"\n**Product:** {label}"
    return description


class WebhookNotificationService:
    """Best-effort delivery of tracker alerts to a subject's webhook."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Payload builders
    # ------------------------------------------------------------------
    def build_ownership_payload(self, event: OwnershipChangeEvent) -> Dict[str, Any]:
        if event.is_gain:
            title, colour = "✅ BuyBox GAINED", GAIN_COLOUR
        elif event.is_loss:
            title, colour = "❌ BuyBox LOST", LOSS_COLOUR
        else:
            title, colour = "🔄 BuyBox CHANGED", CHANGE_COLOUR

        fields: List[Dict[str, Any]] = [
            _field("Previous Holder", event.old_holder_name or event.old_holder_id or "None"),
            _field("New Holder", event.new_holder_name or event.new_holder_id or "None"),
        ]
        if event.price is not None:
            fields.append(_field("Price", f"{event.currency} {event.price:.2f}"))

        return {
            "embeds": [{
                "title": title,
                "description": _describe_item(event.item_id, event.item_label),
                "color": colour,
                "fields": fields,
                "timestamp": event.occurred_at.isoformat(),
                "footer": {"text": event.kind.value},
            }]
        }

    def build_sale_payload(self, event: SaleEstimateEvent) -> Dict[str, Any]:
        fields = [
            _field("Seller", event.holder_name or event.holder_id),
            _field("Stock Change", f"{event.stock_before} → {event.stock_after}"),
            _field("Estimated Units Sold", event.units_estimated),
        ]
        if event.price is not None:
            fields.append(_field("Price", f"{event.currency} {event.price:.2f}"))

        return {
            "embeds": [{
                "title": "📉 Estimated Sale Detected",
                "description": _describe_item(event.item_id, event.item_label),
                "color": SALE_COLOUR,
                "fields": fields,
                "timestamp": event.occurred_at.isoformat(),
                "footer": {"text": event.kind.value},
            }]
        }

    def build_system_payload(self, title: str, message: str, level: AlertLevel = AlertLevel.INFO) -> Dict[str, Any]:
        return {
            "embeds": [{
                "title": f"{LEVEL_EMOJI[level]} {title}",
                "description": message,
                "color": level.colour,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }]
        }

    def build_payload(self, event: TrackingEvent) -> Dict[str, Any]:
        if event.kind == EventKind.OWNERSHIP_CHANGE:
            return self.build_ownership_payload(event)
        return self.build_sale_payload(event)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    def should_deliver(self, event: TrackingEvent) -> bool:
        if event.kind == EventKind.OWNERSHIP_CHANGE and not (event.is_gain or event.is_loss):
            return self._settings.ALERT_ON_THIRD_PARTY_CHANGES
        return True

    async def notify(self, webhook_url: Optional[str], event: TrackingEvent) -> bool:
        """Deliver one tracker event. Returns False instead of raising on any failure."""
        if not self.should_deliver(event):
            logger.debug(f"Skipping third-party BuyBox change alert for {event.item_id}")
            return False
        return await self._dispatch(webhook_url, self.build_payload(event))

    async def send_system_alert(
        self,
        webhook_url: Optional[str],
        title: str,
        message: str,
        level: AlertLevel = AlertLevel.INFO,
    ) -> bool:
        return await self._dispatch(webhook_url, self.build_system_payload(title, message, level))

    async def _dispatch(self, webhook_url: Optional[str], payload: Dict[str, Any]) -> bool:
        if not webhook_url:
            logger.warning("No webhook URL provided")
            return False
        try:
            await self._post(webhook_url, payload)
            logger.info("Webhook notification sent")
            return True
        except NotifyFailureError as exc:
            logger.error(f"Failed to send webhook notification: {exc}")
            return False
        except Exception as exc:  # pragma: no cover
            logger.error(f"Unexpected error sending webhook notification: {exc}", exc_info=True)
            return False

    async def _post(self, webhook_url: str, payload: Dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._settings.WEBHOOK_TIMEOUT_SECONDS) as client:
                response = await client.post(webhook_url, json=payload)
        except httpx.HTTPError as exc:
            raise NotifyFailureError(str(exc)) from exc

        if response.status_code not in (200, 204):
            raise NotifyFailureError(f"webhook returned status {response.status_code}")
