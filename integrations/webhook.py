"""
Workflow engine (n8n) webhook integration.

Contract emailing and reminders run in n8n; the backend only posts a JSON
payload to the configured webhook path.
"""

from typing import Any, Optional
import requests
import structlog

from config import settings
from exceptions import WebhookError

logger = structlog.get_logger(__name__)


def build_webhook_url(path: Optional[str]) -> Optional[str]:
    """
    Join the workflow engine base URL and a webhook path.

    Returns:
        Full URL, or None if either part is not configured
    """
    if not settings.n8n_base_url or not path:
        return None
    return f"{settings.n8n_base_url.rstrip('/')}/{path.lstrip('/')}"


def send_webhook(path: Optional[str], payload: dict[str, Any]) -> bool:
    """
    Post a payload to a workflow webhook.

    Args:
        path: Webhook path (from settings)
        payload: JSON-serializable body

    Returns:
        True if delivered, False if webhooks are not configured

    Raises:
        WebhookError: If the request fails or returns an error status
    """
    url = build_webhook_url(path)

    if not url:
        logger.warning("webhook_not_configured_skipping_send", path=path)
        return False

    try:
        logger.info("sending_webhook", url=url)

        response = requests.post(
            url,
            json=payload,
            timeout=settings.webhook_timeout_seconds
        )
        response.raise_for_status()

        logger.info("webhook_sent", url=url, status_code=response.status_code)
        return True

    except requests.exceptions.RequestException as e:
        logger.error("webhook_request_failed", url=url, error=str(e))
        raise WebhookError(
            f"Failed to call workflow webhook: {str(e)}",
            details={"url": url}
        )


def notify_sales_confirmed(payload: dict[str, Any]) -> bool:
    """Fire the sales confirmation workflow (contract email)."""
    return send_webhook(settings.n8n_sales_confirmation_webhook, payload)


def notify_sales_draft(payload: dict[str, Any]) -> bool:
    """Fire the sales draft workflow."""
    return send_webhook(settings.n8n_sales_draft_webhook, payload)


def notify_sales_order_created(payload: dict[str, Any]) -> bool:
    """Fire the contract generation workflow for a new sales order."""
    return send_webhook(settings.n8n_sales_contract_webhook, payload)
