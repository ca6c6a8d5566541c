"""Webhook fan-out for form events"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
from enum import Enum
import asyncio
import httpx
import logging

from waitlist.models.events import EventKind, EventRecord
from waitlist.models.webhooks import DeliveryReport, WebhookPayload, WebhookSpec
from waitlist.utils.retry import BoundedRetry, RetryState

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ExecutionContext(str, Enum):
    """Where the dispatcher runs; decides direct vs proxied delivery"""
    SERVER = "server"
    BROWSER = "browser"


def build_payload(spec: WebhookSpec, record: EventRecord) -> WebhookPayload:
    """
    Build the JSON body for one receiver

    Args:
        spec: Receiver configuration (decides which form fields are included)
        record: Event being delivered

    Returns:
        WebhookPayload with response only on success and error only on error
    """
    form_data = None
    if record.form_data is not None:
        if spec.field_selection == "all":
            form_data = dict(record.form_data)
        else:
            form_data = {
                name: record.form_data[name]
                for name in spec.field_selection
                if name in record.form_data
            }

    return WebhookPayload(
        event=record.kind,
        timestamp=record.timestamp.isoformat(),
        field=record.field if record.kind == EventKind.FIELD_FOCUS else None,
        form_data=form_data,
        response=record.response if record.kind == EventKind.SUCCESS else None,
        error=record.error if record.kind == EventKind.ERROR else None,
    )


class WebhookDispatcher:
    """
    Delivers event records to every subscribed webhook.

    Server context posts straight to each receiver and retries failed
    deliveries; browser context goes through the webhook proxy, once.
    Failures are logged and never raised.
    """

    def __init__(
        self,
        webhooks: Optional[List[WebhookSpec]] = None,
        context: ExecutionContext = ExecutionContext.SERVER,
        proxy_endpoint: Optional[str] = None,
        backoff_unit: float = 1.0,
        sleep: Sleep = asyncio.sleep,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhooks = list(webhooks or [])
        self.context = ExecutionContext(context)
        self.proxy_endpoint = proxy_endpoint
        self.backoff_unit = backoff_unit
        self.sleep = sleep
        self.timeout = timeout
        self.transport = transport
        self._pending: Set[asyncio.Task] = set()

    def subscribers(self, kind: EventKind) -> List[WebhookSpec]:
        return [spec for spec in self.webhooks if kind in spec.subscribed_events]

    async def _post(self, client: httpx.AsyncClient, url: str, headers: Dict[str, str], body: Any) -> Optional[int]:
        try:
            response = await client.post(url, headers=headers, json=body)
            return response.status_code
        except httpx.RequestError as e:
            logger.warning(f"Webhook request to {url} failed: {e}")
            return None

    async def _deliver_direct(self, client: httpx.AsyncClient, spec: WebhookSpec, payload: WebhookPayload) -> DeliveryReport:
        headers = {"Content-Type": "application/json", **spec.headers}
        retry = BoundedRetry(max_retries=spec.max_retries if spec.retry else 0, backoff_unit=self.backoff_unit)
        status_code = None

        while not retry.done:
            status_code = await self._post(client, spec.url, headers, payload.to_json())
            if status_code is not None and 200 <= status_code < 300:
                retry.record_success()
                break

            delay = retry.record_failure()
            if delay is None:
                logger.error(
                    f"Webhook to {spec.url} failed after {retry.attempts} attempt(s), giving up "
                    f"(last status: {status_code})"
                )
                break

            logger.warning(f"Webhook to {spec.url} returned {status_code}, retrying in {delay}s (attempt {retry.attempts}/{spec.max_retries})")
            await self.sleep(delay)

        return DeliveryReport(
            url=spec.url,
            delivered=retry.state == RetryState.SUCCEEDED,
            attempts=retry.attempts,
            status_code=status_code,
        )

    async def _deliver_via_proxy(self, client: httpx.AsyncClient, spec: WebhookSpec, payload: WebhookPayload) -> DeliveryReport:
        body = {"destination": spec.url, "headers": spec.headers, "payload": payload.to_json()}
        try:
            response = await client.post(self.proxy_endpoint, json=body)
        except httpx.RequestError as e:
            logger.error(f"Webhook proxy request for {spec.url} failed: {e}")
            return DeliveryReport(url=spec.url, delivered=False, attempts=1)

        if not response.is_success:
            logger.error(f"Webhook proxy refused delivery to {spec.url} (status: {response.status_code})")
            return DeliveryReport(url=spec.url, delivered=False, attempts=1, status_code=response.status_code)

        # The proxy answers 200 and reports the receiver's own status in the body
        try:
            result = response.json()
        except ValueError:
            result = None
        if not isinstance(result, dict):
            logger.error(f"Webhook proxy returned an unreadable answer for {spec.url}")
            return DeliveryReport(url=spec.url, delivered=False, attempts=1, status_code=response.status_code)

        delivered = result.get("success") is True
        status_code = result.get("statusCode")
        if not delivered:
            logger.error(f"Webhook proxy delivery to {spec.url} failed (receiver status: {status_code})")
        return DeliveryReport(
            url=spec.url,
            delivered=delivered,
            attempts=1,
            status_code=status_code if isinstance(status_code, int) else None,
        )

    async def deliver(self, client: httpx.AsyncClient, spec: WebhookSpec, record: EventRecord) -> DeliveryReport:
        if record.kind not in spec.subscribed_events:
            return DeliveryReport(url=spec.url, delivered=False, skipped=True)

        payload = build_payload(spec, record)

        if self.context == ExecutionContext.BROWSER:
            if not self.proxy_endpoint:
                logger.warning(f"No webhook proxy endpoint configured, skipping webhook to {spec.url}")
                return DeliveryReport(url=spec.url, delivered=False, skipped=True)
            return await self._deliver_via_proxy(client, spec, payload)

        return await self._deliver_direct(client, spec, payload)

    async def dispatch(self, record: EventRecord) -> List[DeliveryReport]:
        """Deliver one record to all subscribed receivers concurrently"""
        specs = self.subscribers(record.kind)
        if not specs:
            return []

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return list(await asyncio.gather(*(self.deliver(client, spec, record) for spec in specs)))
        except Exception as e:
            logger.error(f"Webhook dispatch for {record.kind.value} event failed: {e}")
            return []

    def dispatch_in_background(self, record: EventRecord) -> Optional[asyncio.Task]:
        """Schedule dispatch without waiting for it"""
        if not self.subscribers(record.kind):
            return None
        task = asyncio.ensure_future(self.dispatch(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every background dispatch to finish"""
        while self._pending:
            pending = list(self._pending)
            await asyncio.gather(*pending, return_exceptions=True)
            self._pending.difference_update(pending)
