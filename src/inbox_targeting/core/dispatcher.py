"""Locale-strict push dispatch to a pluggable delivery provider.

The dispatcher narrows a target list to the devices that have content in
their own locale, pairs each with its localized payload and hands the batch
to the provider in a single call. Per-recipient failures are reported in the
result; only an unreachable provider raises.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from uuid import uuid4

from inbox_targeting.core.push_rules import matches_locale
from inbox_targeting.types import (
    BatchDeliveryReport,
    DeliveryProvider,
    DispatchResult,
    OutboundPush,
    PushContent,
    PushTarget,
    RecipientOutcome,
)
from inbox_targeting.utils.logging import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)
from inbox_targeting.utils.sanitization import sanitize_exception

__all__ = ["DispatchError", "PushDispatcher", "build_outbound"]

type CorrelationIDFactory = Callable[[], str]


class DispatchError(Exception):
    """Raised when the delivery provider could not be reached.

    Carries the targeting already computed so callers can retry the
    dispatch alone without re-running eligibility.
    """

    provider_name: str
    target_count: int
    included_count: int
    targets: tuple[OutboundPush, ...]
    __cause__: BaseException | None

    def __init__(
        self,
        provider_name: str,
        *,
        target_count: int,
        targets: Sequence[OutboundPush],
        cause: BaseException | None = None,
    ) -> None:
        detail = sanitize_exception(cause) if cause is not None else "unknown error"
        super().__init__(f"Push dispatch via {provider_name} failed: {detail}")
        self.provider_name = provider_name
        self.target_count = target_count
        self.targets = tuple(targets)
        self.included_count = len(self.targets)
        if cause is not None:
            self.__cause__ = cause


def build_outbound(
    targets: Sequence[PushTarget],
    content_hr: PushContent,
    content_en: PushContent | None,
) -> list[OutboundPush]:
    """Pair each target with content in its own locale, dropping the rest.

    There is no fallback: an English device gets nothing when no English
    content is supplied.
    """
    outbound: list[OutboundPush] = []
    for target in targets:
        if not matches_locale(target.locale, content_en is not None):
            continue
        content = content_en if target.locale == "en" and content_en is not None else content_hr
        outbound.append(OutboundPush(token=target.token, content=content))
    return outbound


class PushDispatcher:
    """Send localized push batches through one delivery provider."""

    def __init__(
        self,
        provider: DeliveryProvider,
        *,
        correlation_id_factory: CorrelationIDFactory | None = None,
        logger_obj: logging.Logger | None = None,
        dry_run_enabled: bool = False,
    ) -> None:
        self._provider: DeliveryProvider = provider
        self._correlation_id_factory: CorrelationIDFactory = (
            correlation_id_factory or (lambda: uuid4().hex)
        )
        self._logger: logging.Logger = logger_obj or get_logger(__name__)
        self._dry_run_enabled: bool = dry_run_enabled

    @property
    def provider_name(self) -> str:
        return self._provider.name

    async def send(
        self,
        targets: Sequence[PushTarget],
        content_hr: PushContent,
        content_en: PushContent | None = None,
    ) -> DispatchResult:
        """Dispatch one push to ``targets``.

        Args:
            targets: Devices considered for this send
            content_hr: Croatian content, always present
            content_en: English content, or None when the message has none

        Returns:
            Counts of considered, included, delivered and failed recipients

        Raises:
            DispatchError: If the provider raised instead of reporting
        """
        if not targets:
            return DispatchResult(
                target_count=0,
                included_count=0,
                success_count=0,
                failure_count=0,
                provider_name=self._provider.name,
            )

        outbound = build_outbound(targets, content_hr, content_en)
        owns_correlation_id = get_correlation_id() is None
        correlation_id = get_correlation_id() or self._correlation_id_factory()
        set_correlation_id(correlation_id)

        try:
            log_with_context(
                self._logger,
                logging.INFO,
                "Dispatching push",
                extra={
                    "provider_name": self._provider.name,
                    "target_count": len(targets),
                    "included_count": len(outbound),
                    "has_english_content": content_en is not None,
                },
            )

            if not outbound:
                return self._result(len(targets), outbound, BatchDeliveryReport(outcomes=()), correlation_id)

            if self._dry_run_enabled:
                return self._handle_dry_run(len(targets), outbound, correlation_id)

            try:
                report = await self._provider.send_batch(outbound)
            except Exception as exc:
                log_with_context(
                    self._logger,
                    logging.ERROR,
                    "Push provider unreachable",
                    extra={
                        "provider_name": self._provider.name,
                        "included_count": len(outbound),
                        "error_message": sanitize_exception(exc),
                    },
                )
                raise DispatchError(
                    self._provider.name,
                    target_count=len(targets),
                    targets=outbound,
                    cause=exc,
                ) from exc

            result = self._result(len(targets), outbound, report, correlation_id)
            log_with_context(
                self._logger,
                logging.INFO if result.failure_count == 0 else logging.WARNING,
                "Push dispatch completed",
                extra={
                    "provider_name": self._provider.name,
                    "included_count": result.included_count,
                    "success_count": result.success_count,
                    "failure_count": result.failure_count,
                },
            )
            return result
        finally:
            if owns_correlation_id:
                clear_correlation_id()

    def _result(
        self,
        target_count: int,
        outbound: Sequence[OutboundPush],
        report: BatchDeliveryReport,
        correlation_id: str,
    ) -> DispatchResult:
        return DispatchResult(
            target_count=target_count,
            included_count=len(outbound),
            success_count=report.success_count,
            failure_count=report.failure_count,
            provider_name=self._provider.name,
            outcomes=report.outcomes,
            provider_response=report.provider_response,
            correlation_id=correlation_id,
        )

    def _handle_dry_run(
        self,
        target_count: int,
        outbound: Sequence[OutboundPush],
        correlation_id: str,
    ) -> DispatchResult:
        """Report synthetic success without contacting the provider."""
        log_with_context(
            self._logger,
            logging.INFO,
            "Dry-run push recorded",
            extra={
                "provider_name": self._provider.name,
                "included_count": len(outbound),
                "titles": sorted({push.content.title for push in outbound}),
            },
        )
        report = BatchDeliveryReport(
            outcomes=tuple(RecipientOutcome(token=push.token, success=True) for push in outbound),
            provider_response={"dry_run": True},
        )
        return self._result(target_count, outbound, report, correlation_id)
