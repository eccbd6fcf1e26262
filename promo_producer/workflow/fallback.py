"""
Provider Fallback Executor
==========================

Runs an ordered provider chain for one capability. Failures are recorded
in the project's ledger and the chain advances; a quota failure skips the
rest of that provider's class. The executor never raises.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Callable, Dict, Any

from ..api.base import BaseGenerationProvider, GenerationRequest, GenerationResult
from ..core.exceptions import QuotaError, VideoProducerError
from ..core.security import redact_api_key
from ..project.models import AssetReference, FailureLedger, ServiceFailure
from .audience import GateDecision

logger = logging.getLogger(__name__)


# Acceptance gate applied to each successful candidate
AcceptFn = Callable[[AssetReference], GateDecision]
# notify(level, service, message)
NotifyFn = Callable[[str, str, str], Any]


@dataclass
class FallbackResult:
    """Outcome of running one provider chain."""

    success: bool
    asset: Optional[GenerationResult] = None
    source: str = "none"
    attempts: List[str] = field(default_factory=list)
    failures: List[ServiceFailure] = field(default_factory=list)
    rejections: List[GateDecision] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "source": self.source,
            "asset_url": self.asset.asset_url if self.asset else None,
            "attempts": self.attempts,
            "failures": [f.to_dict() for f in self.failures],
            "rejections": [r.to_dict() for r in self.rejections],
            "skipped": self.skipped,
        }


class FallbackExecutor:
    """
    Ordered provider-chain runner shared by every capability.

    Usage:
        executor = FallbackExecutor(ctx.ledger, notifier=ctx.notify)
        result = await executor.run("images", chain, request)
        if result.success:
            url = result.asset.asset_url
    """

    def __init__(self, ledger: FailureLedger, notifier: Optional[NotifyFn] = None):
        self.ledger = ledger
        self.notifier = notifier

    def _record(self, result: FallbackResult, service: str, error: str, next_provider: Optional[str]) -> None:
        failure = self.ledger.record(service, redact_api_key(error), fallback_used=next_provider)
        result.failures.append(failure)

    def _notify(self, level: str, service: str, message: str) -> None:
        if self.notifier is not None:
            self.notifier(level, service, message)

    @staticmethod
    def _next_name(providers: List[BaseGenerationProvider], index: int, skip_classes: set) -> Optional[str]:
        for provider in providers[index + 1:]:
            if provider.provider_class not in skip_classes:
                return provider.provider_name
        return None

    def _first_accepted(
        self,
        provider: BaseGenerationProvider,
        generated: GenerationResult,
        accept: Optional[AcceptFn],
        result: FallbackResult,
    ) -> Optional[GenerationResult]:
        """The first candidate (primary or alternative) the gate accepts."""
        if accept is None:
            return generated

        for candidate in generated.candidates():
            if not candidate.asset_url and not candidate.asset_bytes:
                continue
            decision = accept(candidate.to_asset_reference(provider.provenance))
            if decision.accepted:
                return candidate
            result.rejections.append(decision)
        return None

    async def run(
        self,
        capability: str,
        providers: List[BaseGenerationProvider],
        request: GenerationRequest,
        accept: Optional[AcceptFn] = None,
    ) -> FallbackResult:
        """
        Try each provider in order until one produces an accepted asset.

        Args:
            capability: Label for logs (images, videos, music, sound)
            providers: Ordered chain
            request: Generation request
            accept: Optional gate; rejected candidates are not failures

        Returns:
            FallbackResult; ``success=False, source="none"`` when the chain is exhausted
        """
        result = FallbackResult(success=False)
        skip_classes = set()

        for index, provider in enumerate(providers):
            name = provider.provider_name

            if provider.provider_class in skip_classes:
                logger.info(f"[{capability}] Skipping {name}: {provider.provider_class} quota exhausted")
                result.skipped.append(name)
                continue

            result.attempts.append(name)

            try:
                generated = await provider.generate(request)

            except QuotaError as e:
                skip_classes.add(e.provider_class or provider.provider_class)
                self._record(result, name, f"Quota exhausted: {e}", self._next_name(providers, index, skip_classes))
                self._notify("error", name, f"Insufficient credits or quota for {name}")
                continue

            except VideoProducerError as e:
                self._record(result, name, str(e), self._next_name(providers, index, skip_classes))
                continue

            except Exception as e:
                logger.error(f"[{capability}] {name} raised {e.__class__.__name__}: {redact_api_key(str(e))}")
                self._record(result, name, f"{e.__class__.__name__}: {e}", self._next_name(providers, index, skip_classes))
                continue

            if not generated.success:
                error = generated.error_message or "No asset produced"
                self._record(result, name, error, self._next_name(providers, index, skip_classes))
                continue

            chosen = self._first_accepted(provider, generated, accept, result)
            if chosen is None:
                logger.info(f"[{capability}] All candidates from {name} rejected by gate")
                continue

            result.success = True
            result.asset = chosen
            result.source = name
            logger.info(f"[{capability}] Produced by {name} after {len(result.attempts)} attempt(s)")
            return result

        logger.warning(f"[{capability}] Chain exhausted: {len(result.failures)} failure(s), {len(result.rejections)} rejection(s)")
        return result

    async def run_single(
        self,
        capability: str,
        provider: BaseGenerationProvider,
        request: GenerationRequest,
    ) -> FallbackResult:
        """Run a single mandatory provider with the same never-raise contract."""
        result = await self.run(capability, [provider], request)
        if not result.success:
            self._notify("error", provider.provider_name, f"{capability} generation failed")
        return result
