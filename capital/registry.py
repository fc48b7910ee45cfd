"""
capital/registry.py - Provider registry and selection policy.

SELECTION POLICY ("auto"):
  1. enabled providers on the loan network that can fund the amount
     (amount <= max_loan_amount and <= available liquidity)
  2. lowest fee_bps
  3. ties: highest available liquidity, then provider_id
"""

from typing import Iterable, Iterator, Optional

from core.constants import AUTO_PROVIDER, SELF_FUNDED
from core.exceptions import InvalidRouteError
from core.logging import get_logger
from capital.providers import CapitalProvider

logger = get_logger("engine.capital")


class ProviderRegistry:
    """Capital providers keyed by provider_id."""

    def __init__(self, providers: Iterable[CapitalProvider] = ()):
        self._providers: dict[str, CapitalProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: CapitalProvider) -> None:
        if provider.provider_id in (SELF_FUNDED, AUTO_PROVIDER):
            raise ValueError(f"Reserved provider id: {provider.provider_id}")
        if provider.provider_id in self._providers:
            raise ValueError(f"Provider already registered: {provider.provider_id}")
        self._providers[provider.provider_id] = provider
        logger.info(
            f"Registered capital provider {provider.provider_id}",
            extra={
                "context": {
                    "provider": provider.provider_id,
                    "fee_bps": provider.fee_bps,
                    "max_loan_amount": provider.max_loan_amount,
                    "network": provider.network,
                }
            },
        )

    def get(self, provider_id: str) -> Optional[CapitalProvider]:
        return self._providers.get(provider_id)

    def set_enabled(self, provider_id: str, enabled: bool) -> None:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise KeyError(provider_id)
        provider.enabled = enabled

    def candidates(self, asset: str, amount: int, network: str = "") -> list[CapitalProvider]:
        """Providers able to fund amount of asset, best first."""
        eligible = [
            p for p in self._providers.values()
            if p.enabled
            and (not p.network or not network or p.network == network)
            and amount <= p.max_loan_amount
            and amount <= p.available_liquidity(asset)
        ]
        return sorted(
            eligible,
            key=lambda p: (p.fee_bps, -p.available_liquidity(asset), p.provider_id),
        )

    def resolve(self, provider_id: str, asset: str, amount: int, network: str = "") -> CapitalProvider:
        """
        Map a request's capital_provider onto a registered provider.

        Limits of an explicitly named provider are not checked here; they
        surface as LOAN_FAILED when the loan is initiated.

        Raises:
            InvalidRouteError: Unknown or disabled provider, provider on
                another network, or no provider able to fund an "auto" loan
        """
        details = {"provider": provider_id, "asset": asset, "amount": amount, "network": network}

        if provider_id == AUTO_PROVIDER:
            ranked = self.candidates(asset, amount, network)
            if not ranked:
                raise InvalidRouteError(
                    f"No capital provider can fund {amount} {asset}", details=details
                )
            return ranked[0]

        provider = self._providers.get(provider_id)
        if provider is None:
            raise InvalidRouteError(f"Unknown capital provider: {provider_id}", details=details)
        if not provider.enabled:
            raise InvalidRouteError(f"Capital provider disabled: {provider_id}", details=details)
        if provider.network and network and provider.network != network:
            raise InvalidRouteError(
                f"Capital provider {provider_id} is on {provider.network}, loan needs {network}",
                details=details,
            )
        return provider

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def __iter__(self) -> Iterator[CapitalProvider]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)
