from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class QuoteProvider(Provider):
    """Provider for conversion routes between two assets"""

    @abstractmethod
    async def get_quote(
        self,
        input_asset: str,
        output_asset: str,
        amount: int,
        slippage_bps: Optional[int] = None,
    ) -> Any:
        """Get a priced conversion route for an input amount in base units"""
        pass

    @abstractmethod
    async def build_conversion_transaction(self, quote: Any, caller_address: str) -> str:
        """Turn a quote into an unsigned base64 transaction"""
        pass


class BundleRelayProvider(Provider):
    """Provider for atomic bundle submission"""

    @abstractmethod
    async def send_bundle(self, transactions: Sequence[str]) -> str:
        """Submit signed transactions, return the relay's bundle id"""
        pass

    @abstractmethod
    async def get_bundle_statuses(self, bundle_id: str) -> Optional[Dict[str, Any]]:
        """Raw status result for one bundle"""
        pass


class ChainRpcProvider(Provider):
    """Provider for chain state reads and dry runs"""

    @abstractmethod
    async def get_latest_blockhash(self) -> str:
        pass

    @abstractmethod
    async def simulate_transaction(self, transaction: str) -> Any:
        pass

    @abstractmethod
    async def get_signature_statuses(self, signatures: Sequence[str]) -> List[Optional[Dict[str, Any]]]:
        pass
