# fraudscore/domain/services/signals_service.py
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, List, Optional, Tuple

from fraudscore.domain.entities.risk import DeviceSignals, RiskSignals, TransactionRiskInput
from fraudscore.domain.services.history_service import HistoryStore
from fraudscore.infra.detectors.device_intel import DeviceIntelClient

logger = logging.getLogger(__name__)


class SignalGatherer:
    """
    Collects velocity and device data for one transaction.

    Every lookup is bounded by `timeout`. A lookup that fails or times out is
    reported in `RiskSignals.degraded` and its heuristic falls back to the
    no-data default (zero velocity, unrecognized device).
    """

    def __init__(
        self,
        history: HistoryStore,
        device_intel: DeviceIntelClient,
        velocity_window: timedelta = timedelta(minutes=60),
        timeout: float = 2.0,
    ):
        self.history = history
        self.device_intel = device_intel
        self.velocity_window = velocity_window
        self.timeout = timeout

    async def bounded(self, name: str, call: Awaitable[Any]) -> Tuple[Any, bool]:
        """Awaits `call` under the lookup timeout. Returns (value, ok); never raises."""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout), True
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ '{name}' timed out after {self.timeout}s")
        except Exception as e:
            logger.warning(f"⚠️ '{name}' failed: {e}")
        return None, False

    async def gather(self, tx: TransactionRiskInput, moment: datetime) -> RiskSignals:
        degraded: List[str] = []

        velocity_call = self.history.count_recent_transactions(
            tx.user_id,
            until=moment,
            window=self.velocity_window,
            exclude_transaction_id=tx.transaction_id,
        )

        if not tx.device_fingerprint:
            count, velocity_ok = await self.bounded("velocity", velocity_call)
            device: Optional[DeviceSignals] = None
        else:
            (count, velocity_ok), (known, known_ok), (verdict, intel_ok) = await asyncio.gather(
                self.bounded("velocity", velocity_call),
                self.bounded("device_history", self.history.is_known_device(tx.user_id, tx.device_fingerprint)),
                self.bounded("device_intel", self.device_intel.lookup(tx.device_fingerprint, tx.ip_address)),
            )
            if known_ok and intel_ok:
                device = DeviceSignals(
                    known_device=bool(known),
                    vpn_detected=verdict.vpn,
                    emulator_detected=verdict.emulator,
                )
            else:
                device = None
                if not known_ok:
                    degraded.append("device_history")
                if not intel_ok:
                    degraded.append("device_intel")

        if not velocity_ok:
            degraded.insert(0, "velocity")
            count = 0

        return RiskSignals(
            recent_transaction_count=int(count or 0),
            device=device,
            degraded=tuple(degraded),
        )
