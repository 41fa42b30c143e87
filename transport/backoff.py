"""
Reconnect policy for the push channel.

Exponential backoff: attempt n (1-based) waits base_delay * 2^(n-1).
With the defaults (1.0s base, 5 attempts) that is 1s, 2s, 4s, 8s, 16s,
then the channel gives up and reports ConnectionState.LOST.

Lifecycle on an unexpected close:
    CONNECTED → (close) → attempts++ → RECONNECTING → sleep(delay) → connect
    CONNECTED → (close) → attempts > max → LOST (no more retries)

A successful open resets the counter, so each outage gets the full budget.
"""

from dataclasses import dataclass


@dataclass
class ReconnectPolicy:
    base_delay: float = 1.0    # seconds
    max_attempts: int = 5
    factor: float = 2.0
    attempts: int = 0

    def next_delay(self) -> float | None:
        """
        Register one more failed connection and return how long to wait
        before the next try, or None when the budget is spent.
        """
        if self.attempts >= self.max_attempts:
            return None
        self.attempts += 1
        return self.base_delay * self.factor ** (self.attempts - 1)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def reset(self) -> None:
        self.attempts = 0
