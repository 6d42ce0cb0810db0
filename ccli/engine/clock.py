"""Wall clock used to stamp ledger records."""
from __future__ import annotations

import dataclasses

import whenever


@dataclasses.dataclass(slots=True)
class AppClock:
    """Timezone-aware time source.

    Injected into the session controller so tests can pin timestamps instead
    of depending on the real wall clock.
    """

    timezone: str = "UTC"

    def now(self) -> whenever.ZonedDateTime:
        return whenever.ZonedDateTime.now(self.timezone)

    def __call__(self) -> whenever.ZonedDateTime:
        return self.now()
