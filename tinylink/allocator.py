"""Short code allocation for new links.

The allocator turns a create-link request into exactly one stored row. A
caller-chosen code is inserted once; a generated code is retried with fresh
candidates until the store accepts one or the retry budget runs out.

Allocation Flow
===============
::
    ┌──────────────────┐
    │ allocate(url,    │
    │   code?)         │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐   invalid
    │ validate URL     ├──────────► InvalidTargetUrl
    └────────┬─────────┘
      code?  │
    ┌────────┴─────────┐
    │ YES              │ NO
    ▼                  ▼
┌──────────┐   ┌─────────────────────┐
│ validate │   │ for attempt in 1..N │◄─────────┐
│ format   │   └──────────┬──────────┘          │
└────┬─────┘              ▼                     │
     ▼             ┌─────────────┐  taken       │
┌──────────┐       │ find_by_code├──────────────┤
│ insert_if│       └──────┬──────┘              │
│ _absent  │              ▼                     │
└────┬─────┘       ┌─────────────┐  conflict    │
     │             │ insert_if_  ├──────────────┘
conflict?          │ absent      │
     ▼             └──────┬──────┘
 CodeTaken                ▼
                     Link (or AllocationExhausted after N)

How to Use
===========
**Step 1 — Build from settings**::
    allocator = CodeAllocator(store, RetryPolicy.from_settings(settings))

**Step 2 — Allocate**::
    link = await allocator.allocate("https://example.com")
    link = await allocator.allocate("https://example.com", requested_code="abc123")

**Step 3 — Deterministic tests**::
    policy = RetryPolicy(rng=random.Random(42))

Key Behaviours
===============
- The store's unique-index insert is the only uniqueness test that counts.
  The lookup before it only saves an insert attempt in the common case.
- A conflict on a caller-chosen code is final; it is never retried.
- Validation happens before any store access.
"""

import logging
import random
from dataclasses import dataclass, field

from tinylink.config import Settings
from tinylink.enums import AllocationFailure, AllocationMode, CollisionStage
from tinylink.errors import AllocationExhausted, CodeConflict, CodeTaken, InvalidCode, InvalidTargetUrl
from tinylink.metrics import (
    ALLOCATION_ATTEMPTS,
    ALLOCATION_FAILURES_TOTAL,
    CODE_COLLISIONS_TOTAL,
    LINKS_CREATED_TOTAL,
)
from tinylink.models import Link
from tinylink.store import LinkStore
from tinylink.validation import (
    CODE_ALPHABET,
    CODE_MAX_LENGTH,
    CODE_MIN_LENGTH,
    is_valid_code_format,
    is_valid_target_url,
)

__all__ = ["CodeAllocator", "RetryPolicy"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and candidate shape for generated codes.

    Attributes:
        max_attempts: Candidates tried before giving up.
        min_length: Shortest candidate, inclusive.
        max_length: Longest candidate, inclusive.
        alphabet: Characters drawn uniformly for each position.
        rng: Random source; defaults to the OS entropy pool.
    """

    max_attempts: int = 10
    min_length: int = CODE_MIN_LENGTH
    max_length: int = CODE_MAX_LENGTH
    alphabet: str = CODE_ALPHABET
    rng: random.Random = field(default_factory=random.SystemRandom, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if not CODE_MIN_LENGTH <= self.min_length <= self.max_length <= CODE_MAX_LENGTH:
            raise ValueError(
                f"length range [{self.min_length}, {self.max_length}] must lie within "
                f"[{CODE_MIN_LENGTH}, {CODE_MAX_LENGTH}]"
            )
        if not self.alphabet or not set(self.alphabet) <= set(CODE_ALPHABET):
            raise ValueError("alphabet must be a non-empty subset of [A-Za-z0-9]")

    @classmethod
    def from_settings(cls, settings: Settings, rng: random.Random | None = None) -> "RetryPolicy":
        return cls(
            max_attempts=settings.CODE_MAX_ATTEMPTS,
            min_length=settings.CODE_MIN_LENGTH,
            max_length=settings.CODE_MAX_LENGTH,
            rng=rng or random.SystemRandom(),
        )

    def candidate(self) -> str:
        length = self.rng.randint(self.min_length, self.max_length)
        return "".join(self.rng.choice(self.alphabet) for _ in range(length))


class CodeAllocator:
    """Allocates codes for new links against a ``LinkStore``."""

    def __init__(self, store: LinkStore, policy: RetryPolicy | None = None) -> None:
        self._store = store
        self.policy = policy or RetryPolicy()

    async def allocate(self, target_url: str, requested_code: str | None = None) -> Link:
        """Create a link for ``target_url`` and return the stored row.

        Args:
            target_url: Destination URL; surrounding whitespace is ignored.
            requested_code: Optional caller-chosen code. Blank means generate.

        Returns:
            Link: The row as re-read from the store.

        Raises:
            InvalidTargetUrl: If the URL is not an absolute http(s) URL.
            InvalidCode: If the requested code is not 6-8 letters or digits.
            CodeTaken: If the requested code already belongs to another link.
            AllocationExhausted: If every generated candidate was taken.
            StorageError: If the store fails.
        """
        target_url = (target_url or "").strip()
        if not is_valid_target_url(target_url):
            ALLOCATION_FAILURES_TOTAL.labels(reason=AllocationFailure.INVALID_FORMAT).inc()
            raise InvalidTargetUrl(target_url)

        code = (requested_code or "").strip()
        if code:
            link = await self._claim(code, target_url)
            LINKS_CREATED_TOTAL.labels(mode=AllocationMode.EXPLICIT).inc()
        else:
            link = await self._generate(target_url)
            LINKS_CREATED_TOTAL.labels(mode=AllocationMode.GENERATED).inc()

        logger.info(f"Link created: {link.code} -> {link.target_url}")
        return link

    async def _claim(self, code: str, target_url: str) -> Link:
        if not is_valid_code_format(code):
            ALLOCATION_FAILURES_TOTAL.labels(reason=AllocationFailure.INVALID_FORMAT).inc()
            raise InvalidCode(code)

        try:
            return await self._store.insert_if_absent(code, target_url)
        except CodeConflict as exc:
            ALLOCATION_FAILURES_TOTAL.labels(reason=AllocationFailure.CODE_TAKEN).inc()
            logger.info(f"Requested code already taken: {code}")
            raise CodeTaken(code) from exc

    async def _generate(self, target_url: str) -> Link:
        max_attempts = self.policy.max_attempts

        for attempt in range(1, max_attempts + 1):
            candidate = self.policy.candidate()

            if await self._store.find_by_code(candidate) is not None:
                CODE_COLLISIONS_TOTAL.labels(stage=CollisionStage.PRECHECK).inc()
                logger.info(f"Candidate {candidate} already exists (attempt {attempt}/{max_attempts})")
                continue

            try:
                link = await self._store.insert_if_absent(candidate, target_url)
            except CodeConflict:
                # another request claimed the candidate between lookup and insert
                CODE_COLLISIONS_TOTAL.labels(stage=CollisionStage.INSERT).inc()
                logger.info(f"Candidate {candidate} lost insert race (attempt {attempt}/{max_attempts})")
                continue

            ALLOCATION_ATTEMPTS.observe(attempt)
            return link

        ALLOCATION_FAILURES_TOTAL.labels(reason=AllocationFailure.EXHAUSTED).inc()
        logger.error(f"Failed to generate a unique short code after {max_attempts} attempts")
        raise AllocationExhausted(max_attempts)
