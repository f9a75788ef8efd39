"""Two-tier cache for compiled scripts and lookup results.

Memory tier: process lifetime, always a hit once populated.
File tier: one file per key under the cache directory. An entry's age is
taken from the file mtime.

    age <= ttl           fresh, served directly
    ttl < age <= grace   served only when a live refresh fails
    age > grace          treated as absent
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import msgspec

from slc.cache.keys import make_key
from slc.exceptions import RefreshError

log = logging.getLogger(__name__)


class CacheEntry(msgspec.Struct, frozen=True):
    """A cached value with its provenance."""

    key: str
    value: Any
    created_at: float  # unix seconds
    ttl: int
    domain: str


def _domain_of(key: str) -> str:
    return key.split("-", 1)[0]


class CacheManager:
    """Memory + file cache with TTL and a stale grace window."""

    def __init__(
        self,
        cache_dir: Path,
        ttl: int = 30,
        grace: int = 300,
        clock: Callable[[], float] = time.time,
    ):
        if grace < ttl:
            raise ValueError(f"grace ({grace}) must be >= ttl ({ttl})")
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self.grace = grace
        self.clock = clock
        self._memory: dict[str, CacheEntry] = {}

    def key(self, domain: str, fields: Any) -> str:
        return make_key(domain, fields)

    def path_for(self, key: str) -> Path:
        return self.cache_dir / key

    # =========================================================================
    # File tier
    # =========================================================================

    def read_entry(self, key: str, ttl: Optional[int] = None) -> CacheEntry | None:
        """Read an entry from the file tier regardless of its age."""
        path = self.path_for(key)
        try:
            created_at = path.stat().st_mtime
            value = path.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            log.debug(f"Cache read failed for {path}: {e}")
            return None
        return CacheEntry(
            key=key,
            value=value,
            created_at=created_at,
            ttl=self.ttl if ttl is None else ttl,
            domain=_domain_of(key),
        )

    def _write_file(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{key}.")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(value)
                os.replace(tmp, path)
            except OSError:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            log.debug(f"Cache write failed for {path}: {e}")
            return
        log.debug(f"Cached {key} at {path}")

    def age(self, entry: CacheEntry) -> float:
        return self.clock() - entry.created_at

    # =========================================================================
    # Public API
    # =========================================================================

    def get(
        self,
        key: str,
        refresh: Optional[Callable[[], str]] = None,
        ttl: Optional[int] = None,
        grace: Optional[int] = None,
    ) -> Any:
        """Look up ``key``, refreshing or serving stale data as allowed.

        Args:
            key: Cache key from ``key()``.
            refresh: Produces a fresh value. May raise RefreshError.
            ttl: Override the manager's TTL for this lookup.
            grace: Override the manager's grace window for this lookup.

        Returns:
            The cached or refreshed value, or None when nothing usable exists.
        """
        ttl = self.ttl if ttl is None else ttl
        grace = self.grace if grace is None else grace

        entry = self._memory.get(key)
        if entry is not None:
            log.debug(f"Memory hit for {key}")
            return entry.value

        file_entry = self.read_entry(key, ttl)
        if file_entry is not None and self.age(file_entry) <= ttl:
            log.debug(f"File hit for {key}")
            self._memory[key] = file_entry
            return file_entry.value

        if refresh is not None:
            try:
                value = refresh()
            except RefreshError as e:
                log.debug(f"Refresh failed for {key}: {e}")
            else:
                self.set(key, value, ttl=ttl)
                return value

        if file_entry is not None and self.age(file_entry) <= grace:
            log.info(f"Serving stale {key} (age {self.age(file_entry):.0f}s)")
            return file_entry.value

        return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> CacheEntry:
        """Store a value in both tiers."""
        entry = CacheEntry(
            key=key,
            value=value,
            created_at=self.clock(),
            ttl=self.ttl if ttl is None else ttl,
            domain=_domain_of(key),
        )
        self._memory[key] = entry
        self._write_file(key, value)
        return entry

    def memoize(self, key: str, factory: Callable[[], Any]) -> Any:
        """Memory-only cache for in-process objects."""
        entry = self._memory.get(key)
        if entry is not None:
            return entry.value
        value = factory()
        self._memory[key] = CacheEntry(
            key=key,
            value=value,
            created_at=self.clock(),
            ttl=self.ttl,
            domain=_domain_of(key),
        )
        return value

    def invalidate(self, key: str) -> None:
        self._memory.pop(key, None)
        self.path_for(key).unlink(missing_ok=True)

    def __contains__(self, key: str) -> bool:
        """True when either tier holds ``key``, regardless of age."""
        return key in self._memory or self.path_for(key).exists()


def command_refresh(
    args: Iterable[str], timeout: int = 3, key: str = "command"
) -> Callable[[], str]:
    """Build a refresh function that runs a command and returns its stdout.

    A non-zero exit, a timeout or a missing executable raises RefreshError so
    the cache can fall back to a stale entry.
    """
    argv = list(args)

    def refresh() -> str:
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise RefreshError(key, f"{argv[0]} exited with {e.returncode}") from e
        except subprocess.TimeoutExpired as e:
            raise RefreshError(key, f"{argv[0]} timed out after {timeout}s") from e
        except OSError as e:
            raise RefreshError(key, str(e)) from e
        return result.stdout

    return refresh
