"""
Polling vault watcher.

A daemon thread that:
1. Lists the vault through the cache every poll_interval seconds
2. Compares file mtimes against the previous snapshot
3. Enqueues a cache refresh for any file that changed, appeared or disappeared
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Optional

log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class VaultWatcher:
    """
    Polling-based vault watcher.

    Usage:
        watcher = VaultWatcher(cache, poll_interval=5.0)
        watcher.start()
        ...
        watcher.stop()

    The cache supplies the vault root and exclusions (walk_files()) and
    receives changes through enqueue_refresh().
    """

    def __init__(
        self,
        cache,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache
        self._poll_interval = poll_interval
        self._log = logger or log
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Known files and their mtimes from the last poll cycle
        self._known_files: Dict[Path, float] = {}

    def start(self) -> None:
        """Start the polling thread (daemon)."""
        self._log.info("Starting vault watcher (polling every %.1fs)", self._poll_interval)
        self._known_files = self.snapshot()

        self._thread = threading.Thread(target=self._poll_loop, daemon=True, name="vault-watcher")
        self._thread.start()

    def stop(self) -> None:
        """Signal the poll thread to stop and wait for it."""
        self._log.info("Stopping vault watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _poll_loop(self) -> None:
        """Main polling loop; runs until stop_event is set."""
        while not self._stop_event.is_set():
            self._stop_event.wait(self._poll_interval)
            if self._stop_event.is_set():
                break
            try:
                self.check_for_changes()
            except Exception:
                self._log.exception("Error during poll cycle")

    def check_for_changes(self) -> int:
        """Single poll cycle. Returns the number of refreshes enqueued."""
        current_files = self.snapshot()
        changed = 0

        for path, mtime in current_files.items():
            old_mtime = self._known_files.get(path)
            if old_mtime is None:
                self._log.debug("New file detected: %s", path)
            elif mtime > old_mtime:
                self._log.debug("Modified file: %s", path)
            else:
                continue
            self._cache.enqueue_refresh(path)
            changed += 1

        for path in self._known_files:
            if path not in current_files:
                self._log.debug("Deleted file: %s", path)
                self._cache.enqueue_refresh(path)
                changed += 1

        self._known_files = current_files
        return changed

    def snapshot(self) -> Dict[Path, float]:
        """Walk the vault and return {path: mtime} for every indexed file."""
        snapshot: Dict[Path, float] = {}
        try:
            for path in self._cache.walk_files():
                try:
                    snapshot[path] = path.stat().st_mtime
                except OSError:
                    pass
        except OSError:
            self._log.exception("Error walking vault")
        return snapshot
