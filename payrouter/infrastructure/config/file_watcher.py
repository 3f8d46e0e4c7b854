"""File watcher for configuration hot reload."""

import asyncio
import contextlib
import threading
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.infrastructure.config.file_loader import ConfigurationError
from payrouter.infrastructure.config.manager import ConfigurationManager


class ConfigurationFileHandler(FileSystemEventHandler):
    """Schedules a debounced reload on the router's event loop when the file changes.

    Watchdog delivers events on its own thread; the reload itself always runs
    on ``event_loop`` through ``run_coroutine_threadsafe``.
    """

    def __init__(
        self,
        config_manager: ConfigurationManager,
        config_file_path: Path,
        event_loop: asyncio.AbstractEventLoop,
        debounce_seconds: float = 1.0,
        observability_manager: ObservabilityManager | None = None,
    ) -> None:
        """Initialize ConfigurationFileHandler.

        Args:
            config_manager: Manager that publishes the reloaded snapshot.
            config_file_path: File to react to; events for other paths are ignored.
            event_loop: Loop the reload coroutine runs on.
            debounce_seconds: Quiet period after the last change before reloading.
            observability_manager: Optional ObservabilityManager for logging and events.
        """
        self._config_manager = config_manager
        self._config_file_path = config_file_path.resolve()
        self._event_loop = event_loop
        self._debounce_seconds = debounce_seconds
        self._observability = observability_manager

        self._reload_task: asyncio.Task[None] | None = None
        self._reload_lock = threading.Lock()
        self._closed = False

    def on_modified(self, event: FileSystemEvent) -> None:
        self._maybe_schedule(event)

    def on_created(self, event: FileSystemEvent) -> None:
        # Editors that save via rename produce a create instead of a modify.
        self._maybe_schedule(event)

    def _maybe_schedule(self, event: FileSystemEvent) -> None:
        if self._closed or event.is_directory:
            return
        if Path(str(event.src_path)).resolve() != self._config_file_path:
            return
        if not self._event_loop.is_running():
            return
        asyncio.run_coroutine_threadsafe(self._debounced_reload(), self._event_loop)

    async def _debounced_reload(self) -> None:
        """Restart the debounce timer; only the last change in a burst reloads."""
        with self._reload_lock:
            if self._closed:
                return
            pending = self._reload_task
            self._reload_task = asyncio.create_task(self._reload_after_delay())

        if pending and not pending.done():
            pending.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pending

    def cancel_pending(self) -> bool:
        """Cancel a debounced reload that has not run yet and ignore later events.

        Must be called from the event loop thread.

        Returns:
            True if a pending reload was cancelled.
        """
        with self._reload_lock:
            self._closed = True
            pending, self._reload_task = self._reload_task, None
        if pending is None or pending.done():
            return False
        pending.cancel()
        return True

    async def _reload_after_delay(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        await self.reload()

    async def reload(self) -> bool:
        """Reload the file now.

        Returns:
            True if a new snapshot was published. On failure the previous
            snapshot keeps being served and the error is logged.
        """
        context = {"config_file": str(self._config_file_path)}
        previous_version = self._config_manager.version
        try:
            await self._config_manager.reload_configuration()
        except ConfigurationError as e:
            if self._observability:
                await self._observability.log(
                    level="ERROR",
                    message="Configuration reload failed, keeping previous snapshot",
                    context={**context, "error": str(e), "version": previous_version},
                )
            return False

        if self._observability:
            await self._observability.log(
                level="INFO",
                message="Configuration reloaded from file",
                context={
                    **context,
                    "previous_version": previous_version,
                    "version": self._config_manager.version,
                },
            )
            await self._observability.emit_event(
                event_type="configuration_file_reloaded",
                payload={**context, "version": self._config_manager.version},
                metadata={},
            )
        return True


class ConfigurationFileWatcher:
    """Watches the configuration file and hot-reloads it on change.

    Must be started from inside a running event loop.
    """

    def __init__(
        self,
        config_manager: ConfigurationManager,
        config_file_path: str | Path,
        debounce_seconds: float = 1.0,
        observability_manager: ObservabilityManager | None = None,
    ) -> None:
        """Initialize ConfigurationFileWatcher.

        Args:
            config_manager: Manager whose file is reloaded on change.
            config_file_path: Configuration file to watch.
            debounce_seconds: Quiet period after the last change before reloading.
            observability_manager: Optional ObservabilityManager for logging and events.
        """
        self._config_manager = config_manager
        self._config_file_path = Path(config_file_path)
        self._debounce_seconds = debounce_seconds
        self._observability = observability_manager

        self._observer: Observer | None = None
        self._handler: ConfigurationFileHandler | None = None

    @property
    def handler(self) -> ConfigurationFileHandler | None:
        """Event handler of the running watch, or None when stopped."""
        return self._handler

    def start(self) -> None:
        """Start watching the configuration file.

        Raises:
            RuntimeError: If already started or no event loop is running.
        """
        if self.is_watching():
            raise RuntimeError("File watcher is already started")

        loop = asyncio.get_running_loop()
        self._handler = ConfigurationFileHandler(
            config_manager=self._config_manager,
            config_file_path=self._config_file_path,
            event_loop=loop,
            debounce_seconds=self._debounce_seconds,
            observability_manager=self._observability,
        )

        self._observer = Observer()
        self._observer.schedule(
            self._handler,
            path=str(self._config_file_path.resolve().parent),
            recursive=False,
        )
        self._observer.start()

    def stop(self) -> None:
        """Stop watching and cancel any debounced reload still pending.

        Call from the event loop thread the watcher was started on.
        """
        if self._handler is not None:
            self._handler.cancel_pending()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
        self._observer = None
        self._handler = None

    def is_watching(self) -> bool:
        """Whether the watchdog observer thread is running.

        Returns:
            True between a successful start() and stop().
        """
        return self._observer is not None and self._observer.is_alive()
