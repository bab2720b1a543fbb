from __future__ import annotations

import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .config import MonitorConfig
from .errors import AlreadyStartedError, NilSinkError, NotStartedError
from .fanout import Outbox
from .models import RestockEvent, Target, Task
from .poller import Poller
from .proxy import ProxyPool
from .session import BuildIdCache
from .targets import parse_target_url
from .transport import CurlTransport, Transport

logger = logging.getLogger(__name__)

PollerFactory = Callable[..., Poller]


@dataclass(frozen=True)
class _AddTask:
    task: Task


@dataclass(frozen=True)
class _RemoveTask:
    task_id: str


@dataclass(frozen=True)
class _Restock:
    poller: Poller
    event: RestockEvent


@dataclass(frozen=True)
class _Snapshot:
    reply: "queue.Queue[Dict[str, int]]" = field(default_factory=lambda: queue.Queue(maxsize=1))


@dataclass(frozen=True)
class _Shutdown:
    done: threading.Event = field(default_factory=threading.Event)


class Monitor:
    """Owns the target/task registry and the pollers.

    Every registry change (add, remove, restock fan-out, shutdown) is a
    message on one queue consumed by a single control-loop thread, so the
    registry itself needs no lock. Public methods only validate and post
    messages; nothing in the loop waits on the network.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        transport: Optional[Transport] = None,
        session: Optional[BuildIdCache] = None,
        poller_factory: Optional[PollerFactory] = None,
    ) -> None:
        self._config = config or MonitorConfig()
        self._config.validate()
        self._proxy_pool = ProxyPool(self._config.parsed_proxies())
        self._transport: Transport = transport or CurlTransport(
            user_agent=self._config.user_agent,
            proxy_pool=self._proxy_pool,
            impersonate=self._config.impersonate,
            timeout=self._config.request_timeout,
        )
        self._session = session or BuildIdCache(
            self._transport,
            site=self._config.site,
            cooldown=self._config.refresh_cooldown,
        )
        self._poller_factory: PollerFactory = poller_factory or Poller

        self._start_stop_lock = threading.Lock()
        self._started = False
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._loop_thread: Optional[threading.Thread] = None

        # Owned by the control loop.
        self._targets: Dict[str, Target] = {}
        self._task_index: Dict[str, str] = {}
        self._retiring: List[Poller] = []

    @property
    def started(self) -> bool:
        return self._started

    @property
    def session(self) -> BuildIdCache:
        return self._session

    def start(self) -> None:
        """Fetch the initial build id and start the control loop.

        Raises AlreadyStartedError, or whatever the initial refresh raised;
        in that case the monitor stays stopped."""
        with self._start_stop_lock:
            if self._started:
                raise AlreadyStartedError("monitor already started")

            self._session.refresh()

            self._inbox = queue.Queue()
            self._targets = {}
            self._task_index = {}
            self._retiring = []
            self._loop_thread = threading.Thread(target=self._loop, name="monitor-loop", daemon=True)
            self._loop_thread.start()
            self._started = True
            logger.info("Monitor started (build id %s)", self._session.build_id)

    def stop(self) -> None:
        """Cancel every poller and return once all of them have exited."""
        with self._start_stop_lock:
            if not self._started:
                raise NotStartedError("monitor not started")
            self._started = False
            message = _Shutdown()
            self._inbox.put(message)
            message.done.wait()
            if self._loop_thread is not None:
                self._loop_thread.join()
                self._loop_thread = None
            logger.info("Monitor stopped")

    def add_task(self, url: str, sink: Any) -> str:
        """Subscribe ``sink`` to restocks of the product at ``url``; returns the task id."""
        if sink is None:
            raise NilSinkError("nil sink")
        if not self._started:
            raise NotStartedError("monitor not started")
        path = parse_target_url(url, self._config.site.hosts)
        task = Task(task_id=str(uuid.uuid4()), path=path, sink=sink)
        # stop() holds the lock until the loop has exited; a message posted
        # under it is always consumed.
        with self._start_stop_lock:
            if not self._started:
                raise NotStartedError("monitor not started")
            self._inbox.put(_AddTask(task))
        return task.task_id

    def remove_task(self, task_id: str) -> None:
        """Unsubscribe a task; no-op if stopped or the id is unknown."""
        with self._start_stop_lock:
            if not self._started:
                return
            self._inbox.put(_RemoveTask(task_id))

    def snapshot(self) -> Dict[str, int]:
        """Map of monitored path -> number of subscribed tasks."""
        if not self._started:
            return {}
        message = _Snapshot()
        self._inbox.put(message)
        return message.reply.get()

    def _emit(self, poller: Poller, event: RestockEvent) -> None:
        self._inbox.put(_Restock(poller, event))

    # ---- control loop -------------------------------------------------------

    def _loop(self) -> None:
        while True:
            message = self._inbox.get()
            if isinstance(message, _AddTask):
                self._handle_add(message.task)
            elif isinstance(message, _RemoveTask):
                self._handle_remove(message.task_id)
            elif isinstance(message, _Restock):
                self._handle_restock(message.poller, message.event)
            elif isinstance(message, _Snapshot):
                message.reply.put({path: len(t.tasks) for path, t in self._targets.items()})
            elif isinstance(message, _Shutdown):
                self._handle_shutdown()
                message.done.set()
                return

    def _handle_add(self, task: Task) -> None:
        target = self._targets.get(task.path)
        if target is None:
            target = Target(path=task.path)
            target.poller = self._poller_factory(
                path=task.path,
                transport=self._transport,
                session=self._session,
                emit=self._emit,
                delay=self._config.delay,
            )
            self._targets[task.path] = target
            target.poller.start()
            logger.info("Monitoring %s", task.path)
        target.tasks[task.task_id] = task
        target.outboxes[task.task_id] = Outbox(
            task.sink,
            timeout=self._config.delivery_timeout,
            name=f"outbox:{task.task_id}",
        )
        self._task_index[task.task_id] = task.path

    def _handle_remove(self, task_id: str) -> None:
        path = self._task_index.pop(task_id, None)
        if path is None:
            return
        target = self._targets[path]
        target.tasks.pop(task_id, None)
        outbox = target.outboxes.pop(task_id, None)
        if outbox is not None:
            outbox.close()
        if target.tasks:
            return
        del self._targets[path]
        if target.poller is not None:
            target.poller.stop()
            self._retiring = [p for p in self._retiring if p.is_alive()]
            self._retiring.append(target.poller)
        logger.info("Stopped monitoring %s", path)

    def _handle_restock(self, poller: Poller, event: RestockEvent) -> None:
        target = self._targets.get(event.path)
        if target is None or target.poller is not poller:
            return
        for outbox in target.outboxes.values():
            outbox.send(event)

    def _handle_shutdown(self) -> None:
        pollers = [t.poller for t in self._targets.values() if t.poller is not None]
        pollers.extend(self._retiring)
        for poller in pollers:
            poller.stop()
        for poller in pollers:
            poller.join()
        for target in self._targets.values():
            for outbox in target.outboxes.values():
                outbox.close()
        self._targets.clear()
        self._task_index.clear()
        self._retiring = []
